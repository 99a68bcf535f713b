"""SQLAlchemy model for mentees."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import ForeignKey, Integer, String, func

from liqo.models.base import Base
from liqo.models.user import Gender


class MenteeStatus(str, Enum):
    """Participation status of a mentee."""

    ACTIVE = "Aktif"
    INACTIVE = "Non-Aktif"


class Mentee(Base):
    __tablename__ = "mentees"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    nickname = Column(String(255), nullable=True)
    gender = Column(SqlEnum(Gender, name="gender"), nullable=False)
    activity_class = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    status = Column(
        SqlEnum(MenteeStatus, name="mentee_status"),
        nullable=False,
        default=MenteeStatus.ACTIVE,
    )
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


__all__ = ["Mentee", "MenteeStatus"]
