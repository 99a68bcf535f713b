"""SQLAlchemy model defining mentoring groups."""

from __future__ import annotations

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from liqo.models.base import Base
from liqo.models.user import Gender


class Group(Base):
    """A mentoring group; ``deleted_at`` marks it as trashed."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    mentor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    gender = Column(SqlEnum(Gender, name="gender"), nullable=True)
    deleted_at = Column(DateTime, nullable=True, index=True)
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

    mentor = relationship("User", lazy="joined", foreign_keys=[mentor_id])


__all__ = ["Group"]
