"""SQLAlchemy model for console users (admins and mentors)."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import Integer, String, func

from liqo.models.base import Base


class UserRole(str, Enum):
    """Roles recognised by the console."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MENTOR = "mentor"


class Gender(str, Enum):
    """Gender classification used for homogeneous grouping."""

    IKHWAN = "Ikhwan"
    AKHWAT = "Akhwat"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(
        SqlEnum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.MENTOR,
    )
    gender = Column(SqlEnum(Gender, name="gender"), nullable=True)
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


__all__ = ["User", "UserRole", "Gender"]
