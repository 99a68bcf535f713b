"""SQLAlchemy models for the membership store."""

from .base import Base
from .group import Group  # noqa: F401
from .history import GroupMentorHistory, MenteeGroupHistory  # noqa: F401
from .mentee import Mentee, MenteeStatus  # noqa: F401
from .user import Gender, User, UserRole  # noqa: F401

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Gender",
    "Group",
    "Mentee",
    "MenteeStatus",
    "MenteeGroupHistory",
    "GroupMentorHistory",
]
