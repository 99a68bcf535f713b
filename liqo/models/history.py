"""Audit tables for membership and mentor changes."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, func

from liqo.models.base import Base


class MenteeGroupHistory(Base):
    """One row per change of a mentee's ``group_id``."""

    __tablename__ = "mentee_group_histories"

    id = Column(Integer, primary_key=True, index=True)
    mentee_id = Column(
        Integer,
        ForeignKey("mentees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    to_group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    moved_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        index=True,
    )


class GroupMentorHistory(Base):
    """One row per mentor change on a group."""

    __tablename__ = "group_mentor_histories"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_mentor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    to_mentor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    changed_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )


__all__ = ["MenteeGroupHistory", "GroupMentorHistory"]
