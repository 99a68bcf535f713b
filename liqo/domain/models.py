"""Domain records exchanged between the store, the use cases and the API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from math import ceil
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from liqo.models.user import Gender

T = TypeVar("T")


class GroupState(str, Enum):
    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    PERMANENTLY_DELETED = "permanently_deleted"


class MentorRecord(BaseModel):
    """A user with the mentor role."""

    id: int
    email: str
    full_name: Optional[str] = None
    gender: Optional[Gender] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_complete_profile(self) -> bool:
        return bool(self.full_name) and self.gender is not None


class MenteeRecord(BaseModel):
    id: int
    full_name: str
    gender: Gender
    group_id: Optional[int] = None
    activity_class: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GroupRecord(BaseModel):
    """Group as seen by the membership core."""

    id: int
    name: str
    description: Optional[str] = None
    mentor_id: Optional[int] = None
    mentor_name: Optional[str] = None
    gender: Optional[Gender] = None
    mentees_count: int = 0
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def state(self) -> GroupState:
        if self.deleted_at is None:
            return GroupState.ACTIVE
        return GroupState.SOFT_DELETED

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


class HistoryEntry(BaseModel):
    """A recorded change of a mentee's group."""

    mentee_id: int
    from_group_id: Optional[int] = None
    to_group_id: Optional[int] = None
    moved_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MentorHistoryEntry(BaseModel):
    group_id: int
    from_mentor_id: Optional[int] = None
    to_mentor_id: Optional[int] = None
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupDraft(BaseModel):
    """Data needed to create a group."""

    name: str
    description: Optional[str] = None
    mentor_id: Optional[int] = None
    gender: Optional[Gender] = None


class GroupChanges(BaseModel):
    """Partial edit of a group; ``None`` fields are left untouched."""

    name: Optional[str] = None
    description: Optional[str] = None
    mentor_id: Optional[int] = None
    gender: Optional[Gender] = None
    mentee_ids: Optional[List[int]] = None


class GroupFilters(BaseModel):
    search: Optional[str] = None
    gender: Optional[Gender] = None
    trashed: bool = False


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    current_page: int = 1
    per_page: int = 10
    total: int = 0

    @property
    def last_page(self) -> int:
        return max(1, ceil(self.total / self.per_page)) if self.per_page else 1


class GroupStatistics(BaseModel):
    total_groups: int = 0
    ikhwan_groups: int = 0
    akhwat_groups: int = 0
    trashed_groups: int = 0


__all__ = [
    "GroupState",
    "MentorRecord",
    "MenteeRecord",
    "GroupRecord",
    "HistoryEntry",
    "MentorHistoryEntry",
    "GroupDraft",
    "GroupChanges",
    "GroupFilters",
    "Page",
    "GroupStatistics",
]
