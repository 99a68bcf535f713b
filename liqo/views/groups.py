"""Pydantic schemas for group management."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from liqo.domain.models import GroupState
from liqo.models.user import Gender


class GroupCreateRequest(BaseModel):
    """Payload to create a group, optionally with its first mentees."""

    name: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    mentor_id: Optional[int] = Field(None, ge=1)
    gender: Optional[Gender] = None
    mentee_ids: List[int] = Field(default_factory=list)
    confirm_reassign_ids: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("confirm_reassign_ids", "confirmReassignIds"),
    )


class GroupUpdateRequest(BaseModel):
    """Partial edit; ``mentee_ids`` is the complete desired member list."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    mentor_id: Optional[int] = Field(None, ge=1)
    mentee_ids: Optional[List[int]] = None
    confirm_reassign_ids: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("confirm_reassign_ids", "confirmReassignIds"),
    )


class GroupResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    mentor_id: Optional[int] = None
    mentor_name: Optional[str] = None
    gender: Optional[Gender] = None
    mentees_count: int = 0
    state: GroupState
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MenteeSummary(BaseModel):
    id: int
    full_name: str
    gender: Gender
    group_id: Optional[int] = None
    activity_class: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GroupDetailResponse(GroupResponse):
    mentees: List[MenteeSummary] = Field(default_factory=list)


class MentorSummary(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    gender: Optional[Gender] = None

    model_config = ConfigDict(from_attributes=True)


class MentorGenderResponse(BaseModel):
    mentor_id: int
    gender: Gender


class EditMentorsResponse(BaseModel):
    """Mentors an edit of the group may choose, all of ``group_gender``."""

    group_gender: Gender
    data: List[MentorSummary]


class EditMenteesResponse(BaseModel):
    group_gender: Gender
    data: List[MenteeSummary]


class GroupStatisticsResponse(BaseModel):
    total_groups: int
    ikhwan_groups: int
    akhwat_groups: int
    trashed_groups: int

    model_config = ConfigDict(from_attributes=True)


class MentorHistoryResponse(BaseModel):
    group_id: int
    from_mentor_id: Optional[int] = None
    to_mentor_id: Optional[int] = None
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SoftDeleteResponse(BaseModel):
    group: GroupResponse
    detached_count: int


class ConflictItem(BaseModel):
    mentee_id: int
    mentee_name: str
    current_group_id: int
    current_group_name: Optional[str] = None


class AttachProposalResponse(BaseModel):
    """What an attach would do; nothing has been written yet."""

    group_id: Optional[int] = None
    target_gender: Optional[Gender] = None
    simple_ids: List[int] = Field(default_factory=list)
    conflicts: List[ConflictItem] = Field(default_factory=list)
    requires_confirmation: bool = False


class CreateProposalResponse(BaseModel):
    name: str
    description: Optional[str] = None
    mentor: Optional[MentorSummary] = None
    gender: Optional[Gender] = None
    attach: AttachProposalResponse


class MembershipRequest(BaseModel):
    mentee_ids: List[int] = Field(..., min_length=1)
    confirm_reassign_ids: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("confirm_reassign_ids", "confirmReassignIds"),
    )


class MoveMenteesRequest(BaseModel):
    to_group_id: int = Field(..., ge=1)
    mentee_ids: List[int] = Field(..., min_length=1)


class MembershipChangeResponse(BaseModel):
    operation: str
    group_id: int
    mentee_ids: List[int]
    changed_count: int

    model_config = ConfigDict(from_attributes=True)
