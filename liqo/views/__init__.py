"""Pydantic schemas used as views."""

from .common import (
    ERROR_RESPONSES,
    BulkFailureResponse,
    BulkResultResponse,
    ErrorResponse,
    IdsRequest,
    PagedResponse,
    PageMeta,
)
from .groups import (
    AttachProposalResponse,
    ConflictItem,
    CreateProposalResponse,
    EditMenteesResponse,
    EditMentorsResponse,
    GroupCreateRequest,
    GroupDetailResponse,
    GroupResponse,
    GroupStatisticsResponse,
    GroupUpdateRequest,
    MembershipChangeResponse,
    MembershipRequest,
    MenteeSummary,
    MentorGenderResponse,
    MentorHistoryResponse,
    MentorSummary,
    MoveMenteesRequest,
    SoftDeleteResponse,
)
from .imports import ImportResultResponse, RowFailureResponse
from .mentees import BulkMoveRequest, GroupHistoryResponse

__all__ = [
    "ERROR_RESPONSES",
    "AttachProposalResponse",
    "BulkFailureResponse",
    "BulkMoveRequest",
    "BulkResultResponse",
    "ConflictItem",
    "CreateProposalResponse",
    "EditMenteesResponse",
    "EditMentorsResponse",
    "ErrorResponse",
    "GroupCreateRequest",
    "GroupDetailResponse",
    "GroupHistoryResponse",
    "GroupResponse",
    "GroupStatisticsResponse",
    "GroupUpdateRequest",
    "IdsRequest",
    "ImportResultResponse",
    "MembershipChangeResponse",
    "MembershipRequest",
    "MenteeSummary",
    "MentorGenderResponse",
    "MentorHistoryResponse",
    "MentorSummary",
    "MoveMenteesRequest",
    "PagedResponse",
    "PageMeta",
    "RowFailureResponse",
    "SoftDeleteResponse",
]
