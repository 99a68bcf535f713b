"""Endpoints for group lifecycle and membership management."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, status

from liqo.application.use_cases import AttachProposal
from liqo.application.use_cases.group_lifecycle_use_cases import CreateProposal
from liqo.controllers.dependencies import AdminDep, LifecycleDep, ReconcilerDep
from liqo.domain.models import GroupChanges, GroupDraft, GroupFilters, GroupRecord, Page
from liqo.models.user import Gender
from liqo.views import (
    ERROR_RESPONSES,
    AttachProposalResponse,
    BulkResultResponse,
    ConflictItem,
    CreateProposalResponse,
    EditMenteesResponse,
    EditMentorsResponse,
    GroupCreateRequest,
    GroupDetailResponse,
    GroupResponse,
    GroupStatisticsResponse,
    GroupUpdateRequest,
    IdsRequest,
    MembershipChangeResponse,
    MembershipRequest,
    MenteeSummary,
    MentorGenderResponse,
    MentorHistoryResponse,
    MentorSummary,
    MoveMenteesRequest,
    PagedResponse,
    PageMeta,
    SoftDeleteResponse,
)

router = APIRouter(prefix="/groups", tags=["groups"], responses=ERROR_RESPONSES)


def _serialize_group(group: GroupRecord) -> GroupResponse:
    return GroupResponse.model_validate(group)


def _serialize_page(page: Page[GroupRecord]) -> PagedResponse[GroupResponse]:
    return PagedResponse[GroupResponse](
        data=[_serialize_group(group) for group in page.items],
        meta=PageMeta(
            current_page=page.current_page,
            per_page=page.per_page,
            total=page.total,
            last_page=page.last_page,
        ),
    )


def _serialize_proposal(proposal: AttachProposal) -> AttachProposalResponse:
    return AttachProposalResponse(
        group_id=proposal.group_id,
        target_gender=proposal.target_gender,
        simple_ids=[item.mentee.id for item in proposal.simple],
        conflicts=[
            ConflictItem(
                mentee_id=conflict.mentee.id,
                mentee_name=conflict.mentee.full_name,
                current_group_id=conflict.current_group_id,
                current_group_name=conflict.current_group_name,
            )
            for conflict in proposal.conflicting
        ],
        requires_confirmation=proposal.requires_confirmation,
    )


def _serialize_create_proposal(proposal: CreateProposal) -> CreateProposalResponse:
    return CreateProposalResponse(
        name=proposal.draft.name,
        description=proposal.draft.description,
        mentor=MentorSummary.model_validate(proposal.mentor) if proposal.mentor else None,
        gender=proposal.draft.gender,
        attach=_serialize_proposal(proposal.attach),
    )


def _draft_from(payload: GroupCreateRequest) -> GroupDraft:
    return GroupDraft(
        name=payload.name,
        description=payload.description,
        mentor_id=payload.mentor_id,
        gender=payload.gender,
    )


@router.get("", response_model=PagedResponse[GroupResponse])
async def list_groups(
    _: AdminDep,
    lifecycle: LifecycleDep,
    search: Optional[str] = None,
    gender: Optional[Gender] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
) -> PagedResponse[GroupResponse]:
    """Active groups ordered by id, with optional search."""

    result = await lifecycle.list_active(
        GroupFilters(search=search, gender=gender),
        page=page,
        per_page=per_page,
    )
    return _serialize_page(result)


@router.get("/statistics", response_model=GroupStatisticsResponse)
async def group_statistics(_: AdminDep, lifecycle: LifecycleDep) -> GroupStatisticsResponse:
    return GroupStatisticsResponse.model_validate(await lifecycle.statistics())


@router.get("/trashed", response_model=PagedResponse[GroupResponse])
async def list_trashed_groups(
    _: AdminDep,
    lifecycle: LifecycleDep,
    search: Optional[str] = None,
    gender: Optional[Gender] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
) -> PagedResponse[GroupResponse]:
    result = await lifecycle.list_trashed(
        GroupFilters(search=search, gender=gender),
        page=page,
        per_page=per_page,
    )
    return _serialize_page(result)


@router.get("/available-mentors", response_model=list[MentorSummary])
async def available_mentors(_: AdminDep, lifecycle: LifecycleDep) -> list[MentorSummary]:
    """Mentors with a complete profile who do not lead an active group."""

    mentors = await lifecycle.available_mentors()
    return [MentorSummary.model_validate(mentor) for mentor in mentors]


@router.get("/available-mentees", response_model=list[MenteeSummary])
async def available_mentees(
    _: AdminDep,
    lifecycle: LifecycleDep,
    mentor_id: int = Query(..., ge=1),
    include_occupied: bool = True,
) -> list[MenteeSummary]:
    """Mentees of the mentor's gender; grouped ones carry their ``group_id``."""

    mentees = await lifecycle.available_mentees(mentor_id, include_occupied=include_occupied)
    return [MenteeSummary.model_validate(mentee) for mentee in mentees]


@router.get("/mentor-gender/{mentor_id}", response_model=MentorGenderResponse)
async def mentor_gender(
    mentor_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> MentorGenderResponse:
    mentor = await lifecycle.mentor_gender(mentor_id)
    return MentorGenderResponse(mentor_id=mentor.id, gender=mentor.gender)


@router.post("/proposals", response_model=CreateProposalResponse)
async def propose_group(
    payload: GroupCreateRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> CreateProposalResponse:
    """Validate a new group and report which mentees need a move confirmation."""

    proposal = await lifecycle.propose_create(_draft_from(payload), payload.mentee_ids)
    return _serialize_create_proposal(proposal)


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: GroupCreateRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> GroupResponse:
    group = await lifecycle.create(
        _draft_from(payload),
        payload.mentee_ids,
        confirmed_ids=payload.confirm_reassign_ids,
    )
    return _serialize_group(group)


@router.post("/bulk-delete", response_model=BulkResultResponse)
async def bulk_soft_delete(
    payload: IdsRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> BulkResultResponse:
    return BulkResultResponse.model_validate(await lifecycle.soft_delete_many(payload.ids))


@router.post("/bulk-restore", response_model=BulkResultResponse)
async def bulk_restore(
    payload: IdsRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> BulkResultResponse:
    return BulkResultResponse.model_validate(await lifecycle.restore_many(payload.ids))


@router.post("/bulk-force-delete", response_model=BulkResultResponse)
async def bulk_permanent_delete(
    payload: IdsRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> BulkResultResponse:
    return BulkResultResponse.model_validate(await lifecycle.permanent_delete_many(payload.ids))


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> GroupDetailResponse:
    group = await lifecycle.get(group_id)
    mentees = await lifecycle.group_mentees(group_id)
    return GroupDetailResponse(
        **_serialize_group(group).model_dump(),
        mentees=[MenteeSummary.model_validate(mentee) for mentee in mentees],
    )


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: int,
    payload: GroupUpdateRequest,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> GroupResponse:
    changes = GroupChanges(
        name=payload.name,
        description=payload.description,
        mentor_id=payload.mentor_id,
        mentee_ids=payload.mentee_ids,
    )
    group = await lifecycle.update(
        group_id,
        changes,
        confirmed_ids=payload.confirm_reassign_ids,
    )
    return _serialize_group(group)


@router.delete("/{group_id}", response_model=SoftDeleteResponse)
async def soft_delete_group(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> SoftDeleteResponse:
    """Move a group to the trash, releasing all of its mentees."""

    result = await lifecycle.soft_delete(group_id)
    return SoftDeleteResponse(
        group=_serialize_group(result.group),
        detached_count=result.detached_count,
    )


@router.post("/{group_id}/restore", response_model=GroupResponse)
async def restore_group(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> GroupResponse:
    return _serialize_group(await lifecycle.restore(group_id))


@router.delete("/{group_id}/force", status_code=status.HTTP_204_NO_CONTENT)
async def permanent_delete_group(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> None:
    await lifecycle.permanent_delete(group_id)


@router.get("/{group_id}/mentor-history", response_model=list[MentorHistoryResponse])
async def mentor_history(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> list[MentorHistoryResponse]:
    entries = await lifecycle.mentor_history(group_id)
    return [MentorHistoryResponse.model_validate(entry) for entry in entries]


@router.get("/{group_id}/edit-mentors", response_model=EditMentorsResponse)
async def edit_mentors(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> EditMentorsResponse:
    """Mentors the group may be handed to: the current one and free ones of its gender."""

    candidates = await lifecycle.edit_candidates(group_id)
    return EditMentorsResponse(
        group_gender=candidates.group_gender,
        data=[MentorSummary.model_validate(mentor) for mentor in candidates.mentors],
    )


@router.get("/{group_id}/edit-mentees", response_model=EditMenteesResponse)
async def edit_mentees(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> EditMenteesResponse:
    candidates = await lifecycle.edit_candidates(group_id)
    return EditMenteesResponse(
        group_gender=candidates.group_gender,
        data=[MenteeSummary.model_validate(mentee) for mentee in candidates.mentees],
    )


@router.get("/{group_id}/mentees", response_model=list[MenteeSummary])
async def list_group_mentees(
    group_id: int,
    _: AdminDep,
    lifecycle: LifecycleDep,
) -> list[MenteeSummary]:
    mentees = await lifecycle.group_mentees(group_id)
    return [MenteeSummary.model_validate(mentee) for mentee in mentees]


@router.post("/{group_id}/mentees/proposal", response_model=AttachProposalResponse)
async def propose_attach(
    group_id: int,
    payload: MembershipRequest,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> AttachProposalResponse:
    proposal = await reconciler.propose_attach(group_id, payload.mentee_ids)
    return _serialize_proposal(proposal)


@router.post("/{group_id}/mentees", response_model=MembershipChangeResponse)
async def attach_mentees(
    group_id: int,
    payload: MembershipRequest,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> MembershipChangeResponse:
    """Add mentees; those in another group must be listed in ``confirm_reassign_ids``."""

    change = await reconciler.attach(
        group_id,
        payload.mentee_ids,
        confirmed_ids=payload.confirm_reassign_ids,
    )
    return MembershipChangeResponse.model_validate(change)


@router.delete("/{group_id}/mentees", response_model=MembershipChangeResponse)
async def detach_mentees(
    group_id: int,
    payload: MembershipRequest,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> MembershipChangeResponse:
    change = await reconciler.detach(group_id, payload.mentee_ids)
    return MembershipChangeResponse.model_validate(change)


@router.put("/{group_id}/mentees/move", response_model=MembershipChangeResponse)
async def move_mentees(
    group_id: int,
    payload: MoveMenteesRequest,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> MembershipChangeResponse:
    change = await reconciler.move(group_id, payload.to_group_id, payload.mentee_ids)
    return MembershipChangeResponse.model_validate(change)
