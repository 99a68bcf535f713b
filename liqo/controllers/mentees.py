"""Mentee-centred membership endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from liqo.controllers.dependencies import AdminDep, ReconcilerDep
from liqo.views import (
    ERROR_RESPONSES,
    BulkMoveRequest,
    GroupHistoryResponse,
    MembershipChangeResponse,
)

router = APIRouter(prefix="/mentees", tags=["mentees"], responses=ERROR_RESPONSES)


@router.post("/bulk-move-group", response_model=MembershipChangeResponse)
async def bulk_move_group(
    payload: BulkMoveRequest,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> MembershipChangeResponse:
    """Move the selected mentees, wherever they are, into one group."""

    change = await reconciler.bulk_move(payload.group_id, payload.mentee_ids)
    return MembershipChangeResponse.model_validate(change)


@router.get("/{mentee_id}/group-history", response_model=list[GroupHistoryResponse])
async def group_history(
    mentee_id: int,
    _: AdminDep,
    reconciler: ReconcilerDep,
) -> list[GroupHistoryResponse]:
    entries = await reconciler.history(mentee_id)
    return [GroupHistoryResponse.model_validate(entry) for entry in entries]
