"""Pydantic schemas for mentee membership endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BulkMoveRequest(BaseModel):
    mentee_ids: List[int] = Field(..., min_length=1)
    group_id: int = Field(..., ge=1)


class GroupHistoryResponse(BaseModel):
    mentee_id: int
    from_group_id: Optional[int] = None
    to_group_id: Optional[int] = None
    moved_at: datetime

    model_config = ConfigDict(from_attributes=True)
