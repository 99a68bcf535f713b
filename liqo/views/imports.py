"""Pydantic schemas for spreadsheet import."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class RowFailureResponse(BaseModel):
    row: int
    errors: List[str]

    model_config = ConfigDict(from_attributes=True)


class ImportResultResponse(BaseModel):
    created_count: int
    failed_count: int
    failures: List[RowFailureResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
