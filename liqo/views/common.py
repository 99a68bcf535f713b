"""Common response schemas."""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Body of every rejected request; extra keys carry error details."""

    detail: str
    code: Optional[str] = None
    retryable: bool = False

    model_config = ConfigDict(extra="allow")


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    status_code: {"model": ErrorResponse} for status_code in (404, 409, 422, 503)
}


class PageMeta(BaseModel):
    current_page: int
    per_page: int
    total: int
    last_page: int


class PagedResponse(BaseModel, Generic[T]):
    data: List[T] = Field(default_factory=list)
    meta: PageMeta


class IdsRequest(BaseModel):
    """A list of record ids for bulk actions."""

    ids: List[int] = Field(..., min_length=1)


class BulkFailureResponse(BaseModel):
    id: int
    code: str
    message: str

    model_config = ConfigDict(from_attributes=True)


class BulkResultResponse(BaseModel):
    succeeded: List[int] = Field(default_factory=list)
    failed: List[BulkFailureResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
