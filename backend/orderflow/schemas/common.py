"""ORDERFLOW — Common response envelope."""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Meta(BaseModel):
    """Pagination and metadata."""

    page: int = 1
    page_size: int = 50
    total_count: int | None = None


class FieldError(BaseModel):
    message: str
    field: str | None = None


class ErrorBody(BaseModel):
    code: str
    message: str
    field_errors: list[FieldError] = []


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope: {data, error, meta}."""

    data: T | None = None
    error: ErrorBody | None = None
    meta: Meta | None = None


class ReasonRequest(BaseModel):
    reason: str | None = None


class Progress(BaseModel):
    status: str
    completed: int
    total: int
    percentage: float


def paginate(items: list, page: int, page_size: int) -> tuple[list, Meta]:
    start = (page - 1) * page_size
    return items[start:start + page_size], Meta(page=page, page_size=page_size, total_count=len(items))
