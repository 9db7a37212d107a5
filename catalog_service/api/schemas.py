"""API response envelopes.

Every response body is ``{success, message, data?, errors?, errorCode?}``;
paginated collections add ``pagination``.
"""

from typing import Generic, TypeVar

from pydantic import Field

from catalog_service.application.base import CamelModel
from catalog_service.application.pagination import PaginatedResult

T = TypeVar("T")


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(CamelModel):
    """Field-level error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(CamelModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    success: bool = False
    message: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")
    errors: list[ErrorDetail] | None = Field(default=None, description="Field-level issues")


class ApiResponse(CamelModel, Generic[T]):
    """Successful response wrapping a single payload."""

    success: bool = True
    message: str = "OK"
    data: T | None = None


class PaginationMeta(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(CamelModel, Generic[T]):
    """Successful response wrapping one page of a collection."""

    success: bool = True
    message: str = "OK"
    data: list[T] = Field(default_factory=list)
    pagination: PaginationMeta


# ============================================================================
# Builders
# ============================================================================


def ok(data=None, message: str = "OK") -> ApiResponse:
    return ApiResponse(data=data, message=message)


def paginated(result: PaginatedResult, message: str = "OK") -> PaginatedResponse:
    """Wrap a PaginatedResult in the paginated envelope."""
    return PaginatedResponse(
        message=message,
        data=result.items,
        pagination=PaginationMeta(
            current_page=result.page,
            total_pages=result.total_pages,
            total_items=result.total,
            items_per_page=result.limit,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
    )
