"""
Shared Pydantic schemas
Project: AutoService CRM

Response envelope and pagination used by every router.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope: {"success": true, "data": ...}.

    Errors use the same envelope with "success": false, built by the
    exception handlers in main.py.
    """

    success: bool = True
    data: Optional[T] = None


class PaginationParams(BaseModel):
    """Validated page/limit pair extracted from the query string."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    """
    Pagination metadata of a list response.

    Attributes:
        page: Current page (1-based)
        limit: Items per page
        total: Total matching rows
        pages: ceil(total / limit)
    """

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)

    @computed_field
    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


class Page(BaseModel, Generic[T]):
    """List payload: {"items": [...], "pagination": {...}}."""

    model_config = ConfigDict(from_attributes=True)

    items: list[T] = Field(default_factory=list)
    pagination: Pagination

    @classmethod
    def build(cls, items: list, total: int, params: PaginationParams) -> "Page[T]":
        return cls(
            items=items,
            pagination=Pagination(page=params.page, limit=params.limit, total=total),
        )


class MessageResponse(BaseModel):
    message: str


__all__ = [
    "ApiResponse",
    "PaginationParams",
    "Pagination",
    "Page",
    "MessageResponse",
]
