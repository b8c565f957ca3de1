"""
Pagination request/response models.

`Page` describes which slice of a query to load; `Paged[T]` carries the
loaded slice together with the total row count of the unpaged query.
"""

from __future__ import annotations

from typing import Any, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from datacore.core.config import get_settings
from datacore.core.constants import DEFAULT_PAGE

T = TypeVar("T")

__all__ = ["Page", "Paged"]


def _default_page_size() -> int:
    settings = get_settings()
    return min(settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


class Page(BaseModel):
    """Page request (1-indexed)."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(default=DEFAULT_PAGE, ge=1, description="Page number (1-indexed)")
    size: int = Field(
        default_factory=_default_page_size,
        validate_default=True,
        ge=1,
        description="Items per page",
    )

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: int) -> int:
        max_size = get_settings().MAX_PAGE_SIZE
        if v > max_size:
            raise ValueError(f"Page size must be between 1 and {max_size}")
        return v

    @computed_field  # type: ignore[misc]
    @property
    def offset(self) -> int:
        """Calculate offset for database queries."""
        return (self.number - 1) * self.size

    @computed_field  # type: ignore[misc]
    @property
    def limit(self) -> int:
        return self.size

    @classmethod
    def normalize(cls, number: Optional[int], size: Optional[int]) -> "Page":
        """
        Build a page from raw inputs, clamping instead of raising.

        Rules:
            - number < 1 or None -> DEFAULT_PAGE
            - size < 1 or None -> DEFAULT_PAGE_SIZE setting
            - size > MAX_PAGE_SIZE setting -> MAX_PAGE_SIZE setting
        """
        settings = get_settings()
        if number is None or number < 1:
            number = DEFAULT_PAGE
        if size is None or size < 1:
            size = settings.DEFAULT_PAGE_SIZE
        if size > settings.MAX_PAGE_SIZE:
            size = settings.MAX_PAGE_SIZE
        return cls(number=number, size=size)


class Paged(BaseModel, Generic[T]):
    """One page of results plus paging metadata."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[T] = Field(default_factory=list)
    page: int = Field(..., ge=1, description="Current page number")
    size: int = Field(..., ge=1, description="Items per page")
    total: int = Field(..., ge=0, description="Total number of items across all pages")

    @computed_field  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        return (self.total + self.size - 1) // self.size

    @computed_field  # type: ignore[misc]
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @computed_field  # type: ignore[misc]
    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @classmethod
    def create(cls, items: Sequence[Any], total: int, page: Page) -> "Paged[T]":
        """
        Create a paged result from a loaded slice.

        Args:
            items: Items of the current page.
            total: Total number of items across all pages.
            page: The page request that produced ``items``.
        """
        return cls(items=list(items), page=page.number, size=page.size, total=total)
