"""Pagination helpers for list endpoints."""


from collections.abc import Collection

from fastapi import Query
from pydantic import BaseModel

from onboarding.core.exceptions import ValidationError


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=20&sort=created_at&order=desc`."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=20, ge=1, le=200, description="Items per page"),
        sort: str = Query(default="created_at", description="Sort field (snake_case column)"),
        order: str = Query(default="desc", pattern="^(asc|desc)$", description="Sort order"),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def require_sort_in(self, allowed: Collection[str]) -> None:
        """Only whitelisted columns are sortable (never credential columns)."""
        if self.sort not in allowed:
            raise ValidationError(
                f"Cannot sort by '{self.sort}'. Allowed: {', '.join(sorted(allowed))}",
                fields=["sort"],
            )


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    model_config = {"populate_by_name": True}
