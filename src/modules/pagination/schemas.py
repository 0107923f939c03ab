"""Pydantic v2 schemas for paginated requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.modules.pagination.types import PaginationOptions, SortOrder


class PaginationParams(BaseModel):
    """Raw, possibly partial pagination input from a caller."""

    model_config = ConfigDict(populate_by_name=True)

    page: int | None = None
    limit: int | None = None
    sort_field: str | None = Field(None, alias="sortField")
    sort_order: SortOrder | None = Field(None, alias="sortOrder")
    cursor: str | None = None

    def to_options(
        self,
        default_sort_field: str | None = None,
        default_sort_order: SortOrder | None = None,
        *,
        cursor_mode: bool = False,
        include_deleted: bool = False,
    ) -> PaginationOptions:
        defaults = {}
        if default_sort_field is not None:
            defaults["default_sort_field"] = default_sort_field
        if default_sort_order is not None:
            defaults["default_sort_order"] = default_sort_order
        resolve = PaginationOptions.resolve_cursor if cursor_mode else PaginationOptions.resolve
        return resolve(
            page=self.page,
            limit=self.limit,
            sort_field=self.sort_field,
            sort_order=self.sort_order,
            cursor=self.cursor,
            include_deleted=include_deleted,
            **defaults,
        )


class PageMetaSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
