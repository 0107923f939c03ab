"""Pagination option and result types."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from src.modules.pagination.constants import (
    CURSOR_SORT_FIELD,
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_FIELD,
)

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


def normalize_field(name: str) -> str:
    """Accept ``createdAt`` as well as ``created_at``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


@dataclass(frozen=True)
class PaginationOptions:
    """Fully resolved pagination settings.

    Build through ``resolve`` / ``resolve_cursor`` so defaults are applied in
    exactly one place; the paginator never re-derives them.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_field: str = DEFAULT_SORT_FIELD
    sort_order: SortOrder = SortOrder.DESC
    cursor: str | None = None
    include_deleted: bool = False

    @classmethod
    def resolve(
        cls,
        *,
        page: int | None = None,
        limit: int | None = None,
        sort_field: str | None = None,
        sort_order: SortOrder | str | None = None,
        cursor: str | None = None,
        include_deleted: bool = False,
        default_sort_field: str = DEFAULT_SORT_FIELD,
        default_sort_order: SortOrder = SortOrder.DESC,
    ) -> PaginationOptions:
        return cls(
            page=page or DEFAULT_PAGE,
            limit=limit or DEFAULT_LIMIT,
            sort_field=normalize_field(sort_field) if sort_field else default_sort_field,
            sort_order=SortOrder(sort_order) if sort_order else default_sort_order,
            cursor=cursor or None,
            include_deleted=include_deleted,
        )

    @classmethod
    def resolve_cursor(cls, **kwargs) -> PaginationOptions:
        kwargs.setdefault("default_sort_field", CURSOR_SORT_FIELD)
        return cls.resolve(**kwargs)

    @property
    def offset(self) -> int:
        return max(self.page - 1, 0) * max(self.limit, 0)

    @property
    def descending(self) -> bool:
        return self.sort_order is SortOrder.DESC


@dataclass
class PageMeta:
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass
class Page(Generic[T]):
    data: list[T]
    meta: PageMeta


@dataclass
class CursorPage(Generic[T]):
    data: list[T] = field(default_factory=list)
    has_next_page: bool = False
    next_cursor: str | None = None
