"""FastAPI dependency that reads pagination query parameters."""

from fastapi import Query

from src.modules.pagination.schemas import PaginationParams
from src.modules.pagination.types import SortOrder


def pagination_params(
    page: int | None = Query(None, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    sort_field: str | None = Query(None, alias="sortField", max_length=64),
    sort_order: SortOrder | None = Query(None, alias="sortOrder"),
    cursor: str | None = Query(None, max_length=1024),
) -> PaginationParams:
    return PaginationParams(
        page=page,
        limit=limit,
        sort_field=sort_field,
        sort_order=sort_order,
        cursor=cursor,
    )
