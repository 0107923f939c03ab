"""Paginator: offset and cursor pagination over ORM queries and caller statements.

Four strategies share one set of rules:

* every ORDER BY ends with the identity column so ordering is deterministic;
* soft-deleted rows are excluded unless ``include_deleted`` is set;
* sort fields must be real mapped columns of the model.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, and_, func, inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import load_only
from sqlalchemy.sql.elements import ColumnElement

from src.database.soft_delete import INCLUDE_DELETED
from src.exceptions import ValidationException
from src.modules.pagination.constants import IDENTITY_FIELD, TOTAL_LABEL
from src.modules.pagination.cursor import Cursor
from src.modules.pagination.types import CursorPage, Page, PageMeta, PaginationOptions

logger = logging.getLogger(__name__)


def build_meta(total: int, options: PaginationOptions) -> PageMeta:
    """Offset metadata; ``total_pages`` is 0 when the limit is not positive."""
    return PageMeta(
        page=options.page,
        limit=options.limit,
        total=total,
        total_pages=math.ceil(total / options.limit) if options.limit > 0 else 0,
    )


class Paginator:
    """Runs paginated reads against sessions from an injected factory.

    Each read opens its own short-lived session so independent queries
    (count and fetch) can run concurrently.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Offset strategies
    # ------------------------------------------------------------------

    async def find_page(
        self,
        model: type,
        filters: Sequence[ColumnElement[bool]] = (),
        options: PaginationOptions | None = None,
        projection: Sequence[str] | None = None,
        joins: Sequence[Any] = (),
    ) -> Page:
        """Offset page of ``model`` rows matching ``filters``.

        ``projection`` restricts loaded columns, ``joins`` are loader options
        (e.g. ``selectinload(Message.idea)``) resolved inline.
        """
        options = options or PaginationOptions()
        criteria = self._criteria(model, filters, options.include_deleted)
        sort_column = self._column(model, options.sort_field)

        statement = (
            select(model)
            .where(*criteria)
            .order_by(*self._ordering(model, sort_column, options.descending))
            .offset(options.offset)
            .limit(max(options.limit, 0))
        )
        if projection:
            statement = statement.options(
                load_only(*(self._column(model, name) for name in projection))
            )
        if joins:
            statement = statement.options(*joins)

        count_statement = select(func.count()).select_from(model).where(*criteria)

        data, total = await asyncio.gather(
            self._fetch_scalars(statement, options.include_deleted),
            self._fetch_count(count_statement, options.include_deleted),
        )
        return Page(data=data, meta=build_meta(total, options))

    async def aggregate_page(
        self,
        model: type,
        statement: Select,
        options: PaginationOptions | None = None,
    ) -> Page:
        """Offset page over a caller-built statement.

        Existing LIMIT/OFFSET are dropped so paginating twice never stacks
        offsets. A caller ORDER BY wins over ``options.sort_field``. Rows and
        total come back in one round trip through a window count.
        """
        options = options or PaginationOptions()
        base = statement.limit(None).offset(None)
        if not options.include_deleted:
            base = base.where(model.not_deleted())

        if base._order_by_clauses:
            ordered = base.order_by(self._column(model, IDENTITY_FIELD))
        else:
            sort_column = self._column(model, options.sort_field)
            ordered = base.order_by(*self._ordering(model, sort_column, options.descending))

        paged = (
            ordered.add_columns(func.count().over().label(TOTAL_LABEL))
            .offset(options.offset)
            .limit(max(options.limit, 0))
        )

        async with self._session_factory() as session:
            result = await session.execute(
                paged.execution_options(**{INCLUDE_DELETED: options.include_deleted})
            )
            rows = result.all()
            if rows:
                total = rows[0]._mapping[TOTAL_LABEL]
            else:
                # Past the last page the window has nothing to report on
                total = await self._count_statement(session, base, options.include_deleted)

        return Page(data=[_unwrap(row) for row in rows], meta=build_meta(total, options))

    # ------------------------------------------------------------------
    # Cursor strategies
    # ------------------------------------------------------------------

    async def cursor_paginate(
        self,
        model: type,
        filters: Sequence[ColumnElement[bool]] = (),
        options: PaginationOptions | None = None,
        projection: Sequence[str] | None = None,
        joins: Sequence[Any] = (),
    ) -> CursorPage:
        """Keyset page of ``model`` rows; stable under concurrent inserts."""
        options = options or PaginationOptions.resolve_cursor()
        sort_column = self._cursor_column(model, options.sort_field)
        criteria = self._criteria(model, filters, options.include_deleted)
        if options.cursor:
            criteria.append(self._after_cursor(model, sort_column, options))

        statement = (
            select(model)
            .where(*criteria)
            .order_by(*self._ordering(model, sort_column, options.descending))
            .limit(max(options.limit, 0) + 1)
        )
        if projection:
            names = set(projection) | {options.sort_field, IDENTITY_FIELD}
            statement = statement.options(load_only(*(self._column(model, n) for n in names)))
        if joins:
            statement = statement.options(*joins)

        rows = await self._fetch_scalars(statement, options.include_deleted)
        return self._cursor_page(rows, options)

    async def cursor_aggregate(
        self,
        model: type,
        statement: Select,
        options: PaginationOptions | None = None,
    ) -> CursorPage:
        """Keyset page over a caller-built statement.

        The cursor predicate is added to the caller's WHERE clause, then the
        statement gets its own ORDER BY and LIMIT.
        """
        options = options or PaginationOptions.resolve_cursor()
        sort_column = self._cursor_column(model, options.sort_field)

        paged = statement.limit(None).offset(None).order_by(None)
        if not options.include_deleted:
            paged = paged.where(model.not_deleted())
        if options.cursor:
            paged = paged.where(self._after_cursor(model, sort_column, options))
        paged = paged.order_by(*self._ordering(model, sort_column, options.descending)).limit(
            max(options.limit, 0) + 1
        )

        async with self._session_factory() as session:
            result = await session.execute(
                paged.execution_options(**{INCLUDE_DELETED: options.include_deleted})
            )
            rows = [_unwrap(row, has_total=False) for row in result.all()]

        return self._cursor_page(rows, options)

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------

    async def count(
        self,
        model: type,
        filters: Sequence[ColumnElement[bool]] = (),
        include_deleted: bool = False,
    ) -> int:
        criteria = self._criteria(model, filters, include_deleted)
        return await self._fetch_count(
            select(func.count()).select_from(model).where(*criteria), include_deleted
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _criteria(
        model: type, filters: Sequence[ColumnElement[bool]], include_deleted: bool
    ) -> list[ColumnElement[bool]]:
        criteria = list(filters)
        if not include_deleted:
            criteria.append(model.not_deleted())
        return criteria

    @staticmethod
    def _column(model: type, name: str) -> Any:
        if name not in inspect(model).columns:
            raise ValidationException(
                f"Cannot sort or project by '{name}'",
                details=[{"field": "sortField", "message": f"Unknown field '{name}'"}],
            )
        return getattr(model, name)

    @classmethod
    def _cursor_column(cls, model: type, name: str) -> Any:
        """Keyset comparisons are undefined for NULL, so nullable columns are refused."""
        column = cls._column(model, name)
        if inspect(model).columns[name].nullable:
            raise ValidationException(
                f"Cannot paginate by cursor on nullable field '{name}'",
                details=[{"field": "sortField", "message": f"Field '{name}' is nullable"}],
            )
        return column

    @staticmethod
    def _ordering(model: type, sort_column: Any, descending: bool) -> list[Any]:
        identity = getattr(model, IDENTITY_FIELD)
        if descending:
            return [sort_column.desc(), identity.desc()]
        return [sort_column.asc(), identity.asc()]

    @staticmethod
    def _after_cursor(model: type, sort_column: Any, options: PaginationOptions) -> ColumnElement[bool]:
        """Rows strictly after the cursor: ``(sort, id)`` compared lexicographically."""
        cursor = Cursor.decode(options.cursor, options.sort_field, sort_column)
        identity = getattr(model, IDENTITY_FIELD)
        if options.descending:
            return or_(
                sort_column < cursor.value,
                and_(sort_column == cursor.value, identity < cursor.id),
            )
        return or_(
            sort_column > cursor.value,
            and_(sort_column == cursor.value, identity > cursor.id),
        )

    @staticmethod
    def _cursor_page(rows: list[Any], options: PaginationOptions) -> CursorPage:
        limit = max(options.limit, 0)
        has_next_page = len(rows) > limit
        if has_next_page:
            rows = rows[:limit]

        next_cursor = None
        if has_next_page and rows:
            last = rows[-1]
            next_cursor = Cursor(
                field=options.sort_field,
                value=_field_value(last, options.sort_field),
                id=_field_value(last, IDENTITY_FIELD),
            ).encode()

        return CursorPage(data=rows, has_next_page=has_next_page, next_cursor=next_cursor)

    async def _fetch_scalars(self, statement: Select, include_deleted: bool) -> list[Any]:
        async with self._session_factory() as session:
            result = await session.execute(
                statement.execution_options(**{INCLUDE_DELETED: include_deleted})
            )
            return list(result.scalars().all())

    async def _fetch_count(self, statement: Select, include_deleted: bool) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                statement.execution_options(**{INCLUDE_DELETED: include_deleted})
            )
            return result.scalar_one()

    @staticmethod
    async def _count_statement(session: AsyncSession, statement: Select, include_deleted: bool) -> int:
        counted = select(func.count()).select_from(statement.order_by(None).subquery())
        result = await session.execute(
            counted.execution_options(**{INCLUDE_DELETED: include_deleted})
        )
        return result.scalar_one()


def _unwrap(row: Any, has_total: bool = True) -> Any:
    """Single-entity rows become the entity; wider rows become dicts."""
    values = tuple(row)
    if has_total:
        values = values[:-1]
    if len(values) == 1:
        return values[0]
    mapping = dict(row._mapping)
    mapping.pop(TOTAL_LABEL, None)
    return mapping


def _field_value(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)
