"""Opaque pagination cursors.

A cursor is Base64-encoded JSON ``{"field": ..., "value": ..., "_id": ...}``
holding the sort field, the last-seen sort value and the tie-breaking id.
"""

from __future__ import annotations

import base64
import binascii
import enum
import json
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, Uuid
from sqlalchemy.sql.elements import ColumnElement

from src.exceptions import InvalidCursorException
from src.modules.pagination.constants import CURSOR_KEYS


def _to_json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


@dataclass(frozen=True)
class Cursor:
    field: str
    value: Any
    id: uuid.UUID

    def encode(self) -> str:
        raw = json.dumps(
            {"field": self.field, "value": _to_json_value(self.value), "_id": str(self.id)},
            separators=(",", ":"),
        )
        return base64.urlsafe_b64encode(raw.encode()).decode()

    @classmethod
    def decode(cls, token: str, expected_field: str, column: ColumnElement | None = None) -> Cursor:
        """Decode ``token`` and coerce its value to the sort column's type.

        Raises InvalidCursorException for anything that is not exactly the
        expected triple.
        """
        try:
            # Accept both the standard and the URL-safe alphabet
            normalized = token.strip().translate(str.maketrans("+/", "-_"))
            padded = normalized + "=" * (-len(normalized) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise InvalidCursorException(f"Invalid cursor: {exc}") from exc

        if not isinstance(payload, dict) or set(payload) != CURSOR_KEYS:
            raise InvalidCursorException("Invalid cursor: unexpected structure")
        if payload["field"] != expected_field:
            raise InvalidCursorException(
                f"Invalid cursor: issued for '{payload['field']}', not '{expected_field}'"
            )

        if payload["value"] is None:
            raise InvalidCursorException("Invalid cursor: missing sort value")

        try:
            row_id = uuid.UUID(str(payload["_id"]))
            value = _coerce(payload["value"], column)
        except (TypeError, ValueError) as exc:
            raise InvalidCursorException(f"Invalid cursor: {exc}") from exc

        return cls(field=expected_field, value=value, id=row_id)


def _coerce(value: Any, column: ColumnElement | None) -> Any:
    if column is None:
        return value
    column_type = column.type
    if isinstance(column_type, DateTime):
        return datetime.fromisoformat(value)
    if isinstance(column_type, Date):
        return date.fromisoformat(value)
    if isinstance(column_type, Uuid):
        return uuid.UUID(str(value))
    return value
