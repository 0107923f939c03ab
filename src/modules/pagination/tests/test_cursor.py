"""Unit tests for cursor encoding and decoding."""

import base64
import json
import uuid
from datetime import UTC, datetime

import pytest

from src.exceptions import InvalidCursorException
from src.models.message import Message
from src.modules.pagination.cursor import Cursor


def _raw(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


def test_datetime_cursor_decodes_to_column_type():
    row_id = uuid.uuid4()
    created = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)
    token = Cursor(field="created_at", value=created, id=row_id).encode()

    cursor = Cursor.decode(token, "created_at", Message.created_at)

    assert cursor.value == created
    assert cursor.id == row_id


def test_uuid_sort_field_is_coerced():
    row_id = uuid.uuid4()
    token = Cursor(field="id", value=row_id, id=row_id).encode()

    assert Cursor.decode(token, "id", Message.id).value == row_id


def test_standard_alphabet_is_accepted():
    row_id = uuid.uuid4()
    token = _raw({"field": "content", "value": "ab?>", "_id": str(row_id)})

    assert Cursor.decode(token, "content", Message.content).value == "ab?>"


@pytest.mark.parametrize(
    "token",
    [
        "%%%",
        base64.urlsafe_b64encode(b"not json").decode(),
        _raw(["field", "value", "_id"]),
        _raw({"field": "id", "value": 1}),
        _raw({"field": "id", "value": 1, "_id": str(uuid.uuid4()), "extra": True}),
        _raw({"field": "id", "value": 1, "_id": "not-a-uuid"}),
    ],
)
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(InvalidCursorException):
        Cursor.decode(token, "id")


def test_field_mismatch_is_rejected():
    token = Cursor(field="id", value=str(uuid.uuid4()), id=uuid.uuid4()).encode()

    with pytest.raises(InvalidCursorException):
        Cursor.decode(token, "created_at", Message.created_at)


def test_bad_datetime_value_is_rejected():
    token = _raw({"field": "created_at", "value": "yesterday", "_id": str(uuid.uuid4())})

    with pytest.raises(InvalidCursorException):
        Cursor.decode(token, "created_at", Message.created_at)


def test_null_sort_value_is_rejected():
    token = _raw({"field": "created_at", "value": None, "_id": str(uuid.uuid4())})

    with pytest.raises(InvalidCursorException):
        Cursor.decode(token, "created_at", Message.created_at)
