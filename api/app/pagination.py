from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_

from .errors import ValidationError

# Cursor format: base64-encoded JSON with {id: last_record_id, sort: sort_field_value}.
# Keyset pagination avoids OFFSET and stays stable while new rows are inserted.


def encode_cursor(last_id: int, sort_value: Any = None) -> str:
    """
    Encode a pagination cursor from the last record's ID and sort value.

    Example:
        cursor = encode_cursor(42, "2026-10-19T08:00:00+00:00")
    """
    cursor_data: dict[str, Any] = {"id": last_id}
    if sort_value is not None:
        if isinstance(sort_value, datetime):
            sort_value = sort_value.isoformat()
        cursor_data["sort"] = sort_value

    json_str = json.dumps(cursor_data, default=str)
    return base64.urlsafe_b64encode(json_str.encode()).decode()


def decode_cursor(cursor: str | None) -> tuple[int, Any] | None:
    """
    Decode a pagination cursor to extract the last record's ID and sort value.

    Returns:
        Tuple of (last_id, sort_value) if cursor is valid, None otherwise
    """
    if not cursor:
        return None

    try:
        decoded = base64.urlsafe_b64decode(cursor.encode()).decode()
        cursor_data = json.loads(decoded)
        last_id = int(cursor_data["id"])
        sort_value = cursor_data.get("sort")
    except (ValueError, KeyError, TypeError, binascii.Error, UnicodeDecodeError):
        # Invalid cursor format
        return None

    return (last_id, sort_value)


def _require_cursor(cursor: str) -> tuple[int, Any]:
    cursor_data = decode_cursor(cursor)
    if cursor_data is None:
        raise ValidationError("Invalid cursor")
    return cursor_data


def apply_id_cursor(query, id_column, cursor: str | None):
    """Continue an ``ORDER BY id DESC`` listing after the cursor's record."""
    if not cursor:
        return query
    last_id, _ = _require_cursor(cursor)
    return query.filter(id_column < last_id)


def apply_time_cursor(query, time_column, id_column, cursor: str | None):
    """
    Continue an ``ORDER BY created_at DESC, id DESC`` listing after the cursor's record.

    Rows sharing the cursor's timestamp are disambiguated by id.
    """
    if not cursor:
        return query
    last_id, sort_value = _require_cursor(cursor)
    if sort_value is None:
        return query.filter(id_column < last_id)

    try:
        cursor_time = datetime.fromisoformat(str(sort_value))
    except ValueError:
        raise ValidationError("Invalid cursor")

    return query.filter(
        or_(
            time_column < cursor_time,
            and_(time_column == cursor_time, id_column < last_id),
        )
    )
