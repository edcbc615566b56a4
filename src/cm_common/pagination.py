"""Opaque cursor pagination shared by ledger, purchase and notification feeds.

Feeds are ordered by a monotonically increasing key (BIGSERIAL id or
snowflake-derived sort key); the cursor carries the last key seen.
"""

import base64
import json
from typing import TypeVar

T = TypeVar("T")


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen key. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


def split_page(rows: list[T], limit: int) -> tuple[list[T], bool]:
    """Repositories fetch limit+1 rows; trim to `limit` and report has_more."""
    return rows[:limit], len(rows) > limit
