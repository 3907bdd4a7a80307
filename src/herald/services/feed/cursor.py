"""Opaque keyset cursors for the notification feed.

A cursor carries the sort mode, the last returned row's sort key and its id, so
the next page starts strictly after that row no matter what was inserted since.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import ColumnElement, and_, or_

from herald.db.base import as_utc
from herald.db.models.notification import NotificationRow
from herald.errors.exceptions import ValidationError
from herald.models.enums import SortBy


@dataclass(frozen=True)
class CursorKey:
    sort_by: SortBy
    created_at: datetime
    notification_id: str
    type: str | None = None


def encode_cursor(sort_by: SortBy, row) -> str:
    payload = {
        "s": str(sort_by),
        "c": as_utc(row.created_at).isoformat(),
        "i": row.notification_id,
    }
    if sort_by == SortBy.TYPE:
        payload["t"] = row.type
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str, sort_by: SortBy) -> CursorKey:
    """Decode a cursor, rejecting malformed tokens and cursors from another sort mode."""
    try:
        padded = token + "=" * (-len(token) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        key = CursorKey(
            sort_by=SortBy(payload["s"]),
            created_at=as_utc(datetime.fromisoformat(payload["c"])),
            notification_id=str(payload["i"]),
            type=payload.get("t"),
        )
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise ValidationError("Malformed cursor", details={"cursor": token}) from exc

    if key.sort_by != sort_by:
        raise ValidationError(
            "Cursor was issued for a different sort order",
            details={"cursor_sort_by": str(key.sort_by), "sort_by": str(sort_by)},
        )
    if sort_by == SortBy.TYPE and key.type is None:
        raise ValidationError("Malformed cursor", details={"cursor": token})
    return key


def order_by(sort_by: SortBy) -> list[ColumnElement]:
    n = NotificationRow
    if sort_by == SortBy.OLDEST:
        return [n.created_at.asc(), n.notification_id.asc()]
    if sort_by == SortBy.TYPE:
        return [n.type.asc(), n.created_at.desc(), n.notification_id.desc()]
    return [n.created_at.desc(), n.notification_id.desc()]


def after(key: CursorKey) -> ColumnElement[bool]:
    """Rows strictly after the cursor position in the cursor's sort order."""
    n = NotificationRow
    if key.sort_by == SortBy.OLDEST:
        return or_(
            n.created_at > key.created_at,
            and_(n.created_at == key.created_at, n.notification_id > key.notification_id),
        )
    newer_first = or_(
        n.created_at < key.created_at,
        and_(n.created_at == key.created_at, n.notification_id < key.notification_id),
    )
    if key.sort_by == SortBy.TYPE:
        return or_(
            n.type > key.type,
            and_(n.type == key.type, newer_first),
        )
    return newer_first
