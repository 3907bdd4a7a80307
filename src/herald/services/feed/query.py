"""Feed query engine: filter predicates, sort order and keyset pagination."""

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from herald.db.base import as_utc
from herald.db.models.notification import NotificationRow
from herald.errors.exceptions import ValidationError
from herald.models.enums import ReadStatus, SortBy
from herald.models.feed import FeedFilter, FeedPage
from herald.models.notification import Notification
from herald.repositories.notification_repo import NotificationRepository
from herald.services.clamp import clamp
from herald.services.feed.cursor import after, decode_cursor, encode_cursor, order_by
from herald.services.feed.search import parse_search, search_conditions

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 50


def validate_filter(feed_filter: FeedFilter) -> FeedFilter:
    """Normalize dates to UTC and reject inverted ranges."""
    date_from = as_utc(feed_filter.date_from)
    date_to = as_utc(feed_filter.date_to)
    if date_from and date_to and date_from > date_to:
        raise ValidationError(
            "date_from must not be after date_to",
            details={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
        )
    search = feed_filter.search.strip() if feed_filter.search else None
    types = [t for t in feed_filter.types or [] if t] or None
    return feed_filter.model_copy(
        update={"date_from": date_from, "date_to": date_to, "search": search or None, "types": types}
    )


def build_conditions(user_id: str, feed_filter: FeedFilter) -> list[ColumnElement[bool]]:
    n = NotificationRow
    conditions = [n.user_id == user_id]

    search = parse_search(feed_filter.search)
    conditions.extend(search_conditions(search))
    # type: tokens from the search widen the explicit type filter
    types = list(dict.fromkeys(search.types + (feed_filter.types or [])))
    if types:
        conditions.append(n.type.in_(types))

    if feed_filter.status == ReadStatus.READ:
        conditions.append(n.read.is_(True))
    elif feed_filter.status == ReadStatus.UNREAD:
        conditions.append(n.read.is_(False))
    if feed_filter.date_from:
        conditions.append(n.created_at >= feed_filter.date_from)
    if feed_filter.date_to:
        conditions.append(n.created_at <= feed_filter.date_to)
    return conditions


async def query_feed(
    session: AsyncSession,
    user_id: str,
    feed_filter: FeedFilter | None = None,
    cursor: str | None = None,
    limit: int | None = None,
) -> FeedPage:
    """Return one page of the user's feed plus the cursor for the next page.

    Fetches one row beyond ``limit`` so the end of the feed is detected without
    a second query; ``next_cursor`` is None once nothing remains.
    """
    feed_filter = validate_filter(feed_filter or FeedFilter())
    limit = clamp(limit, DEFAULT_LIMIT, 1, MAX_LIMIT)

    conditions = build_conditions(user_id, feed_filter)
    if cursor:
        conditions.append(after(decode_cursor(cursor, feed_filter.sort_by)))

    rows = await NotificationRepository(session).query(
        conditions, order_by(feed_filter.sort_by), limit=limit + 1
    )
    has_more = len(rows) > limit
    rows = rows[:limit]

    return FeedPage(
        items=[Notification.model_validate(r) for r in rows],
        next_cursor=encode_cursor(feed_filter.sort_by, rows[-1]) if has_more and rows else None,
        limit=limit,
    )


async def get_recent(session: AsyncSession, user_id: str, limit: int | None = None) -> list[Notification]:
    """Newest notifications, unfiltered; a snapshot with no cursor."""
    limit = clamp(limit, DEFAULT_RECENT_LIMIT, 1, MAX_RECENT_LIMIT)
    rows = await NotificationRepository(session).query(
        [NotificationRow.user_id == user_id], order_by(SortBy.NEWEST), limit=limit
    )
    return [Notification.model_validate(r) for r in rows]
