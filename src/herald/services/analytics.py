"""Notification analytics: totals, read rate, type distribution and daily activity."""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from herald.db.base import as_utc
from herald.models.enums import NotificationType
from herald.models.notification import NotificationCounts
from herald.models.stats import DayCount, StatsReport
from herald.repositories.notification_repo import NotificationRepository
from herald.services.clamp import clamp
from herald.services.delivery.quiet_hours import load_zone

DEFAULT_DAYS = 30
MAX_DAYS = 365


async def get_stats(
    session: AsyncSession,
    user_id: str,
    now: datetime,
    days: int | None = None,
    tz_name: str = "UTC",
) -> StatsReport:
    """Aggregate the last ``days`` days of a user's notifications.

    ``by_day`` covers every calendar day of the window (in ``tz_name``), oldest
    first, with zero counts for quiet days.
    """
    days = clamp(days, DEFAULT_DAYS, 1, MAX_DAYS)
    since = now - timedelta(days=days)
    repo = NotificationRepository(session)

    total = await repo.count(user_id, since=since)
    unread = await repo.count(user_id, read=False, since=since)
    by_type = await repo.count_by_type(user_id, since=since)

    tz = load_zone(tz_name)
    first_day = since.astimezone(tz).date()
    last_day = now.astimezone(tz).date()
    per_day = {first_day + timedelta(days=i): 0 for i in range((last_day - first_day).days + 1)}
    for created_at in await repo.list_created_since(user_id, since):
        day = as_utc(created_at).astimezone(tz).date()
        if day in per_day:
            per_day[day] += 1

    read = total - unread
    return StatsReport(
        days=days,
        total=total,
        unread=unread,
        read=read,
        read_rate=round(read / total * 100, 2) if total else 0.0,
        by_type=dict(sorted(by_type.items())),
        by_day=[DayCount(date=day, count=count) for day, count in per_day.items()],
    )


async def get_unread_count(session: AsyncSession, user_id: str) -> int:
    return await NotificationRepository(session).count(user_id, read=False)


async def get_counts(session: AsyncSession, user_id: str) -> NotificationCounts:
    """Dashboard badge counts."""
    repo = NotificationRepository(session)
    return NotificationCounts(
        total=await repo.count(user_id),
        unread=await repo.count(user_id, read=False),
        urgent=await repo.count(user_id, read=False, type=NotificationType.URGENT.value),
    )
