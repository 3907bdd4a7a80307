"""CSV export of a filtered feed."""

import csv
import io
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from herald.config import settings
from herald.db.base import as_utc
from herald.models.feed import FeedFilter
from herald.repositories.notification_repo import NotificationRepository
from herald.services.feed.cursor import order_by
from herald.services.feed.query import build_conditions, validate_filter

CSV_HEADER = ["ID", "Message", "Type", "Status", "Created At", "Updated At", "Link"]


@dataclass(frozen=True)
class FeedExport:
    csv: str
    filename: str
    count: int


async def export_csv(
    session: AsyncSession,
    user_id: str,
    feed_filter: FeedFilter,
    now: datetime,
) -> FeedExport:
    """Render every matching notification (up to export_max_rows) as CSV."""
    feed_filter = validate_filter(feed_filter)
    rows = await NotificationRepository(session).query(
        build_conditions(user_id, feed_filter),
        order_by(feed_filter.sort_by),
        limit=settings.export_max_rows,
    )

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row.notification_id,
            row.message,
            row.type,
            "Read" if row.read else "Unread",
            as_utc(row.created_at).isoformat(),
            as_utc(row.updated_at).isoformat() if row.updated_at else "",
            row.link or "",
        ])

    return FeedExport(
        csv=buf.getvalue(),
        filename=f"notifications-{user_id}-{now.date().isoformat()}.csv",
        count=len(rows),
    )
