"""Notification feed, mutation, analytics and producer routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from herald.dependencies import NotifierDep, RequireProducer, UserId, get_db
from herald.models.bulk import BulkRequest
from herald.models.enums import BulkOperation, ReadStatus, SortBy
from herald.models.feed import FeedFilter
from herald.models.notification import Notification, NotificationCreate
from herald.services.analytics import get_counts, get_stats, get_unread_count
from herald.services.bulk import BulkMutationEngine
from herald.services.delivery.notifier import create_notification
from herald.services.feed.export import export_csv
from herald.services.feed.query import get_recent, query_feed
from herald.services.preferences import resolve_preferences

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _feed_filter(
    search: str | None = Query(None, max_length=200),
    types: list[str] | None = Query(None),
    status: ReadStatus = Query(ReadStatus.ALL),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    sort_by: SortBy = Query(SortBy.NEWEST),
) -> FeedFilter:
    return FeedFilter(
        search=search,
        types=types,
        status=status,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
    )


# --- Producer ---


@router.post("", status_code=201, dependencies=[RequireProducer])
async def publish_notification(
    body: NotificationCreate,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Persist a notification for body.user_id and route it through the delivery gate."""
    row, decision = await create_notification(db, body)
    await db.commit()
    await notifier.dispatch(decision)
    return {
        "notification": Notification.model_validate(row).model_dump(mode="json"),
        "decision": decision.model_dump(mode="json"),
    }


# --- Feed ---


@router.get("")
async def list_notifications(
    user_id: UserId,
    feed_filter: FeedFilter = Depends(_feed_filter),
    cursor: str | None = Query(None),
    limit: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    page = await query_feed(db, user_id, feed_filter, cursor=cursor, limit=limit)
    return page.model_dump(mode="json")


@router.get("/recent")
async def recent_notifications(
    user_id: UserId,
    limit: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    items = await get_recent(db, user_id, limit)
    return [n.model_dump(mode="json") for n in items]


@router.get("/unread-count")
async def unread_count(
    user_id: UserId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    return {"unread": await get_unread_count(db, user_id)}


@router.get("/counts")
async def notification_counts(
    user_id: UserId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    counts = await get_counts(db, user_id)
    return counts.model_dump()


@router.get("/stats")
async def notification_stats(
    user_id: UserId,
    days: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    prefs = await resolve_preferences(db, user_id)
    report = await get_stats(
        db, user_id, datetime.now(timezone.utc), days=days, tz_name=prefs.timezone
    )
    return report.model_dump(mode="json")


@router.get("/export")
async def export_notifications(
    user_id: UserId,
    feed_filter: FeedFilter = Depends(_feed_filter),
    db: AsyncSession = Depends(get_db),
) -> Response:
    export = await export_csv(db, user_id, feed_filter, datetime.now(timezone.utc))
    return Response(
        content=export.csv,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export.filename}"',
            "X-Export-Count": str(export.count),
        },
    )


# --- Bulk mutations ---


@router.post("/bulk/read")
async def bulk_mark_read(
    body: BulkRequest,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    engine = BulkMutationEngine(db, notifier.digest)
    result = await engine.run(user_id, BulkOperation.MARK_READ, body.ids, body.batch_size)
    return result.model_dump()


@router.post("/bulk/unread")
async def bulk_mark_unread(
    body: BulkRequest,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    engine = BulkMutationEngine(db, notifier.digest)
    result = await engine.run(user_id, BulkOperation.MARK_UNREAD, body.ids, body.batch_size)
    return result.model_dump()


@router.post("/bulk/delete")
async def bulk_delete(
    body: BulkRequest,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    engine = BulkMutationEngine(db, notifier.digest)
    result = await engine.run(user_id, BulkOperation.DELETE, body.ids, body.batch_size)
    return result.model_dump()


@router.post("/read-all")
async def mark_all_read(
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await BulkMutationEngine(db, notifier.digest).mark_all_read(user_id)
    return result.model_dump()


@router.delete("")
async def delete_all(
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await BulkMutationEngine(db, notifier.digest).delete_all(user_id)
    return result.model_dump()


@router.delete("/read")
async def delete_read(
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await BulkMutationEngine(db, notifier.digest).delete_read(user_id)
    return result.model_dump()


@router.delete("/types/{notification_type}")
async def delete_by_type(
    notification_type: str,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await BulkMutationEngine(db, notifier.digest).delete_by_type(user_id, notification_type)
    return result.model_dump()


# --- Single notification ---


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await BulkMutationEngine(db, notifier.digest).set_read(user_id, notification_id, True)
    return {"notification_id": notification_id, "read": True}


@router.post("/{notification_id}/unread")
async def mark_unread(
    notification_id: str,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await BulkMutationEngine(db, notifier.digest).set_read(user_id, notification_id, False)
    return {"notification_id": notification_id, "read": False}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: UserId,
    notifier: NotifierDep,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await BulkMutationEngine(db, notifier.digest).delete_one(user_id, notification_id)
    return {"notification_id": notification_id, "deleted": True}
