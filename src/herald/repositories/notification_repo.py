"""Notification repository."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import ColumnElement, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from herald.db.base import utcnow
from herald.db.models.notification import NotificationRow
from herald.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[NotificationRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, NotificationRow)

    async def get(self, notification_id: str) -> NotificationRow | None:
        return await self.get_by_id("notification_id", notification_id)

    async def get_owned(self, user_id: str, notification_id: str) -> NotificationRow | None:
        """Fetch a notification only if it belongs to user_id."""
        stmt = select(NotificationRow).where(
            NotificationRow.notification_id == notification_id,
            NotificationRow.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def query(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[ColumnElement],
        limit: int | None = None,
    ) -> list[NotificationRow]:
        stmt = select(NotificationRow).where(*conditions).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def existing_ids(self, user_id: str, ids: Sequence[str]) -> set[str]:
        """Return the subset of ids that exist and belong to user_id."""
        if not ids:
            return set()
        stmt = select(NotificationRow.notification_id).where(
            NotificationRow.user_id == user_id,
            NotificationRow.notification_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_ids(
        self,
        user_id: str,
        read: bool | None = None,
        type: str | None = None,
    ) -> list[str]:
        stmt = select(NotificationRow.notification_id).where(NotificationRow.user_id == user_id)
        if read is not None:
            stmt = stmt.where(NotificationRow.read == read)
        if type is not None:
            stmt = stmt.where(NotificationRow.type == type)
        stmt = stmt.order_by(NotificationRow.created_at, NotificationRow.notification_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_read_many(self, user_id: str, ids: Sequence[str], read: bool) -> int:
        stmt = (
            update(NotificationRow)
            .where(
                NotificationRow.user_id == user_id,
                NotificationRow.notification_id.in_(ids),
            )
            .values(read=read, updated_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_many(self, user_id: str, ids: Sequence[str]) -> int:
        stmt = delete(NotificationRow).where(
            NotificationRow.user_id == user_id,
            NotificationRow.notification_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def count(
        self,
        user_id: str,
        read: bool | None = None,
        type: str | None = None,
        since: datetime | None = None,
    ) -> int:
        conditions = [NotificationRow.user_id == user_id]
        if read is not None:
            conditions.append(NotificationRow.read == read)
        if type is not None:
            conditions.append(NotificationRow.type == type)
        if since is not None:
            conditions.append(NotificationRow.created_at >= since)
        return await self.count_where(conditions)

    async def count_by_type(self, user_id: str, since: datetime | None = None) -> dict[str, int]:
        stmt = select(NotificationRow.type, func.count()).where(NotificationRow.user_id == user_id)
        if since is not None:
            stmt = stmt.where(NotificationRow.created_at >= since)
        stmt = stmt.group_by(NotificationRow.type)
        result = await self.session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def list_created_since(self, user_id: str, since: datetime) -> list[datetime]:
        """Creation timestamps in the window, for day bucketing in the caller's timezone."""
        stmt = select(NotificationRow.created_at).where(
            NotificationRow.user_id == user_id,
            NotificationRow.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
