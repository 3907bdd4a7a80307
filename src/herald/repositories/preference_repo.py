"""Notification preference repository."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from herald.db.models.preference import NotificationPreferenceRow
from herald.repositories.base import BaseRepository

_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class PreferenceRepository(BaseRepository[NotificationPreferenceRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, NotificationPreferenceRow)

    async def get(self, user_id: str) -> NotificationPreferenceRow | None:
        return await self.get_by_id("user_id", user_id)

    async def get_or_create(self, user_id: str, **values) -> tuple[NotificationPreferenceRow, bool]:
        """Insert the user's record unless one exists, then return the stored row.

        The insert is ``ON CONFLICT DO NOTHING`` on the primary key, so two first
        requests racing for the same user both end up reading the one record.
        """
        dialect = self.session.get_bind().dialect.name
        stmt = (
            _INSERTS[dialect](NotificationPreferenceRow)
            .values(user_id=user_id, **values)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        result = await self.session.execute(stmt)
        row = await self.get(user_id)
        return row, result.rowcount == 1

    async def delete_for_user(self, user_id: str) -> bool:
        row = await self.get(user_id)
        if not row:
            return False
        await self.delete(row)
        return True
