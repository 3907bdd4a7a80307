"""Chunked bulk mutation of notifications with partial-failure reporting.

Ids are split into chunks of ``batch_size`` and processed one chunk at a time.
Each chunk is a single UPDATE/DELETE scoped to the owning user and committed on
its own, so a failing chunk is rolled back and reported without undoing or
blocking the others. Chunks are never run in parallel: the failed list stays in
input order and a retry of exactly those ids behaves predictably.
"""

import asyncio
import logging
from collections.abc import Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herald.config import settings
from herald.errors.exceptions import NotFoundError
from herald.models.bulk import AffectedResult, BulkResult
from herald.models.enums import BulkOperation
from herald.repositories.notification_repo import NotificationRepository
from herald.services.clamp import clamp
from herald.services.delivery.digest import DigestBuffer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
MIN_BATCH_SIZE = 10
MAX_BATCH_SIZE = 500


def chunked(ids: Sequence[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


class BulkMutationEngine:
    def __init__(
        self,
        session: AsyncSession,
        digest: DigestBuffer | None = None,
        timeout: float | None = None,
    ):
        self.session = session
        self.repo = NotificationRepository(session)
        self.digest = digest
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _apply(self, user_id: str, operation: BulkOperation, ids: list[str]) -> int:
        if operation == BulkOperation.MARK_READ:
            return await self.repo.set_read_many(user_id, ids, True)
        if operation == BulkOperation.MARK_UNREAD:
            return await self.repo.set_read_many(user_id, ids, False)
        return await self.repo.delete_many(user_id, ids)

    async def _run_chunk(self, user_id: str, operation: BulkOperation, chunk: list[str]) -> list[str]:
        """Apply one chunk and commit; returns the ids that were applied."""
        existing = await self.repo.existing_ids(user_id, chunk)
        applied = [i for i in chunk if i in existing]
        if applied:
            await self._apply(user_id, operation, applied)
        await self.session.commit()
        return applied

    async def run(
        self,
        user_id: str,
        operation: BulkOperation,
        ids: Sequence[str],
        batch_size: int | None = None,
    ) -> BulkResult:
        batch_size = clamp(batch_size, DEFAULT_BATCH_SIZE, MIN_BATCH_SIZE, MAX_BATCH_SIZE)
        unique_ids = list(dict.fromkeys(ids))
        chunks = list(chunked(unique_ids, batch_size))

        result = BulkResult()
        deleted: list[str] = []
        for index, chunk in enumerate(chunks):
            try:
                applied = await asyncio.wait_for(
                    self._run_chunk(user_id, operation, chunk), timeout=self.timeout
                )
            except TimeoutError:
                await self.session.rollback()
                # In-flight and not-yet-started chunks are unconfirmed
                remaining = [i for c in chunks[index:] for i in c]
                result.failed.extend(remaining)
                logger.warning(
                    "Bulk %s for %s timed out at chunk %d/%d; %d ids unconfirmed",
                    operation, user_id, index + 1, len(chunks), len(remaining),
                )
                break
            except SQLAlchemyError as exc:
                await self.session.rollback()
                result.failed.extend(chunk)
                logger.warning(
                    "Bulk %s chunk %d/%d failed for %s: %s",
                    operation, index + 1, len(chunks), user_id, exc,
                )
                continue

            applied_set = set(applied)
            result.succeeded += len(applied)
            result.failed.extend(i for i in chunk if i not in applied_set)
            if operation == BulkOperation.DELETE:
                deleted.extend(applied)

        if deleted and self.digest is not None:
            await self.digest.discard(deleted)

        logger.info(
            "Bulk %s for %s: %d succeeded, %d failed (%d chunks of %d)",
            operation, user_id, result.succeeded, len(result.failed), len(chunks), batch_size,
        )
        return result

    async def run_for_selection(
        self,
        user_id: str,
        operation: BulkOperation,
        read: bool | None = None,
        type: str | None = None,
        batch_size: int | None = None,
    ) -> AffectedResult:
        """Run the chunked pipeline over a server-computed id set owned by user_id."""
        ids = await self.repo.list_ids(user_id, read=read, type=type)
        result = await self.run(user_id, operation, ids, batch_size)
        return AffectedResult(affected_count=result.succeeded, failed=result.failed)

    # --- Convenience operations ---

    async def mark_all_read(self, user_id: str) -> AffectedResult:
        return await self.run_for_selection(user_id, BulkOperation.MARK_READ, read=False)

    async def delete_all(self, user_id: str) -> AffectedResult:
        return await self.run_for_selection(user_id, BulkOperation.DELETE)

    async def delete_read(self, user_id: str) -> AffectedResult:
        return await self.run_for_selection(user_id, BulkOperation.DELETE, read=True)

    async def delete_by_type(self, user_id: str, notification_type: str) -> AffectedResult:
        return await self.run_for_selection(user_id, BulkOperation.DELETE, type=notification_type)

    # --- Single-notification mutations ---

    async def set_read(self, user_id: str, notification_id: str, read: bool):
        row = await self.repo.get_owned(user_id, notification_id)
        if not row:
            raise NotFoundError("Notification", notification_id)
        await self.repo.update(row, read=read)
        await self.session.commit()
        return row

    async def delete_one(self, user_id: str, notification_id: str) -> None:
        row = await self.repo.get_owned(user_id, notification_id)
        if not row:
            raise NotFoundError("Notification", notification_id)
        await self.repo.delete(row)
        await self.session.commit()
        if self.digest is not None:
            await self.digest.discard([notification_id])
