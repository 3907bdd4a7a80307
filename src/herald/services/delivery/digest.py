"""In-process digest buffer keyed by (user_id, channel).

Enqueue and flush of the same bucket are serialized by a per-key lock, so a
flush always takes a consistent snapshot and an entry enqueued concurrently
lands either in that snapshot or in the next one, never nowhere.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from herald.models.enums import Channel

logger = logging.getLogger(__name__)

BucketKey = tuple[str, Channel]


@dataclass(frozen=True)
class DigestEntry:
    user_id: str
    channel: Channel
    notification_id: str
    enqueued_at: datetime
    until: datetime


@dataclass(frozen=True)
class DigestPayload:
    """One aggregated digest delivery; ids are ordered oldest first."""

    user_id: str
    channel: Channel
    notification_ids: tuple[str, ...]
    flushed_at: datetime


@dataclass
class _Bucket:
    entries: list[DigestEntry] = field(default_factory=list)
    due_at: datetime | None = None


class DigestBuffer:
    def __init__(self) -> None:
        self._buckets: dict[BucketKey, _Bucket] = {}
        self._locks: dict[BucketKey, asyncio.Lock] = {}

    def _lock(self, key: BucketKey) -> asyncio.Lock:
        # Locks outlive their buckets; dropping one while a waiter holds a
        # reference would let two coroutines own the same key.
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def enqueue(self, entry: DigestEntry) -> bool:
        """Add an entry; returns False if the notification is already buffered."""
        key = (entry.user_id, entry.channel)
        async with self._lock(key):
            bucket = self._buckets.setdefault(key, _Bucket())
            if any(e.notification_id == entry.notification_id for e in bucket.entries):
                return False
            bucket.entries.append(entry)
            if bucket.due_at is None or entry.until < bucket.due_at:
                bucket.due_at = entry.until
        logger.debug(
            "Buffered %s for %s/%s (due %s)",
            entry.notification_id, entry.user_id, entry.channel, bucket.due_at.isoformat(),
        )
        return True

    async def flush_bucket(
        self,
        user_id: str,
        channel: Channel,
        now: datetime,
        force: bool = False,
    ) -> DigestPayload | None:
        """Snapshot and remove the bucket's due entries (all of them with force).

        Entries whose own boundary is still ahead stay buffered for a later flush.
        """
        key = (user_id, channel)
        async with self._lock(key):
            bucket = self._buckets.get(key)
            if bucket is None or not bucket.entries:
                self._buckets.pop(key, None)
                return None
            if not force and bucket.due_at > now:
                return None
            if force:
                due, kept = bucket.entries, []
            else:
                due = [e for e in bucket.entries if e.until <= now]
                kept = [e for e in bucket.entries if e.until > now]
            if kept:
                bucket.entries = kept
                bucket.due_at = min(e.until for e in kept)
            else:
                del self._buckets[key]

        entries = sorted(due, key=lambda e: e.enqueued_at)
        return DigestPayload(
            user_id=user_id,
            channel=channel,
            notification_ids=tuple(e.notification_id for e in entries),
            flushed_at=now,
        )

    async def flush_due(self, now: datetime) -> list[DigestPayload]:
        """Flush every bucket whose boundary is at or before ``now``."""
        payloads = []
        for user_id, channel in list(self._buckets):
            payload = await self.flush_bucket(user_id, channel, now)
            if payload is not None:
                payloads.append(payload)
        if payloads:
            logger.info("Flushed %d digest buckets", len(payloads))
        return payloads

    async def discard(self, notification_ids) -> int:
        """Drop buffered entries whose source notifications were deleted."""
        targets = set(notification_ids)
        if not targets:
            return 0
        removed = 0
        for key in list(self._buckets):
            async with self._lock(key):
                bucket = self._buckets.get(key)
                if bucket is None:
                    continue
                kept = [e for e in bucket.entries if e.notification_id not in targets]
                removed += len(bucket.entries) - len(kept)
                if kept:
                    bucket.entries = kept
                    bucket.due_at = min(e.until for e in kept)
                else:
                    del self._buckets[key]
        return removed

    def pending(self, user_id: str) -> dict[Channel, list[str]]:
        """Buffered notification ids per channel for one user."""
        return {
            channel: [e.notification_id for e in bucket.entries]
            for (uid, channel), bucket in self._buckets.items()
            if uid == user_id and bucket.entries
        }

    def bucket_count(self) -> int:
        return len(self._buckets)
