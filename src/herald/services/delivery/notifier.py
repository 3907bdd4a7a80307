"""Producer entry point and asynchronous hand-off to the transport layer.

Gating never waits on a provider: deliver-now channels are sent from background
tasks, digest channels go to the DigestBuffer, and transport failures are logged
without touching the stored notification or the decision.
"""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from herald.db.models.notification import NotificationRow
from herald.errors.exceptions import TransportError
from herald.events.dispatcher import TransportDispatcher
from herald.models.delivery import DeliveryDecision
from herald.models.enums import Channel
from herald.models.notification import NotificationCreate
from herald.repositories.notification_repo import NotificationRepository
from herald.services.delivery.digest import DigestBuffer, DigestEntry, DigestPayload
from herald.services.delivery.gate import decide
from herald.services.id_generator import new_notification_id
from herald.services.preferences import resolve_preferences

logger = logging.getLogger(__name__)


async def create_notification(
    session: AsyncSession,
    body: NotificationCreate,
    now: datetime | None = None,
) -> tuple[NotificationRow, DeliveryDecision]:
    """Persist a notification and gate it against the owner's preferences."""
    now = now or datetime.now(timezone.utc)
    row = await NotificationRepository(session).create(
        notification_id=new_notification_id(),
        user_id=body.user_id,
        type=body.type,
        message=body.message,
        link=body.link,
        read=False,
        created_at=now,
        updated_at=now,
    )
    prefs = await resolve_preferences(session, body.user_id)
    return row, decide(row, prefs, now)


class Notifier:
    def __init__(self, dispatcher: TransportDispatcher, digest: DigestBuffer | None = None):
        self.dispatcher = dispatcher
        self.digest = digest or DigestBuffer()
        self._tasks: set[asyncio.Task] = set()

    async def dispatch(self, decision: DeliveryDecision, now: datetime | None = None) -> None:
        """Act on a gate decision: buffer digest channels, hand off the rest."""
        now = now or datetime.now(timezone.utc)
        for channel_decision in decision.enqueued:
            await self.digest.enqueue(DigestEntry(
                user_id=decision.user_id,
                channel=channel_decision.channel,
                notification_id=decision.notification_id,
                enqueued_at=now,
                until=channel_decision.until,
            ))
        for channel in decision.deliver_now:
            self.hand_off(channel, decision.user_id, decision.notification_id)
        if decision.suppressed:
            logger.info(
                "Suppressed %s on %s (%s)",
                decision.notification_id, ",".join(decision.suppressed), decision.type,
            )

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def hand_off(self, channel: Channel, user_id: str, notification_id: str) -> asyncio.Task:
        return self._track(self._send(channel, user_id, notification_id))

    def hand_off_digest(self, payload: DigestPayload) -> asyncio.Task:
        return self._track(self.deliver_digest(payload))

    async def _send(self, channel: Channel, user_id: str, notification_id: str) -> None:
        try:
            await self.dispatcher.send(channel, user_id, notification_id)
        except TransportError as exc:
            logger.warning("Transport failed for %s on %s: %s", notification_id, channel, exc.message)
        except Exception:
            logger.exception("Unexpected transport error for %s on %s", notification_id, channel)

    async def deliver_digest(self, payload: DigestPayload) -> bool:
        """Send one flushed digest; failures are logged and the payload is not retried."""
        try:
            await self.dispatcher.send_digest(payload.channel, payload.user_id, list(payload.notification_ids))
        except TransportError as exc:
            logger.warning(
                "Digest delivery failed for %s on %s (%d notifications): %s",
                payload.user_id, payload.channel, len(payload.notification_ids), exc.message,
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected digest transport error for %s on %s (%d notifications)",
                payload.user_id, payload.channel, len(payload.notification_ids),
            )
            return False
        return True

    async def tick(self, now: datetime | None = None) -> list[DigestPayload]:
        """Flush due digest buckets and hand each payload off to its own task.

        A slow or failing provider for one bucket does not hold up the others;
        ``drain`` waits for the deliveries.
        """
        now = now or datetime.now(timezone.utc)
        payloads = await self.digest.flush_due(now)
        for payload in payloads:
            self.hand_off_digest(payload)
        return payloads

    async def drain(self) -> None:
        """Wait for in-flight hand-offs (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.dispatcher.aclose()
