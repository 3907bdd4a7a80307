"""Transport hand-off: the boundary to email, push and in-app delivery providers.

Dispatchers raise TransportError on failure; the Notifier and the digest ticker
log those failures and never roll back a gating decision.
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

import httpx

from herald.config import settings
from herald.errors.exceptions import TransportError
from herald.models.enums import Channel
from herald.services.id_generator import DELIVERY_PREFIX, generate_id

logger = logging.getLogger(__name__)


class TransportDispatcher:
    """Interface to the external transport layer."""

    async def send(self, channel: Channel, user_id: str, notification_id: str) -> None:
        raise NotImplementedError

    async def send_digest(self, channel: Channel, user_id: str, notification_ids: list[str]) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class LoggingDispatcher(TransportDispatcher):
    """Records each hand-off in the log. Default when no transport is configured."""

    async def send(self, channel: Channel, user_id: str, notification_id: str) -> None:
        logger.info("Dispatched %s to %s via %s", notification_id, user_id, channel)

    async def send_digest(self, channel: Channel, user_id: str, notification_ids: list[str]) -> None:
        logger.info(
            "Dispatched %s digest of %d notifications to %s",
            channel, len(notification_ids), user_id,
        )


def _sign_payload(body: bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature over the raw JSON body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class WebhookDispatcher(TransportDispatcher):
    """Posts signed delivery requests to a transport gateway over HTTP."""

    max_retries = 3

    def __init__(self, url: str, secret: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.url = url
        self.secret = secret
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def build_body(self, kind: str, channel: Channel, user_id: str, notification_ids: list[str]) -> dict:
        return {
            "event_id": generate_id(DELIVERY_PREFIX),
            "kind": kind,
            "channel": str(channel),
            "user_id": user_id,
            "notification_ids": notification_ids,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
        }

    async def _post(self, body: dict, channel: Channel) -> None:
        raw = json.dumps(body, separators=(",", ":")).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Herald-Signature": _sign_payload(raw, self.secret),
            "X-Herald-Channel": str(channel),
        }

        last_error = "max retries exceeded"
        for attempt in range(self.max_retries):
            try:
                resp = await self._client.post(self.url, content=raw, headers=headers)
            except httpx.HTTPError as exc:
                last_error = str(exc)
                continue
            if resp.status_code < 300:
                return
            last_error = f"HTTP {resp.status_code}"
            if resp.status_code < 500:
                break

        raise TransportError(str(channel), f"Delivery to {self.url} failed: {last_error}")

    async def send(self, channel: Channel, user_id: str, notification_id: str) -> None:
        await self._post(self.build_body("single", channel, user_id, [notification_id]), channel)

    async def send_digest(self, channel: Channel, user_id: str, notification_ids: list[str]) -> None:
        await self._post(self.build_body("digest", channel, user_id, list(notification_ids)), channel)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_dispatcher() -> TransportDispatcher:
    """Build the dispatcher selected by configuration."""
    if settings.transport == "webhook":
        if not settings.transport_webhook_url:
            raise ValueError("HERALD_TRANSPORT_WEBHOOK_URL is required for the webhook transport")
        return WebhookDispatcher(
            settings.transport_webhook_url,
            settings.transport_webhook_secret,
            timeout=settings.transport_timeout_seconds,
        )
    return LoggingDispatcher()
