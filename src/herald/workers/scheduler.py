"""Background ticker that flushes due digest buckets."""

import asyncio
import logging

from herald.config import settings
from herald.logging_config import job_context

logger = logging.getLogger(__name__)


async def run_digest_ticker(app, interval: float | None = None) -> None:
    """Call the app Notifier's ``tick`` every ``interval`` seconds until cancelled.

    A failing tick is logged and the loop keeps going; buckets that were not
    flushed stay due and are picked up on the next tick.
    """
    interval = interval or settings.digest_tick_seconds
    logger.info("Digest ticker started (interval=%ss)", interval)

    while True:
        try:
            await asyncio.sleep(interval)

            notifier = getattr(app.state, "notifier", None)
            if notifier is None:
                continue

            with job_context("digest_ticker"):
                payloads = await notifier.tick()
                if payloads:
                    delivered = sum(len(p.notification_ids) for p in payloads)
                    logger.info("Handed off %d digests (%d notifications)", len(payloads), delivered)

        except asyncio.CancelledError:
            logger.info("Digest ticker stopped")
            break
        except Exception as exc:
            logger.exception("Digest tick failed: %s", exc)
