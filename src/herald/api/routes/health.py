"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from herald import __version__

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "herald-api", "version": __version__}


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


def _ticker_state(request: Request) -> str:
    task = getattr(request.app.state, "digest_ticker", None)
    if task is None:
        return "not_started"
    return "stopped" if task.done() else "running"


@router.get("/health/ready")
async def readiness(request: Request):
    """503 when the database is unreachable or the digest ticker has died."""
    checks: dict[str, str] = {}
    ready = True

    try:
        async with request.app.state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        logger.warning("Readiness database check failed: %s", exc)
        checks["database"] = f"error: {exc}"
        ready = False

    checks["digest_ticker"] = _ticker_state(request)
    if checks["digest_ticker"] == "stopped":
        ready = False

    notifier = getattr(request.app.state, "notifier", None)
    checks["digest_buckets"] = str(notifier.digest.bucket_count()) if notifier else "disabled"

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
