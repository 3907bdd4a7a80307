"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from herald import __version__
from herald.config import settings
from herald.db.engine import create_db_engine, create_session_factory
from herald.events.dispatcher import create_dispatcher
from herald.logging_config import configure_logging
from herald.services.delivery.notifier import Notifier

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no migrations)
    if "sqlite" in db_url:
        from herald.db.base import Base
        import herald.db.models  # noqa: F401 (register all ORM models)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)
    app.state.notifier = Notifier(create_dispatcher())

    # Start digest ticker
    from herald.workers.scheduler import run_digest_ticker
    ticker_task = app.state.digest_ticker = asyncio.create_task(run_digest_ticker(app))

    logger.info("Herald API started (db=%s, transport=%s)",
                "sqlite" if "sqlite" in db_url else "postgresql", settings.transport)
    yield

    # Shutdown
    ticker_task.cancel()
    try:
        await ticker_task
    except asyncio.CancelledError:
        pass
    await app.state.notifier.aclose()
    await engine.dispose()
    logger.info("Herald API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Herald API",
        version=__version__,
        description="Notification preferences, delivery gating, digests and feed.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Order matters: last added = first executed
    from herald.api.middleware.auth import AuthMiddleware
    from herald.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from herald.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from herald.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
