"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from herald.config import settings
from herald.db.base import Base
# Import all models to register with Base.metadata
import herald.db.models  # noqa: F401
from herald.db.models.notification import NotificationRow
from herald.errors.exceptions import TransportError
from herald.events.dispatcher import TransportDispatcher
from herald.services.delivery.notifier import Notifier
from herald.services.id_generator import new_notification_id

BASE_TIME = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


class RecordingDispatcher(TransportDispatcher):
    """Captures hand-offs instead of talking to a provider."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []
        self.digests: list[tuple[str, str, list[str]]] = []

    async def send(self, channel, user_id, notification_id):
        if self.fail:
            raise TransportError(str(channel), "provider unavailable")
        self.sent.append((str(channel), user_id, notification_id))

    async def send_digest(self, channel, user_id, notification_ids):
        if self.fail:
            raise TransportError(str(channel), "provider unavailable")
        self.digests.append((str(channel), user_id, list(notification_ids)))


def make_token(sub: str, roles: list[str] | None = None, **claims) -> str:
    payload = {
        "sub": sub,
        "roles": roles or [],
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_for(sub: str, roles: list[str] | None = None) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, roles)}"}


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def notifier(dispatcher):
    return Notifier(dispatcher)


@pytest.fixture
def app(db_engine, session_factory, notifier):
    """Create a test application instance with in-memory DB."""
    from herald.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.notifier = notifier
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def alice_headers():
    return auth_for("usr_alice")


@pytest.fixture
def producer_headers():
    return auth_for("svc_events", roles=["service"])


@pytest.fixture
def seed(session_factory):
    """Insert notifications directly; returns the created rows in insertion order."""

    async def _seed(
        user_id: str = "usr_alice",
        count: int = 1,
        type: str = "system",
        start: datetime = BASE_TIME,
        step: timedelta = timedelta(minutes=1),
        message: str = "Notification {i}",
        read: bool = False,
    ) -> list[NotificationRow]:
        rows = []
        async with session_factory() as session:
            for i in range(count):
                created = start + step * i
                row = NotificationRow(
                    notification_id=new_notification_id(),
                    user_id=user_id,
                    type=type,
                    message=message.format(i=i),
                    link=None,
                    read=read,
                    created_at=created,
                    updated_at=created,
                )
                session.add(row)
                rows.append(row)
            await session.commit()
        return rows

    return _seed
