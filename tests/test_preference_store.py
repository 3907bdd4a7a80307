"""Lazy preference creation against a shared file-backed SQLite store."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from herald.db.base import Base
import herald.db.models  # noqa: F401
from herald.db.models.preference import NotificationPreferenceRow
from herald.models.preference import NotificationPreferenceUpdate
from herald.repositories.preference_repo import PreferenceRepository
from herald.services.preferences import get_preferences, upsert_preferences


@pytest.fixture
async def file_sessions(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'prefs.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def stale_first_read(monkeypatch):
    """The first lookup misses, as if it ran before another request committed."""
    real_get = PreferenceRepository.get
    calls = []

    async def get(self, user_id):
        calls.append(user_id)
        if len(calls) == 1:
            return None
        return await real_get(self, user_id)

    monkeypatch.setattr(PreferenceRepository, "get", get)
    return calls


async def _record_count(factory, user_id):
    async with factory() as session:
        stmt = select(func.count()).select_from(NotificationPreferenceRow).where(
            NotificationPreferenceRow.user_id == user_id
        )
        return await session.scalar(stmt)


async def test_get_or_create_returns_existing_record(file_sessions):
    async with file_sessions() as first:
        row, created = await PreferenceRepository(first).get_or_create(
            "usr_new", email_types=["security"], push_types=[], in_app_types=["all"]
        )
        assert created is True
        await first.commit()

    async with file_sessions() as second:
        row, created = await PreferenceRepository(second).get_or_create(
            "usr_new", email_types=["welcome"], push_types=[], in_app_types=["all"]
        )
        assert created is False
        assert row.email_types == ["security"]


async def test_stale_first_read_returns_committed_record(file_sessions, stale_first_read):
    async with file_sessions() as first:
        await upsert_preferences(first, "usr_new", NotificationPreferenceUpdate(marketing_enabled=True))
        await first.commit()
    stale_first_read.clear()

    async with file_sessions() as second:
        prefs = await get_preferences(second, "usr_new")
        await second.commit()

    assert prefs.marketing_enabled is True
    assert await _record_count(file_sessions, "usr_new") == 1


async def test_racing_upsert_merges_onto_committed_record(file_sessions, stale_first_read):
    async with file_sessions() as first:
        await get_preferences(first, "usr_new")
        await upsert_preferences(first, "usr_new", NotificationPreferenceUpdate(push_enabled=False))
        await first.commit()
    stale_first_read.clear()

    async with file_sessions() as second:
        prefs = await upsert_preferences(second, "usr_new", NotificationPreferenceUpdate(digest_enabled=True))
        await second.commit()

    assert prefs.push_enabled is False
    assert prefs.digest_enabled is True
    assert await _record_count(file_sessions, "usr_new") == 1
