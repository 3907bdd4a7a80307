"""Preference resolution: defaults, partial upsert and quiet-hours normalization."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from herald.config import settings
from herald.db.models.preference import NotificationPreferenceRow
from herald.errors.exceptions import ValidationError
from herald.models.enums import ALL_TYPES, EmailFrequency
from herald.models.preference import NotificationPreference, NotificationPreferenceUpdate
from herald.repositories.preference_repo import PreferenceRepository
from herald.services.delivery.quiet_hours import load_zone, parse_hhmm

logger = logging.getLogger(__name__)

_FIELDS = (
    "email_enabled",
    "email_types",
    "push_enabled",
    "push_types",
    "in_app_enabled",
    "in_app_types",
    "email_frequency",
    "digest_enabled",
    "quiet_hours_enabled",
    "quiet_hours_start",
    "quiet_hours_end",
    "marketing_enabled",
    "promotional_enabled",
    "timezone",
)
_NULLABLE = {"quiet_hours_start", "quiet_hours_end"}


def default_preferences(user_id: str) -> NotificationPreference:
    """The single source of default delivery preferences."""
    return NotificationPreference(
        user_id=user_id,
        email_enabled=True,
        email_types=["welcome", "security", "system"],
        push_enabled=True,
        push_types=["urgent", "mentions", "system"],
        in_app_enabled=True,
        in_app_types=[ALL_TYPES],
        email_frequency=EmailFrequency.IMMEDIATE,
        digest_enabled=False,
        quiet_hours_enabled=False,
        quiet_hours_start=None,
        quiet_hours_end=None,
        marketing_enabled=False,
        promotional_enabled=False,
        timezone=settings.default_timezone,
    )


def _dedupe(types: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for t in types:
        t = t.strip()
        if t:
            seen.setdefault(t, None)
    return list(seen)


def normalize_preference(values: dict) -> dict:
    """Validate a merged preference dict and derive the cached quiet-hours window.

    Raises ValidationError for malformed HH:mm strings, half-configured quiet
    hours and unknown timezones.
    """
    values = dict(values)
    values["email_frequency"] = str(values["email_frequency"])
    for key in ("email_types", "push_types", "in_app_types"):
        values[key] = _dedupe(values[key])

    load_zone(values["timezone"])

    start = values.get("quiet_hours_start")
    end = values.get("quiet_hours_end")
    if values["quiet_hours_enabled"] and (start is None) != (end is None):
        raise ValidationError(
            "quiet_hours_start and quiet_hours_end must both be set or both be null",
            details={"quiet_hours_start": start, "quiet_hours_end": end},
        )
    values["quiet_start_minutes"] = parse_hhmm(start, "quiet_hours_start") if start is not None else None
    values["quiet_end_minutes"] = parse_hhmm(end, "quiet_hours_end") if end is not None else None
    return values


def _to_model(row: NotificationPreferenceRow) -> NotificationPreference:
    return NotificationPreference.model_validate(row)


async def resolve_preferences(session: AsyncSession, user_id: str) -> NotificationPreference:
    """Stored preferences for user_id, or the defaults when no record exists (read-only)."""
    row = await PreferenceRepository(session).get(user_id)
    if not row:
        return default_preferences(user_id)
    return _to_model(row)


async def _ensure_record(repo: PreferenceRepository, user_id: str) -> NotificationPreferenceRow:
    defaults = default_preferences(user_id)
    values = normalize_preference(defaults.model_dump(include=set(_FIELDS)))
    row, created = await repo.get_or_create(user_id, **values)
    if created:
        logger.info("Created default notification preferences for %s", user_id)
    return row


async def get_preferences(session: AsyncSession, user_id: str) -> NotificationPreference:
    """Return the user's preferences, lazily creating the default record."""
    repo = PreferenceRepository(session)
    row = await repo.get(user_id) or await _ensure_record(repo, user_id)
    return _to_model(row)


async def upsert_preferences(
    session: AsyncSession,
    user_id: str,
    update: NotificationPreferenceUpdate,
) -> NotificationPreference:
    """Merge a partial update onto the current (or default) preferences."""
    repo = PreferenceRepository(session)
    changes = update.model_dump(exclude_unset=True)
    row = await repo.get(user_id) or await _ensure_record(repo, user_id)

    merged = _to_model(row).model_dump(include=set(_FIELDS))
    merged.update(
        {k: v for k, v in changes.items() if v is not None or k in _NULLABLE}
    )
    values = normalize_preference(merged)
    await repo.update(row, **values)
    logger.info("Updated notification preferences for %s", user_id)
    return _to_model(row)


async def delete_preferences(session: AsyncSession, user_id: str) -> bool:
    """Remove the stored record; subsequent reads fall back to defaults."""
    return await PreferenceRepository(session).delete_for_user(user_id)
