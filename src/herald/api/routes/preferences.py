"""Notification preference routes for the authenticated user."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from herald.dependencies import UserId, get_db
from herald.models.preference import NotificationPreferenceUpdate
from herald.services.delivery.gate import evaluate
from herald.services.preferences import (
    delete_preferences,
    get_preferences,
    resolve_preferences,
    upsert_preferences,
)

router = APIRouter(prefix="/preferences", tags=["Preferences"])


@router.get("")
async def read_preferences(
    user_id: UserId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    prefs = await get_preferences(db, user_id)
    await db.commit()
    return prefs.model_dump(mode="json")


@router.put("")
async def update_preferences(
    body: NotificationPreferenceUpdate,
    user_id: UserId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Partial upsert: omitted fields keep their current or default value."""
    prefs = await upsert_preferences(db, user_id, body)
    await db.commit()
    return prefs.model_dump(mode="json")


@router.delete("")
async def remove_preferences(
    user_id: UserId,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete the stored record; later reads fall back to the defaults."""
    deleted = await delete_preferences(db, user_id)
    await db.commit()
    return {"user_id": user_id, "deleted": deleted}


@router.get("/decision")
async def preview_decision(
    user_id: UserId,
    type: str = Query(..., min_length=1, max_length=100, description="Notification type to gate"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """How a notification of this type would be delivered right now."""
    prefs = await resolve_preferences(db, user_id)
    decision = evaluate(user_id, type, prefs, datetime.now(timezone.utc))
    return decision.model_dump(mode="json")
