"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from herald.api.routes import health, notifications, preferences

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(preferences.router)
api_router.include_router(notifications.router)
