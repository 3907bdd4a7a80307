"""Pydantic models for the Notification entity."""

from pydantic import BaseModel, ConfigDict, Field

from herald.models.common import UTCDateTime


class Notification(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    notification_id: str
    user_id: str
    type: str
    message: str
    link: str | None = None
    read: bool = False
    created_at: UTCDateTime
    updated_at: UTCDateTime | None = None


class NotificationCreate(BaseModel):
    """Request body a producer sends to publish a notification (server generates ID)."""

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1)
    link: str | None = Field(None, max_length=500)


class NotificationCounts(BaseModel):
    total: int = 0
    unread: int = 0
    urgent: int = 0
