"""Pydantic models for NotificationPreference."""

from pydantic import BaseModel, ConfigDict, Field

from herald.models.common import UTCDateTime
from herald.models.enums import EmailFrequency


class NotificationPreference(BaseModel):
    """A user's resolved delivery preferences."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    user_id: str
    email_enabled: bool = True
    email_types: list[str] = Field(default_factory=list)
    push_enabled: bool = True
    push_types: list[str] = Field(default_factory=list)
    in_app_enabled: bool = True
    in_app_types: list[str] = Field(default_factory=list)
    email_frequency: EmailFrequency = EmailFrequency.IMMEDIATE
    digest_enabled: bool = False
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    marketing_enabled: bool = False
    promotional_enabled: bool = False
    timezone: str = "UTC"
    updated_at: UTCDateTime | None = None

    # Parsed window, never serialized
    quiet_start_minutes: int | None = Field(None, exclude=True)
    quiet_end_minutes: int | None = Field(None, exclude=True)

    def types_for(self, channel: str) -> list[str]:
        return getattr(self, f"{channel}_types")

    def channel_enabled(self, channel: str) -> bool:
        return getattr(self, f"{channel}_enabled")


class NotificationPreferenceUpdate(BaseModel):
    """Partial update; omitted fields keep their current (or default) value."""

    model_config = ConfigDict(extra="forbid")

    email_enabled: bool | None = None
    email_types: list[str] | None = None
    push_enabled: bool | None = None
    push_types: list[str] | None = None
    in_app_enabled: bool | None = None
    in_app_types: list[str] | None = None
    email_frequency: EmailFrequency | None = None
    digest_enabled: bool | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    marketing_enabled: bool | None = None
    promotional_enabled: bool | None = None
    timezone: str | None = None
