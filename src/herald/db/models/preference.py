"""Per-user notification preference table (one row per user)."""

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from herald.db.base import Base, TimestampMixin


class NotificationPreferenceRow(Base, TimestampMixin):
    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(200), primary_key=True)

    email_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_types: Mapped[list] = mapped_column(JSON, nullable=False)
    push_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push_types: Mapped[list] = mapped_column(JSON, nullable=False)
    in_app_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    in_app_types: Mapped[list] = mapped_column(JSON, nullable=False)

    email_frequency: Mapped[str] = mapped_column(String(20), nullable=False, default="immediate")
    digest_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    quiet_hours_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quiet_hours_start: Mapped[str | None] = mapped_column(String(5), nullable=True)
    quiet_hours_end: Mapped[str | None] = mapped_column(String(5), nullable=True)
    # Minutes since midnight, derived from the HH:mm strings on every write
    quiet_start_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quiet_end_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    marketing_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promotional_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
