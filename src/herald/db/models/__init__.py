"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from herald.db.models.notification import NotificationRow
from herald.db.models.preference import NotificationPreferenceRow

__all__ = [
    "NotificationRow",
    "NotificationPreferenceRow",
]
