"""String enums for notification channels, frequencies and feed options."""

from enum import StrEnum


class Channel(StrEnum):
    EMAIL = "email"
    PUSH = "push"
    IN_APP = "in_app"


class EmailFrequency(StrEnum):
    IMMEDIATE = "immediate"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class DeliveryOutcome(StrEnum):
    DELIVER_NOW = "deliver_now"
    ENQUEUE = "enqueue"
    SUPPRESS = "suppress"


class ReadStatus(StrEnum):
    ALL = "all"
    READ = "read"
    UNREAD = "unread"


class SortBy(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TYPE = "type"


class BulkOperation(StrEnum):
    MARK_READ = "mark_read"
    MARK_UNREAD = "mark_unread"
    DELETE = "delete"


class NotificationType(StrEnum):
    """Well-known type tags. Types are free-form; these carry special meaning."""

    WELCOME = "welcome"
    SECURITY = "security"
    SYSTEM = "system"
    MARKETING = "marketing"
    PROMOTIONAL = "promotional"
    URGENT = "urgent"
    MENTIONS = "mentions"


# In-app only: a type list containing this sentinel admits every type.
ALL_TYPES = "all"
