"""Opaque, prefixed identifiers.

Notification ids double as the keyset tie-breaker in the feed, so they only
need to be unique, never ordered.
"""

import uuid

NOTIFICATION_PREFIX = "ntf_"
DELIVERY_PREFIX = "dlv_"


def generate_id(prefix: str, length: int = 16) -> str:
    """Return ``prefix`` followed by ``length`` random hex characters."""
    return f"{prefix}{uuid.uuid4().hex[:length]}"


def new_notification_id() -> str:
    return generate_id(NOTIFICATION_PREFIX)
