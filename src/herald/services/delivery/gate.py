"""Delivery gate: decides per channel whether a notification is delivered now,
enqueued for a digest, or suppressed.

Pure and synchronous; callers resolve preferences (defaults included) first.

Per channel, in order:
1. channel disabled -> channel absent from the decision
2. type not allowed -> channel absent ("all" admits every type for in-app only;
   marketing/promotional types also need their opt-in flag)
3. quiet hours (email and push) -> enqueue when digests are on, else suppress
4. email frequency other than immediate with digests on -> enqueue until the
   next frequency boundary
5. otherwise deliver now
"""

from datetime import datetime, time, timedelta, timezone

from herald.models.delivery import ChannelDecision, DeliveryDecision
from herald.models.enums import ALL_TYPES, Channel, DeliveryOutcome, EmailFrequency
from herald.models.preference import NotificationPreference
from herald.services.delivery.quiet_hours import (
    in_window,
    load_zone,
    minute_of_day,
    parse_hhmm,
    window_end,
)

_OPT_IN_FLAGS = {
    "marketing": "marketing_enabled",
    "promotional": "promotional_enabled",
}

_QUIET_HOURS_CHANNELS = (Channel.EMAIL, Channel.PUSH)


def type_allowed(prefs: NotificationPreference, channel: Channel, notification_type: str) -> bool:
    """Allow-list check plus the additive marketing/promotional opt-in."""
    types = prefs.types_for(channel)
    if notification_type not in types and not (channel == Channel.IN_APP and ALL_TYPES in types):
        return False
    flag = _OPT_IN_FLAGS.get(notification_type)
    if flag and not getattr(prefs, flag):
        return False
    return True


def quiet_window(prefs: NotificationPreference) -> tuple[int, int] | None:
    """Cached (start, end) minutes, parsing the HH:mm strings only if the cache is empty."""
    if not prefs.quiet_hours_enabled:
        return None
    if prefs.quiet_start_minutes is not None and prefs.quiet_end_minutes is not None:
        return prefs.quiet_start_minutes, prefs.quiet_end_minutes
    if prefs.quiet_hours_start and prefs.quiet_hours_end:
        return (
            parse_hhmm(prefs.quiet_hours_start, "quiet_hours_start"),
            parse_hhmm(prefs.quiet_hours_end, "quiet_hours_end"),
        )
    return None


def is_quiet(prefs: NotificationPreference, now: datetime) -> bool:
    window = quiet_window(prefs)
    if window is None:
        return False
    local_now = now.astimezone(load_zone(prefs.timezone))
    return in_window(minute_of_day(local_now), *window)


def next_boundary(frequency: EmailFrequency, now: datetime, tz_name: str) -> datetime:
    """Next digest boundary after ``now`` in the user's timezone, returned in UTC.

    hourly: top of the next hour; daily: next midnight; weekly: next Monday 00:00.
    """
    tz = load_zone(tz_name)
    local_now = now.astimezone(tz)
    if frequency == EmailFrequency.HOURLY:
        top = local_now.replace(minute=0, second=0, microsecond=0)
        # Step in UTC so a repeated wall-clock hour at fall-back is not skipped
        return top.astimezone(timezone.utc) + timedelta(hours=1)

    midnight = datetime.combine(local_now.date() + timedelta(days=1), time(0, 0), tzinfo=tz)
    if frequency == EmailFrequency.WEEKLY:
        midnight += timedelta(days=(7 - midnight.weekday()) % 7)
    return midnight.astimezone(timezone.utc)


def _decide_channel(
    channel: Channel,
    notification_type: str,
    prefs: NotificationPreference,
    now: datetime,
    quiet: bool,
) -> ChannelDecision | None:
    if not prefs.channel_enabled(channel):
        return None
    if not type_allowed(prefs, channel, notification_type):
        return None

    digest_frequency = (
        channel == Channel.EMAIL
        and prefs.digest_enabled
        and prefs.email_frequency != EmailFrequency.IMMEDIATE
    )
    if digest_frequency:
        return ChannelDecision(
            channel=channel,
            outcome=DeliveryOutcome.ENQUEUE,
            until=next_boundary(prefs.email_frequency, now, prefs.timezone),
            reason=f"{prefs.email_frequency} digest",
        )

    if quiet and channel in _QUIET_HOURS_CHANNELS:
        if prefs.digest_enabled:
            local_now = now.astimezone(load_zone(prefs.timezone))
            start, end = quiet_window(prefs)
            until = window_end(local_now, start, end).astimezone(timezone.utc)
            return ChannelDecision(
                channel=channel,
                outcome=DeliveryOutcome.ENQUEUE,
                until=until,
                reason="quiet hours, deferred to digest",
            )
        return ChannelDecision(
            channel=channel,
            outcome=DeliveryOutcome.SUPPRESS,
            reason="quiet hours",
        )

    return ChannelDecision(
        channel=channel,
        outcome=DeliveryOutcome.DELIVER_NOW,
        reason="allowed",
    )


def evaluate(
    user_id: str,
    notification_type: str,
    prefs: NotificationPreference,
    now: datetime,
    notification_id: str | None = None,
) -> DeliveryDecision:
    """Evaluate every channel independently and return the union of outcomes."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    quiet = is_quiet(prefs, now)

    channels = []
    for channel in Channel:
        decision = _decide_channel(channel, notification_type, prefs, now, quiet)
        if decision is not None:
            channels.append(decision)

    return DeliveryDecision(
        notification_id=notification_id,
        user_id=user_id,
        type=notification_type,
        evaluated_at=now,
        channels=channels,
    )


def decide(notification, prefs: NotificationPreference, now: datetime) -> DeliveryDecision:
    """Gate a stored notification (ORM row or API model)."""
    return evaluate(
        notification.user_id,
        notification.type,
        prefs,
        now,
        notification_id=notification.notification_id,
    )
