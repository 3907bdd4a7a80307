"""Tests for the delivery gate decision function."""

from datetime import datetime, timezone

from herald.models.enums import Channel, DeliveryOutcome, EmailFrequency
from herald.models.preference import NotificationPreference
from herald.services.delivery.gate import decide, evaluate, next_boundary
from herald.services.preferences import default_preferences, normalize_preference

NOW = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)  # a Monday


def prefs(**overrides):
    base = default_preferences("usr_gate").model_dump()
    base.update(overrides)
    values = normalize_preference(base)
    return NotificationPreference.model_validate(values)


def outcomes(decision):
    return {c.channel: c.outcome for c in decision.channels}


def test_defaults_deliver_system_on_every_channel():
    decision = evaluate("usr_gate", "system", default_preferences("usr_gate"), NOW)
    assert outcomes(decision) == {
        Channel.EMAIL: DeliveryOutcome.DELIVER_NOW,
        Channel.PUSH: DeliveryOutcome.DELIVER_NOW,
        Channel.IN_APP: DeliveryOutcome.DELIVER_NOW,
    }
    assert not decision.is_suppressed


def test_defaults_welcome_skips_push():
    decision = evaluate("usr_gate", "welcome", default_preferences("usr_gate"), NOW)
    assert decision.deliver_now == [Channel.EMAIL, Channel.IN_APP]


def test_in_app_all_admits_unknown_types():
    decision = evaluate("usr_gate", "weekly-report", default_preferences("usr_gate"), NOW)
    assert decision.deliver_now == [Channel.IN_APP]


def test_all_sentinel_is_in_app_only():
    p = prefs(email_types=["all"], push_types=["all"])
    decision = evaluate("usr_gate", "security", p, NOW)
    assert decision.deliver_now == [Channel.IN_APP]


def test_email_type_list_excludes_other_types():
    p = prefs(email_types=["security"], marketing_enabled=True)
    assert Channel.EMAIL in evaluate("usr_gate", "security", p, NOW).deliver_now
    assert evaluate("usr_gate", "marketing", p, NOW).for_channel(Channel.EMAIL) is None


def test_marketing_requires_opt_in_even_when_listed():
    p = prefs(email_types=["marketing"], marketing_enabled=False)
    decision = evaluate("usr_gate", "marketing", p, NOW)
    assert decision.for_channel(Channel.EMAIL) is None
    # in-app "all" does not bypass the opt-in either
    assert decision.for_channel(Channel.IN_APP) is None
    assert decision.is_suppressed

    p = prefs(email_types=["marketing"], marketing_enabled=True)
    decision = evaluate("usr_gate", "marketing", p, NOW)
    assert decision.deliver_now == [Channel.EMAIL, Channel.IN_APP]


def test_promotional_has_its_own_flag():
    p = prefs(marketing_enabled=True, promotional_enabled=False)
    assert evaluate("usr_gate", "promotional", p, NOW).channels == []
    p = prefs(promotional_enabled=True)
    assert evaluate("usr_gate", "promotional", p, NOW).deliver_now == [Channel.IN_APP]


def test_disabled_channel_is_absent():
    p = prefs(email_enabled=False, push_enabled=False)
    decision = evaluate("usr_gate", "system", p, NOW)
    assert [c.channel for c in decision.channels] == [Channel.IN_APP]


def test_quiet_hours_suppress_email_and_push_but_not_in_app():
    p = prefs(quiet_hours_enabled=True, quiet_hours_start="22:00", quiet_hours_end="08:00")
    night = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
    decision = evaluate("usr_gate", "system", p, night)
    assert decision.suppressed == [Channel.EMAIL, Channel.PUSH]
    assert decision.deliver_now == [Channel.IN_APP]

    noon = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    assert len(evaluate("usr_gate", "system", p, noon).deliver_now) == 3


def test_quiet_hours_defer_to_digest_when_enabled():
    p = prefs(
        quiet_hours_enabled=True,
        quiet_hours_start="22:00",
        quiet_hours_end="08:00",
        digest_enabled=True,
    )
    early = datetime(2026, 10, 20, 6, 0, tzinfo=timezone.utc)
    decision = evaluate("usr_gate", "system", p, early)
    push = decision.for_channel(Channel.PUSH)
    assert push.outcome == DeliveryOutcome.ENQUEUE
    assert push.until == datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)


def test_quiet_hours_use_user_timezone():
    p = prefs(
        quiet_hours_enabled=True,
        quiet_hours_start="22:00",
        quiet_hours_end="08:00",
        timezone="America/New_York",
    )
    # 03:30Z is 23:30 in New York (EDT)
    decision = evaluate("usr_gate", "system", p, datetime(2026, 10, 20, 3, 30, tzinfo=timezone.utc))
    assert decision.suppressed == [Channel.EMAIL, Channel.PUSH]
    # 14:00Z is 10:00 in New York
    decision = evaluate("usr_gate", "system", p, datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc))
    assert decision.suppressed == []


def test_quiet_hours_enabled_without_bounds_never_quiet():
    p = prefs(quiet_hours_enabled=True)
    decision = evaluate("usr_gate", "system", p, datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc))
    assert decision.suppressed == []


def test_daily_digest_enqueues_email_until_midnight():
    p = prefs(email_frequency="daily", digest_enabled=True, email_types=["system"])
    decision = evaluate("usr_gate", "system", p, NOW)
    email = decision.for_channel(Channel.EMAIL)
    assert email.outcome == DeliveryOutcome.ENQUEUE
    assert email.until == datetime(2026, 10, 20, 0, 0, tzinfo=timezone.utc)
    # Frequency applies to email only
    assert decision.for_channel(Channel.PUSH).outcome == DeliveryOutcome.DELIVER_NOW


def test_frequency_ignored_without_digest():
    p = prefs(email_frequency="weekly", digest_enabled=False)
    decision = evaluate("usr_gate", "system", p, NOW)
    assert decision.for_channel(Channel.EMAIL).outcome == DeliveryOutcome.DELIVER_NOW


def test_next_boundaries():
    assert next_boundary(EmailFrequency.HOURLY, NOW.replace(minute=25), "UTC") == datetime(
        2026, 10, 19, 11, 0, tzinfo=timezone.utc
    )
    assert next_boundary(EmailFrequency.DAILY, NOW, "UTC") == datetime(
        2026, 10, 20, 0, 0, tzinfo=timezone.utc
    )
    assert next_boundary(EmailFrequency.WEEKLY, NOW, "UTC") == datetime(
        2026, 10, 26, 0, 0, tzinfo=timezone.utc
    )
    sunday = datetime(2026, 10, 25, 18, 0, tzinfo=timezone.utc)
    assert next_boundary(EmailFrequency.WEEKLY, sunday, "UTC") == datetime(
        2026, 10, 26, 0, 0, tzinfo=timezone.utc
    )


def test_daily_boundary_in_user_timezone():
    # 10:00 in New York; local midnight is 04:00Z
    boundary = next_boundary(
        EmailFrequency.DAILY, datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc), "America/New_York"
    )
    assert boundary == datetime(2026, 10, 20, 4, 0, tzinfo=timezone.utc)


def test_hourly_boundary_across_fall_back():
    # New York repeats 01:00-02:00 local on 2026-11-01 (EDT then EST)
    first_pass = next_boundary(
        EmailFrequency.HOURLY, datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc), "America/New_York"
    )
    assert first_pass == datetime(2026, 11, 1, 6, 0, tzinfo=timezone.utc)
    second_pass = next_boundary(
        EmailFrequency.HOURLY, datetime(2026, 11, 1, 6, 30, tzinfo=timezone.utc), "America/New_York"
    )
    assert second_pass == datetime(2026, 11, 1, 7, 0, tzinfo=timezone.utc)


def test_decide_reads_notification_fields():
    class _Stub:
        notification_id = "ntf_stub"
        user_id = "usr_gate"
        type = "security"

    decision = decide(_Stub(), default_preferences("usr_gate"), NOW)
    assert decision.notification_id == "ntf_stub"
    assert decision.deliver_now == [Channel.EMAIL, Channel.IN_APP]
