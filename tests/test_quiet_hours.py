"""Tests for quiet-hours parsing and window arithmetic."""

from datetime import datetime, timezone

import pytest

from herald.errors.exceptions import ValidationError
from herald.services.delivery.quiet_hours import in_window, parse_hhmm, window_end


def test_parse_hhmm():
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("08:30") == 510
    assert parse_hhmm("23:59") == 1439


@pytest.mark.parametrize("value", ["24:00", "7:30", "12:60", "noon", "", "12:3"])
def test_parse_hhmm_rejects_malformed(value):
    with pytest.raises(ValidationError) as exc:
        parse_hhmm(value, "quiet_hours_start")
    assert exc.value.details["field"] == "quiet_hours_start"


def test_wrapping_window_covers_both_sides_of_midnight():
    start, end = parse_hhmm("22:00"), parse_hhmm("08:00")
    assert in_window(parse_hhmm("23:30"), start, end)
    assert in_window(parse_hhmm("06:00"), start, end)
    assert in_window(parse_hhmm("22:00"), start, end)
    assert not in_window(parse_hhmm("08:00"), start, end)
    assert not in_window(parse_hhmm("12:00"), start, end)


def test_same_day_window_is_half_open():
    start, end = parse_hhmm("13:00"), parse_hhmm("14:00")
    assert in_window(parse_hhmm("13:00"), start, end)
    assert in_window(parse_hhmm("13:59"), start, end)
    assert not in_window(parse_hhmm("14:00"), start, end)


def test_equal_bounds_is_empty_window():
    assert not in_window(parse_hhmm("09:00"), 540, 540)


def test_window_end_rolls_to_next_day():
    late = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
    assert window_end(late, 1320, 480) == datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)

    early = datetime(2026, 10, 20, 6, 0, tzinfo=timezone.utc)
    assert window_end(early, 1320, 480) == datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)
