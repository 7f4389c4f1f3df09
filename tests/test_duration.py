"""Tests for teams_notify/duration.py"""

import pytest

from teams_notify.duration import format_duration


@pytest.mark.parametrize("ms, expected", [
    (0, "0s"),
    (500, "500ms"),
    (1000, "1s"),
    (61000, "1min1s"),
    (3661000, "1h1min1s"),
    (7322000, "2h2min2s"),
])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


def test_zero_seconds_falls_back_to_raw_milliseconds():
    """A whole minute has no seconds component, so the raw count is shown."""
    assert format_duration(60000) == "1min60000ms"


def test_hours_wrap_at_24():
    assert format_duration(25 * 3_600_000 + 61_000) == "1h1min1s"


def test_negative_duration_rejected():
    with pytest.raises(ValueError):
        format_duration(-1)
