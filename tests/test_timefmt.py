"""Tests for expiry rendering."""

from datetime import datetime, timezone

import pytest

from restcache.application.cache.timefmt import format_expiry, human_time_diff


def _ts(*args) -> float:
    return datetime(*args, tzinfo=timezone.utc).timestamp()


class TestFormatExpiry:
    """Test absolute expiry formatting."""

    def test_afternoon(self):
        assert format_expiry(_ts(2026, 10, 17, 15, 5)) == "October 17, 2026, 3:05 PM"

    def test_midnight_is_twelve_am(self):
        assert format_expiry(_ts(2026, 1, 2, 0, 30)) == "January 2, 2026, 12:30 AM"

    def test_noon_is_twelve_pm(self):
        assert format_expiry(_ts(2026, 7, 4, 12, 0)) == "July 4, 2026, 12:00 PM"

    def test_timezone_applied(self):
        assert (
            format_expiry(_ts(2026, 10, 17, 15, 5), "Europe/Paris")
            == "October 17, 2026, 5:05 PM"
        )


class TestHumanTimeDiff:
    """Test relative durations."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "1 second"),
            (1, "1 second"),
            (45, "45 seconds"),
            (60, "1 min"),
            (89, "1 min"),
            (90, "2 mins"),
            (300, "5 mins"),
            (3600, "1 hour"),
            (7200, "2 hours"),
            (3 * 86400, "3 days"),
            (7 * 86400, "1 week"),
            (60 * 86400, "2 months"),
            (365 * 86400, "1 year"),
        ],
    )
    def test_units(self, seconds, expected):
        assert human_time_diff(1000.0 + seconds, 1000.0) == expected

    def test_order_does_not_matter(self):
        assert human_time_diff(0, 300) == human_time_diff(300, 0)
