"""
Tests for window resolution.
"""

from datetime import datetime, timedelta, timezone

import pytest

from alerting.domain import WindowResolver
from core import InvalidWindowException

NOW = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)
TOMORROW = datetime(2024, 3, 15, tzinfo=timezone.utc)


class TestNamedWindows:
    """Named tokens are trailing windows ending at the start of tomorrow."""

    @pytest.mark.parametrize("token,days", [
        ("day", 1), ("week", 7), ("month", 30), ("quarter", 90),
    ])
    def test_token_lengths(self, token, days):
        window = WindowResolver.resolve(token, now=NOW)

        assert window.to == TOMORROW
        assert window.from_ == TOMORROW - timedelta(days=days)
        assert window.days == days

    def test_default_is_trailing_thirty_days(self):
        window = WindowResolver.resolve(now=NOW)

        assert window.to == TOMORROW
        assert window.from_ == datetime(2024, 2, 14, tzinfo=timezone.utc)
        assert window.contains(NOW)

    def test_token_is_case_insensitive(self):
        assert WindowResolver.resolve("Week", now=NOW) == WindowResolver.resolve("week", now=NOW)

    def test_unknown_token_rejected(self):
        with pytest.raises(InvalidWindowException):
            WindowResolver.resolve("fortnight", now=NOW)


class TestExplicitWindows:
    """Explicit bounds take precedence over tokens."""

    def test_explicit_dates_override_token(self):
        window = WindowResolver.resolve("day", "2024-01-01", "2024-01-31", now=NOW)

        assert window.from_ == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert window.to == datetime(2024, 1, 31, tzinfo=timezone.utc)

    def test_timestamps_are_kept(self):
        window = WindowResolver.resolve(
            "custom", "2024-01-01T06:15:00Z", "2024-01-01T18:00:00+02:00", now=NOW
        )

        assert window.from_ == datetime(2024, 1, 1, 6, 15, tzinfo=timezone.utc)
        assert window.to == datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc)

    def test_naive_timestamp_is_utc(self):
        window = WindowResolver.resolve(from_="2024-03-01T12:00:00", now=NOW)

        assert window.from_ == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        assert window.to == TOMORROW

    def test_only_to_uses_default_length(self):
        window = WindowResolver.resolve(to="2024-03-01", now=NOW, default_days=10)

        assert window.from_ == datetime(2024, 2, 20, tzinfo=timezone.utc)

    def test_to_before_from_rejected(self):
        with pytest.raises(InvalidWindowException):
            WindowResolver.resolve("custom", "2024-02-01", "2024-01-01", now=NOW)

    def test_empty_window_rejected(self):
        with pytest.raises(InvalidWindowException):
            WindowResolver.resolve(from_="2024-02-01", to="2024-02-01", now=NOW)

    def test_unparsable_date_rejected(self):
        with pytest.raises(InvalidWindowException) as exc_info:
            WindowResolver.resolve(from_="last tuesday", now=NOW)

        assert exc_info.value.details["field"] == "from"

    def test_custom_without_bounds_rejected(self):
        with pytest.raises(InvalidWindowException):
            WindowResolver.resolve("custom", now=NOW)

    def test_resolution_is_pure(self):
        first = WindowResolver.resolve("month", now=NOW)
        second = WindowResolver.resolve("month", now=NOW)

        assert first == second
