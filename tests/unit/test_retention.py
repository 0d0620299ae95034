"""Unit tests for the retention policy."""

from datetime import datetime, timedelta

import pytest

from feed_monitor.ingestion.interfaces import RetentionWindow
from feed_monitor.retention import cutoff, is_expired


NOW = datetime(2024, 6, 15, 12, 30, 0)


class TestCutoff:
    """Tests for cutoff."""

    def test_week(self):
        assert cutoff(NOW, RetentionWindow.WEEK) == NOW - timedelta(days=7)

    def test_month(self):
        assert cutoff(NOW, RetentionWindow.MONTH) == datetime(2024, 5, 15, 12, 30, 0)

    def test_year(self):
        assert cutoff(NOW, RetentionWindow.YEAR) == datetime(2023, 6, 15, 12, 30, 0)

    def test_accepts_string_values(self):
        assert cutoff(NOW, "week") == cutoff(NOW, RetentionWindow.WEEK)

    @pytest.mark.parametrize("now,expected", [
        (datetime(2024, 3, 31, 8, 0), datetime(2024, 2, 29, 8, 0)),   # leap year
        (datetime(2023, 3, 31, 8, 0), datetime(2023, 2, 28, 8, 0)),
        (datetime(2024, 1, 15, 8, 0), datetime(2023, 12, 15, 8, 0)),  # across year
        (datetime(2024, 5, 31, 8, 0), datetime(2024, 4, 30, 8, 0)),
    ])
    def test_month_clamps_to_month_end(self, now, expected):
        assert cutoff(now, RetentionWindow.MONTH) == expected

    def test_year_from_leap_day(self):
        assert cutoff(datetime(2024, 2, 29), RetentionWindow.YEAR) == datetime(2023, 2, 28)

    def test_rejects_unknown_window(self):
        with pytest.raises(ValueError):
            cutoff(NOW, "fortnight")


class TestIsExpired:
    """Tests for is_expired."""

    def test_strictly_older_is_expired(self):
        limit = cutoff(NOW, RetentionWindow.WEEK)
        assert is_expired(NOW - timedelta(days=10), limit)
        assert not is_expired(NOW - timedelta(days=3), limit)

    def test_exactly_at_cutoff_is_kept(self):
        limit = cutoff(NOW, RetentionWindow.WEEK)
        assert not is_expired(limit, limit)
