"""
Tests for DateService.

Tests cover:
1. Day ranges and week/month starts
2. Leaderboard window starts
3. Goal periods
"""
import pytest
from datetime import date, datetime, timedelta

from salesboard.services.date_service import DateService


class TestCalendarHelpers:
    def test_day_range(self):
        start, end = DateService.get_day_range(date(2025, 3, 12))

        assert start == datetime(2025, 3, 12, 0, 0)
        assert end == datetime(2025, 3, 13, 0, 0)

    @pytest.mark.parametrize("day, expected", [
        (date(2025, 3, 9), date(2025, 3, 9)),    # Sunday
        (date(2025, 3, 12), date(2025, 3, 9)),   # Wednesday
        (date(2025, 3, 15), date(2025, 3, 9)),   # Saturday
        (date(2025, 3, 1), date(2025, 2, 23)),   # across a month
    ])
    def test_week_starts_on_sunday(self, day, expected):
        assert DateService.get_week_start(day) == expected

    def test_next_month_start_in_december(self):
        assert DateService.get_next_month_start(date(2024, 12, 15)) == date(2025, 1, 1)

    def test_one_month_before_clamps(self):
        assert DateService.one_month_before(datetime(2025, 3, 31, 10)) == datetime(2025, 2, 28, 10)
        assert DateService.one_month_before(datetime(2025, 1, 15, 8)) == datetime(2024, 12, 15, 8)

    def test_end_of_day(self):
        assert DateService.end_of_day(date(2025, 3, 12)) < datetime(2025, 3, 13)


class TestRangeStart:
    NOW = datetime(2025, 3, 12, 15, 30)

    def test_today(self):
        assert DateService.get_range_start("today", self.NOW) == datetime(2025, 3, 12)

    def test_week(self):
        assert DateService.get_range_start("week", self.NOW) == datetime(2025, 3, 9)

    def test_month(self):
        assert DateService.get_range_start("month", self.NOW) == datetime(2025, 3, 1)

    def test_all_time(self):
        assert DateService.get_range_start("all-time", self.NOW) is None

    def test_unknown(self):
        with pytest.raises(ValueError):
            DateService.get_range_start("decade", self.NOW)


class TestGoalPeriod:
    NOW = datetime(2025, 3, 12, 15, 30)

    def test_daily(self):
        start, end = DateService.get_goal_period("daily", self.NOW)

        assert start == datetime(2025, 3, 12)
        assert start < end < datetime(2025, 3, 13)

    def test_weekly(self):
        start, end = DateService.get_goal_period("weekly", self.NOW)

        assert start == datetime(2025, 3, 9)
        assert end.date() == date(2025, 3, 15)

    def test_monthly(self):
        start, end = DateService.get_goal_period("monthly", self.NOW)

        assert start == datetime(2025, 3, 1)
        assert end.date() == date(2025, 3, 31)

    def test_custom_runs_a_week(self):
        start, end = DateService.get_goal_period("custom", self.NOW)

        assert start == self.NOW
        assert end == self.NOW + timedelta(days=7)
