"""
Date calculation service.
Handles calendar days, Sunday-start weeks and leaderboard / goal period windows.
"""
import calendar
from datetime import datetime, timedelta, date
from typing import Optional

from salesboard.constants import (
    TIME_RANGE_TODAY, TIME_RANGE_WEEK, TIME_RANGE_MONTH, TIME_RANGE_ALL_TIME,
    GOAL_TYPE_DAILY, GOAL_TYPE_WEEKLY, GOAL_TYPE_MONTHLY
)


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def sale_day(moment: datetime) -> date:
        """Calendar day a sale counts towards (server local time)"""
        return moment.date()

    @staticmethod
    def get_day_range(target_date: date) -> tuple[datetime, datetime]:
        """
        Get datetime range for a full day (midnight to midnight).

        Args:
            target_date: Date to get range for

        Returns:
            Tuple of (day_start, day_end) datetimes
        """
        day_start = datetime.combine(target_date, datetime.min.time())
        day_end = datetime.combine(target_date + timedelta(days=1), datetime.min.time())
        return day_start, day_end

    @staticmethod
    def end_of_day(target_date: date) -> datetime:
        """Last representable moment of a day"""
        return datetime.combine(target_date, datetime.max.time())

    @staticmethod
    def get_week_start(target_date: date) -> date:
        """Sunday on or before target_date"""
        days_since_sunday = (target_date.weekday() + 1) % 7
        return target_date - timedelta(days=days_since_sunday)

    @staticmethod
    def get_month_start(target_date: date) -> date:
        return target_date.replace(day=1)

    @staticmethod
    def get_next_month_start(target_date: date) -> date:
        if target_date.month == 12:
            return date(target_date.year + 1, 1, 1)
        return date(target_date.year, target_date.month + 1, 1)

    @staticmethod
    def one_month_before(moment: datetime) -> datetime:
        """Same time one calendar month earlier, clamped to the month's last day"""
        year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
        day = min(moment.day, calendar.monthrange(year, month)[1])
        return moment.replace(year=year, month=month, day=day)

    @staticmethod
    def get_range_start(time_range: str, now: datetime) -> Optional[datetime]:
        """
        Start of a leaderboard window containing now.

        Args:
            time_range: "today", "week" (Sunday start), "month" or "all-time"
            now: Reference moment

        Returns:
            Window start, or None for all-time

        Raises:
            ValueError: If time_range is unknown
        """
        today = now.date()
        if time_range == TIME_RANGE_TODAY:
            start = today
        elif time_range == TIME_RANGE_WEEK:
            start = DateService.get_week_start(today)
        elif time_range == TIME_RANGE_MONTH:
            start = DateService.get_month_start(today)
        elif time_range == TIME_RANGE_ALL_TIME:
            return None
        else:
            raise ValueError(f"Unknown time range: {time_range}")
        return datetime.combine(start, datetime.min.time())

    @staticmethod
    def get_goal_period(goal_type: str, now: datetime) -> tuple[datetime, datetime]:
        """
        Window a new goal of goal_type covers.

        Daily, weekly and monthly goals follow the calendar (week from Sunday);
        custom goals run for 7 days from now.
        """
        today = now.date()
        if goal_type == GOAL_TYPE_DAILY:
            start, end = today, today
        elif goal_type == GOAL_TYPE_WEEKLY:
            start = DateService.get_week_start(today)
            end = start + timedelta(days=6)
        elif goal_type == GOAL_TYPE_MONTHLY:
            start = DateService.get_month_start(today)
            end = DateService.get_next_month_start(today) - timedelta(days=1)
        else:
            return now, now + timedelta(days=7)

        return datetime.combine(start, datetime.min.time()), DateService.end_of_day(end)
