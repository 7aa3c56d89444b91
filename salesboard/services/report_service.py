"""
Report service.
Builds the weekly report and performance insights for a salesperson.
"""
import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.leaderboard_repository import LeaderboardRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.services.date_service import DateService
from salesboard.services.leaderboard_service import LeaderboardService
from salesboard.exceptions import UserNotFoundException
from salesboard.schemas import PerformanceInsights, PersonalBests, SaleBreakdown, WeeklyReport
from salesboard.constants import SALE_TYPES, SALE_TYPE_STANDARD, TIME_RANGE_WEEK

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
NOT_ENOUGH_DATA = "Not enough data"


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "Morning"
    if hour < 17:
        return "Afternoon"
    return "Evening"


class ReportService:
    """Service for salesperson reports"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository()
        self.order_repo = OrderRepository()
        self.stats_repo = UserStatsRepository()
        self.achievement_repo = AchievementRepository()
        self.leaderboard_repo = LeaderboardRepository()
        self.leaderboard_service = LeaderboardService(db)
        self.date_service = DateService()

    def _ledger_points(self, user_id: int, start: datetime, end: datetime) -> int:
        totals = self.leaderboard_repo.get_point_totals(self.db, start, end, user_ids=[user_id])
        return totals.get(user_id, 0)

    def get_weekly_report(
        self,
        user_id: int,
        week_start: Optional[date] = None,
        now: Optional[datetime] = None
    ) -> WeeklyReport:
        """
        Summary of one Sunday-to-Saturday week compared with the week before.

        Args:
            user_id: Salesperson
            week_start: Any day of the week to report on (defaults to this week)
            now: Reference moment (defaults to the current time)
        """
        user = self.user_repo.get_by_id(self.db, user_id)
        if user is None:
            raise UserNotFoundException(user_id)

        now = now or datetime.now()
        start_day = self.date_service.get_week_start(week_start or now.date())
        end_day = start_day + timedelta(days=6)
        start, _ = self.date_service.get_day_range(start_day)
        _, end = self.date_service.get_day_range(end_day)
        prev_start = start - timedelta(days=7)
        prev_end = start

        orders = self.order_repo.get_sales(self.db, user_id, start, end)
        total_sales = len(orders)
        prev_sales = self.order_repo.count_sales(self.db, user_id, prev_start, prev_end)

        breakdown = SaleBreakdown()
        for order in orders:
            if order.sale_type in SALE_TYPES:
                setattr(breakdown, order.sale_type, getattr(breakdown, order.sale_type) + 1)

        total_points = self._ledger_points(user_id, start, end)
        prev_points = self._ledger_points(user_id, prev_start, prev_end)

        stats = self.stats_repo.get_or_create(self.db, user_id)

        # Rank as of the end of the week, or now for the running week
        as_of = min(end - timedelta(microseconds=1), now)
        current_rank = self.leaderboard_service.get_user_rank(user_id, TIME_RANGE_WEEK, as_of).rank
        previous_rank = self.leaderboard_service.get_user_rank(
            user_id, TIME_RANGE_WEEK, prev_end - timedelta(microseconds=1)
        ).rank
        rank_change = previous_rank - current_rank if current_rank and previous_rank else None

        return WeeklyReport(
            user_id=user_id,
            user_name=user.name,
            week_start=start_day,
            week_end=end_day,
            total_sales=total_sales,
            sales_change=total_sales - prev_sales,
            sales_change_percent=round((total_sales - prev_sales) / prev_sales * 100) if prev_sales else 0,
            sale_breakdown=breakdown,
            total_points=total_points,
            points_change=total_points - prev_points,
            achievements_unlocked=self.achievement_repo.count_unlocked_between(self.db, user_id, start, end),
            current_streak=stats.current_streak or 0,
            best_streak=stats.longest_streak or 0,
            current_rank=current_rank,
            rank_change=rank_change
        )

    def get_performance_insights(self, user_id: int, now: Optional[datetime] = None) -> PerformanceInsights:
        """Best weekday and time of day, pace, favourite sale type and personal bests"""
        now = now or datetime.now()
        orders = self.order_repo.get_sales(self.db, user_id)
        stats = self.stats_repo.get_or_create(self.db, user_id)
        longest_streak = stats.longest_streak or 0

        if not orders:
            return PerformanceInsights(
                best_day=NOT_ENOUGH_DATA,
                best_time=NOT_ENOUGH_DATA,
                avg_sales_per_day=0.0,
                top_sale_type=SALE_TYPE_STANDARD,
                personal_bests=PersonalBests(daily_sales=0, weekly_sales=0, longest_streak=longest_streak)
            )

        by_weekday = Counter(WEEKDAY_NAMES[order.created_at.weekday()] for order in orders)
        by_time = Counter(time_of_day(order.created_at.hour) for order in orders)
        by_type = Counter(order.sale_type or SALE_TYPE_STANDARD for order in orders)
        by_day = Counter(order.created_at.date() for order in orders)
        by_week = Counter(self.date_service.get_week_start(order.created_at.date()) for order in orders)

        first_sale = min(order.created_at for order in orders)
        days_active = max(1, math.ceil((now - first_sale).total_seconds() / 86400))

        return PerformanceInsights(
            best_day=by_weekday.most_common(1)[0][0],
            best_time=by_time.most_common(1)[0][0],
            avg_sales_per_day=round(len(orders) / days_active, 1),
            top_sale_type=by_type.most_common(1)[0][0],
            personal_bests=PersonalBests(
                daily_sales=max(by_day.values()),
                weekly_sales=max(by_week.values()),
                longest_streak=longest_streak
            )
        )
