"""
Goal management service.
Handles sales-count targets, metric goals and goal suggestions.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from salesboard.models import SalesGoal, UserGoals
from salesboard.repositories.goal_repository import SalesGoalRepository, UserGoalsRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.activity_service import ActivityService
from salesboard.services.date_service import DateService
from salesboard.exceptions import ValidationException
from salesboard.schemas import (
    GoalProgressResponse, GoalSuggestions, UserGoalsResponse, UserStreakResponse
)
from salesboard.constants import (
    GOAL_METRIC_SALES_COUNT,
    GOAL_METRIC_POINTS,
    GOAL_METRIC_COMMISSION,
    GOAL_STATUS_ACTIVE,
    GOAL_STATUS_CANCELLED,
    GOAL_STATUS_FAILED,
    GOAL_TYPE_DAILY,
    GOAL_TYPE_WEEKLY,
    GOAL_TYPE_MONTHLY,
    GOAL_TYPE_CUSTOM,
    EVENT_GOAL_COMPLETED,
    SUGGESTION_LOOKBACK_DAYS,
    SUGGESTION_IMPROVEMENT,
    SUGGESTION_MIN_DAILY,
    SUGGESTION_MIN_WEEKLY,
    SUGGESTION_MIN_MONTHLY
)

logger = logging.getLogger("salesboard.goals")

GOAL_TYPES = (GOAL_TYPE_DAILY, GOAL_TYPE_WEEKLY, GOAL_TYPE_MONTHLY, GOAL_TYPE_CUSTOM)
GOAL_METRICS = (GOAL_METRIC_SALES_COUNT, GOAL_METRIC_POINTS, GOAL_METRIC_COMMISSION)


class GoalService:
    """Service for managing sales goals"""

    def __init__(self, db: Session):
        self.db = db
        self.user_goals_repo = UserGoalsRepository()
        self.goal_repo = SalesGoalRepository()
        self.order_repo = OrderRepository()
        self.stats_repo = UserStatsRepository()
        self.date_service = DateService()
        self.activity_service = ActivityService(db)

    def get_goal_progress(self, user_id: int, now: Optional[datetime] = None) -> GoalProgressResponse:
        """
        Targets, streak and recent sales for the goals page.

        Windows: today since midnight, the last 7 days and the last calendar
        month. Cancelled orders are not counted.
        """
        now = now or datetime.now()
        goals = self.user_goals_repo.get_or_create(self.db, user_id)
        stats = self.stats_repo.get_or_create(self.db, user_id)

        today_start, _ = self.date_service.get_day_range(now.date())
        week_start = now - timedelta(days=7)
        month_start = self.date_service.one_month_before(now)

        def orders_since(start: datetime) -> int:
            return self.order_repo.count_sales(self.db, user_id, start)

        def commission_since(start: datetime) -> float:
            return self.order_repo.sum_commission(self.db, user_id, start)

        return GoalProgressResponse(
            goals=UserGoalsResponse.model_validate(goals),
            streak=UserStreakResponse.model_validate(stats),
            today_orders=orders_since(today_start),
            week_orders=orders_since(week_start),
            month_orders=orders_since(month_start),
            today_commission=commission_since(today_start),
            week_commission=commission_since(week_start),
            month_commission=commission_since(month_start)
        )

    def update_goals(self, user_id: int, daily_goal: int, weekly_goal: int, monthly_goal: int) -> UserGoals:
        """Replace the user's daily, weekly and monthly sales targets"""
        for name, value in (("daily_goal", daily_goal), ("weekly_goal", weekly_goal),
                            ("monthly_goal", monthly_goal)):
            if value < 0:
                raise ValidationException(name, "must not be negative")

        goals = self.user_goals_repo.get_or_create(self.db, user_id)
        goals.daily_goal = daily_goal
        goals.weekly_goal = weekly_goal
        goals.monthly_goal = monthly_goal
        return self.user_goals_repo.update(self.db, goals)

    def set_goal(
        self,
        user_id: int,
        goal_type: str,
        metric: str,
        target_value: float,
        now: Optional[datetime] = None,
        is_suggested: bool = False
    ) -> SalesGoal:
        """Start a new goal; any active goal of the same type is cancelled"""
        if goal_type not in GOAL_TYPES:
            raise ValidationException("goal_type", f"unknown goal type '{goal_type}'")
        if metric not in GOAL_METRICS:
            raise ValidationException("metric", f"unknown metric '{metric}'")
        if target_value <= 0:
            raise ValidationException("target_value", "must be greater than 0")

        now = now or datetime.now()
        for existing in self.goal_repo.get_active(self.db, user_id, goal_type):
            existing.status = GOAL_STATUS_CANCELLED

        start_date, end_date = self.date_service.get_goal_period(goal_type, now)
        goal = SalesGoal(
            user_id=user_id,
            goal_type=goal_type,
            metric=metric,
            target_value=target_value,
            current_value=0.0,
            start_date=start_date,
            end_date=end_date,
            status=GOAL_STATUS_ACTIVE,
            is_suggested=is_suggested
        )
        goal = self.goal_repo.create(self.db, goal)
        logger.info(f"User {user_id} set {goal_type} {metric} goal of {target_value}")
        return goal

    def get_active_goals(self, user_id: int) -> List[SalesGoal]:
        return self.goal_repo.get_active(self.db, user_id)

    def record_sale(
        self,
        user_id: int,
        points: int,
        commission: float,
        at: Optional[datetime] = None,
        order_id: Optional[int] = None
    ) -> List[SalesGoal]:
        """
        Add a sale to every active goal whose window contains it.

        With an order_id the sale is counted at most once: the order's
        goals_recorded_at claim commits together with the increments, and a
        sale already counted adds nothing.

        Returns the goals completed by this sale.
        """
        at = at or datetime.now()
        if order_id is not None and not self.order_repo.claim_goal_progress(self.db, order_id):
            logger.debug(f"Order {order_id} already counted towards goals")
            return []

        increments = {
            GOAL_METRIC_SALES_COUNT: 1,
            GOAL_METRIC_POINTS: points,
            GOAL_METRIC_COMMISSION: commission or 0.0,
        }

        completed_ids = []
        for goal in self.goal_repo.get_active_in_range(self.db, user_id, at):
            self.goal_repo.add_progress(self.db, goal.id, increments.get(goal.metric, 0))
            if self.goal_repo.complete_if_reached(self.db, goal.id, at):
                completed_ids.append(goal.id)
        self.goal_repo.save(self.db)

        completed = [self.goal_repo.get_by_id(self.db, goal_id) for goal_id in completed_ids]

        for goal in completed:
            logger.info(f"User {user_id} completed {goal.goal_type} {goal.metric} goal {goal.id}")
            self.activity_service.publish(
                EVENT_GOAL_COMPLETED,
                "Goal Completed!",
                user_id=user_id,
                description=f"Reached a {goal.goal_type} goal of {goal.target_value:g} {goal.metric.replace('_', ' ')}",
                details={"goal_id": goal.id, "goal_type": goal.goal_type, "metric": goal.metric},
                is_global=False
            )
        return completed

    def get_smart_suggestions(self, user_id: int, now: Optional[datetime] = None) -> GoalSuggestions:
        """
        Targets slightly above the user's recent pace.

        Based on the last 30 days of non-cancelled sales, raised by 15% and
        never below 1 per day, 3 per week and 10 per month.
        """
        now = now or datetime.now()
        total_sales = self.order_repo.count_sales(
            self.db, user_id, now - timedelta(days=SUGGESTION_LOOKBACK_DAYS)
        )

        avg_daily = total_sales / SUGGESTION_LOOKBACK_DAYS
        avg_weekly = avg_daily * 7

        return GoalSuggestions(
            daily=max(SUGGESTION_MIN_DAILY, math.ceil(avg_daily * SUGGESTION_IMPROVEMENT)),
            weekly=max(SUGGESTION_MIN_WEEKLY, math.ceil(avg_weekly * SUGGESTION_IMPROVEMENT)),
            monthly=max(SUGGESTION_MIN_MONTHLY, math.ceil(total_sales * SUGGESTION_IMPROVEMENT))
        )

    def expire_goals(self, now: Optional[datetime] = None) -> int:
        """Mark active goals whose window has passed as failed"""
        expired = self.goal_repo.get_expired(self.db, now or datetime.now())
        for goal in expired:
            goal.status = GOAL_STATUS_FAILED
        self.goal_repo.save(self.db)
        if expired:
            logger.info(f"Expired {len(expired)} goals")
        return len(expired)
