"""
Gamification service.
Rewards a committed order: points, streak, achievements, goal progress and
the resulting leaderboard move.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session

from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.achievement_service import AchievementService
from salesboard.services.activity_service import ActivityService
from salesboard.services.goal_service import GoalService
from salesboard.services.leaderboard_service import LeaderboardService
from salesboard.services.points_service import PointsService
from salesboard.services.streak_service import StreakService
from salesboard.exceptions import (
    AccessDeniedException,
    OrderNotFoundException,
    PointsAlreadyAwardedException,
    ValidationException
)
from salesboard.schemas import (
    AuthenticatedUser, OrderGamificationResult, PointsCalculationResult, RankChangeResult
)
from salesboard.constants import (
    CONDITION_SALES_STREAK,
    ORDER_STATUS_CANCELLED,
    SALE_TYPE_STANDARD,
    POINT_REASON_SALE,
    POINT_SOURCE_ORDER,
    EVENT_NEW_SALE,
    EVENT_STREAK_MILESTONE,
    RANK_CHANGE_TIME_RANGE,
    TOP_RANK_THRESHOLD
)

logger = logging.getLogger("salesboard.gamification")


def build_rank_change(user_id: int, old_rank: Optional[int], new_rank: Optional[int]) -> RankChangeResult:
    """
    Describe a leaderboard move; ranks are 1-based, None when unranked.

    Significant: any change of position, a first appearance, or moving into
    or out of the top ranks.
    """
    change = old_rank - new_rank if old_rank is not None and new_rank is not None else 0

    def in_top(rank: Optional[int]) -> bool:
        return rank is not None and rank <= TOP_RANK_THRESHOLD

    is_significant = (
        change != 0
        or (old_rank is None and new_rank is not None)
        or in_top(old_rank) != in_top(new_rank)
    )
    return RankChangeResult(
        user_id=user_id,
        old_rank=old_rank,
        new_rank=new_rank,
        change=change,
        is_significant=is_significant
    )


class GamificationService:
    """Service that runs the rewards pipeline for an order"""

    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository()
        self.stats_repo = UserStatsRepository()
        self.points_service = PointsService(db)
        self.streak_service = StreakService(db)
        self.achievement_service = AchievementService(db)
        self.leaderboard_service = LeaderboardService(db)
        self.goal_service = GoalService(db)
        self.activity_service = ActivityService(db)

    def process_order(self, order_id: int, user: AuthenticatedUser) -> OrderGamificationResult:
        """
        Reward the caller's order exactly once.

        The award is claimed on the order row (points_awarded IS NULL) in the
        same transaction as the ledger entry, so a retry or a concurrent call
        for the same order never pays the sale twice. The later steps are
        safe to repeat: the streak ignores a sale day it has already counted,
        achievements unlock once, and goal progress is claimed on the order.
        A retry of an order whose pipeline stopped part way resumes those
        steps; only a fully rewarded order is rejected.

        Raises:
            OrderNotFoundException: Unknown order
            AccessDeniedException: Order belongs to someone else
            ValidationException: Order is cancelled
            PointsAlreadyAwardedException: Order was already rewarded
        """
        order = self.order_repo.get_by_id(self.db, order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        if order.salesperson_id != user.id:
            raise AccessDeniedException("Not authorized")
        if order.status == ORDER_STATUS_CANCELLED:
            raise ValidationException("status", "cancelled orders do not earn points")
        if order.rewards_completed_at is not None:
            raise PointsAlreadyAwardedException(order_id)

        sale_type = order.sale_type or SALE_TYPE_STANDARD
        add_ons_count = order.add_ons_count or 0
        sale_time = order.created_at
        commission = order.commission_amount or 0.0
        resuming = order.points_awarded is not None

        points = self.points_service.calculate_sale_points(
            sale_type, add_ons_count, self.points_service.get_point_config()
        )
        old_rank = self._weekly_rank(user.id)

        if resuming:
            awarded = order.points_awarded
            logger.warning(f"Resuming rewards for order {order_id} ({awarded} points already awarded)")
        else:
            awarded = points.total_points
            self._award_sale(order_id, user.id, points, sale_type, add_ons_count)

        streak = self.streak_service.record_sale(user.id, sale_time)
        achievements = self.achievement_service.evaluate_achievements(user.id)
        streak.bonus_points = sum(
            unlock.points_reward for unlock in achievements
            if unlock.condition_type == CONDITION_SALES_STREAK
        )

        self.goal_service.record_sale(user.id, awarded, commission, sale_time, order_id=order_id)

        if streak.milestone_reached:
            self.activity_service.publish(
                EVENT_STREAK_MILESTONE,
                "Streak Milestone!",
                user_id=user.id,
                description=f"Reached a {streak.milestone_reached}-day sales streak",
                details={"streak_days": streak.milestone_reached}
            )

        self.order_repo.mark_rewards_completed(self.db, order_id)

        rank_change = build_rank_change(user.id, old_rank, self._weekly_rank(user.id))
        logger.info(
            f"Order {order_id} rewarded: {awarded} points, "
            f"streak {streak.current_streak}, {len(achievements)} achievements, "
            f"rank {rank_change.old_rank} -> {rank_change.new_rank}"
        )

        return OrderGamificationResult(
            points=points,
            streak=streak,
            achievements=achievements,
            rank_change=rank_change
        )

    def _award_sale(
        self,
        order_id: int,
        user_id: int,
        points: PointsCalculationResult,
        sale_type: str,
        add_ons_count: int
    ) -> None:
        """Claim the order's award and write the ledger entry in one commit"""
        self.stats_repo.get_or_create(self.db, user_id)
        if not self.order_repo.claim_award(self.db, order_id, points.total_points):
            self.db.rollback()
            raise PointsAlreadyAwardedException(order_id)

        description = f"Points for {sale_type} sale"
        if points.breakdown.addon_points > 0:
            description += f" + {add_ons_count} add-ons"
        try:
            self.points_service.award_points(
                user_id,
                points.total_points,
                POINT_REASON_SALE,
                source_type=POINT_SOURCE_ORDER,
                source_id=order_id,
                description=description
            )
        except Exception:
            self.db.rollback()
            raise

        self.activity_service.publish(
            EVENT_NEW_SALE,
            "New Sale!",
            user_id=user_id,
            description=f"Earned {points.total_points} points for a {sale_type} sale",
            details={"order_id": order_id, "points": points.total_points, "sale_type": sale_type}
        )

    def _weekly_rank(self, user_id: int) -> Optional[int]:
        rank = self.leaderboard_service.get_user_rank(user_id, RANK_CHANGE_TIME_RANGE).rank
        return rank or None
