"""
Achievement service.
Evaluates achievement conditions against a user's sales and stats, unlocks
at most once per user and pays out the reward points.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from salesboard.models import Achievement, Order, UserStats
from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.activity_service import ActivityService
from salesboard.services.points_service import PointsService
from salesboard.exceptions import AchievementNotFoundException
from salesboard.schemas import (
    AchievementProgressResponse,
    AchievementResponse,
    AchievementStats,
    AchievementUnlockResult,
    CategoryStats,
    UserAchievementResponse,
    UserAchievementsResponse
)
from salesboard.constants import (
    CONDITION_SALES_COUNT,
    CONDITION_SALES_STREAK,
    CONDITION_POINTS_TOTAL,
    CONDITION_CUSTOM,
    EARLY_BIRD_HOUR,
    NIGHT_OWL_HOUR,
    HIGH_TIER_PLANS,
    PLAN_FOUNDERS_CLUB,
    POINT_REASON_ACHIEVEMENT,
    POINT_SOURCE_ACHIEVEMENT,
    EVENT_ACHIEVEMENT_UNLOCKED
)

logger = logging.getLogger("salesboard.achievements")


# ===== CONDITIONS =====

@dataclass(frozen=True)
class SalesCount:
    threshold: int


@dataclass(frozen=True)
class SalesStreak:
    threshold: int


@dataclass(frozen=True)
class PointsTotal:
    threshold: int


@dataclass(frozen=True)
class Custom:
    key: str
    threshold: int


Condition = Union[SalesCount, SalesStreak, PointsTotal, Custom]


def parse_condition(achievement: Achievement) -> Optional[Condition]:
    """Typed condition of a definition; None for an unknown condition type"""
    threshold = achievement.condition_value or 0
    if achievement.condition_type == CONDITION_SALES_COUNT:
        return SalesCount(threshold)
    if achievement.condition_type == CONDITION_SALES_STREAK:
        return SalesStreak(threshold)
    if achievement.condition_type == CONDITION_POINTS_TOTAL:
        return PointsTotal(threshold)
    if achievement.condition_type == CONDITION_CUSTOM:
        return Custom(achievement.name, threshold)
    return None


@dataclass(frozen=True)
class SaleRecord:
    created_at: datetime
    plan_type: str


@dataclass
class UserProgress:
    """What conditions are checked against: non-cancelled sales and the stats row"""
    sales: List[SaleRecord] = field(default_factory=list)
    current_streak: int = 0
    lifetime_points: int = 0

    @property
    def sales_count(self) -> int:
        return len(self.sales)


def _has_early_sale(progress: UserProgress, threshold: int) -> bool:
    return any(sale.created_at.hour < EARLY_BIRD_HOUR for sale in progress.sales)


def _has_late_sale(progress: UserProgress, threshold: int) -> bool:
    return any(sale.created_at.hour >= NIGHT_OWL_HOUR for sale in progress.sales)


def _has_full_weekend(progress: UserProgress, threshold: int) -> bool:
    """A Saturday sale followed by a sale on the next day"""
    days = {sale.created_at.date() for sale in progress.sales}
    return any(day.weekday() == 5 and day + timedelta(days=1) in days for day in days)


def _best_single_day(progress: UserProgress, threshold: int) -> bool:
    per_day = Counter(sale.created_at.date() for sale in progress.sales)
    return bool(per_day) and max(per_day.values()) >= max(threshold, 1)


def _founders_club_sales(progress: UserProgress, threshold: int) -> bool:
    count = sum(1 for sale in progress.sales if sale.plan_type == PLAN_FOUNDERS_CLUB)
    return count >= max(threshold, 1)


def _high_tier_sales(progress: UserProgress, threshold: int) -> bool:
    count = sum(1 for sale in progress.sales if sale.plan_type in HIGH_TIER_PLANS)
    return count >= max(threshold, 1)


CUSTOM_EVALUATORS = {
    "early_bird": _has_early_sale,
    "night_owl": _has_late_sale,
    "weekend_warrior": _has_full_weekend,
    "single_day_sales": _best_single_day,
    "founders_club_sales": _founders_club_sales,
    "high_tier_sales": _high_tier_sales,
}


def is_satisfied(condition: Condition, progress: UserProgress) -> bool:
    """Check one condition; unknown custom keys never unlock"""
    if isinstance(condition, SalesCount):
        return progress.sales_count >= condition.threshold
    if isinstance(condition, SalesStreak):
        return progress.current_streak >= condition.threshold
    if isinstance(condition, PointsTotal):
        return progress.lifetime_points >= condition.threshold
    if isinstance(condition, Custom):
        evaluator = CUSTOM_EVALUATORS.get(condition.key)
        return evaluator is not None and evaluator(progress, condition.threshold)
    return False


# ===== SERVICE =====

class AchievementService:
    """Service for achievement evaluation, unlocks and notifications"""

    def __init__(self, db: Session):
        self.db = db
        self.achievement_repo = AchievementRepository()
        self.order_repo = OrderRepository()
        self.stats_repo = UserStatsRepository()
        self.points_service = PointsService(db)
        self.activity_service = ActivityService(db)

    def load_progress(self, user_id: int) -> UserProgress:
        stats: UserStats = self.stats_repo.get_or_create(self.db, user_id)
        orders: List[Order] = self.order_repo.get_sales(self.db, user_id)
        return UserProgress(
            sales=[SaleRecord(order.created_at, order.plan_type) for order in orders],
            current_streak=stats.current_streak or 0,
            lifetime_points=stats.lifetime_points or 0
        )

    def evaluate_achievements(self, user_id: int) -> List[AchievementUnlockResult]:
        """
        Unlock every active achievement the user now qualifies for.

        One pass over a single progress snapshot: reward points paid out in
        this pass count towards points conditions on the next evaluation.
        An unlock lost to a concurrent request is treated as already held.
        """
        progress = self.load_progress(user_id)
        unlocked_ids = self.achievement_repo.get_unlocked_ids(self.db, user_id)
        results = []

        for achievement in self.achievement_repo.get_active(self.db):
            if achievement.id in unlocked_ids:
                continue

            condition = parse_condition(achievement)
            if condition is None or not is_satisfied(condition, progress):
                continue

            # The unlock row and its reward commit together
            entry = self.achievement_repo.unlock(self.db, user_id, achievement.id, commit=False)
            if entry is None:
                logger.debug(f"Achievement {achievement.name} already held by user {user_id}")
                continue

            try:
                if achievement.points_reward:
                    self.points_service.award_points(
                        user_id,
                        achievement.points_reward,
                        POINT_REASON_ACHIEVEMENT,
                        source_type=POINT_SOURCE_ACHIEVEMENT,
                        source_id=achievement.id,
                        description=f'Unlocked "{achievement.display_name}" achievement'
                    )
                else:
                    self.db.commit()
            except Exception:
                self.db.rollback()
                raise

            logger.info(f"User {user_id} unlocked achievement {achievement.name}")
            self.activity_service.publish(
                EVENT_ACHIEVEMENT_UNLOCKED,
                "Achievement Unlocked!",
                user_id=user_id,
                description=f'Earned "{achievement.display_name}"',
                details={
                    "achievement_id": achievement.id,
                    "achievement_name": achievement.name,
                    "points_reward": achievement.points_reward or 0
                }
            )

            results.append(AchievementUnlockResult(
                achievement_id=achievement.id,
                achievement_name=achievement.name,
                achievement_display_name=achievement.display_name,
                category=achievement.category,
                points_reward=achievement.points_reward or 0,
                condition_type=achievement.condition_type
            ))

        return results

    def get_all_achievements(self) -> List[Achievement]:
        return self.achievement_repo.get_active(self.db)

    def get_achievement(self, achievement_id: int) -> Achievement:
        achievement = self.achievement_repo.get_by_id(self.db, achievement_id)
        if achievement is None:
            raise AchievementNotFoundException(achievement_id)
        return achievement

    def get_user_achievements(self, user_id: int) -> UserAchievementsResponse:
        """Unlocked achievements, the visible locked ones and per-category stats"""
        definitions = self.achievement_repo.get_active(self.db)
        unlocked = self.achievement_repo.get_user_achievements(self.db, user_id)
        unlocked_ids = {entry.achievement_id for entry in unlocked}

        by_category = {}
        for achievement in definitions:
            stats = by_category.setdefault(achievement.category, CategoryStats())
            stats.total += 1
            if achievement.id in unlocked_ids:
                stats.unlocked += 1

        available = [
            AchievementResponse.model_validate(achievement)
            for achievement in definitions
            if achievement.id not in unlocked_ids and not achievement.is_secret
        ]

        return UserAchievementsResponse(
            unlocked=[UserAchievementResponse.model_validate(entry) for entry in unlocked],
            available=available,
            stats=AchievementStats(
                total_unlocked=len(unlocked),
                total_available=len(definitions),
                total_points=sum(entry.achievement.points_reward or 0 for entry in unlocked),
                by_category=by_category
            )
        )

    def get_pending_notifications(self, user_id: int) -> List[UserAchievementResponse]:
        """Unlocks not yet shown to the user"""
        return [
            UserAchievementResponse.model_validate(entry)
            for entry in self.achievement_repo.get_unnotified(self.db, user_id)
        ]

    def mark_seen(self, user_id: int, achievement_ids: List[int]) -> int:
        return self.achievement_repo.mark_notified(self.db, user_id, achievement_ids)

    def mark_all_seen(self, user_id: int) -> int:
        return self.achievement_repo.mark_notified(self.db, user_id)

    def get_achievement_progress(self, user_id: int) -> AchievementProgressResponse:
        progress = self.load_progress(user_id)
        return AchievementProgressResponse(
            sales_count=progress.sales_count,
            streak_days=progress.current_streak,
            total_points=progress.lifetime_points
        )
