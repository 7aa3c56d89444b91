"""
Leaderboard service.
Ranks salespeople by ledger points within a time window and keeps daily
rank snapshots for rank-change arrows.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salesboard.models import LeaderboardSnapshot, User
from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.leaderboard_repository import LeaderboardRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.services.date_service import DateService
from salesboard.exceptions import ValidationException
from salesboard.schemas import (
    ActionResult, LeaderboardBadge, LeaderboardEntry, UserRankResponse
)
from salesboard.constants import (
    TIME_RANGES,
    TIME_RANGE_WEEK,
    SNAPSHOT_PERIOD_BY_RANGE,
    LEADERBOARD_BADGE_LIMIT
)

logger = logging.getLogger("salesboard.leaderboard")


class LeaderboardService:
    """Service for leaderboard aggregation"""

    def __init__(self, db: Session):
        self.db = db
        self.leaderboard_repo = LeaderboardRepository()
        self.user_repo = UserRepository()
        self.order_repo = OrderRepository()
        self.stats_repo = UserStatsRepository()
        self.achievement_repo = AchievementRepository()
        self.date_service = DateService()

    def rank_users(self, time_range: str, now: datetime) -> List[tuple[User, int]]:
        """
        Active users with positive points in the window, best first.

        Ties are broken by account creation time, then by user id, so the
        order is the same on every read.
        """
        if time_range not in TIME_RANGES:
            raise ValidationException("time_range", f"unknown time range '{time_range}'")

        start = self.date_service.get_range_start(time_range, now)
        totals = self.leaderboard_repo.get_point_totals(self.db, start, now)
        totals = {user_id: points for user_id, points in totals.items() if points > 0}

        users = [
            user for user in self.user_repo.get_by_ids(self.db, list(totals))
            if user.is_active
        ]
        users.sort(key=lambda user: (-totals[user.id], user.created_at or datetime.min, user.id))
        return [(user, totals[user.id]) for user in users]

    def get_leaderboard(
        self,
        time_range: str = TIME_RANGE_WEEK,
        limit: int = 50,
        current_user_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[LeaderboardEntry]:
        """
        Ranked entries for a time range.

        Args:
            time_range: "today", "week" (from Sunday), "month" or "all-time"
            limit: Maximum number of entries returned
            current_user_id: User whose entry is flagged is_current_user
            now: Reference moment (defaults to the current time)

        Returns:
            Entries with rank, points, order count, streak, up to three most
            recent badges and the change against the latest snapshot
        """
        now = now or datetime.now()
        ranked = self.rank_users(time_range, now)[:max(limit, 0)]
        user_ids = [user.id for user, _ in ranked]

        start = self.date_service.get_range_start(time_range, now)
        order_counts = self.order_repo.count_sales_by_user(self.db, user_ids, start, now)
        streaks = {
            stats.user_id: stats.current_streak or 0
            for stats in self.stats_repo.get_by_users(self.db, user_ids)
        }
        badges = self._get_badges(user_ids)
        previous_ranks = self.leaderboard_repo.get_latest_snapshot_ranks(
            self.db, SNAPSHOT_PERIOD_BY_RANGE[time_range]
        )

        entries = []
        for index, (user, points) in enumerate(ranked):
            rank = index + 1
            previous = previous_ranks.get(user.id)
            entries.append(LeaderboardEntry(
                rank=rank,
                user_id=user.id,
                user_name=user.name,
                total_points=points,
                order_count=order_counts.get(user.id, 0),
                streak_days=streaks.get(user.id, 0),
                is_current_user=user.id == current_user_id,
                rank_change=previous - rank if previous is not None else None,
                badges=badges.get(user.id, [])
            ))
        return entries

    def get_leaderboard_result(
        self,
        time_range: str = TIME_RANGE_WEEK,
        limit: int = 50,
        current_user_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> ActionResult:
        """get_leaderboard, with datastore failures reported as an empty result"""
        try:
            entries = self.get_leaderboard(time_range, limit, current_user_id, now)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Leaderboard query failed for {time_range}")
            return ActionResult(success=False, error=str(e), data=[])
        return ActionResult(success=True, data=entries)

    def _get_badges(self, user_ids: List[int]) -> Dict[int, List[LeaderboardBadge]]:
        badges: Dict[int, List[LeaderboardBadge]] = {}
        for entry in self.achievement_repo.get_recent_for_users(self.db, user_ids):
            user_badges = badges.setdefault(entry.user_id, [])
            if len(user_badges) < LEADERBOARD_BADGE_LIMIT:
                user_badges.append(LeaderboardBadge(
                    id=entry.achievement.id,
                    icon=entry.achievement.icon,
                    name=entry.achievement.display_name
                ))
        return badges

    def get_user_rank(
        self,
        user_id: int,
        time_range: str = TIME_RANGE_WEEK,
        now: Optional[datetime] = None
    ) -> UserRankResponse:
        """Position of one user; rank 0 when the user has no points in the window"""
        ranked = self.rank_users(time_range, now or datetime.now())
        for index, (user, points) in enumerate(ranked):
            if user.id == user_id:
                return UserRankResponse(rank=index + 1, total=len(ranked), points=points)
        return UserRankResponse(rank=0, total=len(ranked), points=0)

    def take_snapshots(self, as_of: datetime, snapshot_date: Optional[date] = None) -> Dict[str, int]:
        """
        Store every user's rank for each period as of a moment.

        Snapshots of the same period and date are replaced, so the job can be
        re-run safely. Returns the number of rows written per period.
        """
        snapshot_date = snapshot_date or as_of.date()
        written = {}

        for time_range in TIME_RANGES:
            period_type = SNAPSHOT_PERIOD_BY_RANGE[time_range]
            snapshots = [
                LeaderboardSnapshot(
                    user_id=user.id,
                    period_type=period_type,
                    snapshot_date=snapshot_date,
                    rank=index + 1,
                    total_points=points,
                    created_at=datetime.now()
                )
                for index, (user, points) in enumerate(self.rank_users(time_range, as_of))
            ]
            written[period_type] = self.leaderboard_repo.replace_snapshots(
                self.db, period_type, snapshot_date, snapshots
            )

        logger.info(f"Leaderboard snapshots for {snapshot_date}: {written}")
        return written
