"""
Streak service.
Tracks consecutive calendar days with at least one sale.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.date_service import DateService
from salesboard.schemas import StreakUpdateResult
from salesboard.constants import STREAK_MILESTONES

logger = logging.getLogger("salesboard.streaks")


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_sale_date: Optional[date] = None


@dataclass(frozen=True)
class StreakTransition:
    state: StreakState
    streak_broken: bool
    incremented: bool


def advance_streak(state: StreakState, sale_day: date) -> StreakTransition:
    """
    Apply a sale on sale_day to a streak.

    No previous sale starts a streak of 1; a second sale on the same day
    changes nothing; the next calendar day extends the streak; a gap of two
    or more days restarts it at 1. A sale dated before the last sale day
    leaves the state untouched.
    """
    last = state.last_sale_date

    if last is None:
        current = 1
        broken = False
    elif sale_day <= last:
        return StreakTransition(state=state, streak_broken=False, incremented=False)
    elif sale_day - last == timedelta(days=1):
        current = state.current_streak + 1
        broken = False
    else:
        current = 1
        broken = True

    new_state = StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_sale_date=sale_day
    )
    return StreakTransition(state=new_state, streak_broken=broken, incremented=not broken)


def milestone_for(previous_streak: int, new_streak: int) -> Optional[int]:
    """Milestone newly reached by moving from previous_streak to new_streak"""
    if new_streak != previous_streak and new_streak in STREAK_MILESTONES:
        return new_streak
    return None


class StreakService:
    """Service for persisted streak updates"""

    def __init__(self, db: Session):
        self.db = db
        self.stats_repo = UserStatsRepository()
        self.date_service = DateService()

    def record_sale(self, user_id: int, sale_time: datetime) -> StreakUpdateResult:
        """
        Advance the user's streak for a sale made at sale_time.

        The stored row changes through one conditional UPDATE; the returned
        counters are read back afterwards. bonus_points is left at 0 here and
        filled in by the caller from streak achievements it unlocks.
        """
        sale_day = self.date_service.sale_day(sale_time)

        before = self.stats_repo.get_or_create(self.db, user_id)
        previous = StreakState(
            current_streak=before.current_streak or 0,
            longest_streak=before.longest_streak or 0,
            last_sale_date=before.last_sale_date
        )
        transition = advance_streak(previous, sale_day)

        self.stats_repo.record_sale_day(self.db, user_id, sale_day)

        after = self.stats_repo.get_by_user(self.db, user_id)
        self.db.refresh(after)

        milestone = milestone_for(previous.current_streak, after.current_streak)
        if transition.streak_broken:
            logger.info(
                f"Streak for user {user_id} reset after {previous.current_streak} days"
            )
        if milestone:
            logger.info(f"User {user_id} reached a {milestone}-day streak")

        return StreakUpdateResult(
            current_streak=after.current_streak,
            longest_streak=after.longest_streak,
            streak_broken=transition.streak_broken,
            milestone_reached=milestone,
            bonus_points=0
        )
