"""
Leaderboard HTTP routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.leaderboard_service import LeaderboardService
from salesboard.schemas import ActionResult, AuthenticatedUser, LeaderboardEntry, TimeRange, UserRankResponse

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=ActionResult[List[LeaderboardEntry]])
def get_leaderboard(
    time_range: TimeRange = Query("week"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Ranked salespeople for today, this week, this month or all time."""
    return LeaderboardService(db).get_leaderboard_result(time_range, limit, current_user_id=user.id)


@router.get("/me", response_model=ActionResult[UserRankResponse])
def get_my_rank(
    time_range: TimeRange = Query("week"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(LeaderboardService(db).get_user_rank(user.id, time_range))
