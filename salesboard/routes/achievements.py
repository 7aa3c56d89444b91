"""
Achievement HTTP routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.achievement_service import AchievementService
from salesboard.schemas import (
    AchievementProgressResponse,
    AchievementResponse,
    AchievementSeenRequest,
    ActionResult,
    AuthenticatedUser,
    UserAchievementResponse,
    UserAchievementsResponse
)

router = APIRouter(prefix="/api/achievements", tags=["achievements"])


@router.get("", response_model=ActionResult[List[AchievementResponse]])
def get_achievements(
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    achievements = AchievementService(db).get_all_achievements()
    return ActionResult.ok([AchievementResponse.model_validate(a) for a in achievements])


@router.get("/me", response_model=ActionResult[UserAchievementsResponse])
def get_my_achievements(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Unlocked achievements with per-category completion stats."""
    return ActionResult.ok(AchievementService(db).get_user_achievements(user.id))


@router.get("/progress", response_model=ActionResult[AchievementProgressResponse])
def get_achievement_progress(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(AchievementService(db).get_achievement_progress(user.id))


@router.get("/notifications", response_model=ActionResult[List[UserAchievementResponse]])
def get_pending_notifications(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Unlocks the user has not been shown yet."""
    return ActionResult.ok(AchievementService(db).get_pending_notifications(user.id))


@router.post("/notifications/seen", response_model=ActionResult[int])
def mark_seen(
    data: AchievementSeenRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(AchievementService(db).mark_seen(user.id, data.achievement_ids))


@router.post("/notifications/seen-all", response_model=ActionResult[int])
def mark_all_seen(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(AchievementService(db).mark_all_seen(user.id))


@router.get("/{achievement_id}", response_model=ActionResult[AchievementResponse])
def get_achievement(
    achievement_id: int,
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    achievement = AchievementService(db).get_achievement(achievement_id)
    return ActionResult.ok(AchievementResponse.model_validate(achievement))
