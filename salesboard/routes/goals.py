"""
Goal HTTP routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.goal_service import GoalService
from salesboard.schemas import (
    ActionResult,
    AuthenticatedUser,
    GoalProgressResponse,
    GoalSuggestions,
    SalesGoalCreate,
    SalesGoalResponse,
    UserGoalsResponse,
    UserGoalsUpdate
)

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.get("/progress", response_model=ActionResult[GoalProgressResponse])
def get_goal_progress(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Targets, streak and today / week / month order and commission totals."""
    return ActionResult.ok(GoalService(db).get_goal_progress(user.id))


@router.put("", response_model=ActionResult[UserGoalsResponse])
def update_goals(
    data: UserGoalsUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    goals = GoalService(db).update_goals(user.id, data.daily_goal, data.weekly_goal, data.monthly_goal)
    return ActionResult.ok(UserGoalsResponse.model_validate(goals))


@router.get("/active", response_model=ActionResult[List[SalesGoalResponse]])
def get_active_goals(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    goals = GoalService(db).get_active_goals(user.id)
    return ActionResult.ok([SalesGoalResponse.model_validate(goal) for goal in goals])


@router.post("", response_model=ActionResult[SalesGoalResponse], status_code=201)
def set_goal(
    data: SalesGoalCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Start a goal; an active goal of the same type is cancelled."""
    goal = GoalService(db).set_goal(user.id, data.goal_type, data.metric, data.target_value)
    return ActionResult.ok(SalesGoalResponse.model_validate(goal))


@router.get("/suggestions", response_model=ActionResult[GoalSuggestions])
def get_goal_suggestions(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(GoalService(db).get_smart_suggestions(user.id))
