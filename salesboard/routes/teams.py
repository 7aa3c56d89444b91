"""
Team and team battle HTTP routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.team_service import TeamService
from salesboard.schemas import (
    ActionResult,
    AuthenticatedUser,
    BattleCreate,
    BattleDetailResponse,
    TeamBattleResponse,
    TeamCreate,
    TeamDetailResponse,
    TeamLeaderboardEntry,
    TeamMemberAdd,
    TeamResponse
)

router = APIRouter(prefix="/api/teams", tags=["teams"])
battles_router = APIRouter(prefix="/api/battles", tags=["battles"])


@router.get("", response_model=ActionResult[List[TeamResponse]])
def get_teams(
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    teams = TeamService(db).get_teams()
    return ActionResult.ok([TeamResponse.model_validate(team) for team in teams])


@router.get("/leaderboard", response_model=ActionResult[List[TeamLeaderboardEntry]])
def get_team_leaderboard(
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(TeamService(db).get_team_leaderboard())


@router.get("/me", response_model=ActionResult[Optional[TeamResponse]])
def get_my_team(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """The signed-in user's team, or null."""
    team = TeamService(db).get_current_user_team(user.id)
    return ActionResult.ok(TeamResponse.model_validate(team) if team else None)


@router.get("/{team_id}", response_model=ActionResult[TeamDetailResponse])
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(TeamService(db).get_team(team_id))


@router.post("", response_model=ActionResult[TeamResponse], status_code=201)
def create_team(
    data: TeamCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    team = TeamService(db).create_team(user, data)
    return ActionResult.ok(TeamResponse.model_validate(team))


@router.post("/{team_id}/members", response_model=ActionResult[TeamDetailResponse])
def add_team_member(
    team_id: int,
    data: TeamMemberAdd,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Assign a user to the team, moving them out of any previous team."""
    team_service = TeamService(db)
    team_service.add_member(user, team_id, data.user_id, data.role)
    return ActionResult.ok(team_service.get_team(team_id))


@router.delete("/{team_id}/members/{user_id}")
def remove_team_member(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    TeamService(db).remove_member(user, team_id, user_id)
    return ActionResult.ok()


# ===== BATTLES =====

@battles_router.get("/active", response_model=ActionResult[Optional[BattleDetailResponse]])
def get_active_battle(
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    """The running battle with live standings, or null."""
    return ActionResult.ok(TeamService(db).get_active_battle())


@battles_router.get("", response_model=ActionResult[List[TeamBattleResponse]])
def get_battles(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    battles = TeamService(db).get_all_battles(limit)
    return ActionResult.ok([TeamBattleResponse.model_validate(battle) for battle in battles])


@battles_router.post("", response_model=ActionResult[TeamBattleResponse], status_code=201)
def create_battle(
    data: BattleCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    battle = TeamService(db).create_battle(user, data)
    return ActionResult.ok(TeamBattleResponse.model_validate(battle))
