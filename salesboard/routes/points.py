"""
Points HTTP routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from salesboard.auth import ensure_role, require_user
from salesboard.database import get_db
from salesboard.services.points_service import PointsService
from salesboard.schemas import (
    ActionResult,
    AuthenticatedUser,
    PointAdjustment,
    PointConfigurationResponse,
    PointConfigurationUpdate,
    PointHistoryResponse,
    PointsCalculationResult,
    SaleType,
    UserPointsResponse
)
from salesboard.constants import ROLE_ADMIN

router = APIRouter(prefix="/api/points", tags=["points"])


@router.get("", response_model=ActionResult[UserPointsResponse])
def get_my_points(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Current balance, lifetime total and streak of the signed-in user."""
    stats = PointsService(db).get_user_points(user.id)
    return ActionResult.ok(UserPointsResponse.model_validate(stats))


@router.get("/users/{user_id}", response_model=ActionResult[UserPointsResponse])
def get_user_points(
    user_id: int,
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    stats = PointsService(db).get_user_points(user_id)
    return ActionResult.ok(UserPointsResponse.model_validate(stats))


@router.get("/history", response_model=ActionResult[List[PointHistoryResponse]])
def get_point_history(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Ledger entries of the signed-in user, newest first."""
    history = PointsService(db).get_point_history(user.id, limit)
    return ActionResult.ok([PointHistoryResponse.model_validate(entry) for entry in history])


@router.get("/calculate", response_model=ActionResult[PointsCalculationResult])
def calculate_points(
    sale_type: SaleType = Query(...),
    add_ons_count: int = Query(0, ge=0, le=20),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    """Preview the points a sale would earn with the current point values."""
    points_service = PointsService(db)
    return ActionResult.ok(
        points_service.calculate_sale_points(sale_type, add_ons_count, points_service.get_point_config())
    )


@router.post("/adjust", response_model=ActionResult[PointHistoryResponse])
def adjust_points(
    data: PointAdjustment,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Manual credit or debit (admin)."""
    ensure_role(user, (ROLE_ADMIN,), "Admin access required")
    entry = PointsService(db).adjust_points(data.user_id, data.points, data.description)
    return ActionResult.ok(PointHistoryResponse.model_validate(entry))


@router.get("/config", response_model=ActionResult[List[PointConfigurationResponse]])
def get_point_config(
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    configs = PointsService(db).get_point_configurations()
    return ActionResult.ok([PointConfigurationResponse.model_validate(config) for config in configs])


@router.put("/config/{sale_type}", response_model=ActionResult[PointConfigurationResponse])
def update_point_config(
    sale_type: str,
    data: PointConfigurationUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Change a sale type's (or "add_on") value for future sales (admin)."""
    ensure_role(user, (ROLE_ADMIN,), "Admin access required")
    config = PointsService(db).update_point_configuration(sale_type, data.points, data.description)
    return ActionResult.ok(PointConfigurationResponse.model_validate(config))
