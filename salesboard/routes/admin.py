"""
Admin HTTP routes: users, roles and commission rates.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.admin_service import AdminService
from salesboard.schemas import (
    ActionResult,
    AuthenticatedUser,
    CommissionRateResponse,
    CommissionRateUpdate,
    RoleCommissionRateResponse,
    UserResponse,
    UserRoleUpdate
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=ActionResult[List[UserResponse]])
def get_users(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    users = AdminService(db).get_users(user)
    return ActionResult.ok([UserResponse.model_validate(u) for u in users])


@router.patch("/users/{user_id}/role", response_model=ActionResult[UserResponse])
def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    updated = AdminService(db).update_user_role(user, user_id, data.role)
    return ActionResult.ok(UserResponse.model_validate(updated))


@router.get("/commissions", response_model=ActionResult[List[CommissionRateResponse]])
def get_commission_rates(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    rates = AdminService(db).get_commission_rates(user)
    return ActionResult.ok([CommissionRateResponse.model_validate(rate) for rate in rates])


@router.put("/commissions/{plan_type}", response_model=ActionResult[CommissionRateResponse])
def set_commission_rate(
    plan_type: str,
    data: CommissionRateUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    rate = AdminService(db).set_commission_rate(user, plan_type, data.amount)
    return ActionResult.ok(CommissionRateResponse.model_validate(rate))


@router.get("/commissions/roles/{role_name}", response_model=ActionResult[List[RoleCommissionRateResponse]])
def get_role_commission_rates(
    role_name: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    rates = AdminService(db).get_role_commission_rates(user, role_name)
    return ActionResult.ok([RoleCommissionRateResponse.model_validate(rate) for rate in rates])


@router.put(
    "/commissions/roles/{role_name}/{plan_type}",
    response_model=ActionResult[RoleCommissionRateResponse]
)
def set_role_commission_rate(
    role_name: str,
    plan_type: str,
    data: CommissionRateUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Override the commission a role earns on one plan."""
    rate = AdminService(db).set_role_commission_rate(user, role_name, plan_type, data.amount)
    return ActionResult.ok(RoleCommissionRateResponse.model_validate(rate))


@router.post(
    "/commissions/roles/{role_name}/initialize",
    response_model=ActionResult[List[RoleCommissionRateResponse]]
)
def initialize_role_rates(
    role_name: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Copy the default rates into any missing overrides for the role."""
    rates = AdminService(db).initialize_role_rates(user, role_name)
    return ActionResult.ok([RoleCommissionRateResponse.model_validate(rate) for rate in rates])
