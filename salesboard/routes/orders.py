"""
Order HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.gamification_service import GamificationService
from salesboard.services.order_service import OrderService
from salesboard.schemas import (
    ActionResult,
    AdminOrderResponse,
    AuthenticatedUser,
    OrderCreate,
    OrderCreateResult,
    OrderGamificationResult,
    OrderResponse,
    OrderStatus,
    OrderStatusUpdate
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=ActionResult[OrderCreateResult], status_code=201)
def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Record a sale and award its points, streak, achievements and goals."""
    return ActionResult.ok(OrderService(db).create_order(user, data))


@router.get("", response_model=ActionResult[List[OrderResponse]])
def get_my_orders(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    orders = OrderService(db).get_my_orders(user)
    return ActionResult.ok([OrderResponse.model_validate(order) for order in orders])


@router.get("/all", response_model=ActionResult[List[AdminOrderResponse]])
def get_all_orders(
    status: Optional[OrderStatus] = Query(None),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """All orders with salesperson names (managers and admins)."""
    return ActionResult.ok(OrderService(db).get_all_orders(user, status))


@router.get("/export")
def export_orders(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Download every order as CSV (managers and admins)."""
    content = OrderService(db).export_orders_csv(user)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=orders.csv"}
    )


@router.get("/{order_id}", response_model=ActionResult[OrderResponse])
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    order = OrderService(db).get_order(user, order_id)
    return ActionResult.ok(OrderResponse.model_validate(order))


@router.patch("/{order_id}/status", response_model=ActionResult[OrderResponse])
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    order = OrderService(db).update_order_status(user, order_id, data.status)
    return ActionResult.ok(OrderResponse.model_validate(order))


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    OrderService(db).delete_order(user, order_id)
    return ActionResult.ok()


@router.post("/{order_id}/gamification", response_model=ActionResult[OrderGamificationResult])
def process_order_gamification(
    order_id: int,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    """Award an order that was saved without its rewards; rejected if already awarded."""
    return ActionResult.ok(GamificationService(db).process_order(order_id, user))
