"""
Order service.
Handles order entry, plan pricing, commission lookup and order administration.
"""
import csv
import io
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from salesboard.auth import ensure_role
from salesboard.models import Order
from salesboard.repositories.order_repository import CommissionRepository, OrderRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.services.gamification_service import GamificationService
from salesboard.exceptions import (
    AccessDeniedException,
    InvalidStatusTransitionException,
    OrderNotFoundException,
    ValidationException
)
from salesboard.schemas import (
    AdminOrderResponse, AuthenticatedUser, OrderCreate, OrderCreateResult, OrderResponse
)
from salesboard.constants import (
    MANAGER_ROLES,
    ROLE_ADMIN,
    PLAN_PRICING,
    TIER_VOICE_AUTOPAY,
    TIER_AUTOPAY_ONLY,
    TIER_NO_DISCOUNTS,
    ORDER_STATUS_NEW,
    ORDER_STATUS_TRANSITIONS
)

logger = logging.getLogger("salesboard.orders")

CSV_HEADERS = [
    "ID", "Customer Name", "Phone", "Email", "Address", "City", "State", "ZIP",
    "Plan", "Sale Type", "Add-ons", "Monthly Price", "Install Date", "Time Slot",
    "Status", "Salesperson", "Commission", "Commission Paid", "Points",
    "Promo Code", "Created At"
]


def determine_pricing_tier(has_voice_line: bool, has_autopay: bool) -> str:
    """Voice line discount only applies together with autopay"""
    if has_voice_line and has_autopay:
        return TIER_VOICE_AUTOPAY
    if has_autopay:
        return TIER_AUTOPAY_ONLY
    return TIER_NO_DISCOUNTS


def get_monthly_price(plan_type: str, pricing_tier: str) -> float:
    try:
        return float(PLAN_PRICING[plan_type][pricing_tier])
    except KeyError:
        raise ValidationException("plan_type", f"no price for {plan_type} / {pricing_tier}")


class OrderService:
    """Service for order entry and administration"""

    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository()
        self.commission_repo = CommissionRepository()
        self.user_repo = UserRepository()

    def get_commission_amount(self, role: str, plan_type: str) -> float:
        """Commission for a plan: the role's override, else the default rate, else 0"""
        role_rate = self.commission_repo.get_role_rate(self.db, role, plan_type)
        if role_rate is not None:
            return role_rate.amount or 0.0

        default_rate = self.commission_repo.get_default_rate(self.db, plan_type)
        if default_rate is not None:
            return default_rate.amount or 0.0

        return 0.0

    def create_order(self, user: AuthenticatedUser, data: OrderCreate) -> OrderCreateResult:
        """
        Persist an order, then reward it.

        The order is committed before any reward logic runs. If rewarding
        fails the order stays, the error is logged and returned in
        gamification_error, and the reward can be retried through
        GamificationService.process_order.
        """
        pricing_tier = determine_pricing_tier(data.has_voice_line, data.has_autopay)

        order = Order(
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            customer_email=data.customer_email or None,
            service_address=data.service_address,
            city=data.city,
            state=data.state or "TX",
            zip=data.zip,
            plan_type=data.plan_type,
            pricing_tier=pricing_tier,
            monthly_price=get_monthly_price(data.plan_type, pricing_tier),
            install_date=data.install_date,
            install_time_slot=data.install_time_slot,
            access_notes=data.access_notes or None,
            promo_code=data.promo_code or None,
            sale_type=data.sale_type,
            add_ons_count=data.add_ons_count,
            salesperson_id=user.id,
            status=ORDER_STATUS_NEW,
            commission_amount=self.get_commission_amount(user.role, data.plan_type),
            commission_paid=False,
            created_at=datetime.now()
        )
        order = self.order_repo.create(self.db, order)
        order_id = order.id
        logger.info(f"Order {order_id} created by user {user.id} ({data.plan_type}, {data.sale_type})")

        gamification = None
        gamification_error = None
        try:
            gamification = GamificationService(self.db).process_order(order_id, user)
        except Exception as e:
            self.db.rollback()
            logger.exception(f"Gamification failed for order {order_id}")
            gamification_error = str(e) or "Failed to process gamification"

        order = self.order_repo.get_by_id(self.db, order_id)
        return OrderCreateResult(
            order=OrderResponse.model_validate(order),
            gamification=gamification,
            gamification_error=gamification_error
        )

    def get_my_orders(self, user: AuthenticatedUser) -> List[Order]:
        return self.order_repo.get_by_salesperson(self.db, user.id)

    def get_order(self, user: AuthenticatedUser, order_id: int) -> Order:
        """Order visible to its salesperson and to managers"""
        order = self.order_repo.get_by_id(self.db, order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        if order.salesperson_id != user.id and user.role not in MANAGER_ROLES:
            raise AccessDeniedException("Not authorized")
        return order

    def get_all_orders(self, user: AuthenticatedUser, status: Optional[str] = None) -> List[AdminOrderResponse]:
        """Every order with the salesperson's name attached (managers)"""
        ensure_role(user, MANAGER_ROLES, "Manager access required")

        orders = self.order_repo.get_all(self.db, status)
        names = {u.id: u.name for u in self.user_repo.get_all(self.db)}
        return [
            AdminOrderResponse(
                **OrderResponse.model_validate(order).model_dump(),
                salesperson_name=names.get(order.salesperson_id, "Unknown")
            )
            for order in orders
        ]

    def update_order_status(self, user: AuthenticatedUser, order_id: int, status: str) -> Order:
        """
        Move an order along new -> scheduled -> installed -> completed.

        Any order that is not completed or cancelled may be cancelled.
        Points already awarded for a cancelled order are kept.
        """
        ensure_role(user, MANAGER_ROLES, "Manager access required")

        order = self.order_repo.get_by_id(self.db, order_id)
        if order is None:
            raise OrderNotFoundException(order_id)

        allowed = ORDER_STATUS_TRANSITIONS.get(order.status, ())
        if status not in allowed:
            raise InvalidStatusTransitionException(order.status, status)

        logger.info(f"Order {order_id} status {order.status} -> {status} by user {user.id}")
        order.status = status
        return self.order_repo.update(self.db, order)

    def delete_order(self, user: AuthenticatedUser, order_id: int) -> None:
        ensure_role(user, (ROLE_ADMIN,), "Admin access required")

        order = self.order_repo.get_by_id(self.db, order_id)
        if order is None:
            raise OrderNotFoundException(order_id)

        self.order_repo.delete(self.db, order)
        logger.info(f"Order {order_id} deleted by user {user.id}")

    def export_orders_csv(self, user: AuthenticatedUser) -> str:
        """All orders as CSV text, newest first (managers)"""
        ensure_role(user, MANAGER_ROLES, "Manager access required")

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_HEADERS)

        for order in self.get_all_orders(user):
            writer.writerow([
                order.id,
                order.customer_name,
                order.customer_phone,
                order.customer_email or "",
                order.service_address,
                order.city,
                order.state,
                order.zip,
                order.plan_type,
                order.sale_type,
                order.add_ons_count,
                order.monthly_price,
                order.install_date.isoformat(),
                order.install_time_slot,
                order.status,
                order.salesperson_name,
                order.commission_amount or 0,
                "Yes" if order.commission_paid else "No",
                order.points_awarded if order.points_awarded is not None else "",
                order.promo_code or "",
                order.created_at.isoformat()
            ])

        return output.getvalue()
