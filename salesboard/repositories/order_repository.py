"""
Order repository - Data access layer for Order and commission models.
Handles all database queries related to orders and commission rates.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_, func, update
from sqlalchemy.orm import Session

from salesboard.models import CommissionRate, Order, RoleCommissionRate
from salesboard.constants import ORDER_STATUS_CANCELLED


class OrderRepository:
    """Repository for Order data access"""

    @staticmethod
    def get_by_id(db: Session, order_id: int) -> Optional[Order]:
        """Get order by ID"""
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def get_by_salesperson(db: Session, user_id: int) -> List[Order]:
        """Orders entered by a salesperson, newest first"""
        return db.query(Order).filter(
            Order.salesperson_id == user_id
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def get_all(db: Session, status: Optional[str] = None) -> List[Order]:
        """All orders, optionally filtered by status"""
        query = db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def get_sales(
        db: Session,
        user_id: int,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[Order]:
        """Non-cancelled orders of a user, optionally in [start_time, end_time)"""
        query = db.query(Order).filter(
            and_(
                Order.salesperson_id == user_id,
                Order.status != ORDER_STATUS_CANCELLED
            )
        )
        if start_time is not None:
            query = query.filter(Order.created_at >= start_time)
        if end_time is not None:
            query = query.filter(Order.created_at < end_time)
        return query.order_by(Order.created_at).all()

    @staticmethod
    def count_sales(
        db: Session,
        user_id: int,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        plan_types: Optional[tuple] = None
    ) -> int:
        """Count non-cancelled orders of a user"""
        query = db.query(func.count(Order.id)).filter(
            and_(
                Order.salesperson_id == user_id,
                Order.status != ORDER_STATUS_CANCELLED
            )
        )
        if start_time is not None:
            query = query.filter(Order.created_at >= start_time)
        if end_time is not None:
            query = query.filter(Order.created_at < end_time)
        if plan_types:
            query = query.filter(Order.plan_type.in_(plan_types))
        return query.scalar() or 0

    @staticmethod
    def sum_commission(
        db: Session,
        user_id: int,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> float:
        """Sum of commission over non-cancelled orders of a user"""
        query = db.query(func.coalesce(func.sum(Order.commission_amount), 0.0)).filter(
            and_(
                Order.salesperson_id == user_id,
                Order.status != ORDER_STATUS_CANCELLED
            )
        )
        if start_time is not None:
            query = query.filter(Order.created_at >= start_time)
        if end_time is not None:
            query = query.filter(Order.created_at < end_time)
        return float(query.scalar() or 0.0)

    @staticmethod
    def count_sales_by_user(
        db: Session,
        user_ids: List[int],
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> dict:
        """Map user_id -> non-cancelled order count for a set of users"""
        if not user_ids:
            return {}
        query = db.query(Order.salesperson_id, func.count(Order.id)).filter(
            and_(
                Order.salesperson_id.in_(user_ids),
                Order.status != ORDER_STATUS_CANCELLED
            )
        )
        if start_time is not None:
            query = query.filter(Order.created_at >= start_time)
        if end_time is not None:
            query = query.filter(Order.created_at < end_time)
        return {user_id: count for user_id, count in query.group_by(Order.salesperson_id).all()}

    @staticmethod
    def create(db: Session, order: Order) -> Order:
        """Create new order"""
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def update(db: Session, order: Order) -> Order:
        """Update existing order"""
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def delete(db: Session, order: Order) -> None:
        """Delete an order"""
        db.delete(order)
        db.commit()

    @staticmethod
    def claim_award(db: Session, order_id: int, points: int) -> bool:
        """
        Mark the order as rewarded if nobody has done so yet.

        Conditional UPDATE guarded by points_awarded IS NULL; True means this
        caller owns the award. Not committed here: the claim commits together
        with the ledger entry.
        """
        result = db.execute(
            update(Order)
            .where(
                and_(
                    Order.id == order_id,
                    Order.points_awarded.is_(None),
                    Order.status != ORDER_STATUS_CANCELLED
                )
            )
            .values(points_awarded=points, points_awarded_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def claim_goal_progress(db: Session, order_id: int) -> bool:
        """
        Mark the order's sale as counted towards goals, once.

        Not committed here: commits together with the goal increments.
        """
        result = db.execute(
            update(Order)
            .where(and_(Order.id == order_id, Order.goals_recorded_at.is_(None)))
            .values(goals_recorded_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def mark_rewards_completed(db: Session, order_id: int) -> None:
        db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(rewards_completed_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        db.commit()


class CommissionRepository:
    """Repository for default and per-role commission rates"""

    @staticmethod
    def get_default_rates(db: Session) -> List[CommissionRate]:
        return db.query(CommissionRate).order_by(CommissionRate.plan_type).all()

    @staticmethod
    def get_default_rate(db: Session, plan_type: str) -> Optional[CommissionRate]:
        return db.query(CommissionRate).filter(CommissionRate.plan_type == plan_type).first()

    @staticmethod
    def get_role_rates(db: Session, role_name: Optional[str] = None) -> List[RoleCommissionRate]:
        query = db.query(RoleCommissionRate)
        if role_name:
            query = query.filter(RoleCommissionRate.role_name == role_name)
        return query.order_by(RoleCommissionRate.role_name, RoleCommissionRate.plan_type).all()

    @staticmethod
    def get_role_rate(db: Session, role_name: str, plan_type: str) -> Optional[RoleCommissionRate]:
        return db.query(RoleCommissionRate).filter(
            and_(
                RoleCommissionRate.role_name == role_name,
                RoleCommissionRate.plan_type == plan_type
            )
        ).first()

    @staticmethod
    def upsert_default_rate(db: Session, plan_type: str, amount: float) -> CommissionRate:
        """Create or update the default commission for a plan"""
        rate = CommissionRepository.get_default_rate(db, plan_type)
        if rate is None:
            rate = CommissionRate(plan_type=plan_type)
            db.add(rate)
        rate.amount = amount
        db.commit()
        db.refresh(rate)
        return rate

    @staticmethod
    def upsert_role_rate(
        db: Session,
        role_name: str,
        plan_type: str,
        amount: float
    ) -> RoleCommissionRate:
        """Create or update a role's commission override for a plan"""
        rate = CommissionRepository.get_role_rate(db, role_name, plan_type)
        if rate is None:
            rate = RoleCommissionRate(role_name=role_name, plan_type=plan_type)
            db.add(rate)
        rate.amount = amount
        db.commit()
        db.refresh(rate)
        return rate
