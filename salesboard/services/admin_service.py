"""
Admin service.
Handles commission rate administration and user role management.
"""
import logging
from typing import List
from sqlalchemy.orm import Session

from salesboard.auth import ensure_role
from salesboard.models import CommissionRate, RoleCommissionRate, User
from salesboard.repositories.order_repository import CommissionRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.exceptions import UserNotFoundException, ValidationException
from salesboard.schemas import AuthenticatedUser
from salesboard.constants import PLAN_TYPES, ROLE_ADMIN

logger = logging.getLogger("salesboard.admin")

ADMIN_ONLY = (ROLE_ADMIN,)
ADMIN_REQUIRED = "Admin access required"


class AdminService:
    """Service for admin-only configuration"""

    def __init__(self, db: Session):
        self.db = db
        self.commission_repo = CommissionRepository()
        self.user_repo = UserRepository()

    @staticmethod
    def _check_plan(plan_type: str) -> None:
        if plan_type not in PLAN_TYPES:
            raise ValidationException("plan_type", f"unknown plan '{plan_type}'")

    @staticmethod
    def _check_amount(amount: float) -> None:
        if amount < 0:
            raise ValidationException("amount", "must not be negative")

    def get_commission_rates(self, user: AuthenticatedUser) -> List[CommissionRate]:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)
        return self.commission_repo.get_default_rates(self.db)

    def set_commission_rate(self, user: AuthenticatedUser, plan_type: str, amount: float) -> CommissionRate:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)
        self._check_plan(plan_type)
        self._check_amount(amount)

        logger.info(f"Default commission for {plan_type} set to {amount} by user {user.id}")
        return self.commission_repo.upsert_default_rate(self.db, plan_type, amount)

    def get_role_commission_rates(self, user: AuthenticatedUser, role_name: str) -> List[RoleCommissionRate]:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)
        return self.commission_repo.get_role_rates(self.db, role_name)

    def set_role_commission_rate(
        self,
        user: AuthenticatedUser,
        role_name: str,
        plan_type: str,
        amount: float
    ) -> RoleCommissionRate:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)
        self._check_plan(plan_type)
        self._check_amount(amount)

        logger.info(f"Commission for role {role_name} on {plan_type} set to {amount} by user {user.id}")
        return self.commission_repo.upsert_role_rate(self.db, role_name, plan_type, amount)

    def initialize_role_rates(self, user: AuthenticatedUser, role_name: str) -> List[RoleCommissionRate]:
        """Give a role an override for every plan that lacks one, copied from the defaults"""
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)

        for default in self.commission_repo.get_default_rates(self.db):
            if self.commission_repo.get_role_rate(self.db, role_name, default.plan_type) is None:
                self.commission_repo.upsert_role_rate(
                    self.db, role_name, default.plan_type, default.amount or 0.0
                )
        return self.commission_repo.get_role_rates(self.db, role_name)

    def get_users(self, user: AuthenticatedUser) -> List[User]:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)
        return self.user_repo.get_all(self.db)

    def update_user_role(self, user: AuthenticatedUser, user_id: int, role: str) -> User:
        ensure_role(user, ADMIN_ONLY, ADMIN_REQUIRED)

        target = self.user_repo.get_by_id(self.db, user_id)
        if target is None:
            raise UserNotFoundException(user_id)
        if target.id == user.id and role != ROLE_ADMIN:
            raise ValidationException("role", "admins cannot remove their own admin role")

        logger.info(f"User {user_id} role {target.role} -> {role} by user {user.id}")
        target.role = role
        return self.user_repo.update(self.db, target)
