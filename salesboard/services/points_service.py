"""
Points calculation service.
Handles sale point calculation, the point ledger and admin adjustments.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from salesboard.models import PointConfiguration, PointHistory, UserStats
from salesboard.repositories.points_repository import (
    PointConfigurationRepository, PointHistoryRepository, UserStatsRepository
)
from salesboard.repositories.user_repository import UserRepository
from salesboard.exceptions import UserNotFoundException, ValidationException
from salesboard.schemas import PointsBreakdown, PointsCalculationResult
from salesboard.constants import (
    ADD_ON_KEY,
    ADD_ON_POINTS,
    SALE_TYPE_POINTS,
    POINT_REASON_ADJUSTMENT,
    POINT_SOURCE_ADMIN
)

logger = logging.getLogger("salesboard.points")


class PointsService:
    """Service for points calculation and management"""

    def __init__(self, db: Session):
        self.db = db
        self.stats_repo = UserStatsRepository()
        self.history_repo = PointHistoryRepository()
        self.config_repo = PointConfigurationRepository()
        self.user_repo = UserRepository()

    @staticmethod
    def calculate_sale_points(
        sale_type: str,
        add_ons_count: int,
        config: Optional[Dict[str, int]] = None
    ) -> PointsCalculationResult:
        """
        Calculate points for a sale.

        Formula: Points = SaleTypePoints + AddOns × AddOnPoints

        The result depends only on sale type and add-on count; plan and price
        play no part.

        Args:
            sale_type: "standard", "upgrade" or "multi_service"
            add_ons_count: Number of add-ons sold with the order
            config: Optional sale_type -> points map (with the "add_on" key);
                missing keys fall back to the built-in values

        Returns:
            Total points and their breakdown

        Raises:
            ValidationException: For an unknown sale type or negative add-on count
        """
        config = config or {}
        if sale_type not in SALE_TYPE_POINTS:
            raise ValidationException("sale_type", f"unknown sale type '{sale_type}'")
        if add_ons_count < 0:
            raise ValidationException("add_ons_count", "must not be negative")

        base_points = config.get(sale_type, SALE_TYPE_POINTS[sale_type])
        addon_points = add_ons_count * config.get(ADD_ON_KEY, ADD_ON_POINTS)

        return PointsCalculationResult(
            total_points=base_points + addon_points,
            breakdown=PointsBreakdown(
                sale_type=sale_type,
                base_points=base_points,
                addon_points=addon_points
            )
        )

    def get_point_config(self) -> Dict[str, int]:
        """Configured points per sale type, plus the add-on value"""
        return {config.sale_type: config.points for config in self.config_repo.get_all(self.db)}

    def award_points(
        self,
        user_id: int,
        points: int,
        reason: str,
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
        description: Optional[str] = None
    ) -> PointHistory:
        """
        Record a ledger entry and add the points to the user's counters.

        Both happen in one transaction; the counter change is an atomic
        increment, never a read-modify-write.
        """
        self.stats_repo.get_or_create(self.db, user_id)

        entry = PointHistory(
            user_id=user_id,
            points=points,
            reason=reason,
            source_type=source_type,
            source_id=source_id,
            description=description,
            created_at=datetime.now()
        )
        entry = self.stats_repo.apply_award(self.db, entry)
        logger.info(f"Awarded {points} points to user {user_id} ({reason})")
        return entry

    def get_user_points(self, user_id: int) -> UserStats:
        """Stats row for a user, created empty on first access"""
        return self.stats_repo.get_or_create(self.db, user_id)

    def get_point_history(self, user_id: int, limit: int = 50) -> List[PointHistory]:
        return self.history_repo.get_history(self.db, user_id, limit)

    def adjust_points(self, user_id: int, points: int, description: str) -> PointHistory:
        """Manual admin correction; negative values only reduce the spendable total"""
        if self.user_repo.get_by_id(self.db, user_id) is None:
            raise UserNotFoundException(user_id)
        if points == 0:
            raise ValidationException("points", "adjustment must not be zero")

        logger.info(f"Adjusting points for user {user_id} by {points}: {description}")
        return self.award_points(
            user_id,
            points,
            POINT_REASON_ADJUSTMENT,
            source_type=POINT_SOURCE_ADMIN,
            description=description
        )

    def get_point_configurations(self) -> List[PointConfiguration]:
        return self.config_repo.get_all(self.db)

    def update_point_configuration(
        self,
        sale_type: str,
        points: int,
        description: Optional[str] = None
    ) -> PointConfiguration:
        """Change the value of a sale type (or "add_on"); affects future awards only"""
        if sale_type not in SALE_TYPE_POINTS and sale_type != ADD_ON_KEY:
            raise ValidationException("sale_type", f"unknown sale type '{sale_type}'")
        if points < 0:
            raise ValidationException("points", "must not be negative")

        logger.info(f"Point configuration for {sale_type} set to {points}")
        return self.config_repo.upsert(self.db, sale_type, points, description)
