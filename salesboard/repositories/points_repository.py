"""
Points repository - Data access layer for point-related models.
Handles user stats counters, the point ledger and point configuration.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional
from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesboard.models import PointConfiguration, PointHistory, UserStats


class UserStatsRepository:
    """Repository for UserStats data access.

    Counters are never read-modify-written from Python; every change is a
    single UPDATE so concurrent awards for the same user cannot be lost.
    """

    @staticmethod
    def get_by_user(db: Session, user_id: int) -> Optional[UserStats]:
        """Get stats row for a user"""
        return db.query(UserStats).filter(UserStats.user_id == user_id).first()

    @staticmethod
    def get_by_users(db: Session, user_ids: List[int]) -> List[UserStats]:
        """Stats rows for several users"""
        if not user_ids:
            return []
        return db.query(UserStats).filter(UserStats.user_id.in_(user_ids)).all()

    @staticmethod
    def get_or_create(db: Session, user_id: int) -> UserStats:
        """Get stats row for a user, creating an empty one on first use"""
        stats = UserStatsRepository.get_by_user(db, user_id)
        if stats:
            return stats

        stats = UserStats(
            user_id=user_id,
            total_points=0,
            lifetime_points=0,
            current_streak=0,
            longest_streak=0
        )
        db.add(stats)
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently by another request
            db.rollback()
            return UserStatsRepository.get_by_user(db, user_id)
        db.refresh(stats)
        return stats

    @staticmethod
    def apply_award(db: Session, entry: PointHistory) -> PointHistory:
        """
        Append a ledger entry and increment the user's counters in one transaction.

        lifetime_points only grows; negative adjustments reduce total_points alone.
        Anything already pending in the session (e.g. an order award claim)
        commits together with the award.
        """
        db.add(entry)
        db.execute(
            update(UserStats)
            .where(UserStats.user_id == entry.user_id)
            .values(
                total_points=UserStats.total_points + entry.points,
                lifetime_points=UserStats.lifetime_points + max(entry.points, 0),
                updated_at=datetime.now()
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def record_sale_day(db: Session, user_id: int, sale_day: date) -> None:
        """
        Advance the streak for a sale on sale_day with one conditional UPDATE.

        Same day or an earlier day leaves the streak as is, the next day extends
        it, and any larger gap restarts it at 1. All CASE branches read the
        pre-update row.
        """
        previous_day = sale_day - timedelta(days=1)
        last = UserStats.last_sale_date

        new_streak = case(
            (last.is_(None), 1),
            (last >= sale_day, UserStats.current_streak),
            (last == previous_day, UserStats.current_streak + 1),
            else_=1
        )

        db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .values(
                current_streak=new_streak,
                longest_streak=case(
                    (new_streak > UserStats.longest_streak, new_streak),
                    else_=UserStats.longest_streak
                ),
                last_sale_date=case(
                    (last > sale_day, last),
                    else_=sale_day
                ),
                streak_start_date=case(
                    (last.is_(None), sale_day),
                    (last >= previous_day, UserStats.streak_start_date),
                    else_=sale_day
                ),
                updated_at=datetime.now()
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()


class PointHistoryRepository:
    """Repository for PointHistory data access"""

    @staticmethod
    def get_history(db: Session, user_id: int, limit: int = 50) -> List[PointHistory]:
        """Most recent ledger entries for a user"""
        return db.query(PointHistory).filter(
            PointHistory.user_id == user_id
        ).order_by(PointHistory.created_at.desc(), PointHistory.id.desc()).limit(limit).all()

    @staticmethod
    def get_by_source(
        db: Session,
        user_id: int,
        source_type: str,
        source_id: int
    ) -> Optional[PointHistory]:
        """Ledger entry created for a specific source (order, achievement)"""
        return db.query(PointHistory).filter(
            PointHistory.user_id == user_id,
            PointHistory.source_type == source_type,
            PointHistory.source_id == source_id
        ).first()


class PointConfigurationRepository:
    """Repository for PointConfiguration data access"""

    @staticmethod
    def get_all(db: Session) -> List[PointConfiguration]:
        """Get all point configuration rows"""
        return db.query(PointConfiguration).order_by(PointConfiguration.id).all()

    @staticmethod
    def get_by_sale_type(db: Session, sale_type: str) -> Optional[PointConfiguration]:
        """Get configuration for one sale type (or the add-on key)"""
        return db.query(PointConfiguration).filter(
            PointConfiguration.sale_type == sale_type
        ).first()

    @staticmethod
    def upsert(
        db: Session,
        sale_type: str,
        points: int,
        description: Optional[str] = None
    ) -> PointConfiguration:
        """Create or update the value for a sale type"""
        config = PointConfigurationRepository.get_by_sale_type(db, sale_type)
        if config is None:
            config = PointConfiguration(sale_type=sale_type)
            db.add(config)
        config.points = points
        if description is not None:
            config.description = description
        db.commit()
        db.refresh(config)
        return config
