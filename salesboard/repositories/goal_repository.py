"""
Goal repository - Data access layer for sales targets and metric goals.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesboard.models import SalesGoal, UserGoals
from salesboard.constants import GOAL_STATUS_ACTIVE, GOAL_STATUS_COMPLETED


class UserGoalsRepository:
    """Repository for UserGoals data access"""

    @staticmethod
    def get_by_user(db: Session, user_id: int) -> Optional[UserGoals]:
        return db.query(UserGoals).filter(UserGoals.user_id == user_id).first()

    @staticmethod
    def get_or_create(db: Session, user_id: int) -> UserGoals:
        """Get the user's targets, creating the defaults on first use"""
        goals = UserGoalsRepository.get_by_user(db, user_id)
        if goals:
            return goals

        goals = UserGoals(user_id=user_id)
        db.add(goals)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return UserGoalsRepository.get_by_user(db, user_id)
        db.refresh(goals)
        return goals

    @staticmethod
    def update(db: Session, goals: UserGoals) -> UserGoals:
        db.commit()
        db.refresh(goals)
        return goals


class SalesGoalRepository:
    """Repository for SalesGoal data access"""

    @staticmethod
    def get_by_id(db: Session, goal_id: int) -> Optional[SalesGoal]:
        return db.query(SalesGoal).filter(SalesGoal.id == goal_id).first()

    @staticmethod
    def get_active(db: Session, user_id: int, goal_type: Optional[str] = None) -> List[SalesGoal]:
        """Active goals of a user, optionally of one type"""
        query = db.query(SalesGoal).filter(
            and_(
                SalesGoal.user_id == user_id,
                SalesGoal.status == GOAL_STATUS_ACTIVE
            )
        )
        if goal_type:
            query = query.filter(SalesGoal.goal_type == goal_type)
        return query.order_by(SalesGoal.end_date).all()

    @staticmethod
    def get_active_in_range(db: Session, user_id: int, moment: datetime) -> List[SalesGoal]:
        """Active goals of a user whose window contains moment"""
        return db.query(SalesGoal).filter(
            and_(
                SalesGoal.user_id == user_id,
                SalesGoal.status == GOAL_STATUS_ACTIVE,
                SalesGoal.start_date <= moment,
                SalesGoal.end_date >= moment
            )
        ).all()

    @staticmethod
    def get_expired(db: Session, now: datetime) -> List[SalesGoal]:
        """Active goals whose window has ended"""
        return db.query(SalesGoal).filter(
            and_(
                SalesGoal.status == GOAL_STATUS_ACTIVE,
                SalesGoal.end_date < now
            )
        ).all()

    @staticmethod
    def create(db: Session, goal: SalesGoal) -> SalesGoal:
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def add_progress(db: Session, goal_id: int, amount: float) -> None:
        """Atomic increment of current_value; not committed here"""
        db.execute(
            update(SalesGoal)
            .where(SalesGoal.id == goal_id)
            .values(current_value=func.coalesce(SalesGoal.current_value, 0.0) + amount)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def complete_if_reached(db: Session, goal_id: int, at: datetime) -> bool:
        """
        Close an active goal whose stored value has reached the target.

        Conditional UPDATE: only one caller sees True for a given goal.
        """
        result = db.execute(
            update(SalesGoal)
            .where(
                and_(
                    SalesGoal.id == goal_id,
                    SalesGoal.status == GOAL_STATUS_ACTIVE,
                    SalesGoal.current_value >= SalesGoal.target_value
                )
            )
            .values(status=GOAL_STATUS_COMPLETED, completed_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def save(db: Session) -> None:
        """Commit pending changes to goals loaded in the session"""
        db.commit()
