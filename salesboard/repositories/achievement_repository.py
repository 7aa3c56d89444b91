"""
Achievement repository - Data access layer for achievement definitions and unlocks.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from salesboard.models import Achievement, UserAchievement


class AchievementRepository:
    """Repository for Achievement and UserAchievement data access"""

    @staticmethod
    def get_by_id(db: Session, achievement_id: int) -> Optional[Achievement]:
        return db.query(Achievement).filter(Achievement.id == achievement_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Achievement]:
        return db.query(Achievement).filter(Achievement.name == name).first()

    @staticmethod
    def get_active(db: Session) -> List[Achievement]:
        """All active definitions in display order"""
        return db.query(Achievement).filter(
            Achievement.is_active == True
        ).order_by(Achievement.sort_order, Achievement.id).all()

    @staticmethod
    def get_unlocked_ids(db: Session, user_id: int) -> set:
        """IDs of achievements the user already holds"""
        rows = db.query(UserAchievement.achievement_id).filter(
            UserAchievement.user_id == user_id
        ).all()
        return {row[0] for row in rows}

    @staticmethod
    def get_user_achievements(db: Session, user_id: int) -> List[UserAchievement]:
        """Unlocked achievements of a user, newest first"""
        return db.query(UserAchievement).options(
            joinedload(UserAchievement.achievement)
        ).filter(
            UserAchievement.user_id == user_id
        ).order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc()).all()

    @staticmethod
    def get_recent_for_users(db: Session, user_ids: List[int]) -> List[UserAchievement]:
        """Unlocks of several users, newest first (badge lookup)"""
        if not user_ids:
            return []
        return db.query(UserAchievement).options(
            joinedload(UserAchievement.achievement)
        ).filter(
            UserAchievement.user_id.in_(user_ids)
        ).order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc()).all()

    @staticmethod
    def get_unnotified(db: Session, user_id: int) -> List[UserAchievement]:
        """Unlocks the user has not been shown yet, oldest first"""
        return db.query(UserAchievement).options(
            joinedload(UserAchievement.achievement)
        ).filter(
            UserAchievement.user_id == user_id,
            UserAchievement.notified == False
        ).order_by(UserAchievement.earned_at, UserAchievement.id).all()

    @staticmethod
    def count_unlocked_between(
        db: Session,
        user_id: int,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id,
            UserAchievement.earned_at >= start_time,
            UserAchievement.earned_at < end_time
        ).count()

    @staticmethod
    def unlock(db: Session, user_id: int, achievement_id: int, commit: bool = True) -> Optional[UserAchievement]:
        """
        Insert an unlock row.

        Returns None when the (user, achievement) pair already exists, including
        when a concurrent request inserted it first. With commit=False the row
        is only flushed and commits with the caller's next commit.
        """
        entry = UserAchievement(
            user_id=user_id,
            achievement_id=achievement_id,
            earned_at=datetime.now(),
            notified=False
        )
        db.add(entry)
        try:
            if commit:
                db.commit()
            else:
                db.flush()
        except IntegrityError:
            db.rollback()
            return None
        db.refresh(entry)
        return entry

    @staticmethod
    def mark_notified(db: Session, user_id: int, achievement_ids: Optional[List[int]] = None) -> int:
        """Flag unlocks as shown; all of the user's unlocks when no IDs are given"""
        stmt = update(UserAchievement).where(
            UserAchievement.user_id == user_id,
            UserAchievement.notified == False
        )
        if achievement_ids is not None:
            stmt = stmt.where(UserAchievement.achievement_id.in_(achievement_ids))
        result = db.execute(
            stmt.values(notified=True).execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount

    @staticmethod
    def upsert(db: Session, name: str, **fields) -> Achievement:
        """Create or update a definition by its unique name"""
        achievement = AchievementRepository.get_by_name(db, name)
        if achievement is None:
            achievement = Achievement(name=name)
            db.add(achievement)
        for key, value in fields.items():
            setattr(achievement, key, value)
        db.commit()
        db.refresh(achievement)
        return achievement
