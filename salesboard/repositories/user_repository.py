"""
User repository - Data access layer for User model.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from salesboard.models import User


class UserRepository:
    """Repository for User data access"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_by_ids(db: Session, user_ids: List[int]) -> List[User]:
        if not user_ids:
            return []
        return db.query(User).filter(User.id.in_(user_ids)).all()

    @staticmethod
    def get_all(db: Session) -> List[User]:
        return db.query(User).order_by(User.created_at, User.id).all()

    @staticmethod
    def get_active(db: Session) -> List[User]:
        return db.query(User).filter(User.is_active == True).order_by(User.id).all()

    @staticmethod
    def create(db: Session, user: User) -> User:
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update(db: Session, user: User) -> User:
        db.commit()
        db.refresh(user)
        return user
