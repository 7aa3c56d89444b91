"""
Activity repository - Data access layer for the activity feed.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from salesboard.models import ActivityEvent


class ActivityRepository:
    """Repository for ActivityEvent data access"""

    @staticmethod
    def create(db: Session, event: ActivityEvent) -> ActivityEvent:
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def get_feed(
        db: Session,
        user_id: Optional[int] = None,
        event_types: Optional[List[str]] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
        global_only: bool = False
    ) -> List[ActivityEvent]:
        """
        Feed entries, newest first.

        global_only restricts to events shown to everyone and takes
        precedence over user_id.
        """
        query = db.query(ActivityEvent)
        if global_only:
            query = query.filter(ActivityEvent.is_global == True)
        elif user_id is not None:
            query = query.filter(ActivityEvent.user_id == user_id)
        if event_types:
            query = query.filter(ActivityEvent.event_type.in_(event_types))
        if since is not None:
            query = query.filter(ActivityEvent.created_at > since)
        return query.order_by(
            ActivityEvent.created_at.desc(), ActivityEvent.id.desc()
        ).limit(limit).all()
