"""
Activity feed service.
Records sale, achievement and streak events and reads them back with user names.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salesboard.models import ActivityEvent
from salesboard.repositories.activity_repository import ActivityRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.schemas import ActivityEventResponse
from salesboard.constants import DEFAULT_FEED_LIMIT, LATEST_FEED_LIMIT

logger = logging.getLogger("salesboard.activity")


class ActivityService:
    """Service for the activity feed"""

    def __init__(self, db: Session):
        self.db = db
        self.activity_repo = ActivityRepository()
        self.user_repo = UserRepository()

    def record_event(
        self,
        event_type: str,
        title: str,
        user_id: Optional[int] = None,
        description: Optional[str] = None,
        details: Optional[dict] = None,
        is_global: bool = True
    ) -> ActivityEvent:
        """Append an event to the feed"""
        event = ActivityEvent(
            user_id=user_id,
            event_type=event_type,
            title=title,
            description=description,
            details=json.dumps(details or {}),
            is_global=is_global,
            created_at=datetime.now()
        )
        event = self.activity_repo.create(self.db, event)
        logger.debug(f"Activity event {event_type} recorded for user {user_id}")
        return event

    def publish(self, event_type: str, title: str, **kwargs) -> Optional[ActivityEvent]:
        """record_event as a side effect of another operation; failures are logged, not raised"""
        try:
            return self.record_event(event_type, title, **kwargs)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to record {event_type} event for user {kwargs.get('user_id')}")
            return None

    def get_feed(
        self,
        user_id: Optional[int] = None,
        event_types: Optional[List[str]] = None,
        since: Optional[datetime] = None,
        limit: int = DEFAULT_FEED_LIMIT,
        global_only: bool = False
    ) -> List[ActivityEventResponse]:
        """Feed entries, newest first, with the acting user's name attached"""
        events = self.activity_repo.get_feed(
            self.db,
            user_id=user_id,
            event_types=event_types,
            since=since,
            limit=limit,
            global_only=global_only
        )

        user_ids = list({event.user_id for event in events if event.user_id is not None})
        names = {user.id: user.name for user in self.user_repo.get_by_ids(self.db, user_ids)}

        return [
            ActivityEventResponse(
                id=event.id,
                user_id=event.user_id,
                user_name=names.get(event.user_id, "Unknown") if event.user_id else None,
                event_type=event.event_type,
                title=event.title,
                description=event.description,
                details=self._parse_details(event.details),
                is_global=event.is_global,
                created_at=event.created_at
            )
            for event in events
        ]

    def get_latest(self, since: datetime) -> List[ActivityEventResponse]:
        """Global events newer than since (polling)"""
        return self.get_feed(since=since, limit=LATEST_FEED_LIMIT, global_only=True)

    @staticmethod
    def _parse_details(raw: Optional[str]) -> dict:
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
