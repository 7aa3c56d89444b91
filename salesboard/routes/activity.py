"""
Activity feed HTTP routes.
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.activity_service import ActivityService
from salesboard.schemas import ActionResult, ActivityEventResponse, AuthenticatedUser
from salesboard.constants import DEFAULT_FEED_LIMIT

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("", response_model=ActionResult[List[ActivityEventResponse]])
def get_feed(
    user_id: Optional[int] = Query(None),
    event_types: Optional[List[str]] = Query(None),
    since: Optional[datetime] = Query(None),
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=200),
    global_only: bool = Query(False),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    """Activity events, newest first."""
    return ActionResult.ok(ActivityService(db).get_feed(
        user_id=user_id,
        event_types=event_types,
        since=since,
        limit=limit,
        global_only=global_only
    ))


@router.get("/me", response_model=ActionResult[List[ActivityEventResponse]])
def get_my_feed(
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(ActivityService(db).get_feed(user_id=user.id, limit=limit))


@router.get("/latest", response_model=ActionResult[List[ActivityEventResponse]])
def get_latest(
    since: datetime = Query(...),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_user)
):
    """Global events newer than `since`, for polling clients."""
    return ActionResult.ok(ActivityService(db).get_latest(since))
