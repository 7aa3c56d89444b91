"""
Report HTTP routes.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from salesboard.auth import require_user
from salesboard.database import get_db
from salesboard.services.report_service import ReportService
from salesboard.schemas import ActionResult, AuthenticatedUser, PerformanceInsights, WeeklyReport

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/weekly", response_model=ActionResult[WeeklyReport])
def get_weekly_report(
    week_start: Optional[date] = Query(None, description="Any day of the week to report on"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(ReportService(db).get_weekly_report(user.id, week_start))


@router.get("/insights", response_model=ActionResult[PerformanceInsights])
def get_performance_insights(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(require_user)
):
    return ActionResult.ok(ReportService(db).get_performance_insights(user.id))
