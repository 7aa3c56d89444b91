"""
Background scheduler for periodic gamification housekeeping
Handles:
- Nightly leaderboard rank snapshots for the previous day
- Starting and completing team battles
- Failing goals whose period has ended
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from salesboard.database import SessionLocal
from salesboard.services.date_service import DateService
from salesboard.services.goal_service import GoalService
from salesboard.services.leaderboard_service import LeaderboardService
from salesboard.services.team_service import TeamService

logger = logging.getLogger("salesboard.scheduler")

# Create scheduler instance
scheduler = BackgroundScheduler()


def run_leaderboard_snapshot(session_factory=SessionLocal, now: Optional[datetime] = None):
    """Job: store yesterday's final ranks for every period"""
    db = session_factory()
    try:
        yesterday = (now or datetime.now()).date() - timedelta(days=1)
        written = LeaderboardService(db).take_snapshots(
            as_of=DateService.end_of_day(yesterday),
            snapshot_date=yesterday
        )
        logger.info(f"Leaderboard snapshot for {yesterday} stored: {written}")
    except Exception as e:
        logger.error(f"Scheduler Error (Leaderboard Snapshot): {e}")
    finally:
        db.close()


def run_battle_finalization(session_factory=SessionLocal, now: Optional[datetime] = None):
    """Job: activate started battles and complete finished ones"""
    db = session_factory()
    try:
        result = TeamService(db).finalize_battles(now or datetime.now())
        if result["started"] or result["completed"]:
            logger.info(f"Battles updated: {result}")
    except Exception as e:
        logger.error(f"Scheduler Error (Battles): {e}")
    finally:
        db.close()


def run_goal_expiry(session_factory=SessionLocal, now: Optional[datetime] = None):
    """Job: mark goals past their end date as failed"""
    db = session_factory()
    try:
        GoalService(db).expire_goals(now or datetime.now())
    except Exception as e:
        logger.error(f"Scheduler Error (Goal Expiry): {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler with all housekeeping jobs"""
    if not scheduler.running:
        scheduler.add_job(
            run_leaderboard_snapshot,
            CronTrigger(hour=0, minute=5),
            id='leaderboard_snapshot',
            replace_existing=True
        )

        scheduler.add_job(
            run_battle_finalization,
            IntervalTrigger(minutes=15),
            id='battle_finalization',
            replace_existing=True
        )

        scheduler.add_job(
            run_goal_expiry,
            CronTrigger(hour=0, minute=10),
            id='goal_expiry',
            replace_existing=True
        )

        scheduler.start()
        logger.info(">>> APScheduler STARTED <<<")
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
