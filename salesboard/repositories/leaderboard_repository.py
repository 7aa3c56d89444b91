"""
Leaderboard repository - ledger aggregation and rank snapshots.
"""
from datetime import date, datetime
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from salesboard.models import LeaderboardSnapshot, PointHistory


class LeaderboardRepository:
    """Repository for leaderboard aggregates and LeaderboardSnapshot rows"""

    @staticmethod
    def get_point_totals(
        db: Session,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        user_ids: Optional[List[int]] = None
    ) -> Dict[int, int]:
        """Map user_id -> sum of ledger points in [start_time, end_time)"""
        query = db.query(
            PointHistory.user_id,
            func.sum(PointHistory.points)
        )
        if start_time is not None:
            query = query.filter(PointHistory.created_at >= start_time)
        if end_time is not None:
            query = query.filter(PointHistory.created_at < end_time)
        if user_ids is not None:
            if not user_ids:
                return {}
            query = query.filter(PointHistory.user_id.in_(user_ids))

        rows = query.group_by(PointHistory.user_id).all()
        return {user_id: int(total or 0) for user_id, total in rows}

    @staticmethod
    def get_latest_snapshot_ranks(db: Session, period_type: str) -> Dict[int, int]:
        """Map user_id -> rank from the most recent snapshot of a period"""
        latest = db.query(func.max(LeaderboardSnapshot.snapshot_date)).filter(
            LeaderboardSnapshot.period_type == period_type
        ).scalar()
        if latest is None:
            return {}

        rows = db.query(LeaderboardSnapshot.user_id, LeaderboardSnapshot.rank).filter(
            LeaderboardSnapshot.period_type == period_type,
            LeaderboardSnapshot.snapshot_date == latest
        ).all()
        return {user_id: rank for user_id, rank in rows}

    @staticmethod
    def get_snapshot_rank(
        db: Session,
        user_id: int,
        period_type: str,
        snapshot_date: date
    ) -> Optional[int]:
        row = db.query(LeaderboardSnapshot.rank).filter(
            LeaderboardSnapshot.user_id == user_id,
            LeaderboardSnapshot.period_type == period_type,
            LeaderboardSnapshot.snapshot_date == snapshot_date
        ).first()
        return row[0] if row else None

    @staticmethod
    def replace_snapshots(
        db: Session,
        period_type: str,
        snapshot_date: date,
        snapshots: List[LeaderboardSnapshot]
    ) -> int:
        """Replace all snapshot rows of a period and date"""
        db.query(LeaderboardSnapshot).filter(
            LeaderboardSnapshot.period_type == period_type,
            LeaderboardSnapshot.snapshot_date == snapshot_date
        ).delete(synchronize_session=False)
        db.add_all(snapshots)
        db.commit()
        return len(snapshots)
