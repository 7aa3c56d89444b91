"""
Tests for GamificationService.

Tests cover:
1. Points, streak, achievements and rank change for one order
2. Exactly-once awards
3. Authorization and cancelled orders
4. Retrying a reward that stopped part way
"""
import pytest
from datetime import datetime

from salesboard.models import ActivityEvent, PointHistory, SalesGoal
from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.achievement_service import AchievementService
from salesboard.services.gamification_service import GamificationService, build_rank_change
from salesboard.services.goal_service import GoalService
from salesboard.services.points_service import PointsService
from salesboard.services.streak_service import StreakService
from salesboard.exceptions import (
    AccessDeniedException,
    OrderNotFoundException,
    PointsAlreadyAwardedException,
    ValidationException
)


class TestBuildRankChange:
    def test_move_up(self):
        result = build_rank_change(1, 5, 2)
        assert result.change == 3
        assert result.is_significant

    def test_first_appearance(self):
        result = build_rank_change(1, None, 8)
        assert result.change == 0
        assert result.is_significant

    def test_no_change(self):
        result = build_rank_change(1, 6, 6)
        assert not result.is_significant

    def test_unranked_both_times(self):
        assert not build_rank_change(1, None, None).is_significant


class TestProcessOrder:
    """Tests for the full rewards pipeline"""

    def test_first_sale(self, db_session, seeded, salesperson, make_order, as_auth):
        order = make_order(salesperson, sale_type="upgrade", add_ons_count=2)

        result = GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert result.points.total_points == 30
        assert result.streak.current_streak == 1
        assert "first_sale" in {a.achievement_name for a in result.achievements}
        assert result.rank_change.old_rank is None
        assert result.rank_change.new_rank == 1
        assert result.rank_change.is_significant

        db_session.refresh(order)
        assert order.points_awarded == 30
        assert order.points_awarded_at is not None

    def test_sale_points_follow_configuration(self, db_session, seeded, salesperson, make_order, as_auth):
        PointsService(db_session).update_point_configuration("standard", 15)
        order = make_order(salesperson)

        result = GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert result.points.total_points == 15

    def test_streak_of_seven_unlocks_week_warrior(
        self, db_session, seeded, salesperson, make_order, as_auth, yesterday
    ):
        stats = UserStatsRepository.get_or_create(db_session, salesperson.id)
        stats.current_streak = 6
        stats.longest_streak = 6
        stats.last_sale_date = yesterday
        db_session.commit()
        for name in ("streak_3", "streak_5"):
            AchievementRepository.unlock(
                db_session, salesperson.id, AchievementRepository.get_by_name(db_session, name).id
            )
        order = make_order(salesperson)

        result = GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert result.streak.current_streak == 7
        assert result.streak.longest_streak == 7
        assert result.streak.milestone_reached == 7
        unlocked = {a.achievement_name for a in result.achievements}
        assert "streak_7" in unlocked
        assert "daily_warrior" in unlocked
        assert "streak_3" not in unlocked
        # Every streak-condition unlock counts, whatever its category
        assert result.streak.bonus_points == 250

        milestones = db_session.query(ActivityEvent).filter(
            ActivityEvent.event_type == "streak_milestone"
        ).all()
        assert len(milestones) == 1

    def test_second_award_rejected(self, db_session, seeded, salesperson, make_order, as_auth):
        order = make_order(salesperson)
        service = GamificationService(db_session)
        service.process_order(order.id, as_auth(salesperson))

        with pytest.raises(PointsAlreadyAwardedException):
            service.process_order(order.id, as_auth(salesperson))

        sale_entries = db_session.query(PointHistory).filter(
            PointHistory.source_type == "order",
            PointHistory.source_id == order.id
        ).count()
        assert sale_entries == 1

    def test_balance_matches_ledger(self, db_session, seeded, salesperson, make_order, as_auth):
        service = GamificationService(db_session)
        for _ in range(3):
            service.process_order(make_order(salesperson).id, as_auth(salesperson))

        stats = UserStatsRepository.get_by_user(db_session, salesperson.id)
        db_session.refresh(stats)
        ledger = sum(
            entry.points for entry in
            db_session.query(PointHistory).filter(PointHistory.user_id == salesperson.id)
        )
        assert stats.total_points == ledger
        assert stats.lifetime_points == ledger

    def test_other_users_order_rejected(
        self, db_session, seeded, salesperson, other_salesperson, make_order, as_auth
    ):
        order = make_order(salesperson)

        with pytest.raises(AccessDeniedException):
            GamificationService(db_session).process_order(order.id, as_auth(other_salesperson))

    def test_cancelled_order_rejected(self, db_session, seeded, salesperson, make_order, as_auth):
        order = make_order(salesperson, status="cancelled")

        with pytest.raises(ValidationException):
            GamificationService(db_session).process_order(order.id, as_auth(salesperson))

    def test_unknown_order(self, db_session, seeded, salesperson, as_auth):
        with pytest.raises(OrderNotFoundException):
            GamificationService(db_session).process_order(404, as_auth(salesperson))

    def test_new_sale_event_published(self, db_session, seeded, salesperson, make_order, as_auth):
        order = make_order(salesperson, created_at=datetime.now())
        GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        event = db_session.query(ActivityEvent).filter(ActivityEvent.event_type == "new_sale").one()
        assert event.user_id == salesperson.id
        assert event.is_global


class TestInterruptedRewards:
    """A retry after a failure part way through finishes the missing steps"""

    @staticmethod
    def _broken(*args, **kwargs):
        raise RuntimeError("stats unavailable")

    def test_retry_after_streak_failure(self, db_session, seeded, salesperson, make_order, as_auth,
                                        monkeypatch):
        order = make_order(salesperson)
        service = GamificationService(db_session)

        monkeypatch.setattr(StreakService, "record_sale", self._broken)
        with pytest.raises(RuntimeError):
            service.process_order(order.id, as_auth(salesperson))
        monkeypatch.undo()
        db_session.rollback()

        result = GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert result.streak.current_streak == 1
        assert "first_sale" in {a.achievement_name for a in result.achievements}
        stats = UserStatsRepository.get_by_user(db_session, salesperson.id)
        db_session.refresh(stats)
        assert stats.current_streak == 1
        sale_entries = db_session.query(PointHistory).filter(
            PointHistory.source_type == "order",
            PointHistory.source_id == order.id
        ).count()
        assert sale_entries == 1

        with pytest.raises(PointsAlreadyAwardedException):
            service.process_order(order.id, as_auth(salesperson))

    def test_goal_progress_counted_once(self, db_session, seeded, salesperson, make_order, as_auth,
                                        monkeypatch):
        goal_id = GoalService(db_session).set_goal(salesperson.id, "daily", "sales_count", 3).id
        order = make_order(salesperson)

        monkeypatch.setattr(OrderRepository, "mark_rewards_completed", self._broken)
        with pytest.raises(RuntimeError):
            GamificationService(db_session).process_order(order.id, as_auth(salesperson))
        monkeypatch.undo()
        db_session.rollback()

        GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert db_session.get(SalesGoal, goal_id).current_value == 1
        db_session.refresh(order)
        assert order.goals_recorded_at is not None
        assert order.rewards_completed_at is not None

    def test_retry_after_achievement_failure(self, db_session, seeded, salesperson, make_order, as_auth,
                                             monkeypatch):
        order = make_order(salesperson)

        monkeypatch.setattr(AchievementService, "evaluate_achievements", self._broken)
        with pytest.raises(RuntimeError):
            GamificationService(db_session).process_order(order.id, as_auth(salesperson))
        monkeypatch.undo()
        db_session.rollback()

        result = GamificationService(db_session).process_order(order.id, as_auth(salesperson))

        assert "first_sale" in {a.achievement_name for a in result.achievements}
        assert result.streak.current_streak == 1
