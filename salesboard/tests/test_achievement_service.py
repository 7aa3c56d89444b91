"""
Tests for achievement evaluation and unlocks.

Tests cover:
1. Condition checks on a progress snapshot
2. Unlocking once per user with reward points
3. Notifications and per-category stats
"""
import pytest
from datetime import datetime

from salesboard.models import ActivityEvent, Achievement, UserAchievement
from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.services.points_service import PointsService
from salesboard.services.achievement_service import (
    AchievementService,
    Custom,
    PointsTotal,
    SaleRecord,
    SalesCount,
    SalesStreak,
    UserProgress,
    is_satisfied,
    parse_condition
)


def _progress(times, plan_type="fiber_500", streak=0, points=0):
    return UserProgress(
        sales=[SaleRecord(t, plan_type) for t in times],
        current_streak=streak,
        lifetime_points=points
    )


class TestConditions:
    """Tests for parse_condition and is_satisfied"""

    def test_parse_known_types(self):
        assert parse_condition(Achievement(name="x", condition_type="sales_count", condition_value=5)) == SalesCount(5)
        assert parse_condition(Achievement(name="x", condition_type="sales_streak", condition_value=3)) == SalesStreak(3)
        assert parse_condition(Achievement(name="x", condition_type="points_total", condition_value=100)) == PointsTotal(100)
        assert parse_condition(Achievement(name="night_owl", condition_type="custom", condition_value=0)) == Custom("night_owl", 0)

    def test_unknown_condition_type(self):
        assert parse_condition(Achievement(name="x", condition_type="mystery", condition_value=1)) is None

    def test_sales_count_threshold(self):
        progress = _progress([datetime(2025, 1, 6, 12)] * 3)

        assert is_satisfied(SalesCount(3), progress)
        assert not is_satisfied(SalesCount(4), progress)

    def test_streak_and_points(self):
        progress = _progress([], streak=7, points=500)

        assert is_satisfied(SalesStreak(7), progress)
        assert not is_satisfied(SalesStreak(14), progress)
        assert is_satisfied(PointsTotal(500), progress)

    def test_early_bird_and_night_owl(self):
        early = _progress([datetime(2025, 1, 6, 8, 59)])
        late = _progress([datetime(2025, 1, 6, 20, 0)])
        midday = _progress([datetime(2025, 1, 6, 12, 0)])

        assert is_satisfied(Custom("early_bird", 0), early)
        assert not is_satisfied(Custom("early_bird", 0), midday)
        assert is_satisfied(Custom("night_owl", 0), late)
        assert not is_satisfied(Custom("night_owl", 0), midday)

    def test_weekend_warrior_needs_saturday_and_sunday(self):
        # 2025-01-04 is a Saturday
        weekend = _progress([datetime(2025, 1, 4, 12), datetime(2025, 1, 5, 12)])
        saturday_only = _progress([datetime(2025, 1, 4, 12), datetime(2025, 1, 11, 12)])

        assert is_satisfied(Custom("weekend_warrior", 0), weekend)
        assert not is_satisfied(Custom("weekend_warrior", 0), saturday_only)

    def test_single_day_sales(self):
        busy_day = _progress([datetime(2025, 1, 6, h) for h in range(9, 14)])

        assert is_satisfied(Custom("single_day_sales", 5), busy_day)
        assert not is_satisfied(Custom("single_day_sales", 6), busy_day)

    def test_plan_based_customs(self):
        founders = _progress([datetime(2025, 1, 6, 12)] * 5, plan_type="founders_club")
        basic = _progress([datetime(2025, 1, 6, 12)] * 10, plan_type="fiber_500")

        assert is_satisfied(Custom("founders_club_sales", 5), founders)
        assert not is_satisfied(Custom("high_tier_sales", 10), founders)
        assert not is_satisfied(Custom("high_tier_sales", 10), basic)

    def test_unknown_custom_key_never_unlocks(self):
        assert not is_satisfied(Custom("moon_landing", 0), _progress([datetime(2025, 1, 6, 12)]))


class TestEvaluateAchievements:
    """Tests for unlocking against stored data"""

    def test_first_sale_unlocks_with_reward(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson, created_at=datetime.now().replace(hour=12, minute=0))

        results = AchievementService(db_session).evaluate_achievements(salesperson.id)

        names = {r.achievement_name for r in results}
        assert "first_sale" in names
        stats = UserStatsRepository.get_by_user(db_session, salesperson.id)
        db_session.refresh(stats)
        assert stats.lifetime_points == sum(r.points_reward for r in results)

    def test_unlocks_only_once(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson)
        service = AchievementService(db_session)
        service.evaluate_achievements(salesperson.id)

        assert service.evaluate_achievements(salesperson.id) == []
        first_sale = AchievementRepository.get_by_name(db_session, "first_sale")
        assert db_session.query(UserAchievement).filter(
            UserAchievement.user_id == salesperson.id,
            UserAchievement.achievement_id == first_sale.id
        ).count() == 1

    def test_failed_reward_leaves_achievement_locked(self, db_session, seeded, salesperson, make_order,
                                                     monkeypatch):
        make_order(salesperson, created_at=datetime.now().replace(hour=12, minute=0))

        def broken(*args, **kwargs):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(PointsService, "award_points", broken)
        with pytest.raises(RuntimeError):
            AchievementService(db_session).evaluate_achievements(salesperson.id)
        monkeypatch.undo()

        assert db_session.query(UserAchievement).filter(UserAchievement.user_id == salesperson.id).count() == 0

        results = AchievementService(db_session).evaluate_achievements(salesperson.id)

        assert "first_sale" in {r.achievement_name for r in results}
        stats = UserStatsRepository.get_by_user(db_session, salesperson.id)
        db_session.refresh(stats)
        assert stats.lifetime_points == sum(r.points_reward for r in results)

    def test_cancelled_orders_do_not_count(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson, status="cancelled")

        results = AchievementService(db_session).evaluate_achievements(salesperson.id)

        assert "first_sale" not in {r.achievement_name for r in results}

    def test_inactive_definitions_skipped(self, db_session, seeded, salesperson, make_order):
        AchievementRepository.upsert(db_session, "first_sale", is_active=False)
        make_order(salesperson)

        results = AchievementService(db_session).evaluate_achievements(salesperson.id)

        assert "first_sale" not in {r.achievement_name for r in results}

    def test_unlock_publishes_activity(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson)
        AchievementService(db_session).evaluate_achievements(salesperson.id)

        events = db_session.query(ActivityEvent).filter(
            ActivityEvent.event_type == "achievement_unlocked"
        ).all()
        assert events
        assert all(event.user_id == salesperson.id for event in events)

    def test_reward_points_count_on_next_evaluation(self, db_session, seeded, salesperson):
        stats = UserStatsRepository.get_or_create(db_session, salesperson.id)
        stats.lifetime_points = 90
        stats.total_points = 90
        db_session.commit()
        service = AchievementService(db_session)

        AchievementRepository.upsert(
            db_session, "bonus_grant", display_name="Bonus", category="special",
            points_reward=20, condition_type="points_total", condition_value=50, is_active=True
        )
        first = {r.achievement_name for r in service.evaluate_achievements(salesperson.id)}
        second = {r.achievement_name for r in service.evaluate_achievements(salesperson.id)}

        assert "bonus_grant" in first
        assert "points_100" not in first
        assert "points_100" in second


class TestAchievementReads:
    def test_user_achievements_hide_secret_locked(self, db_session, seeded, salesperson):
        result = AchievementService(db_session).get_user_achievements(salesperson.id)

        available = {a.name for a in result.available}
        assert "single_day_sales" not in available
        assert "first_sale" in available
        assert result.stats.total_unlocked == 0
        assert result.stats.by_category["streak"].total == 6

    def test_notifications_marked_seen(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson)
        service = AchievementService(db_session)
        unlocked = service.evaluate_achievements(salesperson.id)

        pending = service.get_pending_notifications(salesperson.id)
        assert len(pending) == len(unlocked)

        service.mark_seen(salesperson.id, [pending[0].achievement_id])
        assert len(service.get_pending_notifications(salesperson.id)) == len(unlocked) - 1

        service.mark_all_seen(salesperson.id)
        assert service.get_pending_notifications(salesperson.id) == []

    def test_progress(self, db_session, seeded, salesperson, make_order):
        make_order(salesperson)
        make_order(salesperson, status="cancelled")

        progress = AchievementService(db_session).get_achievement_progress(salesperson.id)

        assert progress.sales_count == 1
        assert progress.streak_days == 0
