"""
Tests for the activity feed.
"""
from datetime import datetime, timedelta
from sqlalchemy.exc import OperationalError

from salesboard.models import ActivityEvent
from salesboard.services.activity_service import ActivityService


class TestActivityFeed:
    def test_feed_attaches_user_names(self, db_session, salesperson):
        service = ActivityService(db_session)
        service.record_event("new_sale", "New Sale!", user_id=salesperson.id, details={"points": 10})

        feed = service.get_feed()

        assert feed[0].user_name == "Sam Seller"
        assert feed[0].details == {"points": 10}

    def test_newest_first_and_filters(self, db_session, salesperson, other_salesperson):
        service = ActivityService(db_session)
        service.record_event("new_sale", "New Sale!", user_id=salesperson.id)
        service.record_event("achievement_unlocked", "Achievement Unlocked!", user_id=other_salesperson.id)
        service.record_event("goal_completed", "Goal Completed!", user_id=salesperson.id, is_global=False)

        assert [e.event_type for e in service.get_feed()] == [
            "goal_completed", "achievement_unlocked", "new_sale"
        ]
        assert {e.user_id for e in service.get_feed(user_id=salesperson.id)} == {salesperson.id}
        assert [e.event_type for e in service.get_feed(event_types=["new_sale"])] == ["new_sale"]
        assert "goal_completed" not in {e.event_type for e in service.get_feed(global_only=True)}

    def test_latest_returns_newer_global_events(self, db_session, salesperson):
        service = ActivityService(db_session)
        old = service.record_event("new_sale", "New Sale!", user_id=salesperson.id)
        old.created_at = datetime.now() - timedelta(hours=1)
        db_session.commit()
        service.record_event("new_sale", "New Sale!", user_id=salesperson.id)

        latest = service.get_latest(datetime.now() - timedelta(minutes=5))

        assert len(latest) == 1

    def test_system_event_has_no_user_name(self, db_session):
        service = ActivityService(db_session)
        service.record_event("goal_completed", "Team goal reached", user_id=None)

        entry = service.get_feed()[0]
        assert entry.user_id is None
        assert entry.user_name is None

    def test_malformed_details_read_as_empty(self, db_session):
        db_session.add(ActivityEvent(event_type="new_sale", title="New Sale!", details="{not json", is_global=True))
        db_session.commit()

        assert ActivityService(db_session).get_feed()[0].details == {}

    def test_publish_swallows_database_errors(self, db_session, monkeypatch):
        service = ActivityService(db_session)

        def broken(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(service, "record_event", broken)

        assert service.publish("new_sale", "New Sale!", user_id=1) is None
