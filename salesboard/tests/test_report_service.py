"""
Tests for ReportService.
"""
import pytest
from datetime import date, datetime

from salesboard.models import PointHistory
from salesboard.services.report_service import ReportService, time_of_day
from salesboard.exceptions import UserNotFoundException

NOW = datetime(2025, 3, 12, 15, 0)


class TestWeeklyReport:
    @pytest.fixture
    def week_of_sales(self, db_session, salesperson, make_order):
        make_order(salesperson, created_at=datetime(2025, 3, 10, 9))
        make_order(salesperson, created_at=datetime(2025, 3, 11, 9), sale_type="upgrade")
        make_order(salesperson, created_at=datetime(2025, 3, 12, 10))
        make_order(salesperson, created_at=datetime(2025, 3, 11, 12), status="cancelled")
        make_order(salesperson, created_at=datetime(2025, 3, 4, 9))
        db_session.add_all([
            PointHistory(user_id=salesperson.id, points=10, reason="sale", created_at=datetime(2025, 3, 10, 9)),
            PointHistory(user_id=salesperson.id, points=20, reason="sale", created_at=datetime(2025, 3, 11, 9)),
            PointHistory(user_id=salesperson.id, points=10, reason="sale", created_at=datetime(2025, 3, 4, 9)),
        ])
        db_session.commit()

    def test_totals_and_comparison(self, db_session, salesperson, week_of_sales):
        report = ReportService(db_session).get_weekly_report(salesperson.id, date(2025, 3, 12), now=NOW)

        assert report.week_start == date(2025, 3, 9)
        assert report.week_end == date(2025, 3, 15)
        assert report.total_sales == 3
        assert report.sales_change == 2
        assert report.sales_change_percent == 200
        assert report.sale_breakdown.standard == 2
        assert report.sale_breakdown.upgrade == 1
        assert report.total_points == 30
        assert report.points_change == 20

    def test_rank(self, db_session, salesperson, week_of_sales):
        report = ReportService(db_session).get_weekly_report(salesperson.id, date(2025, 3, 9), now=NOW)

        assert report.current_rank == 1
        assert report.rank_change == 0

    def test_empty_week(self, db_session, salesperson):
        report = ReportService(db_session).get_weekly_report(salesperson.id, date(2025, 3, 9), now=NOW)

        assert report.total_sales == 0
        assert report.sales_change_percent == 0
        assert report.current_rank == 0
        assert report.rank_change is None

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundException):
            ReportService(db_session).get_weekly_report(321, now=NOW)


class TestPerformanceInsights:
    def test_time_of_day_buckets(self):
        assert time_of_day(11) == "Morning"
        assert time_of_day(12) == "Afternoon"
        assert time_of_day(17) == "Evening"

    def test_no_sales(self, db_session, salesperson):
        insights = ReportService(db_session).get_performance_insights(salesperson.id, NOW)

        assert insights.best_day == "Not enough data"
        assert insights.best_time == "Not enough data"
        assert insights.avg_sales_per_day == 0.0
        assert insights.personal_bests.daily_sales == 0

    def test_patterns(self, db_session, salesperson, make_order):
        make_order(salesperson, created_at=datetime(2025, 3, 11, 10))
        make_order(salesperson, created_at=datetime(2025, 3, 11, 11))
        make_order(salesperson, created_at=datetime(2025, 3, 12, 14), sale_type="upgrade")

        insights = ReportService(db_session).get_performance_insights(salesperson.id, NOW)

        assert insights.best_day == "Tuesday"
        assert insights.best_time == "Morning"
        assert insights.top_sale_type == "standard"
        assert insights.avg_sales_per_day == 1.5
        assert insights.personal_bests.daily_sales == 2
        assert insights.personal_bests.weekly_sales == 3
