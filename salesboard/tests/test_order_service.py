"""
Tests for OrderService.

Tests cover:
1. Pricing tiers and monthly prices
2. Commission lookup
3. Order creation with rewards
4. Status transitions, deletion and CSV export
"""
import csv
import io
import pytest
from datetime import date, datetime, timedelta

from salesboard.models import Order
from salesboard.repositories.order_repository import CommissionRepository, OrderRepository
from salesboard.services.gamification_service import GamificationService
from salesboard.services.order_service import OrderService, determine_pricing_tier, get_monthly_price
from salesboard.schemas import OrderCreate
from salesboard.exceptions import (
    AccessDeniedException, InvalidStatusTransitionException, ValidationException
)


def _order_data(**overrides):
    data = {
        "customer_name": "Pat Customer",
        "customer_phone": "512-555-0100",
        "customer_email": "pat@example.com",
        "service_address": "100 Main St",
        "city": "Austin",
        "zip": "78701",
        "plan_type": "fiber_2gig",
        "has_voice_line": True,
        "has_autopay": True,
        "install_date": date.today() + timedelta(days=2),
        "install_time_slot": "8-10",
    }
    data.update(overrides)
    return OrderCreate(**data)


class TestPricing:
    def test_voice_line_requires_autopay(self):
        assert determine_pricing_tier(True, True) == "voice_autopay"
        assert determine_pricing_tier(True, False) == "no_discounts"
        assert determine_pricing_tier(False, True) == "autopay_only"

    def test_monthly_prices(self):
        assert get_monthly_price("fiber_500", "voice_autopay") == 60
        assert get_monthly_price("fiber_2gig", "no_discounts") == 110
        assert get_monthly_price("founders_club", "autopay_only") == 70

    def test_unknown_plan(self):
        with pytest.raises(ValidationException):
            get_monthly_price("dialup", "no_discounts")


class TestOrderValidation:
    def test_short_phone_rejected(self):
        with pytest.raises(ValueError):
            _order_data(customer_phone="555-0100xxxx")

    def test_bad_zip_rejected(self):
        with pytest.raises(ValueError):
            _order_data(zip="7870")

    def test_blank_email_allowed(self):
        assert _order_data(customer_email="").customer_email is None


class TestCommission:
    def test_default_rate(self, db_session, seeded):
        assert OrderService(db_session).get_commission_amount("salesperson", "fiber_1gig") == 75.0

    def test_role_override_wins(self, db_session, seeded):
        CommissionRepository.upsert_role_rate(db_session, "senior", "fiber_1gig", 90.0)

        service = OrderService(db_session)
        assert service.get_commission_amount("senior", "fiber_1gig") == 90.0
        assert service.get_commission_amount("senior", "fiber_500") == 50.0

    def test_no_rate_is_zero(self, db_session):
        assert OrderService(db_session).get_commission_amount("salesperson", "fiber_1gig") == 0.0


class TestCreateOrder:
    def test_creates_and_rewards(self, db_session, seeded, salesperson, as_auth):
        result = OrderService(db_session).create_order(
            as_auth(salesperson), _order_data(sale_type="multi_service", add_ons_count=1)
        )

        assert result.gamification_error is None
        assert result.gamification.points.total_points == 35
        assert result.order.pricing_tier == "voice_autopay"
        assert result.order.monthly_price == 90
        assert result.order.commission_amount == 100.0
        assert result.order.points_awarded == 35
        assert result.order.status == "new"

    def test_reward_failure_keeps_order(self, db_session, seeded, salesperson, as_auth, monkeypatch):
        def fail(self, order_id, user):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(GamificationService, "process_order", fail)
        result = OrderService(db_session).create_order(as_auth(salesperson), _order_data())

        assert result.gamification is None
        assert result.gamification_error == "ledger unavailable"
        order = db_session.get(Order, result.order.id)
        assert order is not None
        assert order.points_awarded is None

        monkeypatch.undo()
        retry = GamificationService(db_session).process_order(order.id, as_auth(salesperson))
        assert retry.points.total_points == 10


class TestOrderAccess:
    def test_owner_and_manager_can_read(self, db_session, salesperson, manager_user, make_order, as_auth):
        order = make_order(salesperson)
        service = OrderService(db_session)

        assert service.get_order(as_auth(salesperson), order.id).id == order.id
        assert service.get_order(as_auth(manager_user), order.id).id == order.id

    def test_other_salesperson_denied(self, db_session, salesperson, other_salesperson, make_order, as_auth):
        order = make_order(salesperson)

        with pytest.raises(AccessDeniedException):
            OrderService(db_session).get_order(as_auth(other_salesperson), order.id)

    def test_all_orders_for_managers_only(self, db_session, salesperson, manager_user, make_order, as_auth):
        make_order(salesperson)
        service = OrderService(db_session)

        orders = service.get_all_orders(as_auth(manager_user))
        assert orders[0].salesperson_name == "Sam Seller"

        with pytest.raises(AccessDeniedException):
            service.get_all_orders(as_auth(salesperson))


class TestStatusTransitions:
    def test_forward_path(self, db_session, salesperson, manager_user, make_order, as_auth):
        order = make_order(salesperson)
        service = OrderService(db_session)

        for status in ("scheduled", "installed", "completed"):
            order = service.update_order_status(as_auth(manager_user), order.id, status)

        assert order.status == "completed"

    def test_skipping_a_step_rejected(self, db_session, salesperson, manager_user, make_order, as_auth):
        order = make_order(salesperson)

        with pytest.raises(InvalidStatusTransitionException):
            OrderService(db_session).update_order_status(as_auth(manager_user), order.id, "completed")

    def test_cancelled_is_final(self, db_session, salesperson, manager_user, make_order, as_auth):
        order = make_order(salesperson)
        service = OrderService(db_session)
        service.update_order_status(as_auth(manager_user), order.id, "cancelled")

        with pytest.raises(InvalidStatusTransitionException):
            service.update_order_status(as_auth(manager_user), order.id, "scheduled")

    def test_cancel_keeps_awarded_points(self, db_session, salesperson, manager_user, make_order, as_auth):
        order = make_order(salesperson, points_awarded=10)

        order = OrderService(db_session).update_order_status(as_auth(manager_user), order.id, "cancelled")

        assert order.points_awarded == 10

    def test_salesperson_cannot_change_status(self, db_session, salesperson, make_order, as_auth):
        order = make_order(salesperson)

        with pytest.raises(AccessDeniedException):
            OrderService(db_session).update_order_status(as_auth(salesperson), order.id, "scheduled")


class TestDeleteAndExport:
    def test_only_admin_deletes(self, db_session, salesperson, manager_user, admin_user, make_order, as_auth):
        order = make_order(salesperson)
        service = OrderService(db_session)

        with pytest.raises(AccessDeniedException):
            service.delete_order(as_auth(manager_user), order.id)

        service.delete_order(as_auth(admin_user), order.id)
        assert db_session.get(Order, order.id) is None

    def test_csv_export(self, db_session, salesperson, manager_user, make_order, as_auth):
        make_order(salesperson, points_awarded=10)
        make_order(salesperson, plan_type="founders_club")

        content = OrderService(db_session).export_orders_csv(as_auth(manager_user))

        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0][0] == "ID"
        assert len(rows) == 3
        assert {row[15] for row in rows[1:]} == {"Sam Seller"}
        assert sorted(row[18] for row in rows[1:]) == ["", "10"]


class TestSalesWindows:
    def test_window_end_is_exclusive(self, db_session, salesperson, make_order):
        start = datetime(2025, 3, 9)
        end = datetime(2025, 3, 16)
        make_order(salesperson, created_at=start)
        make_order(salesperson, created_at=end)

        per_user = OrderRepository.count_sales_by_user(db_session, [salesperson.id], start, end)

        assert per_user == {salesperson.id: 1}
        assert OrderRepository.count_sales(db_session, salesperson.id, start, end) == 1
