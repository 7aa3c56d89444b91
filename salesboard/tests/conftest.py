"""
Shared fixtures: an in-memory database per test, seeded reference data,
users of every role and an authenticated API client.
"""
import os
import tempfile

os.environ.setdefault("SALESBOARD_DATABASE_URL", "sqlite://")
os.environ.setdefault("SALESBOARD_LOG_DIR", os.path.join(tempfile.gettempdir(), "salesboard-test-logs"))
os.environ.setdefault("SALESBOARD_SCHEDULER_ENABLED", "0")

import pytest
from datetime import date, datetime, timedelta
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salesboard.database import Base, create_db_engine
from salesboard.models import AuthSession, Order, User
from salesboard.schemas import AuthenticatedUser
from salesboard.seed import seed_all


@pytest.fixture
def db_engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db_session):
    """Achievements, point values and default commissions"""
    return seed_all(db_session)


def _create_user(db_session, email, name, role, created_at):
    user = User(email=email, name=name, role=role, is_active=True, created_at=created_at)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "admin@example.com", "Ada Admin", "admin", datetime(2024, 1, 1))


@pytest.fixture
def manager_user(db_session):
    return _create_user(db_session, "manager@example.com", "Max Manager", "manager", datetime(2024, 1, 2))


@pytest.fixture
def salesperson(db_session):
    return _create_user(db_session, "sam@example.com", "Sam Seller", "salesperson", datetime(2024, 1, 3))


@pytest.fixture
def other_salesperson(db_session):
    return _create_user(db_session, "olive@example.com", "Olive Seller", "salesperson", datetime(2024, 1, 4))


@pytest.fixture
def as_auth():
    """Turn a User row into the identity services expect"""
    def _as_auth(user: User) -> AuthenticatedUser:
        return AuthenticatedUser(id=user.id, email=user.email, role=user.role)
    return _as_auth


@pytest.fixture
def now():
    return datetime.now()


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def make_order(db_session):
    """Insert an order row directly, bypassing rewards"""
    def _make_order(user, created_at=None, plan_type="fiber_1gig", sale_type="standard",
                    add_ons_count=0, status="new", commission_amount=75.0, points_awarded=None):
        order = Order(
            customer_name="Pat Customer",
            customer_phone="5125550100",
            customer_email="pat@example.com",
            service_address="100 Main St",
            city="Austin",
            state="TX",
            zip="78701",
            plan_type=plan_type,
            pricing_tier="autopay_only",
            monthly_price=90.0,
            install_date=date.today() + timedelta(days=3),
            install_time_slot="10-12",
            sale_type=sale_type,
            add_ons_count=add_ons_count,
            salesperson_id=user.id,
            status=status,
            commission_amount=commission_amount,
            commission_paid=False,
            points_awarded=points_awarded,
            created_at=created_at or datetime.now()
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order
    return _make_order


@pytest.fixture
def order_payload():
    return {
        "customer_name": "Pat Customer",
        "customer_phone": "(512) 555-0100",
        "customer_email": "pat@example.com",
        "service_address": "100 Main St",
        "city": "Austin",
        "state": "TX",
        "zip": "78701",
        "plan_type": "fiber_1gig",
        "has_voice_line": False,
        "has_autopay": True,
        "install_date": (date.today() + timedelta(days=3)).isoformat(),
        "install_time_slot": "10-12",
        "sale_type": "standard",
        "add_ons_count": 0,
    }


@pytest.fixture
def client(db_session):
    from fastapi.testclient import TestClient
    from salesboard.database import get_db
    from salesboard.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db_session):
    """Create a session for a user and return the request headers carrying it"""
    def _auth_headers(user: User) -> dict:
        token = f"token-{user.id}"
        if db_session.query(AuthSession).filter(AuthSession.token == token).first() is None:
            db_session.add(AuthSession(
                token=token,
                user_id=user.id,
                expires_at=datetime.now() + timedelta(days=1)
            ))
            db_session.commit()
        return {"X-Session-Token": token}
    return _auth_headers
