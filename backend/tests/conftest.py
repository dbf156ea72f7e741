"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before the application settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.config.constants import CompanyCommissionType, SalespersonCommissionType
from shared.infrastructure.db import get_db
from shared.utils.schemas import CreateOrderRequest
from spa_api.main import app
from spa_api.models import (
    Base,
    CompanyCommissionRule,
    Room,
    Salesperson,
    ServiceItem,
    Technician,
    TechnicianService,
)
from spa_api.services.domain import OrderService
from spa_api.services.events import InMemoryChangeNotifier, get_change_notifier


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)

# 14:05:30 on 2024-03-01 in Asia/Shanghai
DEFAULT_NOW = datetime(2024, 3, 1, 6, 5, 30, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    """In-process notifier recording every published event."""
    return InMemoryChangeNotifier()


@pytest.fixture
def clock():
    return FrozenClock(DEFAULT_NOW)


@pytest.fixture
def service(db_session, notifier, clock):
    """OrderService bound to the test session, notifier and clock."""
    return OrderService(db_session, notifier=notifier, clock=clock)


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """
    Create a test client with database session and notifier overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_change_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Catalog seeds
# =============================================================================


@pytest.fixture
def seed_room(db_session):
    room = Room(name="Room 101")
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def seed_temp_room(db_session):
    """An ad hoc room that disappears once its order is closed."""
    room = Room(name="Extra bed 1", is_temporary=True)
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def seed_service(db_session):
    service_item = ServiceItem(name="Foot massage")
    db_session.add(service_item)
    db_session.commit()
    return service_item


@pytest.fixture
def seed_profit_rule(db_session):
    rule = CompanyCommissionRule(
        name="Profit 50%",
        commission_type=CompanyCommissionType.PROFIT,
        commission_rate=50,
    )
    db_session.add(rule)
    db_session.commit()
    return rule


@pytest.fixture
def seed_revenue_rule(db_session):
    rule = CompanyCommissionRule(
        name="Revenue 10%",
        commission_type=CompanyCommissionType.REVENUE,
        commission_rate=10,
    )
    db_session.add(rule)
    db_session.commit()
    return rule


@pytest.fixture
def seed_technician(db_session, seed_service, seed_profit_rule):
    """Technician charging 100 for the massage, 20 commission, profit 50% rule."""
    technician = Technician(employee_id="T-07")
    technician.services.append(
        TechnicianService(
            service_id=seed_service.id,
            price=100,
            commission=20,
            company_commission_rule_id=seed_profit_rule.id,
        )
    )
    db_session.add(technician)
    db_session.commit()
    return technician


@pytest.fixture
def seed_second_technician(db_session, seed_service, seed_revenue_rule):
    """Technician charging 80 for the massage, 15 commission, revenue 10% rule."""
    technician = Technician(employee_id="T-12")
    technician.services.append(
        TechnicianService(
            service_id=seed_service.id,
            price=80,
            commission=15,
            company_commission_rule_id=seed_revenue_rule.id,
        )
    )
    db_session.add(technician)
    db_session.commit()
    return technician


@pytest.fixture
def seed_percentage_salesperson(db_session):
    salesperson = Salesperson(
        name="Lin",
        commission_type=SalespersonCommissionType.PERCENTAGE,
        commission_rate=10,
    )
    db_session.add(salesperson)
    db_session.commit()
    return salesperson


@pytest.fixture
def seed_fixed_salesperson(db_session):
    salesperson = Salesperson(
        name="Chen",
        commission_type=SalespersonCommissionType.FIXED,
        commission_rate=15,
    )
    db_session.add(salesperson)
    db_session.commit()
    return salesperson


@pytest.fixture
def open_order(service, notifier, seed_room, seed_service, seed_technician):
    """An open order with one 100.00 massage line by T-07. Events are cleared."""
    order = service.create_order(CreateOrderRequest(room_id=seed_room.id, customer_name="Wang"))
    service.add_item(order.id, seed_service.id, seed_technician.id)
    notifier.clear()
    return order
