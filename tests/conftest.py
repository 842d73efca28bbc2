"""Shared test fixtures and helpers."""

import os

# The engine in scheduling.config.database is built at import time
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, time
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scheduling.models import Base, Booking, BookingStatus, ProviderService, ServiceProvider
from scheduling.services.availability.availability_store import AvailabilityStore

# Monday
TODAY = date(2026, 10, 19)
NEXT_MONDAY = date(2026, 10, 26)
MONDAY = 1  # Sunday=0


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def provider(db):
    return make_provider(db)


@pytest.fixture
def service(db, provider):
    return make_service(db, provider)


@pytest.fixture
def monday_morning(db, provider):
    """Weekly rule Mon 09:00-12:00"""
    AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9, 0), time(12, 0))
    return provider


def make_provider(db, business_name: str = "Sparkle Cleaning") -> ServiceProvider:
    """Helper to persist a ServiceProvider."""
    provider = ServiceProvider(id=uuid4(), business_name=business_name, is_active=True)
    db.add(provider)
    db.commit()
    return provider


def make_service(
    db,
    provider: ServiceProvider,
    name: str = "Standard Clean",
    duration_minutes: int = 60,
    base_price: str = "80.00",
    price_override: Optional[str] = None,
    duration_override: Optional[int] = None,
    is_active: bool = True,
) -> ProviderService:
    """Helper to persist a ProviderService."""
    service = ProviderService(
        id=uuid4(),
        provider_id=provider.id,
        name=name,
        duration_minutes=duration_minutes,
        base_price=Decimal(base_price),
        price_override=Decimal(price_override) if price_override else None,
        duration_override=duration_override,
        is_active=is_active,
    )
    db.add(service)
    db.commit()
    return service


def make_booking(
    db,
    provider: ServiceProvider,
    service: ProviderService,
    scheduled_date: date,
    start: time,
    end: time,
    status: BookingStatus = BookingStatus.CONFIRMED,
    customer_id=None,
) -> Booking:
    """Insert a booking directly, bypassing availability checks."""
    booking = Booking(
        id=uuid4(),
        customer_id=customer_id or uuid4(),
        provider_id=provider.id,
        service_id=service.id,
        status=status,
        scheduled_date=scheduled_date,
        start_time=start,
        end_time=end,
        service_address="1 Main St",
        total_price=Decimal("80.00"),
    )
    db.add(booking)
    db.commit()
    return booking


@pytest.fixture
def client(session_factory):
    """TestClient bound to the per-test database with a fixed clock."""
    from fastapi.testclient import TestClient

    from scheduling.api.dependencies import get_today
    from scheduling.config.database import get_db
    from scheduling.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()


def principal_headers(principal_id, role: str) -> dict:
    return {"X-Principal-Id": str(principal_id), "X-Principal-Role": role}
