"""
Shared pytest fixtures: in-memory async SQLite, seed factories, pinned clock
and an ASGI client with the session/clock dependencies overridden.
"""

import os
import sys
from datetime import datetime, timezone

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COACHDESK_API_KEY", "test_api_key")
os.environ.setdefault("DEFAULT_TIMEZONE", "UTC")

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_now
from app.db.base import init_db
from app.db.models.appointment import Appointment
from app.db.models.business import Business
from app.db.models.customer import Customer
from app.db.session import get_session, make_engine

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
API_KEY = "test_api_key"

# 2024-06-05 15:30 UTC == 09:30 in America/Edmonton (MDT, UTC-6)
NOW = datetime(2024, 6, 5, 15, 30, tzinfo=timezone.utc)
LOCAL_TZ = "America/Edmonton"
TODAY = "2024-06-05"


@pytest_asyncio.fixture
async def engine():
    # One shared connection so every session sees the same in-memory database
    eng = make_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_business(db):
    async def _make(*, timezone_name=LOCAL_TZ, limit_one=True, name="Peak Coaching"):
        business = Business(
            name=name,
            timezone=timezone_name,
            limit_customer_to_one_upcoming_appointment=limit_one,
        )
        db.add(business)
        await db.commit()
        await db.refresh(business)
        return business
    return _make


@pytest.fixture
def make_customer(db):
    async def _make(business, *, full_name="Jane Client", workout_plans=None, meal_plans=None):
        customer = Customer(
            business_id=business.id,
            full_name=full_name,
            mobile="+15875550123",
            assigned_workout_plan_ids=list(workout_plans or []),
            assigned_meal_plan_ids=list(meal_plans or []),
        )
        db.add(customer)
        await db.commit()
        await db.refresh(customer)
        return customer
    return _make


@pytest.fixture
def make_appointment(db):
    async def _make(business, customer, *, date, start_time, status="SCHEDULED"):
        appt = Appointment(
            business_id=business.id,
            customer_id=customer.id,
            date=date,
            start_time=start_time,
            status=status,
        )
        db.add(appt)
        await db.commit()
        await db.refresh(appt)
        return appt
    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    """ASGI client against the real app with the test store and a pinned clock."""
    from app.main import app

    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_now] = lambda: NOW

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-API-Key": API_KEY},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that go through the HTTP app and store")
