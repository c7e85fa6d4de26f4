"""Common test fixtures and configuration for pytest.

This module contains fixtures that can be used across all types of tests:
- Unit tests
- Integration tests
- API tests
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from ostobilling.core.clock import FixedClock
from ostobilling.core.organization_service import OrganizationService
from ostobilling.models._base import Base
from ostobilling.platform.billing.expiry_sweeper import ExpirySweeper
from ostobilling.platform.billing.invoice_service import InvoiceService
from ostobilling.platform.billing.plan_catalog import PlanCatalog
from ostobilling.platform.billing.subscription_service import SubscriptionService

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.common import (  # noqa
    CLOCK_START,
    make_organization,
    make_plan,
    organization,
    plan_monthly,
    plan_trial,
    plan_weekly,
)


# Mock DB Session for Unit Tests
@pytest.fixture
async def mock_db_session():
    """Provide a mock DB session for unit tests."""
    mock_session = AsyncMock(spec=AsyncSession)
    yield mock_session


# Test Database Connection for Integration Tests
@pytest.fixture(scope="function")
async def db_engine():
    """Create a test database engine for each test function.

    Defaults to an in-memory SQLite database shared through a StaticPool.
    Point TEST_DATABASE_URL at a PostgreSQL database to run against it instead.
    """
    test_db_url = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

    engine = create_async_engine(test_db_url, poolclass=StaticPool)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after each test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for integration tests.

    Each test gets a fresh session with complete cleanup.
    """
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    """A clock pinned at CLOCK_START that tests move explicitly."""
    return FixedClock(CLOCK_START)


@pytest.fixture
def invoice_service(clock) -> InvoiceService:
    """Invoice generator reading time from the test clock."""
    return InvoiceService(clock=clock)


@pytest.fixture
def subscription_service(clock, invoice_service) -> SubscriptionService:
    """Lifecycle engine reading time from the test clock."""
    return SubscriptionService(clock=clock, invoices=invoice_service)


@pytest.fixture
def plan_catalog() -> PlanCatalog:
    """Plan catalog service."""
    return PlanCatalog()


@pytest.fixture
def organization_service(clock) -> OrganizationService:
    """Organization service reading time from the test clock."""
    return OrganizationService(clock=clock)


@pytest.fixture
def sweeper(subscription_service) -> ExpirySweeper:
    """Expiry sweeper with a small catch-up cap."""
    return ExpirySweeper(subscription_service, max_catch_up_periods=3)


@pytest.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the application with the test database session."""
    from ostobilling.api import deps
    from ostobilling.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
