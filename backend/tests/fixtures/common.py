"""Common test fixtures."""

import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from ostobilling import crud
from ostobilling.core.slug import slugify
from ostobilling.models import Organization, Plan

CLOCK_START = datetime(2024, 1, 15, 9, 30)


@pytest.fixture
def make_organization(db_session):
    """Factory that stores an organization with a unique name."""

    async def _make(name: str | None = None, is_active: bool = True) -> Organization:
        name = name or f"Org {uuid.uuid4().hex[:8]}"
        return await crud.organization.create(
            db_session,
            obj_in={
                "name": name,
                "slug": slugify(name),
                "email": "billing@example.com",
                "is_active": is_active,
            },
        )

    return _make


@pytest.fixture
def make_plan(db_session):
    """Factory that stores a plan with a unique name."""

    async def _make(
        name: str | None = None,
        price: str = "29.99",
        interval: str = "monthly",
        trial_days: int = 0,
        is_active: bool = True,
        is_popular: bool = False,
        currency: str = "USD",
    ) -> Plan:
        name = name or f"Plan {uuid.uuid4().hex[:8]}"
        return await crud.plan.create(
            db_session,
            obj_in={
                "name": name,
                "slug": slugify(name),
                "description": f"The {name} plan for tests.",
                "price": Decimal(price),
                "currency": currency,
                "interval": interval,
                "trial_days": trial_days,
                "features": ["Everything"],
                "is_active": is_active,
                "is_popular": is_popular,
            },
        )

    return _make


@pytest.fixture
async def organization(make_organization) -> Organization:
    """An active organization."""
    return await make_organization("Acme Corp")


@pytest.fixture
async def plan_monthly(make_plan) -> Plan:
    """An active monthly plan without trial."""
    return await make_plan("Pro Monthly", price="29.99", interval="monthly")


@pytest.fixture
async def plan_weekly(make_plan) -> Plan:
    """An active weekly plan without trial."""
    return await make_plan("Starter Weekly", price="9.99", interval="weekly")


@pytest.fixture
async def plan_trial(make_plan) -> Plan:
    """An active monthly plan with a 14 day trial."""
    return await make_plan("Team Trial", price="49.00", interval="monthly", trial_days=14)
