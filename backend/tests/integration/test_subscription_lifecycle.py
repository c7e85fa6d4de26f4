"""Integration tests for the subscription lifecycle engine."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from ostobilling import crud, schemas
from ostobilling.core.exceptions import (
    ConflictException,
    InvalidStateError,
    NotFoundException,
    StorageFailureException,
)
from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models import Invoice, Subscription
from tests.fixtures.common import CLOCK_START


def _subscribe(organization, plan, auto_renew: bool = True) -> schemas.SubscriptionCreate:
    return schemas.SubscriptionCreate(
        organization_id=organization.id, plan_id=plan.id, auto_renew=auto_renew
    )


@pytest.mark.integration
class TestCreateSubscription:
    """Test subscribing organizations to plans."""

    async def test_create_active_bills_first_period(
        self, db_session, subscription_service, organization, plan_monthly
    ):
        """A plan without trial starts active with one invoice for the first period."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )

        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.start_date == CLOCK_START
        assert subscription.current_period_start == CLOCK_START
        assert subscription.current_period_end == datetime(2024, 2, 15, 9, 30)
        assert subscription.trial_end_date is None
        assert subscription.auto_renew

        invoices = await crud.invoice.get_by_subscription(db_session, subscription.id)
        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.status == "draft"
        assert invoice.total == Decimal("29.99")
        assert invoice.due_date == subscription.current_period_end
        assert invoice.notes == "Subscription: Pro Monthly"
        assert [item.description for item in invoice.items] == [
            "Pro Monthly - monthly subscription"
        ]

    async def test_create_trial_bills_nothing(
        self, db_session, subscription_service, organization, plan_trial
    ):
        """A plan with trial days starts trialing without an invoice."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_trial)
        )

        assert subscription.status == SubscriptionStatus.TRIALING
        assert subscription.trial_end_date == CLOCK_START + timedelta(days=14)
        assert await crud.invoice.get_by_subscription(db_session, subscription.id) == []

    async def test_second_live_subscription_conflicts(
        self, db_session, subscription_service, organization, plan_monthly, plan_weekly
    ):
        """An organization holds at most one live subscription."""
        await subscription_service.create(db_session, _subscribe(organization, plan_monthly))

        with pytest.raises(ConflictException):
            await subscription_service.create(db_session, _subscribe(organization, plan_weekly))

    async def test_trialing_subscription_conflicts_without_new_rows(
        self, db_session, subscription_service, organization, plan_trial, plan_monthly
    ):
        """A trialing subscription blocks a new one and nothing is written."""
        await subscription_service.create(db_session, _subscribe(organization, plan_trial))
        request = _subscribe(organization, plan_monthly)

        with pytest.raises(ConflictException):
            await subscription_service.create(db_session, request)

        subscriptions = await db_session.scalar(select(func.count()).select_from(Subscription))
        invoices = await db_session.scalar(select(func.count()).select_from(Invoice))
        assert (subscriptions, invoices) == (1, 0)

    @pytest.mark.parametrize(
        "year, period_end",
        [(2024, datetime(2024, 2, 29, 10)), (2023, datetime(2023, 2, 28, 10))],
    )
    async def test_month_end_start_clamps_period_and_due_date(
        self, db_session, subscription_service, clock, organization, plan_monthly, year, period_end
    ):
        """A subscription started on Jan 31 ends its first period on the last day of February."""
        clock.set(datetime(year, 1, 31, 10))

        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )

        assert subscription.current_period_end == period_end
        assert subscription.end_date == period_end
        invoices = await crud.invoice.get_by_subscription(db_session, subscription.id)
        assert len(invoices) == 1
        assert invoices[0].total == Decimal("29.99")
        assert invoices[0].due_date == subscription.current_period_end

    async def test_resubscribe_after_cancel(
        self, db_session, subscription_service, organization, plan_monthly, plan_weekly
    ):
        """An immediately canceled subscription frees the organization."""
        first = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        await subscription_service.cancel(db_session, first.id, immediate=True)

        second = await subscription_service.create(
            db_session, _subscribe(organization, plan_weekly)
        )

        assert second.status == SubscriptionStatus.ACTIVE
        assert (await subscription_service.get_active(db_session, organization.id)).id == (
            second.id
        )

    async def test_missing_references(self, db_session, subscription_service, organization):
        """Unknown organizations and plans are not found."""
        with pytest.raises(NotFoundException):
            await subscription_service.create(
                db_session,
                schemas.SubscriptionCreate(organization_id=organization.id, plan_id=uuid4()),
            )
        with pytest.raises(NotFoundException):
            await subscription_service.create(
                db_session,
                schemas.SubscriptionCreate(organization_id=uuid4(), plan_id=uuid4()),
            )

    async def test_inactive_plan_rejected(
        self, db_session, subscription_service, organization, make_plan
    ):
        """Inactive plans cannot be subscribed to."""
        plan = await make_plan("Retired", is_active=False)

        with pytest.raises(InvalidStateError):
            await subscription_service.create(db_session, _subscribe(organization, plan))

    async def test_inactive_organization_rejected(
        self, db_session, subscription_service, make_organization, plan_monthly
    ):
        """Inactive organizations cannot subscribe."""
        organization = await make_organization("Dormant Inc", is_active=False)

        with pytest.raises(InvalidStateError):
            await subscription_service.create(db_session, _subscribe(organization, plan_monthly))

    async def test_invoice_failure_rolls_back_subscription(
        self, db_session, subscription_service, organization, plan_monthly
    ):
        """A failing invoice write leaves neither subscription nor invoice behind."""
        organization_id = organization.id
        subscription_service.invoices.generate_for_period = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("disk full"))
        )

        with pytest.raises(StorageFailureException):
            await subscription_service.create(db_session, _subscribe(organization, plan_monthly))

        subscriptions, total = await crud.subscription.get_by_organization(
            db_session, organization_id
        )
        assert total == 0
        assert subscriptions == []
        assert (await crud.invoice.get_multi(db_session))[1] == 0

    async def test_live_index_rejects_concurrent_duplicate(
        self, db_session, organization, plan_monthly
    ):
        """The storage layer refuses a second live row even past the service checks."""

        def live_row() -> Subscription:
            return Subscription(
                organization_id=organization.id,
                plan_id=plan_monthly.id,
                status=SubscriptionStatus.ACTIVE.value,
                start_date=CLOCK_START,
                current_period_start=CLOCK_START,
                current_period_end=CLOCK_START + timedelta(days=30),
                auto_renew=True,
            )

        async with UnitOfWork(db_session) as uow:
            uow.session.add(live_row())
            await uow.commit()

        with pytest.raises(ConflictException):
            async with UnitOfWork(db_session) as uow:
                uow.session.add(live_row())
                await uow.session.flush()
                await uow.commit()


@pytest.mark.integration
class TestCancelSubscription:
    """Test immediate and end-of-period cancellation."""

    async def test_cancel_at_period_end(
        self, db_session, subscription_service, clock, organization, plan_monthly
    ):
        """Cancelling at period end keeps the subscription live without auto-renew."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        clock.advance(timedelta(days=3))

        canceled = await subscription_service.cancel(db_session, subscription.id)

        assert canceled.status == SubscriptionStatus.ACTIVE
        assert canceled.canceled_at == CLOCK_START + timedelta(days=3)
        assert not canceled.auto_renew
        assert canceled.current_period_end == datetime(2024, 2, 15, 9, 30)

    async def test_cancel_immediately(
        self, db_session, subscription_service, clock, organization, plan_monthly
    ):
        """An immediate cancellation ends the subscription now."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        clock.advance(timedelta(hours=5))

        canceled = await subscription_service.cancel(db_session, subscription.id, immediate=True)

        assert canceled.status == SubscriptionStatus.CANCELED
        assert canceled.end_date == CLOCK_START + timedelta(hours=5)
        assert canceled.canceled_at == canceled.end_date

    async def test_cancel_twice_rejected(
        self, db_session, subscription_service, organization, plan_monthly
    ):
        """A canceled subscription cannot be canceled again."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        await subscription_service.cancel(db_session, subscription.id, immediate=True)

        with pytest.raises(InvalidStateError):
            await subscription_service.cancel(db_session, subscription.id)

    async def test_cancel_unknown(self, db_session, subscription_service):
        """Cancelling an unknown subscription is not found."""
        with pytest.raises(NotFoundException):
            await subscription_service.cancel(db_session, uuid4())


@pytest.mark.integration
class TestRenewSubscription:
    """Test manual renewal."""

    async def test_renew_chains_periods(
        self, db_session, subscription_service, organization, make_plan
    ):
        """Each renewal starts at the previous end and bills the new period."""
        plan = await make_plan("Month End", interval="monthly")
        subscription_service.clock.set(datetime(2024, 1, 31))
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan)
        )

        renewed = await subscription_service.renew(db_session, subscription.id)
        assert renewed.current_period_start == datetime(2024, 2, 29)
        assert renewed.current_period_end == datetime(2024, 3, 29)
        assert renewed.end_date == renewed.current_period_end

        invoices = await crud.invoice.get_by_subscription(db_session, subscription.id)
        assert [invoice.due_date for invoice in invoices] == [
            datetime(2024, 2, 29),
            datetime(2024, 3, 29),
        ]
        assert len({invoice.invoice_number for invoice in invoices}) == 2

    async def test_renew_trial_rejected(
        self, db_session, subscription_service, organization, plan_trial
    ):
        """Trialing subscriptions are converted, not renewed."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_trial)
        )

        with pytest.raises(InvalidStateError):
            await subscription_service.renew(db_session, subscription.id)

    async def test_renew_failure_keeps_period(
        self, db_session, subscription_service, organization, plan_monthly
    ):
        """A failed renewal leaves the period and the invoices as they were."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        subscription_id = subscription.id
        period_end = subscription.current_period_end
        subscription_service.invoices.generate_for_period = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("timeout"))
        )

        with pytest.raises(StorageFailureException):
            await subscription_service.renew(db_session, subscription_id)

        reloaded = await subscription_service.get(db_session, subscription_id)
        assert reloaded.current_period_end == period_end
        assert len(await crud.invoice.get_by_subscription(db_session, subscription_id)) == 1


@pytest.mark.integration
class TestTrialConversion:
    """Test closing ended trials."""

    async def test_convert_after_trial_end(
        self, db_session, subscription_service, clock, organization, plan_trial
    ):
        """An ended trial becomes active with a billed period starting at the trial end."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_trial)
        )
        trial_end = subscription.trial_end_date
        clock.set(trial_end + timedelta(hours=1))

        converted = await subscription_service.convert_trial(db_session, subscription.id)

        assert converted.status == SubscriptionStatus.ACTIVE
        assert converted.current_period_start == trial_end
        assert converted.current_period_end == datetime(2024, 2, 29, 9, 30)

        invoices = await crud.invoice.get_by_subscription(db_session, subscription.id)
        assert len(invoices) == 1
        assert invoices[0].due_date == converted.current_period_end

    async def test_convert_before_trial_end_rejected(
        self, db_session, subscription_service, organization, plan_trial
    ):
        """A running trial cannot be converted."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_trial)
        )

        with pytest.raises(InvalidStateError):
            await subscription_service.convert_trial(db_session, subscription.id)

    async def test_canceled_trial_expires(
        self, db_session, subscription_service, clock, organization, plan_trial
    ):
        """A trial canceled at period end expires instead of converting."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_trial)
        )
        await subscription_service.cancel(db_session, subscription.id)
        clock.advance(timedelta(days=15))

        closed = await subscription_service.convert_trial(db_session, subscription.id)

        assert closed.status == SubscriptionStatus.EXPIRED
        assert await crud.invoice.get_by_subscription(db_session, subscription.id) == []


@pytest.mark.integration
class TestQueries:
    """Test subscription reads."""

    async def test_get_active_without_subscription(
        self, db_session, subscription_service, organization
    ):
        """An organization without a live subscription has no active one."""
        with pytest.raises(NotFoundException):
            await subscription_service.get_active(db_session, organization.id)

    async def test_list_filters_by_status(
        self, db_session, subscription_service, make_organization, plan_monthly, plan_trial
    ):
        """Listing can be narrowed to one status."""
        await subscription_service.create(
            db_session, _subscribe(await make_organization(), plan_monthly)
        )
        await subscription_service.create(
            db_session, _subscribe(await make_organization(), plan_trial)
        )
        params = schemas.PageParams.build(page=1, limit=10)

        trialing, total = await subscription_service.list_subscriptions(
            db_session, params, SubscriptionStatus.TRIALING
        )
        _, everything = await subscription_service.list_subscriptions(db_session, params)

        assert total == 1
        assert trialing[0].status == SubscriptionStatus.TRIALING
        assert everything == 2

    async def test_expire_ended_subscription_rejected(
        self, db_session, subscription_service, organization, plan_monthly
    ):
        """Expiring a subscription that already ended is refused."""
        subscription = await subscription_service.create(
            db_session, _subscribe(organization, plan_monthly)
        )
        await subscription_service.expire(db_session, subscription.id)

        with pytest.raises(InvalidStateError):
            await subscription_service.expire(db_session, subscription.id)
