"""Integration tests for the expiry sweeper."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from ostobilling import crud, schemas
from ostobilling.core.exceptions import StorageFailureException
from ostobilling.core.shared_models import SubscriptionStatus
from tests.fixtures.common import CLOCK_START


@pytest.fixture
def subscribe(db_session, subscription_service, make_organization):
    """Factory that subscribes a fresh organization to a plan."""

    async def _subscribe(plan, auto_renew: bool = True):
        organization = await make_organization()
        return await subscription_service.create(
            db_session,
            schemas.SubscriptionCreate(
                organization_id=organization.id, plan_id=plan.id, auto_renew=auto_renew
            ),
        )

    return _subscribe


@pytest.mark.integration
class TestExpirySweeper:
    """Test renew-or-expire sweeps."""

    async def test_nothing_due(self, db_session, sweeper, subscribe, plan_monthly):
        """Subscriptions inside their period are left alone."""
        await subscribe(plan_monthly)

        result = await sweeper.sweep(db_session)

        assert result.changed == 0
        assert result.failed == 0
        assert not result.skipped

    async def test_renews_auto_renew_subscription(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_monthly
    ):
        """A due auto-renew subscription moves into its next period with a new invoice."""
        subscription = await subscribe(plan_monthly)
        first_end = subscription.current_period_end
        clock.set(first_end + timedelta(minutes=1))

        result = await sweeper.sweep(db_session)

        assert result.renewed == 1
        renewed = await subscription_service.get(db_session, subscription.id)
        assert renewed.status == SubscriptionStatus.ACTIVE
        assert renewed.current_period_start == first_end
        assert renewed.current_period_end > clock.now()
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 2

    async def test_second_sweep_is_a_no_op(
        self, db_session, sweeper, clock, subscribe, plan_monthly
    ):
        """Running the sweep twice over the same data changes nothing the second time."""
        subscription = await subscribe(plan_monthly)
        clock.set(subscription.current_period_end + timedelta(hours=1))

        first = await sweeper.sweep(db_session)
        second = await sweeper.sweep(db_session)

        assert first.renewed == 1
        assert second.changed == 0
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 2

    async def test_expires_without_auto_renew(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_monthly
    ):
        """A due subscription without auto-renew expires and is not billed again."""
        subscription = await subscribe(plan_monthly, auto_renew=False)
        clock.set(subscription.current_period_end)

        result = await sweeper.sweep(db_session)

        assert result.expired == 1
        expired = await subscription_service.get(db_session, subscription.id)
        assert expired.status == SubscriptionStatus.EXPIRED
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 1

    async def test_expires_canceled_at_period_end(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_monthly
    ):
        """A subscription canceled at period end expires once the period is over."""
        subscription = await subscribe(plan_monthly)
        await subscription_service.cancel(db_session, subscription.id)
        clock.set(subscription.current_period_end + timedelta(seconds=1))

        result = await sweeper.sweep(db_session)

        assert result.expired == 1
        assert (
            await subscription_service.get(db_session, subscription.id)
        ).status == SubscriptionStatus.EXPIRED

    async def test_converts_and_expires_trials(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_trial
    ):
        """Ended trials convert, canceled ended trials expire."""
        converting = await subscribe(plan_trial)
        canceled = await subscribe(plan_trial)
        await subscription_service.cancel(db_session, canceled.id)
        clock.set(CLOCK_START + timedelta(days=14, minutes=1))

        result = await sweeper.sweep(db_session)

        assert result.converted == 1
        assert result.expired == 1
        assert (
            await subscription_service.get(db_session, converting.id)
        ).status == SubscriptionStatus.ACTIVE
        assert (
            await subscription_service.get(db_session, canceled.id)
        ).status == SubscriptionStatus.EXPIRED

    async def test_catches_up_missed_periods(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_weekly
    ):
        """A subscription several periods behind catches up in a single run."""
        subscription = await subscribe(plan_weekly)
        clock.set(CLOCK_START + timedelta(days=21, hours=1))

        first = await sweeper.sweep(db_session)
        caught_up = await subscription_service.get(db_session, subscription.id)
        assert first.renewed == 1
        assert caught_up.current_period_start == CLOCK_START + timedelta(days=21)
        assert caught_up.current_period_end == CLOCK_START + timedelta(days=28)
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 4

        second = await sweeper.sweep(db_session)
        assert second.changed == 0
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 4

    async def test_too_far_behind_is_left_unchanged(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_weekly
    ):
        """A subscription behind by more periods than the cap is not partially renewed."""
        subscription = await subscribe(plan_weekly)
        first_end = subscription.current_period_end
        clock.set(CLOCK_START + timedelta(days=35, hours=1))

        first = await sweeper.sweep(db_session)
        second = await sweeper.sweep(db_session)

        assert first.failed == 1
        assert first.changed == 0
        assert second.changed == 0
        unchanged = await subscription_service.get(db_session, subscription.id)
        assert unchanged.status == SubscriptionStatus.ACTIVE
        assert unchanged.current_period_end == first_end
        assert len(await crud.invoice.get_by_subscription(db_session, subscription.id)) == 1

    async def test_converted_trial_far_behind_is_stable(
        self, db_session, sweeper, clock, subscribe, plan_trial, plan_monthly
    ):
        """A sweep after a long outage changes nothing when run a second time."""
        trial = await subscribe(plan_trial)
        await subscribe(plan_monthly)
        await subscribe(plan_monthly, auto_renew=False)
        clock.set(datetime(2024, 6, 1))

        first = await sweeper.sweep(db_session)
        invoices = len(await crud.invoice.get_by_subscription(db_session, trial.id))
        second = await sweeper.sweep(db_session)

        assert first.converted == 1
        assert first.expired == 1
        assert second.changed == 0
        assert len(await crud.invoice.get_by_subscription(db_session, trial.id)) == invoices

    async def test_failed_renewal_expires(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_monthly
    ):
        """A renewal that fails falls back to expiring the subscription."""
        subscription = await subscribe(plan_monthly)
        clock.set(subscription.current_period_end + timedelta(minutes=1))
        subscription_service.renew = AsyncMock(side_effect=StorageFailureException())

        result = await sweeper.sweep(db_session)

        assert result.expired == 1
        assert result.renewed == 0
        assert (
            await subscription_service.get(db_session, subscription.id)
        ).status == SubscriptionStatus.EXPIRED

    async def test_one_failure_does_not_block_others(
        self, db_session, sweeper, subscription_service, clock, subscribe, plan_monthly, plan_trial
    ):
        """A candidate that fails is counted and the rest of the run goes on."""
        await subscribe(plan_trial)
        active = await subscribe(plan_monthly)
        clock.set(active.current_period_end + timedelta(minutes=1))
        subscription_service.convert_trial = AsyncMock(side_effect=RuntimeError("boom"))

        result = await sweeper.sweep(db_session)

        assert result.failed == 1
        assert result.renewed == 1

    async def test_concurrent_run_is_skipped(self, db_session, sweeper):
        """A sweep that starts while another one runs does nothing."""
        async with sweeper._lock:
            result = await sweeper.sweep(db_session)

        assert result.skipped
        assert result.changed == 0
