"""Expiry sweeper for subscriptions past their period end.

This module provides the batch pass that converts ended trials and renews or
expires active subscriptions whose current period has ended, plus a scheduler
that runs the pass on a cron schedule inside the API process.
"""

import asyncio
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from croniter import croniter
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import crud
from ostobilling.core.config import settings
from ostobilling.core.datetime_utils import utc_now_naive
from ostobilling.core.logging import LoggerConfigurator
from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.db.session import get_db_context
from ostobilling.platform.billing import plan_logic
from ostobilling.platform.billing.subscription_service import (
    SubscriptionService,
    subscription_service,
)
from ostobilling.schemas.sweep import SweepResult

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "expiry_sweeper"})


class ExpirySweeper:
    """Drives subscriptions past their period end through renew-or-expire.

    Candidates are processed one by one, each transition in its own
    transaction, so a failing subscription does not block the others. A
    processed subscription is no longer a candidate, which makes a second run
    over the same data a no-op.
    """

    def __init__(
        self,
        subscriptions: SubscriptionService = subscription_service,
        max_catch_up_periods: Optional[int] = None,
    ):
        """Initialize the sweeper.

        Args:
        ----
            subscriptions (SubscriptionService): The lifecycle engine to drive.
            max_catch_up_periods (int, optional): Most renewals one run may apply
                to a subscription that fell several periods behind. A subscription
                further behind is left unchanged and counted as failed.

        Raises:
        ------
            ValueError: If ``max_catch_up_periods`` is lower than 1.

        """
        if max_catch_up_periods is None:
            max_catch_up_periods = settings.SWEEPER_MAX_CATCH_UP_PERIODS
        if max_catch_up_periods < 1:
            raise ValueError(f"max_catch_up_periods must be at least 1, got {max_catch_up_periods}")

        self.subscriptions = subscriptions
        self.max_catch_up_periods = max_catch_up_periods
        self._lock = asyncio.Lock()

    async def sweep(self, db: AsyncSession) -> SweepResult:
        """Run one sweep.

        Ended trials are converted first, then active subscriptions whose period
        has ended are renewed (auto-renew) or expired. A run that starts while
        another is in progress is skipped.
        """
        if self._lock.locked():
            logger.warning("Sweep already in progress, skipping this run")
            return SweepResult(skipped=True)

        async with self._lock:
            result = SweepResult()
            now = self.subscriptions.clock.now()

            for subscription_id in await crud.subscription.get_trials_ended(db, now):
                try:
                    await self._close_trial(db, subscription_id, result)
                except Exception as e:
                    result.failed += 1
                    logger.with_context(subscription_id=str(subscription_id)).error(
                        f"Error converting trial {subscription_id}: {e}", exc_info=True
                    )

            for subscription_id in await crud.subscription.get_due_for_sweep(db, now):
                try:
                    await self._process_due(db, subscription_id, now, result)
                except Exception as e:
                    result.failed += 1
                    logger.with_context(subscription_id=str(subscription_id)).error(
                        f"Error sweeping subscription {subscription_id}: {e}", exc_info=True
                    )

            logger.info(
                f"Sweep finished: {result.converted} converted, {result.renewed} renewed, "
                f"{result.expired} expired, {result.failed} failed"
            )
            return result

    async def _close_trial(self, db: AsyncSession, subscription_id: UUID, result: SweepResult):
        subscription = await self.subscriptions.convert_trial(db, subscription_id)
        if subscription.status == SubscriptionStatus.EXPIRED:
            result.expired += 1
        else:
            result.converted += 1

    async def _process_due(
        self, db: AsyncSession, subscription_id: UUID, now: datetime, result: SweepResult
    ):
        subscription = await crud.subscription.get(db, subscription_id)
        if (
            subscription is None
            or subscription.status != SubscriptionStatus.ACTIVE
            or subscription.current_period_end > now
        ):
            return

        sub_logger = logger.with_context(
            organization_id=str(subscription.organization_id),
            subscription_id=str(subscription.id),
        )

        if not subscription.auto_renew:
            await self.subscriptions.expire(db, subscription_id)
            result.expired += 1
            return

        try:
            plan = await crud.plan.get(db, subscription.plan_id)
            interval = plan.interval if plan is not None else ""
            missed = plan_logic.periods_behind(
                subscription.current_period_end, interval, now, self.max_catch_up_periods
            )
            if missed > self.max_catch_up_periods:
                sub_logger.error(
                    f"Subscription missed more than {self.max_catch_up_periods} periods, "
                    "leaving it unchanged"
                )
                result.failed += 1
                return

            for _ in range(missed):
                await self.subscriptions.renew(db, subscription_id)
        except Exception as e:
            sub_logger.warning(f"Renewal failed, expiring subscription: {e}", exc_info=True)
            await self.subscriptions.expire(db, subscription_id)
            result.expired += 1
            return

        result.renewed += 1


class SweepScheduler:
    """Runs the expiry sweep on a cron schedule.

    Started and stopped from the application lifespan.
    """

    def __init__(
        self,
        sweeper: ExpirySweeper,
        cron_expression: Optional[str] = None,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = get_db_context,
    ):
        """Initialize the scheduler."""
        self.sweeper = sweeper
        self.cron_expression = cron_expression or settings.SWEEPER_CRON
        self.session_factory = session_factory
        self.running = False
        self.task: Optional[asyncio.Task] = None

        if not croniter.is_valid(self.cron_expression):
            raise ValueError(f"Invalid sweeper cron expression: {self.cron_expression}")

    def next_run(self, after: datetime) -> datetime:
        """The first scheduled run strictly after the given time."""
        return croniter(self.cron_expression, after).get_next(datetime)

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Sweep scheduler is already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._scheduler_loop())
        logger.info(f"Sweep scheduler started with schedule '{self.cron_expression}'")

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            logger.warning("Sweep scheduler is not running")
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                logger.debug("Sweep scheduler task cancelled successfully")
            self.task = None
        logger.info("Sweep scheduler stopped")

    async def run_once(self) -> SweepResult:
        """Run one sweep in a fresh database session."""
        async with self.session_factory() as db:
            return await self.sweeper.sweep(db)

    async def _scheduler_loop(self):
        """Sleep until the next scheduled run, sweep, repeat."""
        while self.running:
            now = utc_now_naive()
            delay = (self.next_run(now) - now).total_seconds()
            logger.debug(f"Next sweep in {delay:.0f}s")
            await asyncio.sleep(max(delay, 0))

            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in sweep scheduler loop: {e}", exc_info=True)


expiry_sweeper = ExpirySweeper()
