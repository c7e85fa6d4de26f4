"""Subscription lifecycle engine.

Owns the subscription state machine:

    trialing --convert--> active --renew--> active
        |                   |
        +----cancel/expire--+--> canceled | expired   (terminal)

Every transition that starts a billable period writes the subscription change
and its invoice in a single unit of work. A failure anywhere in that unit
rolls both back and surfaces as a typed exception.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import crud, schemas
from ostobilling.core.clock import Clock, system_clock
from ostobilling.core.exceptions import ConflictException, InvalidStateError, NotFoundException
from ostobilling.core.logging import ContextualLogger, LoggerConfigurator
from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models import Plan, Subscription
from ostobilling.platform.billing import plan_logic
from ostobilling.platform.billing.invoice_service import InvoiceService

logger = LoggerConfigurator.configure_logger(
    __name__, dimensions={"component": "subscription_lifecycle"}
)

DUPLICATE_SUBSCRIPTION_MESSAGE = "Organization already has an active subscription"


class SubscriptionService:
    """Service driving subscriptions through their lifecycle."""

    def __init__(self, clock: Clock = system_clock, invoices: Optional[InvoiceService] = None):
        """Initialize the lifecycle engine.

        Args:
        ----
            clock (Clock): Source of "now" for every transition.
            invoices (InvoiceService, optional): Invoice generator. Defaults to one
                sharing this engine's clock.

        """
        self.clock = clock
        self.invoices = invoices or InvoiceService(clock=clock)

    def _log(self, subscription: Subscription) -> ContextualLogger:
        return logger.with_context(
            organization_id=str(subscription.organization_id),
            subscription_id=str(subscription.id),
        )

    async def _get_plan(self, db: AsyncSession, plan_id: UUID) -> Plan:
        plan = await crud.plan.get(db, plan_id)
        if plan is None:
            raise NotFoundException(f"Plan {plan_id} not found")
        return plan

    async def _lock(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        subscription = await crud.subscription.get_for_update(db, subscription_id)
        if subscription is None:
            raise NotFoundException(f"Subscription {subscription_id} not found")
        return subscription

    # Queries

    async def get(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        """Get a subscription by ID.

        Raises:
        ------
            NotFoundException: If the subscription does not exist.

        """
        subscription = await crud.subscription.get(db, subscription_id)
        if subscription is None:
            raise NotFoundException(f"Subscription {subscription_id} not found")
        return subscription

    async def get_active(self, db: AsyncSession, organization_id: UUID) -> Subscription:
        """Get the organization's trialing or active subscription.

        Raises:
        ------
            NotFoundException: If the organization has no live subscription.

        """
        subscription = await crud.subscription.get_live_by_organization(db, organization_id)
        if subscription is None:
            raise NotFoundException(
                f"Organization {organization_id} has no active subscription"
            )
        return subscription

    async def list_by_organization(
        self, db: AsyncSession, organization_id: UUID, params: schemas.PageParams
    ) -> tuple[list[Subscription], int]:
        """A page of an organization's subscriptions with the total count."""
        return await crud.subscription.get_by_organization(
            db, organization_id, skip=params.offset, limit=params.limit
        )

    async def list_subscriptions(
        self,
        db: AsyncSession,
        params: schemas.PageParams,
        status: Optional[SubscriptionStatus] = None,
    ) -> tuple[list[Subscription], int]:
        """A page of subscriptions, optionally filtered by status, with the total count."""
        return await crud.subscription.get_multi(
            db, skip=params.offset, limit=params.limit, status=status
        )

    # Transitions

    async def create(
        self, db: AsyncSession, subscription_in: schemas.SubscriptionCreate
    ) -> Subscription:
        """Subscribe an organization to a plan.

        The first period starts now and lasts one plan interval. A plan with
        trial days starts the subscription in ``trialing`` and bills nothing yet.
        Otherwise the subscription is ``active`` and the first period is invoiced
        in the same transaction.

        Raises:
        ------
            NotFoundException: If the organization or the plan does not exist.
            InvalidStateError: If the organization or the plan is inactive.
            ConflictException: If the organization already has a live subscription.
            InvalidInputException: If the plan carries an unknown interval.
            StorageFailureException: If the database write fails.

        """
        organization = await crud.organization.get(db, subscription_in.organization_id)
        if organization is None:
            raise NotFoundException(f"Organization {subscription_in.organization_id} not found")
        if not organization.is_active:
            raise InvalidStateError("Organization is not active")

        plan = await self._get_plan(db, subscription_in.plan_id)
        if not plan.is_active:
            raise InvalidStateError("Plan is not active")

        if await crud.subscription.get_live_by_organization(db, organization.id) is not None:
            raise ConflictException(DUPLICATE_SUBSCRIPTION_MESSAGE)

        now = self.clock.now()
        terms = plan_logic.initial_terms(now, plan.interval, plan.trial_days)

        async with UnitOfWork(db, conflict_message=DUPLICATE_SUBSCRIPTION_MESSAGE) as uow:
            subscription = await crud.subscription.create(
                uow.session,
                obj_in={
                    "organization_id": organization.id,
                    "plan_id": plan.id,
                    "status": terms.status.value,
                    "start_date": now,
                    "end_date": terms.period.end,
                    "trial_end_date": terms.trial_end_date,
                    "current_period_start": terms.period.start,
                    "current_period_end": terms.period.end,
                    "auto_renew": subscription_in.auto_renew,
                },
                uow=uow,
            )
            if terms.billable:
                await self.invoices.generate_for_period(uow.session, subscription, plan, uow=uow)
            await uow.commit()

        self._log(subscription).info(
            f"Created {subscription.status} subscription to plan {plan.slug} "
            f"until {subscription.current_period_end.isoformat()}"
        )
        return subscription

    async def cancel(
        self, db: AsyncSession, subscription_id: UUID, immediate: bool = False
    ) -> Subscription:
        """Cancel a subscription.

        ``canceled_at`` is always stamped. An immediate cancellation ends the
        subscription now. Otherwise auto-renew is switched off and the
        subscription stays usable until its period ends, when the sweeper
        expires it.

        Raises:
        ------
            NotFoundException: If the subscription does not exist.
            InvalidStateError: If the subscription is already canceled or expired.

        """
        async with UnitOfWork(db) as uow:
            subscription = await self._lock(uow.session, subscription_id)
            plan_logic.ensure_cancelable(subscription.status)

            now = self.clock.now()
            changes: dict = {"canceled_at": now}
            if immediate:
                changes.update(status=SubscriptionStatus.CANCELED.value, end_date=now)
            else:
                changes["auto_renew"] = False

            subscription = await crud.subscription.update(
                uow.session, db_obj=subscription, obj_in=changes, uow=uow
            )
            await uow.commit()

        mode = "immediately" if immediate else "at period end"
        self._log(subscription).info(f"Canceled subscription {mode}")
        return subscription

    async def renew(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        """Advance an active subscription into its next billing period.

        The new period starts exactly at the old period end. The new period is
        invoiced in the same transaction.

        Raises:
        ------
            NotFoundException: If the subscription or its plan does not exist.
            InvalidStateError: If the subscription is not active.
            InvalidInputException: If the plan carries an unknown interval.
            StorageFailureException: If the database write fails.

        """
        async with UnitOfWork(db) as uow:
            subscription = await self._lock(uow.session, subscription_id)
            plan_logic.ensure_renewable(subscription.status)
            plan = await self._get_plan(uow.session, subscription.plan_id)

            period = plan_logic.next_period(
                plan_logic.BillingPeriod(
                    start=subscription.current_period_start,
                    end=subscription.current_period_end,
                ),
                plan.interval,
            )
            subscription = await crud.subscription.update(
                uow.session,
                db_obj=subscription,
                obj_in={
                    "current_period_start": period.start,
                    "current_period_end": period.end,
                    "end_date": period.end,
                },
                uow=uow,
            )
            await self.invoices.generate_for_period(uow.session, subscription, plan, uow=uow)
            await uow.commit()

        self._log(subscription).info(
            f"Renewed subscription until {subscription.current_period_end.isoformat()}"
        )
        return subscription

    async def convert_trial(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        """Close an ended trial.

        The subscription becomes ``active`` with a first paid period starting at
        the trial end, and that period is invoiced in the same transaction. A
        trial that was canceled at period end expires instead.

        Raises:
        ------
            NotFoundException: If the subscription or its plan does not exist.
            InvalidStateError: If the subscription is not trialing or the trial has
                not ended yet.
            InvalidInputException: If the plan carries an unknown interval.
            StorageFailureException: If the database write fails.

        """
        async with UnitOfWork(db) as uow:
            subscription = await self._lock(uow.session, subscription_id)
            if subscription.status != SubscriptionStatus.TRIALING:
                raise InvalidStateError(
                    f"Only trialing subscriptions can convert, status is {subscription.status}"
                )
            now = self.clock.now()
            trial_end = subscription.trial_end_date
            if trial_end is None or trial_end > now:
                raise InvalidStateError("Trial has not ended yet")

            if subscription.canceled_at is not None:
                subscription = await crud.subscription.update(
                    uow.session,
                    db_obj=subscription,
                    obj_in={"status": SubscriptionStatus.EXPIRED.value},
                    uow=uow,
                )
                await uow.commit()
                self._log(subscription).info("Canceled trial expired without converting")
                return subscription

            plan = await self._get_plan(uow.session, subscription.plan_id)
            period_end = plan_logic.advance(trial_end, plan.interval)
            subscription = await crud.subscription.update(
                uow.session,
                db_obj=subscription,
                obj_in={
                    "status": SubscriptionStatus.ACTIVE.value,
                    "current_period_start": trial_end,
                    "current_period_end": period_end,
                    "end_date": period_end,
                },
                uow=uow,
            )
            await self.invoices.generate_for_period(uow.session, subscription, plan, uow=uow)
            await uow.commit()

        self._log(subscription).info(
            f"Converted trial to active until {subscription.current_period_end.isoformat()}"
        )
        return subscription

    async def expire(self, db: AsyncSession, subscription_id: UUID) -> Subscription:
        """Force a live subscription into ``expired``.

        Raises:
        ------
            NotFoundException: If the subscription does not exist.
            InvalidStateError: If the subscription already ended.

        """
        async with UnitOfWork(db) as uow:
            subscription = await self._lock(uow.session, subscription_id)
            if subscription.status not in SubscriptionStatus.live():
                raise InvalidStateError(f"Subscription already ended with {subscription.status}")

            subscription = await crud.subscription.update(
                uow.session,
                db_obj=subscription,
                obj_in={"status": SubscriptionStatus.EXPIRED.value},
                uow=uow,
            )
            await uow.commit()

        self._log(subscription).info("Expired subscription")
        return subscription


subscription_service = SubscriptionService()
