"""CRUD operations for subscriptions."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.crud._base_system import CRUDBaseSystem
from ostobilling.models.subscription import Subscription
from ostobilling.schemas.subscription import SubscriptionCreate

_LIVE_STATUSES = [status.value for status in SubscriptionStatus.live()]


class CRUDSubscription(CRUDBaseSystem[Subscription, SubscriptionCreate, SubscriptionCreate]):
    """CRUD operations for subscriptions."""

    async def get_for_update(self, db: AsyncSession, id: UUID) -> Optional[Subscription]:
        """Get a subscription and lock its row for the rest of the transaction.

        The identity map is refreshed from the locked row so the caller never
        acts on a stale copy loaded earlier in the session. SQLite has no row
        locks and ignores FOR UPDATE.
        """
        result = await db.execute(
            select(Subscription)
            .where(Subscription.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_live_by_organization(
        self, db: AsyncSession, organization_id: UUID
    ) -> Optional[Subscription]:
        """Get the organization's trialing or active subscription, if any."""
        result = await db.execute(
            select(Subscription)
            .where(
                Subscription.organization_id == organization_id,
                Subscription.status.in_(_LIVE_STATUSES),
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_organization(
        self, db: AsyncSession, organization_id: UUID, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Subscription], int]:
        """Get a page of an organization's subscriptions, newest first."""
        query = (
            select(Subscription)
            .where(Subscription.organization_id == organization_id)
            .order_by(Subscription.created_at.desc(), Subscription.id)
        )
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        status: Optional[SubscriptionStatus] = None,
    ) -> tuple[list[Subscription], int]:
        """Get a page of subscriptions, optionally filtered by status."""
        query = select(Subscription).order_by(Subscription.created_at.desc(), Subscription.id)
        if status is not None:
            query = query.where(Subscription.status == SubscriptionStatus(status).value)
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def get_due_for_sweep(self, db: AsyncSession, now: datetime) -> list[UUID]:
        """Get ids of active subscriptions whose current period has ended."""
        result = await db.execute(
            select(Subscription.id)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.current_period_end <= now,
            )
            .order_by(Subscription.current_period_end, Subscription.id)
        )
        return list(result.scalars().all())

    async def get_trials_ended(self, db: AsyncSession, now: datetime) -> list[UUID]:
        """Get ids of trialing subscriptions whose trial has ended."""
        result = await db.execute(
            select(Subscription.id)
            .where(
                Subscription.status == SubscriptionStatus.TRIALING.value,
                Subscription.trial_end_date <= now,
            )
            .order_by(Subscription.trial_end_date, Subscription.id)
        )
        return list(result.scalars().all())


subscription = CRUDSubscription(Subscription)
