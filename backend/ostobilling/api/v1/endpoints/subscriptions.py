"""API endpoints for subscriptions."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import schemas
from ostobilling.api import deps
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.models import Subscription
from ostobilling.platform.billing.plan_catalog import plan_catalog
from ostobilling.platform.billing.subscription_service import subscription_service

router = TrailingSlashRouter()


async def _with_plan(db: AsyncSession, subscription: Subscription) -> schemas.SubscriptionWithPlan:
    plan = await plan_catalog.get(db, subscription.plan_id)
    return schemas.SubscriptionWithPlan(
        **schemas.Subscription.model_validate(subscription).model_dump(),
        plan=schemas.Plan.model_validate(plan),
    )


@router.post("", response_model=schemas.SubscriptionWithPlan, status_code=201)
async def create_subscription(
    subscription_in: schemas.SubscriptionCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.SubscriptionWithPlan:
    """Subscribe an organization to a plan.

    Plans without a trial start active and their first period is invoiced
    right away.

    Args:
        subscription_in: The organization, plan and auto-renew flag
        db: Database session

    Returns:
        The created subscription with its plan
    """
    subscription = await subscription_service.create(db, subscription_in)
    return await _with_plan(db, subscription)


@router.get("", response_model=schemas.Page[schemas.Subscription])
async def list_subscriptions(
    status: Optional[SubscriptionStatus] = Query(None, description="Only this status"),
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Subscription]:
    """List subscriptions, newest first."""
    subscriptions, total = await subscription_service.list_subscriptions(db, params, status)
    return schemas.Page[schemas.Subscription].create(subscriptions, total, params)


@router.get("/organization/{organization_id}", response_model=schemas.Page[schemas.Subscription])
async def list_organization_subscriptions(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Subscription]:
    """List an organization's subscriptions, newest first."""
    subscriptions, total = await subscription_service.list_by_organization(
        db, organization_id, params
    )
    return schemas.Page[schemas.Subscription].create(subscriptions, total, params)


@router.get("/organization/{organization_id}/active", response_model=schemas.SubscriptionWithPlan)
async def read_active_subscription(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.SubscriptionWithPlan:
    """Get the organization's trialing or active subscription."""
    subscription = await subscription_service.get_active(db, organization_id)
    return await _with_plan(db, subscription)


@router.get("/{subscription_id}", response_model=schemas.SubscriptionWithPlan)
async def read_subscription(
    subscription_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.SubscriptionWithPlan:
    """Get a subscription by ID."""
    subscription = await subscription_service.get(db, subscription_id)
    return await _with_plan(db, subscription)


@router.post("/{subscription_id}/cancel", response_model=schemas.Subscription)
async def cancel_subscription(
    subscription_id: UUID,
    immediate: bool = Query(False, description="End now instead of at period end"),
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Subscription:
    """Cancel a subscription, now or at the end of the current period."""
    subscription = await subscription_service.cancel(db, subscription_id, immediate=immediate)
    return schemas.Subscription.model_validate(subscription)


@router.post("/{subscription_id}/renew", response_model=schemas.Subscription)
async def renew_subscription(
    subscription_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Subscription:
    """Advance an active subscription into its next period and invoice it."""
    subscription = await subscription_service.renew(db, subscription_id)
    return schemas.Subscription.model_validate(subscription)
