"""Subscription schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ostobilling.core.shared_models import SubscriptionStatus
from ostobilling.schemas.plan import Plan


class SubscriptionCreate(BaseModel):
    """Request to subscribe an organization to a plan."""

    organization_id: UUID
    plan_id: UUID
    auto_renew: bool = Field(True, description="Renew automatically when the period ends")


class SubscriptionInDBBase(BaseModel):
    """Subscription base schema in the database."""

    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    current_period_start: datetime
    current_period_end: datetime
    canceled_at: Optional[datetime] = None
    auto_renew: bool
    created_at: datetime
    modified_at: datetime


class Subscription(SubscriptionInDBBase):
    """Subscription schema."""

    pass


class SubscriptionWithPlan(Subscription):
    """Subscription together with the plan it is bound to."""

    plan: Plan = Field(..., description="The plan the subscription bills")
