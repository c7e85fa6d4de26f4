"""Subscription model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import CheckConstraint, Index

from ostobilling.models._base import Base

_LIVE_STATUS_CLAUSE = text("status IN ('trialing', 'active')")


class Subscription(Base):
    """An organization's binding to a plan over a recurring billing period.

    The billing period is the half-open window
    [current_period_start, current_period_end).
    """

    __tablename__ = "subscription"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organization.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[UUID] = mapped_column(ForeignKey("plan.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    trial_end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    current_period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False
    )
    current_period_end: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "current_period_end >= current_period_start", name="check_subscription_period_order"
        ),
        # At most one trialing or active subscription per organization
        Index(
            "uq_subscription_live_organization",
            "organization_id",
            unique=True,
            postgresql_where=_LIVE_STATUS_CLAUSE,
            sqlite_where=_LIVE_STATUS_CLAUSE,
        ),
        Index("ix_subscription_status_period_end", "status", "current_period_end"),
        Index("ix_subscription_organization", "organization_id", "created_at"),
    )
