"""Plan model."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import CheckConstraint, Index

from ostobilling.models._base import Base


class Plan(Base):
    """A purchasable subscription tier.

    ``interval`` is stored as plain text. Input validation restricts new values
    to weekly, monthly and yearly, but rows written by older tooling may carry
    anything, so the lifecycle engine re-checks it on every period advance.
    """

    __tablename__ = "plan"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    interval: Mapped[str] = mapped_column(String(20), nullable=False)
    trial_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_plan_price_non_negative"),
        CheckConstraint("trial_days >= 0", name="check_plan_trial_days_non_negative"),
        Index("ix_plan_active_price", "is_active", "price"),
    )
