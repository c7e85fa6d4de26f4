"""Pure business logic for subscription billing.

This module holds the period arithmetic and state rules of the subscription
lifecycle, separated from infrastructure concerns like the database.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from ostobilling.core.exceptions import InvalidInputException, InvalidStateError
from ostobilling.core.shared_models import PlanInterval, SubscriptionStatus

# One interval unit per plan interval. Calendar months and years clamp to the
# last day of a shorter target month (Jan 31 + 1 month = Feb 28/29).
INTERVAL_STEPS: dict[PlanInterval, relativedelta] = {
    PlanInterval.WEEKLY: relativedelta(days=7),
    PlanInterval.MONTHLY: relativedelta(months=1),
    PlanInterval.YEARLY: relativedelta(years=1),
}


@dataclass
class BillingPeriod:
    """A half-open billing window [start, end)."""

    start: datetime
    end: datetime


@dataclass
class InitialTerms:
    """Status and dates of a subscription at creation."""

    status: SubscriptionStatus
    period: BillingPeriod
    trial_end_date: Optional[datetime]

    @property
    def billable(self) -> bool:
        """Whether the first period is invoiced at creation."""
        return self.status == SubscriptionStatus.ACTIVE


def parse_interval(interval: str) -> PlanInterval:
    """Convert a stored interval to a PlanInterval.

    Raises:
    ------
        InvalidInputException: If the interval is not weekly, monthly or yearly.

    """
    try:
        return PlanInterval(interval)
    except ValueError as e:
        raise InvalidInputException(f"Invalid plan interval: {interval}") from e


def advance(moment: datetime, interval: str, periods: int = 1) -> datetime:
    """Advance a moment by whole interval units using calendar arithmetic.

    Raises:
    ------
        InvalidInputException: If the interval is not weekly, monthly or yearly.

    """
    step = INTERVAL_STEPS[parse_interval(interval)]
    return moment + step * periods


def next_period(current: BillingPeriod, interval: str) -> BillingPeriod:
    """The period that follows ``current`` with no gap and no overlap."""
    return BillingPeriod(start=current.end, end=advance(current.end, interval))


def periods_behind(period_end: datetime, interval: str, now: datetime, limit: int) -> int:
    """Count the renewals needed before a period ends after ``now``.

    Periods chain from each previous end, the same way ``next_period`` does.
    Counting stops once it exceeds ``limit``, so the result is at most
    ``limit + 1``.

    Raises:
    ------
        InvalidInputException: If the interval is not weekly, monthly or yearly.

    """
    step = INTERVAL_STEPS[parse_interval(interval)]
    missed = 0
    while period_end <= now and missed <= limit:
        period_end = period_end + step
        missed += 1
    return missed


def initial_terms(now: datetime, interval: str, trial_days: int) -> InitialTerms:
    """Compute the status and dates of a new subscription.

    The first period always starts now and lasts one interval unit. A plan with
    trial days puts the subscription in trial until ``now + trial_days``.
    """
    period = BillingPeriod(start=now, end=advance(now, interval))

    trial_end_date = None
    status = SubscriptionStatus.ACTIVE
    if trial_days > 0:
        trial_end_date = now + timedelta(days=trial_days)
        if now < trial_end_date:
            status = SubscriptionStatus.TRIALING

    return InitialTerms(status=status, period=period, trial_end_date=trial_end_date)


def ensure_cancelable(status: str) -> None:
    """Reject cancellation of a subscription that already ended.

    Raises:
    ------
        InvalidStateError: If the subscription is canceled or expired.

    """
    if status == SubscriptionStatus.CANCELED:
        raise InvalidStateError("Subscription is already canceled")
    if status == SubscriptionStatus.EXPIRED:
        raise InvalidStateError("Subscription has expired")


def ensure_renewable(status: str) -> None:
    """Reject renewal of a subscription that is not active.

    Raises:
    ------
        InvalidStateError: If the subscription is not active.

    """
    if status != SubscriptionStatus.ACTIVE:
        raise InvalidStateError(f"Only active subscriptions can be renewed, status is {status}")


def invoice_total(
    subtotal: Decimal, tax_amount: Decimal = Decimal("0"), discount_amount: Decimal = Decimal("0")
) -> Decimal:
    """Total of an invoice: subtotal plus tax minus discount."""
    return subtotal + tax_amount - discount_amount


def invoice_item_description(plan_name: str, interval: str) -> str:
    """Description of the single line item billed for a plan period."""
    return f"{plan_name} - {interval} subscription"
