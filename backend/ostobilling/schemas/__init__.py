"""Schemas for the application."""

from .health import HealthCheck
from .invoice import Invoice, InvoiceItem, InvoiceStatusUpdate
from .organization import Organization, OrganizationCreate, OrganizationUpdate
from .pagination import Page, PageParams
from .plan import Plan, PlanCreate, PlanUpdate
from .subscription import Subscription, SubscriptionCreate, SubscriptionWithPlan
from .sweep import SweepResult

__all__ = [
    "HealthCheck",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatusUpdate",
    "Organization",
    "OrganizationCreate",
    "OrganizationUpdate",
    "Page",
    "PageParams",
    "Plan",
    "PlanCreate",
    "PlanUpdate",
    "Subscription",
    "SubscriptionCreate",
    "SubscriptionWithPlan",
    "SweepResult",
]
