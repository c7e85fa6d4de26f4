"""Models for the application."""

from ._base import Base
from .invoice import Invoice
from .invoice_item import InvoiceItem
from .organization import Organization
from .plan import Plan
from .subscription import Subscription

__all__ = [
    "Base",
    "Invoice",
    "InvoiceItem",
    "Organization",
    "Plan",
    "Subscription",
]
