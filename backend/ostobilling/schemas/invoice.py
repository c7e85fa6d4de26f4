"""Invoice schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from ostobilling.core.datetime_utils import utc_now_naive
from ostobilling.core.shared_models import InvoiceStatus


class InvoiceItem(BaseModel):
    """Invoice line item."""

    model_config = {"from_attributes": True}

    id: UUID
    description: str
    quantity: int
    unit_price: Decimal
    amount: Decimal


class InvoiceStatusUpdate(BaseModel):
    """Request to move an invoice to another status."""

    status: InvoiceStatus


class Invoice(BaseModel):
    """Invoice schema with its items."""

    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    subscription_id: Optional[UUID] = None
    invoice_number: str
    status: InvoiceStatus
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    currency: str
    issue_date: datetime
    due_date: datetime
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: list[InvoiceItem] = Field(default_factory=list)
    created_at: datetime
    modified_at: datetime

    @computed_field
    @property
    def is_paid(self) -> bool:
        """Whether the invoice is paid."""
        return self.status == InvoiceStatus.PAID and self.paid_at is not None

    @computed_field
    @property
    def is_overdue(self) -> bool:
        """Whether the invoice is unpaid past its due date."""
        return self.status != InvoiceStatus.PAID and self.due_date < utc_now_naive()
