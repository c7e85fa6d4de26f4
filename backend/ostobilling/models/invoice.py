"""Invoice model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import Index

from ostobilling.core.shared_models import InvoiceStatus
from ostobilling.models._base import Base

if TYPE_CHECKING:
    from ostobilling.models.invoice_item import InvoiceItem


class Invoice(Base):
    """A bill issued to an organization, usually for one subscription period."""

    __tablename__ = "invoice"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organization.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("subscription.id"), nullable=True
    )

    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.DRAFT.value
    )

    # Amounts
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    issue_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.created_at",
    )

    __table_args__ = (
        Index("ix_invoice_organization_issue_date", "organization_id", "issue_date"),
        Index("ix_invoice_subscription", "subscription_id"),
        Index("ix_invoice_status_due_date", "status", "due_date"),
    )

    def is_paid(self) -> bool:
        """Whether the invoice is paid and carries a payment timestamp."""
        return self.status == InvoiceStatus.PAID and self.paid_at is not None

    def is_overdue(self, now: datetime) -> bool:
        """Whether the invoice is unpaid past its due date."""
        return self.status != InvoiceStatus.PAID and self.due_date < now
