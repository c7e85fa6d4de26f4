"""Invoice item model."""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, Numeric, String, event
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import CheckConstraint

from ostobilling.models._base import Base

if TYPE_CHECKING:
    from ostobilling.models.invoice import Invoice


class InvoiceItem(Base):
    """A line of an invoice. ``amount`` always equals quantity times unit_price."""

    __tablename__ = "invoice_item"

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_invoice_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="check_invoice_item_unit_price_non_negative"),
    )

    def recalculate(self) -> None:
        """Recompute amount from quantity and unit price."""
        self.amount = Decimal(self.quantity) * Decimal(self.unit_price)


@event.listens_for(InvoiceItem, "before_insert")
@event.listens_for(InvoiceItem, "before_update")
def _recalculate_amount(mapper, connection, target: InvoiceItem) -> None:
    target.recalculate()
