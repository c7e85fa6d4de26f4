"""CRUD operations for invoices."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling.core.shared_models import InvoiceStatus
from ostobilling.crud._base_system import CRUDBaseSystem
from ostobilling.models.invoice import Invoice
from ostobilling.schemas.invoice import Invoice as InvoiceSchema
from ostobilling.schemas.invoice import InvoiceStatusUpdate


class CRUDInvoice(CRUDBaseSystem[Invoice, InvoiceSchema, InvoiceStatusUpdate]):
    """CRUD operations for invoices. Items are preloaded with every invoice."""

    async def get_by_number(self, db: AsyncSession, invoice_number: str) -> Optional[Invoice]:
        """Get an invoice by its invoice number."""
        result = await db.execute(select(Invoice).where(Invoice.invoice_number == invoice_number))
        return result.scalar_one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Invoice], int]:
        """Get a page of invoices, most recently issued first."""
        query = select(Invoice).order_by(Invoice.issue_date.desc(), Invoice.id)
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def get_by_organization(
        self, db: AsyncSession, organization_id: UUID, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Invoice], int]:
        """Get a page of an organization's invoices, most recently issued first."""
        query = (
            select(Invoice)
            .where(Invoice.organization_id == organization_id)
            .order_by(Invoice.issue_date.desc(), Invoice.id)
        )
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def get_by_subscription(self, db: AsyncSession, subscription_id: UUID) -> list[Invoice]:
        """Get every invoice of a subscription in issue order."""
        result = await db.execute(
            select(Invoice)
            .where(Invoice.subscription_id == subscription_id)
            .order_by(Invoice.issue_date, Invoice.due_date)
        )
        return list(result.scalars().all())

    async def get_overdue(
        self, db: AsyncSession, now: datetime, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Invoice], int]:
        """Get a page of unpaid invoices whose due date has passed, oldest due first."""
        query = (
            select(Invoice)
            .where(Invoice.status != InvoiceStatus.PAID.value, Invoice.due_date < now)
            .order_by(Invoice.due_date, Invoice.id)
        )
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def get_by_date_range(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[Invoice], int]:
        """Get a page of invoices issued within [start, end]."""
        query = (
            select(Invoice)
            .where(Invoice.issue_date >= start, Invoice.issue_date <= end)
            .order_by(Invoice.issue_date.desc(), Invoice.id)
        )
        return await self._paginate(db, query, skip=skip, limit=limit)


invoice = CRUDInvoice(Invoice)
