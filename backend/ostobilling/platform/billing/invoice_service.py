"""Invoice generation and invoice queries.

The generator never commits on behalf of a lifecycle transition: it adds the
invoice to the caller's unit of work so the subscription change and its
invoice are persisted together or not at all.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import crud, schemas
from ostobilling.core.clock import Clock, system_clock
from ostobilling.core.exceptions import InvalidInputException, InvalidStateError, NotFoundException
from ostobilling.core.ids import IdGenerator, id_generator
from ostobilling.core.logging import LoggerConfigurator
from ostobilling.core.shared_models import INVOICE_STATUS_TRANSITIONS, InvoiceStatus
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models import Invoice, InvoiceItem, Plan, Subscription
from ostobilling.platform.billing.plan_logic import invoice_item_description, invoice_total

logger = LoggerConfigurator.configure_logger(
    __name__, dimensions={"component": "invoice_generator"}
)


class InvoiceService:
    """Generates draft invoices for billing periods and serves invoice queries."""

    def __init__(self, clock: Clock = system_clock, ids: IdGenerator = id_generator):
        """Initialize the invoice service.

        Args:
        ----
            clock (Clock): Source of issue dates and payment timestamps.
            ids (IdGenerator): Source of invoice ids and invoice numbers.

        """
        self.clock = clock
        self.ids = ids

    def build_for_period(self, subscription: Subscription, plan: Plan) -> Invoice:
        """Build the draft invoice of a subscription's current period.

        The invoice has exactly one item for the plan price and is due at the
        end of the period. Nothing is written to the database.
        """
        now = self.clock.now()
        invoice_id = self.ids.new_id()
        price = Decimal(plan.price)
        tax_amount = Decimal("0")
        discount_amount = Decimal("0")

        item = InvoiceItem(
            id=self.ids.new_id(),
            description=invoice_item_description(plan.name, plan.interval),
            quantity=1,
            unit_price=price,
            amount=price,
        )
        return Invoice(
            id=invoice_id,
            organization_id=subscription.organization_id,
            subscription_id=subscription.id,
            invoice_number=self.ids.invoice_number(invoice_id, now),
            status=InvoiceStatus.DRAFT.value,
            subtotal=price,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            total=invoice_total(price, tax_amount, discount_amount),
            currency=plan.currency,
            issue_date=now,
            due_date=subscription.current_period_end,
            notes=f"Subscription: {plan.name}",
            items=[item],
        )

    async def generate_for_period(
        self,
        db: AsyncSession,
        subscription: Subscription,
        plan: Plan,
        uow: Optional[UnitOfWork] = None,
    ) -> Invoice:
        """Persist the draft invoice of a subscription's current period.

        Args:
        ----
            db (AsyncSession): The database session.
            subscription (Subscription): The subscription whose period is billed.
            plan (Plan): The plan the subscription is bound to.
            uow (UnitOfWork, optional): The lifecycle transition's unit of work. The
                invoice is flushed into it and committed with the transition. Without
                one the invoice is committed on its own.

        Returns:
        -------
            Invoice: The generated invoice.

        """
        invoice = self.build_for_period(subscription, plan)

        if uow is None:
            async with UnitOfWork(db) as own_uow:
                own_uow.session.add(invoice)
                await own_uow.session.flush()
                await own_uow.commit()
        else:
            uow.session.add(invoice)
            await uow.session.flush()

        logger.with_context(
            organization_id=str(subscription.organization_id),
            subscription_id=str(subscription.id),
            invoice_id=str(invoice.id),
        ).info(f"Generated invoice {invoice.invoice_number} for {invoice.total} {invoice.currency}")
        return invoice

    async def get(self, db: AsyncSession, invoice_id: UUID) -> Invoice:
        """Get an invoice with its items.

        Raises:
        ------
            NotFoundException: If the invoice does not exist.

        """
        invoice = await crud.invoice.get(db, invoice_id)
        if invoice is None:
            raise NotFoundException(f"Invoice {invoice_id} not found")
        return invoice

    async def get_by_number(self, db: AsyncSession, invoice_number: str) -> Invoice:
        """Get an invoice by its invoice number.

        Raises:
        ------
            NotFoundException: If no invoice has the number.

        """
        invoice = await crud.invoice.get_by_number(db, invoice_number)
        if invoice is None:
            raise NotFoundException(f"Invoice {invoice_number} not found")
        return invoice

    async def list_all(
        self, db: AsyncSession, params: schemas.PageParams
    ) -> tuple[list[Invoice], int]:
        """A page of all invoices with the total count."""
        return await crud.invoice.get_multi(db, skip=params.offset, limit=params.limit)

    async def list_by_organization(
        self, db: AsyncSession, organization_id: UUID, params: schemas.PageParams
    ) -> tuple[list[Invoice], int]:
        """A page of an organization's invoices with the total count."""
        return await crud.invoice.get_by_organization(
            db, organization_id, skip=params.offset, limit=params.limit
        )

    async def list_by_subscription(self, db: AsyncSession, subscription_id: UUID) -> list[Invoice]:
        """Every invoice of a subscription in issue order."""
        return await crud.invoice.get_by_subscription(db, subscription_id)

    async def list_overdue(
        self, db: AsyncSession, params: schemas.PageParams
    ) -> tuple[list[Invoice], int]:
        """A page of unpaid invoices past their due date."""
        return await crud.invoice.get_overdue(
            db, self.clock.now(), skip=params.offset, limit=params.limit
        )

    async def list_by_date_range(
        self, db: AsyncSession, start: datetime, end: datetime, params: schemas.PageParams
    ) -> tuple[list[Invoice], int]:
        """A page of invoices issued between start and end inclusive.

        Raises:
        ------
            InvalidInputException: If start is after end.

        """
        if start > end:
            raise InvalidInputException("start date must not be after end date")
        return await crud.invoice.get_by_date_range(
            db, start, end, skip=params.offset, limit=params.limit
        )

    async def update_status(
        self, db: AsyncSession, invoice_id: UUID, status: InvoiceStatus
    ) -> Invoice:
        """Move an invoice to another status.

        Marking an invoice paid stamps ``paid_at``.

        Raises:
        ------
            NotFoundException: If the invoice does not exist.
            InvalidStateError: If the move is not allowed from the current status.

        """
        invoice = await self.get(db, invoice_id)
        current = InvoiceStatus(invoice.status)
        target = InvoiceStatus(status)

        if target not in INVOICE_STATUS_TRANSITIONS[current]:
            raise InvalidStateError(
                f"Invoice cannot move from {current.value} to {target.value}"
            )

        changes: dict = {"status": target.value}
        if target == InvoiceStatus.PAID:
            changes["paid_at"] = self.clock.now()

        async with UnitOfWork(db) as uow:
            invoice = await crud.invoice.update(
                uow.session, db_obj=invoice, obj_in=changes, uow=uow
            )
            await uow.commit()

        logger.with_context(
            organization_id=str(invoice.organization_id), invoice_id=str(invoice.id)
        ).info(f"Invoice {invoice.invoice_number} moved from {current.value} to {target.value}")
        return invoice


invoice_service = InvoiceService()
