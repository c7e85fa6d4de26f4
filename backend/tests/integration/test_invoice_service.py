"""Integration tests for invoice generation and invoice queries."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from ostobilling import crud, schemas
from ostobilling.core.exceptions import InvalidInputException, InvalidStateError, NotFoundException
from ostobilling.core.shared_models import InvoiceStatus
from tests.fixtures.common import CLOCK_START

PAGE = schemas.PageParams(page=1, limit=10)


@pytest.fixture
async def subscription(db_session, subscription_service, organization, plan_monthly):
    """An active monthly subscription with its first invoice."""
    return await subscription_service.create(
        db_session,
        schemas.SubscriptionCreate(organization_id=organization.id, plan_id=plan_monthly.id),
    )


@pytest.fixture
async def invoice(db_session, subscription):
    """The first invoice of the subscription."""
    invoices = await crud.invoice.get_by_subscription(db_session, subscription.id)
    return invoices[0]


@pytest.mark.integration
class TestInvoiceGeneration:
    """Test generated invoice contents."""

    async def test_amounts_and_numbering(self, invoice, subscription):
        """The invoice bills the plan price once and is numbered by issue date."""
        assert invoice.subtotal == Decimal("29.99")
        assert invoice.tax_amount == Decimal("0")
        assert invoice.discount_amount == Decimal("0")
        assert invoice.total == invoice.subtotal
        assert invoice.currency == "USD"
        assert invoice.issue_date == CLOCK_START
        assert invoice.organization_id == subscription.organization_id
        assert invoice.invoice_number == f"INV-20240115-{invoice.id.hex}"

    async def test_item_amount_matches_quantity_and_price(self, invoice):
        """The single line item amount is quantity times unit price."""
        assert len(invoice.items) == 1
        item = invoice.items[0]
        assert item.quantity == 1
        assert item.amount == item.unit_price * item.quantity == invoice.subtotal

    async def test_standalone_generation_commits(
        self, db_session, invoice_service, subscription, plan_monthly
    ):
        """Generating without a caller's unit of work persists the invoice on its own."""
        generated = await invoice_service.generate_for_period(
            db_session, subscription, plan_monthly
        )

        fetched = await invoice_service.get_by_number(db_session, generated.invoice_number)
        assert fetched.id == generated.id
        assert len(await invoice_service.list_by_subscription(db_session, subscription.id)) == 2


@pytest.mark.integration
class TestInvoiceStatus:
    """Test invoice status moves."""

    async def test_send_then_pay(self, db_session, invoice_service, clock, invoice):
        """Paying a sent invoice stamps the payment time."""
        await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.SENT)
        clock.advance(timedelta(days=2))

        paid = await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.PAID)

        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_at == CLOCK_START + timedelta(days=2)
        assert paid.is_paid()

    async def test_draft_cannot_be_paid(self, db_session, invoice_service, invoice):
        """A draft has to be sent first."""
        with pytest.raises(InvalidStateError):
            await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.PAID)

    async def test_canceled_is_terminal(self, db_session, invoice_service, invoice):
        """A canceled invoice cannot move again."""
        await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.CANCELED)

        with pytest.raises(InvalidStateError):
            await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.SENT)

    async def test_unknown_invoice(self, db_session, invoice_service):
        """Unknown invoices are not found."""
        with pytest.raises(NotFoundException):
            await invoice_service.update_status(db_session, uuid4(), InvoiceStatus.SENT)


@pytest.mark.integration
class TestInvoiceQueries:
    """Test invoice listings."""

    async def test_overdue(self, db_session, invoice_service, clock, invoice):
        """Unpaid invoices show up as overdue once their due date has passed."""
        overdue, total = await invoice_service.list_overdue(db_session, PAGE)
        assert total == 0

        clock.set(invoice.due_date + timedelta(days=1))
        overdue, total = await invoice_service.list_overdue(db_session, PAGE)
        assert total == 1
        assert overdue[0].id == invoice.id
        assert invoice.is_overdue(clock.now())

        await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.SENT)
        await invoice_service.update_status(db_session, invoice.id, InvoiceStatus.PAID)
        _, total = await invoice_service.list_overdue(db_session, PAGE)
        assert total == 0

    async def test_by_organization(self, db_session, invoice_service, organization, invoice):
        """An organization's invoices are listed with a true total."""
        invoices, total = await invoice_service.list_by_organization(
            db_session, organization.id, PAGE
        )
        _, other_total = await invoice_service.list_by_organization(db_session, uuid4(), PAGE)

        assert total == 1
        assert invoices[0].id == invoice.id
        assert other_total == 0

    async def test_date_range(self, db_session, invoice_service, invoice):
        """Invoices are matched by issue date within an inclusive range."""
        _, inside = await invoice_service.list_by_date_range(
            db_session, CLOCK_START, CLOCK_START, PAGE
        )
        _, outside = await invoice_service.list_by_date_range(
            db_session, datetime(2023, 1, 1), datetime(2023, 12, 31), PAGE
        )

        assert inside == 1
        assert outside == 0

    async def test_inverted_date_range(self, db_session, invoice_service):
        """A range that ends before it starts is rejected."""
        with pytest.raises(InvalidInputException):
            await invoice_service.list_by_date_range(
                db_session, datetime(2024, 2, 1), datetime(2024, 1, 1), PAGE
            )
