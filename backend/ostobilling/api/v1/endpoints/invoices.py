"""API endpoints for invoices."""

from datetime import datetime
from uuid import UUID

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import schemas
from ostobilling.api import deps
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.core.datetime_utils import to_naive_utc
from ostobilling.platform.billing.invoice_service import invoice_service

router = TrailingSlashRouter()


@router.get("", response_model=schemas.Page[schemas.Invoice])
async def list_invoices(
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Invoice]:
    """List invoices, most recently issued first."""
    invoices, total = await invoice_service.list_all(db, params)
    return schemas.Page[schemas.Invoice].create(invoices, total, params)


@router.get("/overdue", response_model=schemas.Page[schemas.Invoice])
async def list_overdue_invoices(
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Invoice]:
    """List unpaid invoices past their due date, oldest due first."""
    invoices, total = await invoice_service.list_overdue(db, params)
    return schemas.Page[schemas.Invoice].create(invoices, total, params)


@router.get("/date-range", response_model=schemas.Page[schemas.Invoice])
async def list_invoices_by_date_range(
    start_date: datetime = Query(..., description="Earliest issue date, inclusive"),
    end_date: datetime = Query(..., description="Latest issue date, inclusive"),
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Invoice]:
    """List invoices issued within a date range."""
    invoices, total = await invoice_service.list_by_date_range(
        db, to_naive_utc(start_date), to_naive_utc(end_date), params
    )
    return schemas.Page[schemas.Invoice].create(invoices, total, params)


@router.get("/organization/{organization_id}", response_model=schemas.Page[schemas.Invoice])
async def list_organization_invoices(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Invoice]:
    """List an organization's invoices, most recently issued first."""
    invoices, total = await invoice_service.list_by_organization(db, organization_id, params)
    return schemas.Page[schemas.Invoice].create(invoices, total, params)


@router.get("/number/{invoice_number}", response_model=schemas.Invoice)
async def read_invoice_by_number(
    invoice_number: str,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Invoice:
    """Get an invoice by its invoice number."""
    invoice = await invoice_service.get_by_number(db, invoice_number)
    return schemas.Invoice.model_validate(invoice)


@router.get("/{invoice_id}", response_model=schemas.Invoice)
async def read_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Invoice:
    """Get an invoice with its items."""
    invoice = await invoice_service.get(db, invoice_id)
    return schemas.Invoice.model_validate(invoice)


@router.patch("/{invoice_id}/status", response_model=schemas.Invoice)
async def update_invoice_status(
    invoice_id: UUID,
    status_in: schemas.InvoiceStatusUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Invoice:
    """Move an invoice to another status.

    Allowed moves: draft to sent or canceled, sent to paid, overdue or
    canceled, overdue to paid or canceled.
    """
    invoice = await invoice_service.update_status(db, invoice_id, status_in.status)
    return schemas.Invoice.model_validate(invoice)
