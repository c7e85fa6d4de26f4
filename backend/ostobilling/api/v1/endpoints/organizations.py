"""API endpoints for organizations."""

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import schemas
from ostobilling.api import deps
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.core.organization_service import organization_service

router = TrailingSlashRouter()


@router.post("", response_model=schemas.Organization, status_code=201)
async def create_organization(
    organization_in: schemas.OrganizationCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Organization:
    """Create an organization.

    Args:
        organization_in: The organization to create
        db: Database session

    Returns:
        The created organization with its derived slug
    """
    organization = await organization_service.create(db, organization_in)
    return schemas.Organization.model_validate(organization)


@router.get("", response_model=schemas.Page[schemas.Organization])
async def list_organizations(
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Organization]:
    """List organizations ordered by name."""
    organizations, total = await organization_service.list_organizations(db, params)
    return schemas.Page[schemas.Organization].create(organizations, total, params)


@router.get("/{organization_id}", response_model=schemas.Organization)
async def read_organization(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Organization:
    """Get an organization by ID."""
    organization = await organization_service.get(db, organization_id)
    return schemas.Organization.model_validate(organization)


@router.put("/{organization_id}", response_model=schemas.Organization)
async def update_organization(
    organization_id: UUID,
    organization_in: schemas.OrganizationUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Organization:
    """Update an organization. Renaming changes its slug."""
    organization = await organization_service.update(db, organization_id, organization_in)
    return schemas.Organization.model_validate(organization)


@router.delete("/{organization_id}", response_model=schemas.Organization)
async def delete_organization(
    organization_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Organization:
    """Soft delete an organization."""
    organization = await organization_service.delete(db, organization_id)
    return schemas.Organization.model_validate(organization)
