"""Organization service for managing billed tenants."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import crud, schemas
from ostobilling.core.clock import Clock, system_clock
from ostobilling.core.exceptions import ConflictException, NotFoundException
from ostobilling.core.logging import logger
from ostobilling.core.slug import slugify
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models import Organization

DUPLICATE_ORGANIZATION_MESSAGE = "Organization with this name already exists"


class OrganizationService:
    """Service for organization management.

    Organizations are never physically deleted; deleting one leaves a
    tombstone so its subscriptions and invoices keep their owner.
    """

    def __init__(self, clock: Clock = system_clock):
        """Initialize the organization service."""
        self.clock = clock

    async def _ensure_slug_free(
        self, db: AsyncSession, slug: str, organization_id: UUID | None = None
    ) -> None:
        existing = await crud.organization.get_by_slug(db, slug, include_deleted=True)
        if existing is not None and existing.id != organization_id:
            raise ConflictException(DUPLICATE_ORGANIZATION_MESSAGE)

    async def create(
        self, db: AsyncSession, organization_in: schemas.OrganizationCreate
    ) -> Organization:
        """Create an organization with a slug derived from its name.

        Raises:
        ------
            ConflictException: If another organization already has the slug.

        """
        slug = slugify(organization_in.name)
        await self._ensure_slug_free(db, slug)

        data = organization_in.model_dump()
        data.update(slug=slug, is_active=True)

        async with UnitOfWork(db, conflict_message=DUPLICATE_ORGANIZATION_MESSAGE) as uow:
            organization = await crud.organization.create(uow.session, obj_in=data, uow=uow)
            await uow.commit()

        logger.with_context(organization_id=str(organization.id)).info(
            f"Created organization {organization.slug}"
        )
        return organization

    async def get(self, db: AsyncSession, organization_id: UUID) -> Organization:
        """Get a live organization.

        Raises:
        ------
            NotFoundException: If the organization does not exist or was deleted.

        """
        organization = await crud.organization.get(db, organization_id)
        if organization is None:
            raise NotFoundException(f"Organization {organization_id} not found")
        return organization

    async def list_organizations(
        self, db: AsyncSession, params: schemas.PageParams
    ) -> tuple[list[Organization], int]:
        """A page of live organizations with the total count."""
        return await crud.organization.get_multi(db, skip=params.offset, limit=params.limit)

    async def update(
        self,
        db: AsyncSession,
        organization_id: UUID,
        organization_in: schemas.OrganizationUpdate,
    ) -> Organization:
        """Update an organization. Renaming re-derives the slug.

        Raises:
        ------
            NotFoundException: If the organization does not exist or was deleted.
            ConflictException: If the new name collides with another organization.

        """
        organization = await self.get(db, organization_id)
        changes = organization_in.model_dump(exclude_unset=True)

        if changes.get("name") and changes["name"] != organization.name:
            slug = slugify(changes["name"])
            await self._ensure_slug_free(db, slug, organization.id)
            changes["slug"] = slug

        async with UnitOfWork(db, conflict_message=DUPLICATE_ORGANIZATION_MESSAGE) as uow:
            organization = await crud.organization.update(
                uow.session, db_obj=organization, obj_in=changes, uow=uow
            )
            await uow.commit()

        logger.with_context(organization_id=str(organization.id)).info(
            f"Updated organization {organization.slug}"
        )
        return organization

    async def delete(self, db: AsyncSession, organization_id: UUID) -> Organization:
        """Soft delete an organization.

        Raises:
        ------
            NotFoundException: If the organization does not exist or was deleted.

        """
        organization = await self.get(db, organization_id)

        async with UnitOfWork(db) as uow:
            organization = await crud.organization.update(
                uow.session,
                db_obj=organization,
                obj_in={"deleted_at": self.clock.now(), "is_active": False},
                uow=uow,
            )
            await uow.commit()

        logger.with_context(organization_id=str(organization.id)).info(
            f"Deleted organization {organization.slug}"
        )
        return organization


organization_service = OrganizationService()
