"""CRUD operations for organizations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling.crud._base_system import CRUDBaseSystem
from ostobilling.models.organization import Organization
from ostobilling.schemas.organization import OrganizationCreate, OrganizationUpdate


class CRUDOrganization(CRUDBaseSystem[Organization, OrganizationCreate, OrganizationUpdate]):
    """CRUD operations for organizations.

    Tombstoned organizations (``deleted_at`` set) are invisible to every read.
    """

    async def get(self, db: AsyncSession, id: UUID) -> Optional[Organization]:
        """Get a live organization by ID."""
        result = await db.execute(
            select(Organization).where(Organization.id == id, Organization.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_by_slug(
        self, db: AsyncSession, slug: str, include_deleted: bool = False
    ) -> Optional[Organization]:
        """Get an organization by slug.

        Args:
        ----
            db (AsyncSession): The database session.
            slug (str): The slug to look up.
            include_deleted (bool): Also match tombstoned organizations. Slugs stay
                reserved after a soft delete.

        Returns:
        -------
            Optional[Organization]: The organization with the slug.

        """
        query = select(Organization).where(Organization.slug == slug)
        if not include_deleted:
            query = query.where(Organization.deleted_at.is_(None))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Organization], int]:
        """Get a page of live organizations ordered by name."""
        query = (
            select(Organization)
            .where(Organization.deleted_at.is_(None))
            .order_by(Organization.name, Organization.id)
        )
        return await self._paginate(db, query, skip=skip, limit=limit)


organization = CRUDOrganization(Organization)
