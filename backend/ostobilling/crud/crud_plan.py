"""CRUD operations for plans."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling.crud._base_system import CRUDBaseSystem
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models.plan import Plan
from ostobilling.schemas.plan import PlanCreate, PlanUpdate


class CRUDPlan(CRUDBaseSystem[Plan, PlanCreate, PlanUpdate]):
    """CRUD operations for plans."""

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Optional[Plan]:
        """Get a plan by slug."""
        result = await db.execute(select(Plan).where(Plan.slug == slug))
        return result.scalar_one_or_none()

    async def get_active(self, db: AsyncSession) -> list[Plan]:
        """Get all active plans, cheapest first."""
        result = await db.execute(
            select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price.asc(), Plan.name)
        )
        return list(result.scalars().all())

    async def get_popular(self, db: AsyncSession) -> list[Plan]:
        """Get active plans flagged popular, cheapest first."""
        result = await db.execute(
            select(Plan)
            .where(Plan.is_active.is_(True), Plan.is_popular.is_(True))
            .order_by(Plan.price.asc(), Plan.name)
        )
        return list(result.scalars().all())

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100
    ) -> tuple[list[Plan], int]:
        """Get a page of all plans, cheapest first."""
        query = select(Plan).order_by(Plan.price.asc(), Plan.name, Plan.id)
        return await self._paginate(db, query, skip=skip, limit=limit)

    async def set_popular(
        self, db: AsyncSession, id: UUID, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Flag one plan popular and clear the flag on every other plan.

        Runs as a single UPDATE statement so no reader can observe a catalog
        with zero or two popular plans.
        """
        await db.execute(
            update(Plan)
            .values(is_popular=(Plan.id == id))
            .execution_options(synchronize_session=False)
        )
        if uow is None:
            await db.commit()


plan = CRUDPlan(Plan)
