"""Plan catalog service.

Plans are reference data for the lifecycle engine: price, currency, interval
and trial terms. Deactivating a plan hides it from new subscriptions but does
not touch subscriptions already bound to it.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import crud, schemas
from ostobilling.core.exceptions import ConflictException, NotFoundException
from ostobilling.core.logging import LoggerConfigurator
from ostobilling.core.slug import slugify
from ostobilling.db.unit_of_work import UnitOfWork
from ostobilling.models import Plan

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "plan_catalog"})

DUPLICATE_PLAN_MESSAGE = "Plan with this name already exists"

# Nullable plan columns an update may set back to null.
CLEARABLE_PLAN_FIELDS = {"description"}


class PlanCatalog:
    """Service for reading and administering plans."""

    async def get(self, db: AsyncSession, plan_id: UUID) -> Plan:
        """Get a plan by ID.

        Raises:
        ------
            NotFoundException: If the plan does not exist.

        """
        plan = await crud.plan.get(db, plan_id)
        if plan is None:
            raise NotFoundException(f"Plan {plan_id} not found")
        return plan

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Plan:
        """Get a plan by slug.

        Raises:
        ------
            NotFoundException: If no plan has the slug.

        """
        plan = await crud.plan.get_by_slug(db, slug)
        if plan is None:
            raise NotFoundException(f"Plan '{slug}' not found")
        return plan

    async def list_active(self, db: AsyncSession) -> list[Plan]:
        """Active plans, cheapest first."""
        return await crud.plan.get_active(db)

    async def list_popular(self, db: AsyncSession) -> list[Plan]:
        """Active popular plans, cheapest first."""
        return await crud.plan.get_popular(db)

    async def list_plans(
        self, db: AsyncSession, params: schemas.PageParams
    ) -> tuple[list[Plan], int]:
        """A page of all plans with the total count."""
        return await crud.plan.get_multi(db, skip=params.offset, limit=params.limit)

    async def create(self, db: AsyncSession, plan_in: schemas.PlanCreate) -> Plan:
        """Create an active plan with a slug derived from its name.

        Creating a popular plan clears the popular flag of every other plan.

        Raises:
        ------
            ConflictException: If another plan already has the derived slug.

        """
        slug = slugify(plan_in.name)
        if await crud.plan.get_by_slug(db, slug) is not None:
            raise ConflictException(DUPLICATE_PLAN_MESSAGE)

        data = plan_in.model_dump(exclude={"is_popular"})
        data["interval"] = plan_in.interval.value
        data.update(slug=slug, is_active=True, is_popular=False)

        async with UnitOfWork(db, conflict_message=DUPLICATE_PLAN_MESSAGE) as uow:
            plan = await crud.plan.create(uow.session, obj_in=data, uow=uow)
            if plan_in.is_popular:
                await crud.plan.set_popular(uow.session, plan.id, uow=uow)
            await uow.commit()

        await db.refresh(plan)
        logger.with_context(plan_id=str(plan.id)).info(f"Created plan {plan.slug}")
        return plan

    async def update(self, db: AsyncSession, plan_id: UUID, plan_in: schemas.PlanUpdate) -> Plan:
        """Apply an administrative edit to a plan.

        Renaming re-derives the slug. Setting ``is_popular`` to true makes the
        plan the only popular one. Unset fields are left alone, and an explicit null
        only clears ``description``.

        Raises:
        ------
            NotFoundException: If the plan does not exist.
            ConflictException: If the new name collides with another plan's slug.

        """
        plan = await self.get(db, plan_id)
        changes = plan_in.model_dump(exclude_unset=True, exclude={"is_popular"})

        if "interval" in changes and changes["interval"] is not None:
            changes["interval"] = plan_in.interval.value
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key in CLEARABLE_PLAN_FIELDS
        }

        if "name" in changes and changes["name"] != plan.name:
            new_slug = slugify(changes["name"])
            existing = await crud.plan.get_by_slug(db, new_slug)
            if existing is not None and existing.id != plan.id:
                raise ConflictException(DUPLICATE_PLAN_MESSAGE)
            changes["slug"] = new_slug

        popular = plan_in.is_popular

        async with UnitOfWork(db, conflict_message=DUPLICATE_PLAN_MESSAGE) as uow:
            plan = await crud.plan.update(uow.session, db_obj=plan, obj_in=changes, uow=uow)
            if popular is True:
                await crud.plan.set_popular(uow.session, plan.id, uow=uow)
            elif popular is False:
                plan.is_popular = False
            await uow.commit()

        await db.refresh(plan)
        logger.with_context(plan_id=str(plan.id)).info(f"Updated plan {plan.slug}")
        return plan

    async def set_active(self, db: AsyncSession, plan_id: UUID, active: bool) -> Plan:
        """Activate or deactivate a plan.

        Raises:
        ------
            NotFoundException: If the plan does not exist.

        """
        plan = await self.get(db, plan_id)
        async with UnitOfWork(db) as uow:
            plan = await crud.plan.update(
                uow.session, db_obj=plan, obj_in={"is_active": active}, uow=uow
            )
            await uow.commit()

        state = "Activated" if active else "Deactivated"
        logger.with_context(plan_id=str(plan.id)).info(f"{state} plan {plan.slug}")
        return plan

    async def activate(self, db: AsyncSession, plan_id: UUID) -> Plan:
        """Make a plan available to new subscriptions."""
        return await self.set_active(db, plan_id, True)

    async def deactivate(self, db: AsyncSession, plan_id: UUID) -> Plan:
        """Hide a plan from new subscriptions."""
        return await self.set_active(db, plan_id, False)

    async def delete(self, db: AsyncSession, plan_id: UUID) -> Plan:
        """Delete a plan. Plans are never removed, only deactivated."""
        return await self.deactivate(db, plan_id)

    async def set_popular(self, db: AsyncSession, plan_id: UUID) -> Plan:
        """Make one plan the only popular plan.

        Raises:
        ------
            NotFoundException: If the plan does not exist.

        """
        plan = await self.get(db, plan_id)
        async with UnitOfWork(db) as uow:
            await crud.plan.set_popular(uow.session, plan.id, uow=uow)
            await uow.commit()

        await db.refresh(plan)
        logger.with_context(plan_id=str(plan.id)).info(f"Set popular plan {plan.slug}")
        return plan


plan_catalog = PlanCatalog()
