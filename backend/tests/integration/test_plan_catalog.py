"""Integration tests for the plan catalog."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ostobilling import schemas
from ostobilling.core.exceptions import ConflictException, NotFoundException


def _plan_in(name: str, **overrides) -> schemas.PlanCreate:
    data = {
        "name": name,
        "description": f"The {name} plan for integration tests.",
        "price": Decimal("19.00"),
        "interval": "monthly",
        "features": ["Support"],
    }
    data.update(overrides)
    return schemas.PlanCreate(**data)


@pytest.mark.integration
class TestPlanCatalog:
    """Test plan administration and reads."""

    async def test_create_derives_slug(self, db_session, plan_catalog):
        """Creating a plan derives its slug and activates it."""
        plan = await plan_catalog.create(db_session, _plan_in("Pro Plan"))

        assert plan.slug == "pro-plan"
        assert plan.is_active
        assert plan.interval == "monthly"
        assert (await plan_catalog.get_by_slug(db_session, "pro-plan")).id == plan.id

    async def test_duplicate_slug_conflicts(self, db_session, plan_catalog):
        """Two names with the same slug conflict."""
        await plan_catalog.create(db_session, _plan_in("Pro Plan"))

        with pytest.raises(ConflictException):
            await plan_catalog.create(db_session, _plan_in("pro  plan!"))

    async def test_missing_plan(self, db_session, plan_catalog):
        """Unknown ids and slugs are not found."""
        with pytest.raises(NotFoundException):
            await plan_catalog.get(db_session, uuid4())
        with pytest.raises(NotFoundException):
            await plan_catalog.get_by_slug(db_session, "nope")

    async def test_active_plans_sorted_by_price(self, db_session, plan_catalog, make_plan):
        """Active plans are listed cheapest first and inactive ones are hidden."""
        await make_plan("Gold", price="99.00")
        await make_plan("Bronze", price="5.00")
        await make_plan("Retired", price="1.00", is_active=False)

        active = await plan_catalog.list_active(db_session)

        assert [plan.slug for plan in active] == ["bronze", "gold"]

    async def test_single_popular_plan(self, db_session, plan_catalog):
        """Marking a plan popular clears the flag on every other plan."""
        first = await plan_catalog.create(db_session, _plan_in("First", is_popular=True))
        second = await plan_catalog.create(db_session, _plan_in("Second", is_popular=True))

        popular = await plan_catalog.list_popular(db_session)
        assert [plan.id for plan in popular] == [second.id]

        await plan_catalog.set_popular(db_session, first.id)
        popular = await plan_catalog.list_popular(db_session)
        assert [plan.id for plan in popular] == [first.id]

    async def test_update_renames_and_reprices(self, db_session, plan_catalog):
        """Renaming re-derives the slug and unset fields are left alone."""
        plan = await plan_catalog.create(db_session, _plan_in("Basic"))

        updated = await plan_catalog.update(
            db_session, plan.id, schemas.PlanUpdate(name="Basic Plus", price=Decimal("24.50"))
        )

        assert updated.slug == "basic-plus"
        assert updated.price == Decimal("24.50")
        assert updated.interval == "monthly"

    async def test_update_clears_description(self, db_session, plan_catalog):
        """An explicit null clears the description, other nulls are ignored."""
        plan = await plan_catalog.create(db_session, _plan_in("Basic"))

        updated = await plan_catalog.update(
            db_session, plan.id, schemas.PlanUpdate(description=None, price=None)
        )

        assert updated.description is None
        assert updated.price == Decimal("19.00")
        assert updated.name == "Basic"

    async def test_update_rename_conflict(self, db_session, plan_catalog):
        """Renaming onto another plan's slug conflicts."""
        await plan_catalog.create(db_session, _plan_in("Basic"))
        other = await plan_catalog.create(db_session, _plan_in("Premium"))

        with pytest.raises(ConflictException):
            await plan_catalog.update(db_session, other.id, schemas.PlanUpdate(name="Basic"))

    async def test_deactivate_and_activate(self, db_session, plan_catalog):
        """Deactivation hides a plan from the active list until reactivated."""
        plan = await plan_catalog.create(db_session, _plan_in("Seasonal"))

        await plan_catalog.deactivate(db_session, plan.id)
        assert await plan_catalog.list_active(db_session) == []

        await plan_catalog.activate(db_session, plan.id)
        assert [p.id for p in await plan_catalog.list_active(db_session)] == [plan.id]

    async def test_delete_keeps_the_row(self, db_session, plan_catalog):
        """Deleting a plan only deactivates it."""
        plan = await plan_catalog.create(db_session, _plan_in("Legacy"))

        deleted = await plan_catalog.delete(db_session, plan.id)

        assert not deleted.is_active
        assert (await plan_catalog.get(db_session, plan.id)).id == plan.id

    async def test_list_plans_counts_every_row(self, db_session, plan_catalog, make_plan):
        """The listing total counts every plan, not just the page."""
        for index in range(5):
            await make_plan(f"Plan {index}")

        plans, total = await plan_catalog.list_plans(
            db_session, schemas.PageParams.build(page=2, limit=2)
        )

        assert total == 5
        assert len(plans) == 2
