"""API endpoints for the plan catalog."""

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import schemas
from ostobilling.api import deps
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.platform.billing.plan_catalog import plan_catalog

router = TrailingSlashRouter()


@router.get("", response_model=schemas.Page[schemas.Plan])
async def list_plans(
    db: AsyncSession = Depends(deps.get_db),
    params: schemas.PageParams = Depends(deps.get_page_params),
) -> schemas.Page[schemas.Plan]:
    """List all plans, active or not, cheapest first."""
    plans, total = await plan_catalog.list_plans(db, params)
    return schemas.Page[schemas.Plan].create(plans, total, params)


@router.get("/active", response_model=list[schemas.Plan])
async def list_active_plans(db: AsyncSession = Depends(deps.get_db)) -> list[schemas.Plan]:
    """List plans open to new subscriptions, cheapest first."""
    plans = await plan_catalog.list_active(db)
    return [schemas.Plan.model_validate(plan) for plan in plans]


@router.get("/popular", response_model=list[schemas.Plan])
async def list_popular_plans(db: AsyncSession = Depends(deps.get_db)) -> list[schemas.Plan]:
    """List active plans flagged popular."""
    plans = await plan_catalog.list_popular(db)
    return [schemas.Plan.model_validate(plan) for plan in plans]


@router.get("/slug/{slug}", response_model=schemas.Plan)
async def read_plan_by_slug(slug: str, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Get a plan by slug."""
    plan = await plan_catalog.get_by_slug(db, slug)
    return schemas.Plan.model_validate(plan)


@router.get("/{plan_id}", response_model=schemas.Plan)
async def read_plan(plan_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Get a plan by ID."""
    plan = await plan_catalog.get(db, plan_id)
    return schemas.Plan.model_validate(plan)


@router.post("", response_model=schemas.Plan, status_code=201)
async def create_plan(
    plan_in: schemas.PlanCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Plan:
    """Create a plan.

    Args:
        plan_in: The plan to create. The slug is derived from the name.
        db: Database session

    Returns:
        The created plan
    """
    plan = await plan_catalog.create(db, plan_in)
    return schemas.Plan.model_validate(plan)


@router.put("/{plan_id}", response_model=schemas.Plan)
async def update_plan(
    plan_id: UUID,
    plan_in: schemas.PlanUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.Plan:
    """Update a plan."""
    plan = await plan_catalog.update(db, plan_id, plan_in)
    return schemas.Plan.model_validate(plan)


@router.delete("/{plan_id}", response_model=schemas.Plan)
async def delete_plan(plan_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Delete a plan. The plan is deactivated, existing subscriptions keep it."""
    plan = await plan_catalog.delete(db, plan_id)
    return schemas.Plan.model_validate(plan)


@router.post("/{plan_id}/activate", response_model=schemas.Plan)
async def activate_plan(plan_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Reopen a plan to new subscriptions."""
    plan = await plan_catalog.activate(db, plan_id)
    return schemas.Plan.model_validate(plan)


@router.post("/{plan_id}/deactivate", response_model=schemas.Plan)
async def deactivate_plan(plan_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Close a plan to new subscriptions."""
    plan = await plan_catalog.deactivate(db, plan_id)
    return schemas.Plan.model_validate(plan)


@router.post("/{plan_id}/popular", response_model=schemas.Plan)
async def set_popular_plan(plan_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> schemas.Plan:
    """Make a plan the only popular plan."""
    plan = await plan_catalog.set_popular(db, plan_id)
    return schemas.Plan.model_validate(plan)
