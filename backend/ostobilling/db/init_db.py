"""Initialize the database schema and the default plan catalog."""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ostobilling import schemas
from ostobilling.core.logging import logger
from ostobilling.core.shared_models import PlanInterval
from ostobilling.models import Base, Plan

DEFAULT_PLANS: list[schemas.PlanCreate] = [
    schemas.PlanCreate(
        name="Starter",
        description="Weekly billing for small teams trying the platform.",
        price=Decimal("9.99"),
        interval=PlanInterval.WEEKLY,
        trial_days=0,
        features=["1 workspace", "Email support"],
    ),
    schemas.PlanCreate(
        name="Pro",
        description="Monthly billing for growing teams with a two week trial.",
        price=Decimal("29.99"),
        interval=PlanInterval.MONTHLY,
        trial_days=14,
        features=["10 workspaces", "Priority support", "Usage reports"],
        is_popular=True,
    ),
    schemas.PlanCreate(
        name="Business",
        description="Yearly billing for organizations with many teams.",
        price=Decimal("299.00"),
        interval=PlanInterval.YEARLY,
        trial_days=0,
        features=["Unlimited workspaces", "Dedicated support", "Audit log"],
    ),
]


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(db: AsyncSession) -> None:
    """Seed the default plan catalog when no plan exists.

    Args:
    ----
        db (AsyncSession): The database session.

    """
    from ostobilling.platform.billing.plan_catalog import plan_catalog

    existing = await db.scalar(select(func.count()).select_from(Plan))
    if existing:
        logger.info(f"Plan catalog already holds {existing} plans, skipping seed")
        return

    for plan_in in DEFAULT_PLANS:
        plan = await plan_catalog.create(db, plan_in)
        logger.info(f"Seeded plan {plan.slug}")
