"""Health check endpoints."""

from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling import schemas
from ostobilling.api import deps
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.core.logging import logger

router = TrailingSlashRouter()


@router.get("", response_model=schemas.HealthCheck)
async def health_check(db: AsyncSession = Depends(deps.get_db)) -> schemas.HealthCheck:
    """Check if the API and its database are healthy.

    Returns:
    --------
        schemas.HealthCheck: "healthy" with a reachable database, otherwise a 503
            response with status "unhealthy".
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        return JSONResponse(
            status_code=503,
            content=schemas.HealthCheck(status="unhealthy", database="unreachable").model_dump(),
        )
    return schemas.HealthCheck(status="healthy", database="ok")
