"""Main module of the FastAPI application.

This module sets up the FastAPI application, its middleware and exception
handlers, and the lifespan that prepares the database and runs the expiry
sweeper.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from ostobilling.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    log_requests,
    ostobilling_exception_handler,
    validation_exception_handler,
)
from ostobilling.api.router import TrailingSlashRouter
from ostobilling.api.v1.api import api_router
from ostobilling.core.config import settings
from ostobilling.core.exceptions import OstoBillingException
from ostobilling.core.logging import logger
from ostobilling.db.init_db import create_tables, init_db
from ostobilling.db.session import AsyncSessionLocal, async_engine
from ostobilling.platform.billing.expiry_sweeper import SweepScheduler, expiry_sweeper


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Creates missing tables, seeds the default plans and starts the sweep
    scheduler, each when enabled in the settings.
    """
    if settings.RUN_DB_CREATE_ALL:
        logger.info("Creating database tables...")
        await create_tables(async_engine)

    if settings.SEED_DEFAULT_PLANS:
        async with AsyncSessionLocal() as db:
            await init_db(db)

    scheduler = None
    if settings.SWEEPER_ENABLED:
        scheduler = SweepScheduler(expiry_sweeper)
        await scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(OstoBillingException)(ostobilling_exception_handler)

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]

if settings.ADDITIONAL_CORS_ORIGINS:
    if settings.ENVIRONMENT == "local":
        CORS_ORIGINS.append("*")  # Allow all origins in local environment
    else:
        CORS_ORIGINS.extend(settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
