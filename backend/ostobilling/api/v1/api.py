"""API routes for the FastAPI application."""

from ostobilling.api.router import TrailingSlashRouter
from ostobilling.api.v1.endpoints import health, invoices, organizations, plans, subscriptions

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
api_router.include_router(plans.router, prefix="/plans", tags=["plans"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
