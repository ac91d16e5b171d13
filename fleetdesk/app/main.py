"""
FastAPI Application Entry Point.

This is the main application file for the FleetDesk Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fleetdesk.app.core.config import settings
from fleetdesk.app.api.v1.router import router as api_v1_router
from fleetdesk.app.core.observability import ObservabilityMiddleware
from fleetdesk.app.core.redis_client import ping_redis
from fleetdesk.app.db.session import engine, Base
from fleetdesk.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.client_truck_allocation import ClientTruckAllocation
from fleetdesk.app.models.delivery import Delivery
from fleetdesk.app.models.audit_log import AuditLog

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Truck allocation and booking conflict engine",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Reports "degraded" when the lock backend is unreachable; bookings and
    allocations will fail with 503 until it recovers.
    """
    redis_ok = await ping_redis()
    return {
        "status": "healthy" if redis_ok else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": redis_ok,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to FleetDesk Backend API",
        "docs": "/docs",
        "health": "/health",
    }
