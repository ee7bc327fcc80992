"""
FastAPI Application Entry Point.

This is the main application file for the Charter Booking Backend.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from charter_backend.app.core.config import settings
from charter_backend.app.api.v1.router import router as api_v1_router
from charter_backend.app.db.session import engine, Base
from charter_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from charter_backend.app.core.observability import ObservabilityMiddleware
from charter_backend.app.services.event_publisher import build_event_publisher
from charter_backend.app.services.vehicle_locking import VehicleLockRegistry

# Import models to ensure they are registered with Base
from charter_backend.app.models.tenant import Tenant
from charter_backend.app.models.customer import Customer
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.trip import Trip
from charter_backend.app.models.booking_charge import BookingCharge
from charter_backend.app.models.payment import Payment
from charter_backend.app.models.vehicle import Vehicle
from charter_backend.app.models.driver import Driver
from charter_backend.app.models.trip_assignment import TripAssignment

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Booking lifecycle and fleet allocation engine for bus charter operators",
    lifespan=lifespan,
)

# Process-wide collaborators shared by all requests
app.state.vehicle_locks = VehicleLockRegistry()
app.state.event_publisher = build_event_publisher()

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

    The notification transport is only checked when notifications are
    enabled; its outage never makes the service unhealthy.

    Returns:
        dict: Status and application information
    """
    notifications = "disabled"
    if settings.notifications_enabled:
        from charter_backend.app.core.redis_client import transport_status
        notifications = await transport_status()

    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "notifications": notifications,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
