"""
Service dependencies for FastAPI.

Every service is built per request from the request's database session and
TenantContext. Process-wide collaborators (vehicle lock registry, event
publisher) live on app.state and are set up in main.py.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.tenancy import TenantContext, get_tenant_context
from charter_backend.app.db.session import get_db
from charter_backend.app.domain.fleet.assignment_coordinator import AssignmentCoordinator
from charter_backend.app.services.booking_service import BookingService
from charter_backend.app.services.event_publisher import EventPublisher
from charter_backend.app.services.finance_service import FinanceService
from charter_backend.app.services.fleet_service import FleetService
from charter_backend.app.services.vehicle_locking import VehicleLockRegistry


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


def get_vehicle_locks(request: Request) -> VehicleLockRegistry:
    return request.app.state.vehicle_locks


async def get_booking_service(
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
) -> BookingService:
    return BookingService(db, ctx, publisher)


async def get_finance_service(
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
) -> FinanceService:
    return FinanceService(db, ctx, publisher)


async def get_fleet_service(
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
) -> FleetService:
    return FleetService(db, ctx)


async def get_assignment_coordinator(
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
    locks: VehicleLockRegistry = Depends(get_vehicle_locks),
    publisher: EventPublisher = Depends(get_event_publisher)
) -> AssignmentCoordinator:
    return AssignmentCoordinator(db, ctx, locks, publisher)
