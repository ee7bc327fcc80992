"""
Fleet persistence port.

Vehicle, driver and trip-assignment queries, all scoped by tenant. The
temporal queries only consider assignments that reserve a vehicle:
status != CANCELLED and the owning booking in a committed status.

Overlap uses closed intervals: a window [s1, e1] intersects [s2, e2]
when s1 <= e2 and e1 >= s2, so touching endpoints count.
"""

from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import case, select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.exceptions import ResourceNotFoundError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.booking_enums import COMMITTED_BOOKING_STATUSES
from charter_backend.app.models.driver import Driver
from charter_backend.app.models.fleet_enums import CATEGORY_RANK, AssignmentStatus, VehicleCategory
from charter_backend.app.models.trip import Trip
from charter_backend.app.models.trip_assignment import TripAssignment
from charter_backend.app.models.vehicle import Vehicle


class FleetRepository:
    """Tenant-scoped access to vehicles, drivers and trip assignments."""

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        self.db = db
        self.tenant_id = ctx.tenant_id

    async def save(self, entity):
        entity.tenant_id = self.tenant_id
        self.db.add(entity)
        await self.db.flush()
        return entity

    def _reserving_assignments(self, *columns):
        """Base query: assignments that currently reserve their vehicle."""
        return (
            select(*(columns or (TripAssignment,)))
            .join(Trip, Trip.id == TripAssignment.trip_id)
            .join(Booking, Booking.id == Trip.booking_id)
            .where(
                TripAssignment.tenant_id == self.tenant_id,
                TripAssignment.status != AssignmentStatus.CANCELLED,
                Booking.status.in_(COMMITTED_BOOKING_STATUSES)
            )
        )

    # Vehicles

    async def find_vehicle(self, vehicle_id: int, for_update: bool = False) -> Vehicle:
        """
        Load a vehicle of this tenant.

        With for_update=True the row stays locked until the transaction
        ends, serializing concurrent writers of its assignment set.
        """
        query = select(Vehicle).where(
            Vehicle.id == vehicle_id,
            Vehicle.tenant_id == self.tenant_id
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            raise ResourceNotFoundError("Vehicle", vehicle_id)
        return vehicle

    async def find_vehicle_by_plate(self, plate_number: str) -> Optional[Vehicle]:
        result = await self.db.execute(
            select(Vehicle).where(
                Vehicle.plate_number == plate_number,
                Vehicle.tenant_id == self.tenant_id
            )
        )
        return result.scalar_one_or_none()

    async def active_vehicles(self, category: Optional[VehicleCategory] = None) -> List[Vehicle]:
        """Active vehicles ordered by category rank (largest first), display name, then id."""
        query = select(Vehicle).where(
            Vehicle.tenant_id == self.tenant_id,
            Vehicle.is_active == True
        )
        if category is not None:
            query = query.where(Vehicle.category == category)

        category_rank = case(*[(Vehicle.category == c, rank) for c, rank in CATEGORY_RANK.items()])
        query = query.order_by(
            category_rank,
            func.coalesce(Vehicle.nickname, Vehicle.plate_number),
            Vehicle.id
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # Drivers

    async def find_driver(self, driver_id: int) -> Driver:
        result = await self.db.execute(
            select(Driver).where(
                Driver.id == driver_id,
                Driver.tenant_id == self.tenant_id
            )
        )
        driver = result.scalar_one_or_none()
        if driver is None:
            raise ResourceNotFoundError("Driver", driver_id)
        return driver

    async def active_drivers(self) -> List[Driver]:
        """Active drivers ordered by display name, then id."""
        result = await self.db.execute(
            select(Driver).where(
                Driver.tenant_id == self.tenant_id,
                Driver.is_active == True
            ).order_by(func.coalesce(Driver.nickname, Driver.full_name), Driver.id)
        )
        return list(result.scalars().all())

    # Assignments

    async def find_assignment(self, assignment_id: int) -> TripAssignment:
        result = await self.db.execute(
            select(TripAssignment).where(
                TripAssignment.id == assignment_id,
                TripAssignment.tenant_id == self.tenant_id
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise ResourceNotFoundError("TripAssignment", assignment_id)
        return assignment

    async def assignments_of_trip(self, trip_id: int, include_cancelled: bool = False) -> List[TripAssignment]:
        query = select(TripAssignment).where(
            TripAssignment.trip_id == trip_id,
            TripAssignment.tenant_id == self.tenant_id
        )
        if not include_cancelled:
            query = query.where(TripAssignment.status != AssignmentStatus.CANCELLED)
        result = await self.db.execute(query.order_by(TripAssignment.id))
        return list(result.scalars().all())

    async def active_assignments_of_booking(self, booking_id: int) -> List[TripAssignment]:
        result = await self.db.execute(
            select(TripAssignment)
            .join(Trip, Trip.id == TripAssignment.trip_id)
            .where(
                Trip.booking_id == booking_id,
                TripAssignment.tenant_id == self.tenant_id,
                TripAssignment.status != AssignmentStatus.CANCELLED
            ).order_by(TripAssignment.id)
        )
        return list(result.scalars().all())

    async def active_assignment_for(self, vehicle_id: int, trip_id: int) -> Optional[TripAssignment]:
        """The non-CANCELLED assignment of this vehicle to this trip, if any."""
        result = await self.db.execute(
            select(TripAssignment).where(
                TripAssignment.vehicle_id == vehicle_id,
                TripAssignment.trip_id == trip_id,
                TripAssignment.tenant_id == self.tenant_id,
                TripAssignment.status != AssignmentStatus.CANCELLED
            )
        )
        return result.scalars().first()

    async def assignments_overlapping(
        self,
        vehicle_id: int,
        window_start: datetime,
        window_end: datetime,
        exclude_trip_id: Optional[int] = None
    ) -> List[TripAssignment]:
        """Reserving assignments of a vehicle whose window intersects the given one."""
        query = self._reserving_assignments().where(
            TripAssignment.vehicle_id == vehicle_id,
            TripAssignment.window_start <= window_end,
            TripAssignment.window_end >= window_start
        )
        if exclude_trip_id is not None:
            query = query.where(TripAssignment.trip_id != exclude_trip_id)

        result = await self.db.execute(query.order_by(TripAssignment.window_start, TripAssignment.id))
        return list(result.scalars().all())

    async def nearest_assignment_before(self, vehicle_id: int, t: datetime) -> Optional[TripAssignment]:
        """The reserving assignment of a vehicle that ends latest, strictly before t."""
        result = await self.db.execute(
            self._reserving_assignments().where(
                TripAssignment.vehicle_id == vehicle_id,
                TripAssignment.window_end < t
            ).order_by(TripAssignment.window_end.desc(), TripAssignment.id.desc()).limit(1)
        )
        return result.scalars().first()

    async def nearest_assignment_after(self, vehicle_id: int, t: datetime) -> Optional[TripAssignment]:
        """The reserving assignment of a vehicle that starts earliest, strictly after t."""
        result = await self.db.execute(
            self._reserving_assignments().where(
                TripAssignment.vehicle_id == vehicle_id,
                TripAssignment.window_start > t
            ).order_by(TripAssignment.window_start, TripAssignment.id).limit(1)
        )
        return result.scalars().first()

    async def busy_vehicle_ids(self, window_start: datetime, window_end: datetime) -> Set[int]:
        """Ids of vehicles holding a reserving assignment that intersects the window."""
        result = await self.db.execute(
            self._reserving_assignments(TripAssignment.vehicle_id).where(
                TripAssignment.window_start <= window_end,
                TripAssignment.window_end >= window_start
            ).distinct()
        )
        return set(result.scalars().all())

    async def busy_driver_ids(self, window_start: datetime, window_end: datetime) -> Set[int]:
        """Ids of drivers (as driver or co-driver) on a reserving assignment intersecting the window."""
        result = await self.db.execute(
            self._reserving_assignments(
                TripAssignment.driver_id, TripAssignment.co_driver_id
            ).where(
                TripAssignment.window_start <= window_end,
                TripAssignment.window_end >= window_start,
                or_(TripAssignment.driver_id.is_not(None), TripAssignment.co_driver_id.is_not(None))
            )
        )
        busy = set()
        for driver_id, co_driver_id in result.all():
            busy.update(d for d in (driver_id, co_driver_id) if d is not None)
        return busy
