"""
Assignment Coordinator.

Assigns a vehicle (plus optional driver and co-driver) to a trip, enforcing
the core double-booking rules:

- HARD: a vehicle never holds two reserving assignments whose windows
  intersect (closed intervals, touching endpoints conflict). Nothing is
  persisted.
- SOFT: less than the minimum buffer between this trip and the vehicle's
  nearest neighbour on either side. The assignment is persisted and the
  warnings are returned to the caller.

The whole check -> insert -> commit sequence runs under the vehicle's lock
and a row lock on the vehicle, so two concurrent requests for the same
vehicle cannot both pass the overlap check. If the database constraints
still reject the insert, the failure is reported as a hard conflict.
"""

import logging
from datetime import timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.config import settings
from charter_backend.app.core.exceptions import HardConflictError, InvalidTransitionError, ValidationError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.models.booking_enums import ASSIGNABLE_BOOKING_STATUSES
from charter_backend.app.models.driver import Driver
from charter_backend.app.models.fleet_enums import ASSIGNMENT_TRANSITIONS, AssignmentStatus
from charter_backend.app.models.trip import Trip
from charter_backend.app.models.trip_assignment import TripAssignment
from charter_backend.app.models.vehicle import Vehicle
from charter_backend.app.repositories.booking_repository import BookingRepository
from charter_backend.app.repositories.fleet_repository import FleetRepository
from charter_backend.app.schemas.events import VehicleAssigned
from charter_backend.app.services.event_publisher import EventPublisher, NullEventPublisher, publish_safely
from charter_backend.app.services.vehicle_locking import VehicleLockRegistry

logger = logging.getLogger("charter.fleet")


class WarningKind(str, Enum):
    BUFFER_BEFORE = "BUFFER_BEFORE"  # Previous trip of the vehicle ends too close
    BUFFER_AFTER = "BUFFER_AFTER"  # Next trip of the vehicle starts too soon
    LICENSE_EXPIRY = "LICENSE_EXPIRY"  # Driver license expires before the trip ends


class SoftWarning(BaseModel):
    """Non-blocking finding attached to a successful assignment."""
    kind: WarningKind
    message: str
    neighbour_trip_id: Optional[int] = None
    gap_hours: Optional[float] = None
    minimum_hours: Optional[float] = None


class AssignmentResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    assignment: TripAssignment
    warnings: List[SoftWarning] = []


def _hours(delta: timedelta) -> float:
    return round(delta.total_seconds() / 3600, 2)


class AssignmentCoordinator:
    """
    Owns the assignment write path for one tenant.

    Commits its own unit of work: the commit must happen while the vehicle
    lock is still held.
    """

    def __init__(
        self,
        db: AsyncSession,
        ctx: TenantContext,
        locks: VehicleLockRegistry,
        publisher: EventPublisher = None,
        min_buffer: timedelta = None
    ):
        self.db = db
        self.ctx = ctx
        self.locks = locks
        self.publisher = publisher or NullEventPublisher()
        self.min_buffer = min_buffer if min_buffer is not None else timedelta(hours=settings.min_buffer_hours)
        self.bookings = BookingRepository(db, ctx)
        self.fleet = FleetRepository(db, ctx)

    async def assign(
        self,
        trip_id: int,
        vehicle_id: int,
        driver_id: Optional[int] = None,
        co_driver_id: Optional[int] = None
    ) -> AssignmentResult:
        """
        Reserve a vehicle for a trip.

        Raises:
            ResourceNotFoundError: Unknown trip, vehicle or driver
            ValidationError: Inactive vehicle/driver, or booking not payable-confirmed
            HardConflictError: The vehicle is already reserved in an intersecting window
        """
        async with self.locks.hold(self.ctx.tenant_id, vehicle_id):
            try:
                result = await self._assign_locked(trip_id, vehicle_id, driver_id, co_driver_id)
                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                logger.warning(
                    "Assignment rejected by database constraint",
                    extra={"trip_id": trip_id, "vehicle_id": vehicle_id, "error": str(exc.orig)}
                )
                raise HardConflictError(vehicle_id, trip_id)
            except Exception:
                await self.db.rollback()
                raise

        assignment = result.assignment
        logger.info(
            "Vehicle assigned",
            extra={
                "assignment_id": assignment.id,
                "trip_id": trip_id,
                "vehicle_id": vehicle_id,
                "warnings": len(result.warnings)
            }
        )
        await publish_safely(self.publisher, [VehicleAssigned(
            tenant_id=self.ctx.tenant_id,
            assignment_id=assignment.id,
            trip_id=trip_id,
            vehicle_id=vehicle_id,
            driver_id=driver_id
        )])
        return result

    async def _assign_locked(
        self,
        trip_id: int,
        vehicle_id: int,
        driver_id: Optional[int],
        co_driver_id: Optional[int]
    ) -> AssignmentResult:
        vehicle = await self.fleet.find_vehicle(vehicle_id, for_update=True)
        if not vehicle.is_active:
            raise ValidationError(
                f"Vehicle {vehicle.display_name} is inactive",
                details={"vehicle_id": vehicle_id}
            )

        trip = await self.bookings.find_trip(trip_id)
        booking = await self.bookings.find_booking(trip.booking_id)
        if booking.status not in ASSIGNABLE_BOOKING_STATUSES:
            raise ValidationError(
                f"Booking {booking.code} is {booking.status.value}; vehicles can only be assigned "
                f"once payment has been received",
                details={"booking_id": booking.id, "status": booking.status.value}
            )

        drivers = await self._load_drivers(driver_id, co_driver_id)

        if await self.fleet.active_assignment_for(vehicle_id, trip_id) is not None:
            raise HardConflictError(
                vehicle_id, trip_id, [trip_id],
                message=f"Vehicle {vehicle.display_name} is already assigned to trip {trip_id}"
            )

        overlapping = await self.fleet.assignments_overlapping(
            vehicle_id, trip.start_time, trip.end_time, exclude_trip_id=trip_id
        )
        if overlapping:
            conflicting = sorted({a.trip_id for a in overlapping})
            logger.info(
                "Hard conflict on assignment",
                extra={"trip_id": trip_id, "vehicle_id": vehicle_id, "conflicting_trip_ids": conflicting}
            )
            raise HardConflictError(vehicle_id, trip_id, conflicting)

        warnings = await self._buffer_warnings(vehicle, trip)
        warnings.extend(self._license_warnings(drivers, trip))

        assignment = TripAssignment(
            trip_id=trip_id,
            vehicle_id=vehicle_id,
            driver_id=driver_id,
            co_driver_id=co_driver_id,
            status=AssignmentStatus.SCHEDULED,
            window_start=trip.start_time,
            window_end=trip.end_time
        )
        await self.fleet.save(assignment)

        for warning in warnings:
            logger.warning(warning.message, extra={"trip_id": trip_id, "vehicle_id": vehicle_id, "kind": warning.kind.value})

        return AssignmentResult(assignment=assignment, warnings=warnings)

    async def _load_drivers(self, driver_id: Optional[int], co_driver_id: Optional[int]) -> List[Driver]:
        if driver_id is not None and driver_id == co_driver_id:
            raise ValidationError("Driver and co-driver must be different people", details={"driver_id": driver_id})

        drivers = []
        for role, ident in (("Driver", driver_id), ("Co-driver", co_driver_id)):
            if ident is None:
                continue
            driver = await self.fleet.find_driver(ident)
            if not driver.is_active:
                raise ValidationError(f"{role} {driver.display_name} is inactive", details={"driver_id": ident})
            drivers.append(driver)
        return drivers

    async def _buffer_warnings(self, vehicle: Vehicle, trip: Trip) -> List[SoftWarning]:
        """Gap to the nearest reserving neighbour on each side, if shorter than the minimum."""
        warnings = []
        minimum = _hours(self.min_buffer)

        previous = await self.fleet.nearest_assignment_before(vehicle.id, trip.start_time)
        if previous is not None:
            gap = trip.start_time - previous.window_end
            if gap < self.min_buffer:
                warnings.append(SoftWarning(
                    kind=WarningKind.BUFFER_BEFORE,
                    message=(
                        f"{vehicle.display_name} finishes trip {previous.trip_id} only "
                        f"{_hours(gap):g}h before this trip (minimum {minimum:g}h)"
                    ),
                    neighbour_trip_id=previous.trip_id,
                    gap_hours=_hours(gap),
                    minimum_hours=minimum
                ))

        following = await self.fleet.nearest_assignment_after(vehicle.id, trip.end_time)
        if following is not None:
            gap = following.window_start - trip.end_time
            if gap < self.min_buffer:
                warnings.append(SoftWarning(
                    kind=WarningKind.BUFFER_AFTER,
                    message=(
                        f"{vehicle.display_name} starts trip {following.trip_id} only "
                        f"{_hours(gap):g}h after this trip (minimum {minimum:g}h)"
                    ),
                    neighbour_trip_id=following.trip_id,
                    gap_hours=_hours(gap),
                    minimum_hours=minimum
                ))

        return warnings

    def _license_warnings(self, drivers: List[Driver], trip: Trip) -> List[SoftWarning]:
        last_day = trip.end_time.date()
        return [
            SoftWarning(
                kind=WarningKind.LICENSE_EXPIRY,
                message=f"License of {driver.display_name} expires on {driver.license_expiry.isoformat()}, before the trip ends"
            )
            for driver in drivers
            if not driver.license_valid_on(last_day)
        ]

    # Assignment status

    async def _move(self, assignment_id: int, target: AssignmentStatus, **changes) -> TripAssignment:
        assignment = await self.fleet.find_assignment(assignment_id)
        if target not in ASSIGNMENT_TRANSITIONS[assignment.status]:
            raise InvalidTransitionError("assignment", assignment.status, target)

        odometer_end = changes.get("odometer_end")
        if odometer_end is not None and assignment.odometer_start is not None and odometer_end < assignment.odometer_start:
            raise ValidationError(
                "odometer_end must not be lower than odometer_start",
                details={"odometer_start": assignment.odometer_start, "odometer_end": odometer_end}
            )

        previous = assignment.status
        for field, value in changes.items():
            if value is not None:
                setattr(assignment, field, value)
        assignment.status = target
        await self.fleet.save(assignment)
        await self.db.commit()

        logger.info(
            "Assignment status changed",
            extra={"assignment_id": assignment_id, "from": previous.value, "to": target.value}
        )
        return assignment

    async def cancel(self, assignment_id: int) -> TripAssignment:
        """Soft-delete a scheduled or running assignment; the vehicle is released immediately."""
        return await self._move(assignment_id, AssignmentStatus.CANCELLED)

    async def start(self, assignment_id: int, odometer_start: Optional[int] = None) -> TripAssignment:
        if odometer_start is not None and odometer_start < 0:
            raise ValidationError("odometer_start must not be negative")
        return await self._move(assignment_id, AssignmentStatus.IN_PROGRESS, odometer_start=odometer_start)

    async def complete(self, assignment_id: int, odometer_end: Optional[int] = None) -> TripAssignment:
        return await self._move(assignment_id, AssignmentStatus.COMPLETED, odometer_end=odometer_end)

    async def assignments_of_trip(self, trip_id: int, include_cancelled: bool = False) -> List[TripAssignment]:
        await self.bookings.find_trip(trip_id)
        return await self.fleet.assignments_of_trip(trip_id, include_cancelled)
