"""
Fleet Availability Engine.

Answers "which vehicles (and drivers) are free for this window?". Only
assignments that reserve a vehicle count: not CANCELLED, and belonging to
a booking in PAYMENT_RECEIVED, PAID_IN_FULL or COMPLETED. A quotation that
was never paid holds nothing.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

from charter_backend.app.core.exceptions import ValidationError
from charter_backend.app.models.driver import Driver
from charter_backend.app.models.fleet_enums import VehicleCategory
from charter_backend.app.models.vehicle import Vehicle
from charter_backend.app.repositories.fleet_repository import FleetRepository


def require_same_clock(start: datetime, end: datetime, names=("window_start", "window_end")) -> None:
    """Reject a pair where one value carries a UTC offset and the other does not."""
    if (start.utcoffset() is None) != (end.utcoffset() is None):
        raise ValidationError(
            f"{names[0]} and {names[1]} must both include a timezone offset or both omit it",
            details={names[0]: start.isoformat(), names[1]: end.isoformat()}
        )


def validate_window(window_start: datetime, window_end: datetime) -> None:
    if window_start is None or window_end is None:
        raise ValidationError("Both window_start and window_end are required")
    require_same_clock(window_start, window_end)
    if window_end < window_start:
        raise ValidationError(
            "window_end must not be before window_start",
            details={"window_start": window_start.isoformat(), "window_end": window_end.isoformat()}
        )


class FleetAvailabilityEngine:

    def __init__(self, fleet: FleetRepository):
        self.fleet = fleet

    async def available(
        self,
        window_start: datetime,
        window_end: datetime,
        category: Optional[VehicleCategory] = None
    ) -> List[Vehicle]:
        """
        Active vehicles with no reserving assignment touching [window_start, window_end].

        Ordered by category, then nickname (plate number when unnamed).

        Raises:
            ValidationError: window_end before window_start
        """
        validate_window(window_start, window_end)

        vehicles = await self.fleet.active_vehicles(category)
        busy = await self.fleet.busy_vehicle_ids(window_start, window_end)
        return [v for v in vehicles if v.id not in busy]

    async def drivers_available(self, window_start: datetime, window_end: datetime) -> List[Driver]:
        """Active drivers not on any reserving assignment (as driver or co-driver) in the window."""
        validate_window(window_start, window_end)

        drivers = await self.fleet.active_drivers()
        busy = await self.fleet.busy_driver_ids(window_start, window_end)
        return [d for d in drivers if d.id not in busy]

    async def is_vehicle_free(self, vehicle_id: int, window_start: datetime, window_end: datetime) -> bool:
        validate_window(window_start, window_end)
        return not await self.fleet.assignments_overlapping(vehicle_id, window_start, window_end)

    async def availability_by_category(
        self,
        window_start: datetime,
        window_end: datetime
    ) -> Dict[VehicleCategory, int]:
        """Count of free vehicles per category; every category is present."""
        counts: Dict[VehicleCategory, int] = OrderedDict((c, 0) for c in VehicleCategory)
        for vehicle in await self.available(window_start, window_end):
            counts[vehicle.category] += 1
        return counts
