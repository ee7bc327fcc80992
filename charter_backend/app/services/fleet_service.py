"""
Fleet Service.

Vehicle and driver registry of one tenant, plus availability queries.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.exceptions import ValidationError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.domain.fleet.availability import FleetAvailabilityEngine
from charter_backend.app.models.driver import Driver
from charter_backend.app.models.fleet_enums import OwnershipKind, VehicleCategory
from charter_backend.app.models.vehicle import Vehicle
from charter_backend.app.repositories.fleet_repository import FleetRepository

logger = logging.getLogger("charter.fleet")

VEHICLE_FIELDS = ("plate_number", "nickname", "category", "seat_capacity", "ownership", "vendor_name", "notes")


class FleetService:

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.fleet = FleetRepository(db, ctx)
        self.availability = FleetAvailabilityEngine(self.fleet)

    async def _ensure_plate_free(self, plate_number: str, vehicle_id: Optional[int] = None) -> None:
        existing = await self.fleet.find_vehicle_by_plate(plate_number)
        if existing is not None and existing.id != vehicle_id:
            raise ValidationError(
                f"Plate number {plate_number} is already registered",
                details={"plate_number": plate_number, "vehicle_id": existing.id}
            )

    # Vehicles

    async def add_vehicle(
        self,
        plate_number: str,
        category: VehicleCategory,
        seat_capacity: int,
        nickname: Optional[str] = None,
        ownership: OwnershipKind = OwnershipKind.OWNED,
        vendor_name: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Vehicle:
        """
        Register a vehicle.

        Raises:
            ValidationError: Empty or duplicate plate number, non-positive seat capacity
        """
        plate_number = (plate_number or "").strip().upper()
        if not plate_number:
            raise ValidationError("Plate number must not be empty")
        if seat_capacity is None or seat_capacity <= 0:
            raise ValidationError("Seat capacity must be greater than zero", details={"seat_capacity": seat_capacity})
        await self._ensure_plate_free(plate_number)

        vehicle = await self.fleet.save(Vehicle(
            plate_number=plate_number,
            nickname=nickname,
            category=category,
            seat_capacity=seat_capacity,
            ownership=ownership,
            vendor_name=vendor_name,
            notes=notes,
            is_active=True
        ))
        await self.db.commit()

        logger.info("Vehicle registered", extra={"tenant_id": self.ctx.tenant_id, "vehicle_id": vehicle.id, "plate": plate_number})
        return vehicle

    async def update_vehicle(self, vehicle_id: int, **changes) -> Vehicle:
        """Partial update; unknown fields are rejected."""
        unknown = set(changes) - set(VEHICLE_FIELDS)
        if unknown:
            raise ValidationError("Unknown vehicle fields", details={"fields": sorted(unknown)})

        vehicle = await self.fleet.find_vehicle(vehicle_id)
        if changes.get("plate_number") is not None:
            changes["plate_number"] = changes["plate_number"].strip().upper()
            if not changes["plate_number"]:
                raise ValidationError("Plate number must not be empty")
            await self._ensure_plate_free(changes["plate_number"], vehicle_id)
        if changes.get("seat_capacity") is not None and changes["seat_capacity"] <= 0:
            raise ValidationError("Seat capacity must be greater than zero", details={"seat_capacity": changes["seat_capacity"]})

        for field, value in changes.items():
            if value is not None:
                setattr(vehicle, field, value)
        await self.fleet.save(vehicle)
        await self.db.commit()
        return vehicle

    async def _set_vehicle_active(self, vehicle_id: int, active: bool) -> Vehicle:
        vehicle = await self.fleet.find_vehicle(vehicle_id)
        vehicle.is_active = active
        await self.fleet.save(vehicle)
        await self.db.commit()

        logger.info("Vehicle activation changed", extra={"vehicle_id": vehicle_id, "is_active": active})
        return vehicle

    async def deactivate_vehicle(self, vehicle_id: int) -> Vehicle:
        return await self._set_vehicle_active(vehicle_id, False)

    async def activate_vehicle(self, vehicle_id: int) -> Vehicle:
        return await self._set_vehicle_active(vehicle_id, True)

    async def get_vehicle(self, vehicle_id: int) -> Vehicle:
        return await self.fleet.find_vehicle(vehicle_id)

    async def active_vehicles(self, category: Optional[VehicleCategory] = None) -> List[Vehicle]:
        return await self.fleet.active_vehicles(category)

    # Drivers

    async def add_driver(
        self,
        full_name: str,
        nickname: Optional[str] = None,
        phone: Optional[str] = None,
        license_number: Optional[str] = None,
        license_expiry: Optional[date] = None
    ) -> Driver:
        if not full_name or not full_name.strip():
            raise ValidationError("Driver name must not be empty")

        driver = await self.fleet.save(Driver(
            full_name=full_name.strip(),
            nickname=nickname,
            phone=phone,
            license_number=license_number,
            license_expiry=license_expiry,
            is_active=True
        ))
        await self.db.commit()
        logger.info("Driver registered", extra={"tenant_id": self.ctx.tenant_id, "driver_id": driver.id})
        return driver

    async def deactivate_driver(self, driver_id: int) -> Driver:
        driver = await self.fleet.find_driver(driver_id)
        driver.is_active = False
        await self.fleet.save(driver)
        await self.db.commit()
        return driver

    async def active_drivers(self) -> List[Driver]:
        return await self.fleet.active_drivers()

    # Availability

    async def available_vehicles(
        self,
        window_start: datetime,
        window_end: datetime,
        category: Optional[VehicleCategory] = None
    ) -> List[Vehicle]:
        return await self.availability.available(window_start, window_end, category)

    async def available_drivers(self, window_start: datetime, window_end: datetime) -> List[Driver]:
        return await self.availability.drivers_available(window_start, window_end)

    async def availability_by_category(self, window_start: datetime, window_end: datetime) -> Dict[VehicleCategory, int]:
        return await self.availability.availability_by_category(window_start, window_end)
