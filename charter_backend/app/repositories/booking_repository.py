"""
Booking persistence port.

Every query is scoped by the tenant the repository was built for; rows of
other tenants are indistinguishable from missing rows.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.exceptions import ResourceNotFoundError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.booking_charge import BookingCharge
from charter_backend.app.models.booking_enums import BookingStatus, ASSIGNABLE_BOOKING_STATUSES
from charter_backend.app.models.customer import Customer
from charter_backend.app.models.fleet_enums import AssignmentStatus
from charter_backend.app.models.payment import Payment
from charter_backend.app.models.tenant import Tenant
from charter_backend.app.models.trip import Trip
from charter_backend.app.models.trip_assignment import TripAssignment


class BookingRepository:
    """Tenant-scoped access to bookings, trips, charges, payments and customers."""

    def __init__(self, db: AsyncSession, ctx: TenantContext):
        self.db = db
        self.tenant_id = ctx.tenant_id

    # Generic write

    async def save(self, entity):
        """
        Stage an entity in the current transaction and flush it.

        The tenant id is always stamped from the context, never trusted
        from the caller.
        """
        entity.tenant_id = self.tenant_id
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity) -> None:
        await self.db.delete(entity)
        await self.db.flush()

    # Bookings

    async def find_booking(self, booking_id: int, for_update: bool = False) -> Booking:
        """
        Load a booking of this tenant.

        Args:
            booking_id: Booking to load
            for_update: Take a row lock for the rest of the transaction

        Raises:
            ResourceNotFoundError: Missing or owned by another tenant
        """
        query = select(Booking).where(
            Booking.id == booking_id,
            Booking.tenant_id == self.tenant_id
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise ResourceNotFoundError("Booking", booking_id)
        return booking

    async def save_booking(self, booking: Booking) -> Booking:
        return await self.save(booking)

    async def find_booking_by_code(self, code: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(Booking.code == code, Booking.tenant_id == self.tenant_id)
        )
        return result.scalar_one_or_none()

    async def next_booking_code(self, prefix: str, booked_at: datetime) -> str:
        """
        Generate `{prefix}/YYYY/MM/NNN`, numbered per tenant per month.

        Takes a row lock on the tenant first, so concurrent bookings of one
        tenant are numbered one after the other. SQLite has no row locks;
        there the unique constraint on the code catches a collision.
        """
        await self.db.execute(
            select(Tenant.id).where(Tenant.id == self.tenant_id).with_for_update()
        )

        month_start = booked_at.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)

        result = await self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.tenant_id == self.tenant_id,
                Booking.booked_at >= month_start,
                Booking.booked_at < next_month
            )
        )
        sequence = (result.scalar() or 0) + 1
        return f"{prefix}/{booked_at.year}/{booked_at.month:02d}/{sequence:03d}"

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        customer_id: Optional[int] = None
    ) -> List[Booking]:
        query = select(Booking).where(Booking.tenant_id == self.tenant_id)
        if status is not None:
            query = query.where(Booking.status == status)
        if customer_id is not None:
            query = query.where(Booking.customer_id == customer_id)
        result = await self.db.execute(query.order_by(Booking.booked_at, Booking.id))
        return list(result.scalars().all())

    async def bookings_needing_assignment(self) -> List[Booking]:
        """Assignable bookings with at least one trip lacking an active assignment."""
        has_active_assignment = select(TripAssignment.id).where(
            TripAssignment.trip_id == Trip.id,
            TripAssignment.tenant_id == self.tenant_id,
            TripAssignment.status != AssignmentStatus.CANCELLED
        ).exists()

        has_unassigned_trip = select(Trip.id).where(
            Trip.booking_id == Booking.id,
            Trip.tenant_id == self.tenant_id,
            ~has_active_assignment
        ).exists()

        result = await self.db.execute(
            select(Booking).where(
                Booking.tenant_id == self.tenant_id,
                Booking.status.in_(ASSIGNABLE_BOOKING_STATUSES),
                has_unassigned_trip
            ).order_by(Booking.booked_at, Booking.id)
        )
        return list(result.scalars().all())

    # Customers

    async def find_customer(self, customer_id: int) -> Customer:
        result = await self.db.execute(
            select(Customer).where(
                Customer.id == customer_id,
                Customer.tenant_id == self.tenant_id
            )
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            raise ResourceNotFoundError("Customer", customer_id)
        return customer

    # Trips

    async def find_trip(self, trip_id: int) -> Trip:
        result = await self.db.execute(
            select(Trip).where(Trip.id == trip_id, Trip.tenant_id == self.tenant_id)
        )
        trip = result.scalar_one_or_none()
        if trip is None:
            raise ResourceNotFoundError("Trip", trip_id)
        return trip

    async def trips_of(self, booking_id: int) -> List[Trip]:
        result = await self.db.execute(
            select(Trip).where(
                Trip.booking_id == booking_id,
                Trip.tenant_id == self.tenant_id
            ).order_by(Trip.start_time, Trip.id)
        )
        return list(result.scalars().all())

    async def count_trips(self, booking_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Trip.id)).where(
                Trip.booking_id == booking_id,
                Trip.tenant_id == self.tenant_id
            )
        )
        return result.scalar() or 0

    # Charges

    async def find_charge(self, charge_id: int) -> BookingCharge:
        result = await self.db.execute(
            select(BookingCharge).where(
                BookingCharge.id == charge_id,
                BookingCharge.tenant_id == self.tenant_id
            )
        )
        charge = result.scalar_one_or_none()
        if charge is None:
            raise ResourceNotFoundError("BookingCharge", charge_id)
        return charge

    async def charges_of(self, booking_id: int) -> List[BookingCharge]:
        result = await self.db.execute(
            select(BookingCharge).where(
                BookingCharge.booking_id == booking_id,
                BookingCharge.tenant_id == self.tenant_id
            ).order_by(BookingCharge.id)
        )
        return list(result.scalars().all())

    # Payments

    async def payments_of(self, booking_id: int) -> List[Payment]:
        result = await self.db.execute(
            select(Payment).where(
                Payment.booking_id == booking_id,
                Payment.tenant_id == self.tenant_id
            ).order_by(Payment.paid_at, Payment.id)
        )
        return list(result.scalars().all())

    async def payments_between(self, start: datetime, end: datetime) -> List[Payment]:
        result = await self.db.execute(
            select(Payment).where(
                Payment.tenant_id == self.tenant_id,
                Payment.paid_at >= start,
                Payment.paid_at <= end
            ).order_by(Payment.paid_at, Payment.id)
        )
        return list(result.scalars().all())

    async def total_payments_between(self, start: datetime, end: datetime) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.tenant_id == self.tenant_id,
                Payment.paid_at >= start,
                Payment.paid_at <= end
            )
        )
        return Decimal(str(result.scalar()))
