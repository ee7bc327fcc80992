"""
Booking Service.

Customer and booking management for one tenant: drafting bookings with
their trips, maintaining manual charge line-items and moving bookings
through the lifecycle. Each public method is one unit of work and commits
it; domain events are published only after the commit succeeded.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.config import settings
from charter_backend.app.core.exceptions import BookingCodeConflictError, ValidationError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.domain.billing.finance_reconciler import FinanceReconciler
from charter_backend.app.domain.billing.pricing_ledger import PricingLedger
from charter_backend.app.domain.booking.lifecycle import BookingLifecycle, StatusChange, allowed_targets
from charter_backend.app.domain.fleet.availability import require_same_clock
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.booking_charge import BookingCharge
from charter_backend.app.models.booking_enums import BookingStatus, ChargeKind, CustomerKind
from charter_backend.app.models.customer import Customer
from charter_backend.app.models.fleet_enums import ASSIGNMENT_TRANSITIONS, AssignmentStatus
from charter_backend.app.models.trip import Trip
from charter_backend.app.repositories.booking_repository import BookingRepository
from charter_backend.app.repositories.fleet_repository import FleetRepository
from charter_backend.app.schemas.booking import TripCreate
from charter_backend.app.services.event_publisher import EventPublisher, NullEventPublisher, publish_safely

logger = logging.getLogger("charter.booking")

BOOKING_CODE_ATTEMPTS = 3

TRIP_EDITABLE_STATUSES = frozenset({BookingStatus.DRAFT, BookingStatus.QUOTATION_SENT})
CHARGE_EDITABLE_STATUSES = frozenset({
    BookingStatus.DRAFT,
    BookingStatus.QUOTATION_SENT,
    BookingStatus.PAYMENT_RECEIVED,
})


def _validate_trip(trip: TripCreate) -> None:
    require_same_clock(trip.start_time, trip.end_time, ("start_time", "end_time"))
    if trip.end_time <= trip.start_time:
        raise ValidationError(
            "Trip end_time must be after start_time",
            details={"start_time": trip.start_time.isoformat(), "end_time": trip.end_time.isoformat()}
        )
    if not trip.pickup_location.strip() or not trip.destination.strip():
        raise ValidationError("Trip pickup_location and destination are required")


def _validate_charge(description: str, quantity: int, unit_price: Decimal) -> None:
    if not description or not description.strip():
        raise ValidationError("Charge description must not be empty")
    if quantity is None or quantity <= 0:
        raise ValidationError("Charge quantity must be greater than zero", details={"quantity": quantity})
    if unit_price is None or Decimal(unit_price) < 0:
        raise ValidationError("Charge unit_price must not be negative", details={"unit_price": str(unit_price)})


class BookingService:

    def __init__(self, db: AsyncSession, ctx: TenantContext, publisher: EventPublisher = None):
        self.db = db
        self.ctx = ctx
        self.publisher = publisher or NullEventPublisher()
        self.bookings = BookingRepository(db, ctx)
        self.fleet = FleetRepository(db, ctx)
        self.ledger = PricingLedger(self.bookings)
        self.lifecycle = BookingLifecycle(self.ledger, self.bookings)
        self.reconciler = FinanceReconciler(self.ledger, self.lifecycle)

    async def _commit(self) -> None:
        """Commit the unit of work, then publish whatever it emitted."""
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.lifecycle.drain_events()
            raise
        await publish_safely(self.publisher, self.lifecycle.drain_events())

    async def _rollback(self) -> None:
        await self.db.rollback()
        self.lifecycle.drain_events()

    # Customers

    async def create_customer(
        self,
        name: str,
        phone: Optional[str] = None,
        kind: CustomerKind = CustomerKind.GENERAL,
        email: Optional[str] = None
    ) -> Customer:
        if not name or not name.strip():
            raise ValidationError("Customer name must not be empty")

        customer = await self.bookings.save(Customer(name=name.strip(), phone=phone, kind=kind, email=email))
        await self._commit()
        logger.info("Customer created", extra={"tenant_id": self.ctx.tenant_id, "customer_id": customer.id})
        return customer

    async def get_customer(self, customer_id: int) -> Customer:
        return await self.bookings.find_customer(customer_id)

    # Bookings

    async def create_booking(
        self,
        customer_id: int,
        trips: List[TripCreate],
        notes: Optional[str] = None,
        booked_at: Optional[datetime] = None
    ) -> Booking:
        """
        Draft a new booking with its trips.

        The booking starts in DRAFT with a code of the form
        BOOK/YYYY/MM/NNN, numbered per tenant per month. When a concurrent
        request took the same number first, the booking is renumbered and
        inserted again.

        Raises:
            ValidationError: No trips, or a trip whose end is not after its start
            ResourceNotFoundError: Unknown customer
            BookingCodeConflictError: No free number after BOOKING_CODE_ATTEMPTS tries
        """
        if not trips:
            raise ValidationError("A booking needs at least one trip")
        for trip in trips:
            _validate_trip(trip)

        await self.bookings.find_customer(customer_id)

        booked_at = booked_at or datetime.now(timezone.utc)
        for attempt in range(1, BOOKING_CODE_ATTEMPTS + 1):
            try:
                booking = await self._insert_booking(customer_id, trips, notes, booked_at)
                break
            except IntegrityError:
                await self._rollback()
                if attempt == BOOKING_CODE_ATTEMPTS:
                    logger.error(
                        "Booking code still taken, giving up",
                        extra={"tenant_id": self.ctx.tenant_id, "attempts": attempt}
                    )
                    raise BookingCodeConflictError(self.ctx.tenant_id, attempt)
                logger.warning("Booking code taken, renumbering", extra={"tenant_id": self.ctx.tenant_id, "attempt": attempt})
            except Exception:
                await self._rollback()
                raise

        logger.info(
            "Booking created",
            extra={"tenant_id": self.ctx.tenant_id, "booking_id": booking.id, "code": booking.code, "trips": len(trips)}
        )
        return booking

    async def _insert_booking(
        self,
        customer_id: int,
        trips: List[TripCreate],
        notes: Optional[str],
        booked_at: datetime
    ) -> Booking:
        code = await self.bookings.next_booking_code(settings.booking_code_prefix, booked_at)
        booking = await self.bookings.save(Booking(
            customer_id=customer_id,
            sales_actor_id=self.ctx.actor_id,
            code=code,
            notes=notes,
            booked_at=booked_at
        ))
        for trip in trips:
            await self.bookings.save(Trip(booking_id=booking.id, **trip.model_dump()))
        await self._commit()
        return booking

    async def add_trip(self, booking_id: int, trip: TripCreate) -> Trip:
        """Add a leg while the booking is still being quoted."""
        _validate_trip(trip)
        booking = await self.bookings.find_booking(booking_id)
        if booking.status not in TRIP_EDITABLE_STATUSES:
            raise ValidationError(
                f"Trips cannot be added to a {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value}
            )

        created = await self.bookings.save(Trip(booking_id=booking_id, **trip.model_dump()))
        await self._commit()
        return created

    async def get_booking(self, booking_id: int) -> Booking:
        return await self.bookings.find_booking(booking_id)

    async def get_booking_by_code(self, code: str) -> Optional[Booking]:
        return await self.bookings.find_booking_by_code(code)

    async def trips_of(self, booking_id: int) -> List[Trip]:
        await self.bookings.find_booking(booking_id)
        return await self.bookings.trips_of(booking_id)

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        customer_id: Optional[int] = None
    ) -> List[Booking]:
        """Bookings of this tenant, optionally only one status and/or one customer's."""
        if customer_id is not None:
            await self.bookings.find_customer(customer_id)
        return await self.bookings.list_bookings(status, customer_id)

    async def bookings_needing_assignment(self) -> List[Booking]:
        return await self.bookings.bookings_needing_assignment()

    async def unpaid_bookings(self) -> List[Booking]:
        """Confirmed bookings that still owe money."""
        return await self.bookings.list_bookings(BookingStatus.PAYMENT_RECEIVED)

    # Charges

    async def _editable_booking(self, booking_id: int) -> Booking:
        booking = await self.bookings.find_booking(booking_id, for_update=True)
        if booking.status not in CHARGE_EDITABLE_STATUSES:
            raise ValidationError(
                f"Charges of a {booking.status.value} booking cannot be changed",
                details={"booking_id": booking_id, "status": booking.status.value}
            )
        return booking

    async def _after_charge_change(self, booking: Booking) -> None:
        # A confirmed booking may become fully paid once its total drops.
        if booking.status == BookingStatus.PAYMENT_RECEIVED:
            await self.reconciler.reconcile(booking)

    async def charges_of(self, booking_id: int) -> List[BookingCharge]:
        await self.bookings.find_booking(booking_id)
        return await self.bookings.charges_of(booking_id)

    async def add_charge(
        self,
        booking_id: int,
        description: str,
        unit_price: Decimal,
        quantity: int = 1,
        kind: ChargeKind = ChargeKind.PRIMARY
    ) -> BookingCharge:
        _validate_charge(description, quantity, unit_price)
        try:
            booking = await self._editable_booking(booking_id)
            charge = BookingCharge(
                booking_id=booking_id,
                description=description.strip(),
                kind=kind,
                quantity=quantity,
                unit_price=Decimal(unit_price)
            )
            charge.recompute_total()
            await self.bookings.save(charge)
            await self._after_charge_change(booking)
            await self._commit()
        except Exception:
            await self._rollback()
            raise

        logger.info(
            "Charge added",
            extra={"booking_id": booking_id, "charge_id": charge.id, "kind": kind.value, "total": str(charge.total)}
        )
        return charge

    async def update_charge(
        self,
        charge_id: int,
        description: Optional[str] = None,
        unit_price: Optional[Decimal] = None,
        quantity: Optional[int] = None,
        kind: Optional[ChargeKind] = None
    ) -> BookingCharge:
        charge = await self.bookings.find_charge(charge_id)
        new_description = description if description is not None else charge.description
        new_quantity = quantity if quantity is not None else charge.quantity
        new_price = Decimal(unit_price) if unit_price is not None else charge.unit_price
        _validate_charge(new_description, new_quantity, new_price)

        try:
            booking = await self._editable_booking(charge.booking_id)
            charge.description = new_description.strip()
            charge.quantity = new_quantity
            charge.unit_price = new_price
            if kind is not None:
                charge.kind = kind
            charge.recompute_total()
            await self.bookings.save(charge)
            await self._after_charge_change(booking)
            await self._commit()
        except Exception:
            await self._rollback()
            raise
        return charge

    async def remove_charge(self, charge_id: int) -> None:
        charge = await self.bookings.find_charge(charge_id)
        try:
            booking = await self._editable_booking(charge.booking_id)
            await self.bookings.delete(charge)
            await self._after_charge_change(booking)
            await self._commit()
        except Exception:
            await self._rollback()
            raise
        logger.info("Charge removed", extra={"booking_id": booking.id, "charge_id": charge_id})

    # Lifecycle

    async def allowed_targets(self, booking_id: int) -> List[BookingStatus]:
        booking = await self.bookings.find_booking(booking_id)
        return sorted(allowed_targets(booking.status), key=lambda s: list(BookingStatus).index(s))

    async def transition(self, booking_id: int, target: BookingStatus) -> StatusChange:
        """
        Manually move a booking along one edge of the state machine.

        Cancelling also cancels the booking's scheduled and running
        assignments in the same transaction, releasing the vehicles.
        Completed assignments are kept as they are.

        Raises:
            InvalidTransitionError: Not an edge of the state machine
            OutstandingBalanceNotZeroError: PAID_IN_FULL while money is owed
        """
        try:
            booking = await self.bookings.find_booking(booking_id, for_update=True)
            change = await self.lifecycle.transition(booking, target)
            if target == BookingStatus.CANCELLED:
                await self._cancel_assignments(booking)
            await self._commit()
        except Exception:
            await self._rollback()
            raise
        return change

    async def _cancel_assignments(self, booking: Booking) -> None:
        # COMPLETED assignments stay as the record of trips actually driven
        assignments = [
            a for a in await self.fleet.active_assignments_of_booking(booking.id)
            if AssignmentStatus.CANCELLED in ASSIGNMENT_TRANSITIONS[a.status]
        ]
        for assignment in assignments:
            assignment.status = AssignmentStatus.CANCELLED
            await self.fleet.save(assignment)
        if assignments:
            logger.info(
                "Assignments released by booking cancellation",
                extra={"booking_id": booking.id, "assignment_ids": [a.id for a in assignments]}
            )

    async def send_quotation(self, booking_id: int) -> StatusChange:
        return await self.transition(booking_id, BookingStatus.QUOTATION_SENT)

    async def cancel_booking(self, booking_id: int) -> StatusChange:
        return await self.transition(booking_id, BookingStatus.CANCELLED)

    async def complete_booking(self, booking_id: int) -> StatusChange:
        return await self.transition(booking_id, BookingStatus.COMPLETED)
