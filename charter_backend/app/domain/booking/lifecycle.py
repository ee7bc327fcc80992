"""
Booking Lifecycle (state machine).

    DRAFT -> QUOTATION_SENT -> PAYMENT_RECEIVED -> PAID_IN_FULL -> COMPLETED
                  |                  |
                  +--> CANCELLED <---+

The adjacency table below is the single source of truth for both the
legality check and the "which targets are valid" query. COMPLETED and
CANCELLED have no outgoing edges, not even to themselves.
"""

import logging
from typing import Dict, FrozenSet, List

from pydantic import BaseModel

from charter_backend.app.core.exceptions import InvalidTransitionError, OutstandingBalanceNotZeroError
from charter_backend.app.domain.billing.pricing_ledger import PricingLedger, ZERO
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.booking_enums import BookingStatus
from charter_backend.app.repositories.booking_repository import BookingRepository
from charter_backend.app.schemas.events import BookingConfirmed, DomainEvent

logger = logging.getLogger("charter.booking")


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.DRAFT: frozenset({BookingStatus.QUOTATION_SENT}),
    BookingStatus.QUOTATION_SENT: frozenset({BookingStatus.PAYMENT_RECEIVED, BookingStatus.CANCELLED}),
    BookingStatus.PAYMENT_RECEIVED: frozenset({BookingStatus.PAID_IN_FULL, BookingStatus.CANCELLED}),
    BookingStatus.PAID_IN_FULL: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def allowed_targets(current: BookingStatus) -> FrozenSet[BookingStatus]:
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in allowed_targets(current)


def is_terminal(status: BookingStatus) -> bool:
    return not allowed_targets(status)


class StatusChange(BaseModel):
    """A committed-to-be edge of the booking state machine."""
    booking_id: int
    previous: BookingStatus
    current: BookingStatus


class BookingLifecycle:
    """
    The only writer of Booking.status.

    Status changes are staged on the booking in the caller's transaction;
    events they imply are collected and handed out through drain_events()
    so the caller can publish them after commit.
    """

    def __init__(self, ledger: PricingLedger, bookings: BookingRepository):
        self.ledger = ledger
        self.bookings = bookings
        self._events: List[DomainEvent] = []

    async def transition(self, booking: Booking, target: BookingStatus) -> StatusChange:
        """
        Move a booking along one edge of the state machine.

        Raises:
            InvalidTransitionError: target is not an outgoing edge of the current status
            OutstandingBalanceNotZeroError: PAID_IN_FULL requested while money is owed
        """
        current = booking.status
        if not can_transition(current, target):
            raise InvalidTransitionError("booking", current, target)

        if target == BookingStatus.PAID_IN_FULL:
            outstanding = await self.ledger.outstanding(booking.id)
            if outstanding > ZERO:
                raise OutstandingBalanceNotZeroError(booking.id, outstanding)

        booking._status = target
        await self.bookings.save_booking(booking)

        logger.info(
            "Booking status changed",
            extra={"booking_id": booking.id, "from": current.value, "to": target.value}
        )

        if target == BookingStatus.PAYMENT_RECEIVED:
            self._events.append(BookingConfirmed(
                tenant_id=booking.tenant_id,
                booking_id=booking.id,
                code=booking.code,
                customer_id=booking.customer_id,
                trip_count=await self.bookings.count_trips(booking.id)
            ))

        return StatusChange(booking_id=booking.id, previous=current, current=target)

    def drain_events(self) -> List[DomainEvent]:
        events, self._events = self._events, []
        return events
