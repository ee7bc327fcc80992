"""
Finance Reconciler.

Re-derives a booking's payment status from its ledger after every payment
(or charge change on a booking that already received money). Rules, in
order, skipped entirely for COMPLETED and CANCELLED bookings:

1. outstanding <= 0 and status != PAID_IN_FULL  -> PAID_IN_FULL
2. payments > 0 and status == QUOTATION_SENT     -> PAYMENT_RECEIVED
3. otherwise no change

Every move goes through BookingLifecycle one legal edge at a time. A
quotation settled by a single payment therefore passes through
PAYMENT_RECEIVED on its way to PAID_IN_FULL. Running reconcile() again
without new payments changes nothing.
"""

import logging
from typing import List

from charter_backend.app.domain.billing.pricing_ledger import PricingLedger, ZERO
from charter_backend.app.domain.booking.lifecycle import BookingLifecycle, StatusChange, can_transition
from charter_backend.app.models.booking import Booking
from charter_backend.app.models.booking_enums import BookingStatus

logger = logging.getLogger("charter.finance")

SKIPPED_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})


class FinanceReconciler:

    def __init__(self, ledger: PricingLedger, lifecycle: BookingLifecycle):
        self.ledger = ledger
        self.lifecycle = lifecycle

    async def reconcile(self, booking: Booking) -> List[StatusChange]:
        """
        Apply the automatic status rules to one booking.

        Changes are staged in the caller's transaction; the caller commits
        them together with the payment that triggered reconciliation.

        Returns:
            The status changes applied, possibly empty
        """
        if booking.status in SKIPPED_STATUSES:
            logger.info("Skipping reconciliation", extra={"booking_id": booking.id, "status": booking.status.value})
            return []

        summary = await self.ledger.summary(booking.id)
        changes: List[StatusChange] = []

        if summary.outstanding <= ZERO and booking.status != BookingStatus.PAID_IN_FULL:
            if booking.status == BookingStatus.QUOTATION_SENT and summary.total_payments > ZERO:
                changes.append(await self.lifecycle.transition(booking, BookingStatus.PAYMENT_RECEIVED))
            if can_transition(booking.status, BookingStatus.PAID_IN_FULL):
                changes.append(await self.lifecycle.transition(booking, BookingStatus.PAID_IN_FULL))

        elif summary.total_payments > ZERO and booking.status == BookingStatus.QUOTATION_SENT:
            if can_transition(booking.status, BookingStatus.PAYMENT_RECEIVED):
                changes.append(await self.lifecycle.transition(booking, BookingStatus.PAYMENT_RECEIVED))

        if changes:
            logger.info(
                "Booking status advanced from payments",
                extra={
                    "booking_id": booking.id,
                    "outstanding": str(summary.outstanding),
                    "status": booking.status.value
                }
            )
        return changes
