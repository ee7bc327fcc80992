"""
Finance Service.

Records customer payments and reports on booking finances. Recording a
payment and the status advancement it causes are one transaction: either
both are committed or neither is.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.exceptions import ValidationError
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.domain.billing.finance_reconciler import FinanceReconciler
from charter_backend.app.domain.billing.pricing_ledger import LedgerSummary, PricingLedger, ZERO
from charter_backend.app.domain.booking.lifecycle import BookingLifecycle, StatusChange
from charter_backend.app.domain.fleet.availability import validate_window
from charter_backend.app.models.booking_enums import BookingStatus
from charter_backend.app.models.payment import Payment
from charter_backend.app.repositories.booking_repository import BookingRepository
from charter_backend.app.schemas.events import PaymentReceived
from charter_backend.app.services.event_publisher import EventPublisher, NullEventPublisher, publish_safely

logger = logging.getLogger("charter.finance")

PAYMENT_REJECTED_STATUSES = frozenset({BookingStatus.DRAFT, BookingStatus.CANCELLED})


class PaymentOutcome:
    """A recorded payment together with what it did to its booking."""

    def __init__(self, payment: Payment, booking_status: BookingStatus, changes: List[StatusChange], summary: LedgerSummary):
        self.payment = payment
        self.booking_status = booking_status
        self.changes = changes
        self.summary = summary


class FinanceService:

    def __init__(self, db: AsyncSession, ctx: TenantContext, publisher: EventPublisher = None):
        self.db = db
        self.ctx = ctx
        self.publisher = publisher or NullEventPublisher()
        self.bookings = BookingRepository(db, ctx)
        self.ledger = PricingLedger(self.bookings)
        self.lifecycle = BookingLifecycle(self.ledger, self.bookings)
        self.reconciler = FinanceReconciler(self.ledger, self.lifecycle)

    async def record_payment(
        self,
        booking_id: int,
        amount: Decimal,
        method: str,
        proof_url: Optional[str] = None,
        note: Optional[str] = None,
        paid_at: Optional[datetime] = None
    ) -> PaymentOutcome:
        """
        Record a customer payment and reconcile the booking status.

        A quotation receiving its first payment becomes PAYMENT_RECEIVED; a
        booking whose outstanding balance drops to zero or below becomes
        PAID_IN_FULL. Events are published after commit.

        Raises:
            ValidationError: Non-positive amount, missing method, or a DRAFT/CANCELLED booking
            ResourceNotFoundError: Unknown booking
        """
        try:
            amount = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Payment amount must be a number", details={"amount": str(amount)})
        if amount <= ZERO:
            raise ValidationError("Payment amount must be greater than zero", details={"amount": str(amount)})
        if not method or not method.strip():
            raise ValidationError("Payment method must not be empty")

        try:
            booking = await self.bookings.find_booking(booking_id, for_update=True)
            if booking.status in PAYMENT_REJECTED_STATUSES:
                raise ValidationError(
                    f"Payments cannot be recorded for a {booking.status.value} booking",
                    details={"booking_id": booking_id, "status": booking.status.value}
                )

            payment = await self.bookings.save(Payment(
                booking_id=booking_id,
                amount=amount,
                method=method.strip(),
                proof_url=proof_url,
                note=note,
                verified_by_actor_id=self.ctx.actor_id,
                paid_at=paid_at or datetime.now(timezone.utc)
            ))
            changes = await self.reconciler.reconcile(booking)
            summary = await self.ledger.summary(booking_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.lifecycle.drain_events()
            raise

        logger.info(
            "Payment recorded",
            extra={
                "booking_id": booking_id,
                "payment_id": payment.id,
                "amount": str(amount),
                "outstanding": str(summary.outstanding),
                "status": booking.status.value
            }
        )

        events = [PaymentReceived(
            tenant_id=self.ctx.tenant_id,
            payment_id=payment.id,
            booking_id=booking_id,
            amount=amount,
            method=payment.method
        )]
        events.extend(self.lifecycle.drain_events())
        await publish_safely(self.publisher, events)

        return PaymentOutcome(payment, booking.status, changes, summary)

    async def reconcile(self, booking_id: int) -> List[StatusChange]:
        """Re-run the automatic status rules; a no-op when nothing changed."""
        try:
            booking = await self.bookings.find_booking(booking_id, for_update=True)
            changes = await self.reconciler.reconcile(booking)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.lifecycle.drain_events()
            raise
        await publish_safely(self.publisher, self.lifecycle.drain_events())
        return changes

    async def financial_summary(self, booking_id: int) -> LedgerSummary:
        await self.bookings.find_booking(booking_id)
        return await self.ledger.summary(booking_id)

    async def payments_of(self, booking_id: int) -> List[Payment]:
        await self.bookings.find_booking(booking_id)
        return await self.bookings.payments_of(booking_id)

    async def payments_between(self, start: datetime, end: datetime) -> List[Payment]:
        validate_window(start, end)
        return await self.bookings.payments_between(start, end)

    async def total_payments_between(self, start: datetime, end: datetime) -> Decimal:
        validate_window(start, end)
        return await self.bookings.total_payments_between(start, end)
