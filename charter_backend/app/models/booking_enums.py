"""
Booking-related enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    DRAFT = "DRAFT"  # Being prepared by sales, no quotation yet
    QUOTATION_SENT = "QUOTATION_SENT"  # Price offer sent to the customer
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"  # Down payment received, booking is committed
    PAID_IN_FULL = "PAID_IN_FULL"  # Outstanding balance settled
    COMPLETED = "COMPLETED"  # All trips done
    CANCELLED = "CANCELLED"  # Booking cancelled


class ChargeKind(str, enum.Enum):
    """Booking charge line-item kind."""
    PRIMARY = "PRIMARY"  # Main rental price
    ADDITIONAL = "ADDITIONAL"  # Tolls, parking, extra hours
    DISCOUNT = "DISCOUNT"  # Subtracted from the grand total


class CustomerKind(str, enum.Enum):
    """Customer kind enumeration."""
    CORPORATE = "CORPORATE"
    SCHOOL = "SCHOOL"
    GENERAL = "GENERAL"
    AGENT = "AGENT"


# Bookings advanced enough that their trip assignments reserve real vehicles.
COMMITTED_BOOKING_STATUSES = frozenset({
    BookingStatus.PAYMENT_RECEIVED,
    BookingStatus.PAID_IN_FULL,
    BookingStatus.COMPLETED,
})

# Bookings whose trips may receive new vehicle assignments.
ASSIGNABLE_BOOKING_STATUSES = frozenset({
    BookingStatus.PAYMENT_RECEIVED,
    BookingStatus.PAID_IN_FULL,
})
