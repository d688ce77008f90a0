from enum import StrEnum


class BookingStatus(StrEnum):
    PENDING_PAYMENT = 'pending_payment'
    PAYMENT_UPLOADED = 'payment_uploaded'
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'
    COMPLETED = 'completed'
    NO_SHOW = 'no_show'

    def can_transition_to(self, target: 'BookingStatus') -> bool:
        return target in ALLOWED_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        """No transition leaves this status"""
        return not ALLOWED_TRANSITIONS[self]

    @property
    def blocks_slot(self) -> bool:
        """Booking in this status still holds its court time slot"""
        return self in SLOT_BLOCKING_STATUSES


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset(
        {BookingStatus.PAYMENT_UPLOADED, BookingStatus.EXPIRED, BookingStatus.CANCELLED}
    ),
    BookingStatus.PAYMENT_UPLOADED: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.NO_SHOW}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

SLOT_BLOCKING_STATUSES = frozenset(
    {BookingStatus.PENDING_PAYMENT, BookingStatus.PAYMENT_UPLOADED, BookingStatus.CONFIRMED}
)

# Statuses whose price counts as earned revenue
REVENUE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})
