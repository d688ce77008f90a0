from enum import StrEnum


class NotificationType(StrEnum):
    BOOKING_CONFIRMED = 'booking_confirmed'
    BOOKING_REJECTED = 'booking_rejected'
    BOOKING_CANCELLED = 'booking_cancelled'
    BOOKING_EXPIRED = 'booking_expired'
