from datetime import datetime
from typing import Any

import attrs
from uuid_utils import UUID

from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus
from court_booking.service.booking.domain.enum.notification_type import NotificationType


_MESSAGES = {
    NotificationType.BOOKING_CONFIRMED: 'Your booking has been confirmed',
    NotificationType.BOOKING_REJECTED: 'Your payment was rejected: {reason}',
    NotificationType.BOOKING_CANCELLED: 'Your booking has been cancelled',
    NotificationType.BOOKING_EXPIRED: 'Your booking expired before a payment proof was uploaded',
}


@attrs.define(frozen=True)
class BookingNotification:
    notification_type: NotificationType
    booking_id: UUID
    status: BookingStatus
    message: str
    occurred_at: datetime
    data: dict[str, Any] = attrs.field(factory=dict)

    @classmethod
    def for_booking(
        cls, *, notification_type: NotificationType, booking: Booking, occurred_at: datetime
    ) -> 'BookingNotification':
        return cls(
            notification_type=notification_type,
            booking_id=booking.id,
            status=booking.status,
            message=_MESSAGES[notification_type].format(reason=booking.rejection_reason or ''),
            occurred_at=occurred_at,
            data={
                'court_id': booking.court_id,
                'venue_id': booking.venue_id,
                'start_time': booking.start_time.isoformat(),
                'end_time': booking.end_time.isoformat(),
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'notification_type': self.notification_type.value,
            'booking_id': str(self.booking_id),
            'status': self.status.value,
            'message': self.message,
            'occurred_at': self.occurred_at.isoformat(),
            'data': self.data,
        }
