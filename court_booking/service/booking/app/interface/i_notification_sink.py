from abc import ABC, abstractmethod

from court_booking.service.booking.domain.value_object.booking_notification import (
    BookingNotification,
)


class INotificationSink(ABC):
    """Best-effort delivery of booking notifications to a user"""

    @abstractmethod
    async def notify(self, *, user_id: str, notification: BookingNotification) -> None:
        pass
