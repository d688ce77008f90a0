from abc import ABC, abstractmethod
from typing import List

from court_booking.service.booking.domain.entity.booking_entity import Booking


class IOwnerBookingQuery(ABC):
    @abstractmethod
    async def list_owner_bookings(self, *, owner_id: str) -> List[Booking]:
        """
        Every booking, in any status, held at a venue owned by `owner_id`

        Returns an empty list for an owner without venues.
        """
        pass
