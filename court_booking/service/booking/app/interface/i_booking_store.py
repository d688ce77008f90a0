"""
Booking Store Interface

Durable keyed store of Booking records. Every mutation after creation goes
through compare_and_swap, so concurrent writers can never silently overwrite
each other.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from uuid_utils import UUID

from court_booking.service.booking.domain.entity.booking_entity import Booking


class IBookingStore(ABC):
    @abstractmethod
    async def get(self, *, booking_id: UUID) -> Booking:
        """
        Load a booking

        Raises:
            NotFoundError: booking_id is unknown
        """
        pass

    @abstractmethod
    async def compare_and_swap(
        self, *, booking_id: UUID, expected_version: int, booking: Booking
    ) -> Booking:
        """
        Replace the stored booking only if its version still equals expected_version

        Args:
            booking_id: Booking to replace
            expected_version: Version the caller read before computing `booking`
            booking: New state, normally carrying expected_version + 1

        Returns:
            The stored booking

        Raises:
            VersionConflictError: Another writer got there first
            NotFoundError: booking_id is unknown
        """
        pass

    @abstractmethod
    async def insert(self, *, booking: Booking) -> Booking:
        """
        Insert a new booking, atomically checking that no slot-blocking booking
        on the same court overlaps its [start_time, end_time) interval

        Raises:
            SlotConflictError: The court is already taken for an overlapping interval
        """
        pass

    @abstractmethod
    async def list_pending(self, *, before: Optional[datetime] = None) -> List[Booking]:
        """
        List PENDING_PAYMENT bookings, optionally only those whose expire_at <= before

        Used on restart to expire overdue bookings and re-arm the remaining timers.
        """
        pass

    @abstractmethod
    async def list_by_venues(self, *, venue_ids: Iterable[str]) -> List[Booking]:
        """List every booking held at any of the given venues, in any status"""
        pass
