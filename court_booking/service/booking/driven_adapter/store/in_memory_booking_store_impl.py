from datetime import datetime
from typing import Dict, Iterable, List, Optional

import anyio
from uuid_utils import UUID

from court_booking.platform.exception.exceptions import (
    NotFoundError,
    SlotConflictError,
    VersionConflictError,
)
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_booking_store import IBookingStore
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus


class InMemoryBookingStoreImpl(IBookingStore):
    """
    Process-local booking store

    Writes are serialized by one anyio.Lock so the overlap check in insert()
    and the version check in compare_and_swap() are atomic.
    """

    def __init__(self) -> None:
        self._bookings: Dict[UUID, Booking] = {}
        self._lock = anyio.Lock()

    @Logger.io
    async def get(self, *, booking_id: UUID) -> Booking:
        if (booking := self._bookings.get(booking_id)) is None:
            raise NotFoundError(f'Booking {booking_id} not found')
        return booking

    @Logger.io
    async def compare_and_swap(
        self, *, booking_id: UUID, expected_version: int, booking: Booking
    ) -> Booking:
        async with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise NotFoundError(f'Booking {booking_id} not found')
            if current.version != expected_version:
                raise VersionConflictError(
                    f'Booking {booking_id} is at version {current.version}, '
                    f'expected {expected_version}'
                )
            self._bookings[booking_id] = booking
            return booking

    @Logger.io
    async def insert(self, *, booking: Booking) -> Booking:
        async with self._lock:
            if booking.id in self._bookings:
                raise VersionConflictError(f'Booking {booking.id} already exists')
            for existing in self._bookings.values():
                if (
                    existing.court_id == booking.court_id
                    and existing.blocks_slot
                    and existing.overlaps(booking.start_time, booking.end_time)
                ):
                    raise SlotConflictError(
                        f'Court {booking.court_id} is already booked '
                        f'from {existing.start_time.isoformat()} to {existing.end_time.isoformat()}'
                    )
            self._bookings[booking.id] = booking
            return booking

    @Logger.io
    async def list_pending(self, *, before: Optional[datetime] = None) -> List[Booking]:
        return [
            booking
            for booking in self._bookings.values()
            if booking.status == BookingStatus.PENDING_PAYMENT
            and (before is None or (booking.expire_at is not None and booking.expire_at <= before))
        ]

    @Logger.io
    async def list_by_venues(self, *, venue_ids: Iterable[str]) -> List[Booking]:
        wanted = set(venue_ids)
        return [booking for booking in self._bookings.values() if booking.venue_id in wanted]
