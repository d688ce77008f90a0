"""
Booking Status Broadcaster Interface

In-process pub/sub that pushes every persisted booking state to the
status watchers subscribed to that booking.
"""

from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream
from uuid_utils import UUID

from court_booking.service.booking.domain.entity.booking_entity import Booking


class IBookingStatusBroadcaster(Protocol):
    async def subscribe(self, *, booking_id: UUID) -> MemoryObjectReceiveStream[Booking]:
        """
        Register a new subscriber stream for one booking

        Returns:
            Receive stream yielding each broadcast Booking state
        """
        ...

    async def broadcast(self, *, booking: Booking) -> None:
        """
        Push a persisted booking state to every subscriber of that booking

        Note:
            - Never blocks: a full subscriber buffer drops the update
            - Silently ignores bookings without subscribers
        """
        ...

    async def unsubscribe(
        self, *, booking_id: UUID, stream: MemoryObjectReceiveStream[Booking]
    ) -> None:
        """Remove a subscriber and close its streams; safe to call twice"""
        ...
