"""
In-memory Booking Status Broadcaster

Fans persisted booking states out to status watchers in the same process.
"""

from typing import Dict, List

from anyio import BrokenResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from uuid_utils import UUID

from court_booking.platform.config.core_setting import settings
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_booking_status_broadcaster import (
    IBookingStatusBroadcaster,
)
from court_booking.service.booking.domain.entity.booking_entity import Booking


class InMemoryBookingStatusBroadcasterImpl(IBookingStatusBroadcaster):
    """
    In-memory pub/sub for booking state changes

    - Each booking_id has a list of subscriber stream pairs
    - Buffer per subscriber is bounded; a full buffer drops the update
      (watchers recover the latest state by polling the store)
    - Empty subscriber lists are removed on unsubscribe
    """

    def __init__(self, *, buffer_size: int | None = None) -> None:
        self._buffer_size = buffer_size or settings.STATUS_WATCH_BUFFER_SIZE
        self._subscribers: Dict[
            UUID,
            List[tuple[MemoryObjectSendStream[Booking], MemoryObjectReceiveStream[Booking]]],
        ] = {}

    def subscriber_count(self, booking_id: UUID) -> int:
        return len(self._subscribers.get(booking_id, []))

    async def subscribe(self, *, booking_id: UUID) -> MemoryObjectReceiveStream[Booking]:
        send_stream, receive_stream = create_memory_object_stream[Booking](
            max_buffer_size=self._buffer_size
        )
        self._subscribers.setdefault(booking_id, []).append((send_stream, receive_stream))

        Logger.base.debug(
            f'📡 [BROADCASTER] Subscribed to booking {booking_id} '
            f'(total subscribers: {self.subscriber_count(booking_id)})'
        )
        return receive_stream

    async def broadcast(self, *, booking: Booking) -> None:
        subscribers = self._subscribers.get(booking.id)
        if not subscribers:
            return

        delivered = 0
        dropped = 0
        for send_stream, _ in subscribers:
            try:
                send_stream.send_nowait(booking)
                delivered += 1
            except WouldBlock:
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [BROADCASTER] Stream full for booking {booking.id}, '
                    f'dropping update (status={booking.status}, version={booking.version})'
                )
            except BrokenResourceError:
                # Receiver closed without unsubscribing
                dropped += 1

        Logger.base.debug(
            f'📡 [BROADCASTER] Broadcast booking {booking.id} v{booking.version}: '
            f'delivered={delivered}, dropped={dropped}'
        )

    async def unsubscribe(
        self, *, booking_id: UUID, stream: MemoryObjectReceiveStream[Booking]
    ) -> None:
        subscribers = self._subscribers.get(booking_id)
        if subscribers is None:
            return

        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                subscribers.pop(i)
                break

        if not subscribers:
            del self._subscribers[booking_id]
            Logger.base.debug(f'📡 [BROADCASTER] Cleaned up empty list for {booking_id}')
