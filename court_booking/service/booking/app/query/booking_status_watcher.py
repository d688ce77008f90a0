"""
Booking Status Watcher

Lets a payer (or any reader) follow a booking without hammering the store:
pushed states from the broadcaster arrive immediately, and a bounded poll of
the store recovers any push that was dropped.

    async with aclosing(watcher.subscribe(booking_id=booking_id)) as updates:
        async for booking in updates:
            ...

Terminal statuses do not end the stream; the caller closes it. Closing the
stream has no effect on the booking itself.
"""

from collections.abc import AsyncGenerator, Collection
from contextlib import aclosing
from typing import Optional

import anyio
from uuid_utils import UUID

from court_booking.platform.config.core_setting import settings
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_booking_status_broadcaster import (
    IBookingStatusBroadcaster,
)
from court_booking.service.booking.app.interface.i_booking_store import IBookingStore
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus


class BookingStatusWatcher:
    def __init__(
        self,
        *,
        booking_store: IBookingStore,
        status_broadcaster: IBookingStatusBroadcaster,
        poll_interval: Optional[float] = None,
    ) -> None:
        self.booking_store = booking_store
        self.status_broadcaster = status_broadcaster
        self.poll_interval = poll_interval or settings.STATUS_WATCH_POLL_INTERVAL_SECONDS

    async def subscribe(self, *, booking_id: UUID) -> AsyncGenerator[Booking, None]:
        """
        Yield the current booking, then every newer version as it is observed

        Raises:
            NotFoundError: booking_id is unknown
        """
        # Subscribe before the first read so no transition slips in between
        stream = await self.status_broadcaster.subscribe(booking_id=booking_id)
        push_open = True
        try:
            current = await self.booking_store.get(booking_id=booking_id)
            last_version = current.version
            yield current

            while True:
                observed: Optional[Booking] = None
                if push_open:
                    with anyio.move_on_after(self.poll_interval):
                        try:
                            observed = await stream.receive()
                        except (anyio.EndOfStream, anyio.ClosedResourceError):
                            push_open = False
                else:
                    await anyio.sleep(self.poll_interval)

                if observed is None:
                    observed = await self.booking_store.get(booking_id=booking_id)

                if observed.version > last_version:
                    last_version = observed.version
                    yield observed
        finally:
            with anyio.CancelScope(shield=True):
                await self.status_broadcaster.unsubscribe(booking_id=booking_id, stream=stream)
            Logger.base.debug(f'👀 [WATCHER] Stopped watching booking {booking_id}')

    @Logger.io
    async def wait_for_status(
        self,
        *,
        booking_id: UUID,
        statuses: Collection[BookingStatus],
        timeout: float,
    ) -> Booking:
        """
        Block until the booking reaches one of `statuses`

        Raises:
            TimeoutError: not reached within `timeout` seconds
        """
        with anyio.fail_after(timeout):
            async with aclosing(self.subscribe(booking_id=booking_id)) as updates:
                async for booking in updates:
                    if booking.status in statuses:
                        return booking
        raise AssertionError('status stream ended unexpectedly')
