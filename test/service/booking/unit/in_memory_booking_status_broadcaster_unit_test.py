"""
Unit tests for InMemoryBookingStatusBroadcasterImpl

Tests the in-process pub/sub that pushes persisted booking states
to status watchers.
"""

from collections.abc import Callable

from anyio import fail_after, move_on_after
from anyio.streams.memory import ClosedResourceError, MemoryObjectReceiveStream
import attrs
import pytest
import uuid_utils

from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.driven_adapter.event.in_memory_booking_status_broadcaster_impl import (
    InMemoryBookingStatusBroadcasterImpl,
)


@pytest.mark.unit
class TestInMemoryBookingStatusBroadcaster:
    @pytest.fixture
    def broadcaster(self) -> InMemoryBookingStatusBroadcasterImpl:
        return InMemoryBookingStatusBroadcasterImpl(buffer_size=3)

    @pytest.fixture
    def booking(self, booking_factory: Callable[..., Booking]) -> Booking:
        return booking_factory()

    @pytest.mark.asyncio
    async def test_subscribe_returns_stream(self, broadcaster, booking) -> None:
        stream = await broadcaster.subscribe(booking_id=booking.id)

        assert isinstance(stream, MemoryObjectReceiveStream)
        assert broadcaster.subscriber_count(booking.id) == 1

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_subscriber(self, broadcaster, booking) -> None:
        stream1 = await broadcaster.subscribe(booking_id=booking.id)
        stream2 = await broadcaster.subscribe(booking_id=booking.id)

        await broadcaster.broadcast(booking=booking)

        with fail_after(1.0):
            assert await stream1.receive() == booking
            assert await stream2.receive() == booking

    @pytest.mark.asyncio
    async def test_other_bookings_are_isolated(
        self, broadcaster, booking, booking_factory: Callable[..., Booking]
    ) -> None:
        stream = await broadcaster.subscribe(booking_id=booking.id)

        await broadcaster.broadcast(booking=booking_factory(id=uuid_utils.uuid7()))

        received = None
        with move_on_after(0.1):
            received = await stream.receive()
        assert received is None

    @pytest.mark.asyncio
    async def test_broadcast_without_subscribers_is_silent(self, broadcaster, booking) -> None:
        await broadcaster.broadcast(booking=booking)

    @pytest.mark.asyncio
    async def test_full_buffer_drops_newest_update(self, broadcaster, booking) -> None:
        stream = await broadcaster.subscribe(booking_id=booking.id)

        for version in range(4):
            await broadcaster.broadcast(booking=attrs.evolve(booking, version=version))

        received = []
        for _ in range(3):
            with fail_after(1.0):
                received.append((await stream.receive()).version)
        assert received == [0, 1, 2]

        leftover = None
        with move_on_after(0.1):
            leftover = await stream.receive()
        assert leftover is None

    @pytest.mark.asyncio
    async def test_unsubscribe_closes_stream_and_cleans_up(self, broadcaster, booking) -> None:
        stream1 = await broadcaster.subscribe(booking_id=booking.id)
        stream2 = await broadcaster.subscribe(booking_id=booking.id)

        await broadcaster.unsubscribe(booking_id=booking.id, stream=stream1)
        await broadcaster.broadcast(booking=booking)

        with pytest.raises(ClosedResourceError):
            await stream1.receive()
        with fail_after(1.0):
            assert await stream2.receive() == booking

        await broadcaster.unsubscribe(booking_id=booking.id, stream=stream2)
        assert booking.id not in broadcaster._subscribers

    @pytest.mark.asyncio
    async def test_unsubscribe_twice_is_safe(self, broadcaster, booking) -> None:
        stream = await broadcaster.subscribe(booking_id=booking.id)

        await broadcaster.unsubscribe(booking_id=booking.id, stream=stream)
        await broadcaster.unsubscribe(booking_id=booking.id, stream=stream)

        assert broadcaster.subscriber_count(booking.id) == 0
