"""
Unit tests for the clock adapters

VirtualClockImpl: deterministic ordering, cancellation, callbacks that schedule.
AnyioClockImpl: real short sleeps inside the clock's own task group.
"""

from datetime import datetime, timedelta, timezone

import anyio
import pytest

from court_booking.service.booking.driven_adapter.clock.anyio_clock_impl import AnyioClockImpl
from court_booking.service.booking.driven_adapter.clock.virtual_clock_impl import (
    VirtualClockImpl,
)


START = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestVirtualClock:
    @pytest.fixture
    def clock(self) -> VirtualClockImpl:
        return VirtualClockImpl(start=START)

    @pytest.mark.asyncio
    async def test_timers_fire_in_due_order(self, clock: VirtualClockImpl) -> None:
        fired: list[str] = []

        async def record(name: str) -> None:
            fired.append(f'{name}@{clock.now():%H:%M}')

        clock.after(timedelta(minutes=10), lambda: record('late'))
        clock.after(timedelta(minutes=5), lambda: record('early'))

        await clock.advance(timedelta(minutes=30))

        assert fired == ['early@08:05', 'late@08:10']
        assert clock.now() == START + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_timer_not_fired_before_due(self, clock: VirtualClockImpl) -> None:
        fired: list[bool] = []

        async def callback() -> None:
            fired.append(True)

        handle = clock.after(timedelta(minutes=5), callback)
        await clock.advance(timedelta(minutes=4))

        assert fired == []
        assert handle.is_active
        assert clock.pending_count == 1

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent_and_prevents_firing(self, clock: VirtualClockImpl) -> None:
        fired: list[bool] = []

        async def callback() -> None:
            fired.append(True)

        handle = clock.after(timedelta(minutes=5), callback)
        clock.cancel(handle)
        clock.cancel(handle)
        await clock.advance(timedelta(minutes=10))

        assert fired == []
        assert handle.cancelled
        assert not handle.fired
        assert clock.pending_count == 0

    @pytest.mark.asyncio
    async def test_cancel_after_fire_is_a_no_op(self, clock: VirtualClockImpl) -> None:
        async def callback() -> None:
            pass

        handle = clock.after(timedelta(seconds=1), callback)
        await clock.advance(timedelta(seconds=1))
        clock.cancel(handle)

        assert handle.fired
        assert not handle.cancelled

    @pytest.mark.asyncio
    async def test_timer_scheduled_by_callback_fires_in_same_advance(
        self, clock: VirtualClockImpl
    ) -> None:
        fired: list[datetime] = []

        async def second() -> None:
            fired.append(clock.now())

        async def first() -> None:
            fired.append(clock.now())
            clock.after(timedelta(minutes=1), second)

        clock.after(timedelta(minutes=1), first)
        await clock.advance(timedelta(minutes=5))

        assert fired == [START + timedelta(minutes=1), START + timedelta(minutes=2)]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_other_timers(
        self, clock: VirtualClockImpl
    ) -> None:
        fired: list[str] = []

        async def boom() -> None:
            raise RuntimeError('boom')

        async def ok() -> None:
            fired.append('ok')

        clock.after(timedelta(seconds=1), boom)
        clock.after(timedelta(seconds=2), ok)
        await clock.advance(timedelta(seconds=5))

        assert fired == ['ok']

    @pytest.mark.asyncio
    async def test_cannot_move_backwards(self, clock: VirtualClockImpl) -> None:
        with pytest.raises(ValueError):
            await clock.advance_to(START - timedelta(seconds=1))


@pytest.mark.unit
class TestAnyioClock:
    @pytest.mark.asyncio
    async def test_timer_fires_after_delay(self) -> None:
        fired = anyio.Event()

        async def callback() -> None:
            fired.set()

        async with AnyioClockImpl() as clock:
            handle = clock.after(timedelta(milliseconds=20), callback)
            with anyio.fail_after(2):
                await fired.wait()

        assert handle.fired
        assert clock.now().tzinfo is not None

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self) -> None:
        fired: list[bool] = []

        async def callback() -> None:
            fired.append(True)

        async with AnyioClockImpl() as clock:
            handle = clock.after(timedelta(milliseconds=50), callback)
            clock.cancel(handle)
            clock.cancel(handle)
            await anyio.sleep(0.1)
            assert clock.pending_count == 0

        assert fired == []
        assert handle.cancelled

    @pytest.mark.asyncio
    async def test_exit_cancels_pending_timers(self) -> None:
        fired: list[bool] = []

        async def callback() -> None:
            fired.append(True)

        with anyio.fail_after(2):
            async with AnyioClockImpl() as clock:
                clock.after(timedelta(hours=1), callback)

        assert fired == []

    @pytest.mark.asyncio
    async def test_exit_marks_unfired_handles_cancelled(self) -> None:
        """
        Given: A timer that already slept once inside the clock context
        When: The context exits before it is due
        Then: The callback never runs and the handle reads as cancelled
        """
        fired: list[bool] = []

        async def callback() -> None:
            fired.append(True)

        with anyio.fail_after(2):
            async with AnyioClockImpl() as clock:
                handle = clock.after(timedelta(minutes=15), callback)
                await anyio.sleep(0.01)

        assert fired == []
        assert handle.cancelled
        assert not handle.fired
        assert not handle.is_active
        assert clock.pending_count == 0

    @pytest.mark.asyncio
    async def test_scheduling_outside_context_raises(self) -> None:
        async def callback() -> None:
            pass

        with pytest.raises(RuntimeError):
            AnyioClockImpl().after(timedelta(seconds=1), callback)
