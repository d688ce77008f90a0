from datetime import datetime, timedelta, timezone
import heapq
import itertools
from typing import Optional

from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_clock import IClock, TimerCallback, TimerHandle


class VirtualClockImpl(IClock):
    """
    Manually driven clock for tests and simulations.

    Time only moves through advance()/advance_to(); due timers fire in due
    order, including timers scheduled by callbacks while advancing.
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
        self._queue: list[tuple[datetime, int, TimerHandle, TimerCallback]] = []
        self._timer_ids = itertools.count(1)

    def now(self) -> datetime:
        return self._now

    def after(self, delay: timedelta, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(
            timer_id=next(self._timer_ids), due_at=self._now + max(delay, timedelta(0))
        )
        heapq.heappush(self._queue, (handle.due_at, handle.timer_id, handle, callback))
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        if handle.is_active:
            handle.cancelled = True

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if handle.is_active)

    async def advance(self, delta: timedelta) -> None:
        await self.advance_to(self._now + delta)

    async def advance_to(self, target: datetime) -> None:
        if target < self._now:
            raise ValueError('VirtualClockImpl cannot move backwards')

        while self._queue and self._queue[0][0] <= target:
            due_at, _, handle, callback = heapq.heappop(self._queue)
            if not handle.is_active:
                continue
            self._now = max(self._now, due_at)
            handle.fired = True
            try:
                await callback()
            except Exception as e:
                Logger.base.exception(f'⏰ [CLOCK] Timer {handle.timer_id} callback failed: {e}')

        self._now = target
