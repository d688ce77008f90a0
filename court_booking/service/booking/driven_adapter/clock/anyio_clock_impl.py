from datetime import datetime, timedelta, timezone
import itertools
from typing import Optional

import anyio
from anyio import CancelScope
from anyio.abc import TaskGroup

from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_clock import IClock, TimerCallback, TimerHandle


class AnyioClockImpl(IClock):
    """
    Wall clock whose timers are tasks in a task group owned by the clock.

    Usage:
        async with AnyioClockImpl() as clock:
            clock.after(timedelta(minutes=15), callback)

    Leaving the context cancels timers that have not fired yet and waits for
    callbacks that are already running.
    """

    def __init__(self) -> None:
        self._task_group: Optional[TaskGroup] = None
        self._sleep_scopes: dict[int, CancelScope] = {}
        self._timer_ids = itertools.count(1)

    async def __aenter__(self) -> 'AnyioClockImpl':
        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> Optional[bool]:
        assert self._task_group is not None
        for scope in self._sleep_scopes.values():
            scope.cancel()
        try:
            return await self._task_group.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            self._task_group = None
            self._sleep_scopes.clear()

    @property
    def pending_count(self) -> int:
        return len(self._sleep_scopes)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def after(self, delay: timedelta, callback: TimerCallback) -> TimerHandle:
        if self._task_group is None:
            raise RuntimeError('AnyioClockImpl must be entered with "async with" before scheduling')

        handle = TimerHandle(timer_id=next(self._timer_ids), due_at=self.now() + delay)
        scope = CancelScope()
        self._sleep_scopes[handle.timer_id] = scope
        self._task_group.start_soon(self._run_timer, handle, scope, delay, callback)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        if not handle.is_active:
            return
        handle.cancelled = True
        if scope := self._sleep_scopes.pop(handle.timer_id, None):
            scope.cancel()

    async def _run_timer(
        self, handle: TimerHandle, scope: CancelScope, delay: timedelta, callback: TimerCallback
    ) -> None:
        with scope:
            await anyio.sleep(max(delay.total_seconds(), 0))
        self._sleep_scopes.pop(handle.timer_id, None)
        if scope.cancel_called:
            # cancelled by cancel() or by leaving the clock context
            handle.cancelled = True
            return
        if not handle.is_active:
            return

        handle.fired = True
        try:
            await callback()
        except Exception as e:
            Logger.base.exception(f'⏰ [CLOCK] Timer {handle.timer_id} callback failed: {e}')
