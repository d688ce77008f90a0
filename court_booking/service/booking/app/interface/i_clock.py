"""
Clock Interface

Source of the current time plus one-shot timers. The lifecycle engine never
reads the wall clock directly, so tests can drive time with a virtual clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Awaitable, Callable

import attrs


TimerCallback = Callable[[], Awaitable[None]]


@attrs.define
class TimerHandle:
    timer_id: int
    due_at: datetime
    cancelled: bool = False
    fired: bool = False

    @property
    def is_active(self) -> bool:
        return not (self.cancelled or self.fired)


class IClock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware datetime"""
        pass

    @abstractmethod
    def after(self, delay: timedelta, callback: TimerCallback) -> TimerHandle:
        """
        Schedule `callback` to run once after `delay`

        A non-positive delay fires as soon as possible.
        """
        pass

    @abstractmethod
    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a timer; idempotent, and a no-op once the timer has fired"""
        pass
