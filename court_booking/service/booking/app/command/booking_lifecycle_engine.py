"""
Booking Lifecycle Engine

Drives a court booking from creation through payment, owner review and
terminal resolution.

Every status change is one read-validate-write cycle against the store:
    1. get() the current booking
    2. ask the entity for the next state (raises on an illegal transition)
    3. compare_and_swap() keyed by the version read in step 1
A version conflict restarts the cycle, at most max_cas_retries more times.

Each created booking arms exactly one expiry timer. Upload and cancel cancel
it, the firing itself discharges it, and a late firing that finds the booking
no longer pending does nothing.
"""

from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

import anyio
from anyio.abc import TaskGroup
import uuid_utils
from uuid_utils import UUID

from court_booking.platform.config.core_setting import settings
from court_booking.platform.exception.exceptions import ConflictError, VersionConflictError
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.dto.timer_recovery_report import TimerRecoveryReport
from court_booking.service.booking.app.interface.i_booking_status_broadcaster import (
    IBookingStatusBroadcaster,
)
from court_booking.service.booking.app.interface.i_booking_store import IBookingStore
from court_booking.service.booking.app.interface.i_clock import IClock, TimerHandle
from court_booking.service.booking.app.interface.i_notification_sink import INotificationSink
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus
from court_booking.service.booking.domain.enum.notification_type import NotificationType
from court_booking.service.booking.domain.value_object.booking_notification import (
    BookingNotification,
)


# Computes the next state from (current, now); None means "nothing to do"
Transition = Callable[[Booking, datetime], Optional[Booking]]


class BookingLifecycleEngine:
    def __init__(
        self,
        *,
        booking_store: IBookingStore,
        clock: IClock,
        notification_sink: INotificationSink,
        status_broadcaster: IBookingStatusBroadcaster,
        payment_window: Optional[timedelta] = None,
        max_cas_retries: Optional[int] = None,
        notification_timeout: Optional[float] = None,
        task_group: Optional[TaskGroup] = None,
    ) -> None:
        self.booking_store = booking_store
        self.clock = clock
        self.notification_sink = notification_sink
        self.status_broadcaster = status_broadcaster
        self.payment_window = (
            timedelta(seconds=settings.BOOKING_PAYMENT_WINDOW_SECONDS)
            if payment_window is None
            else payment_window
        )
        self.max_cas_retries = (
            settings.BOOKING_CAS_MAX_RETRIES if max_cas_retries is None else max_cas_retries
        )
        self.notification_timeout = (
            settings.NOTIFICATION_TIMEOUT_SECONDS
            if notification_timeout is None
            else notification_timeout
        )
        # Background task group for notification delivery (None = deliver inline)
        self.task_group = task_group
        self._expiry_timers: dict[UUID, TimerHandle] = {}

    @property
    def armed_timer_count(self) -> int:
        return len(self._expiry_timers)

    def has_armed_timer(self, booking_id: UUID) -> bool:
        return booking_id in self._expiry_timers

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @Logger.io
    async def create_booking(
        self,
        *,
        court_id: str,
        venue_id: str,
        payer_id: str,
        start_time: datetime,
        end_time: datetime,
        price: int,
        payment_window: Optional[timedelta] = None,
    ) -> Booking:
        """
        Create a PENDING_PAYMENT booking and arm its expiry timer

        Raises:
            InvalidIntervalError: end_time <= start_time
            InvalidArgumentError: negative price, blank ids or naive datetimes
            SlotConflictError: an overlapping slot-blocking booking exists on the court
        """
        booking = Booking.create(
            id=uuid_utils.uuid7(),
            court_id=court_id,
            venue_id=venue_id,
            payer_id=payer_id,
            start_time=start_time,
            end_time=end_time,
            total_price=price,
            now=self.clock.now(),
            payment_window=self.payment_window if payment_window is None else payment_window,
        )
        stored = await self.booking_store.insert(booking=booking)
        self._arm_expiry_timer(stored)
        await self.status_broadcaster.broadcast(booking=stored)

        Logger.base.info(
            f'📝 [BOOKING] Created {stored.id} on court {court_id}, '
            f'payment due {stored.expire_at.isoformat() if stored.expire_at else "-"}'
        )
        return stored

    @Logger.io
    async def upload_payment_proof(self, *, booking_id: UUID, proof_url: str) -> Booking:
        """
        PENDING_PAYMENT -> PAYMENT_UPLOADED

        Raises:
            InvalidTransitionError: booking is no longer pending payment
            WindowExpiredError: deadline passed before the expiry timer ran
        """
        booking, _ = await self._apply_transition(
            booking_id,
            lambda current, now: current.upload_payment_proof(proof_url=proof_url, now=now),
        )
        self._discharge_expiry_timer(booking_id)
        Logger.base.info(f'🧾 [BOOKING] Payment proof uploaded for {booking_id}')
        return booking

    @Logger.io
    async def accept_booking(self, *, booking_id: UUID, actor_id: str) -> Booking:
        booking, _ = await self._apply_transition(
            booking_id, lambda current, now: current.accept(actor_id=actor_id, now=now)
        )
        Logger.base.info(f'✅ [BOOKING] {booking_id} confirmed by {actor_id}')
        await self._notify_payer(booking, NotificationType.BOOKING_CONFIRMED)
        return booking

    @Logger.io
    async def reject_booking(self, *, booking_id: UUID, actor_id: str, reason: str) -> Booking:
        booking, _ = await self._apply_transition(
            booking_id,
            lambda current, now: current.reject(actor_id=actor_id, reason=reason, now=now),
        )
        Logger.base.info(f'❌ [BOOKING] {booking_id} rejected by {actor_id}')
        await self._notify_payer(booking, NotificationType.BOOKING_REJECTED)
        return booking

    @Logger.io
    async def cancel_booking(self, *, booking_id: UUID, actor_id: str) -> Booking:
        """Cancel from PENDING_PAYMENT or PAYMENT_UPLOADED; the payer is told unless they cancelled"""
        booking, _ = await self._apply_transition(
            booking_id, lambda current, now: current.cancel(actor_id=actor_id, now=now)
        )
        self._discharge_expiry_timer(booking_id)
        Logger.base.info(f'🚫 [BOOKING] {booking_id} cancelled by {actor_id}')
        if actor_id != booking.payer_id:
            await self._notify_payer(booking, NotificationType.BOOKING_CANCELLED)
        return booking

    @Logger.io
    async def mark_completed(self, *, booking_id: UUID) -> Booking:
        booking, _ = await self._apply_transition(
            booking_id, lambda current, now: current.mark_completed(now=now)
        )
        return booking

    @Logger.io
    async def mark_no_show(self, *, booking_id: UUID) -> Booking:
        booking, _ = await self._apply_transition(
            booking_id, lambda current, now: current.mark_no_show(now=now)
        )
        return booking

    @Logger.io
    async def get_booking(self, *, booking_id: UUID) -> Booking:
        return await self.booking_store.get(booking_id=booking_id)

    @Logger.io
    async def recover_pending_timers(self) -> TimerRecoveryReport:
        """
        Restore timer obligations after a restart

        Bookings already past their deadline are expired immediately; every
        other PENDING_PAYMENT booking gets its expiry timer armed again.
        """
        now = self.clock.now()
        overdue = await self.booking_store.list_pending(before=now)
        for booking in overdue:
            self._discharge_expiry_timer(booking.id)
            await self._expire_payment_window(booking.id)

        overdue_ids = {booking.id for booking in overdue}
        rearmed = 0
        for booking in await self.booking_store.list_pending():
            if booking.id in overdue_ids or self.has_armed_timer(booking.id):
                continue
            self._arm_expiry_timer(booking)
            rearmed += 1

        Logger.base.info(f'♻️ [BOOKING] Recovery: expired={len(overdue)}, rearmed={rearmed}')
        return TimerRecoveryReport(expired=len(overdue), rearmed=rearmed)

    # ------------------------------------------------------------------
    # Timer callback
    # ------------------------------------------------------------------

    async def _expire_payment_window(self, booking_id: UUID) -> None:
        """Timer callback: never raises, a booking that already moved on is left alone"""
        self._expiry_timers.pop(booking_id, None)

        def expire_if_pending(current: Booking, now: datetime) -> Optional[Booking]:
            if current.status != BookingStatus.PENDING_PAYMENT:
                return None
            if current.expire_at is not None and now < current.expire_at:
                return None
            return current.expire(now=now)

        try:
            booking, changed = await self._apply_transition(booking_id, expire_if_pending)
            if not changed:
                if booking.is_payment_window_open(self.clock.now()):
                    # fired ahead of the deadline, wait for the rest of the window
                    self._arm_expiry_timer(booking)
                    return
                Logger.base.debug(
                    f'⏰ [BOOKING] {booking_id} already {booking.status}, expiry skipped'
                )
                return

            Logger.base.info(f'⌛ [BOOKING] {booking_id} expired without payment proof')
            await self._notify_payer(booking, NotificationType.BOOKING_EXPIRED)
        except Exception as e:
            Logger.base.exception(f'⏰ [BOOKING] Expiry of {booking_id} failed: {e}')

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _apply_transition(
        self, booking_id: UUID, transition: Transition
    ) -> tuple[Booking, bool]:
        """
        Returns:
            (stored booking, whether a new version was written)

        Raises:
            ConflictError: version conflicts outlasted max_cas_retries
        """
        for attempt in range(self.max_cas_retries + 1):
            current = await self.booking_store.get(booking_id=booking_id)
            updated = transition(current, self.clock.now())
            if updated is None:
                return current, False
            try:
                stored = await self.booking_store.compare_and_swap(
                    booking_id=booking_id,
                    expected_version=current.version,
                    booking=updated,
                )
            except VersionConflictError:
                Logger.base.warning(
                    f'🔁 [BOOKING] Version conflict on {booking_id} '
                    f'(attempt {attempt + 1}/{self.max_cas_retries + 1})'
                )
                await anyio.sleep(0)
                continue

            await self.status_broadcaster.broadcast(booking=stored)
            return stored, True

        raise ConflictError(
            f'Booking {booking_id} kept changing concurrently, '
            f'gave up after {self.max_cas_retries + 1} attempts'
        )

    def _arm_expiry_timer(self, booking: Booking) -> None:
        assert booking.expire_at is not None, 'Only pending bookings carry a deadline'
        if previous := self._expiry_timers.pop(booking.id, None):
            self.clock.cancel(previous)
        self._expiry_timers[booking.id] = self.clock.after(
            booking.expire_at - self.clock.now(),
            partial(self._expire_payment_window, booking.id),
        )

    def _discharge_expiry_timer(self, booking_id: UUID) -> None:
        if handle := self._expiry_timers.pop(booking_id, None):
            self.clock.cancel(handle)

    async def _notify_payer(self, booking: Booking, notification_type: NotificationType) -> None:
        notification = BookingNotification.for_booking(
            notification_type=notification_type,
            booking=booking,
            occurred_at=self.clock.now(),
        )
        if self.task_group is not None:
            self.task_group.start_soon(self._deliver_notification, booking.payer_id, notification)
        else:
            await self._deliver_notification(booking.payer_id, notification)

    async def _deliver_notification(self, user_id: str, notification: BookingNotification) -> None:
        """Best effort: failures and timeouts are logged and never reach the caller"""
        try:
            with anyio.move_on_after(self.notification_timeout) as scope:
                await self.notification_sink.notify(user_id=user_id, notification=notification)
            if scope.cancelled_caught:
                Logger.base.warning(
                    f'🔕 [NOTIFY] {notification.notification_type} to {user_id} timed out'
                )
        except Exception as e:
            Logger.base.opt(exception=e).warning(
                f'🔕 [NOTIFY] {notification.notification_type} to {user_id} failed: {e}'
            )
