from datetime import datetime, timedelta
from typing import Optional

import attrs
from uuid_utils import UUID

from court_booking.platform.exception.exceptions import (
    InvalidArgumentError,
    InvalidIntervalError,
    InvalidTransitionError,
    WindowExpiredError,
)
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.domain.enum.booking_status import BookingStatus
from court_booking.service.booking.domain.value_object.status_change import StatusChange


def _require_aware(name: str, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidArgumentError(f'{name} must be timezone-aware')


def _require_non_blank(name: str, value: str) -> None:
    if not value or not value.strip():
        raise InvalidArgumentError(f'{name} must not be empty')


@attrs.define(frozen=True)
class Booking:
    """
    Court reservation aggregate.

    Instances are immutable: every transition method validates against the
    status transition table and returns a new Booking with version + 1 and
    one more status_history entry. Persisting that copy is the caller's job.
    """

    id: UUID
    court_id: str
    venue_id: str
    payer_id: str
    start_time: datetime
    end_time: datetime
    total_price: int
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    status_history: tuple[StatusChange, ...] = attrs.field(default=(), converter=tuple)
    expire_at: Optional[datetime] = None
    payment_proof_url: Optional[str] = None
    payment_proof_uploaded_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    resolved_by: Optional[str] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        court_id: str,
        venue_id: str,
        payer_id: str,
        start_time: datetime,
        end_time: datetime,
        total_price: int,
        now: datetime,
        payment_window: timedelta,
    ) -> 'Booking':
        _require_non_blank('court_id', court_id)
        _require_non_blank('venue_id', venue_id)
        _require_non_blank('payer_id', payer_id)
        _require_aware('start_time', start_time)
        _require_aware('end_time', end_time)
        if end_time <= start_time:
            raise InvalidIntervalError()
        if total_price < 0:
            raise InvalidArgumentError('total_price must not be negative')
        if payment_window <= timedelta(0):
            raise InvalidArgumentError('payment_window must be positive')

        return cls(
            id=id,
            court_id=court_id,
            venue_id=venue_id,
            payer_id=payer_id,
            start_time=start_time,
            end_time=end_time,
            total_price=total_price,
            status=BookingStatus.PENDING_PAYMENT,
            status_history=(StatusChange(status=BookingStatus.PENDING_PAYMENT, changed_at=now),),
            expire_at=now + payment_window,
            version=0,
            created_at=now,
            updated_at=now,
        )

    def _transition(self, target: BookingStatus, *, now: datetime, **changes) -> 'Booking':
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                f'Cannot move booking from {self.status} to {target}'
            )
        return attrs.evolve(
            self,
            status=target,
            status_history=(*self.status_history, StatusChange(status=target, changed_at=now)),
            expire_at=None,  # only PENDING_PAYMENT carries a deadline
            version=self.version + 1,
            updated_at=now,
            **changes,
        )

    @Logger.io
    def upload_payment_proof(self, *, proof_url: str, now: datetime) -> 'Booking':
        """
        Attach the payer's payment proof (PENDING_PAYMENT -> PAYMENT_UPLOADED)

        Raises:
            InvalidArgumentError: proof_url is blank
            InvalidTransitionError: booking already left PENDING_PAYMENT
            WindowExpiredError: deadline passed but the expiry has not been applied yet
        """
        _require_non_blank('proof_url', proof_url)
        if self.status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransitionError(
                f'Payment proof can only be uploaded while pending payment (status={self.status})'
            )
        if not self.is_payment_window_open(now):
            raise WindowExpiredError()
        return self._transition(
            BookingStatus.PAYMENT_UPLOADED,
            now=now,
            payment_proof_url=proof_url,
            payment_proof_uploaded_at=now,
        )

    @Logger.io
    def accept(self, *, actor_id: str, now: datetime) -> 'Booking':
        return self._transition(BookingStatus.CONFIRMED, now=now, resolved_by=actor_id)

    @Logger.io
    def reject(self, *, actor_id: str, reason: str, now: datetime) -> 'Booking':
        _require_non_blank('reason', reason)
        return self._transition(
            BookingStatus.REJECTED, now=now, resolved_by=actor_id, rejection_reason=reason.strip()
        )

    @Logger.io
    def cancel(self, *, actor_id: str, now: datetime) -> 'Booking':
        # CONFIRMED -> CANCELLED is absent from the transition table (refunds are not handled here)
        return self._transition(BookingStatus.CANCELLED, now=now, resolved_by=actor_id)

    @Logger.io
    def expire(self, *, now: datetime) -> 'Booking':
        return self._transition(BookingStatus.EXPIRED, now=now)

    @Logger.io
    def mark_completed(self, *, now: datetime) -> 'Booking':
        return self._transition(BookingStatus.COMPLETED, now=now)

    @Logger.io
    def mark_no_show(self, *, now: datetime) -> 'Booking':
        return self._transition(BookingStatus.NO_SHOW, now=now)

    def overlaps(self, start_time: datetime, end_time: datetime) -> bool:
        """Half-open interval test: back-to-back slots do not overlap"""
        return self.start_time < end_time and start_time < self.end_time

    @property
    def blocks_slot(self) -> bool:
        return self.status.blocks_slot

    def is_payment_window_open(self, now: datetime) -> bool:
        return (
            self.status == BookingStatus.PENDING_PAYMENT
            and self.expire_at is not None
            and now < self.expire_at
        )

    def remaining_payment_time(self, now: datetime) -> timedelta:
        """Countdown until the payment deadline, zero once it passed or no longer pending"""
        if self.status != BookingStatus.PENDING_PAYMENT or self.expire_at is None:
            return timedelta(0)
        return max(self.expire_at - now, timedelta(0))
