"""
Test Configuration and Fixtures

Every fixture here is in-process: a virtual clock that only moves when a test
advances it, the in-memory store and broadcaster, and an AsyncMock
notification sink. Integration tests that need a database build their own
SQLite file under tmp_path.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
import uuid_utils

from court_booking.service.booking.app.command.booking_lifecycle_engine import (
    BookingLifecycleEngine,
)
from court_booking.service.booking.app.interface.i_notification_sink import INotificationSink
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus
from court_booking.service.booking.domain.value_object.status_change import StatusChange
from court_booking.service.booking.driven_adapter.clock.virtual_clock_impl import (
    VirtualClockImpl,
)
from court_booking.service.booking.driven_adapter.event.in_memory_booking_status_broadcaster_impl import (
    InMemoryBookingStatusBroadcasterImpl,
)
from court_booking.service.booking.driven_adapter.store.in_memory_booking_store_impl import (
    InMemoryBookingStoreImpl,
)


# 2025-06-01 08:00 UTC, a Sunday
CLOCK_START = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
PAYMENT_WINDOW = timedelta(minutes=15)
PAYER_ID = 'payer-1'
OWNER_ID = 'owner-1'


@pytest.fixture
def clock_start() -> datetime:
    return CLOCK_START


@pytest.fixture
def virtual_clock() -> VirtualClockImpl:
    return VirtualClockImpl(start=CLOCK_START)


@pytest.fixture
def booking_store() -> InMemoryBookingStoreImpl:
    return InMemoryBookingStoreImpl()


@pytest.fixture
def status_broadcaster() -> InMemoryBookingStatusBroadcasterImpl:
    return InMemoryBookingStatusBroadcasterImpl(buffer_size=10)


@pytest.fixture
def notification_sink() -> AsyncMock:
    return AsyncMock(spec=INotificationSink)


@pytest.fixture
def engine(
    booking_store: InMemoryBookingStoreImpl,
    virtual_clock: VirtualClockImpl,
    notification_sink: AsyncMock,
    status_broadcaster: InMemoryBookingStatusBroadcasterImpl,
) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(
        booking_store=booking_store,
        clock=virtual_clock,
        notification_sink=notification_sink,
        status_broadcaster=status_broadcaster,
        payment_window=PAYMENT_WINDOW,
        max_cas_retries=3,
        notification_timeout=1.0,
    )


@pytest.fixture
def slot() -> dict[str, Any]:
    """Court 1 at 10:00-11:00 on the clock's day"""
    return {
        'court_id': 'court-1',
        'venue_id': 'venue-1',
        'payer_id': PAYER_ID,
        'start_time': CLOCK_START.replace(hour=10),
        'end_time': CLOCK_START.replace(hour=11),
        'price': 200_000,
    }


@pytest.fixture
def booking_factory() -> Callable[..., Booking]:
    """
    Build a Booking directly, bypassing the engine

    Defaults to a PENDING_PAYMENT booking created at CLOCK_START; pass
    status=... together with expire_at=None for resolved bookings.
    """

    def _make(**overrides: Any) -> Booking:
        status = overrides.pop('status', BookingStatus.PENDING_PAYMENT)
        fields: dict[str, Any] = {
            'id': uuid_utils.uuid7(),
            'court_id': 'court-1',
            'venue_id': 'venue-1',
            'payer_id': PAYER_ID,
            'start_time': CLOCK_START.replace(hour=10),
            'end_time': CLOCK_START.replace(hour=11),
            'total_price': 200_000,
            'status': status,
            'status_history': (StatusChange(status=status, changed_at=CLOCK_START),),
            'expire_at': (
                CLOCK_START + PAYMENT_WINDOW if status == BookingStatus.PENDING_PAYMENT else None
            ),
            'created_at': CLOCK_START,
            'updated_at': CLOCK_START,
        }
        fields.update(overrides)
        return Booking(**fields)

    return _make
