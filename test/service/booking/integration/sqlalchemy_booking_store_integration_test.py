"""
Integration tests for SqlAlchemyBookingStoreImpl

Runs against a throwaway SQLite file (aiosqlite) under tmp_path.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import timedelta

import anyio
import attrs
import pytest
import pytest_asyncio
import uuid_utils

from court_booking.platform.database.orm_db_setting import Database
from court_booking.platform.exception.exceptions import (
    NotFoundError,
    SlotConflictError,
    VersionConflictError,
)
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import BookingStatus
from court_booking.service.booking.driven_adapter.store.sqlalchemy_booking_store_impl import (
    SqlAlchemyBookingStoreImpl,
)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    db = Database(url=f'sqlite+aiosqlite:///{tmp_path}/court_booking_test.db', echo=False)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def store(database: Database) -> SqlAlchemyBookingStoreImpl:
    return SqlAlchemyBookingStoreImpl(database=database)


@pytest.mark.integration
class TestSqlAlchemyBookingStore:
    @pytest.mark.asyncio
    async def test_insert_then_get_round_trips_every_field(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking], clock_start
    ) -> None:
        """
        Given: A booking that went through an upload and a rejection
        When: It is inserted and read back
        Then: Every field, including aware datetimes and status history, survives
        """
        pending = booking_factory()
        uploaded = pending.upload_payment_proof(
            proof_url='https://cdn.example.com/p.png', now=clock_start + timedelta(minutes=5)
        )
        rejected = uploaded.reject(
            actor_id='owner-1', reason='blurry photo', now=clock_start + timedelta(minutes=9)
        )

        await store.insert(booking=rejected)
        loaded = await store.get(booking_id=rejected.id)

        assert loaded == rejected
        assert loaded.start_time.tzinfo is not None
        assert [change.status for change in loaded.status_history] == [
            BookingStatus.PENDING_PAYMENT,
            BookingStatus.PAYMENT_UPLOADED,
            BookingStatus.REJECTED,
        ]

    @pytest.mark.asyncio
    async def test_get_unknown_raises_not_found(self, store: SqlAlchemyBookingStoreImpl) -> None:
        with pytest.raises(NotFoundError):
            await store.get(booking_id=uuid_utils.uuid7())

    @pytest.mark.asyncio
    async def test_insert_rejects_overlapping_blocking_booking(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking]
    ) -> None:
        first = booking_factory()
        await store.insert(booking=first)

        with pytest.raises(SlotConflictError):
            await store.insert(
                booking=booking_factory(
                    start_time=first.start_time + timedelta(minutes=30),
                    end_time=first.end_time + timedelta(minutes=30),
                )
            )

        # back-to-back slot and another court are both free
        await store.insert(
            booking=booking_factory(
                start_time=first.end_time, end_time=first.end_time + timedelta(hours=1)
            )
        )
        await store.insert(booking=booking_factory(court_id='court-2'))

    @pytest.mark.asyncio
    async def test_concurrent_inserts_in_one_process_book_the_slot_once(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking]
    ) -> None:
        """
        Given: Five payers requesting the same court slot
        When: Their inserts run concurrently on one store
        Then:
          - Exactly one insert succeeds
          - The other four raise SlotConflictError
        """
        candidates = [booking_factory(payer_id=f'payer-{i}') for i in range(5)]
        stored: list[Booking] = []
        conflicts: list[SlotConflictError] = []

        async def attempt(booking: Booking) -> None:
            try:
                stored.append(await store.insert(booking=booking))
            except SlotConflictError as e:
                conflicts.append(e)

        async with anyio.create_task_group() as tg:
            for booking in candidates:
                tg.start_soon(attempt, booking)

        assert len(stored) == 1
        assert len(conflicts) == 4
        assert [b.id for b in await store.list_by_venues(venue_ids=['venue-1'])] == [stored[0].id]

    @pytest.mark.asyncio
    async def test_expired_booking_releases_the_slot(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking]
    ) -> None:
        await store.insert(booking=booking_factory(status=BookingStatus.EXPIRED, expire_at=None))

        replacement = await store.insert(booking=booking_factory())

        assert (await store.get(booking_id=replacement.id)).status == BookingStatus.PENDING_PAYMENT

    @pytest.mark.asyncio
    async def test_compare_and_swap_detects_stale_version(
        self,
        store: SqlAlchemyBookingStoreImpl,
        booking_factory: Callable[..., Booking],
        clock_start,
    ) -> None:
        booking = booking_factory()
        await store.insert(booking=booking)
        cancelled = booking.cancel(actor_id=booking.payer_id, now=clock_start + timedelta(minutes=1))
        expired = booking.expire(now=clock_start + timedelta(minutes=15))

        await store.compare_and_swap(booking_id=booking.id, expected_version=0, booking=cancelled)
        with pytest.raises(VersionConflictError):
            await store.compare_and_swap(
                booking_id=booking.id, expected_version=0, booking=expired
            )

        stored = await store.get(booking_id=booking.id)
        assert stored.status == BookingStatus.CANCELLED
        assert stored.version == 1
        assert stored.expire_at is None

    @pytest.mark.asyncio
    async def test_compare_and_swap_unknown_raises_not_found(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking]
    ) -> None:
        booking = booking_factory()

        with pytest.raises(NotFoundError):
            await store.compare_and_swap(
                booking_id=booking.id, expected_version=0, booking=attrs.evolve(booking, version=1)
            )

    @pytest.mark.asyncio
    async def test_list_pending_orders_by_deadline(
        self,
        store: SqlAlchemyBookingStoreImpl,
        booking_factory: Callable[..., Booking],
        clock_start,
    ) -> None:
        later = booking_factory(court_id='court-1', expire_at=clock_start + timedelta(hours=1))
        overdue = booking_factory(court_id='court-2', expire_at=clock_start)
        confirmed = booking_factory(
            court_id='court-3', status=BookingStatus.CONFIRMED, expire_at=None
        )
        for booking in (later, overdue, confirmed):
            await store.insert(booking=booking)

        assert [b.id for b in await store.list_pending()] == [overdue.id, later.id]
        assert [b.id for b in await store.list_pending(before=clock_start)] == [overdue.id]

    @pytest.mark.asyncio
    async def test_list_by_venues(
        self, store: SqlAlchemyBookingStoreImpl, booking_factory: Callable[..., Booking]
    ) -> None:
        here = booking_factory(venue_id='venue-1', court_id='court-1')
        there = booking_factory(venue_id='venue-2', court_id='court-7')
        await store.insert(booking=here)
        await store.insert(booking=there)

        assert [b.id for b in await store.list_by_venues(venue_ids=['venue-1'])] == [here.id]
        assert len(await store.list_by_venues(venue_ids=['venue-1', 'venue-2'])) == 2
        assert await store.list_by_venues(venue_ids=[]) == []
