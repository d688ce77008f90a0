"""
SQLAlchemy Booking Store

compare_and_swap is a conditional UPDATE on (id, version); a zero row count
means another writer moved the version first. insert() runs its overlap
query and the INSERT inside one transaction under a process-local lock,
so slot exclusivity holds for a single writer process only.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional

import anyio
from sqlalchemy import select, update
from uuid_utils import UUID

from court_booking.platform.database.orm_db_setting import Database
from court_booking.platform.exception.exceptions import (
    NotFoundError,
    SlotConflictError,
    VersionConflictError,
)
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.booking.app.interface.i_booking_store import IBookingStore
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import (
    SLOT_BLOCKING_STATUSES,
    BookingStatus,
)
from court_booking.service.booking.domain.value_object.status_change import StatusChange
from court_booking.service.booking.driven_adapter.model.booking_model import BookingModel


class SqlAlchemyBookingStoreImpl(IBookingStore):
    """
    Booking store over an async SQLAlchemy engine.

    The no-overlap check in insert() is only atomic within one process: the
    overlap query and the INSERT are serialized by an in-process anyio.Lock,
    not by a database constraint. Run a single writer process per database;
    a second process inserting into the same table can double-book a court.
    compare_and_swap has no such limit since the version check lives in the
    UPDATE itself.
    """

    def __init__(self, *, database: Database) -> None:
        self.database = database
        self._insert_lock = anyio.Lock()

    @staticmethod
    def _model_to_entity(model: BookingModel) -> Booking:
        return Booking(
            id=UUID(model.id),
            court_id=model.court_id,
            venue_id=model.venue_id,
            payer_id=model.payer_id,
            start_time=model.start_time,
            end_time=model.end_time,
            total_price=model.total_price,
            status=BookingStatus(model.status),
            status_history=tuple(StatusChange.from_dict(item) for item in model.status_history),
            expire_at=model.expire_at,
            payment_proof_url=model.payment_proof_url,
            payment_proof_uploaded_at=model.payment_proof_uploaded_at,
            rejection_reason=model.rejection_reason,
            resolved_by=model.resolved_by,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _entity_to_values(booking: Booking) -> dict[str, Any]:
        """Column values shared by INSERT and UPDATE (id excluded)"""
        return {
            'court_id': booking.court_id,
            'venue_id': booking.venue_id,
            'payer_id': booking.payer_id,
            'start_time': booking.start_time,
            'end_time': booking.end_time,
            'total_price': booking.total_price,
            'status': booking.status.value,
            'status_history': [change.to_dict() for change in booking.status_history],
            'expire_at': booking.expire_at,
            'payment_proof_url': booking.payment_proof_url,
            'payment_proof_uploaded_at': booking.payment_proof_uploaded_at,
            'rejection_reason': booking.rejection_reason,
            'resolved_by': booking.resolved_by,
            'version': booking.version,
            'created_at': booking.created_at,
            'updated_at': booking.updated_at,
        }

    @Logger.io
    async def get(self, *, booking_id: UUID) -> Booking:
        async with self.database.session() as session:
            model = await session.get(BookingModel, str(booking_id))
            if model is None:
                raise NotFoundError(f'Booking {booking_id} not found')
            return self._model_to_entity(model)

    @Logger.io
    async def compare_and_swap(
        self, *, booking_id: UUID, expected_version: int, booking: Booking
    ) -> Booking:
        async with self.database.session() as session, session.begin():
            result = await session.execute(
                update(BookingModel)
                .where(
                    BookingModel.id == str(booking_id),
                    BookingModel.version == expected_version,
                )
                .values(**self._entity_to_values(booking))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return booking

            current_version = await session.scalar(
                select(BookingModel.version).where(BookingModel.id == str(booking_id))
            )
            if current_version is None:
                raise NotFoundError(f'Booking {booking_id} not found')
            raise VersionConflictError(
                f'Booking {booking_id} is at version {current_version}, '
                f'expected {expected_version}'
            )

    @Logger.io
    async def insert(self, *, booking: Booking) -> Booking:
        async with self._insert_lock:
            async with self.database.session() as session, session.begin():
                clash = await session.scalar(
                    select(BookingModel)
                    .where(
                        BookingModel.court_id == booking.court_id,
                        BookingModel.status.in_([s.value for s in SLOT_BLOCKING_STATUSES]),
                        BookingModel.start_time < booking.end_time,
                        BookingModel.end_time > booking.start_time,
                    )
                    .limit(1)
                )
                if clash is not None:
                    raise SlotConflictError(
                        f'Court {booking.court_id} is already booked '
                        f'from {clash.start_time.isoformat()} to {clash.end_time.isoformat()}'
                    )
                session.add(BookingModel(id=str(booking.id), **self._entity_to_values(booking)))
        return booking

    @Logger.io
    async def list_pending(self, *, before: Optional[datetime] = None) -> List[Booking]:
        stmt = select(BookingModel).where(
            BookingModel.status == BookingStatus.PENDING_PAYMENT.value
        )
        if before is not None:
            stmt = stmt.where(BookingModel.expire_at <= before)
        async with self.database.session() as session:
            result = await session.scalars(stmt.order_by(BookingModel.expire_at))
            return [self._model_to_entity(model) for model in result]

    @Logger.io
    async def list_by_venues(self, *, venue_ids: Iterable[str]) -> List[Booking]:
        wanted = list(venue_ids)
        if not wanted:
            return []
        async with self.database.session() as session:
            result = await session.scalars(
                select(BookingModel)
                .where(BookingModel.venue_id.in_(wanted))
                .order_by(BookingModel.start_time)
            )
            return [self._model_to_entity(model) for model in result]
