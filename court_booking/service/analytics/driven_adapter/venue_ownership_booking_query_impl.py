from typing import List, Mapping

from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.analytics.app.interface.i_owner_booking_query import (
    IOwnerBookingQuery,
)
from court_booking.service.booking.app.interface.i_booking_store import IBookingStore
from court_booking.service.booking.domain.entity.booking_entity import Booking


class VenueOwnershipBookingQueryImpl(IOwnerBookingQuery):
    """Resolves an owner's venues from a static mapping, then reads their bookings from the store"""

    def __init__(
        self, *, booking_store: IBookingStore, venues_by_owner: Mapping[str, list[str]]
    ) -> None:
        self.booking_store = booking_store
        self.venues_by_owner = venues_by_owner

    @Logger.io
    async def list_owner_bookings(self, *, owner_id: str) -> List[Booking]:
        venue_ids = self.venues_by_owner.get(owner_id, [])
        if not venue_ids:
            Logger.base.info(f'📊 [ANALYTICS] Owner {owner_id} has no venues')
            return []
        return await self.booking_store.list_by_venues(venue_ids=venue_ids)
