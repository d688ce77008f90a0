from datetime import tzinfo
from typing import Optional
import zoneinfo

from court_booking.platform.config.core_setting import settings
from court_booking.platform.logging.loguru_io import Logger
from court_booking.service.analytics.app.interface.i_owner_booking_query import (
    IOwnerBookingQuery,
)
from court_booking.service.analytics.domain.enum.analytics_period import AnalyticsPeriod
from court_booking.service.analytics.domain.service.analytics_aggregator import aggregate
from court_booking.service.analytics.domain.value_object.analytics_report import AnalyticsReport
from court_booking.service.booking.app.interface.i_clock import IClock


class AggregateAnalyticsUseCase:
    def __init__(
        self,
        *,
        owner_booking_query: IOwnerBookingQuery,
        clock: IClock,
        tz: Optional[tzinfo] = None,
        top_customers_limit: Optional[int] = None,
    ) -> None:
        self.owner_booking_query = owner_booking_query
        self.clock = clock
        self.tz = tz or zoneinfo.ZoneInfo(settings.ANALYTICS_TIMEZONE)
        self.top_customers_limit = (
            settings.ANALYTICS_TOP_CUSTOMERS_LIMIT
            if top_customers_limit is None
            else top_customers_limit
        )

    @Logger.io
    async def execute(self, *, owner_id: str, period: AnalyticsPeriod) -> AnalyticsReport:
        bookings = await self.owner_booking_query.list_owner_bookings(owner_id=owner_id)
        report = aggregate(
            bookings,
            period=period,
            now=self.clock.now(),
            owner_id=owner_id,
            tz=self.tz,
            top_customers_limit=self.top_customers_limit,
        )
        Logger.base.info(
            f'📊 [ANALYTICS] {owner_id} {period}: revenue={report.total_revenue}, '
            f'bookings={report.total_bookings}'
        )
        return report
