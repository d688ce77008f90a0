from datetime import date, datetime
from typing import Optional

import attrs

from court_booking.service.analytics.domain.enum.analytics_period import AnalyticsPeriod


@attrs.define(frozen=True)
class BookingStats:
    total: int = 0
    pending: int = 0  # PENDING_PAYMENT + PAYMENT_UPLOADED
    confirmed: int = 0
    completed: int = 0
    rejected: int = 0
    cancelled: int = 0  # CANCELLED + NO_SHOW
    expired: int = 0


@attrs.define(frozen=True)
class DailyRevenue:
    day: date
    revenue: int
    booking_count: int


@attrs.define(frozen=True)
class TimeSlotStats:
    hour: int  # 0-23, local time
    booking_count: int
    revenue: int


@attrs.define(frozen=True)
class WeeklyRevenue:
    iso_year: int
    iso_week: int
    revenue: int
    booking_count: int


@attrs.define(frozen=True)
class MonthlyRevenue:
    year: int
    month: int
    revenue: int
    booking_count: int


@attrs.define(frozen=True)
class VenuePerformance:
    venue_id: str
    booking_count: int
    revenue: int
    completed_bookings: int


@attrs.define(frozen=True)
class CustomerStats:
    payer_id: str
    booking_count: int
    total_spent: int


@attrs.define(frozen=True)
class AnalyticsReport:
    """
    Owner-facing summary of bookings in one period

    Revenue fields only count CONFIRMED and COMPLETED bookings. Every
    breakdown is an ordered tuple and holds only non-empty groups.
    """

    owner_id: str
    period: AnalyticsPeriod
    period_start: datetime
    period_end: datetime
    total_revenue: int
    total_bookings: int
    average_booking_value: int
    conversion_rate: float
    booking_stats: BookingStats
    revenue_by_day: tuple[DailyRevenue, ...] = ()
    revenue_by_hour: tuple[TimeSlotStats, ...] = ()
    revenue_by_week: tuple[WeeklyRevenue, ...] = ()  # MONTH only
    revenue_by_month: tuple[MonthlyRevenue, ...] = ()  # YEAR only
    venue_performance: tuple[VenuePerformance, ...] = ()
    revenue_by_payer: tuple[CustomerStats, ...] = ()
    top_customers: tuple[CustomerStats, ...] = ()
    peak_hour: Optional[int] = None  # 0-23 in the report timezone
    best_venue: Optional[VenuePerformance] = None
