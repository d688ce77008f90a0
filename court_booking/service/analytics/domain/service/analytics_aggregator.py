"""
Analytics Aggregator

Pure functions that fold a set of bookings into an AnalyticsReport. No I/O:
the caller supplies the bookings, the reference time and the time zone used
for day/hour grouping, so the same input always gives the same report.
"""

from collections import Counter, defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from datetime import datetime, timezone, tzinfo
from typing import TypeVar

from court_booking.service.analytics.domain.enum.analytics_period import AnalyticsPeriod
from court_booking.service.analytics.domain.value_object.analytics_report import (
    AnalyticsReport,
    BookingStats,
    CustomerStats,
    DailyRevenue,
    MonthlyRevenue,
    TimeSlotStats,
    VenuePerformance,
    WeeklyRevenue,
)
from court_booking.service.booking.domain.entity.booking_entity import Booking
from court_booking.service.booking.domain.enum.booking_status import (
    REVENUE_STATUSES,
    BookingStatus,
)


DEFAULT_TOP_CUSTOMERS_LIMIT = 10

_K = TypeVar('_K', bound=Hashable)


def _group_totals(
    bookings: Sequence[Booking], key: Callable[[Booking], _K]
) -> dict[_K, tuple[int, int]]:
    """key -> (booking_count, revenue)"""
    counts: Counter[_K] = Counter()
    revenue: Counter[_K] = Counter()
    for booking in bookings:
        group = key(booking)
        counts[group] += 1
        revenue[group] += booking.total_price
    return {group: (counts[group], revenue[group]) for group in counts}


def count_statuses(bookings: Iterable[Booking]) -> BookingStats:
    by_status = Counter(booking.status for booking in bookings)
    return BookingStats(
        total=sum(by_status.values()),
        pending=by_status[BookingStatus.PENDING_PAYMENT] + by_status[BookingStatus.PAYMENT_UPLOADED],
        confirmed=by_status[BookingStatus.CONFIRMED],
        completed=by_status[BookingStatus.COMPLETED],
        rejected=by_status[BookingStatus.REJECTED],
        cancelled=by_status[BookingStatus.CANCELLED] + by_status[BookingStatus.NO_SHOW],
        expired=by_status[BookingStatus.EXPIRED],
    )


def conversion_rate(stats: BookingStats) -> float:
    """Share of owner-reviewed bookings that were approved; 0.0 when nothing was reviewed"""
    approved = stats.confirmed + stats.completed
    reviewed = approved + stats.rejected
    return approved / reviewed if reviewed else 0.0


def venue_performance(bookings: Sequence[Booking]) -> tuple[VenuePerformance, ...]:
    completed: defaultdict[str, int] = defaultdict(int)
    for booking in bookings:
        if booking.status == BookingStatus.COMPLETED:
            completed[booking.venue_id] += 1
    venues = [
        VenuePerformance(
            venue_id=venue_id,
            booking_count=count,
            revenue=revenue,
            completed_bookings=completed[venue_id],
        )
        for venue_id, (count, revenue) in _group_totals(bookings, lambda b: b.venue_id).items()
    ]
    return tuple(sorted(venues, key=lambda v: (-v.revenue, v.venue_id)))


def customer_ranking(bookings: Sequence[Booking]) -> tuple[CustomerStats, ...]:
    customers = [
        CustomerStats(payer_id=payer_id, booking_count=count, total_spent=revenue)
        for payer_id, (count, revenue) in _group_totals(bookings, lambda b: b.payer_id).items()
    ]
    return tuple(sorted(customers, key=lambda c: (-c.total_spent, c.payer_id)))


def aggregate(
    bookings: Iterable[Booking],
    *,
    period: AnalyticsPeriod,
    now: datetime,
    owner_id: str = '',
    tz: tzinfo = timezone.utc,
    top_customers_limit: int = DEFAULT_TOP_CUSTOMERS_LIMIT,
) -> AnalyticsReport:
    """
    Summarize the bookings whose start_time falls in [period start, now]

    Revenue, averages and every revenue breakdown only use CONFIRMED and
    COMPLETED bookings; BookingStats and total_bookings count every status.
    Ties are broken deterministically: venues and payers by id, the peak
    hour by the earliest hour.
    """
    period_start = period.start_from(now)
    in_period = [b for b in bookings if period_start <= b.start_time <= now]
    earning = [b for b in in_period if b.status in REVENUE_STATUSES]

    stats = count_statuses(in_period)
    total_revenue = sum(b.total_price for b in earning)

    def local(booking: Booking) -> datetime:
        return booking.start_time.astimezone(tz)

    revenue_by_day = tuple(
        DailyRevenue(day=day, revenue=revenue, booking_count=count)
        for day, (count, revenue) in sorted(
            _group_totals(earning, lambda b: local(b).date()).items()
        )
    )
    revenue_by_hour = tuple(
        TimeSlotStats(hour=hour, booking_count=count, revenue=revenue)
        for hour, (count, revenue) in sorted(_group_totals(earning, lambda b: local(b).hour).items())
    )

    revenue_by_week: tuple[WeeklyRevenue, ...] = ()
    if period == AnalyticsPeriod.MONTH:
        revenue_by_week = tuple(
            WeeklyRevenue(iso_year=year, iso_week=week, revenue=revenue, booking_count=count)
            for (year, week), (count, revenue) in sorted(
                _group_totals(earning, lambda b: tuple(local(b).isocalendar())[:2]).items()
            )
        )

    revenue_by_month: tuple[MonthlyRevenue, ...] = ()
    if period == AnalyticsPeriod.YEAR:
        revenue_by_month = tuple(
            MonthlyRevenue(year=year, month=month, revenue=revenue, booking_count=count)
            for (year, month), (count, revenue) in sorted(
                _group_totals(earning, lambda b: (local(b).year, local(b).month)).items()
            )
        )

    venues = venue_performance(earning)
    customers = customer_ranking(earning)
    busiest = max(revenue_by_hour, key=lambda s: (s.booking_count, -s.hour), default=None)

    return AnalyticsReport(
        owner_id=owner_id,
        period=period,
        period_start=period_start,
        period_end=now,
        total_revenue=total_revenue,
        total_bookings=stats.total,
        average_booking_value=total_revenue // len(earning) if earning else 0,
        conversion_rate=conversion_rate(stats),
        booking_stats=stats,
        revenue_by_day=revenue_by_day,
        revenue_by_hour=revenue_by_hour,
        revenue_by_week=revenue_by_week,
        revenue_by_month=revenue_by_month,
        venue_performance=venues,
        revenue_by_payer=customers,
        top_customers=customers[:top_customers_limit],
        peak_hour=busiest.hour if busiest is not None else None,
        best_venue=venues[0] if venues else None,
    )
