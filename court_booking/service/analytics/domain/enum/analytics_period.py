import calendar
from datetime import datetime, timedelta
from enum import StrEnum


class AnalyticsPeriod(StrEnum):
    DAY = 'day'
    WEEK = 'week'
    MONTH = 'month'
    YEAR = 'year'

    def start_from(self, now: datetime) -> datetime:
        """Inclusive lower bound of the period ending at `now`"""
        match self:
            case AnalyticsPeriod.DAY:
                return now - timedelta(days=1)
            case AnalyticsPeriod.WEEK:
                return now - timedelta(days=7)
            case AnalyticsPeriod.MONTH:
                return shift_months(now, -1)
            case AnalyticsPeriod.YEAR:
                return shift_months(now, -12)


def shift_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Mar 31 - 1 month = Feb 28/29)"""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month_zero_based = divmod(month_index, 12)
    month = month_zero_based + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
