"""
Calendar Segmenter — splits an interval into calendar-month segments.

Pure functions, no configuration beyond the segment bound passed in.
"""

import calendar
from datetime import date
from typing import List

from compliance_kernel.errors import RangeTooLongError
from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.schedule import MonthSegment


def month_last_day(year: int, month: int) -> int:
    """Number of days in the given calendar month."""
    return calendar.monthrange(year, month)[1]


def count_months(interval: DateInterval) -> int:
    """How many calendar months the interval touches."""
    return (
        (interval.end.year - interval.start.year) * 12
        + (interval.end.month - interval.start.month)
        + 1
    )


def segment_interval(interval: DateInterval, max_segments: int = 24) -> List[MonthSegment]:
    """
    One segment per calendar month touched by the interval, in ascending order.

    Both endpoints are in range. Raises RangeTooLongError instead of
    truncating when the interval touches more than `max_segments` months.
    """
    segment_count = count_months(interval)
    if segment_count > max_segments:
        raise RangeTooLongError(segment_count, max_segments)

    segments = []
    year, month = interval.start.year, interval.start.month
    for _ in range(segment_count):
        days_in_month = month_last_day(year, month)
        month_start = date(year, month, 1)
        month_end = date(year, month, days_in_month)

        first_day = max(month_start, interval.start)
        last_day = min(month_end, interval.end)

        segments.append(MonthSegment(
            year=year,
            month=month,
            first_day=first_day,
            last_day=last_day,
            days_in_month=days_in_month,
            days_in_range=(last_day - first_day).days + 1,
        ))

        if month == 12:
            year, month = year + 1, 1
        else:
            month += 1

    return segments
