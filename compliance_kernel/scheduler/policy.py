"""
Obligation Policy — decides which month segments become obligation periods.

Behavioral Contract:
- A segment is included only when its in-range days strictly exceed
  `min_days_for_inclusion`.
- Reports fall due on a fixed day of the following month; visits fall due
  on the last day of the segment's own month.
- Never reads configuration other than the policy passed in.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from compliance_kernel.errors import IntervalTooShortWarning, InvalidInstantError
from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.obligation import ObligationPeriod, ObligationRecord, is_accepted
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.models.schedule import (
    MonthSegment,
    SubmissionLateness,
    SubmissionState,
    SubmissionWindowStatus,
)
from compliance_kernel.scheduler.calendar import month_last_day


END_OF_DAY = time(23, 59, 59)
START_OF_DAY = time(0, 0, 0)


def _days_ceil(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() / 86400)


def require_naive(now: datetime) -> datetime:
    """Reject zone-aware instants; period boundaries are naive local times."""
    if now.tzinfo is not None:
        raise InvalidInstantError(now)
    return now


def classify(
    segment: MonthSegment,
    policy: ObligationPolicy,
    is_final: bool = False,
) -> Optional[ObligationPeriod]:
    """Turn a month segment into an obligation period, or None if excluded."""
    if segment.days_in_range <= policy.min_days_for_inclusion:
        return None

    following = date(segment.year, segment.month, 1) + relativedelta(months=1)
    following_last_day = month_last_day(following.year, following.month)

    report_due_at = datetime.combine(
        following.replace(day=policy.report_due_day_of_next_month), END_OF_DAY
    )
    window_start = datetime.combine(following, START_OF_DAY)
    window_end = datetime.combine(
        following.replace(day=min(policy.report_window_close_day, following_last_day)),
        END_OF_DAY,
    )

    if policy.visit_due_at_month_end:
        visit_due_at = datetime.combine(
            date(segment.year, segment.month, segment.days_in_month), END_OF_DAY
        )
    else:
        visit_due_at = report_due_at

    return ObligationPeriod(
        year=segment.year,
        month=segment.month,
        days_in_range=segment.days_in_range,
        report_due_at=report_due_at,
        visit_due_at=visit_due_at,
        report_window_start=window_start,
        report_window_end=window_end,
        is_partial_month=not segment.is_full_month,
        is_final_period=is_final,
    )


def validate_interval(
    interval: DateInterval, policy: ObligationPolicy
) -> Optional[IntervalTooShortWarning]:
    """Return a warning when the interval is shorter than the policy minimum."""
    if interval.length_days < policy.min_interval_weeks * 7:
        return IntervalTooShortWarning(interval.length_days, policy.min_interval_weeks)
    return None


def submission_status(
    period: ObligationPeriod,
    now: datetime,
    is_completed: bool = False,
) -> SubmissionWindowStatus:
    """
    Locate `now` relative to the period's report submission window.

    A completed report is COMPLETED regardless of where `now` falls.
    """
    require_naive(now)
    if is_completed:
        return SubmissionWindowStatus(state=SubmissionState.COMPLETED)
    if now < period.report_window_start:
        return SubmissionWindowStatus(
            state=SubmissionState.NOT_YET_DUE,
            days_until_open=_days_ceil(period.report_window_start - now),
        )
    if now <= period.report_window_end:
        return SubmissionWindowStatus(
            state=SubmissionState.CAN_SUBMIT,
            days_remaining=_days_ceil(period.report_window_end - now),
        )
    return SubmissionWindowStatus(
        state=SubmissionState.OVERDUE,
        days_overdue=_days_ceil(now - period.report_window_end),
    )


def is_submission_late(
    period: ObligationPeriod,
    record: ObligationRecord,
    now: datetime,
) -> SubmissionLateness:
    """
    Compare a record's delivery time with its period's due date.

    A handed-in record is late if `submitted_at` is after the due date; an
    accepted one without a timestamp is never reported late. An outstanding
    record is late once `now` has passed the due date. Days late are
    counted in whole days, rounded down.
    """
    require_naive(now)
    due_at = period.due_at(record.kind)
    if record.submitted_at is not None:
        delivered_at = record.submitted_at
    elif is_accepted(record):
        return SubmissionLateness(is_late=False)
    else:
        delivered_at = now
    if delivered_at <= due_at:
        return SubmissionLateness(is_late=False)
    return SubmissionLateness(
        is_late=True,
        days_late=int((delivered_at - due_at).total_seconds() // 86400),
    )
