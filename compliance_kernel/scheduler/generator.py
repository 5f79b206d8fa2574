"""
Schedule Generator — composes the segmenter and policy into a full schedule.

This module holds the single authoritative definition of "due as of":
every count of obligations that should have been delivered by a given
moment goes through ObligationSchedule.expected_as_of().

Pure: no I/O, no clock reads. Safe to call on every dashboard read.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.obligation import ObligationKey, ObligationKind, ObligationPeriod
from compliance_kernel.models.policy import AsOfThreshold, ObligationPolicy
from compliance_kernel.scheduler.calendar import segment_interval
from compliance_kernel.scheduler.policy import classify, require_naive, validate_interval

logger = logging.getLogger(__name__)


class ObligationSchedule(BaseModel):
    """The ordered obligation periods for one interval under one policy."""

    model_config = ConfigDict(frozen=True)

    interval: DateInterval
    policy: ObligationPolicy
    periods: List[ObligationPeriod]
    interval_warning: Optional[str] = None

    @property
    def total_expected(self) -> int:
        """Expected reports, and equally expected visits, over the whole interval."""
        return len(self.periods)

    def keys(self) -> List[ObligationKey]:
        return [p.key for p in self.periods]

    def period_for(self, year: int, month: int) -> Optional[ObligationPeriod]:
        """The period for a calendar month, or None if that month is not an obligation."""
        for period in self.periods:
            if period.year == year and period.month == month:
                return period
        return None

    def threshold(self, period: ObligationPeriod, kind: ObligationKind) -> datetime:
        """The instant after which a period counts as due."""
        if (
            kind == ObligationKind.REPORT
            and self.policy.as_of_threshold == AsOfThreshold.WINDOW_END
        ):
            return period.report_window_end
        return period.due_at(kind)

    def is_due(self, period: ObligationPeriod, now: datetime, kind: ObligationKind) -> bool:
        require_naive(now)
        threshold = self.threshold(period, kind)
        if self.policy.as_of_inclusive:
            return threshold <= now
        return threshold < now

    def due_periods(
        self, now: datetime, kind: ObligationKind = ObligationKind.REPORT
    ) -> List[ObligationPeriod]:
        require_naive(now)
        return [p for p in self.periods if self.is_due(p, now, kind)]

    def expected_as_of(
        self, now: datetime, kind: ObligationKind = ObligationKind.REPORT
    ) -> int:
        """
        How many obligations of `kind` should have been delivered by `now`.

        `now` must be naive, in the same local time as the period due dates;
        an aware datetime raises InvalidInstantError.
        """
        return len(self.due_periods(now, kind))


def generate_schedule(interval: DateInterval, policy: ObligationPolicy) -> ObligationSchedule:
    """
    Build the obligation schedule for an interval.

    RangeTooLongError propagates unchanged. A too-short interval is logged
    and still produces a (possibly empty) schedule.
    """
    warning = validate_interval(interval, policy)
    if warning is not None:
        logger.warning(
            "Short internship interval %s..%s: %s",
            interval.start.isoformat(), interval.end.isoformat(), warning,
        )

    periods = []
    for segment in segment_interval(interval, policy.max_segments):
        period = classify(segment, policy)
        if period is not None:
            periods.append(period)

    periods.sort(key=lambda p: (p.year, p.month))
    if periods:
        periods[-1] = periods[-1].model_copy(update={"is_final_period": True})

    return ObligationSchedule(
        interval=interval,
        policy=policy,
        periods=periods,
        interval_warning=str(warning) if warning is not None else None,
    )
