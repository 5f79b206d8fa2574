"""Exception hierarchy for the compliance kernel."""

from typing import Optional


class ObligationError(Exception):
    """Base class for all obligation scheduling errors."""
    pass


class InvalidIntervalError(ObligationError):
    """Raised when an internship's dates are missing, malformed, or reversed."""
    pass


class InvalidInstantError(ObligationError, ValueError):
    """Raised when an as-of instant carries a time zone; the kernel compares naive times."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"Expected a naive datetime, got {value.isoformat()}; "
            f"convert to naive UTC before calling"
        )


class RangeTooLongError(ObligationError):
    """Raised when an interval touches more calendar months than allowed."""

    def __init__(self, segment_count: int, max_segments: int):
        self.segment_count = segment_count
        self.max_segments = max_segments
        super().__init__(
            f"Interval spans {segment_count} calendar months, "
            f"exceeding the configured maximum of {max_segments}"
        )


class IntervalTooShortWarning(ObligationError, UserWarning):
    """
    An interval shorter than the policy minimum.

    Returned rather than raised by the scheduler; intake validation may
    raise it to make the condition fatal.
    """

    def __init__(self, length_days: int, min_weeks: int):
        self.length_days = length_days
        self.min_weeks = min_weeks
        super().__init__(
            f"Interval is {length_days} days long, shorter than the "
            f"minimum of {min_weeks} weeks ({min_weeks * 7} days)"
        )


class DuplicateObligationRecord(ObligationError):
    """Raised by a store when an obligation record key already exists."""

    def __init__(
        self,
        internship_id: str,
        kind: str,
        year: int,
        month: int,
        detail: Optional[str] = None,
    ):
        self.internship_id = internship_id
        self.kind = kind
        self.year = year
        self.month = month
        message = f"{kind} obligation {year}-{month:02d} already exists for {internship_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InternshipNotFoundError(ObligationError, KeyError):
    """Raised when an internship is not present in the registry."""

    def __init__(self, internship_id: str):
        self.internship_id = internship_id
        super().__init__(internship_id)

    def __str__(self) -> str:
        return f"Internship not found: {self.internship_id}"
