"""Date Interval — the start/end span of a single internship."""

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

from compliance_kernel.errors import InvalidIntervalError


DateLike = Union[date, datetime, str]


def _coerce_date(value: Any, field: str) -> date:
    """Normalize a date-like input to a plain date, rejecting anything else."""
    if value is None:
        raise InvalidIntervalError(f"{field} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise InvalidIntervalError(f"{field} is not an ISO date: {value!r}") from None
    raise InvalidIntervalError(f"{field} must be a date, got {type(value).__name__}")


class DateInterval(BaseModel):
    """
    Inclusive internship span. Constructed once per internship.

    Zone conversion is the caller's concern; only calendar dates are kept.
    """

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, dict):
            start = _coerce_date(data.get("start"), "start")
            end = _coerce_date(data.get("end"), "end")
            if start > end:
                raise InvalidIntervalError(
                    f"Interval start {start.isoformat()} is after end {end.isoformat()}"
                )
            return {"start": start, "end": end}
        return data

    @classmethod
    def from_dates(cls, start: Optional[DateLike], end: Optional[DateLike]) -> "DateInterval":
        return cls(start=start, end=end)

    @property
    def length_days(self) -> int:
        """Number of calendar days covered, counting both endpoints."""
        return (self.end - self.start).days + 1
