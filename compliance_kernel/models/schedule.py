"""Calendar segments and per-period submission state."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MonthSegment(BaseModel):
    """The part of an interval that falls inside one calendar month."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=1, le=12)
    first_day: date                 # First in-range day of the month
    last_day: date                  # Last in-range day of the month
    days_in_month: int = Field(ge=28, le=31)
    days_in_range: int = Field(ge=1, le=31)

    @property
    def is_full_month(self) -> bool:
        return self.days_in_range == self.days_in_month


class SubmissionState(str, Enum):
    NOT_YET_DUE = "not_yet_due"     # Submission window has not opened
    CAN_SUBMIT = "can_submit"       # Inside the submission window
    OVERDUE = "overdue"             # Window closed without a submission
    COMPLETED = "completed"         # Report submitted or approved


class SubmissionWindowStatus(BaseModel):
    """Where `now` sits relative to a period's report submission window."""

    state: SubmissionState
    days_until_open: Optional[int] = None
    days_remaining: Optional[int] = None
    days_overdue: Optional[int] = None


class SubmissionLateness(BaseModel):
    """Whether an obligation was delivered, or is still outstanding, past its due date."""

    is_late: bool
    days_late: int = Field(default=0, ge=0)
