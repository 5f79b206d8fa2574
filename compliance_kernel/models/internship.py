"""Internship — the entity whose dates drive the obligation schedule."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from compliance_kernel.models.interval import DateInterval


class Internship(BaseModel):
    """A single student internship tracked by the platform."""

    internship_id: str
    institution_id: str
    student_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    def interval(self) -> DateInterval:
        """Build the schedule interval, raising InvalidIntervalError on bad dates."""
        return DateInterval.from_dates(self.start_date, self.end_date)
