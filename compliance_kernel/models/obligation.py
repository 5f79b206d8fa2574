"""Obligation periods, persisted obligation records, and the cached summary."""

from datetime import datetime
from enum import Enum
from typing import AbstractSet, Annotated, Literal, NamedTuple, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ObligationKind(str, Enum):
    REPORT = "report"   # Monthly report submitted by the student
    VISIT = "visit"     # Faculty supervisor visit


class ReportStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REVISION_REQUIRED = "REVISION_REQUIRED"


class VisitStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ObligationKey(NamedTuple):
    """Identity of an obligation within one internship and kind."""
    year: int
    month: int


class ObligationPeriod(BaseModel):
    """
    One included calendar month of an internship.

    The template for a persisted record, never persisted itself.
    """

    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=1, le=12)
    days_in_range: int = Field(ge=1)
    report_due_at: datetime
    visit_due_at: datetime
    report_window_start: datetime
    report_window_end: datetime
    is_partial_month: bool
    is_final_period: bool = False

    @property
    def key(self) -> ObligationKey:
        return ObligationKey(self.year, self.month)

    def due_at(self, kind: ObligationKind) -> datetime:
        if kind == ObligationKind.VISIT:
            return self.visit_due_at
        return self.report_due_at


class _RecordBase(BaseModel):
    internship_id: str
    year: int
    month: int = Field(ge=1, le=12)
    due_at: datetime                        # Copied from the period at creation
    created_at: datetime
    submitted_at: Optional[datetime] = None  # Set when the obligation is handed in

    @property
    def key(self) -> ObligationKey:
        return ObligationKey(self.year, self.month)


class MonthlyReportRecord(_RecordBase):
    """A persisted monthly report obligation."""

    kind: Literal[ObligationKind.REPORT] = ObligationKind.REPORT
    status: ReportStatus = ReportStatus.DRAFT
    window_start: datetime
    window_end: datetime


class VisitRecord(_RecordBase):
    """A persisted faculty visit obligation."""

    kind: Literal[ObligationKind.VISIT] = ObligationKind.VISIT
    status: VisitStatus = VisitStatus.SCHEDULED


ObligationRecord = Annotated[
    Union[MonthlyReportRecord, VisitRecord],
    Field(discriminator="kind"),
]

record_adapter: TypeAdapter = TypeAdapter(ObligationRecord)


REPORT_ACCEPTED_STATUSES = frozenset({ReportStatus.SUBMITTED, ReportStatus.APPROVED})
VISIT_ACCEPTED_STATUSES = frozenset({VisitStatus.COMPLETED})

# Statuses in which the obligation has left the submitter's hands.
REPORT_HANDED_IN_STATUSES = REPORT_ACCEPTED_STATUSES | {ReportStatus.UNDER_REVIEW}
VISIT_HANDED_IN_STATUSES = VISIT_ACCEPTED_STATUSES


def status_type(kind: ObligationKind) -> Type[Enum]:
    """The status enumeration that applies to a given obligation kind."""
    return VisitStatus if kind == ObligationKind.VISIT else ReportStatus


def default_accepted_statuses(kind: ObligationKind) -> AbstractSet[Enum]:
    """Statuses that count an obligation of `kind` as delivered."""
    if kind == ObligationKind.VISIT:
        return VISIT_ACCEPTED_STATUSES
    return REPORT_ACCEPTED_STATUSES


def handed_in_statuses(kind: ObligationKind) -> AbstractSet[Enum]:
    if kind == ObligationKind.VISIT:
        return VISIT_HANDED_IN_STATUSES
    return REPORT_HANDED_IN_STATUSES


def is_accepted(record: ObligationRecord) -> bool:
    return record.status in default_accepted_statuses(record.kind)


class InternshipObligationSummary(BaseModel):
    """Expected-count cache kept alongside the internship."""

    total_expected_reports: int = Field(default=0, ge=0)
    total_expected_visits: int = Field(default=0, ge=0)
    obligations_generated: bool = False
    last_calculated_at: Optional[datetime] = None

    def expected_for(self, kind: ObligationKind) -> int:
        if kind == ObligationKind.VISIT:
            return self.total_expected_visits
        return self.total_expected_reports
