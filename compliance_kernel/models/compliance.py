"""Compliance metrics — per internship and rolled up by institution or state."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from compliance_kernel.models.obligation import ObligationKind


class ComplianceBand(str, Enum):
    """Dashboard grading of a compliance percentage."""
    EXCELLENT = "excellent"                  # >= 80
    GOOD = "good"                            # >= 60
    NEEDS_IMPROVEMENT = "needs_improvement"  # >= 40
    CRITICAL = "critical"                    # < 40


class RollupScope(str, Enum):
    INSTITUTION = "institution"
    STATE = "state"


class ComplianceMetrics(BaseModel):
    """Expected vs. delivered obligations of one kind."""

    kind: ObligationKind
    expected_total: int = Field(ge=0)
    expected_as_of_now: int = Field(ge=0)
    submitted_or_approved: int = Field(ge=0)
    completion_percentage: float = Field(ge=0, le=100)


class InternshipCompliance(BaseModel):
    internship_id: str
    institution_id: str
    reports: ComplianceMetrics
    visits: ComplianceMetrics
    overall_percentage: float = Field(ge=0, le=100)
    band: ComplianceBand


class DataQualityIssue(BaseModel):
    """An internship whose dates could not produce a schedule."""

    internship_id: str
    institution_id: Optional[str] = None
    error: str                               # Exception class name
    detail: str


class RollupCompliance(BaseModel):
    """Summed compliance across many internships or institutions."""

    scope: RollupScope
    scope_id: str
    computed_at: datetime
    internship_count: int = 0
    reports_expected_total: int = 0
    reports_expected_as_of_now: int = 0
    reports_submitted_or_approved: int = 0
    visits_expected_total: int = 0
    visits_expected_as_of_now: int = 0
    visits_completed: int = 0
    report_percentage: float = Field(default=0, ge=0, le=100)
    visit_percentage: float = Field(default=0, ge=0, le=100)
    overall_percentage: float = Field(default=0, ge=0, le=100)
    band: ComplianceBand = ComplianceBand.CRITICAL
    distribution: Dict[ComplianceBand, int] = {}
    members: List[str] = []                  # Internship or institution IDs
    data_quality_issues: List[DataQualityIssue] = []
