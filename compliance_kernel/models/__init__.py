"""Compliance kernel data models."""

from compliance_kernel.models.compliance import (
    ComplianceBand,
    ComplianceMetrics,
    DataQualityIssue,
    InternshipCompliance,
    RollupCompliance,
    RollupScope,
)
from compliance_kernel.models.internship import Internship
from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.obligation import (
    InternshipObligationSummary,
    MonthlyReportRecord,
    ObligationKey,
    ObligationKind,
    ObligationPeriod,
    ObligationRecord,
    ReportStatus,
    VisitRecord,
    VisitStatus,
)
from compliance_kernel.models.policy import AsOfThreshold, ObligationPolicy, policy_from_env
from compliance_kernel.models.reconciler import InsertOutcome, ReconciliationResult
from compliance_kernel.models.schedule import (
    MonthSegment,
    SubmissionLateness,
    SubmissionState,
    SubmissionWindowStatus,
)

__all__ = [
    "AsOfThreshold",
    "ComplianceBand",
    "ComplianceMetrics",
    "DataQualityIssue",
    "DateInterval",
    "InsertOutcome",
    "Internship",
    "InternshipCompliance",
    "InternshipObligationSummary",
    "MonthSegment",
    "MonthlyReportRecord",
    "ObligationKey",
    "ObligationKind",
    "ObligationPeriod",
    "ObligationPolicy",
    "ObligationRecord",
    "ReconciliationResult",
    "ReportStatus",
    "RollupCompliance",
    "RollupScope",
    "SubmissionLateness",
    "SubmissionState",
    "SubmissionWindowStatus",
    "VisitRecord",
    "VisitStatus",
    "policy_from_env",
]
