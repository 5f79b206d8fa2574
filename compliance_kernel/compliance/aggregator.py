"""
Compliance Aggregator — the single place compliance percentages are computed.

Combines expected counts (cached summary or live schedule) with the status
of persisted records. Pure given its inputs: dashboards read these numbers
instead of recomputing them from raw counters.
"""

from datetime import datetime
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from compliance_kernel.models.compliance import (
    ComplianceBand,
    ComplianceMetrics,
    DataQualityIssue,
    InternshipCompliance,
    RollupCompliance,
    RollupScope,
)
from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.obligation import (
    InternshipObligationSummary,
    ObligationKind,
    ObligationRecord,
    default_accepted_statuses,
)
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.scheduler.generator import ObligationSchedule, generate_schedule


# Lower bound of each band, checked in order.
BAND_THRESHOLDS = (
    (80.0, ComplianceBand.EXCELLENT),
    (60.0, ComplianceBand.GOOD),
    (40.0, ComplianceBand.NEEDS_IMPROVEMENT),
)


def _percentage(delivered: int, expected: int) -> float:
    """delivered / max(expected, 1) as a percentage clamped to [0, 100]."""
    value = delivered / max(expected, 1) * 100
    return min(100.0, max(0.0, value))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def band_for(percentage: float) -> ComplianceBand:
    for lower_bound, band in BAND_THRESHOLDS:
        if percentage >= lower_bound:
            return band
    return ComplianceBand.CRITICAL


def compute_compliance(
    internship_id: str,
    summary: InternshipObligationSummary,
    records: Iterable[ObligationRecord],
    now: datetime,
    *,
    interval: DateInterval,
    policy: ObligationPolicy,
    kind: ObligationKind = ObligationKind.REPORT,
    accepted_statuses: Optional[AbstractSet] = None,
    schedule: Optional[ObligationSchedule] = None,
) -> ComplianceMetrics:
    """
    Compliance for one internship and one obligation kind.

    `expected_total` comes from the summary once obligations are generated
    and from the live schedule before that. `expected_as_of_now` is always
    live. Records of other kinds or other internships are ignored.
    """
    if schedule is None:
        schedule = generate_schedule(interval, policy)
    if accepted_statuses is None:
        accepted_statuses = default_accepted_statuses(kind)

    if summary.obligations_generated:
        expected_total = summary.expected_for(kind)
    else:
        expected_total = schedule.total_expected

    expected_as_of_now = schedule.expected_as_of(now, kind)
    delivered = sum(
        1 for r in records
        if r.internship_id == internship_id
        and r.kind == kind
        and r.status in accepted_statuses
    )

    return ComplianceMetrics(
        kind=kind,
        expected_total=expected_total,
        expected_as_of_now=expected_as_of_now,
        submitted_or_approved=delivered,
        completion_percentage=_percentage(delivered, expected_as_of_now),
    )


def internship_compliance(
    internship_id: str,
    institution_id: str,
    summary: InternshipObligationSummary,
    records: Sequence[ObligationRecord],
    now: datetime,
    *,
    interval: DateInterval,
    policy: ObligationPolicy,
) -> InternshipCompliance:
    """Report and visit compliance for one internship, with an overall band."""
    schedule = generate_schedule(interval, policy)
    metrics = {
        kind: compute_compliance(
            internship_id, summary, records, now,
            interval=interval, policy=policy, kind=kind, schedule=schedule,
        )
        for kind in (ObligationKind.REPORT, ObligationKind.VISIT)
    }
    overall = _mean([
        metrics[ObligationKind.REPORT].completion_percentage,
        metrics[ObligationKind.VISIT].completion_percentage,
    ])
    return InternshipCompliance(
        internship_id=internship_id,
        institution_id=institution_id,
        reports=metrics[ObligationKind.REPORT],
        visits=metrics[ObligationKind.VISIT],
        overall_percentage=overall,
        band=band_for(overall),
    )


def _distribution(bands: Iterable[ComplianceBand]) -> Dict[ComplianceBand, int]:
    counts = {band: 0 for band in ComplianceBand}
    for band in bands:
        counts[band] += 1
    return counts


def rollup(
    scope_id: str,
    items: Sequence[InternshipCompliance],
    now: datetime,
    data_quality_issues: Sequence[DataQualityIssue] = (),
) -> RollupCompliance:
    """Institution-level compliance: counts summed across its internships."""
    reports_expected = sum(i.reports.expected_as_of_now for i in items)
    reports_delivered = sum(i.reports.submitted_or_approved for i in items)
    visits_expected = sum(i.visits.expected_as_of_now for i in items)
    visits_delivered = sum(i.visits.submitted_or_approved for i in items)

    report_pct = _percentage(reports_delivered, reports_expected)
    visit_pct = _percentage(visits_delivered, visits_expected)
    overall = _mean([report_pct, visit_pct])

    return RollupCompliance(
        scope=RollupScope.INSTITUTION,
        scope_id=scope_id,
        computed_at=now,
        internship_count=len(items),
        reports_expected_total=sum(i.reports.expected_total for i in items),
        reports_expected_as_of_now=reports_expected,
        reports_submitted_or_approved=reports_delivered,
        visits_expected_total=sum(i.visits.expected_total for i in items),
        visits_expected_as_of_now=visits_expected,
        visits_completed=visits_delivered,
        report_percentage=report_pct,
        visit_percentage=visit_pct,
        overall_percentage=overall,
        band=band_for(overall),
        distribution=_distribution(i.band for i in items),
        members=[i.internship_id for i in items],
        data_quality_issues=list(data_quality_issues),
    )


def state_rollup(
    institutions: Sequence[RollupCompliance],
    now: datetime,
    scope_id: str = "state",
) -> RollupCompliance:
    """
    State-level compliance across institution rollups.

    Members are institution IDs ordered worst-first, and the distribution
    counts institutions per band.
    """
    reports_expected = sum(r.reports_expected_as_of_now for r in institutions)
    reports_delivered = sum(r.reports_submitted_or_approved for r in institutions)
    visits_expected = sum(r.visits_expected_as_of_now for r in institutions)
    visits_delivered = sum(r.visits_completed for r in institutions)

    report_pct = _percentage(reports_delivered, reports_expected)
    visit_pct = _percentage(visits_delivered, visits_expected)
    overall = _mean([report_pct, visit_pct])

    ranked: List[RollupCompliance] = sorted(
        institutions, key=lambda r: (r.overall_percentage, r.scope_id)
    )
    issues = [issue for r in institutions for issue in r.data_quality_issues]

    return RollupCompliance(
        scope=RollupScope.STATE,
        scope_id=scope_id,
        computed_at=now,
        internship_count=sum(r.internship_count for r in institutions),
        reports_expected_total=sum(r.reports_expected_total for r in institutions),
        reports_expected_as_of_now=reports_expected,
        reports_submitted_or_approved=reports_delivered,
        visits_expected_total=sum(r.visits_expected_total for r in institutions),
        visits_expected_as_of_now=visits_expected,
        visits_completed=visits_delivered,
        report_percentage=report_pct,
        visit_percentage=visit_pct,
        overall_percentage=overall,
        band=band_for(overall),
        distribution=_distribution(r.band for r in institutions),
        members=[r.scope_id for r in ranked],
        data_quality_issues=issues,
    )
