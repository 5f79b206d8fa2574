"""
Obligation Reconciler — materializes the schedule as persisted records.

Behavioral Contract:
- Creates one report record and one visit record per scheduled period
  that does not already have one.
- Never mutates or removes an existing record. Regeneration is additive.
- A duplicate-key insert means a concurrent reconciliation won the race;
  it is a no-op, not an error.
- Any other store failure propagates. Re-running completes the remainder.
- Decides what to write; persistence is delegated to the injected store.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Set

from compliance_kernel.errors import DuplicateObligationRecord
from compliance_kernel.models.interval import DateInterval
from compliance_kernel.models.obligation import (
    InternshipObligationSummary,
    MonthlyReportRecord,
    ObligationKey,
    ObligationKind,
    ObligationRecord,
    ReportStatus,
    VisitRecord,
    VisitStatus,
)
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.models.reconciler import InsertOutcome, ReconciliationResult
from compliance_kernel.scheduler.generator import ObligationSchedule, generate_schedule

logger = logging.getLogger(__name__)


class ObligationStore(Protocol):
    """Persistence collaborator — pluggable backend."""

    def list_existing_obligation_keys(
        self, internship_id: str, kind: ObligationKind
    ) -> Set[ObligationKey]: ...

    def insert_if_absent(self, record: ObligationRecord) -> InsertOutcome: ...

    def save_summary(
        self, internship_id: str, summary: InternshipObligationSummary
    ) -> None: ...


def plan_missing_records(
    internship_id: str,
    schedule: ObligationSchedule,
    kind: ObligationKind,
    existing_keys: Iterable[ObligationKey],
    created_at: datetime,
) -> List[ObligationRecord]:
    """The records of `kind` the schedule calls for that are not yet present."""
    existing = set(existing_keys)
    planned: List[ObligationRecord] = []
    for period in schedule.periods:
        if period.key in existing:
            continue
        if kind == ObligationKind.REPORT:
            planned.append(MonthlyReportRecord(
                internship_id=internship_id,
                year=period.year,
                month=period.month,
                status=ReportStatus.DRAFT,
                due_at=period.report_due_at,
                window_start=period.report_window_start,
                window_end=period.report_window_end,
                created_at=created_at,
            ))
        else:
            planned.append(VisitRecord(
                internship_id=internship_id,
                year=period.year,
                month=period.month,
                status=VisitStatus.SCHEDULED,
                due_at=period.visit_due_at,
                created_at=created_at,
            ))
    return planned


class ObligationReconciler:
    """Idempotent creation of missing obligation records for one internship."""

    def __init__(self, store: ObligationStore, policy: Optional[ObligationPolicy] = None):
        self.store = store
        self.policy = policy or ObligationPolicy()

    def reconcile(
        self,
        internship_id: str,
        interval: DateInterval,
        now: datetime,
    ) -> ReconciliationResult:
        """
        Bring the persisted records in line with the schedule.

        `now` stamps the created records and the summary; it does not
        influence which records are planned.
        """
        schedule = generate_schedule(interval, self.policy)

        created: List[ObligationRecord] = []
        already_present = 0
        for kind in (ObligationKind.REPORT, ObligationKind.VISIT):
            existing = self.store.list_existing_obligation_keys(internship_id, kind)
            for record in plan_missing_records(internship_id, schedule, kind, existing, now):
                if self._insert(record) == InsertOutcome.CREATED:
                    created.append(record)
                else:
                    already_present += 1

        summary = InternshipObligationSummary(
            total_expected_reports=schedule.total_expected,
            total_expected_visits=schedule.total_expected,
            obligations_generated=True,
            last_calculated_at=now,
        )
        self.store.save_summary(internship_id, summary)

        logger.info(
            "Reconciled %s: %d periods, %d records created, %d already present",
            internship_id, schedule.total_expected, len(created), already_present,
        )
        return ReconciliationResult(
            internship_id=internship_id,
            created=created,
            already_present=already_present,
            summary=summary,
        )

    def recalculate_expected_counts(
        self,
        internship_id: str,
        interval: DateInterval,
        now: datetime,
    ) -> InternshipObligationSummary:
        """
        Refresh the cached expected counts after a date change.

        Creates no records. The summary stays marked as generated only if
        every scheduled period already has both of its records.
        """
        schedule = generate_schedule(interval, self.policy)
        expected_keys = set(schedule.keys())

        complete = all(
            expected_keys <= self.store.list_existing_obligation_keys(internship_id, kind)
            for kind in (ObligationKind.REPORT, ObligationKind.VISIT)
        )

        summary = InternshipObligationSummary(
            total_expected_reports=schedule.total_expected,
            total_expected_visits=schedule.total_expected,
            obligations_generated=complete,
            last_calculated_at=now,
        )
        self.store.save_summary(internship_id, summary)
        logger.info(
            "Recalculated expected counts for %s: %d (generated=%s)",
            internship_id, schedule.total_expected, complete,
        )
        return summary

    def _insert(self, record: ObligationRecord) -> InsertOutcome:
        try:
            return self.store.insert_if_absent(record)
        except DuplicateObligationRecord:
            logger.debug(
                "Concurrent reconciliation already created %s %d-%02d for %s",
                record.kind.value, record.year, record.month, record.internship_id,
            )
            return InsertOutcome.ALREADY_EXISTS
