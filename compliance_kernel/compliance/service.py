"""Compliance Service — gathers registry and store data for the aggregator."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from compliance_kernel.compliance.aggregator import internship_compliance, rollup, state_rollup
from compliance_kernel.errors import InvalidIntervalError, RangeTooLongError
from compliance_kernel.models.compliance import (
    DataQualityIssue,
    InternshipCompliance,
    RollupCompliance,
)
from compliance_kernel.models.internship import Internship
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.registry.store import InternshipRegistry
from compliance_kernel.store.records import SqliteObligationStore

logger = logging.getLogger(__name__)


class ComplianceService:
    """Read-side entry point for dashboard and report services."""

    def __init__(
        self,
        registry: InternshipRegistry,
        store: SqliteObligationStore,
        policy: Optional[ObligationPolicy] = None,
    ):
        self.registry = registry
        self.store = store
        self.policy = policy or ObligationPolicy()

    def for_internship(self, internship_id: str, now: datetime) -> InternshipCompliance:
        """Raises InvalidIntervalError / RangeTooLongError for unusable dates."""
        return self._compute(self.registry.get(internship_id), now)

    def for_institution(self, institution_id: str, now: datetime) -> RollupCompliance:
        items, issues = self._collect(self.registry.by_institution(institution_id), now)
        return rollup(institution_id, items, now, issues)

    def for_state(self, now: datetime) -> RollupCompliance:
        return state_rollup(
            [self.for_institution(i, now) for i in self.registry.institutions()],
            now,
        )

    def _compute(self, internship: Internship, now: datetime) -> InternshipCompliance:
        return internship_compliance(
            internship.internship_id,
            internship.institution_id,
            self.store.get_summary(internship.internship_id),
            self.store.list_records(internship.internship_id),
            now,
            interval=internship.interval(),
            policy=self.policy,
        )

    def _collect(
        self, internships: List[Internship], now: datetime
    ) -> Tuple[List[InternshipCompliance], List[DataQualityIssue]]:
        """Compute each internship, setting bad-date ones aside as data-quality issues."""
        items: List[InternshipCompliance] = []
        issues: List[DataQualityIssue] = []
        for internship in internships:
            try:
                items.append(self._compute(internship, now))
            except (InvalidIntervalError, RangeTooLongError) as e:
                logger.warning(
                    "Excluding %s from rollup: %s", internship.internship_id, e
                )
                issues.append(DataQualityIssue(
                    internship_id=internship.internship_id,
                    institution_id=internship.institution_id,
                    error=type(e).__name__,
                    detail=str(e),
                ))
        return items, issues
