"""Tests for the Internship Registry and the Compliance Service built on it."""

from datetime import date, datetime

import pytest

from compliance_kernel.compliance.service import ComplianceService
from compliance_kernel.errors import InternshipNotFoundError, InvalidIntervalError
from compliance_kernel.models.compliance import ComplianceBand
from compliance_kernel.models.internship import Internship
from compliance_kernel.models.obligation import ObligationKind, ReportStatus, VisitStatus
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.reconciler.engine import ObligationReconciler
from compliance_kernel.registry.store import InternshipRegistry
from compliance_kernel.store.records import SqliteObligationStore


CREATED = datetime(2025, 1, 10)


def _internship(internship_id, institution_id="inst_a", start=date(2025, 1, 15), end=date(2025, 5, 15)):
    return Internship(
        internship_id=internship_id,
        institution_id=institution_id,
        student_id=f"stu_{internship_id}",
        start_date=start,
        end_date=end,
        created_at=CREATED,
    )


class TestInternshipRegistry:
    def setup_method(self):
        self.registry = InternshipRegistry()

    def test_add_and_get(self):
        self.registry.add(_internship("int_1"))
        assert self.registry.get("int_1").institution_id == "inst_a"
        assert self.registry.find("int_missing") is None

    def test_get_missing_raises(self):
        with pytest.raises(InternshipNotFoundError) as exc_info:
            self.registry.get("int_missing")
        assert exc_info.value.internship_id == "int_missing"
        assert "int_missing" in str(exc_info.value)

    def test_not_found_is_a_key_error(self):
        with pytest.raises(KeyError):
            self.registry.get("int_missing")

    def test_update_dates(self):
        self.registry.add(_internship("int_1"))
        updated = self.registry.update_dates(
            "int_1", date(2025, 2, 1), date(2025, 8, 31), datetime(2025, 1, 20)
        )
        assert updated.start_date == date(2025, 2, 1)
        assert updated.updated_at == datetime(2025, 1, 20)
        assert self.registry.get("int_1").end_date == date(2025, 8, 31)

    def test_remove(self):
        self.registry.add(_internship("int_1"))
        assert self.registry.remove("int_1") is True
        assert self.registry.remove("int_1") is False
        assert self.registry.all() == []

    def test_institution_queries(self):
        self.registry.add(_internship("int_1", "inst_b"))
        self.registry.add(_internship("int_2", "inst_a"))
        self.registry.add(_internship("int_3", "inst_b"))
        assert self.registry.institutions() == ["inst_a", "inst_b"]
        assert {i.internship_id for i in self.registry.by_institution("inst_b")} == {
            "int_1", "int_3",
        }


class TestComplianceService:
    def setup_method(self):
        self.registry = InternshipRegistry()
        self.store = SqliteObligationStore(db_path=":memory:")
        self.policy = ObligationPolicy()
        self.service = ComplianceService(self.registry, self.store, self.policy)
        self.reconciler = ObligationReconciler(self.store, self.policy)

    def teardown_method(self):
        self.store.close()

    def _register(self, internship: Internship) -> None:
        self.registry.add(internship)
        self.reconciler.reconcile(internship.internship_id, internship.interval(), CREATED)

    def test_for_internship(self):
        self._register(_internship("int_1"))
        self.store.update_status(
            "int_1", ObligationKind.REPORT, 2025, 1, ReportStatus.SUBMITTED, CREATED
        )
        self.store.update_status(
            "int_1", ObligationKind.VISIT, 2025, 1, VisitStatus.COMPLETED, CREATED
        )
        self.store.update_status(
            "int_1", ObligationKind.VISIT, 2025, 2, VisitStatus.COMPLETED, CREATED
        )

        result = self.service.for_internship("int_1", datetime(2025, 3, 6))

        assert result.reports.expected_total == 5
        assert result.reports.expected_as_of_now == 2
        assert result.reports.completion_percentage == 50.0
        assert result.visits.completion_percentage == 100.0
        assert result.band == ComplianceBand.GOOD

    def test_for_internship_with_bad_dates_raises(self):
        self.registry.add(_internship("int_bad", end=None))
        with pytest.raises(InvalidIntervalError):
            self.service.for_internship("int_bad", datetime(2025, 3, 6))

    def test_institution_sets_bad_dates_aside(self):
        self._register(_internship("int_1"))
        self.registry.add(_internship("int_bad", start=None))

        result = self.service.for_institution("inst_a", datetime(2025, 3, 6))

        assert result.members == ["int_1"]
        assert result.internship_count == 1
        assert len(result.data_quality_issues) == 1
        issue = result.data_quality_issues[0]
        assert issue.internship_id == "int_bad"
        assert issue.error == "InvalidIntervalError"

    def test_long_interval_is_a_data_quality_issue(self):
        self.registry.add(_internship("int_long", start=date(2024, 1, 1), end=date(2026, 6, 30)))
        result = self.service.for_institution("inst_a", datetime(2025, 3, 6))
        assert result.data_quality_issues[0].error == "RangeTooLongError"

    def test_for_state(self):
        self._register(_internship("int_1", "inst_a"))
        self._register(_internship("int_2", "inst_b"))
        for month in (1, 2):
            self.store.update_status(
                "int_1", ObligationKind.REPORT, 2025, month, "APPROVED", CREATED
            )
            self.store.update_status(
                "int_1", ObligationKind.VISIT, 2025, month, "COMPLETED", CREATED
            )

        result = self.service.for_state(datetime(2025, 3, 6))

        assert result.members == ["inst_b", "inst_a"]
        assert result.internship_count == 2
        assert result.reports_expected_as_of_now == 4
        assert result.report_percentage == 50.0
        assert result.distribution[ComplianceBand.EXCELLENT] == 1
        assert result.distribution[ComplianceBand.CRITICAL] == 1
