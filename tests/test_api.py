"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from compliance_kernel.api.app import create_app
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.registry.store import InternshipRegistry
from compliance_kernel.store.records import SqliteObligationStore


AS_OF = "2025-03-06T00:00:00"


@pytest.fixture
def client():
    """Create a test client with fresh components."""
    app = create_app(
        registry=InternshipRegistry(),
        store=SqliteObligationStore(db_path=":memory:"),
        policy=ObligationPolicy(),
    )
    return TestClient(app)


def _create(client, internship_id="int_1", institution_id="inst_a",
            start="2025-01-15", end="2025-05-15"):
    return client.post("/internships", json={
        "internship_id": internship_id,
        "institution_id": institution_id,
        "student_id": "stu_1",
        "start_date": start,
        "end_date": end,
    })


class TestPolicyEndpoints:
    def test_get_default_policy(self, client):
        data = client.get("/policy").json()
        assert data["min_days_for_inclusion"] == 10
        assert data["report_due_day_of_next_month"] == 5
        assert data["max_segments"] == 24

    def test_replace_policy(self, client):
        response = client.put("/policy", json={"min_days_for_inclusion": 20})
        assert response.status_code == 200
        assert client.get("/policy").json()["min_days_for_inclusion"] == 20

        _create(client)
        # January (17 days) and May (15 days) drop out under the stricter threshold
        schedule = client.get("/internships/int_1/schedule", params={"now": AS_OF}).json()
        assert schedule["total_expected"] == 3

    def test_invalid_policy_rejected(self, client):
        response = client.put("/policy", json={"report_due_day_of_next_month": 31})
        assert response.status_code == 422


class TestInternshipEndpoints:
    def test_create_internship(self, client):
        response = _create(client)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "int_1"
        assert data["total_expected"] == 5
        assert data["warnings"] == []

    def test_create_generates_id(self, client):
        response = client.post("/internships", json={
            "institution_id": "inst_a",
            "start_date": "2025-01-15",
            "end_date": "2025-05-15",
        })
        assert response.json()["id"].startswith("int_")

    def test_short_interval_warns(self, client):
        data = _create(client, start="2025-03-25", end="2025-04-03").json()
        assert data["total_expected"] == 0
        assert len(data["warnings"]) == 1

    def test_reversed_dates_rejected(self, client):
        response = _create(client, start="2025-05-15", end="2025-01-15")
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "data_quality"
        assert detail["type"] == "InvalidIntervalError"
        assert client.get("/internships/int_1").status_code == 404

    def test_missing_end_date_rejected(self, client):
        response = _create(client, end=None)
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "data_quality"

    def test_too_long_rejected(self, client):
        response = _create(client, start="2025-01-01", end="2027-06-30")
        assert response.status_code == 422
        assert response.json()["detail"]["type"] == "RangeTooLongError"

    def test_duplicate_id_conflict(self, client):
        _create(client)
        assert _create(client).status_code == 409

    def test_get_internship(self, client):
        _create(client)
        data = client.get("/internships/int_1").json()
        assert data["internship"]["institution_id"] == "inst_a"
        assert data["summary"]["obligations_generated"] is False

    def test_get_missing_internship(self, client):
        assert client.get("/internships/nope").status_code == 404

    def test_update_dates(self, client):
        _create(client)
        response = client.put("/internships/int_1/dates", json={
            "start_date": "2025-01-15",
            "end_date": "2025-07-31",
        })
        assert response.status_code == 200
        assert response.json()["end_date"] == "2025-07-31"

    def test_update_dates_rejects_bad_interval(self, client):
        _create(client)
        response = client.put("/internships/int_1/dates", json={
            "start_date": "2025-08-01",
            "end_date": "2025-07-31",
        })
        assert response.status_code == 422
        assert client.get("/internships/int_1").json()["internship"]["end_date"] == "2025-05-15"

    def test_delete_internship(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")
        data = client.delete("/internships/int_1").json()
        assert data["status"] == "deleted"
        assert data["records_removed"] == 10
        assert client.get("/internships/int_1").status_code == 404


class TestScheduleEndpoint:
    def test_schedule_as_of(self, client):
        _create(client)
        response = client.get("/internships/int_1/schedule", params={"now": AS_OF})
        assert response.status_code == 200
        data = response.json()
        assert data["total_expected"] == 5
        assert data["expected_reports_as_of"] == 2
        assert data["expected_visits_as_of"] == 2
        assert [p["month"] for p in data["periods"]] == [1, 2, 3, 4, 5]
        assert data["periods"][0]["report_due_at"] == "2025-02-05T23:59:59"
        assert data["periods"][-1]["is_final_period"] is True

    def test_submission_states(self, client):
        _create(client)
        periods = client.get(
            "/internships/int_1/schedule", params={"now": AS_OF}
        ).json()["periods"]
        assert periods[0]["submission"]["state"] == "overdue"
        assert periods[1]["submission"]["state"] == "can_submit"
        assert periods[2]["submission"]["state"] == "not_yet_due"

    def test_approved_report_is_completed(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")
        response = client.put(
            "/internships/int_1/records/report/2025/1/status",
            json={"status": "APPROVED", "changed_at": "2025-02-04T10:00:00"},
        )
        assert response.json()["submitted_at"] == "2025-02-04T10:00:00"

        periods = client.get(
            "/internships/int_1/schedule", params={"now": "2025-03-20T00:00:00"}
        ).json()["periods"]
        assert periods[0]["submission"]["state"] == "completed"
        assert periods[0]["report_status"] == "APPROVED"
        assert periods[0]["lateness"] == {"is_late": False, "days_late": 0}
        # February's report window closed on March 10 with nothing handed in
        assert periods[1]["submission"]["state"] == "overdue"
        assert periods[1]["report_status"] == "DRAFT"
        assert periods[1]["lateness"] == {"is_late": True, "days_late": 14}

    def test_submission_after_due_date_is_late(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")
        client.put(
            "/internships/int_1/records/report/2025/1/status",
            json={"status": "SUBMITTED", "changed_at": "2025-02-08T12:00:00"},
        )
        period = client.get(
            "/internships/int_1/schedule", params={"now": AS_OF}
        ).json()["periods"][0]
        assert period["submission"]["state"] == "completed"
        assert period["lateness"] == {"is_late": True, "days_late": 2}

    def test_schedule_without_records_has_no_lateness(self, client):
        _create(client)
        period = client.get(
            "/internships/int_1/schedule", params={"now": AS_OF}
        ).json()["periods"][0]
        assert period["report_status"] is None
        assert period["lateness"] is None

    def test_schedule_missing_internship(self, client):
        assert client.get("/internships/nope/schedule").status_code == 404


class TestReconcileEndpoints:
    def test_reconcile_is_idempotent(self, client):
        _create(client)
        first = client.post("/internships/int_1/reconcile").json()
        assert first["created_count"] == 10
        assert first["summary"]["total_expected_reports"] == 5
        assert first["summary"]["obligations_generated"] is True

        second = client.post("/internships/int_1/reconcile").json()
        assert second["created_count"] == 0
        assert len(client.get("/internships/int_1/records").json()) == 10

    def test_list_records_by_kind(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")
        reports = client.get("/internships/int_1/records", params={"kind": "report"}).json()
        assert len(reports) == 5
        assert all(r["status"] == "DRAFT" for r in reports)
        visits = client.get("/internships/int_1/records", params={"kind": "visit"}).json()
        assert all(r["status"] == "SCHEDULED" for r in visits)

    def test_extension_then_reconcile(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")
        client.put("/internships/int_1/dates", json={
            "start_date": "2025-01-15",
            "end_date": "2025-07-31",
        })

        summary = client.post("/internships/int_1/recalculate").json()
        assert summary["total_expected_reports"] == 7
        assert summary["obligations_generated"] is False

        data = client.post("/internships/int_1/reconcile").json()
        assert data["created_count"] == 4
        assert data["summary"]["obligations_generated"] is True


class TestStatusAndCompliance:
    def _setup(self, client):
        _create(client)
        client.post("/internships/int_1/reconcile")

    def test_report_submission_updates_compliance(self, client):
        self._setup(client)
        response = client.put(
            "/internships/int_1/records/report/2025/1/status", json={"status": "SUBMITTED"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "SUBMITTED"

        data = client.get("/internships/int_1/compliance", params={"now": AS_OF}).json()
        assert data["reports"]["expected_as_of_now"] == 2
        assert data["reports"]["submitted_or_approved"] == 1
        assert data["reports"]["completion_percentage"] == 50.0
        assert data["visits"]["completion_percentage"] == 0.0
        assert data["band"] == "critical"

    def test_invalid_status_rejected(self, client):
        self._setup(client)
        response = client.put(
            "/internships/int_1/records/report/2025/1/status", json={"status": "FINISHED"}
        )
        assert response.status_code == 422

    def test_report_status_on_visit_rejected(self, client):
        self._setup(client)
        response = client.put(
            "/internships/int_1/records/visit/2025/1/status", json={"status": "SUBMITTED"}
        )
        assert response.status_code == 422

    def test_missing_record(self, client):
        self._setup(client)
        response = client.put(
            "/internships/int_1/records/report/2025/9/status", json={"status": "SUBMITTED"}
        )
        assert response.status_code == 404

    def test_institution_and_state_compliance(self, client):
        self._setup(client)
        _create(client, internship_id="int_2", institution_id="inst_b")
        client.post("/internships/int_2/reconcile")
        for kind, status in (("report", "APPROVED"), ("visit", "COMPLETED")):
            for month in (1, 2):
                client.put(
                    f"/internships/int_2/records/{kind}/2025/{month}/status",
                    json={"status": status},
                )

        institution = client.get(
            "/institutions/inst_b/compliance", params={"now": AS_OF}
        ).json()
        assert institution["scope"] == "institution"
        assert institution["overall_percentage"] == 100.0
        assert institution["band"] == "excellent"

        state = client.get("/state/compliance", params={"now": AS_OF}).json()
        assert state["scope"] == "state"
        assert state["internship_count"] == 2
        assert state["members"] == ["inst_a", "inst_b"]
        assert state["report_percentage"] == 50.0

    def test_aware_now_is_normalized(self, client):
        self._setup(client)
        data = client.get(
            "/internships/int_1/compliance", params={"now": "2025-03-06T02:00:00+02:00"}
        ).json()
        # 02:00+02:00 is 00:00 UTC, after the March 5 report deadline
        assert data["reports"]["expected_as_of_now"] == 2
