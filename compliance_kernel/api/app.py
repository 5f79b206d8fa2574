"""
Compliance Kernel API — FastAPI endpoints.

Exposes the obligation scheduler via a REST API for:
- Policy inspection and replacement
- Internship intake and date changes
- Schedule projection (read-only, safe on every dashboard read)
- Reconciliation of persisted obligation records
- Submission / review status updates
- Internship, institution and state compliance
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional, Union
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from compliance_kernel.compliance.service import ComplianceService
from compliance_kernel.errors import (
    InternshipNotFoundError,
    InvalidIntervalError,
    RangeTooLongError,
)
from compliance_kernel.models.internship import Internship
from compliance_kernel.models.obligation import ObligationKind, is_accepted
from compliance_kernel.models.policy import ObligationPolicy
from compliance_kernel.reconciler.engine import ObligationReconciler
from compliance_kernel.registry.store import InternshipRegistry
from compliance_kernel.scheduler.generator import ObligationSchedule, generate_schedule
from compliance_kernel.scheduler.policy import is_submission_late, submission_status
from compliance_kernel.store.records import SqliteObligationStore

logger = logging.getLogger(__name__)


# --- Request/Response Models ---

class InternshipCreateRequest(BaseModel):
    institution_id: str
    internship_id: Optional[str] = None
    student_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class DatesUpdateRequest(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class StatusUpdateRequest(BaseModel):
    status: str
    changed_at: Optional[datetime] = None  # Defaults to the request time


def _resolve_now(now: Optional[datetime]) -> datetime:
    """Default to the request time; compare everything as naive UTC."""
    if now is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def _data_quality_error(error: Union[InvalidIntervalError, RangeTooLongError]) -> HTTPException:
    return HTTPException(422, {
        "error": "data_quality",
        "type": type(error).__name__,
        "detail": str(error),
    })


# --- Application Factory ---

def create_app(
    registry: Optional[InternshipRegistry] = None,
    store: Optional[SqliteObligationStore] = None,
    policy: Optional[ObligationPolicy] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Compliance Kernel API",
        description="Internship obligation scheduling and compliance",
        version="0.1.0",
    )

    app.state.registry = registry or InternshipRegistry()
    app.state.store = store or SqliteObligationStore()
    app.state.policy = policy or ObligationPolicy()

    def reconciler() -> ObligationReconciler:
        return ObligationReconciler(app.state.store, app.state.policy)

    def compliance() -> ComplianceService:
        return ComplianceService(app.state.registry, app.state.store, app.state.policy)

    def get_internship(internship_id: str) -> Internship:
        try:
            return app.state.registry.get(internship_id)
        except InternshipNotFoundError:
            raise HTTPException(404, "Internship not found")

    def schedule_for(internship: Internship) -> ObligationSchedule:
        try:
            return generate_schedule(internship.interval(), app.state.policy)
        except (InvalidIntervalError, RangeTooLongError) as e:
            raise _data_quality_error(e)

    # === POLICY ===

    @app.get("/policy")
    def get_policy():
        """Active obligation policy."""
        return app.state.policy.model_dump(mode="json")

    @app.put("/policy")
    def update_policy(new_policy: ObligationPolicy):
        """Replace the obligation policy. Cached summaries are not recomputed."""
        app.state.policy = new_policy
        logger.info("Obligation policy replaced: %s", new_policy.model_dump(mode="json"))
        return new_policy.model_dump(mode="json")

    # === INTERNSHIPS ===

    @app.post("/internships")
    def create_internship(req: InternshipCreateRequest):
        """Register an internship. Dates must form a schedulable interval."""
        internship = Internship(
            internship_id=req.internship_id or f"int_{uuid4().hex[:12]}",
            institution_id=req.institution_id,
            student_id=req.student_id,
            start_date=req.start_date,
            end_date=req.end_date,
            created_at=_resolve_now(None),
        )
        if app.state.registry.find(internship.internship_id) is not None:
            raise HTTPException(409, "Internship already exists")
        schedule = schedule_for(internship)
        app.state.registry.add(internship)
        return {
            "id": internship.internship_id,
            "internship": internship.model_dump(mode="json"),
            "total_expected": schedule.total_expected,
            "warnings": [schedule.interval_warning] if schedule.interval_warning else [],
        }

    @app.get("/internships/{internship_id}")
    def get_internship_detail(internship_id: str):
        internship = get_internship(internship_id)
        return {
            "internship": internship.model_dump(mode="json"),
            "summary": app.state.store.get_summary(internship_id).model_dump(mode="json"),
        }

    @app.put("/internships/{internship_id}/dates")
    def update_dates(internship_id: str, req: DatesUpdateRequest):
        """Change dates. Re-run reconcile or recalculate to refresh counts."""
        internship = get_internship(internship_id)
        schedule_for(internship.model_copy(update={
            "start_date": req.start_date,
            "end_date": req.end_date,
        }))
        updated = app.state.registry.update_dates(
            internship_id, req.start_date, req.end_date, _resolve_now(None)
        )
        return updated.model_dump(mode="json")

    @app.delete("/internships/{internship_id}")
    def delete_internship(internship_id: str):
        """Delete an internship together with its obligation records."""
        get_internship(internship_id)
        app.state.registry.remove(internship_id)
        removed = app.state.store.delete_internship(internship_id)
        return {"status": "deleted", "internship_id": internship_id, "records_removed": removed}

    # === SCHEDULE ===

    @app.get("/internships/{internship_id}/schedule")
    def get_schedule(internship_id: str, now: Optional[datetime] = None):
        """
        Projected obligation periods and as-of counts.

        Each period carries its report's submission state and, once a report
        record exists, whether it is late.
        """
        as_of = _resolve_now(now)
        schedule = schedule_for(get_internship(internship_id))
        reports = {
            r.key: r
            for r in app.state.store.list_records(internship_id, ObligationKind.REPORT)
        }

        def period_view(period):
            report = reports.get(period.key)
            completed = report is not None and is_accepted(report)
            return {
                **period.model_dump(mode="json"),
                "submission": submission_status(period, as_of, completed).model_dump(mode="json"),
                "report_status": report.status.value if report else None,
                "lateness": (
                    is_submission_late(period, report, as_of).model_dump(mode="json")
                    if report else None
                ),
            }

        return {
            "internship_id": internship_id,
            "as_of": as_of.isoformat(),
            "total_expected": schedule.total_expected,
            "expected_reports_as_of": schedule.expected_as_of(as_of, ObligationKind.REPORT),
            "expected_visits_as_of": schedule.expected_as_of(as_of, ObligationKind.VISIT),
            "interval_warning": schedule.interval_warning,
            "periods": [period_view(p) for p in schedule.periods],
        }

    # === RECONCILIATION ===

    @app.post("/internships/{internship_id}/reconcile")
    def reconcile(internship_id: str):
        """Create any missing obligation records. Safe to call repeatedly."""
        internship = get_internship(internship_id)
        try:
            result = reconciler().reconcile(
                internship_id, internship.interval(), _resolve_now(None)
            )
        except (InvalidIntervalError, RangeTooLongError) as e:
            raise _data_quality_error(e)
        return {
            "internship_id": internship_id,
            "created_count": len(result.created),
            "already_present": result.already_present,
            "created": [r.model_dump(mode="json") for r in result.created],
            "summary": result.summary.model_dump(mode="json"),
        }

    @app.post("/internships/{internship_id}/recalculate")
    def recalculate(internship_id: str):
        """Refresh cached expected counts without creating records."""
        internship = get_internship(internship_id)
        try:
            summary = reconciler().recalculate_expected_counts(
                internship_id, internship.interval(), _resolve_now(None)
            )
        except (InvalidIntervalError, RangeTooLongError) as e:
            raise _data_quality_error(e)
        return summary.model_dump(mode="json")

    # === RECORDS ===

    @app.get("/internships/{internship_id}/records")
    def list_records(internship_id: str, kind: Optional[ObligationKind] = None):
        get_internship(internship_id)
        records = app.state.store.list_records(internship_id, kind)
        return [r.model_dump(mode="json") for r in records]

    @app.put("/internships/{internship_id}/records/{kind}/{year}/{month}/status")
    def update_record_status(
        internship_id: str,
        kind: ObligationKind,
        year: int,
        month: int,
        req: StatusUpdateRequest,
    ):
        """Submission / review workflow hook."""
        get_internship(internship_id)
        try:
            record = app.state.store.update_status(
                internship_id, kind, year, month, req.status,
                _resolve_now(req.changed_at),
            )
        except ValueError:
            raise HTTPException(422, f"Invalid {kind.value} status: {req.status}")
        if record is None:
            raise HTTPException(404, "Obligation record not found")
        return record.model_dump(mode="json")

    # === COMPLIANCE ===

    @app.get("/internships/{internship_id}/compliance")
    def get_internship_compliance(internship_id: str, now: Optional[datetime] = None):
        get_internship(internship_id)
        try:
            result = compliance().for_internship(internship_id, _resolve_now(now))
        except (InvalidIntervalError, RangeTooLongError) as e:
            raise _data_quality_error(e)
        return result.model_dump(mode="json")

    @app.get("/institutions/{institution_id}/compliance")
    def get_institution_compliance(institution_id: str, now: Optional[datetime] = None):
        return compliance().for_institution(
            institution_id, _resolve_now(now)
        ).model_dump(mode="json")

    @app.get("/state/compliance")
    def get_state_compliance(now: Optional[datetime] = None):
        return compliance().for_state(_resolve_now(now)).model_dump(mode="json")

    return app


# Default application instance
app = create_app()
