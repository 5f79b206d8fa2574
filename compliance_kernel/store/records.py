"""
Obligation Record Store — persisted monthly report and visit obligations.

Behavioral Contract:
- (internship_id, kind, year, month) is unique; the database enforces it.
- Records are created by reconciliation and mutated only through status
  updates from the submission / review workflows.
- Records are deleted only together with their internship.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from compliance_kernel.errors import DuplicateObligationRecord
from compliance_kernel.models.obligation import (
    InternshipObligationSummary,
    ObligationKey,
    ObligationKind,
    ObligationRecord,
    handed_in_statuses,
    record_adapter,
    status_type,
)
from compliance_kernel.models.reconciler import InsertOutcome

logger = logging.getLogger(__name__)


class SqliteObligationStore:
    """
    Obligation records and expected-count summaries.
    Prototype: SQLite. Production: the platform's relational database.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the record and summary tables if they don't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS obligation_records (
                internship_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                year INTEGER NOT NULL,
                month INTEGER NOT NULL,
                status TEXT NOT NULL,
                due_at TEXT NOT NULL,
                record_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (internship_id, kind, year, month)
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_records_internship
            ON obligation_records(internship_id, kind)
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS obligation_summaries (
                internship_id TEXT PRIMARY KEY,
                summary_json TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self._conn.commit()

    def _deserialize(self, row: sqlite3.Row) -> ObligationRecord:
        return record_adapter.validate_json(row["record_json"])

    # --- Reconciler collaborator interface ---

    def list_existing_obligation_keys(
        self, internship_id: str, kind: ObligationKind
    ) -> Set[ObligationKey]:
        rows = self._conn.execute(
            "SELECT year, month FROM obligation_records "
            "WHERE internship_id = ? AND kind = ?",
            (internship_id, kind.value),
        ).fetchall()
        return {ObligationKey(r["year"], r["month"]) for r in rows}

    def insert(self, record: ObligationRecord) -> ObligationRecord:
        """Insert a record, raising DuplicateObligationRecord if its key exists."""
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO obligation_records (
                        internship_id, kind, year, month, status, due_at,
                        record_json, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.internship_id,
                        record.kind.value,
                        record.year,
                        record.month,
                        record.status.value,
                        record.due_at.isoformat(),
                        record.model_dump_json(),
                        record.created_at.isoformat(),
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise DuplicateObligationRecord(
                    record.internship_id,
                    record.kind.value,
                    record.year,
                    record.month,
                    detail=str(e),
                ) from e
        return record

    def insert_if_absent(self, record: ObligationRecord) -> InsertOutcome:
        try:
            self.insert(record)
        except DuplicateObligationRecord:
            return InsertOutcome.ALREADY_EXISTS
        return InsertOutcome.CREATED

    def save_summary(self, internship_id: str, summary: InternshipObligationSummary) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO obligation_summaries (internship_id, summary_json, updated_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(internship_id) DO UPDATE SET
                    summary_json = excluded.summary_json,
                    updated_at = excluded.updated_at
                """,
                (internship_id, summary.model_dump_json()),
            )
            self._conn.commit()

    # --- Queries and workflow hooks ---

    def get_summary(self, internship_id: str) -> InternshipObligationSummary:
        """The cached summary, or an empty not-yet-generated one."""
        row = self._conn.execute(
            "SELECT summary_json FROM obligation_summaries WHERE internship_id = ?",
            (internship_id,),
        ).fetchone()
        if row is None:
            return InternshipObligationSummary()
        return InternshipObligationSummary.model_validate_json(row["summary_json"])

    def get_record(
        self, internship_id: str, kind: ObligationKind, year: int, month: int
    ) -> Optional[ObligationRecord]:
        row = self._conn.execute(
            "SELECT record_json FROM obligation_records "
            "WHERE internship_id = ? AND kind = ? AND year = ? AND month = ?",
            (internship_id, kind.value, year, month),
        ).fetchone()
        return self._deserialize(row) if row else None

    def list_records(
        self, internship_id: str, kind: Optional[ObligationKind] = None
    ) -> List[ObligationRecord]:
        """Records for an internship, ordered by kind then (year, month)."""
        if kind is None:
            rows = self._conn.execute(
                "SELECT record_json FROM obligation_records WHERE internship_id = ? "
                "ORDER BY kind, year, month",
                (internship_id,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT record_json FROM obligation_records "
                "WHERE internship_id = ? AND kind = ? ORDER BY year, month",
                (internship_id, kind.value),
            ).fetchall()
        return [self._deserialize(r) for r in rows]

    def update_status(
        self,
        internship_id: str,
        kind: ObligationKind,
        year: int,
        month: int,
        status: Enum,
        now: datetime,
    ) -> Optional[ObligationRecord]:
        """
        Apply a workflow status change at `now`. Returns the updated record,
        or None if no such record exists. Raises ValueError for a status
        that does not belong to the record's kind.

        Handing the obligation in stamps `submitted_at` with `now`; sending
        it back to the submitter clears it, so a resubmission is timed afresh.
        """
        status = status_type(kind)(getattr(status, "value", status))
        with self._lock:
            record = self.get_record(internship_id, kind, year, month)
            if record is None:
                return None
            handed_in = handed_in_statuses(kind)
            submitted_at = record.submitted_at
            if status in handed_in and record.status not in handed_in:
                submitted_at = now
            elif status not in handed_in:
                submitted_at = None
            updated = record.model_copy(
                update={"status": status, "submitted_at": submitted_at}
            )
            self._conn.execute(
                "UPDATE obligation_records SET status = ?, record_json = ? "
                "WHERE internship_id = ? AND kind = ? AND year = ? AND month = ?",
                (
                    status.value,
                    updated.model_dump_json(),
                    internship_id,
                    kind.value,
                    year,
                    month,
                ),
            )
            self._conn.commit()
        logger.info(
            "Status of %s %d-%02d for %s set to %s",
            kind.value, year, month, internship_id, status.value,
        )
        return updated

    def delete_internship(self, internship_id: str) -> int:
        """Remove every record and the summary of a deleted internship."""
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM obligation_records WHERE internship_id = ?",
                (internship_id,),
            )
            self._conn.execute(
                "DELETE FROM obligation_summaries WHERE internship_id = ?",
                (internship_id,),
            )
            self._conn.commit()
        logger.info("Deleted %d obligation records for %s", cursor.rowcount, internship_id)
        return cursor.rowcount

    def count(self, internship_id: Optional[str] = None) -> int:
        if internship_id is None:
            row = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM obligation_records"
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM obligation_records WHERE internship_id = ?",
                (internship_id,),
            ).fetchone()
        return row["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
