"""Reconciliation outcome types."""

from enum import Enum
from typing import List

from pydantic import BaseModel

from compliance_kernel.models.obligation import (
    InternshipObligationSummary,
    ObligationRecord,
)


class InsertOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class ReconciliationResult(BaseModel):
    """What a single reconciliation run wrote for one internship."""

    internship_id: str
    created: List[ObligationRecord] = []
    already_present: int = 0                # Planned records another writer beat us to
    summary: InternshipObligationSummary
