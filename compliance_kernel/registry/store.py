"""
Internship Registry — the internships whose schedules are reconciled.

Updated by: intake / date-change endpoints
Queried by: Reconciler callers + Compliance rollups
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from compliance_kernel.errors import InternshipNotFoundError
from compliance_kernel.models.internship import Internship

logger = logging.getLogger(__name__)


class InternshipRegistry:
    """
    In-memory internship registry for the prototype.
    Production would read the platform's application table.
    """

    def __init__(self):
        self._internships: Dict[str, Internship] = {}

    def add(self, internship: Internship) -> None:
        """Insert or replace an internship."""
        self._internships[internship.internship_id] = internship

    def get(self, internship_id: str) -> Internship:
        internship = self._internships.get(internship_id)
        if internship is None:
            raise InternshipNotFoundError(internship_id)
        return internship

    def find(self, internship_id: str) -> Optional[Internship]:
        return self._internships.get(internship_id)

    def update_dates(
        self,
        internship_id: str,
        start_date: Optional[date],
        end_date: Optional[date],
        now: datetime,
    ) -> Internship:
        """
        Change an internship's dates. Expected counts are not recomputed
        here; callers re-run reconciliation or recalculation explicitly.
        """
        internship = self.get(internship_id)
        updated = internship.model_copy(update={
            "start_date": start_date,
            "end_date": end_date,
            "updated_at": now,
        })
        self._internships[internship_id] = updated
        logger.info(
            "Dates of %s changed to %s..%s", internship_id, start_date, end_date
        )
        return updated

    def remove(self, internship_id: str) -> bool:
        if internship_id in self._internships:
            del self._internships[internship_id]
            return True
        return False

    def by_institution(self, institution_id: str) -> List[Internship]:
        return [
            i for i in self._internships.values()
            if i.institution_id == institution_id
        ]

    def institutions(self) -> List[str]:
        return sorted({i.institution_id for i in self._internships.values()})

    def all(self) -> List[Internship]:
        return list(self._internships.values())
