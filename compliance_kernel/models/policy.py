"""Obligation Policy — the immutable constants that drive schedule generation."""

import os
from enum import Enum
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


ENV_PREFIX = "COMPLIANCE_"


class AsOfThreshold(str, Enum):
    """Which instant of a period decides whether it counts as due."""
    DUE_DATE = "due_date"        # report_due_at / visit_due_at
    WINDOW_END = "window_end"    # report_window_end (visits have no window)


class ObligationPolicy(BaseModel):
    """Configuration injected into every scheduling and aggregation call."""

    model_config = ConfigDict(frozen=True)

    min_days_for_inclusion: int = Field(default=10, ge=0, le=31)
    report_due_day_of_next_month: int = Field(default=5, ge=1, le=28)
    visit_due_at_month_end: bool = True
    max_segments: int = Field(default=24, ge=1)
    min_interval_weeks: int = Field(default=16, ge=0)
    # A due instant equal to `now` counts as due when inclusive.
    as_of_inclusive: bool = True
    as_of_threshold: AsOfThreshold = AsOfThreshold.DUE_DATE

    @property
    def report_window_close_day(self) -> int:
        """Day of the following month on which the submission window closes."""
        return self.report_due_day_of_next_month + 5


def policy_from_env(environ: Optional[Mapping[str, str]] = None) -> ObligationPolicy:
    """
    Build a policy from COMPLIANCE_* environment variables.

    Unset variables keep their defaults; malformed values raise a pydantic
    ValidationError.
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, str] = {}
    for name in ObligationPolicy.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            overrides[name] = raw
    return ObligationPolicy.model_validate(overrides)
