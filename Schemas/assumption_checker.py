"""
FILE: Schemas/assumption_checker.py
------------------------------------
Pydantic schemas for assumption checks.
One AssumptionResult per check. A check that cannot run for the given
input (sample too small, too few groups) is still returned, with
status INAPPLICABLE and nulls in statistic / p_value / passed.
"""

from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


# ─────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────

class AssumptionStatus(str, Enum):
    PASSED       = "passed"        # assumption met
    FAILED       = "failed"        # assumption violated
    INAPPLICABLE = "inapplicable"  # check cannot run on this input
    ASSUMED      = "assumed"       # not testable from the data (e.g. independence)


# ─────────────────────────────────────────────
# REQUESTED CHECKS
# ─────────────────────────────────────────────

class AssumptionChecks(BaseModel):
    normality:   bool = False
    homogeneity: bool = False
    outliers:    bool = False

    def requested(self) -> list[str]:
        return [name for name, wanted in self.model_dump().items() if wanted]


# ─────────────────────────────────────────────
# SINGLE ASSUMPTION RESULT
# ─────────────────────────────────────────────

class OutlierPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    index: int                              # position in the input sequence


class AssumptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str                               # e.g. "normality", "homogeneity"
    test_used: str                          # e.g. "Shapiro-Wilk", "Levene"
    status: AssumptionStatus

    # ── Statistical details (null when inapplicable) ──
    statistic: float | None = None
    p_value: float | None = None
    passed: bool | None = None

    # ── Plain English ──
    verdict: str = ""                       # short label, e.g. "normal", "not homogeneous"
    message: str = ""                       # one-sentence explanation

    # ── Outlier detection only ──
    outliers: tuple[OutlierPoint, ...] = Field(default_factory=tuple)
    lower_bound: float | None = None
    upper_bound: float | None = None
