"""
FILE: Schemas/statistician.py
------------------------------
Pydantic output schema for a single test run.
TestResult carries raw numeric values. formatted_statistics() produces
the fixed-precision strings used at the display boundary.

Optional blocks are populated only by the tests that produce them:
  - effect_size         : every test
  - confidence_interval : t-tests (mean difference), Pearson (Fisher z), regression slope
  - power               : t-tests, ANOVA, Pearson
  - group_stats         : group-based tests
  - coefficients        : regression
  - contingency_table   : chi-square
"""

from pydantic import BaseModel, Field
from enum import Enum

from Schemas.assumption_checker import AssumptionResult
from Schemas.test_catalog import TestKind
from constants.statistician import DECIMALS


# ─────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────

class SignificanceTier(str, Enum):
    VERY_HIGHLY_SIGNIFICANT = "very highly significant"   # p < 0.001
    HIGHLY_SIGNIFICANT      = "highly significant"        # p < 0.01
    SIGNIFICANT             = "significant"               # p < 0.05
    NOT_SIGNIFICANT         = "not significant"


# ─────────────────────────────────────────────
# SUB-RESULTS
# ─────────────────────────────────────────────

class EffectSize(BaseModel):
    name: str                      # "Cohen's d", "eta-squared", "r", "Cramer's V", ...
    value: float
    interpretation: str            # "small", "medium", "large", ...


class ConfidenceInterval(BaseModel):
    lower: float
    upper: float
    level: float = 0.95
    contains_zero: bool = False


class PowerEstimate(BaseModel):
    value: float
    adequate: bool                 # value >= 0.8


class GroupStats(BaseModel):
    n: int
    mean: float | None = None
    median: float | None = None
    std_dev: float | None = None
    ci_lower: float | None = None
    ci_upper: float | None = None
    sum_ranks: float | None = None
    mean_rank: float | None = None


class Coefficient(BaseModel):
    variable:    str
    estimate:    float
    std_error:   float | None = None
    t_statistic: float | None = None
    p_value:     float | None = None
    ci_lower:    float | None = None    # 95% confidence interval lower bound
    ci_upper:    float | None = None    # 95% confidence interval upper bound


class ContingencyTable(BaseModel):
    row_labels: list[str] = Field(default_factory=list)
    col_labels: list[str] = Field(default_factory=list)
    observed: list[list[int]] = Field(default_factory=list)
    expected: list[list[float]] = Field(default_factory=list)


# ─────────────────────────────────────────────
# MAIN OUTPUT SCHEMA
# ─────────────────────────────────────────────

class TestResult(BaseModel):
    __test__ = False

    test_id: TestKind
    test_name: str

    # ── Raw statistics, e.g. {"t": -2.31, "df": 18, "p_value": 0.0329} ──
    statistics: dict[str, float | int | None] = Field(default_factory=dict)
    p_value: float | None = None
    p_value_method: str | None = None      # "exact", "normal approximation", "t approximation", ...
    significance: SignificanceTier = SignificanceTier.NOT_SIGNIFICANT

    effect_size: EffectSize | None = None
    confidence_interval: ConfidenceInterval | None = None
    power: PowerEstimate | None = None

    # ── Per-group descriptives, keyed by label in first-appearance order ──
    groups: list[str] = Field(default_factory=list)
    group_stats: dict[str, GroupStats] = Field(default_factory=dict)

    coefficients: list[Coefficient] = Field(default_factory=list)
    contingency_table: ContingencyTable | None = None
    assumptions: list[AssumptionResult] = Field(default_factory=list)

    post_hoc_required: bool = False

    # ── Plain English ──
    interpretation: str = ""
    recommendations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def formatted_statistics(self, decimals: int = DECIMALS) -> dict[str, str]:
        """Fixed-precision rendering of statistics. Integers stay integers."""
        formatted: dict[str, str] = {}
        for key, value in self.statistics.items():
            if value is None:
                formatted[key] = "-"
            elif isinstance(value, int):
                formatted[key] = str(value)
            else:
                formatted[key] = f"{value:.{decimals}f}"
        return formatted
