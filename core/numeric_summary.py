"""
FILE: core/numeric_summary.py
------------------------------
Descriptive statistics used by every test.
No LangGraph dependencies, just numpy and scipy.

Variance and standard deviation are population-style (denominator n)
everywhere in the engine. Percentiles interpolate linearly at position
(p/100)·(n−1). Rank assignment and the tie-correction factor are
implemented once here and reused by Mann-Whitney, Kruskal-Wallis,
Spearman and Wilcoxon.
"""

from collections import Counter
from typing import Any, NamedTuple, Sequence

import numpy as np
from scipy import stats

from core.errors import ComputationError
from Schemas.data_profiler_schema import NumericStats
from constants.data_profiler_constants import SKEW_MODERATE, SKEW_HIGH


# ─────────────────────────────────────────────
# MOMENTS
# ─────────────────────────────────────────────

def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        raise ComputationError("Cannot compute a mean of zero values.")
    return float(np.mean(values))


def variance(values: Sequence[float]) -> float:
    """Population variance. 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.var(values))


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation. 0 for fewer than two values."""
    return float(np.sqrt(variance(values)))


def skewness(values: Sequence[float]) -> float:
    """Moment-ratio skewness. 0 when n < 3 or the spread is zero."""
    n = len(values)
    if n < 3:
        return 0.0
    sd = std_dev(values)
    if sd == 0:
        return 0.0
    arr = np.asarray(values, dtype=float)
    return float(np.mean((arr - arr.mean()) ** 3) / sd ** 3)


def kurtosis(values: Sequence[float]) -> float:
    """Excess kurtosis (normal → 0). 0 when n < 4 or the spread is zero."""
    n = len(values)
    if n < 4:
        return 0.0
    sd = std_dev(values)
    if sd == 0:
        return 0.0
    arr = np.asarray(values, dtype=float)
    return float(np.mean((arr - arr.mean()) ** 4) / sd ** 4 - 3.0)


# ─────────────────────────────────────────────
# ORDER STATISTICS
# ─────────────────────────────────────────────

def percentile(values: Sequence[float], p: float) -> float:
    """Linear interpolation between order statistics at (p/100)·(n−1)."""
    if len(values) == 0:
        raise ComputationError("Cannot compute a percentile of zero values.")
    if not 0 <= p <= 100:
        raise ComputationError(f"Percentile must be between 0 and 100, got {p}.")
    return float(np.percentile(values, p, method="linear"))


def median(values: Sequence[float]) -> float:
    return percentile(values, 50)


def quartiles(values: Sequence[float]) -> tuple[float, float, float]:
    return percentile(values, 25), percentile(values, 50), percentile(values, 75)


# ─────────────────────────────────────────────
# RANKS
# ─────────────────────────────────────────────

def rank_assign(values: Sequence[float]) -> list[float]:
    """1-based midranks: tied values all get the average of the positions they occupy."""
    if len(values) == 0:
        return []
    return [float(r) for r in stats.rankdata(values, method="average")]


def tie_correction(values: Sequence[float]) -> float:
    """
    Σ(c³ − c) / (n³ − n) over groups of tied values of size c.
    0 when n < 2 or every value is distinct.
    """
    n = len(values)
    if n < 2:
        return 0.0
    tie_sum = sum(c ** 3 - c for c in Counter(values).values() if c > 1)
    if tie_sum == 0:
        return 0.0
    return tie_sum / (n ** 3 - n)


def has_ties(values: Sequence[float]) -> bool:
    return len(set(values)) < len(values)


# ─────────────────────────────────────────────
# ASSOCIATION
# ─────────────────────────────────────────────

def sample_correlation(x: Sequence[float], y: Sequence[float]) -> float | None:
    """Pearson r. None when either variable has zero spread."""
    if len(x) != len(y):
        raise ComputationError("Both variables must have the same number of values.")
    if len(x) < 2:
        return None
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    dx = xa - xa.mean()
    dy = ya - ya.mean()
    denom = np.sqrt(np.sum(dx ** 2) * np.sum(dy ** 2))
    if denom == 0:
        return None
    r = float(np.sum(dx * dy) / denom)
    return max(-1.0, min(1.0, r))


# ─────────────────────────────────────────────
# CATEGORICAL
# ─────────────────────────────────────────────

def entropy(counts: Sequence[int]) -> float:
    """Shannon entropy (base 2) of a frequency distribution. Zero counts are ignored."""
    total = sum(counts)
    if total == 0:
        return 0.0
    probs = np.asarray([c / total for c in counts if c > 0], dtype=float)
    return float(-np.sum(probs * np.log2(probs)))


# ─────────────────────────────────────────────
# GROUPING
# ─────────────────────────────────────────────

def split_by_group(values: Sequence[float], groups: Sequence[Any]) -> dict[Any, list[float]]:
    """{label: values} with labels in first-appearance order."""
    if len(values) != len(groups):
        raise ComputationError("Values and group labels must have the same length.")
    split: dict[Any, list[float]] = {}
    for value, group in zip(values, groups):
        split.setdefault(group, []).append(value)
    return split


class SumOfSquares(NamedTuple):
    ss_between: float
    ss_within: float
    ss_total: float
    df_between: int
    df_within: int
    grand_mean: float


def one_way_sum_of_squares(values: Sequence[float], groups: Sequence[Any]) -> SumOfSquares:
    """Between / within decomposition shared by ANOVA and the homogeneity check."""
    split = split_by_group(values, groups)
    if not split:
        raise ComputationError("Cannot decompose variance with zero groups.")
    grand = mean(values)
    ss_between = 0.0
    ss_within = 0.0
    for group_values in split.values():
        arr = np.asarray(group_values, dtype=float)
        ss_between += len(arr) * (arr.mean() - grand) ** 2
        ss_within += float(np.sum((arr - arr.mean()) ** 2))
    ss_total = float(np.sum((np.asarray(values, dtype=float) - grand) ** 2))
    return SumOfSquares(
        ss_between=float(ss_between),
        ss_within=float(ss_within),
        ss_total=ss_total,
        df_between=len(split) - 1,
        df_within=len(values) - len(split),
        grand_mean=grand,
    )


# ─────────────────────────────────────────────
# SUMMARY
# ─────────────────────────────────────────────

def skewness_interpretation(skew: float) -> str:
    abs_skew = abs(skew)
    if abs_skew < SKEW_MODERATE:
        return "symmetric"
    elif abs_skew < SKEW_HIGH:
        return "moderate skew"
    direction = "right" if skew > 0 else "left"
    return f"high {direction} skew"


def summarize(values: Sequence[float]) -> NumericStats:
    if len(values) == 0:
        raise ComputationError("Cannot summarise zero values.")
    q1, med, q3 = quartiles(values)
    skew = skewness(values)
    return NumericStats(
        min=float(np.min(values)),
        max=float(np.max(values)),
        mean=mean(values),
        median=med,
        std_dev=std_dev(values),
        variance=variance(values),
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        skewness=skew,
        kurtosis=kurtosis(values),
        skewness_interpretation=skewness_interpretation(skew),
    )
