"""
FILE: core/assumption_engine.py
---------------------------------
Pure statistical functions for checking pre-test assumptions.
No LangGraph dependencies.

Each check function returns an AssumptionResult. A check that cannot run
on the given input (sample too small, fewer than two groups) returns an
INAPPLICABLE result with an explanation instead of raising.

check_assumptions() is the public entry point for the three requestable
checks (normality, homogeneity, outliers). Its results are cached for a
short window, keyed on the exact values / groups / checks requested.
The *_assumptions() helpers at the bottom build the assumption sub-results
each hypothesis test attaches to its TestResult.
"""

import logging
import threading
import time
from typing import Any, Sequence

import numpy as np
from scipy import stats
from statsmodels.stats.stattools import durbin_watson

from config import get_cache_ttl
from core import numeric_summary as ns
from core.dataset import group_label, is_missing, parse_number, unique_in_order
from core.distributions import f_sf
from core.errors import InputValidationError
from Schemas.assumption_checker import (
    AssumptionChecks,
    AssumptionResult,
    AssumptionStatus,
    OutlierPoint,
)
from constants.assumption_checker import (
    ASSUMPTION_ALPHA,
    NORMALITY_MIN_N,
    NORMALITY_MAX_N,
    HOMOGENEITY_MIN_GROUPS,
    OUTLIER_MIN_N,
    OUTLIER_IQR_MULTIPLIER,
    CHI_SQUARE_LOW_EXPECTED,
    CHI_SQUARE_LOW_EXPECTED_PCT,
    HOMOSCEDASTICITY_CORR_LIMIT,
    DURBIN_WATSON_LOWER,
    DURBIN_WATSON_UPPER,
    SKEW_SYMMETRY_THRESHOLD,
)

logger = logging.getLogger(__name__)


def _inapplicable(name: str, test_used: str, message: str) -> AssumptionResult:
    return AssumptionResult(
        name=name,
        test_used=test_used,
        status=AssumptionStatus.INAPPLICABLE,
        verdict="not applicable",
        message=message,
    )


def _assumed(name: str, message: str) -> AssumptionResult:
    return AssumptionResult(
        name=name,
        test_used="design assumption",
        status=AssumptionStatus.ASSUMED,
        passed=True,
        verdict="assumed",
        message=message,
    )


# ─────────────────────────────────────────────
# INDIVIDUAL CHECK FUNCTIONS
# Each returns an AssumptionResult.
# ─────────────────────────────────────────────

def check_normality(values: Sequence[float], name: str = "normality") -> AssumptionResult:
    """Shapiro-Wilk test for normality. Applicable for 3 ≤ n ≤ 5000."""
    n = len(values)
    if n < NORMALITY_MIN_N or n > NORMALITY_MAX_N:
        return _inapplicable(
            name, "Shapiro-Wilk",
            f"Sample size {n} is outside the range {NORMALITY_MIN_N}-{NORMALITY_MAX_N} "
            f"where the Shapiro-Wilk test applies.",
        )
    if ns.std_dev(values) == 0:
        return _inapplicable(
            name, "Shapiro-Wilk",
            "All values are identical; normality cannot be assessed.",
        )

    stat, p = stats.shapiro(values)
    passed = bool(p > ASSUMPTION_ALPHA)
    return AssumptionResult(
        name=name,
        test_used="Shapiro-Wilk",
        status=AssumptionStatus.PASSED if passed else AssumptionStatus.FAILED,
        statistic=float(stat),
        p_value=float(p),
        passed=passed,
        verdict="normal" if passed else "not normal",
        message=(
            f"Data are consistent with a normal distribution (p = {p:.4f} > {ASSUMPTION_ALPHA})."
            if passed else
            f"Data depart from a normal distribution (p = {p:.4f} ≤ {ASSUMPTION_ALPHA})."
        ),
    )


def check_homogeneity(
    values: Sequence[float],
    groups: Sequence[Any] | None,
    name: str = "homogeneity",
) -> AssumptionResult:
    """
    Levene-style check: one-way ANOVA on the absolute deviations of each
    observation from its group mean. p > 0.05 → variances are homogeneous.
    """
    labels = unique_in_order(groups) if groups else []
    if len(labels) < HOMOGENEITY_MIN_GROUPS:
        return _inapplicable(
            name, "Levene",
            f"At least {HOMOGENEITY_MIN_GROUPS} groups are needed to compare variances.",
        )
    if len(values) - len(labels) < 1:
        return _inapplicable(
            name, "Levene",
            "Each group needs more than one observation to compare variances.",
        )

    split = ns.split_by_group(values, groups)
    group_means = {label: ns.mean(vals) for label, vals in split.items()}
    deviations = [abs(v - group_means[g]) for v, g in zip(values, groups)]
    decomposition = ns.one_way_sum_of_squares(deviations, groups)

    ms_between = decomposition.ss_between / decomposition.df_between
    ms_within = decomposition.ss_within / decomposition.df_within
    if ms_within == 0:
        f_stat = 0.0 if ms_between == 0 else float("inf")
        p = 1.0 if ms_between == 0 else 0.0
    else:
        f_stat = ms_between / ms_within
        p = f_sf(f_stat, decomposition.df_between, decomposition.df_within)

    passed = bool(p > ASSUMPTION_ALPHA)
    return AssumptionResult(
        name=name,
        test_used="Levene",
        status=AssumptionStatus.PASSED if passed else AssumptionStatus.FAILED,
        statistic=float(f_stat),
        p_value=float(p),
        passed=passed,
        verdict="homogeneous" if passed else "not homogeneous",
        message=(
            f"Variances are homogeneous across groups (p = {p:.4f} > {ASSUMPTION_ALPHA})."
            if passed else
            f"Variances differ across groups (p = {p:.4f} ≤ {ASSUMPTION_ALPHA})."
        ),
    )


def check_outliers(
    values: Sequence[float],
    name: str = "outliers",
    indices: Sequence[int] | None = None,
) -> AssumptionResult:
    """
    IQR fence at Q1 − 1.5·IQR and Q3 + 1.5·IQR. Pass = no value outside.
    `indices` maps each value back to its position in the caller's data;
    without it an outlier's index is its position in `values`.
    """
    if indices is not None and len(indices) != len(values):
        raise InputValidationError("Values and indices must have the same length.")
    n = len(values)
    if n < OUTLIER_MIN_N:
        return _inapplicable(
            name, "IQR Outlier Detection",
            f"At least {OUTLIER_MIN_N} observations are needed to detect outliers.",
        )

    q1, _, q3 = ns.quartiles(values)
    iqr = q3 - q1
    lower = q1 - OUTLIER_IQR_MULTIPLIER * iqr
    upper = q3 + OUTLIER_IQR_MULTIPLIER * iqr
    outliers = tuple(
        OutlierPoint(value=v, index=i if indices is None else int(indices[i]))
        for i, v in enumerate(values)
        if v < lower or v > upper
    )
    passed = len(outliers) == 0
    return AssumptionResult(
        name=name,
        test_used="IQR Outlier Detection",
        status=AssumptionStatus.PASSED if passed else AssumptionStatus.FAILED,
        passed=passed,
        verdict="no outliers" if passed else f"{len(outliers)} outlier(s)",
        message=(
            "No values fall outside the IQR fence."
            if passed else
            f"{len(outliers)} value(s) fall outside [{lower:.4f}, {upper:.4f}]."
        ),
        outliers=outliers,
        lower_bound=float(lower),
        upper_bound=float(upper),
    )


def check_symmetry(differences: Sequence[float], name: str = "symmetry") -> AssumptionResult:
    """For Wilcoxon: skewness of the paired differences as a symmetry proxy."""
    if len(differences) < 3:
        return _inapplicable(
            name, "Skewness of Differences",
            "At least 3 paired differences are needed to assess symmetry.",
        )
    skew = ns.skewness(differences)
    passed = abs(skew) < SKEW_SYMMETRY_THRESHOLD
    return AssumptionResult(
        name=name,
        test_used="Skewness of Differences",
        status=AssumptionStatus.PASSED if passed else AssumptionStatus.FAILED,
        statistic=float(skew),
        passed=passed,
        verdict="symmetric" if passed else "asymmetric",
        message=(
            f"Skewness of differences is {skew:.4f}; approximately symmetric."
            if passed else
            f"Skewness of differences is {skew:.4f}; the distribution of differences "
            f"may not be symmetric."
        ),
    )


# ─────────────────────────────────────────────
# CACHE
# ─────────────────────────────────────────────

class AssumptionCache:
    """
    Time-boxed cache of check_assumptions() results.
    Entries are inserted or evicted whole, never modified. Safe to share
    between threads.
    """

    def __init__(self, ttl_seconds: float | None = None, clock=time.monotonic):
        self.ttl_seconds = get_cache_ttl() if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[tuple, tuple[float, dict[str, AssumptionResult]]] = {}
        self._lock = threading.Lock()

    def get(self, key: tuple) -> dict[str, AssumptionResult] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, results = entry
            if now - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return dict(results)

    def put(self, key: tuple, results: dict[str, AssumptionResult]) -> None:
        now = self._clock()
        with self._lock:
            expired = [k for k, (t, _) in self._entries.items() if now - t >= self.ttl_seconds]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now, dict(results))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_cache = AssumptionCache()


# ─────────────────────────────────────────────
# PUBLIC: REQUESTABLE CHECKS
# ─────────────────────────────────────────────

def _coerce_inputs(
    values: Sequence[Any],
    groups: Sequence[Any] | None,
) -> tuple[list[float], list[str] | None, list[int]]:
    """
    Same coercion as the test runner. Missing values drop their group label too.
    Also returns the input position of every kept value.
    """
    if groups is not None and len(groups) != len(values):
        raise InputValidationError("Values and group labels must have the same length.")

    clean_values: list[float] = []
    clean_groups: list[str] | None = [] if groups is not None else None
    positions: list[int] = []
    for i, cell in enumerate(values):
        if is_missing(cell) or (groups is not None and is_missing(groups[i])):
            continue
        number = parse_number(cell)
        if number is None:
            raise InputValidationError(f"Value at position {i + 1} ('{cell}') is not a number.")
        clean_values.append(number)
        positions.append(i)
        if clean_groups is not None:
            clean_groups.append(group_label(groups[i]))
    return clean_values, clean_groups, positions


def check_assumptions(
    values: Sequence[Any],
    groups: Sequence[Any] | None = None,
    checks: AssumptionChecks | dict | None = None,
    cache: AssumptionCache | None = None,
) -> dict[str, AssumptionResult]:
    """
    Runs only the requested checks. Unrequested keys are absent from the result.
    """
    if checks is None:
        checks = AssumptionChecks(normality=True, homogeneity=True, outliers=True)
    elif isinstance(checks, dict):
        checks = AssumptionChecks(**checks)
    cache = _default_cache if cache is None else cache

    clean_values, clean_groups, positions = _coerce_inputs(values, groups)
    key = (
        tuple(clean_values),
        tuple(clean_groups) if clean_groups is not None else None,
        tuple(positions),
        tuple(checks.requested()),
    )
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Assumption checks served from cache (n=%d)", len(clean_values))
        return cached

    results: dict[str, AssumptionResult] = {}
    if checks.normality:
        results["normality"] = check_normality(clean_values)
    if checks.homogeneity:
        results["homogeneity"] = check_homogeneity(clean_values, clean_groups)
    if checks.outliers:
        results["outliers"] = check_outliers(clean_values, indices=positions)

    cache.put(key, results)
    return results


# ─────────────────────────────────────────────
# TEST-SPECIFIC ASSUMPTION SETS
# ─────────────────────────────────────────────

def independence_assumed() -> AssumptionResult:
    return _assumed("independence", "Observations must be independent of each other.")


def group_assumptions(split: dict[str, list[float]]) -> list[AssumptionResult]:
    """Normality per group, homogeneity across groups, independence assumed."""
    results = [
        check_normality(vals, name=f"normality ({label})")
        for label, vals in split.items()
    ]
    values = [v for vals in split.values() for v in vals]
    groups = [label for label, vals in split.items() for _ in vals]
    results.append(check_homogeneity(values, groups))
    results.append(independence_assumed())
    return results


def paired_assumptions(differences: Sequence[float]) -> list[AssumptionResult]:
    return [
        check_normality(differences, name="normality of differences"),
        _assumed("paired observations", "Each pair must come from the same subject or matched unit."),
    ]


def wilcoxon_assumptions(differences: Sequence[float]) -> list[AssumptionResult]:
    return [
        check_symmetry(differences),
        _assumed("paired observations", "Each pair must come from the same subject or matched unit."),
    ]


def correlation_assumptions(x: Sequence[float], y: Sequence[float]) -> list[AssumptionResult]:
    return [
        check_normality(x, name="normality (x)"),
        check_normality(y, name="normality (y)"),
        _assumed("linearity", "Inspect a scatter plot to confirm the relationship is linear."),
    ]


def chi_square_assumptions(expected: np.ndarray) -> tuple[list[AssumptionResult], bool]:
    """
    Expected-count rule (≤ 20% of cells with E < 5), no zero expected cells,
    independence assumed. Returns (results, all_passed).
    """
    total_cells = expected.size
    low_cells = int(np.sum(expected < CHI_SQUARE_LOW_EXPECTED))
    low_pct = 100.0 * low_cells / total_cells if total_cells else 0.0
    counts_ok = low_pct <= CHI_SQUARE_LOW_EXPECTED_PCT
    has_zero = bool(np.any(expected == 0))

    results = [
        AssumptionResult(
            name="expected counts",
            test_used="expected frequency rule",
            status=AssumptionStatus.PASSED if counts_ok else AssumptionStatus.FAILED,
            statistic=float(low_pct),
            passed=counts_ok,
            verdict="adequate" if counts_ok else "inadequate",
            message=f"{low_cells} cell(s) ({low_pct:.1f}%) have expected counts below "
                    f"{CHI_SQUARE_LOW_EXPECTED:g}.",
        ),
        AssumptionResult(
            name="no zero expected counts",
            test_used="expected frequency rule",
            status=AssumptionStatus.FAILED if has_zero else AssumptionStatus.PASSED,
            passed=not has_zero,
            verdict="zero expected cells" if has_zero else "none",
            message="Some cells have an expected count of zero." if has_zero
                    else "No cell has an expected count of zero.",
        ),
        independence_assumed(),
    ]
    return results, counts_ok and not has_zero


def regression_assumptions(
    residuals: Sequence[float],
    predicted: Sequence[float],
) -> tuple[list[AssumptionResult], bool]:
    """
    Residual normality, homoscedasticity proxy |corr(|e|, ŷ)| < 0.3,
    Durbin-Watson in (1.5, 2.5), linearity assumed. Returns (results, all_passed).
    """
    results = [check_normality(residuals, name="normality of residuals")]

    abs_resid = [abs(e) for e in residuals]
    corr = ns.sample_correlation(abs_resid, predicted)
    if corr is None:
        # zero spread in |e| or ŷ: no trend in spread to detect
        corr = 0.0
    homoscedastic = abs(corr) < HOMOSCEDASTICITY_CORR_LIMIT
    results.append(AssumptionResult(
        name="homoscedasticity",
        test_used="|residual| vs predicted correlation",
        status=AssumptionStatus.PASSED if homoscedastic else AssumptionStatus.FAILED,
        statistic=float(corr),
        passed=homoscedastic,
        verdict="homoscedastic" if homoscedastic else "heteroscedastic",
        message=(
            "Residual spread is roughly constant across predicted values."
            if homoscedastic else
            "Residual spread changes with the predicted value (heteroscedasticity)."
        ),
    ))

    resid = np.asarray(residuals, dtype=float)
    if np.sum(resid ** 2) == 0:
        results.append(_inapplicable(
            "independence of residuals", "Durbin-Watson",
            "Residuals are all zero; autocorrelation cannot be assessed.",
        ))
    else:
        dw = float(durbin_watson(resid))
        independent = DURBIN_WATSON_LOWER < dw < DURBIN_WATSON_UPPER
        results.append(AssumptionResult(
            name="independence of residuals",
            test_used="Durbin-Watson",
            status=AssumptionStatus.PASSED if independent else AssumptionStatus.FAILED,
            statistic=dw,
            passed=independent,
            verdict="independent" if independent else "autocorrelated",
            message=f"Durbin-Watson statistic is {dw:.4f}.",
        ))

    results.append(_assumed("linearity", "Inspect the residual plot to confirm linearity."))
    all_passed = all(r.passed is not False for r in results)
    return results, all_passed


# ─────────────────────────────────────────────
# SUMMARY
# ─────────────────────────────────────────────

def summarize_assumptions(results: list[AssumptionResult]) -> str:
    """One-line tally shown in the CLI report."""
    passed = sum(1 for r in results if r.status == AssumptionStatus.PASSED)
    failed = sum(1 for r in results if r.status == AssumptionStatus.FAILED)
    inapplicable = sum(1 for r in results if r.status == AssumptionStatus.INAPPLICABLE)
    assumed = sum(1 for r in results if r.status == AssumptionStatus.ASSUMED)
    return (
        f"{len(results)} assumption(s) checked: {passed} passed, {failed} failed, "
        f"{inapplicable} not applicable, {assumed} assumed."
    )
