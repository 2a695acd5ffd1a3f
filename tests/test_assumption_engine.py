"""
Tests for core/assumption_engine.py
"""

import numpy as np
import pytest
from scipy import stats

from core.assumption_engine import (
    AssumptionCache,
    check_assumptions,
    check_homogeneity,
    check_normality,
    check_outliers,
    chi_square_assumptions,
    regression_assumptions,
    summarize_assumptions,
)
from core.errors import InputValidationError
from Schemas.assumption_checker import AssumptionChecks, AssumptionStatus


NORMAL_SAMPLE = stats.norm.ppf(np.linspace(0.05, 0.95, 30)).tolist()


# ─────────────────────────────────────────────
# INDIVIDUAL CHECKS
# ─────────────────────────────────────────────

class TestNormality:
    def test_symmetric_bell_passes(self):
        result = check_normality(NORMAL_SAMPLE)
        assert result.test_used == "Shapiro-Wilk"
        assert result.status == AssumptionStatus.PASSED
        assert result.passed is True
        assert result.p_value > 0.05

    def test_too_few_values_is_inapplicable(self):
        result = check_normality([1.0, 2.0])
        assert result.status == AssumptionStatus.INAPPLICABLE
        assert result.passed is None
        assert result.p_value is None

    def test_constant_values_are_inapplicable(self):
        assert check_normality([3.0] * 10).status == AssumptionStatus.INAPPLICABLE

    def test_heavily_skewed_sample_fails(self):
        skewed = [1] * 20 + [2, 3, 50, 100]
        assert check_normality(skewed).status == AssumptionStatus.FAILED


class TestHomogeneity:
    def test_single_group_is_inapplicable(self):
        result = check_homogeneity([1, 2, 3], ["a", "a", "a"])
        assert result.status == AssumptionStatus.INAPPLICABLE

    def test_no_groups_is_inapplicable(self):
        assert check_homogeneity([1, 2, 3], None).status == AssumptionStatus.INAPPLICABLE

    def test_identical_spread_passes(self):
        result = check_homogeneity([1, 2, 3, 4, 5, 6], ["a"] * 3 + ["b"] * 3)
        assert result.passed is True
        assert result.statistic == pytest.approx(0.0)
        assert result.p_value == pytest.approx(1.0)

    def test_very_different_spread_fails(self):
        tight = [10.0, 10.1, 9.9, 10.0, 10.1, 9.9, 10.0, 10.05]
        wide = [0.0, 20.0, 5.0, 15.0, -3.0, 23.0, 2.0, 18.0]
        result = check_homogeneity(tight + wide, ["t"] * 8 + ["w"] * 8)
        assert result.status == AssumptionStatus.FAILED


class TestOutliers:
    def test_extreme_value_is_flagged(self):
        result = check_outliers([1, 2, 3, 4, 5, 100])
        assert result.passed is False
        assert [(p.value, p.index) for p in result.outliers] == [(100.0, 5)]
        assert result.upper_bound == pytest.approx(8.5)

    def test_clean_sample_passes(self):
        result = check_outliers([1, 2, 3, 4])
        assert result.passed is True
        assert result.outliers == ()

    def test_fewer_than_four_values_is_inapplicable(self):
        assert check_outliers([1, 2, 3]).status == AssumptionStatus.INAPPLICABLE

    def test_indices_map_back_to_caller_positions(self):
        result = check_outliers([1, 2, 3, 4, 5, 100], indices=[0, 2, 3, 4, 5, 6])
        assert [(p.value, p.index) for p in result.outliers] == [(100.0, 6)]

    def test_indices_must_match_values(self):
        with pytest.raises(InputValidationError):
            check_outliers([1, 2, 3, 4], indices=[0, 1])


# ─────────────────────────────────────────────
# REQUESTED CHECKS AND CACHE
# ─────────────────────────────────────────────

class TestCheckAssumptions:
    def test_only_requested_keys_are_present(self):
        results = check_assumptions(NORMAL_SAMPLE, checks={"normality": True}, cache=AssumptionCache())
        assert set(results) == {"normality"}

    def test_default_runs_every_check(self):
        groups = ["a", "b"] * 15
        results = check_assumptions(NORMAL_SAMPLE, groups, cache=AssumptionCache())
        assert set(results) == {"normality", "homogeneity", "outliers"}

    def test_missing_values_drop_their_group(self):
        results = check_assumptions(
            ["1", "2", "", "4", "5", "6"],
            ["a", "a", "b", "b", "b", None],
            AssumptionChecks(homogeneity=True),
            cache=AssumptionCache(),
        )
        assert results["homogeneity"].status == AssumptionStatus.PASSED

    def test_outlier_index_survives_missing_cells(self):
        results = check_assumptions(
            ["1", "", "2", "3", "4", "5", "100"],
            checks={"outliers": True},
            cache=AssumptionCache(),
        )
        assert [(p.value, p.index) for p in results["outliers"].outliers] == [(100.0, 6)]

    def test_non_numeric_value_is_rejected(self):
        with pytest.raises(InputValidationError, match="not a number"):
            check_assumptions(["1", "x", "3"], cache=AssumptionCache())

    def test_repeated_call_hits_cache(self):
        cache = AssumptionCache()
        first = check_assumptions([1, 2, 3, 4, 5], checks={"outliers": True}, cache=cache)
        second = check_assumptions([1, 2, 3, 4, 5], checks={"outliers": True}, cache=cache)
        assert len(cache) == 1
        assert first == second


class TestAssumptionCache:
    def test_entries_expire_after_ttl(self):
        now = [0.0]
        cache = AssumptionCache(ttl_seconds=10, clock=lambda: now[0])
        cache.put(("key",), {"x": check_outliers([1, 2, 3, 4])})

        now[0] = 5.0
        assert cache.get(("key",)) is not None
        now[0] = 10.0
        assert cache.get(("key",)) is None
        assert len(cache) == 0

    def test_returned_mapping_is_a_copy(self):
        cache = AssumptionCache(ttl_seconds=60)
        cache.put(("key",), {"x": check_outliers([1, 2, 3, 4])})
        cache.get(("key",)).clear()
        assert set(cache.get(("key",))) == {"x"}


# ─────────────────────────────────────────────
# COMPOSITE CHECKS
# ─────────────────────────────────────────────

class TestComposites:
    def test_chi_square_adequate_counts(self):
        results, passed = chi_square_assumptions(np.array([[10.0, 10.0], [10.0, 10.0]]))
        assert passed is True
        assert results[-1].status == AssumptionStatus.ASSUMED

    def test_chi_square_sparse_table_fails(self):
        _, passed = chi_square_assumptions(np.array([[2.0, 3.0], [10.0, 12.0]]))
        assert passed is False

    def test_regression_reports_durbin_watson(self):
        residuals = [0.5, -0.3, 0.2, -0.6, 0.4, -0.1, 0.3, -0.4]
        predicted = [1, 2, 3, 4, 5, 6, 7, 8]
        results, _ = regression_assumptions(residuals, predicted)
        names = [r.name for r in results]
        assert "independence of residuals" in names
        dw = next(r for r in results if r.name == "independence of residuals")
        assert dw.test_used == "Durbin-Watson"
        assert dw.statistic > 2.5

    def test_summary_counts_statuses(self):
        results = [check_outliers([1, 2, 3]), check_outliers([1, 2, 3, 4])]
        assert summarize_assumptions(results) == (
            "2 assumption(s) checked: 1 passed, 0 failed, 1 not applicable, 0 assumed."
        )
