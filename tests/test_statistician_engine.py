"""
Tests for core/statistician_engine.py
Pure test functions are checked against scipy where the formulas agree,
and against hand-computed values where they deliberately differ.
"""

import math

import pytest
from scipy import stats

from core import statistician_engine as se
from core.errors import ComputationError, InputValidationError
from Schemas.dataset import Dataset
from Schemas.statistician import SignificanceTier
from Schemas.test_catalog import TestKind


def _grouped_rows(groups: dict[str, list[float]], group_col="group", value_col="score") -> list[dict]:
    return [
        {group_col: label, value_col: value}
        for label, values in groups.items()
        for value in values
    ]


def _split(groups: dict[str, list[float]]) -> tuple[list[float], list[str]]:
    values = [v for vals in groups.values() for v in vals]
    labels = [label for label, vals in groups.items() for _ in vals]
    return values, labels


# ─────────────────────────────────────────────
# DISPATCH
# ─────────────────────────────────────────────

class TestDispatch:
    def test_every_test_kind_has_a_runner(self):
        registered = set(se._GROUPED_TESTS) | set(se._NUMERIC_PAIR_TESTS) | set(se._CATEGORY_PAIR_TESTS)
        assert registered == set(TestKind)


# ─────────────────────────────────────────────
# PARAMETRIC COMPARISONS
# ─────────────────────────────────────────────

class TestIndependentT:
    GROUPS = {"A": [1, 2, 3, 4, 5], "B": [3, 4, 5, 6, 7]}

    def test_statistic_with_population_pooling(self):
        result = se.independent_t_test(*_split(self.GROUPS))
        # pooled sd = sqrt(2), se = sqrt(2) * sqrt(0.4)
        assert result.statistics["t"] == pytest.approx(-2 / math.sqrt(0.8))
        assert result.statistics["df"] == 8
        assert result.p_value == pytest.approx(2 * stats.t.sf(2 / math.sqrt(0.8), 8))
        assert result.effect_size.value == pytest.approx(-2 / math.sqrt(2))
        assert result.effect_size.interpretation == "large"
        assert result.p_value_method == "t distribution"

    def test_swapping_groups_flips_the_sign_only(self):
        forward = se.independent_t_test(*_split(self.GROUPS))
        backward = se.independent_t_test(*_split({"B": self.GROUPS["B"], "A": self.GROUPS["A"]}))
        assert backward.statistics["t"] == pytest.approx(-forward.statistics["t"])
        assert backward.p_value == pytest.approx(forward.p_value)

    def test_confidence_interval_brackets_the_difference(self):
        result = se.independent_t_test(*_split(self.GROUPS))
        ci = result.confidence_interval
        assert ci.lower < -2 < ci.upper
        assert ci.level == 0.95

    def test_zero_variance_is_a_computation_error(self):
        with pytest.raises(ComputationError):
            se.independent_t_test(*_split({"A": [5, 5, 5], "B": [5, 5, 5]}))

    def test_three_groups_are_rejected(self):
        with pytest.raises(InputValidationError, match="requires exactly two groups"):
            se.independent_t_test(*_split({"A": [1, 2], "B": [3, 4], "C": [5, 6]}))

    def test_assumptions_are_attached(self):
        result = se.independent_t_test(*_split(self.GROUPS))
        names = [a.name for a in result.assumptions]
        assert "homogeneity" in names
        assert "independence" in names


class TestPairedT:
    def test_statistic_on_differences(self):
        values, groups = _split({"pre": [5, 7, 9], "post": [4, 5, 6]})
        result = se.paired_t_test(values, groups)
        # differences 1, 2, 3: mean 2, population sd sqrt(2/3)
        expected_t = 2 / (math.sqrt(2 / 3) / math.sqrt(3))
        assert result.statistics["t"] == pytest.approx(expected_t)
        assert result.statistics["df"] == 2

    def test_identical_differences_are_a_computation_error(self):
        with pytest.raises(ComputationError):
            se.paired_t_test(*_split({"pre": [5, 6, 7], "post": [4, 5, 6]}))

    def test_unequal_groups_are_truncated_with_warning(self):
        result = se.paired_t_test(*_split({"pre": [5, 7, 9, 11], "post": [4, 5, 6]}))
        assert result.statistics["n"] == 3
        assert any("only the first 3 pairs" in w for w in result.warnings)


class TestOneWayAnova:
    GROUPS = {"a": [1, 2, 3], "b": [4, 5, 6], "c": [7, 8, 10]}

    def test_matches_scipy(self):
        result = se.one_way_anova(*_split(self.GROUPS))
        reference = stats.f_oneway(*self.GROUPS.values())
        assert result.statistics["f"] == pytest.approx(reference.statistic)
        assert result.p_value == pytest.approx(reference.pvalue)
        assert result.post_hoc_required is True
        assert 0 < result.effect_size.value <= 1

    def test_identical_constant_groups(self):
        result = se.one_way_anova(*_split({"a": [5, 5], "b": [5, 5], "c": [5, 5]}))
        assert result.statistics["f"] == 0.0
        assert result.p_value == 1.0
        assert result.significance == SignificanceTier.NOT_SIGNIFICANT
        assert result.post_hoc_required is False

    def test_constant_but_different_groups_are_undefined(self):
        with pytest.raises(ComputationError):
            se.one_way_anova(*_split({"a": [1, 1], "b": [2, 2], "c": [3, 3]}))

    def test_two_groups_are_rejected(self):
        with pytest.raises(InputValidationError, match="requires at least three groups"):
            se.one_way_anova(*_split({"a": [1, 2], "b": [3, 4]}))

    def test_group_confidence_intervals(self):
        result = se.one_way_anova(*_split(self.GROUPS))
        stats_a = result.group_stats["a"]
        assert stats_a.ci_lower < stats_a.mean < stats_a.ci_upper


# ─────────────────────────────────────────────
# NONPARAMETRIC COMPARISONS
# ─────────────────────────────────────────────

class TestMannWhitney:
    def test_disjoint_small_groups_use_exact_p(self):
        result = se.mann_whitney_u(*_split({"A": [1, 2, 3], "B": [4, 5, 6]}))
        assert result.statistics["u"] == 0
        assert result.p_value == pytest.approx(0.1)
        assert result.p_value_method == "exact"

    def test_ties_use_normal_approximation(self):
        a, b = [1, 2, 2, 3, 4, 5], [3, 4, 5, 6, 6, 7, 8]
        result = se.mann_whitney_u(*_split({"A": a, "B": b}))
        reference = stats.mannwhitneyu(
            a, b, alternative="two-sided", method="asymptotic", use_continuity=False,
        )
        assert result.p_value_method == "normal approximation"
        assert result.p_value == pytest.approx(reference.pvalue)

    def test_rank_summaries(self):
        result = se.mann_whitney_u(*_split({"A": [1, 2, 3], "B": [4, 5, 6]}))
        assert result.group_stats["A"].sum_ranks == 6
        assert result.group_stats["B"].mean_rank == 5

    def test_all_identical_values_are_undefined(self):
        with pytest.raises(ComputationError):
            se.mann_whitney_u(*_split({"A": [2, 2, 2], "B": [2, 2]}))


class TestKruskalWallis:
    GROUPS = {"a": [1, 2, 3, 3], "b": [4, 5, 5, 6], "c": [7, 8, 9, 9]}

    def test_matches_scipy(self):
        result = se.kruskal_wallis_h(*_split(self.GROUPS))
        reference = stats.kruskal(*self.GROUPS.values())
        assert result.statistics["h"] == pytest.approx(reference.statistic)
        assert result.p_value == pytest.approx(reference.pvalue)
        assert result.statistics["df"] == 2

    def test_epsilon_squared(self):
        result = se.kruskal_wallis_h(*_split(self.GROUPS))
        h = result.statistics["h"]
        assert result.effect_size.value == pytest.approx((h - 2) / 11)

    def test_all_identical_values_are_undefined(self):
        with pytest.raises(ComputationError):
            se.kruskal_wallis_h(*_split({"a": [1, 1], "b": [1, 1], "c": [1, 1]}))


class TestWilcoxon:
    def test_small_sample_exact(self):
        pre = [10, 20, 30, 40, 50, 60]
        differences = [1, -2, 3, 4, 5, 6]
        post = [p - d for p, d in zip(pre, differences)]
        result = se.wilcoxon_signed_rank(*_split({"pre": pre, "post": post}))
        assert result.statistics["w"] == 2
        assert result.statistics["w_plus"] == 19
        assert result.p_value == pytest.approx(6 / 64)
        assert result.p_value_method == "exact"

    def test_zero_differences_are_dropped(self):
        result = se.wilcoxon_signed_rank(*_split({"pre": [5, 6, 7, 9], "post": [5, 4, 4, 2]}))
        assert result.statistics["n"] == 3
        assert any("zero difference" in w for w in result.warnings)

    def test_all_zero_differences_are_undefined(self):
        with pytest.raises(ComputationError):
            se.wilcoxon_signed_rank(*_split({"pre": [1, 2, 3], "post": [1, 2, 3]}))


# ─────────────────────────────────────────────
# ASSOCIATION AND PREDICTION
# ─────────────────────────────────────────────

class TestPearson:
    X = [1, 2, 3, 4, 5, 6, 7, 8]
    Y = [2, 1, 4, 3, 7, 8, 6, 9]

    def test_matches_scipy(self):
        result = se.pearson_correlation(self.X, self.Y)
        reference = stats.pearsonr(self.X, self.Y)
        assert result.statistics["r"] == pytest.approx(reference.statistic)
        assert result.p_value == pytest.approx(reference.pvalue)
        ci = result.confidence_interval
        assert ci.lower < result.statistics["r"] < ci.upper

    def test_perfect_line(self):
        result = se.pearson_correlation([1, 2, 3, 4, 5], [2, 4, 6, 8, 10])
        assert result.statistics["r"] == pytest.approx(1.0)
        assert result.p_value == pytest.approx(0.0, abs=1e-9)
        assert result.effect_size.interpretation == "very strong"

    def test_constant_variable_is_undefined(self):
        with pytest.raises(ComputationError):
            se.pearson_correlation([1, 2, 3, 4], [5, 5, 5, 5])

    def test_causation_caveat(self):
        result = se.pearson_correlation(self.X, self.Y)
        assert "Association does not imply causation." in result.recommendations


class TestSpearman:
    def test_monotone_curve_small_sample_exact(self):
        result = se.spearman_correlation([1, 2, 3, 4, 5], [1, 4, 9, 16, 25])
        assert result.statistics["rho"] == pytest.approx(1.0)
        assert result.p_value == pytest.approx(2 / 120)
        assert result.p_value_method == "exact"

    def test_ties_match_scipy(self):
        x = [1, 2, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11]
        y = [2, 1, 3, 3, 5, 7, 6, 8, 10, 9, 12, 11]
        result = se.spearman_correlation(x, y)
        reference = stats.spearmanr(x, y)
        assert result.statistics["rho"] == pytest.approx(reference.statistic)
        assert result.p_value == pytest.approx(reference.pvalue)
        assert result.p_value_method == "t approximation"


class TestChiSquare:
    def test_independent_table(self):
        rows = ["a"] * 20 + ["b"] * 20
        cols = (["x"] * 10 + ["y"] * 10) * 2
        result = se.chi_square_independence(rows, cols)
        assert result.statistics["chi_square"] == pytest.approx(0.0)
        assert result.p_value == pytest.approx(1.0)
        assert result.effect_size.value == pytest.approx(0.0)
        assert result.contingency_table.observed == [[10, 10], [10, 10]]

    def test_matches_scipy_without_continuity_correction(self):
        rows = ["a"] * 30 + ["b"] * 30
        cols = ["x"] * 22 + ["y"] * 8 + ["x"] * 9 + ["y"] * 21
        result = se.chi_square_independence(rows, cols)
        chi2, p, dof, _ = stats.chi2_contingency([[22, 8], [9, 21]], correction=False)
        assert result.statistics["chi_square"] == pytest.approx(chi2)
        assert result.p_value == pytest.approx(p)
        assert result.statistics["df"] == dof

    def test_single_category_is_rejected(self):
        with pytest.raises(InputValidationError, match="at least two categories"):
            se.chi_square_independence(["a"] * 5, ["x", "y", "x", "y", "x"])

    def test_sparse_table_recommends_fisher(self):
        rows = ["a"] * 3 + ["b"] * 20
        cols = ["x", "y", "x"] + ["y"] * 20
        result = se.chi_square_independence(rows, cols)
        assert any("Fisher" in rec for rec in result.recommendations)


class TestRegression:
    X = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
    Y = [2.1, 3.9, 6.2, 8.1, 9.8, 12.2, 13.8, 16.1, 18.0, 20.2]

    def test_matches_scipy_linregress(self):
        result = se.simple_linear_regression(self.X, self.Y)
        reference = stats.linregress(self.X, self.Y)
        assert result.statistics["slope"] == pytest.approx(reference.slope)
        assert result.statistics["intercept"] == pytest.approx(reference.intercept)
        assert result.statistics["r_squared"] == pytest.approx(reference.rvalue ** 2)
        slope = result.coefficients[1]
        assert slope.std_error == pytest.approx(reference.stderr)
        assert slope.p_value == pytest.approx(reference.pvalue)

    def test_exact_line(self):
        result = se.simple_linear_regression([1, 2, 3, 4, 5], [2, 4, 6, 8, 10])
        assert result.statistics["slope"] == pytest.approx(2.0)
        assert result.statistics["intercept"] == pytest.approx(0.0, abs=1e-9)
        assert result.statistics["r_squared"] == pytest.approx(1.0)

    def test_constant_predictor_is_undefined(self):
        with pytest.raises(ComputationError):
            se.simple_linear_regression([3, 3, 3, 3], [1, 2, 3, 4])

    def test_residual_diagnostics(self):
        result = se.simple_linear_regression(self.X, self.Y)
        names = [a.name for a in result.assumptions]
        assert "independence of residuals" in names
        assert "homoscedasticity" in names
        assert any("residual plot" in rec for rec in result.recommendations)


# ─────────────────────────────────────────────
# DATASET ENTRY POINT
# ─────────────────────────────────────────────

class TestRunTest:
    def test_runs_from_row_dicts(self):
        rows = _grouped_rows({"A": [1, 2, 3, 4, 5], "B": [3, 4, 5, 6, 7]})
        result = se.run_test("independent-t-test", rows, "group", "score")
        assert result.test_id == TestKind.INDEPENDENT_T_TEST
        assert result.groups == ["A", "B"]

    def test_string_cells_are_coerced(self):
        rows = [{"g": g, "v": v} for g, v in [("A", "1,5"), ("A", "2"), ("B", "3٫5"), ("B", "4"), ("B", "")]]
        result = se.run_test("mann-whitney", rows, "g", "v")
        assert result.group_stats["A"].n == 2
        assert result.group_stats["B"].n == 2

    def test_non_numeric_value_is_named(self):
        rows = [{"g": "A", "v": "1"}, {"g": "A", "v": "oops"}, {"g": "B", "v": "3"}]
        with pytest.raises(InputValidationError, match="row 2: value 'oops' is not a number"):
            se.run_test("independent-t-test", rows, "g", "v")

    def test_unknown_test(self):
        with pytest.raises(InputValidationError, match="Unknown test"):
            se.run_test("z-test", [{"g": "A", "v": 1}], "g", "v")

    def test_missing_column(self):
        with pytest.raises(InputValidationError, match="Missing column"):
            se.run_test("independent-t-test", [{"g": "A", "v": 1}], "g", "nope")

    def test_empty_dataset(self):
        with pytest.raises(InputValidationError, match="No data"):
            se.run_test("independent-t-test", Dataset(), "g", "v")

    def test_group_count_is_validated(self):
        rows = _grouped_rows({"A": [1, 2], "B": [3, 4]})
        with pytest.raises(InputValidationError, match="requires at least three groups"):
            se.run_test(TestKind.KRUSKAL_WALLIS, rows, "group", "score")

    def test_chi_square_minimum_sample(self):
        rows = [{"a": "x", "b": "p"}, {"a": "y", "b": "q"}] * 5
        with pytest.raises(InputValidationError, match="at least 20"):
            se.run_test("chi-square-independence", rows, "a", "b")

    def test_regression_reads_x_from_first_column(self):
        rows = [{"x": x, "y": 3 * x + 1} for x in range(1, 13)]
        result = se.run_test("simple-linear-regression", rows, "x", "y")
        assert result.statistics["slope"] == pytest.approx(3.0)

    def test_single_observation_group_warns(self):
        rows = _grouped_rows({"A": [1], "B": [2, 3, 4]})
        warnings = se.validate_data_for_test("mann-whitney", rows, "group", "score")
        assert any("single observation" in w for w in warnings)

    def test_small_parametric_sample_warns(self):
        rows = _grouped_rows({"A": [1, 2, 3, 4, 5], "B": [3, 4, 5, 6, 7]})
        result = se.run_test("independent-t-test", rows, "group", "score")
        assert any("normality" in w for w in result.warnings)

    def test_formatted_statistics(self):
        rows = _grouped_rows({"A": [1, 2, 3, 4, 5], "B": [3, 4, 5, 6, 7]})
        formatted = se.run_test("independent-t-test", rows, "group", "score").formatted_statistics()
        assert formatted["df"] == "8"
        assert formatted["t"] == "-2.2361"
