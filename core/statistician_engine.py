"""
FILE: core/statistician_engine.py
-----------------------------------
Pure statistical test execution functions.
No LangGraph dependencies.

One function per test. Each takes plain sequences and returns a TestResult:
  - group-based tests : (values, groups)
  - correlation / regression : (x, y)
  - chi-square : (row_labels, col_labels)

run_test() is the dataset-level entry point. It looks the test up in the
catalog, extracts and validates the columns, then dispatches through a
closed TestKind → function table.

For correlation and regression the "categorical" column supplies the x
variable and must be numeric. For chi-square both columns are read as
category labels.
"""

import logging
import math
from typing import Any, Callable, Sequence

import numpy as np

from core import numeric_summary as ns
from core import distributions as dist
from core import interpretation as interp
from core.assumption_engine import (
    chi_square_assumptions,
    correlation_assumptions,
    group_assumptions,
    paired_assumptions,
    regression_assumptions,
    wilcoxon_assumptions,
)
from core.dataset import (
    categorical_pairs,
    grouped_numeric,
    paired_numeric,
    unique_in_order,
)
from core.errors import ComputationError, InputValidationError
from Schemas.dataset import Dataset
from Schemas.statistician import (
    Coefficient,
    ConfidenceInterval,
    ContingencyTable,
    EffectSize,
    GroupStats,
    PowerEstimate,
    TestResult,
)
from Schemas.test_catalog import TestDefinition, TestKind
from Utils.test_requirements_registry import get_test_by_id
from constants.statistician import (
    ADEQUATE_POWER,
    CONFIDENCE_LEVEL,
    MANN_WHITNEY_EXACT_MAX_N,
    MANY_GROUPS_THRESHOLD,
    SPEARMAN_EXACT_MAX_N,
    WILCOXON_EXACT_MAX_N,
)

logger = logging.getLogger(__name__)

_UPPER_Q = 1 - (1 - CONFIDENCE_LEVEL) / 2    # 0.975 for a 95% interval


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

def _catalog_entry(kind: TestKind) -> TestDefinition:
    return get_test_by_id(kind)


def _require_groups(
    test: TestDefinition,
    values: Sequence[float],
    groups: Sequence[Any],
) -> tuple[list[str], dict[str, list[float]]]:
    """Splits by group and enforces the catalog's group-count bounds."""
    if len(values) != len(groups):
        raise InputValidationError("Values and group labels must have the same length.")
    labels = unique_in_order(groups)
    if test.min_groups == test.max_groups == 2 and len(labels) != 2:
        raise InputValidationError(
            f"{test.name} requires exactly two groups; found {len(labels)}."
        )
    if len(labels) < test.min_groups:
        raise InputValidationError(
            f"{test.name} requires at least {_count_word(test.min_groups)} groups; found {len(labels)}."
        )
    if test.max_groups and len(labels) > test.max_groups:
        raise InputValidationError(
            f"{test.name} supports at most {test.max_groups} groups; found {len(labels)}."
        )
    return labels, ns.split_by_group(values, groups)


def _count_word(n: int) -> str:
    return {2: "two", 3: "three"}.get(n, str(n))


def _power(value: float | None) -> PowerEstimate | None:
    if value is None:
        return None
    return PowerEstimate(value=value, adequate=value >= ADEQUATE_POWER)


def _interval(lower: float, upper: float) -> ConfidenceInterval:
    return ConfidenceInterval(
        lower=lower,
        upper=upper,
        level=CONFIDENCE_LEVEL,
        contains_zero=lower <= 0 <= upper,
    )


def _describe_group(values: Sequence[float], with_ci: bool = False) -> GroupStats:
    n = len(values)
    m = ns.mean(values)
    sd = ns.std_dev(values)
    ci_lower = ci_upper = None
    if with_ci and n >= 2:
        margin = dist.t_ppf(_UPPER_Q, n - 1) * sd / math.sqrt(n)
        ci_lower, ci_upper = m - margin, m + margin
    return GroupStats(
        n=n,
        mean=m,
        median=ns.median(values),
        std_dev=sd,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
    )


def _t_from_r(r: float, df: int) -> tuple[float, float]:
    """t statistic and two-tailed p for a correlation coefficient."""
    if abs(r) >= 1:
        return math.copysign(math.inf, r), 0.0
    t = r * math.sqrt(df / (1 - r * r))
    return t, dist.t_two_tailed_p(t, df)


def _unequal_size_note(sizes: Sequence[int]) -> list[str]:
    if len(set(sizes)) > 1:
        return ["Group sizes are unequal; take this into account when interpreting the result."]
    return []


# ─────────────────────────────────────────────
# PARAMETRIC COMPARISONS
# ─────────────────────────────────────────────

def independent_t_test(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """Pooled-variance two-sample t-test. Group order is first appearance."""
    test = _catalog_entry(TestKind.INDEPENDENT_T_TEST)
    labels, split = _require_groups(test, values, groups)
    g1, g2 = split[labels[0]], split[labels[1]]
    n1, n2 = len(g1), len(g2)
    df = n1 + n2 - 2
    if df < 1:
        raise ComputationError("The t-test needs at least three observations in total.")

    m1, m2 = ns.mean(g1), ns.mean(g2)
    s1, s2 = ns.std_dev(g1), ns.std_dev(g2)
    pooled_std = math.sqrt(((n1 - 1) * s1 ** 2 + (n2 - 1) * s2 ** 2) / df)
    if pooled_std == 0:
        raise ComputationError("Both groups have zero variance; the t statistic is undefined.")

    se = pooled_std * math.sqrt(1 / n1 + 1 / n2)
    diff = m1 - m2
    t = diff / se
    p = dist.t_two_tailed_p(t, df)
    d = diff / pooled_std
    margin = dist.t_ppf(_UPPER_Q, df) * se

    direction = "higher" if m1 > m2 else "lower"
    interpretation = interp.significance_sentence(
        p, "difference between the two groups", "difference between the two groups",
    )
    if interp.is_significant(p):
        interpretation += (
            f" Group '{labels[0]}' (mean {m1:.2f}) is {direction} than "
            f"group '{labels[1]}' (mean {m2:.2f})."
        )
    else:
        interpretation += " The observed difference may be due to chance."

    recs = interp.base_recommendations(test, p, min(n1, n2), "the two group means are equal")
    if interp.is_significant(p):
        recs.append("Use Cohen's d to judge the practical importance of the difference.")
    recs += _unequal_size_note([n1, n2])

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "t": t, "df": df, "p_value": p,
            "mean1": m1, "mean2": m2, "std1": s1, "std2": s2,
            "n1": n1, "n2": n2, "mean_difference": diff, "pooled_std": pooled_std,
        },
        p_value=p,
        p_value_method="t distribution",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="Cohen's d", value=d, interpretation=interp.interpret_cohens_d(d)),
        confidence_interval=_interval(diff - margin, diff + margin),
        power=_power(dist.t_test_power(t, df)),
        groups=[str(label) for label in labels],
        group_stats={str(k): _describe_group(v) for k, v in split.items()},
        assumptions=group_assumptions(split),
        interpretation=interpretation,
        recommendations=recs,
    )


def _pair_up(
    test: TestDefinition,
    values: Sequence[float],
    groups: Sequence[Any],
) -> tuple[list[str], list[float], list[float], list[str]]:
    """i-th value of the first group is paired with the i-th value of the second."""
    labels, split = _require_groups(test, values, groups)
    first, second = split[labels[0]], split[labels[1]]
    n = min(len(first), len(second))
    warnings = []
    if len(first) != len(second):
        warnings.append(
            f"Groups have different sizes ({len(first)} and {len(second)}); "
            f"only the first {n} pairs are used."
        )
    return labels, first[:n], second[:n], warnings


def paired_t_test(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """t-test on per-pair differences (first group minus second group)."""
    test = _catalog_entry(TestKind.PAIRED_T_TEST)
    labels, first, second, warnings = _pair_up(test, values, groups)
    differences = [a - b for a, b in zip(first, second)]
    n = len(differences)
    if n < 2:
        raise ComputationError("The paired t-test needs at least two complete pairs.")

    mean_diff = ns.mean(differences)
    std_diff = ns.std_dev(differences)
    if std_diff == 0:
        raise ComputationError("All paired differences are identical; the t statistic is undefined.")

    se = std_diff / math.sqrt(n)
    t = mean_diff / se
    df = n - 1
    p = dist.t_two_tailed_p(t, df)
    d = mean_diff / std_diff
    margin = dist.t_ppf(_UPPER_Q, df) * se

    interpretation = interp.significance_sentence(
        p, "difference between the paired measurements", "difference between the paired measurements",
    )
    if interp.is_significant(p):
        direction = "higher" if mean_diff > 0 else "lower"
        interpretation += (
            f" On average '{labels[0]}' is {direction} than '{labels[1]}' "
            f"by {abs(mean_diff):.2f}."
        )

    recs = interp.base_recommendations(test, p, n, "the mean difference is zero")

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "t": t, "df": df, "p_value": p,
            "mean_difference": mean_diff, "std_difference": std_diff, "n": n,
        },
        p_value=p,
        p_value_method="t distribution",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="Cohen's d", value=d, interpretation=interp.interpret_cohens_d(d)),
        confidence_interval=_interval(mean_diff - margin, mean_diff + margin),
        power=_power(dist.t_test_power(t, df)),
        groups=[str(label) for label in labels],
        group_stats={
            str(labels[0]): _describe_group(first),
            str(labels[1]): _describe_group(second),
        },
        assumptions=paired_assumptions(differences),
        interpretation=interpretation,
        recommendations=recs,
        warnings=warnings,
    )


def one_way_anova(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """Between / within sum-of-squares F test with η² and ω²."""
    test = _catalog_entry(TestKind.ONE_WAY_ANOVA)
    labels, split = _require_groups(test, values, groups)
    ss = ns.one_way_sum_of_squares(values, groups)
    if ss.df_within < 1:
        raise ComputationError("ANOVA needs more observations than groups.")

    ms_between = ss.ss_between / ss.df_between
    ms_within = ss.ss_within / ss.df_within
    if ms_within == 0:
        if ss.ss_between != 0:
            raise ComputationError(
                "Within-group variance is zero while group means differ; the F statistic is undefined."
            )
        f_stat, p = 0.0, 1.0
    else:
        f_stat = ms_between / ms_within
        p = dist.f_sf(f_stat, ss.df_between, ss.df_within)

    eta_squared = ss.ss_between / ss.ss_total if ss.ss_total > 0 else 0.0
    omega_denominator = ss.ss_total + ms_within
    omega_squared = (
        (ss.ss_between - ss.df_between * ms_within) / omega_denominator
        if omega_denominator > 0 else 0.0
    )
    significant = interp.is_significant(p)

    interpretation = interp.significance_sentence(
        p, "difference between the group means", "difference between the group means",
    )
    if significant:
        interpretation += (
            " At least one group differs from the others; post-hoc tests are needed "
            "to find which."
        )
    else:
        interpretation += " The groups are statistically similar."

    recs = interp.base_recommendations(test, p, len(values), "all group means are equal")
    if significant:
        recs.append("Run post-hoc comparisons such as Tukey's HSD or Bonferroni-corrected t-tests.")
    if len(labels) > MANY_GROUPS_THRESHOLD:
        recs.append("With many groups, correct for multiple comparisons.")
    recs += _unequal_size_note([len(v) for v in split.values()])

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "f": f_stat, "df_between": ss.df_between, "df_within": ss.df_within, "p_value": p,
            "ss_between": ss.ss_between, "ss_within": ss.ss_within, "ss_total": ss.ss_total,
            "ms_between": ms_between, "ms_within": ms_within,
            "eta_squared": eta_squared, "omega_squared": omega_squared,
            "n": len(values), "k": len(labels),
        },
        p_value=p,
        p_value_method="F distribution",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(
            name="eta-squared", value=eta_squared,
            interpretation=interp.interpret_eta_squared(eta_squared),
        ),
        power=_power(dist.anova_power(f_stat, ss.df_between, ss.df_within)),
        groups=[str(label) for label in labels],
        group_stats={str(k): _describe_group(v, with_ci=True) for k, v in split.items()},
        assumptions=group_assumptions(split),
        post_hoc_required=significant,
        interpretation=interpretation,
        recommendations=recs,
    )


# ─────────────────────────────────────────────
# NONPARAMETRIC COMPARISONS
# ─────────────────────────────────────────────

def mann_whitney_u(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """
    Rank-sum test. Exact p for max(n1, n2) ≤ 20 without ties, otherwise
    the tie-corrected normal approximation. z is always reported for r.
    """
    test = _catalog_entry(TestKind.MANN_WHITNEY)
    labels, split = _require_groups(test, values, groups)
    g1, g2 = split[labels[0]], split[labels[1]]
    n1, n2 = len(g1), len(g2)
    pooled = g1 + g2
    big_n = n1 + n2

    ranks = ns.rank_assign(pooled)
    r1, r2 = sum(ranks[:n1]), sum(ranks[n1:])
    u1 = r1 - n1 * (n1 + 1) / 2
    u2 = r2 - n2 * (n2 + 1) / 2
    u = min(u1, u2)

    tie = ns.tie_correction(pooled)
    sigma = math.sqrt(n1 * n2 * (big_n + 1) / 12 * (1 - tie))
    if sigma == 0:
        raise ComputationError("All values are identical; the Mann-Whitney test is undefined.")
    z = (u - n1 * n2 / 2) / sigma

    if max(n1, n2) > MANN_WHITNEY_EXACT_MAX_N or tie > 0:
        p = dist.z_two_tailed_p(z)
        method = "normal approximation"
    else:
        p = dist.mann_whitney_exact_p(u, n1, n2)
        method = "exact"
    r = abs(z) / math.sqrt(big_n)

    interpretation = interp.significance_sentence(
        p, "difference between the two distributions", "difference between the two distributions",
    )
    if interp.is_significant(p):
        higher = labels[0] if r1 / n1 > r2 / n2 else labels[1]
        interpretation += f" Values in group '{higher}' tend to be higher."

    recs = interp.base_recommendations(
        test, p, min(n1, n2), "both groups come from the same distribution",
    )
    recs += _unequal_size_note([n1, n2])

    group_stats = {}
    for label, vals, rank_sum in ((labels[0], g1, r1), (labels[1], g2, r2)):
        group_stats[str(label)] = GroupStats(
            n=len(vals), median=ns.median(vals), sum_ranks=rank_sum, mean_rank=rank_sum / len(vals),
        )

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "u": u, "u1": u1, "u2": u2, "z": z, "p_value": p,
            "n1": n1, "n2": n2, "rank_sum1": r1, "rank_sum2": r2, "tie_correction": tie,
        },
        p_value=p,
        p_value_method=method,
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="r", value=r, interpretation=interp.interpret_effect_r(r)),
        groups=[str(label) for label in labels],
        group_stats=group_stats,
        interpretation=interpretation,
        recommendations=recs,
    )


def kruskal_wallis_h(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """Tie-corrected H on pooled midranks, chi-square p with k − 1 df, ε² effect size."""
    test = _catalog_entry(TestKind.KRUSKAL_WALLIS)
    labels, _ = _require_groups(test, values, groups)
    big_n = len(values)
    ranks = ns.rank_assign(values)
    rank_split = ns.split_by_group(ranks, groups)

    h = 12 / (big_n * (big_n + 1)) * sum(
        sum(r) ** 2 / len(r) for r in rank_split.values()
    ) - 3 * (big_n + 1)
    tie = ns.tie_correction(values)
    if tie >= 1:
        raise ComputationError("All values are identical; the Kruskal-Wallis test is undefined.")
    h /= (1 - tie)

    df = len(labels) - 1
    p = dist.chi2_sf(h, df)
    epsilon_squared = (h - df) / (big_n - 1)
    significant = interp.is_significant(p)

    interpretation = interp.significance_sentence(
        p, "difference between the group distributions", "difference between the group distributions",
    )
    if significant:
        interpretation += " At least one group differs; follow up with pairwise comparisons."

    recs = interp.base_recommendations(test, p, big_n, "all groups come from the same distribution")
    if significant:
        recs.append("Use Dunn's test with a multiple-comparison correction for pairwise follow-up.")
    if len(labels) > MANY_GROUPS_THRESHOLD:
        recs.append("With many groups, correct for multiple comparisons.")

    value_split = ns.split_by_group(values, groups)
    group_stats = {
        str(label): GroupStats(
            n=len(rank_split[label]),
            median=ns.median(value_split[label]),
            sum_ranks=sum(rank_split[label]),
            mean_rank=sum(rank_split[label]) / len(rank_split[label]),
        )
        for label in labels
    }

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={"h": h, "df": df, "p_value": p, "n": big_n, "tie_correction": tie},
        p_value=p,
        p_value_method="chi-square approximation",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(
            name="epsilon-squared", value=epsilon_squared,
            interpretation=interp.interpret_eta_squared(epsilon_squared),
        ),
        groups=[str(label) for label in labels],
        group_stats=group_stats,
        post_hoc_required=significant,
        interpretation=interpretation,
        recommendations=recs,
    )


def wilcoxon_signed_rank(values: Sequence[float], groups: Sequence[Any]) -> TestResult:
    """
    Signed-rank test on paired differences, zeros dropped. Exact p for
    n ≤ 10 without ties, otherwise the tie-corrected normal approximation.
    """
    test = _catalog_entry(TestKind.WILCOXON_SIGNED_RANK)
    labels, first, second, warnings = _pair_up(test, values, groups)
    all_differences = [a - b for a, b in zip(first, second)]
    differences = [d for d in all_differences if d != 0]
    n = len(differences)
    if n == 0:
        raise ComputationError("All paired differences are zero; the Wilcoxon test is undefined.")
    if len(differences) < len(all_differences):
        warnings.append(f"{len(all_differences) - n} zero difference(s) were dropped.")

    abs_diffs = [abs(d) for d in differences]
    ranks = ns.rank_assign(abs_diffs)
    w_plus = sum(r for r, d in zip(ranks, differences) if d > 0)
    w_minus = sum(r for r, d in zip(ranks, differences) if d < 0)
    w = min(w_plus, w_minus)

    tie = ns.tie_correction(abs_diffs)
    sigma = math.sqrt(n * (n + 1) * (2 * n + 1) / 24 * (1 - tie))
    if sigma == 0:
        raise ComputationError("Too few non-zero differences for the Wilcoxon test.")
    z = (w - n * (n + 1) / 4) / sigma

    if n > WILCOXON_EXACT_MAX_N or tie > 0:
        p = dist.z_two_tailed_p(z)
        method = "normal approximation"
    else:
        p = dist.wilcoxon_exact_p(w, n)
        method = "exact"
    r = abs(z) / math.sqrt(n)

    interpretation = interp.significance_sentence(
        p, "difference between the paired measurements", "difference between the paired measurements",
    )
    if interp.is_significant(p):
        direction = "higher" if w_plus > w_minus else "lower"
        interpretation += f" '{labels[0]}' tends to be {direction} than '{labels[1]}'."

    recs = interp.base_recommendations(test, p, n, "the median difference is zero")

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "w": w, "w_plus": w_plus, "w_minus": w_minus, "z": z, "p_value": p,
            "n": n, "tie_correction": tie,
        },
        p_value=p,
        p_value_method=method,
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="r", value=r, interpretation=interp.interpret_effect_r(r)),
        groups=[str(label) for label in labels],
        group_stats={
            str(labels[0]): GroupStats(n=len(first), median=ns.median(first)),
            str(labels[1]): GroupStats(n=len(second), median=ns.median(second)),
        },
        assumptions=wilcoxon_assumptions(differences),
        interpretation=interpretation,
        recommendations=recs,
        warnings=warnings,
    )


# ─────────────────────────────────────────────
# ASSOCIATION
# ─────────────────────────────────────────────

def _check_pairs(test: TestDefinition, x: Sequence[float], y: Sequence[float]) -> int:
    if len(x) != len(y):
        raise InputValidationError("Both variables must have the same number of values.")
    if len(x) < test.min_sample_size:
        raise InputValidationError(
            f"{test.name} requires at least {test.min_sample_size} observations; found {len(x)}."
        )
    return len(x)


def _correlation_recommendations(test: TestDefinition, r: float, p: float, n: int) -> list[str]:
    recs = interp.base_recommendations(test, p, n, "there is no relationship between the variables")
    if interp.is_significant(p) and abs(r) < 0.3:
        recs.append("The correlation is significant but weak; its practical importance is limited.")
    return recs


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> TestResult:
    """Pearson r, t test on n − 2 df, Fisher-z confidence interval."""
    test = _catalog_entry(TestKind.PEARSON_CORRELATION)
    n = _check_pairs(test, x, y)
    r = ns.sample_correlation(x, y)
    if r is None:
        raise ComputationError("One of the variables has zero variance; correlation is undefined.")

    df = n - 2
    t, p = _t_from_r(r, df)

    ci = None
    if n > 3:
        if abs(r) >= 1:
            ci = _interval(r, r)
        else:
            z = math.atanh(r)
            half_width = dist.norm_ppf(_UPPER_Q) / math.sqrt(n - 3)
            ci = _interval(math.tanh(z - half_width), math.tanh(z + half_width))

    strength = interp.correlation_strength(r)
    interpretation = interp.significance_sentence(
        p, "correlation between the variables", "correlation between the variables",
    )
    interpretation += f" The relationship is {strength} and {interp.correlation_direction(r)} (r = {r:.4f})."

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={"r": r, "r_squared": r * r, "t": t, "df": df, "p_value": p, "n": n},
        p_value=p,
        p_value_method="t distribution",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="r", value=r, interpretation=strength),
        confidence_interval=ci,
        power=_power(dist.correlation_power(r, n)),
        assumptions=correlation_assumptions(x, y),
        interpretation=interpretation,
        recommendations=_correlation_recommendations(test, r, p, n),
    )


def spearman_correlation(x: Sequence[float], y: Sequence[float]) -> TestResult:
    """
    ρ from the d² shortcut without ties, Pearson on ranks with ties.
    Exact permutation p for n ≤ 10 without ties, t approximation otherwise.
    """
    test = _catalog_entry(TestKind.SPEARMAN_CORRELATION)
    n = _check_pairs(test, x, y)
    rx, ry = ns.rank_assign(x), ns.rank_assign(y)
    tied = ns.has_ties(x) or ns.has_ties(y)

    if tied:
        rho = ns.sample_correlation(rx, ry)
        if rho is None:
            raise ComputationError("One of the variables is constant; Spearman's rho is undefined.")
    else:
        d_squared = sum((a - b) ** 2 for a, b in zip(rx, ry))
        rho = 1 - 6 * d_squared / (n * (n * n - 1))

    df = n - 2
    t, p_t = _t_from_r(rho, df)
    if n > SPEARMAN_EXACT_MAX_N or tied:
        p = p_t
        method = "t approximation"
    else:
        p = dist.spearman_exact_p(rho, n)
        method = "exact"

    strength = interp.correlation_strength(rho)
    interpretation = interp.significance_sentence(
        p, "monotonic relationship between the variables", "monotonic relationship between the variables",
    )
    interpretation += (
        f" The relationship is {strength} and {interp.correlation_direction(rho)} (rho = {rho:.4f})."
    )

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={"rho": rho, "t": t, "df": df, "p_value": p, "n": n},
        p_value=p,
        p_value_method=method,
        significance=interp.significance_tier(p),
        effect_size=EffectSize(name="rho", value=rho, interpretation=strength),
        interpretation=interpretation,
        recommendations=_correlation_recommendations(test, rho, p, n),
    )


def chi_square_independence(row_values: Sequence[Any], col_values: Sequence[Any]) -> TestResult:
    """Pearson chi-square on the observed contingency table, Cramér's V effect size."""
    test = _catalog_entry(TestKind.CHI_SQUARE_INDEPENDENCE)
    if len(row_values) != len(col_values):
        raise InputValidationError("Both variables must have the same number of values.")
    row_labels = unique_in_order(row_values)
    col_labels = unique_in_order(col_values)
    if len(row_labels) < 2 or len(col_labels) < 2:
        raise InputValidationError(
            f"{test.name} requires at least two categories in each variable; "
            f"found {len(row_labels)} and {len(col_labels)}."
        )

    row_index = {label: i for i, label in enumerate(row_labels)}
    col_index = {label: j for j, label in enumerate(col_labels)}
    observed = np.zeros((len(row_labels), len(col_labels)), dtype=int)
    for a, b in zip(row_values, col_values):
        observed[row_index[a], col_index[b]] += 1

    grand_total = int(observed.sum())
    expected = np.outer(observed.sum(axis=1), observed.sum(axis=0)) / grand_total
    positive = expected > 0
    chi2 = float(np.sum((observed[positive] - expected[positive]) ** 2 / expected[positive]))
    df = (len(row_labels) - 1) * (len(col_labels) - 1)
    p = dist.chi2_sf(chi2, df)
    cramers_v = math.sqrt(chi2 / (grand_total * (min(observed.shape) - 1)))

    assumptions, all_passed = chi_square_assumptions(expected)

    interpretation = interp.significance_sentence(
        p, "association between the two variables", "association between the two variables",
    )
    interpretation += f" Cramer's V = {cramers_v:.4f} ({interp.interpret_cramers_v(cramers_v)})."

    recs = interp.base_recommendations(test, p, grand_total, "the two variables are independent")
    if not all_passed:
        recs.append("Some chi-square assumptions are not met.")
        recs.append("Consider Fisher's exact test for 2x2 tables.")
        recs.append("Merge sparse categories to raise the expected counts.")
    elif grand_total < test.recommended_sample_size:
        recs.append("With a small sample, Fisher's exact test is preferable.")

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "chi_square": chi2, "df": df, "p_value": p, "n": grand_total,
            "cramers_v": cramers_v, "rows": len(row_labels), "columns": len(col_labels),
        },
        p_value=p,
        p_value_method="chi-square distribution",
        significance=interp.significance_tier(p),
        effect_size=EffectSize(
            name="Cramer's V", value=cramers_v, interpretation=interp.interpret_cramers_v(cramers_v),
        ),
        contingency_table=ContingencyTable(
            row_labels=[str(label) for label in row_labels],
            col_labels=[str(label) for label in col_labels],
            observed=observed.tolist(),
            expected=expected.tolist(),
        ),
        assumptions=assumptions,
        interpretation=interpretation,
        recommendations=recs,
    )


# ─────────────────────────────────────────────
# PREDICTION
# ─────────────────────────────────────────────

def _coefficient(name: str, estimate: float, se: float, df: int) -> Coefficient:
    if se > 0:
        t = estimate / se
        p = dist.t_two_tailed_p(t, df)
    else:
        t = math.copysign(math.inf, estimate) if estimate != 0 else 0.0
        p = 0.0 if estimate != 0 else 1.0
    margin = dist.t_ppf(_UPPER_Q, df) * se
    return Coefficient(
        variable=name,
        estimate=estimate,
        std_error=se,
        t_statistic=t,
        p_value=p,
        ci_lower=estimate - margin,
        ci_upper=estimate + margin,
    )


def simple_linear_regression(x: Sequence[float], y: Sequence[float]) -> TestResult:
    """Closed-form OLS of y on x with coefficient tests and residual diagnostics."""
    test = _catalog_entry(TestKind.SIMPLE_LINEAR_REGRESSION)
    if len(x) != len(y):
        raise InputValidationError("Both variables must have the same number of values.")
    n = len(x)
    if n < 3:
        raise InputValidationError("Simple Linear Regression requires at least 3 observations.")

    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    x_bar, y_bar = xa.mean(), ya.mean()
    sxx = float(np.sum((xa - x_bar) ** 2))
    if sxx == 0:
        raise ComputationError("The predictor has zero variance; the slope is undefined.")
    ss_total = float(np.sum((ya - y_bar) ** 2))
    if ss_total == 0:
        raise ComputationError("The dependent variable has zero variance; R-squared is undefined.")

    b1 = float(np.sum((xa - x_bar) * (ya - y_bar)) / sxx)
    b0 = float(y_bar - b1 * x_bar)
    predicted = b0 + b1 * xa
    residuals = ya - predicted
    ss_residual = float(np.sum(residuals ** 2))

    df = n - 2
    r_squared = max(0.0, 1 - ss_residual / ss_total)
    adj_r_squared = 1 - (1 - r_squared) * (n - 1) / df
    mse = ss_residual / df
    residual_se = math.sqrt(mse)
    if r_squared < 1:
        f_stat = r_squared / ((1 - r_squared) / df)
        f_p = dist.f_sf(f_stat, 1, df)
    else:
        f_stat, f_p = math.inf, 0.0

    intercept = _coefficient("intercept", b0, math.sqrt(mse * (1 / n + x_bar ** 2 / sxx)), df)
    slope = _coefficient("slope", b1, math.sqrt(mse / sxx), df)

    assumptions, all_passed = regression_assumptions(residuals.tolist(), predicted.tolist())

    sign = "+" if b1 >= 0 else "-"
    equation = f"y = {b0:.4f} {sign} {abs(b1):.4f}x"
    interpretation = interp.significance_sentence(
        f_p, "linear relationship between x and y", "linear relationship between x and y",
    )
    interpretation += (
        f" Fitted model: {equation}. The model explains {r_squared * 100:.1f}% of the variance in y;"
        f" each one-unit increase in x changes y by {b1:.4f} on average."
    )

    recs = interp.base_recommendations(test, f_p, n, "the slope is zero")
    if not all_passed:
        recs.append("Some regression assumptions are not met.")
        recs.append("Inspect the residual plots, and consider transforming the data or another model.")
    else:
        recs.append("Inspect the residual plots to confirm the assumptions.")

    return TestResult(
        test_id=test.id,
        test_name=test.name,
        statistics={
            "intercept": b0, "slope": b1, "r_squared": r_squared, "adj_r_squared": adj_r_squared,
            "f": f_stat, "df_model": 1, "df_residual": df, "p_value": f_p,
            "residual_std_error": residual_se, "n": n,
        },
        p_value=f_p,
        p_value_method="F distribution",
        significance=interp.significance_tier(f_p),
        effect_size=EffectSize(
            name="R-squared", value=r_squared,
            interpretation=interp.correlation_strength(math.sqrt(r_squared)),
        ),
        confidence_interval=_interval(slope.ci_lower, slope.ci_upper),
        coefficients=[intercept, slope],
        assumptions=assumptions,
        interpretation=interpretation,
        recommendations=recs,
    )


# ─────────────────────────────────────────────
# DATASET-LEVEL ENTRY POINT
# ─────────────────────────────────────────────

_GROUPED_TESTS: dict[TestKind, Callable[[Sequence[float], Sequence[Any]], TestResult]] = {
    TestKind.INDEPENDENT_T_TEST:   independent_t_test,
    TestKind.PAIRED_T_TEST:        paired_t_test,
    TestKind.ONE_WAY_ANOVA:        one_way_anova,
    TestKind.MANN_WHITNEY:         mann_whitney_u,
    TestKind.KRUSKAL_WALLIS:       kruskal_wallis_h,
    TestKind.WILCOXON_SIGNED_RANK: wilcoxon_signed_rank,
}

_NUMERIC_PAIR_TESTS: dict[TestKind, Callable[[Sequence[float], Sequence[float]], TestResult]] = {
    TestKind.PEARSON_CORRELATION:      pearson_correlation,
    TestKind.SPEARMAN_CORRELATION:     spearman_correlation,
    TestKind.SIMPLE_LINEAR_REGRESSION: simple_linear_regression,
}

_CATEGORY_PAIR_TESTS: dict[TestKind, Callable[[Sequence[Any], Sequence[Any]], TestResult]] = {
    TestKind.CHI_SQUARE_INDEPENDENCE: chi_square_independence,
}

_dispatched = set(_GROUPED_TESTS) | set(_NUMERIC_PAIR_TESTS) | set(_CATEGORY_PAIR_TESTS)
if _dispatched != set(TestKind):
    raise RuntimeError(f"No runner registered for: {sorted(k.value for k in set(TestKind) - _dispatched)}")


def _extract(
    test: TestDefinition,
    dataset: Dataset,
    categorical_column: str,
    numerical_column: str,
) -> tuple[list[Any], list[Any]]:
    if test.id in _GROUPED_TESTS:
        values, groups = grouped_numeric(dataset, categorical_column, numerical_column)
        return values, groups
    if test.id in _NUMERIC_PAIR_TESTS:
        return paired_numeric(dataset, categorical_column, numerical_column)
    return categorical_pairs(dataset, categorical_column, numerical_column)


def _prepare(
    test_id: TestKind | str,
    dataset: Dataset | list[dict],
    categorical_column: str,
    numerical_column: str,
) -> tuple[TestDefinition, tuple[list[Any], list[Any]], list[str]]:
    test = get_test_by_id(test_id)
    if test is None:
        raise InputValidationError(f"Unknown test '{test_id}'.")
    if not isinstance(dataset, Dataset):
        dataset = Dataset.from_rows(list(dataset or []))
    if dataset.n_rows == 0:
        raise InputValidationError("No data provided.")

    missing = [c for c in (categorical_column, numerical_column) if not dataset.has_column(c)]
    if missing:
        raise InputValidationError(
            "Missing column(s): " + ", ".join(f"'{c}'" for c in missing) + "."
        )

    first, second = _extract(test, dataset, categorical_column, numerical_column)
    n = len(first)
    errors: list[str] = []
    warnings: list[str] = []

    if n < test.min_sample_size:
        errors.append(
            f"{test.name} requires at least {test.min_sample_size} observations; found {n}."
        )

    if test.is_group_based:
        sizes: dict[Any, int] = {}
        for label in second:
            sizes[label] = sizes.get(label, 0) + 1
        k = len(sizes)
        if test.min_groups == test.max_groups == 2 and k != 2:
            errors.append(f"{test.name} requires exactly two groups; found {k}.")
        elif k < test.min_groups:
            errors.append(
                f"{test.name} requires at least {_count_word(test.min_groups)} groups; found {k}."
            )
        elif test.max_groups and k > test.max_groups:
            errors.append(f"{test.name} supports at most {test.max_groups} groups; found {k}.")
        for label, size in sizes.items():
            if size < 2:
                warnings.append(f"Group '{label}' contains a single observation.")

    if "normality" in test.assumptions and 0 < n < 30:
        warnings.append("Small sample: parametric tests rely heavily on the normality assumption.")

    if errors:
        raise InputValidationError(" ".join(errors))
    return test, (first, second), warnings


def validate_data_for_test(
    test_id: TestKind | str,
    dataset: Dataset | list[dict],
    categorical_column: str,
    numerical_column: str,
) -> list[str]:
    """
    Checks that the dataset can feed the given test.
    Raises InputValidationError naming every unmet precondition; returns warnings.
    """
    _, _, warnings = _prepare(test_id, dataset, categorical_column, numerical_column)
    return warnings


def run_test(
    test_id: TestKind | str,
    dataset: Dataset | list[dict],
    categorical_column: str,
    numerical_column: str,
) -> TestResult:
    """Validates, then runs the requested test on the two selected columns."""
    test, (first, second), warnings = _prepare(test_id, dataset, categorical_column, numerical_column)
    logger.debug("Running %s on %d observations", test.id.value, len(first))

    if test.id in _GROUPED_TESTS:
        result = _GROUPED_TESTS[test.id](first, second)
    elif test.id in _NUMERIC_PAIR_TESTS:
        result = _NUMERIC_PAIR_TESTS[test.id](first, second)
    else:
        result = _CATEGORY_PAIR_TESTS[test.id](first, second)

    if warnings:
        result = result.model_copy(update={"warnings": warnings + result.warnings})
    return result
