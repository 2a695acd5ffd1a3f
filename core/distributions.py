"""
FILE: core/distributions.py
----------------------------
Distribution lookups for turning statistics into p-values, critical values
and power estimates.

Continuous families (Student's t, central and noncentral F, chi-square,
standard normal, noncentral t) come from scipy.stats.

Small-sample null distributions for the rank tests are counted exactly:
  - Mann-Whitney U  : recurrence f(u; m, n) = f(u − n; m − 1, n) + f(u; m, n − 1)
  - Wilcoxon W+     : subset sums of the ranks 1..n
  - Spearman ρ      : permutation distribution of Σ i·π(i), bitmask DP (n ≤ 10)
These assume untied data. Callers switch to the normal / t approximation
when ties are present.
"""

from functools import lru_cache
from math import comb, factorial

import numpy as np
from scipy import stats

from constants.statistician import DEFAULT_ALPHA, SPEARMAN_EXACT_MAX_N


# ─────────────────────────────────────────────
# STUDENT'S T
# ─────────────────────────────────────────────

def t_cdf(t: float, df: float) -> float:
    return float(stats.t.cdf(t, df))


def t_ppf(q: float, df: float) -> float:
    return float(stats.t.ppf(q, df))


def t_two_tailed_p(t: float, df: float) -> float:
    return float(min(1.0, 2.0 * stats.t.sf(abs(t), df)))


# ─────────────────────────────────────────────
# F
# ─────────────────────────────────────────────

def f_cdf(f: float, df1: float, df2: float) -> float:
    return float(stats.f.cdf(f, df1, df2))


def f_ppf(q: float, df1: float, df2: float) -> float:
    return float(stats.f.ppf(q, df1, df2))


def f_sf(f: float, df1: float, df2: float) -> float:
    """Upper-tail p-value for an F statistic."""
    return float(stats.f.sf(f, df1, df2))


# ─────────────────────────────────────────────
# CHI-SQUARE
# ─────────────────────────────────────────────

def chi2_cdf(x: float, df: float) -> float:
    return float(stats.chi2.cdf(x, df))


def chi2_ppf(q: float, df: float) -> float:
    return float(stats.chi2.ppf(q, df))


def chi2_sf(x: float, df: float) -> float:
    return float(stats.chi2.sf(x, df))


# ─────────────────────────────────────────────
# STANDARD NORMAL
# ─────────────────────────────────────────────

def norm_cdf(z: float) -> float:
    return float(stats.norm.cdf(z))


def norm_ppf(q: float) -> float:
    return float(stats.norm.ppf(q))


def z_two_tailed_p(z: float) -> float:
    return float(min(1.0, 2.0 * stats.norm.sf(abs(z))))


# ─────────────────────────────────────────────
# POWER
# ─────────────────────────────────────────────

def _clip_unit(value: float) -> float:
    return float(min(max(value, 0.0), 1.0))


def t_test_power(t: float, df: float, alpha: float = DEFAULT_ALPHA) -> float:
    """Post-hoc power of a two-tailed t-test, noncentral t with noncentrality |t|."""
    if not np.isfinite(t):
        return 1.0
    critical = stats.t.ppf(1 - alpha / 2, df)
    return _clip_unit(1 - stats.nct.cdf(critical, df, abs(t)))


def anova_power(f: float, df_between: float, df_within: float, alpha: float = DEFAULT_ALPHA) -> float:
    """Post-hoc power of the omnibus F test, noncentral F with λ = F·df_between."""
    if not np.isfinite(f):
        return 1.0
    critical = stats.f.ppf(1 - alpha, df_between, df_within)
    lam = f * df_between
    if lam <= 0:
        return _clip_unit(alpha)
    return _clip_unit(1 - stats.ncf.cdf(critical, df_between, df_within, lam))


def correlation_power(r: float, n: int, alpha: float = DEFAULT_ALPHA) -> float | None:
    """Fisher-z approximation. None when n ≤ 3 (standard error undefined)."""
    if n <= 3:
        return None
    if abs(r) >= 1:
        return 1.0
    zr = np.arctanh(r)
    se = 1 / np.sqrt(n - 3)
    z_alpha = stats.norm.ppf(1 - alpha / 2)
    return _clip_unit(1 - stats.norm.cdf(z_alpha - abs(zr) / se))


# ─────────────────────────────────────────────
# EXACT NULL DISTRIBUTIONS
# ─────────────────────────────────────────────

@lru_cache(maxsize=None)
def _mann_whitney_counts(m: int, n: int) -> tuple[int, ...]:
    """Number of arrangements giving each U = 0..m·n."""
    if m == 0 or n == 0:
        return (1,)
    fewer_first = _mann_whitney_counts(m - 1, n)
    fewer_second = _mann_whitney_counts(m, n - 1)
    counts = [0] * (m * n + 1)
    for u, c in enumerate(fewer_first):
        counts[u + n] += c
    for u, c in enumerate(fewer_second):
        counts[u] += c
    return tuple(counts)


def mann_whitney_exact_p(u: float, n1: int, n2: int) -> float:
    """Two-sided exact p-value for the smaller U statistic."""
    counts = _mann_whitney_counts(min(n1, n2), max(n1, n2))
    lower_tail = sum(counts[: int(np.floor(u)) + 1])
    return float(min(1.0, 2.0 * lower_tail / comb(n1 + n2, n1)))


@lru_cache(maxsize=None)
def _wilcoxon_counts(n: int) -> tuple[int, ...]:
    """Number of sign assignments giving each W+ = 0..n(n+1)/2."""
    max_w = n * (n + 1) // 2
    counts = [0] * (max_w + 1)
    counts[0] = 1
    for rank in range(1, n + 1):
        for w in range(max_w, rank - 1, -1):
            counts[w] += counts[w - rank]
    return tuple(counts)


def wilcoxon_exact_p(w: float, n: int) -> float:
    """Two-sided exact p-value for W = min(W+, W−)."""
    counts = _wilcoxon_counts(n)
    lower_tail = sum(counts[: int(np.floor(w)) + 1])
    return float(min(1.0, 2.0 * lower_tail / 2 ** n))


@lru_cache(maxsize=None)
def _spearman_s_counts(n: int) -> tuple[tuple[int, int], ...]:
    """
    Permutation counts of S = Σ i·π(i) for i = 1..n.
    dp[mask][s]: ways to assign the first popcount(mask) positions to the
    values in mask with partial sum s.
    """
    max_s = sum(i * i for i in range(1, n + 1))
    dp = np.zeros((1 << n, max_s + 1), dtype=np.int64)
    dp[0, 0] = 1
    for mask in range(1 << n):
        position = bin(mask).count("1") + 1
        if position > n:
            continue
        row = dp[mask]
        if not row.any():
            continue
        for j in range(n):
            if mask & (1 << j):
                continue
            shift = position * (j + 1)
            dp[mask | (1 << j), shift:] += row[: max_s + 1 - shift]
    final = dp[(1 << n) - 1]
    return tuple((int(s), int(c)) for s, c in enumerate(final) if c)


def spearman_exact_p(rho: float, n: int) -> float:
    """Two-sided exact permutation p-value of ρ for untied data, n ≤ 10."""
    if n > SPEARMAN_EXACT_MAX_N:
        raise ValueError(f"Exact Spearman distribution is only tabulated up to n={SPEARMAN_EXACT_MAX_N}.")
    sum_sq = sum(i * i for i in range(1, n + 1))
    denom = n * (n * n - 1)
    extreme = 0
    for s, count in _spearman_s_counts(n):
        d_squared = 2 * sum_sq - 2 * s
        rho_perm = 1 - 6 * d_squared / denom
        if abs(rho_perm) >= abs(rho) - 1e-12:
            extreme += count
    return float(min(1.0, extreme / factorial(n)))
