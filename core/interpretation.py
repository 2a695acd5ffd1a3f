"""
FILE: core/interpretation.py
-----------------------------
Plain-English wording for test results.

One significance policy for every test:
  p < 0.001 → very highly significant
  p < 0.01  → highly significant
  p < 0.05  → significant
  otherwise → not significant
"""

from Schemas.statistician import SignificanceTier
from Schemas.test_catalog import TestDefinition, TestType
from constants.statistician import (
    VERY_HIGHLY_SIGNIFICANT_P,
    HIGHLY_SIGNIFICANT_P,
    SIGNIFICANT_P,
    COHENS_D_BOUNDS,
    ETA_SQUARED_BOUNDS,
    EFFECT_R_BOUNDS,
    CRAMERS_V_BOUNDS,
    CORRELATION_BOUNDS,
)


# ─────────────────────────────────────────────
# SIGNIFICANCE
# ─────────────────────────────────────────────

def significance_tier(p_value: float) -> SignificanceTier:
    if p_value < VERY_HIGHLY_SIGNIFICANT_P:
        return SignificanceTier.VERY_HIGHLY_SIGNIFICANT
    elif p_value < HIGHLY_SIGNIFICANT_P:
        return SignificanceTier.HIGHLY_SIGNIFICANT
    elif p_value < SIGNIFICANT_P:
        return SignificanceTier.SIGNIFICANT
    return SignificanceTier.NOT_SIGNIFICANT


def is_significant(p_value: float) -> bool:
    return p_value < SIGNIFICANT_P


def format_p(p_value: float) -> str:
    if p_value < VERY_HIGHLY_SIGNIFICANT_P:
        return "p < 0.001"
    return f"p = {p_value:.4f}"


def significance_sentence(p_value: float, finding: str, null_finding: str) -> str:
    """
    e.g. significance_sentence(0.003, "a difference between the groups",
                               "difference between the groups")
    → "There is a highly significant difference between the groups (p = 0.0030)."
    """
    tier = significance_tier(p_value)
    if tier == SignificanceTier.NOT_SIGNIFICANT:
        return f"There is no statistically significant {null_finding} ({format_p(p_value)})."
    article = "an" if tier.value[0] in "aeiou" else "a"
    return f"There is {article} {tier.value} {finding} ({format_p(p_value)})."


# ─────────────────────────────────────────────
# EFFECT SIZE LABELS
# ─────────────────────────────────────────────

def _three_step(value: float, bounds: tuple[float, float, float], below: str) -> str:
    small, medium, large = bounds
    if value >= large:
        return "large"
    elif value >= medium:
        return "medium"
    elif value >= small:
        return "small"
    return below


def interpret_cohens_d(d: float) -> str:
    return _three_step(abs(d), COHENS_D_BOUNDS, "negligible")


def interpret_eta_squared(value: float) -> str:
    """Also used for ε² and ω²."""
    return _three_step(value, ETA_SQUARED_BOUNDS, "negligible")


def interpret_effect_r(r: float) -> str:
    return _three_step(abs(r), EFFECT_R_BOUNDS, "negligible")


def interpret_cramers_v(v: float) -> str:
    weak, moderate, strong = CRAMERS_V_BOUNDS
    if v >= strong:
        return "strong"
    elif v >= moderate:
        return "moderate"
    elif v >= weak:
        return "weak"
    return "negligible"


def correlation_strength(r: float) -> str:
    weak, moderate, strong, very_strong = CORRELATION_BOUNDS
    abs_r = abs(r)
    if abs_r >= very_strong:
        return "very strong"
    elif abs_r >= strong:
        return "strong"
    elif abs_r >= moderate:
        return "moderate"
    elif abs_r >= weak:
        return "weak"
    return "very weak"


def correlation_direction(r: float) -> str:
    if r > 0:
        return "positive"
    elif r < 0:
        return "negative"
    return "no"


# ─────────────────────────────────────────────
# RECOMMENDATIONS
# ─────────────────────────────────────────────

def base_recommendations(
    test: TestDefinition,
    p_value: float,
    n: int,
    null_hypothesis: str,
) -> list[str]:
    """Reject / fail-to-reject, sample-size caution and the causation caveat."""
    recs: list[str] = []
    if is_significant(p_value):
        recs.append(f"Reject the null hypothesis that {null_hypothesis}.")
    else:
        recs.append(f"Fail to reject the null hypothesis that {null_hypothesis}.")

    if n < test.recommended_sample_size:
        recs.append(
            f"Sample size ({n}) is below the recommended {test.recommended_sample_size} "
            f"for this test; generalise with caution."
        )

    if test.type == TestType.ASSOCIATION:
        recs.append("Association does not imply causation.")
    elif test.type == TestType.PREDICTION:
        recs.append("Regression does not establish a causal relationship.")
    return recs
