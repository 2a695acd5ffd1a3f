"""
FILE: core/methodologist_engine.py
------------------------------------
Pure deterministic test recommendation.
No LangGraph dependencies.

Scoring rules (additive, per catalog entry):
  - Design intent matches the test type                      +3
  - Data characteristics match:                              +2
      continuous-normal    → parametric tests
      continuous-nonnormal → nonparametric tests
      ordinal              → nonparametric tests
      categorical          → chi-square only
  - Sample relationship matches:                             +2
      independent → id contains "independent"
      paired      → id contains "paired", or Wilcoxon signed-rank
  - Group count matches:                                     +2
      "2"        → exactly two groups (min = max = 2)
      "3+"       → min groups ≥ 3
      "variable" → not group-based (min groups = 0)

Data-compatibility penalties (only when observed data is supplied):
  - Observed distinct groups below min_groups (group-based tests)   −5
  - Observed distinct groups above max_groups (group-based tests)   −5
  - Number of values below min_sample_size                          −3

Non-positive totals are dropped. Ties keep catalog order. Top 3 returned.
"""

from typing import Any

from core.dataset import is_missing, unique_in_order
from Schemas.methodologist import (
    Characteristics,
    DataShape,
    GroupCount,
    Recommendation,
    SampleRelationship,
    Suitability,
    WizardSelection,
)
from Schemas.test_catalog import TestCategory, TestDefinition, TestKind
from Utils.test_requirements_registry import get_all_tests


MAX_RECOMMENDATIONS = 3

DESIGN_MATCH_POINTS          = 3
CHARACTERISTICS_MATCH_POINTS = 2
SAMPLES_MATCH_POINTS         = 2
GROUPS_MATCH_POINTS          = 2
GROUP_COUNT_PENALTY          = 5
SAMPLE_SIZE_PENALTY          = 3


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

def suitability_for(score: int) -> Suitability:
    if score >= 8:
        return Suitability.EXCELLENT
    elif score >= 6:
        return Suitability.VERY_GOOD
    elif score >= 4:
        return Suitability.GOOD
    return Suitability.ACCEPTABLE


def _characteristics_match(characteristics: Characteristics | None, test: TestDefinition) -> bool:
    if characteristics == Characteristics.CONTINUOUS_NORMAL:
        return test.category == TestCategory.PARAMETRIC
    if characteristics in (Characteristics.CONTINUOUS_NONNORMAL, Characteristics.ORDINAL):
        return test.category == TestCategory.NONPARAMETRIC
    if characteristics == Characteristics.CATEGORICAL:
        return test.id == TestKind.CHI_SQUARE_INDEPENDENCE
    return False


def _samples_match(samples: SampleRelationship | None, test: TestDefinition) -> bool:
    if samples == SampleRelationship.INDEPENDENT:
        return "independent" in test.id.value
    if samples == SampleRelationship.PAIRED:
        return "paired" in test.id.value or test.id == TestKind.WILCOXON_SIGNED_RANK
    return False


def _groups_match(groups: GroupCount | None, test: TestDefinition) -> bool:
    if groups == GroupCount.TWO:
        return test.min_groups == 2 and test.max_groups == 2
    if groups == GroupCount.THREE_UP:
        return test.min_groups >= 3
    if groups == GroupCount.VARIABLE:
        return test.min_groups == 0
    return False


def _observed_shape(data: DataShape | dict | None) -> tuple[int, int] | None:
    """(distinct group count, value count), or None when no data was supplied."""
    if data is None:
        return None
    if isinstance(data, dict):
        data = DataShape(**data)
    if not data.groups or not data.values:
        return None
    labels = [g for g in data.groups if not is_missing(g)]
    return len(unique_in_order(labels)), len(data.values)


# ─────────────────────────────────────────────
# SCORING
# ─────────────────────────────────────────────

def score_test(
    test: TestDefinition,
    selection: WizardSelection,
    observed: tuple[int, int] | None = None,
) -> int:
    score = 0

    if selection.design is not None and selection.design.value == test.type.value:
        score += DESIGN_MATCH_POINTS
    if _characteristics_match(selection.characteristics, test):
        score += CHARACTERISTICS_MATCH_POINTS
    if _samples_match(selection.samples, test):
        score += SAMPLES_MATCH_POINTS
    if _groups_match(selection.groups, test):
        score += GROUPS_MATCH_POINTS

    if observed is not None:
        n_groups, n_values = observed
        if test.min_groups > 0 and n_groups < test.min_groups:
            score -= GROUP_COUNT_PENALTY
        if test.max_groups > 0 and n_groups > test.max_groups:
            score -= GROUP_COUNT_PENALTY
        if n_values < test.min_sample_size:
            score -= SAMPLE_SIZE_PENALTY

    return score


def recommend(
    selection: WizardSelection,
    data: DataShape | dict[str, Any] | None = None,
) -> list[Recommendation]:
    """Ranked recommendations, best first, at most three."""
    observed = _observed_shape(data)
    scored = []
    for test in get_all_tests():
        score = score_test(test, selection, observed)
        if score > 0:
            scored.append(Recommendation(test=test, score=score, suitability=suitability_for(score)))

    # sorted() is stable, so equal scores keep catalog order
    scored = sorted(scored, key=lambda r: r.score, reverse=True)
    return scored[:MAX_RECOMMENDATIONS]
