"""
Tests for the test catalog and the Recommender.
"""

import pytest

from core.methodologist_engine import recommend, score_test, suitability_for
from Schemas.methodologist import Suitability, WizardSelection, WizardStep
from Schemas.test_catalog import TestKind
from Utils.test_requirements_registry import get_all_tests, get_test_by_id


def _selection(design, characteristics, samples, groups) -> WizardSelection:
    return (
        WizardSelection.reset()
        .with_choice(WizardStep.DESIGN, design)
        .with_choice(WizardStep.CHARACTERISTICS, characteristics)
        .with_choice(WizardStep.SAMPLES, samples)
        .with_choice(WizardStep.GROUPS, groups)
    )


# ─────────────────────────────────────────────
# CATALOG
# ─────────────────────────────────────────────

class TestCatalog:
    def test_ten_tests_in_fixed_order(self):
        ids = [t.id for t in get_all_tests()]
        assert ids == [
            TestKind.INDEPENDENT_T_TEST,
            TestKind.PAIRED_T_TEST,
            TestKind.ONE_WAY_ANOVA,
            TestKind.MANN_WHITNEY,
            TestKind.KRUSKAL_WALLIS,
            TestKind.PEARSON_CORRELATION,
            TestKind.SPEARMAN_CORRELATION,
            TestKind.CHI_SQUARE_INDEPENDENCE,
            TestKind.SIMPLE_LINEAR_REGRESSION,
            TestKind.WILCOXON_SIGNED_RANK,
        ]

    def test_lookup_by_string_or_enum(self):
        assert get_test_by_id("one-way-anova").id == TestKind.ONE_WAY_ANOVA
        assert get_test_by_id(TestKind.MANN_WHITNEY).min_groups == 2
        assert get_test_by_id("no-such-test") is None

    def test_all_tests_is_a_snapshot(self):
        snapshot = get_all_tests()
        snapshot.clear()
        assert len(get_all_tests()) == 10

    def test_group_bounds(self):
        for test in get_all_tests():
            if test.is_group_based:
                assert test.min_groups <= test.max_groups
            else:
                assert test.max_groups == 0


# ─────────────────────────────────────────────
# WIZARD SELECTION
# ─────────────────────────────────────────────

class TestWizardSelection:
    def test_with_choice_returns_new_selection(self):
        empty = WizardSelection.reset()
        chosen = empty.with_choice("design", "comparison")
        assert empty.design is None
        assert chosen.design.value == "comparison"
        assert not chosen.is_complete

    def test_unknown_choice_is_rejected(self):
        with pytest.raises(ValueError):
            WizardSelection.reset().with_choice("groups", "seven")

    def test_complete_selection(self):
        assert _selection("comparison", "ordinal", "paired", "2").is_complete


# ─────────────────────────────────────────────
# RECOMMENDER
# ─────────────────────────────────────────────

class TestRecommend:
    def test_two_independent_normal_groups(self):
        recs = recommend(_selection("comparison", "continuous-normal", "independent", "2"))
        assert [r.test.id for r in recs] == [
            TestKind.INDEPENDENT_T_TEST,
            TestKind.PAIRED_T_TEST,
            TestKind.ONE_WAY_ANOVA,
        ]
        assert recs[0].score == 9
        assert recs[0].suitability == Suitability.EXCELLENT

    def test_paired_nonnormal_prefers_wilcoxon(self):
        recs = recommend(_selection("comparison", "continuous-nonnormal", "paired", "2"))
        assert recs[0].test.id == TestKind.WILCOXON_SIGNED_RANK
        assert recs[0].score == 9

    def test_categorical_association_prefers_chi_square(self):
        recs = recommend(_selection("association", "categorical", "independent", "variable"))
        assert recs[0].test.id == TestKind.CHI_SQUARE_INDEPENDENCE
        assert recs[0].score == 7

    def test_empty_selection_recommends_nothing(self):
        assert recommend(WizardSelection.reset()) == []

    def test_observed_group_count_penalises(self):
        selection = _selection("comparison", "continuous-normal", "independent", "2")
        data = {"groups": ["a", "b", "c"] * 5, "values": list(range(15))}
        t_test = get_test_by_id(TestKind.INDEPENDENT_T_TEST)
        assert score_test(t_test, selection) == 9
        assert score_test(t_test, selection, (3, 15)) == 4
        recs = recommend(selection, data)
        assert next(r for r in recs if r.test.id == TestKind.INDEPENDENT_T_TEST).score == 4

    def test_small_sample_penalises(self):
        selection = _selection("association", "categorical", "independent", "variable")
        chi = get_test_by_id(TestKind.CHI_SQUARE_INDEPENDENCE)
        assert score_test(chi, selection, (2, 10)) == 4

    def test_at_most_three(self):
        recs = recommend(_selection("comparison", "ordinal", "independent", "3+"))
        assert 0 < len(recs) <= 3
        assert all(r.score > 0 for r in recs)
        scores = [r.score for r in recs]
        assert scores == sorted(scores, reverse=True)


class TestSuitability:
    @pytest.mark.parametrize("score, expected", [
        (9, Suitability.EXCELLENT),
        (8, Suitability.EXCELLENT),
        (7, Suitability.VERY_GOOD),
        (6, Suitability.VERY_GOOD),
        (4, Suitability.GOOD),
        (3, Suitability.ACCEPTABLE),
    ])
    def test_tiers(self, score, expected):
        assert suitability_for(score) == expected
