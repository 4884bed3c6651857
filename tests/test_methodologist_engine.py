"""Unit tests for core.methodologist_engine (pre-run test choice checks)."""

import pytest

from Schemas.statistician import NotApplicableResult, TestId
from Utils.test_requirements_registry import TEST_REQUIREMENTS
from core.methodologist_engine import CHOICE_CHECKS, validate_test_choice
from core.statistician_engine import run_test


def _note(test_id):
    return TEST_REQUIREMENTS[test_id]["alternative_note"]


# ─────────────────────────────────────────────────────────────────────────────
# Tests for dispatch
# ─────────────────────────────────────────────────────────────────────────────


class TestDispatch:
    def test_every_test_id_has_a_check(self):
        assert set(CHOICE_CHECKS) == set(TestId)

    def test_unknown_test_id_passes(self, survey_dataset):
        validation = validate_test_choice("kmeans", survey_dataset)
        assert validation.valid
        assert validation.warnings == []
        assert validation.test_id == "kmeans"

    def test_unknown_variable_name_raises(self, survey_dataset):
        with pytest.raises(ValueError, match="Unknown variable"):
            validate_test_choice(TestId.TTEST, survey_dataset, ["nope", "gender"])

    @pytest.mark.parametrize(
        "test_id,names",
        [
            (TestId.TTEST, ["score", "region"]),
            (TestId.ANOVA, ["score", "gender"]),
            (TestId.LOGREG, ["region", "age"]),
            (TestId.LINREG, ["bought", "age"]),
            (TestId.CROSSTAB, ["age", "gender"]),
        ],
    )
    def test_invalid_choice_is_not_applicable_when_run(self, survey_dataset, test_id, names):
        assert not validate_test_choice(test_id, survey_dataset, names).valid
        assert isinstance(run_test(test_id, survey_dataset, names), NotApplicableResult)


# ─────────────────────────────────────────────────────────────────────────────
# Tests for hard errors
# ─────────────────────────────────────────────────────────────────────────────


class TestHardErrors:
    def test_ttest_with_three_groups_suggests_anova(self, survey_dataset):
        validation = validate_test_choice(TestId.TTEST, survey_dataset, ["score", "region"])
        assert not validation.valid
        assert validation.warnings == ["Grouping variable has 3 categories; t-test requires 2."]
        assert validation.suggested_alternative == TestId.ANOVA

    def test_anova_with_two_groups_suggests_ttest(self, survey_dataset):
        validation = validate_test_choice(TestId.ANOVA, survey_dataset, ["score", "gender"])
        assert not validation.valid
        assert validation.suggested_alternative == TestId.TTEST

    def test_linear_regression_on_binary_outcome_suggests_logistic(self, survey_dataset):
        validation = validate_test_choice(TestId.LINREG, survey_dataset, ["bought", "age"])
        assert validation.warnings == ["The outcome (Bought) must be a scale variable."]
        assert validation.suggested_alternative == TestId.LOGREG

    def test_logistic_on_scale_outcome_suggests_linear(self, survey_dataset):
        validation = validate_test_choice(TestId.LOGREG, survey_dataset, ["score", "age"])
        assert not validation.valid
        assert validation.suggested_alternative == TestId.LINREG

    def test_per_group_minimum_comes_from_registry(self, make_dataset):
        dataset = make_dataset(
            {"y": [1, 2, 3, 4, 5], "g": ["a", "a", "a", "a", "b"]},
            {"y": "scale", "g": "nominal"},
        )
        validation = validate_test_choice(TestId.TTEST, dataset, ["y", "g"])
        assert validation.warnings == [
            f"Need at least {TEST_REQUIREMENTS[TestId.TTEST]['min_n']} observations per group; you have 4, 1."
        ]
        assert validation.suggested_alternative is None

    def test_too_few_pairs(self, make_dataset):
        dataset = make_dataset({"a": [1, 2, None, 4], "b": [2, None, 3, 5]}, {"a": "scale", "b": "scale"})
        validation = validate_test_choice(TestId.CORR, dataset, ["a", "b"])
        assert validation.warnings == ["Need at least 3 paired observations; you have 2."]

    def test_too_few_complete_cases_for_pca(self, make_dataset):
        dataset = make_dataset({"a": [1, 2, 3], "b": [3, 1, 2]}, {"a": "scale", "b": "scale"})
        validation = validate_test_choice(TestId.PCA, dataset, ["a", "b"])
        assert validation.warnings == ["Need at least 4 complete cases; you have 3."]

    def test_descriptives_without_scale_variables(self, make_dataset):
        dataset = make_dataset({"g": ["a", "b", "a"]}, {"g": "nominal"})
        validation = validate_test_choice(TestId.DESC, dataset, ["g"])
        assert validation.warnings == ["No scale variables. Set at least one variable to Scale."]


# ─────────────────────────────────────────────────────────────────────────────
# Tests for soft warnings
# ─────────────────────────────────────────────────────────────────────────────


class TestSoftWarnings:
    def test_small_groups_suggest_rank_test(self, survey_dataset):
        validation = validate_test_choice(TestId.TTEST, survey_dataset, ["score", "gender"])
        assert validation.valid
        assert validation.warnings == [
            "Sample size under 30 in at least one group (10, 10).",
            _note(TestId.TTEST),
        ]
        assert validation.suggested_alternative == TestId.MANN

    def test_small_anova_groups(self, survey_dataset):
        validation = validate_test_choice(TestId.ANOVA, survey_dataset, ["score", "region"])
        assert validation.valid
        assert validation.suggested_alternative == TestId.MANN
        assert validation.warnings[-1] == _note(TestId.ANOVA)

    def test_large_groups_pass_cleanly(self, make_dataset):
        dataset = make_dataset(
            {"y": list(range(60)), "g": ["a", "b"] * 30},
            {"y": "scale", "g": "nominal"},
        )
        validation = validate_test_choice(TestId.TTEST, dataset, ["y", "g"])
        assert validation.valid
        assert validation.warnings == []
        assert validation.suggested_alternative is None

    def test_pearson_on_ordinal_variable_suggests_spearman(self, survey_dataset):
        validation = validate_test_choice(TestId.CORR, survey_dataset, ["age", "satisfaction"])
        assert validation.valid
        assert validation.warnings[0] == "Satisfaction is ordinal; Pearson assumes interval data."
        assert validation.suggested_alternative == TestId.SPEARMAN

    def test_pearson_on_scale_pairs_is_clean(self, survey_dataset):
        validation = validate_test_choice(TestId.CORR, survey_dataset, ["age", "income"])
        assert validation.valid
        assert validation.warnings == []

    def test_frequencies_of_scale_variable_suggest_descriptives(self, survey_dataset):
        validation = validate_test_choice(TestId.FREQ, survey_dataset, ["age"])
        assert validation.valid
        assert validation.warnings == ["Age is a scale variable with 20 distinct values.", _note(TestId.FREQ)]
        assert validation.suggested_alternative == TestId.DESC

    def test_sparse_crosstab(self, survey_dataset):
        validation = validate_test_choice(TestId.CROSSTAB, survey_dataset, ["gender", "region"])
        assert validation.valid
        assert validation.warnings == ["Smallest expected count is 3.0, below 5.", _note(TestId.CROSSTAB)]
        assert validation.suggested_alternative is None

    def test_skewed_scale_variable(self, make_dataset):
        dataset = make_dataset({"x": [1, 1, 1, 1, 2, 2, 3, 50]}, {"x": "scale"})
        validation = validate_test_choice(TestId.DESC, dataset, ["x"])
        assert validation.valid
        assert validation.warnings[0].startswith("x is skewed (skewness ")
        assert validation.warnings[-1] == _note(TestId.DESC)

    def test_heavily_missing_variable(self, make_dataset):
        dataset = make_dataset({"x": [1, None, None, None, 5]}, {"x": "scale"})
        validation = validate_test_choice(TestId.MISSING, dataset, ["x"])
        assert validation.warnings == ["x is 60% missing.", _note(TestId.MISSING)]

    def test_few_events_per_predictor(self, survey_dataset):
        validation = validate_test_choice(TestId.LOGREG, survey_dataset, ["bought", "age", "score"])
        assert validation.valid
        assert validation.warnings[0].startswith("Only 10 case(s) in the rarer outcome category for 2 predictor(s)")
        assert validation.suggested_alternative is None

    def test_ten_events_for_one_predictor_is_enough(self, survey_dataset):
        validation = validate_test_choice(TestId.LOGREG, survey_dataset, ["bought", "age"])
        assert validation.warnings == []
