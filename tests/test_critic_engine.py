"""Unit tests for core.critic_engine."""

import pytest

from Schemas.statistician import StatisticRow, TestId
from Utils.critic_requirements_registry import RESULT_CHECKS
from core.critic_engine import validate_test_result
from core.statistician_engine import run_test


@pytest.fixture
def perfect_correlation(make_dataset):
    dataset = make_dataset({"x": [1, 2, 3, 4, 5], "y": [2, 4, 6, 8, 10]}, {"x": "scale", "y": "scale"})
    return run_test(TestId.CORR, dataset)


def _with_p(result, p_cell):
    table = [
        StatisticRow(statistic="p-value (approx)", value=p_cell)
        if isinstance(row, StatisticRow) and row.statistic == "p-value (approx)" else row
        for row in result.table
    ]
    return result.model_copy(update={"table": table})


# ─────────────────────────────────────────────────────────────────────────────
# Tests for consistent results
# ─────────────────────────────────────────────────────────────────────────────


class TestConsistentResults:
    @pytest.mark.parametrize("test_id", list(TestId))
    def test_engine_results_pass(self, survey_dataset, test_id):
        validation = validate_test_result(run_test(test_id, survey_dataset))
        assert validation.consistent, validation.issues
        assert validation.summary_message.endswith("result is internally consistent.")

    def test_not_applicable_result_passes(self, survey_dataset):
        validation = validate_test_result(run_test(TestId.TTEST, survey_dataset, ["score", "region"]))
        assert validation.consistent
        assert validation.test_id == "ttest"

    def test_unknown_test_stub_gets_base_checks_only(self, survey_dataset):
        validation = validate_test_result(run_test("kmeans", survey_dataset))
        assert validation.consistent

    def test_p_rounded_onto_alpha_is_not_judged(self, perfect_correlation):
        result = _with_p(perfect_correlation, 0.05)
        assert validate_test_result(result).consistent


# ─────────────────────────────────────────────────────────────────────────────
# Tests for detected issues
# ─────────────────────────────────────────────────────────────────────────────


class TestDetectedIssues:
    def test_narrative_contradicting_p_value(self, perfect_correlation):
        result = perfect_correlation.model_copy(
            update={"insight": "The relationship is not statistically significant at α = 0.05."}
        )
        validation = validate_test_result(result)
        assert not validation.consistent
        (issue,) = validation.issues
        assert issue.startswith("Narrative significance does not match the reported p-value.")
        assert "< 0.001" in issue

    def test_non_significant_p_with_significant_narrative(self, perfect_correlation):
        validation = validate_test_result(_with_p(perfect_correlation, 0.43))
        assert not validation.consistent
        assert "0.43" in validation.issues[0]

    def test_missing_required_statistic(self, perfect_correlation):
        table = [row for row in perfect_correlation.table if row.statistic != "Pearson r"]
        validation = validate_test_result(perfect_correlation.model_copy(update={"table": table}))
        assert validation.issues == ["Correlation result should include Pearson r."]

    def test_empty_insight(self, survey_dataset):
        result = run_test(TestId.FREQ, survey_dataset).model_copy(update={"insight": "  "})
        assert validate_test_result(result).issues == ["Result has no insight text."]

    def test_not_applicable_without_requirement_row(self, survey_dataset):
        result = run_test(TestId.TTEST, survey_dataset, ["score", "region"]).model_copy(update={"table": []})
        validation = validate_test_result(result)
        assert validation.issues == [
            "Result table is empty.",
            "Not-applicable result should state the unmet requirement.",
        ]
        assert validation.summary_message.splitlines()[0].endswith("2 issue(s) found.")

    def test_unknown_check_method_raises(self, survey_dataset, monkeypatch):
        monkeypatch.setitem(
            RESULT_CHECKS,
            TestId.FREQ,
            [{"name": "bogus", "check_method": "bogus", "values": [], "message": "never shown"}],
        )
        with pytest.raises(ValueError, match="Unknown check method"):
            validate_test_result(run_test(TestId.FREQ, survey_dataset))
