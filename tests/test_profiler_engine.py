"""Unit tests for core.profiler_engine (missing rule and column access)."""

import math

import pytest

from core.profiler_engine import (
    build_frame,
    distinct_values,
    effective_missing_pct,
    is_missing,
    max_category_share,
    missing_count,
    numeric_column,
    sorted_distinct_values,
)

# ─────────────────────────────────────────────────────────────────────────────
# Tests for is_missing
# ─────────────────────────────────────────────────────────────────────────────


class TestIsMissing:
    @pytest.mark.parametrize("value", [None, "", math.nan])
    def test_blank_values_are_missing(self, value):
        assert is_missing(value, [])

    @pytest.mark.parametrize("value", [99, 99.0, "99"])
    def test_missing_code_matches_by_string_form(self, value):
        assert is_missing(value, [99])

    def test_string_code_matches_numeric_value(self):
        assert is_missing(-1, ["-1"])

    @pytest.mark.parametrize("value", [0, "0", "NA", False, 98])
    def test_ordinary_values_are_not_missing(self, value):
        assert not is_missing(value, [99])


# ─────────────────────────────────────────────────────────────────────────────
# Tests for column access
# ─────────────────────────────────────────────────────────────────────────────


class TestColumns:
    def test_frame_keeps_raw_values(self, survey_dataset):
        frame = build_frame(survey_dataset)
        assert len(frame) == 20
        assert frame["income"].tolist()[2] == 99
        assert frame["gender"].dtype == object

    def test_numeric_column_masks_missing_and_coerces(self, make_dataset):
        dataset = make_dataset(
            {"x": [1, "2", " 3 ", "abc", True, 99, None]},
            {"x": "scale"},
            x={"missing_codes": [99]},
        )
        values = numeric_column(build_frame(dataset), dataset.variable("x")).tolist()
        assert values[:3] == [1.0, 2.0, 3.0]
        assert math.isnan(values[3])
        assert values[4] == 1.0
        assert math.isnan(values[5])
        assert math.isnan(values[6])

    def test_distinct_values_first_seen_order(self, survey_dataset):
        frame = build_frame(survey_dataset)
        assert distinct_values(frame, survey_dataset.variable("gender")) == ["M", "F"]
        assert sorted_distinct_values(frame, survey_dataset.variable("gender")) == ["F", "M"]

    def test_distinct_values_skip_missing(self, survey_dataset):
        frame = build_frame(survey_dataset)
        values = distinct_values(frame, survey_dataset.variable("income"))
        assert 99 not in values
        assert None not in values


# ─────────────────────────────────────────────────────────────────────────────
# Tests for hygiene measures
# ─────────────────────────────────────────────────────────────────────────────


class TestHygiene:
    def test_missing_count_uses_codes_and_nulls(self, survey_dataset):
        frame = build_frame(survey_dataset)
        assert missing_count(frame, survey_dataset.variable("income")) == 3
        assert effective_missing_pct(frame, survey_dataset.variable("income")) == 15.0

    def test_max_category_share(self, survey_dataset):
        frame = build_frame(survey_dataset)
        assert max_category_share(frame, survey_dataset.variable("region")) == 35.0
        assert max_category_share(frame, survey_dataset.variable("gender")) == 50.0

    def test_empty_frame(self, make_dataset):
        dataset = make_dataset({"x": []}, {"x": "nominal"})
        frame = build_frame(dataset)
        assert effective_missing_pct(frame, dataset.variable("x")) == 0.0
        assert max_category_share(frame, dataset.variable("x")) == 0.0
