"""Shared dataset fixtures for the engine tests."""

import pytest

from Schemas.dataset import (
    Dataset,
    QuestionGroup,
    QuestionGroupType,
    ValueLabel,
    Variable,
    VariableRole,
)

# ─────────────────────────────────────────────────────────────────────────────
# Survey columns (20 respondents)
# ─────────────────────────────────────────────────────────────────────────────

SURVEY_COLUMNS = {
    "resp_id": list(range(1, 21)),
    "age": [23, 35, 41, 29, 52, 38, 27, 45, 31, 60, 33, 48, 26, 39, 55, 30, 44, 36, 28, 50],
    "gender": ["M", "F"] * 10,
    "region": ["North", "South", "East"] * 6 + ["North", "South"],
    "score": [40, 52, 60, 45, 71, 55, 43, 63, 50, 80, 51, 66, 44, 57, 74, 48, 62, 54, 46, 69],
    "income": [30, 42, 99, 35, 61, 44, 33, None, 39, 70, 41, 58, 32, 47, 65, 37, 52, 45, 99, 60],
    "satisfaction": [3, 4, 5, 2, 5, 4, 3, 4, 3, 5, 4, 5, 2, 4, 5, 3, 4, 4, 3, 5],
    "bought": [
        "no", "no", "yes", "no", "yes", "yes", "no", "yes", "no", "yes",
        "no", "yes", "no", "no", "yes", "yes", "yes", "no", "no", "yes",
    ],
    "Q5_1": [1, 0, 1, 1, 0, 1, 0, 1, 1, 0, 1, 1, 0, 1, 0, 1, 1, 0, 1, 1],
    "Q5_2": [0, 0, 1, 1, 1, 0, 0, 1, 0, 1, 1, 0, 0, 1, 1, 0, 1, 0, 0, 1],
    "pre": [10, 12, 9, 14, 11, 13, 10, 15, 12, 11, 9, 14, 13, 10, 12, 11, 15, 13, 10, 12],
    "post": [12, 15, 10, 18, 13, 16, 12, 18, 13, 13, 12, 16, 17, 11, 14, 14, 17, 16, 12, 13],
    "notes": ["ok"] * 20,
}

SURVEY_VARIABLES = [
    Variable(name="resp_id", measurement_level="scale", variable_type="integer", role=VariableRole.ID),
    Variable(name="age", label="Age", measurement_level="scale", variable_type="integer"),
    Variable(
        name="gender", label="Gender", measurement_level="nominal",
        value_labels=[ValueLabel(code="M", label="Male"), ValueLabel(code="F", label="Female")],
    ),
    Variable(name="region", label="Region", measurement_level="nominal"),
    Variable(name="score", label="Score", measurement_level="scale", role=VariableRole.TARGET),
    Variable(name="income", label="Income", measurement_level="scale", missing_codes=[99]),
    Variable(name="satisfaction", label="Satisfaction", measurement_level="ordinal", variable_type="integer"),
    Variable(name="bought", label="Bought", measurement_level="nominal", role=VariableRole.TARGET),
    Variable(name="Q5_1", label="Q5: uses app", measurement_level="nominal", variable_type="integer"),
    Variable(name="Q5_2", label="Q5: uses web", measurement_level="nominal", variable_type="integer"),
    Variable(name="pre", label="Pre-test", measurement_level="scale"),
    Variable(name="post", label="Post-test", measurement_level="scale"),
    Variable(name="notes", measurement_level="nominal", include_in_analysis=False),
]


def _rows(columns: dict[str, list]) -> list[dict]:
    names = list(columns)
    n = len(columns[names[0]]) if names else 0
    return [{name: columns[name][i] for name in names} for i in range(n)]


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def survey_dataset() -> Dataset:
    """Mixed-level survey with an id column, missing codes and two question groups."""
    return Dataset(
        variables=SURVEY_VARIABLES,
        rows=_rows(SURVEY_COLUMNS),
        question_groups=[
            QuestionGroup(id="q5", label="Q5 channels", type=QuestionGroupType.CHECKBOX,
                          variable_names=["Q5_1", "Q5_2"]),
            QuestionGroup(id="prepost", label="Pre / post", type=QuestionGroupType.MATRIX,
                          variable_names=["pre", "post"]),
        ],
    )


@pytest.fixture
def make_dataset():
    """
    Factory: make_dataset({"x": [...], "g": [...]}, {"x": "scale", "g": "nominal"}, g={"missing_codes": [9]}).
    Extra keyword arguments are passed to the named Variable.
    """

    def _make(columns: dict[str, list], levels: dict[str, str], **variable_kwargs) -> Dataset:
        variables = [
            Variable(name=name, measurement_level=levels[name], **variable_kwargs.get(name, {}))
            for name in columns
        ]
        return Dataset(variables=variables, rows=_rows(columns))

    return _make
