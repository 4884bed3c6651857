"""
FILE: Schemas/dataset.py
-------------------------
Pydantic input schemas for the dataset the engine analyses.
These are shared data contracts — the classifier, the test handlers and
the critic all import Dataset from here.

The engine never mutates a Dataset. Variable metadata is owned by the
(upstream) loader and editing layer.
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


# ─────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────

class MeasurementLevel(str, Enum):
    NOMINAL = "nominal"   # unordered categories
    ORDINAL = "ordinal"   # ordered categories
    SCALE   = "scale"     # continuous numeric


class VariableType(str, Enum):
    STRING  = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE    = "date"
    BOOLEAN = "boolean"


class VariableRole(str, Enum):
    NONE   = "none"
    INPUT  = "input"
    TARGET = "target"     # preferred outcome when a test has one
    ID     = "id"


class QuestionGroupType(str, Enum):
    CHECKBOX = "checkbox"
    MATRIX   = "matrix"
    RANKING  = "ranking"


# ─────────────────────────────────────────────
# VARIABLE METADATA
# ─────────────────────────────────────────────

Scalar = str | int | float | bool | None
DataRow = dict[str, Scalar]


def code_text(value: Scalar) -> str:
    """String form used to compare codes and categories: 99.0 → "99"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ValueLabel(BaseModel):
    code:  str | int | float
    label: str


class Variable(BaseModel):
    name:  str
    label: str = ""
    measurement_level: MeasurementLevel
    variable_type: VariableType = VariableType.STRING
    role: VariableRole = VariableRole.NONE
    value_labels:  list[ValueLabel] = Field(default_factory=list)
    missing_codes: list[str | int | float] = Field(default_factory=list)
    include_in_analysis: bool = True

    @model_validator(mode="after")
    def _default_label(self) -> "Variable":
        if not self.label:
            self.label = self.name
        return self

    @property
    def is_categorical(self) -> bool:
        return self.measurement_level in (MeasurementLevel.NOMINAL, MeasurementLevel.ORDINAL)

    def label_map(self) -> dict[str, str]:
        """Raw code (as string, 1.0 written as "1") → display label."""
        return {code_text(vl.code): vl.label for vl in self.value_labels}


class QuestionGroup(BaseModel):
    id:    str
    label: str
    type:  QuestionGroupType
    variable_names: list[str] = Field(default_factory=list)


# ─────────────────────────────────────────────
# DATASET
# ─────────────────────────────────────────────

class Dataset(BaseModel):
    variables: list[Variable]
    rows: list[DataRow] = Field(default_factory=list)
    question_groups: list[QuestionGroup] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> "Dataset":
        names = [v.name for v in self.variables]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate variable names: {duplicates}")
        return self

    def variable(self, name: str) -> Variable:
        """Looks up a variable by name. Unknown names are a caller error."""
        for var in self.variables:
            if var.name == name:
                return var
        raise ValueError(f"Unknown variable: '{name}'")

    def included_variables(self) -> list[Variable]:
        return [v for v in self.variables if v.include_in_analysis]
