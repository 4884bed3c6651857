"""
FILE: Schemas/statistician.py
------------------------------
Pydantic output schemas for the test handlers.
One row schema per table shape, carrying exactly that row's columns.
Field aliases are the column labels shown to the user.

Row shapes:
  - FrequencyRow, DescriptiveRow, MissingRow : descriptive tests
  - CrosstabCellRow                          : crosstab
  - StatisticRow                             : every inferential test
  - GroupSummaryRow, RankSumRow, PostHocRow  : group comparisons
  - CoefficientRow, OddsRatioRow             : regression
  - ComponentRow                             : PCA
  - RequirementRow, NoteRow                  : not applicable / not implemented

TestOutcome is the discriminated union returned by run_test():
either a TestResult or a NotApplicableResult.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────

class TestId(str, Enum):
    __test__ = False   # not a pytest test class

    FREQ     = "freq"
    DESC     = "desc"
    MISSING  = "missing"
    CROSSTAB = "crosstab"
    CORR     = "corr"
    SPEARMAN = "spearman"
    TTEST    = "ttest"
    ANOVA    = "anova"
    LINREG   = "linreg"
    LOGREG   = "logreg"
    MANN     = "mann"
    PAIRED   = "paired"
    PCA      = "pca"


class TestFamily(str, Enum):
    __test__ = False

    DESCRIPTIVE    = "descriptive"
    ASSOCIATION    = "association"
    INFERENCE      = "inference"
    REGRESSION     = "regression"
    DIMENSIONALITY = "dimensionality"


class SignificanceVerdict(str, Enum):
    SIGNIFICANT     = "significant"
    NOT_SIGNIFICANT = "not_significant"


Cell = int | float | str


# ─────────────────────────────────────────────
# TABLE ROWS — ONE MODEL PER ROW SHAPE
# ─────────────────────────────────────────────

class _Row(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FrequencyRow(_Row):
    value:   str        = Field(alias="Value")
    label:   str | None = Field(default=None, alias="Label")
    count:   int        = Field(alias="Count")
    percent: float      = Field(alias="Percent")


class DescriptiveRow(_Row):
    variable: str  = Field(alias="Variable")
    n:        int  = Field(alias="N")
    mean:     Cell = Field(alias="Mean")
    sd:       Cell = Field(alias="SD")
    min:      Cell = Field(alias="Min")
    max:      Cell = Field(alias="Max")


class MissingRow(_Row):
    variable:    str   = Field(alias="Variable")
    missing:     int   = Field(alias="Missing")
    total:       int   = Field(alias="Total")
    missing_pct: float = Field(alias="Missing %")
    flag:        str   = Field(default="", alias="Flag")


class CrosstabCellRow(_Row):
    row:      str   = Field(alias="Row")
    column:   str   = Field(alias="Column")
    count:    int   = Field(alias="Count")
    expected: float = Field(alias="Expected")


class StatisticRow(_Row):
    statistic: str  = Field(alias="Statistic")
    value:     Cell = Field(alias="Value")


class GroupSummaryRow(_Row):
    group:    str         = Field(alias="Group")
    n:        int         = Field(alias="N")
    mean:     Cell        = Field(alias="Mean")
    sd:       Cell        = Field(alias="SD")
    skewness: Cell | None = Field(default=None, alias="Skewness")


class RankSumRow(_Row):
    group:    str  = Field(alias="Group")
    n:        int  = Field(alias="N")
    rank_sum: Cell = Field(alias="Rank sum")
    median:   Cell = Field(alias="Median")


class PostHocRow(_Row):
    comparison:  str   = Field(alias="Post-hoc (Tukey)")
    diff:        float = Field(alias="Diff")
    q:           Cell  = Field(alias="q")
    q_crit:      float = Field(alias="q crit (approx)")
    significant: str   = Field(alias="Significant")


class CoefficientRow(_Row):
    predictor: str  = Field(alias="Predictor")
    coef:      Cell = Field(alias="Coef")
    se:        Cell = Field(alias="SE")
    t:         Cell = Field(alias="t")
    p_value:   Cell = Field(alias="p (approx)")


class OddsRatioRow(_Row):
    predictor:  str  = Field(alias="Predictor")
    coef:       Cell = Field(alias="Coef")
    odds_ratio: Cell = Field(alias="Odds ratio")
    se:         Cell = Field(alias="SE")
    z:          Cell = Field(alias="z")
    p_value:    Cell = Field(alias="p (approx)")


class ComponentRow(_Row):
    component:      str   = Field(alias="Component")
    eigenvalue:     float = Field(alias="Eigenvalue")
    variance_pct:   float = Field(alias="% variance")
    cumulative_pct: float = Field(alias="Cumulative %")
    top_loading:    str   = Field(default="", alias="Top loading")


class RequirementRow(_Row):
    requirement: str = Field(alias="Requirement")
    suggestion:  str = Field(alias="Suggestion")


class NoteRow(_Row):
    note:        str = Field(alias="Note")
    implemented: str = Field(alias="Implemented")


TableRow = (
    FrequencyRow | DescriptiveRow | MissingRow | CrosstabCellRow | StatisticRow
    | GroupSummaryRow | RankSumRow | PostHocRow | CoefficientRow | OddsRatioRow
    | ComponentRow | RequirementRow | NoteRow
)


# ─────────────────────────────────────────────
# CHART & VARIABLE DESCRIPTORS
# ─────────────────────────────────────────────

class ChartSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:  Literal["bar", "line", "pie", "scatter"]
    title: str
    data:  list[dict[str, Cell]] = Field(default_factory=list)
    x_key: str
    y_key: str | None = None
    percent_key: str | None = None    # UI may toggle count vs percent
    series_keys: list[str] = Field(default_factory=list)


class VariableRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    role:  str | None = None


# ─────────────────────────────────────────────
# RESULT SCHEMAS
# ─────────────────────────────────────────────

class _OutcomeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_id:   str                 # a TestId value, or the raw identifier for unknown tests
    test_name: str
    table:     list[TableRow] = Field(default_factory=list)
    insight:   str                 # always present

    def records(self) -> list[dict[str, Cell]]:
        """Table rows as plain mappings keyed by column label."""
        return [row.model_dump(by_alias=True, exclude_none=True) for row in self.table]

    def statistic(self, name: str) -> Cell | None:
        """Value of the first StatisticRow called `name`, or None."""
        for row in self.table:
            if isinstance(row, StatisticRow) and row.statistic == name:
                return row.value
        return None


class TestResult(_OutcomeBase):
    __test__ = False

    kind: Literal["result"] = "result"

    test_family: TestFamily | None = None
    chart: ChartSpec | None = None

    # ── Plain English layer ──
    plain_language: str | None = None
    next_step:      str | None = None
    key_stat:       str | None = None

    # ── Effect size ──
    effect_size:       float | None = None
    effect_size_label: str | None = None   # e.g. "Cohen's d", "η²"

    variables_analyzed: list[VariableRef] = Field(default_factory=list)
    value_label_maps:   dict[str, dict[str, str]] = Field(default_factory=dict)
    # e.g. {"gender": {"1": "Male", "2": "Female"}}


class NotApplicableResult(_OutcomeBase):
    kind: Literal["not_applicable"] = "not_applicable"

    requirement: str
    suggestion:  str


TestOutcome = Annotated[TestResult | NotApplicableResult, Field(discriminator="kind")]
