"""
FILE: core/classifier_engine.py
--------------------------------
Pure deterministic logic for choosing which columns a test should use.
No LLM or I/O dependencies.

Candidate rules:
  - Only variables with include_in_analysis=True are candidates, and
    id-role variables are never proposed (except by the missing summary).
  - Candidates are partitioned by measurement level and ranked by data
    hygiene: ascending effective missing %, then (categorical levels only)
    ascending max single-category share. Ties keep dataset order.
  - A variable tagged role=target is preferred as the outcome whenever a
    test distinguishes outcome from group/predictors.
  - Crosstab and paired tests prefer two members of the same question
    group over the globally best-ranked pair.

suggest_variables() never raises on a well-formed dataset; it returns a
partial or empty list instead. It is advisory: run_test() re-validates.
"""

import re
from dataclasses import dataclass, field

import pandas as pd

from Schemas.classifier import SuggestedVariable, SuggestedVars
from Schemas.dataset import (
    Dataset,
    MeasurementLevel,
    QuestionGroup,
    QuestionGroupType,
    Variable,
    VariableRole,
)
from Schemas.statistician import TestId
from Utils.test_requirements_registry import TEST_REQUIREMENTS
from constants.classifier import (
    MAX_DESC_VARIABLES,
    MAX_FALLBACK_VARIABLES,
    MAX_FREQ_CATEGORICAL,
    MAX_FREQ_SCALE,
    MAX_MISSING_VARIABLES,
    MAX_PCA_VARIABLES,
    MAX_PREDICTORS,
    MAX_REPEATED_MEASURES,
)
from constants.data_profiler_constants import BINARY_SNIFF_ROWS, GROUP_LABEL_MAX_LENGTH
from core.profiler_engine import (
    build_frame,
    distinct_values,
    effective_missing_pct,
    is_missing,
    max_category_share,
)


# ─────────────────────────────────────────────
# HELPER — RANKED CANDIDATE POOLS
# ─────────────────────────────────────────────

@dataclass
class CandidatePool:
    frame: pd.DataFrame
    scale:   list[Variable] = field(default_factory=list)
    nominal: list[Variable] = field(default_factory=list)
    ordinal: list[Variable] = field(default_factory=list)

    @property
    def categorical(self) -> list[Variable]:
        return rank_by_hygiene(self.nominal + self.ordinal, self.frame)

    def n_categories(self, var: Variable) -> int:
        return len(distinct_values(self.frame, var))


def hygiene_key(var: Variable, frame: pd.DataFrame) -> tuple[float, float]:
    share = max_category_share(frame, var) if var.is_categorical else 0.0
    return effective_missing_pct(frame, var), share


def rank_by_hygiene(variables: list[Variable], frame: pd.DataFrame) -> list[Variable]:
    """Stable sort: cleanest columns first."""
    return sorted(variables, key=lambda v: hygiene_key(v, frame))


def build_candidate_pool(dataset: Dataset, frame: pd.DataFrame | None = None) -> CandidatePool:
    frame = build_frame(dataset) if frame is None else frame
    candidates = [v for v in dataset.included_variables() if v.role != VariableRole.ID]

    def level(lv: MeasurementLevel) -> list[Variable]:
        return rank_by_hygiene([v for v in candidates if v.measurement_level == lv], frame)

    return CandidatePool(
        frame=frame,
        scale=level(MeasurementLevel.SCALE),
        nominal=level(MeasurementLevel.NOMINAL),
        ordinal=level(MeasurementLevel.ORDINAL),
    )


# ─────────────────────────────────────────────
# HELPER — ROLE PREFERENCES
# ─────────────────────────────────────────────

def pick_outcome(candidates: list[Variable]) -> Variable | None:
    """Target-tagged variable first, else the best-ranked candidate."""
    for var in candidates:
        if var.role == VariableRole.TARGET:
            return var
    return candidates[0] if candidates else None


def pick_group(
    candidates: list[Variable],
    pool: CandidatePool,
    wanted,
    exclude: Variable | None = None,
) -> Variable | None:
    """First candidate whose observed category count satisfies `wanted`, else the first candidate."""
    usable = [v for v in candidates if exclude is None or v.name != exclude.name]
    for var in usable:
        if wanted(pool.n_categories(var)):
            return var
    return usable[0] if usable else None


def question_group_pair(dataset: Dataset, qualifying: list[Variable]) -> list[Variable] | None:
    """Two qualifying members of the first question group that has at least two."""
    by_name = {v.name: v for v in qualifying}
    rank = {v.name: i for i, v in enumerate(qualifying)}
    for group in dataset.question_groups:
        members = [by_name[n] for n in group.variable_names if n in by_name]
        if len(members) >= 2:
            members.sort(key=lambda v: rank[v.name])
            return members[:2]
    return None


def _pair(dataset: Dataset, qualifying: list[Variable], prefer_groups: bool) -> list[Variable]:
    if prefer_groups:
        grouped = question_group_pair(dataset, qualifying)
        if grouped:
            return grouped
    return qualifying[:2]


def _refs(variables: list[Variable], role: str) -> list[SuggestedVariable]:
    return [SuggestedVariable(name=v.name, label=v.label, role=role) for v in variables]


def _pair_refs(two: list[Variable], first_role: str, second_role: str) -> list[SuggestedVariable]:
    if len(two) < 2:
        return _refs(two, "variable")
    return _refs(two[:1], first_role) + _refs(two[1:2], second_role)


# ─────────────────────────────────────────────
# MAIN — SUGGEST VARIABLES PER TEST
# ─────────────────────────────────────────────

def suggest_variables(test_id: TestId | str, dataset: Dataset) -> SuggestedVars:
    """
    Proposes a default set of roles for a test.
    Returns SuggestedVars; the variables list may be partial or empty.
    """
    pool = build_candidate_pool(dataset)
    variables = _suggest(test_id, dataset, pool)

    try:
        description = TEST_REQUIREMENTS[TestId(test_id)]["description"]
    except ValueError:
        description = "Variables will be selected based on your data."

    return SuggestedVars(test_id=str(getattr(test_id, "value", test_id)), description=description, variables=variables)


def _suggest(test_id: TestId | str, dataset: Dataset, pool: CandidatePool) -> list[SuggestedVariable]:
    scale, nominal, ordinal = pool.scale, pool.nominal, pool.ordinal
    categorical = pool.categorical

    if test_id == TestId.FREQ:
        if categorical:
            return _refs(categorical[:MAX_FREQ_CATEGORICAL], "variable")
        return _refs(scale[:MAX_FREQ_SCALE], "variable")

    if test_id == TestId.DESC:
        return _refs(scale[:MAX_DESC_VARIABLES], "variable")

    if test_id == TestId.MISSING:
        return _refs(dataset.included_variables()[:MAX_MISSING_VARIABLES], "variable")

    if test_id == TestId.CROSSTAB:
        return _pair_refs(_pair(dataset, categorical, True), "row variable", "column variable")

    if test_id == TestId.CORR:
        return _pair_refs(scale[:2], "variable 1", "variable 2")

    if test_id == TestId.SPEARMAN:
        return _pair_refs(rank_by_hygiene(scale + ordinal, pool.frame)[:2], "variable 1", "variable 2")

    if test_id in (TestId.TTEST, TestId.ANOVA):
        outcome = pick_outcome(scale)
        wanted = (lambda k: k == 2) if test_id == TestId.TTEST else (lambda k: k >= 3)
        group = pick_group(nominal, pool, wanted)
        return _refs([outcome] if outcome else [], "outcome") + _refs([group] if group else [], "group")

    if test_id == TestId.LINREG:
        outcome = pick_outcome(scale)
        predictors = [v for v in rank_by_hygiene(scale + nominal, pool.frame) if outcome is None or v.name != outcome.name]
        return _refs([outcome] if outcome else [], "outcome") + _refs(predictors[:MAX_PREDICTORS], "predictor")

    if test_id == TestId.LOGREG:
        binary = [v for v in categorical if pool.n_categories(v) == 2]
        outcome = pick_outcome(binary)
        predictors = [v for v in rank_by_hygiene(scale + nominal, pool.frame) if outcome is None or v.name != outcome.name]
        return _refs([outcome] if outcome else [], "outcome") + _refs(predictors[:MAX_PREDICTORS], "predictor")

    if test_id == TestId.MANN:
        outcome = pick_outcome(scale) or pick_outcome(ordinal)
        group = pick_group(nominal, pool, lambda k: k >= 2, exclude=outcome)
        return _refs([outcome] if outcome else [], "outcome") + _refs([group] if group else [], "group")

    if test_id == TestId.PAIRED:
        first_two = _pair(dataset, scale, True)
        rest = [v for v in scale if v.name not in {f.name for f in first_two}]
        return _refs((first_two + rest)[:MAX_REPEATED_MEASURES], "repeated measure")

    if test_id == TestId.PCA:
        return _refs(scale[:MAX_PCA_VARIABLES], "variable")

    return _refs(dataset.included_variables()[:MAX_FALLBACK_VARIABLES], "variable")


# ─────────────────────────────────────────────
# ROLE RESOLUTION FOR run_test()
# ─────────────────────────────────────────────

def resolve_roles(
    test_id: TestId,
    dataset: Dataset,
    selected_var_names: list[str] | None,
) -> list[Variable]:
    """
    Explicit names win (bypassing the include filter); otherwise the
    suggested variables in role order. Unknown names raise ValueError.
    """
    if selected_var_names:
        return [dataset.variable(name) for name in selected_var_names]
    suggested = suggest_variables(test_id, dataset)
    return [dataset.variable(v.name) for v in suggested.variables]


# ─────────────────────────────────────────────
# QUESTION GROUP DETECTION
# ─────────────────────────────────────────────

_STEM_SEPARATOR = re.compile(r"[_.\-\s]+")
_INDEX_PART = re.compile(r"^(\d+|[a-zA-Z])$")


def name_stem(name: str) -> str:
    """Q5_1, Q5_2 → Q5. Names without an index suffix are their own stem."""
    parts = [p for p in _STEM_SEPARATOR.split(name.strip()) if p]
    if len(parts) < 2:
        return name.strip()
    if _INDEX_PART.match(parts[-1]):
        return "_".join(parts[:-1])
    return name.strip()


def looks_binary(dataset: Dataset, var: Variable) -> bool:
    seen: set[str] = set()
    for row in dataset.rows[:BINARY_SNIFF_ROWS]:
        value = row.get(var.name)
        if is_missing(value, []):
            continue
        seen.add(str(value).lower())
        if len(seen) > 2:
            return False
    return True


def suggest_question_groups(dataset: Dataset) -> list[QuestionGroup]:
    """
    Groups columns that share a name stem (checkbox / matrix questions).
    Only stems with two or more columns form a group.
    """
    if not dataset.variables or not dataset.rows:
        return []

    by_stem: dict[str, list[Variable]] = {}
    for var in dataset.variables:
        by_stem.setdefault(name_stem(var.name), []).append(var)

    groups: list[QuestionGroup] = []
    for stem, members in by_stem.items():
        if len(members) < 2:
            continue
        all_binary = all(looks_binary(dataset, v) for v in members)
        label = members[0].label or stem
        if len(label) > GROUP_LABEL_MAX_LENGTH:
            label = label[:GROUP_LABEL_MAX_LENGTH - 3] + "…"
        groups.append(QuestionGroup(
            id=f"group-{len(groups) + 1}",
            label=label,
            type=QuestionGroupType.CHECKBOX if all_binary else QuestionGroupType.MATRIX,
            variable_names=[v.name for v in members],
        ))
    return groups
