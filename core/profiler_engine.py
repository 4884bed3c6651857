"""
FILE: core/profiler_engine.py
------------------------------
Per-variable data access for the engine.
No pydantic models are built here — just pandas, numpy and the Dataset.

Owns the single missing-value rule. A value is missing for a variable iff
it is None / NaN / an empty string, or its string form equals the string
form of one of that variable's missing codes. Every handler and the
classifier go through is_missing() (or missing_mask(), which applies it
to a column), so all of them exclude exactly the same rows.
"""

import math

import numpy as np
import pandas as pd

from Schemas.dataset import Dataset, MeasurementLevel, Scalar, Variable, code_text


# ─────────────────────────────────────────────
# MISSING RULE
# ─────────────────────────────────────────────

def is_missing(value: Scalar, missing_codes: list) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value == "":
        return True
    if not missing_codes:
        return False
    # 99.0, 99 and "99" all match the code 99
    text = code_text(value)
    return any(code_text(code) == text for code in missing_codes)


# ─────────────────────────────────────────────
# FRAME CONSTRUCTION
# ─────────────────────────────────────────────

def build_frame(dataset: Dataset) -> pd.DataFrame:
    """
    One object-dtype column per variable, raw values preserved (no numeric
    coercion, so missing codes still compare as written).
    """
    columns = {
        var.name: pd.Series([row.get(var.name) for row in dataset.rows], dtype=object)
        for var in dataset.variables
    }
    return pd.DataFrame(columns, index=pd.RangeIndex(len(dataset.rows)))


def missing_mask(frame: pd.DataFrame, variable: Variable) -> pd.Series:
    codes = variable.missing_codes
    return frame[variable.name].map(lambda v: is_missing(v, codes)).astype(bool)


def numeric_column(frame: pd.DataFrame, variable: Variable) -> pd.Series:
    """Float column; missing or non-numeric cells become NaN."""
    raw = frame[variable.name].mask(missing_mask(frame, variable))
    return pd.to_numeric(raw.map(_numeric_or_none), errors="coerce").astype(float)


def _numeric_or_none(value: Scalar) -> Scalar:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def distinct_values(frame: pd.DataFrame, variable: Variable) -> list:
    """Observed non-missing values in first-seen order."""
    column = frame[variable.name][~missing_mask(frame, variable)]
    return list(dict.fromkeys(column.tolist()))


def sorted_distinct_values(frame: pd.DataFrame, variable: Variable) -> list:
    return sorted(distinct_values(frame, variable), key=str)


# ─────────────────────────────────────────────
# HYGIENE MEASURES (used for ranking candidates)
# ─────────────────────────────────────────────

def missing_count(frame: pd.DataFrame, variable: Variable) -> int:
    return int(missing_mask(frame, variable).sum())


def effective_missing_pct(frame: pd.DataFrame, variable: Variable) -> float:
    n = len(frame)
    if n == 0:
        return 0.0
    return round(missing_count(frame, variable) / n * 100, 1)


def max_category_share(frame: pd.DataFrame, variable: Variable) -> float:
    """Percentage of non-missing values taken by the most common category."""
    column = frame[variable.name][~missing_mask(frame, variable)]
    if column.empty:
        return 0.0
    counts = column.map(str).value_counts()
    return round(float(counts.iloc[0]) / len(column) * 100, 1)


# ─────────────────────────────────────────────
# ROW SELECTION
# Pairwise-complete for two columns, listwise-complete for many.
# ─────────────────────────────────────────────

def paired_numeric(frame: pd.DataFrame, x: Variable, y: Variable) -> tuple[np.ndarray, np.ndarray]:
    """Pairwise-complete numeric values of two variables."""
    pairs = pd.concat([numeric_column(frame, x), numeric_column(frame, y)], axis=1).dropna()
    return pairs.iloc[:, 0].to_numpy(), pairs.iloc[:, 1].to_numpy()


def group_samples(
    frame: pd.DataFrame,
    outcome: Variable,
    group: Variable,
    categories: list,
) -> list[np.ndarray]:
    """Non-missing numeric outcome values for each category of `group`."""
    values = numeric_column(frame, outcome)
    present = ~missing_mask(frame, group)
    column = frame[group.name]
    return [values[present & (column == cat)].dropna().to_numpy() for cat in categories]


def complete_mask(frame: pd.DataFrame, variables: list[Variable]) -> pd.Series:
    """
    Listwise-complete rows: scale variables need a numeric value,
    categorical variables need a non-missing value.
    """
    mask = pd.Series(True, index=frame.index)
    for var in variables:
        if var.measurement_level == MeasurementLevel.SCALE:
            mask &= numeric_column(frame, var).notna()
        else:
            mask &= ~missing_mask(frame, var)
    return mask
