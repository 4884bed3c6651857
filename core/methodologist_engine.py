"""
FILE: core/methodologist_engine.py
------------------------------------
Pre-run check: is the chosen test appropriate for this dataset?
Nothing is reported here; run_test() computes the statistics.

validate_test_choice() resolves variables the same way run_test() does
and sorts what it finds into two kinds:
  - Hard errors   → valid=False. The test would come back not applicable
                    (wrong variable types, wrong group count, too few cases).
  - Soft warnings → valid=True. The test runs, but the registry's
                    alternative_note applies (small groups, skew, sparse cells).

The suggested alternative comes from the failing hard check (ANOVA for a
3-group t-test, and so on) or, for soft warnings, from the registry entry.
Unknown test ids pass unchecked.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable

import pandas as pd

from Schemas.dataset import Dataset, MeasurementLevel, Variable
from Schemas.methodologist import TestChoiceValidation
from Schemas.statistician import TestId
from Utils.test_requirements_registry import TEST_REQUIREMENTS, require_every_test
from constants.data_profiler_constants import MISSING_FLAG_PCT
from constants.statistician import (
    MIN_EVENTS_PER_PREDICTOR,
    MIN_EXPECTED_COUNT,
    SKEWNESS_WARNING,
    SMALL_GROUP_WARNING_N,
)
from core import numerics_engine as num
from core.classifier_engine import resolve_roles
from core.profiler_engine import (
    build_frame,
    complete_mask,
    distinct_values,
    effective_missing_pct,
    group_samples,
    missing_mask,
    numeric_column,
    paired_numeric,
    sorted_distinct_values,
)

logger = logging.getLogger(__name__)


@dataclass
class _Findings:
    hard_errors:   list[str] = field(default_factory=list)   # test cannot run
    soft_warnings: list[str] = field(default_factory=list)   # test runs, with caveats
    alternative:   TestId | None = None                      # from a hard check

    def reject(self, message: str, alternative: TestId | None = None) -> None:
        self.hard_errors.append(message)
        if alternative is not None:
            self.alternative = alternative

    def warn(self, message: str) -> None:
        self.soft_warnings.append(message)


Check = Callable[[pd.DataFrame, list[Variable], dict, _Findings], None]


def _is_scale(var: Variable) -> bool:
    return var.measurement_level == MeasurementLevel.SCALE


def _sizes(frame: pd.DataFrame, outcome: Variable, group: Variable, groups: list) -> list[int]:
    return [len(s) for s in group_samples(frame, outcome, group, groups)]


def _joined(sizes: list[int]) -> str:
    return ", ".join(str(s) for s in sizes)


# ─────────────────────────────────────────────
# DESCRIPTIVE CHECKS
# ─────────────────────────────────────────────

def _check_frequencies(frame, variables, req, found):
    if not variables:
        found.reject("No variables available.")
        return
    var = variables[0]
    if _is_scale(var):
        found.warn(f"{var.label} is a scale variable with {len(distinct_values(frame, var))} distinct values.")


def _check_descriptives(frame, variables, req, found):
    scale = [v for v in variables if _is_scale(v)]
    if not scale:
        found.reject("No scale variables. Set at least one variable to Scale.")
        return
    for var in scale:
        skew = num.skewness(numeric_column(frame, var).dropna().to_numpy())
        if math.isfinite(skew) and abs(skew) > SKEWNESS_WARNING:
            found.warn(f"{var.label} is skewed (skewness {skew:.2f}).")


def _check_missing(frame, variables, req, found):
    for var in variables:
        share = effective_missing_pct(frame, var)
        if share > MISSING_FLAG_PCT:
            found.warn(f"{var.label} is {share:g}% missing.")


def _check_crosstab(frame, variables, req, found):
    if len(variables) < 2 or not all(v.is_categorical for v in variables[:2]):
        found.reject("Crosstab requires two categorical (nominal or ordinal) variables.")
        return
    row_var, col_var = variables[:2]
    answered = ~missing_mask(frame, row_var) & ~missing_mask(frame, col_var)
    row_counts = frame[row_var.name][answered].value_counts()
    col_counts = frame[col_var.name][answered].value_counts()
    if len(row_counts) < 2 or len(col_counts) < 2:
        found.reject(
            f"Crosstab needs at least 2 observed categories in each variable; "
            f"{row_var.label} has {len(row_counts)} and {col_var.label} has {len(col_counts)}."
        )
        return
    # smallest cell expectation = smallest row total × smallest column total / n
    smallest = row_counts.min() * col_counts.min() / int(answered.sum())
    if smallest < MIN_EXPECTED_COUNT:
        found.warn(f"Smallest expected count is {smallest:.1f}, below {MIN_EXPECTED_COUNT}.")


# ─────────────────────────────────────────────
# ASSOCIATION CHECKS
# ─────────────────────────────────────────────

def _check_pairs(frame, variables, req, found):
    if len(variables) < 2:
        found.reject(f"{req['name']} requires two scale (or ordinal) variables.")
        return
    x, _ = paired_numeric(frame, variables[0], variables[1])
    if len(x) < req["min_n"]:
        found.reject(f"Need at least {req['min_n']} paired observations; you have {len(x)}.")


def _check_pearson(frame, variables, req, found):
    _check_pairs(frame, variables, req, found)
    if found.hard_errors:
        return
    ordinal = [v.label for v in variables[:2] if v.measurement_level == MeasurementLevel.ORDINAL]
    if ordinal:
        found.warn(f"{', '.join(ordinal)} is ordinal; Pearson assumes interval data.")


# ─────────────────────────────────────────────
# GROUP COMPARISON CHECKS
# ─────────────────────────────────────────────

def _check_group_sizes(frame, outcome, group, groups, req, found):
    sizes = _sizes(frame, outcome, group, groups)
    if min(sizes) < req["min_n"]:
        found.reject(f"Need at least {req['min_n']} observations per group; you have {_joined(sizes)}.")
    elif min(sizes) < SMALL_GROUP_WARNING_N:
        found.warn(f"Sample size under {SMALL_GROUP_WARNING_N} in at least one group ({_joined(sizes)}).")


def _check_ttest(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need one scale outcome and one categorical variable with exactly two groups.")
        return
    outcome, group = variables[:2]
    groups = sorted_distinct_values(frame, group)
    if len(groups) != 2:
        found.reject(
            f"Grouping variable has {len(groups)} categories; t-test requires 2.",
            TestId.ANOVA if len(groups) >= 3 else None,
        )
        return
    _check_group_sizes(frame, outcome, group, groups, req, found)


def _check_anova(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need one scale outcome and one categorical variable with 3+ groups.")
        return
    outcome, group = variables[:2]
    groups = sorted_distinct_values(frame, group)
    if len(groups) < 3:
        found.reject(
            f"Grouping variable has {len(groups)} categories; ANOVA requires 3 or more.",
            TestId.TTEST if len(groups) == 2 else None,
        )
        return
    _check_group_sizes(frame, outcome, group, groups, req, found)


def _check_rank_test(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need one scale or ordinal outcome and one categorical group variable.")
        return
    outcome, group = variables[:2]
    groups = sorted_distinct_values(frame, group)
    if len(groups) < 2:
        found.reject(f"Grouping variable has {len(groups)} categories; at least 2 are required.")
        return
    sizes = _sizes(frame, outcome, group, groups)
    if sum(sizes) < req["min_n"] or min(sizes) < 1:
        found.reject(f"Need at least one observation per group and {req['min_n']} total; you have {_joined(sizes)}.")


def _check_paired(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need at least two scale variables (e.g. pre and post).")
        return
    a, _ = paired_numeric(frame, variables[0], variables[1])
    if len(a) < req["min_n"]:
        found.reject(f"Need at least {req['min_n']} paired observations; you have {len(a)}.")


# ─────────────────────────────────────────────
# REGRESSION & DIMENSIONALITY CHECKS
# ─────────────────────────────────────────────

def _check_complete_cases(frame, variables, req, found) -> pd.Series:
    complete = complete_mask(frame, variables)
    n = int(complete.sum())
    if n < req["min_n"]:
        found.reject(f"Need at least {req['min_n']} complete cases; you have {n}.")
    return complete


def _check_linear_regression(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need one scale outcome and at least one predictor.")
        return
    outcome = variables[0]
    if not _is_scale(outcome):
        binary = len(distinct_values(frame, outcome)) == 2
        found.reject(f"The outcome ({outcome.label}) must be a scale variable.", TestId.LOGREG if binary else None)
        return
    _check_complete_cases(frame, variables, req, found)


def _check_logistic_regression(frame, variables, req, found):
    if len(variables) < 2:
        found.reject("Need one binary outcome and at least one predictor.")
        return
    outcome, predictors = variables[0], variables[1:]
    levels = distinct_values(frame, outcome)
    if len(levels) != 2:
        found.reject(
            f"Outcome must have exactly two categories; it has {len(levels)}.",
            TestId.LINREG if _is_scale(outcome) else None,
        )
        return
    complete = _check_complete_cases(frame, variables, req, found)
    if found.hard_errors:
        return
    counts = frame[outcome.name][complete].value_counts()
    events = int(counts.min()) if len(counts) == 2 else 0
    if events / len(predictors) < MIN_EVENTS_PER_PREDICTOR:
        found.warn(
            f"Only {events} case(s) in the rarer outcome category for {len(predictors)} predictor(s); "
            f"aim for at least {MIN_EVENTS_PER_PREDICTOR} per predictor."
        )


def _check_pca(frame, variables, req, found):
    if not variables:
        found.reject("Need at least one scale variable.")
        return
    columns = pd.concat([numeric_column(frame, v) for v in variables], axis=1).dropna()
    if len(columns) < req["min_n"]:
        found.reject(f"Need at least {req['min_n']} complete cases; you have {len(columns)}.")


CHOICE_CHECKS: dict[TestId, Check] = {
    TestId.FREQ:     _check_frequencies,
    TestId.DESC:     _check_descriptives,
    TestId.MISSING:  _check_missing,
    TestId.CROSSTAB: _check_crosstab,
    TestId.CORR:     _check_pearson,
    TestId.SPEARMAN: _check_pairs,
    TestId.TTEST:    _check_ttest,
    TestId.ANOVA:    _check_anova,
    TestId.LINREG:   _check_linear_regression,
    TestId.LOGREG:   _check_logistic_regression,
    TestId.MANN:     _check_rank_test,
    TestId.PAIRED:   _check_paired,
    TestId.PCA:      _check_pca,
}

require_every_test(CHOICE_CHECKS, "Choice checks")


# ─────────────────────────────────────────────
# MAIN ENTRY POINT
# ─────────────────────────────────────────────

def validate_test_choice(
    test_id: TestId | str,
    dataset: Dataset,
    selected_var_names: list[str] | None = None,
) -> TestChoiceValidation:
    """
    Checks a test choice before running it. Variables resolve exactly as
    in run_test(), so unknown variable names raise ValueError.

    Returns:
        valid=False + warnings           → hard errors; the test would not run
        valid=True  + warnings           → soft warnings, then the registry note
        valid=True  + no warnings        → nothing to flag
    """
    try:
        test = TestId(test_id)
    except ValueError:
        logger.info("Unknown test id '%s'; nothing to check", test_id)
        return TestChoiceValidation(test_id=str(test_id))

    req = TEST_REQUIREMENTS[test]
    variables = resolve_roles(test, dataset, selected_var_names)
    found = _Findings()
    CHOICE_CHECKS[test](build_frame(dataset), variables, req, found)

    if found.hard_errors:
        logger.info("%s rejected before running: %s", test.value, " | ".join(found.hard_errors))
        return TestChoiceValidation(
            test_id=test.value,
            valid=False,
            warnings=found.hard_errors,
            suggested_alternative=found.alternative,
        )

    if found.soft_warnings:
        return TestChoiceValidation(
            test_id=test.value,
            warnings=found.soft_warnings + [req["alternative_note"]],
            suggested_alternative=req["alternative"],
        )

    return TestChoiceValidation(test_id=test.value)
