"""
FILE: core/critic_engine.py
-----------------------------
Structural checks on a finished test result.
Nothing is recomputed here: the critic only reads the result's table and
narrative and reports whether one backs up the other.

Checks implemented:
  - Base shape (test id, name, table, insight present)
  - Per-test required statistics / columns (Utils/critic_requirements_registry.py)
  - Significance consistency between the p-value cell and the insight text

A NotApplicableResult is consistent when it carries a requirement row.
Unknown test ids receive the base checks only.
"""

import logging

from Schemas.critic import ResultValidation
from Schemas.statistician import (
    ComponentRow,
    NotApplicableResult,
    RequirementRow,
    StatisticRow,
    TestId,
    TestOutcome,
)
from Utils.critic_requirements_registry import RESULT_CHECKS
from constants.statistician import DECIMALS, DEFAULT_ALPHA, P_FLOOR

logger = logging.getLogger(__name__)


NEGATIVE_PHRASES = ("not statistically significant", "no significant", "not significant")


# ─────────────────────────────────────────────
# INDIVIDUAL CHECKS
# ─────────────────────────────────────────────

def _has_statistic(result: TestOutcome, names: list[str]) -> bool:
    return any(isinstance(row, StatisticRow) and row.statistic in names for row in result.table)


def _has_statistic_prefix(result: TestOutcome, prefixes: list[str]) -> bool:
    return any(
        isinstance(row, StatisticRow) and row.statistic.startswith(tuple(prefixes))
        for row in result.table
    )


def _has_column(result: TestOutcome, labels: list[str]) -> bool:
    return any(label in record for record in result.records() for label in labels)


def _has_component(result: TestOutcome, names: list[str]) -> bool:
    return any(isinstance(row, ComponentRow) and row.component in names for row in result.table)


def _p_reads_significant(cell) -> bool | None:
    """
    True / False when the p cell settles significance, None when it cannot:
    missing, SENTINEL, or a value that rounded onto α itself.
    """
    if cell is None:
        return None
    if isinstance(cell, str):
        return True if cell == f"< {P_FLOOR}" else None
    if abs(float(cell) - DEFAULT_ALPHA) < 10 ** -DECIMALS:
        return None
    return float(cell) < DEFAULT_ALPHA


def _p_consistency_issue(result: TestOutcome, names: list[str]) -> str | None:
    cell = next((result.statistic(n) for n in names if result.statistic(n) is not None), None)
    reads_significant = _p_reads_significant(cell)
    if reads_significant is None:
        return None

    text = result.insight.lower()
    says_not_significant = any(phrase in text for phrase in NEGATIVE_PHRASES)

    if reads_significant and says_not_significant:
        return f"p = {cell} but the insight reports no significant effect."
    if not reads_significant and not says_not_significant:
        return f"p = {cell} but the insight does not report a non-significant result."
    return None


# ─────────────────────────────────────────────
# MAIN — VALIDATE ONE RESULT
# ─────────────────────────────────────────────

def validate_test_result(result: TestOutcome) -> ResultValidation:
    """
    Main entry point for the critic engine.

    Returns a ResultValidation listing every issue found. consistent is
    True only when the issue list is empty.
    """
    issues: list[str] = []

    # ── Base shape ──
    if not result.test_id:
        issues.append("Result has no test id.")
    if not result.test_name:
        issues.append("Result has no test name.")
    if not result.table:
        issues.append("Result table is empty.")
    if not result.insight.strip():
        issues.append("Result has no insight text.")

    if isinstance(result, NotApplicableResult):
        if not any(isinstance(row, RequirementRow) for row in result.table):
            issues.append("Not-applicable result should state the unmet requirement.")
        checks = []
    else:
        try:
            checks = RESULT_CHECKS.get(TestId(result.test_id), [])
        except ValueError:
            checks = []

    for check in checks:
        method = check["check_method"]
        values = check["values"]

        if method == "statistic":
            passed = _has_statistic(result, values)
        elif method == "statistic_prefix":
            passed = _has_statistic_prefix(result, values)
        elif method == "column":
            passed = _has_column(result, values)
        elif method == "component":
            passed = _has_component(result, values)
        elif method == "p_consistency":
            detail = _p_consistency_issue(result, values)
            if detail:
                issues.append(f"{check['message']} {detail}")
            continue
        else:
            raise ValueError(f"Unknown check method: '{method}'")

        if not passed:
            issues.append(check["message"])

    consistent = not issues
    if consistent:
        summary = f"{result.test_name}: result is internally consistent."
    else:
        lines = [f"{result.test_name}: {len(issues)} issue(s) found."]
        lines.extend(f"  - {issue}" for issue in issues)
        summary = "\n".join(lines)
        logger.warning("Result for '%s' failed %d check(s)", result.test_id, len(issues))

    return ResultValidation(
        test_id=result.test_id,
        consistent=consistent,
        issues=issues,
        summary_message=summary,
    )
