"""
FILE: core/result_engine.py
----------------------------
Formatting and narrative helpers shared by the test handlers.
No statistics are computed here — only rounding, wording and the
construction of result objects from already-computed values.

Every number that reaches a table passes through rnd() or format_p(),
so NaN and infinity never leave the engine: they become SENTINEL.
"""

import math

from Schemas.statistician import (
    Cell,
    ChartSpec,
    NotApplicableResult,
    RequirementRow,
    SignificanceVerdict,
    TestId,
    VariableRef,
)
from Schemas.dataset import Variable
from constants.statistician import (
    CORRELATION_MODERATE,
    CORRELATION_STRONG,
    DECIMALS,
    DEFAULT_ALPHA,
    EFFECT_SIZE_THRESHOLDS,
    NEGLIGIBLE_EFFECT,
    PERCENT_DECIMALS,
    P_FLOOR,
    SENTINEL,
)


# ─────────────────────────────────────────────
# NUMBERS
# ─────────────────────────────────────────────

def is_finite(value) -> bool:
    return value is not None and math.isfinite(float(value))


def rnd(value, decimals: int = DECIMALS) -> Cell:
    """Rounded float, or SENTINEL for NaN / inf / None."""
    if not is_finite(value):
        return SENTINEL
    return round(float(value), decimals)


def pct(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(float(part) / float(whole) * 100, PERCENT_DECIMALS)


def pct_shares(parts: list[float], whole: float) -> list[float]:
    """
    Percentages of `whole` rounded by largest remainder, so that shares
    covering the whole add up to exactly 100. Ties in the remainder go
    to the earlier part.
    """
    if not whole:
        return [0.0] * len(parts)
    scale = 10 ** PERCENT_DECIMALS
    exact = [float(part) / float(whole) * 100 * scale for part in parts]
    units = [math.floor(value) for value in exact]
    short = round(sum(exact)) - sum(units)
    by_remainder = sorted(range(len(parts)), key=lambda i: exact[i] - units[i], reverse=True)
    for i in by_remainder[:max(short, 0)]:
        units[i] += 1
    return [unit / scale for unit in units]


def format_p(p: float) -> Cell:
    if not is_finite(p):
        return SENTINEL
    if p < P_FLOOR:
        return f"< {P_FLOOR}"
    return round(float(p), DECIMALS)


def fixed(value: float, decimals: int = 2) -> str:
    """Fixed-point text for narratives."""
    if not is_finite(value):
        return SENTINEL
    return f"{float(value):.{decimals}f}"


# ─────────────────────────────────────────────
# SIGNIFICANCE WORDING
# ─────────────────────────────────────────────

def verdict(p_value: float, alpha: float = DEFAULT_ALPHA) -> SignificanceVerdict:
    """Determines significance verdict from p-value."""
    if p_value < alpha:
        return SignificanceVerdict.SIGNIFICANT
    return SignificanceVerdict.NOT_SIGNIFICANT


def is_significant(p_value: float) -> bool:
    return verdict(p_value) == SignificanceVerdict.SIGNIFICANT


def p_relation(p_value: float) -> str:
    """'p < 0.05' or 'p ≥ 0.05'."""
    return f"p {'<' if is_significant(p_value) else '≥'} {DEFAULT_ALPHA}"


def correlation_strength(r: float) -> str:
    abs_r = abs(r)
    if abs_r >= CORRELATION_STRONG:
        return "strong"
    elif abs_r >= CORRELATION_MODERATE:
        return "moderate"
    return "weak"


def effect_magnitude(value: float | None, label: str) -> str:
    """Plain word for an effect size ('small', 'strong', ...). Empty for unknown labels."""
    if value is None or not is_finite(value) or label not in EFFECT_SIZE_THRESHOLDS:
        return ""
    for threshold, word in EFFECT_SIZE_THRESHOLDS[label]:
        if abs(value) >= threshold:
            return word
    return NEGLIGIBLE_EFFECT


def effect_size(value: float, label: str) -> dict:
    """effect_size / effect_size_label kwargs for TestResult; omitted when not finite."""
    if not is_finite(value):
        return {}
    return {"effect_size": round(float(value), DECIMALS), "effect_size_label": label}


# ─────────────────────────────────────────────
# PLAIN LANGUAGE
# ─────────────────────────────────────────────

def in_practice(text: str) -> str:
    return f"In practice: {text}"


def next_step(text: str) -> str:
    return f"Next step: {text}"


NEXT_STEPS: dict[tuple[TestId, bool], str] = {
    (TestId.CROSSTAB, True):  "Look at which cells have more cases than expected to see where the association lies.",
    (TestId.CROSSTAB, False): "Report that the variables appear independent; consider collapsing sparse categories if expected counts are low.",
    (TestId.CORR, True):      "Plot the relationship and consider a linear regression if you want to predict one variable from the other.",
    (TestId.CORR, False):     "Check the scatter plot for a non-linear pattern; Spearman correlation may be more appropriate.",
    (TestId.SPEARMAN, True):  "Report ρ with the sample size; a scatter plot helps show the monotonic trend.",
    (TestId.SPEARMAN, False): "Consider whether a larger sample or a different pairing of variables answers your question.",
    (TestId.TTEST, True):     "Report the group means, t, p and Cohen's d together.",
    (TestId.TTEST, False):    "Check the sample size per group; a non-significant result may reflect low power.",
    (TestId.ANOVA, True):     "Use the post-hoc rows to see which pairs of groups differ.",
    (TestId.ANOVA, False):    "Report that group means do not differ; check group sizes and consider Kruskal-Wallis if data are skewed.",
    (TestId.LINREG, True):    "Inspect the coefficient table to see which predictors carry the effect.",
    (TestId.LINREG, False):   "Check for missing predictors or a non-linear relationship.",
    (TestId.LOGREG, True):    "Interpret odds ratios above 1 as increasing the chance of the outcome.",
    (TestId.LOGREG, False):   "Check events per predictor; with few events the estimates are unstable.",
    (TestId.MANN, True):      "Report medians per group alongside the test statistic.",
    (TestId.MANN, False):     "Report medians per group; the distributions do not differ detectably.",
    (TestId.PAIRED, True):    "Report the mean difference with its direction and Cohen's dz.",
    (TestId.PAIRED, False):   "Check whether the pairs were matched correctly and whether the sample is large enough.",
}


def next_step_for(test_id: TestId, significant: bool) -> str | None:
    text = NEXT_STEPS.get((test_id, significant))
    return next_step(text) if text else None


# ─────────────────────────────────────────────
# VARIABLES & CHARTS
# ─────────────────────────────────────────────

def refs(*pairs: tuple[Variable, str]) -> list[VariableRef]:
    return [VariableRef(label=var.label, role=role) for var, role in pairs]


def label_maps(*variables: Variable) -> dict[str, dict[str, str]]:
    """Value label maps for the categorical variables among `variables`."""
    return {v.name: v.label_map() for v in variables if v.value_labels}


def bar_chart(title: str, data: list[dict], x_key: str, y_key: str, percent_key: str | None = None) -> ChartSpec:
    return ChartSpec(type="bar", title=title, data=data, x_key=x_key, y_key=y_key, percent_key=percent_key)


def scatter_chart(title: str, data: list[dict], x_key: str = "x", y_key: str = "y") -> ChartSpec:
    return ChartSpec(type="scatter", title=title, data=data, x_key=x_key, y_key=y_key)


def chart_number(value: float) -> Cell:
    """Chart points keep full precision but never carry NaN."""
    return float(value) if is_finite(value) else SENTINEL


# ─────────────────────────────────────────────
# NOT APPLICABLE
# ─────────────────────────────────────────────

def not_applicable_result(test_id: str, test_name: str, requirement: str, suggestion: str) -> NotApplicableResult:
    return NotApplicableResult(
        test_id=test_id,
        test_name=test_name,
        table=[RequirementRow(requirement=requirement, suggestion=suggestion)],
        insight=f"{requirement} {suggestion}",
        requirement=requirement,
        suggestion=suggestion,
    )
