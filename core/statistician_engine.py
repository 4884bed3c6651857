"""
FILE: core/statistician_engine.py
-----------------------------------
Pure statistical test execution functions.
No LangChain, LLM or I/O dependencies.

One handler per TestId. Each takes a RunContext and returns a TestResult.
A handler that finds its test cannot run on the chosen columns raises
NotApplicable(requirement, suggestion); run_test() turns that into a
NotApplicableResult, so callers never see the exception.

Missing values: every handler reads columns through profiler_engine,
so a variable's missing codes exclude the same rows everywhere.
Bivariate tests use pairwise-complete rows, multi-variable tests
listwise-complete rows.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Callable

import numpy as np
import pandas as pd

from Schemas.dataset import Dataset, MeasurementLevel, Variable, code_text
from Schemas.statistician import (
    CoefficientRow,
    ComponentRow,
    CrosstabCellRow,
    DescriptiveRow,
    FrequencyRow,
    GroupSummaryRow,
    MissingRow,
    NoteRow,
    NotApplicableResult,
    OddsRatioRow,
    PostHocRow,
    RankSumRow,
    StatisticRow,
    TestId,
    TestResult,
)
from Utils.test_requirements_registry import TEST_REQUIREMENTS, require_every_test
from constants.data_profiler_constants import (
    MISSING_BUCKET_LABEL,
    MISSING_FLAG_LABEL,
    MISSING_FLAG_PCT,
)
from constants.statistician import (
    CUMULATIVE_VARIANCE_TARGET,
    IRLS_MAX_ITERATIONS,
    IRLS_TOLERANCE,
    LOGIT_CLIP,
    MIN_CORRELATION_PAIRS,
    MIN_EXPECTED_COUNT,
    MIN_GROUP_OBSERVATIONS,
    MIN_LOGISTIC_CASES,
    MIN_OLS_CASES,
    MIN_PAIRED_OBSERVATIONS,
    MIN_PCA_CASES,
    MIN_RANK_TEST_TOTAL,
    SENTINEL,
)
from core import numerics_engine as num
from core.classifier_engine import resolve_roles
from core.profiler_engine import (
    build_frame,
    complete_mask,
    distinct_values,
    group_samples,
    missing_count,
    missing_mask,
    numeric_column,
    paired_numeric,
    sorted_distinct_values,
)
from core.result_engine import (
    bar_chart,
    chart_number,
    correlation_strength,
    effect_magnitude,
    effect_size,
    fixed,
    format_p,
    in_practice,
    is_significant,
    label_maps,
    next_step,
    next_step_for,
    not_applicable_result,
    p_relation,
    pct,
    pct_shares,
    refs,
    rnd,
    scatter_chart,
)

logger = logging.getLogger(__name__)

COHENS_D = "Cohen's d"


# ─────────────────────────────────────────────
# NOT APPLICABLE SIGNAL & RUN CONTEXT
# ─────────────────────────────────────────────

class NotApplicable(Exception):
    """Raised by a handler when the chosen columns cannot support the test."""

    def __init__(self, requirement: str, suggestion: str):
        super().__init__(requirement)
        self.requirement = requirement
        self.suggestion = suggestion


@dataclass(frozen=True)
class RunContext:
    dataset:   Dataset
    frame:     pd.DataFrame
    variables: list[Variable]     # resolved roles, in role order
    explicit:  bool               # True when the caller named the variables


def _name(test_id: TestId) -> str:
    return TEST_REQUIREMENTS[test_id]["name"]


def _family(test_id: TestId):
    return TEST_REQUIREMENTS[test_id]["family"]


# ─────────────────────────────────────────────
# HELPERS — COLUMN ACCESS
# ─────────────────────────────────────────────

def _design_matrix(
    frame: pd.DataFrame,
    predictors: list[Variable],
    complete: pd.Series,
) -> tuple[np.ndarray, list[str]]:
    """
    Intercept, then scale predictors as-is, then categorical predictors
    dummy-coded against their lexicographically first category.
    """
    sub = frame[complete]
    columns = [np.ones(len(sub))]
    names = ["(Intercept)"]

    for var in predictors:
        if var.measurement_level == MeasurementLevel.SCALE:
            columns.append(numeric_column(frame, var)[complete].to_numpy())
            names.append(var.label)

    for var in predictors:
        if var.measurement_level == MeasurementLevel.SCALE:
            continue
        categories = sorted(dict.fromkeys(sub[var.name].tolist()), key=str)
        reference = code_text(categories[0]) if categories else ""
        for cat in categories[1:]:
            columns.append((sub[var.name] == cat).to_numpy(dtype=float))
            names.append(f"{var.label}: {code_text(cat)} vs {reference}")

    return np.column_stack(columns), names


def _sample_row(group: str, sample: np.ndarray, with_skew: bool = False) -> GroupSummaryRow:
    return GroupSummaryRow(
        group=group,
        n=len(sample),
        mean=rnd(num.mean(sample)),
        sd=rnd(num.sample_sd(sample)),
        skewness=rnd(num.skewness(sample)) if with_skew else None,
    )


# ─────────────────────────────────────────────
# DESCRIPTIVE TESTS
# ─────────────────────────────────────────────

def run_frequencies(ctx: RunContext) -> TestResult:
    """Counts and percentages per value, with an explicit missing bucket."""
    if not ctx.variables:
        raise NotApplicable(
            "No variable available. Add at least one variable in Variable View.",
            "Include at least one variable in the analysis, then run again.",
        )
    var = ctx.variables[0]
    missing = missing_mask(ctx.frame, var)
    keys = [
        MISSING_BUCKET_LABEL if is_missing else code_text(value)
        for value, is_missing in zip(ctx.frame[var.name].tolist(), missing.tolist())
    ]
    counts = Counter(keys)
    total = len(keys)
    labels = var.label_map()

    percents = pct_shares(list(counts.values()), total)
    table = [
        FrequencyRow(value=key, label=labels.get(key), count=count, percent=percent)
        for (key, count), percent in zip(counts.items(), percents)
    ]
    chart = bar_chart(
        f"Distribution of {var.label}",
        [{"name": r.value, "value": r.count, "percent": r.percent} for r in table],
        x_key="name", y_key="value", percent_key="percent",
    )

    if total:
        preview = "; ".join(f"{r.value}: {r.count} ({r.percent}%)" for r in table[:3])
        insight = (
            f'Frequencies for "{var.label}": {len(table)} categories. '
            f"{preview}{'…' if len(table) > 3 else ''}."
        )
        top = max(table, key=lambda r: r.count)
        plain = in_practice(f'The most common value of "{var.label}" is {top.label or top.value} ({top.percent}% of rows).')
    else:
        insight = "No data for this variable."
        plain = None

    return TestResult(
        test_id=TestId.FREQ.value,
        test_name=_name(TestId.FREQ),
        test_family=_family(TestId.FREQ),
        table=table,
        chart=chart,
        insight=insight,
        plain_language=plain,
        key_stat=f"{len(table)} categories, N = {total}",
        variables_analyzed=refs((var, "variable")),
        value_label_maps=label_maps(var),
    )


def run_descriptives(ctx: RunContext) -> TestResult:
    """N, mean, SD, min and max per scale variable."""
    variables = [v for v in ctx.variables if v.measurement_level == MeasurementLevel.SCALE]
    if not variables:
        raise NotApplicable(
            "Descriptive statistics need at least one scale (numeric) variable.",
            "In Variable View, set numeric variables to Scale, then run again.",
        )

    table: list[DescriptiveRow] = []
    for var in variables:
        values = numeric_column(ctx.frame, var).dropna().to_numpy()
        if len(values) == 0:
            table.append(DescriptiveRow(variable=var.label, n=0, mean=SENTINEL, sd=SENTINEL, min=SENTINEL, max=SENTINEL))
            continue
        table.append(DescriptiveRow(
            variable=var.label,
            n=len(values),
            mean=rnd(num.mean(values)),
            sd=rnd(num.sample_sd(values)),
            min=rnd(values.min()),
            max=rnd(values.max()),
        ))

    sizes = [r.n for r in table]
    chart = bar_chart(
        "Means by variable",
        [{"name": r.variable, "value": r.mean} for r in table],
        x_key="name", y_key="value",
    )
    insight = (
        f"Descriptive statistics for {len(table)} variable(s). "
        f"Sample sizes range from {min(sizes)} to {max(sizes)}. "
        f"Use these to summarize central tendency and spread before running inferential tests."
    )
    return TestResult(
        test_id=TestId.DESC.value,
        test_name=_name(TestId.DESC),
        test_family=_family(TestId.DESC),
        table=table,
        chart=chart,
        insight=insight,
        key_stat=f"{len(table)} variable(s), N = {min(sizes)}–{max(sizes)}",
        variables_analyzed=refs(*[(v, "variable") for v in variables]),
    )


def run_missing_summary(ctx: RunContext) -> TestResult:
    """Missing count and percentage per variable; flags heavy missingness."""
    variables = ctx.variables if ctx.explicit else ctx.dataset.included_variables()
    if not variables:
        raise NotApplicable(
            "No variables to summarize.",
            "Include at least one variable in the analysis, then run again.",
        )

    total = len(ctx.frame)
    table: list[MissingRow] = []
    for var in variables:
        missing = missing_count(ctx.frame, var)
        share = pct(missing, total)
        table.append(MissingRow(
            variable=var.label,
            missing=missing,
            total=total,
            missing_pct=share,
            flag=MISSING_FLAG_LABEL if share > MISSING_FLAG_PCT else "",
        ))

    flagged = [r.variable for r in table if r.flag]
    with_missing = sum(1 for r in table if r.missing > 0)
    if flagged:
        insight = (
            f"{len(flagged)} variable(s) have more than {MISSING_FLAG_PCT:g}% missing: {', '.join(flagged)}. "
            f"Consider excluding or imputing before analysis."
        )
        step = next_step("Decide whether to exclude or impute the flagged variables before running inferential tests.")
    else:
        insight = f"Missing summary: {with_missing} variable(s) have at least one missing value."
        step = None

    return TestResult(
        test_id=TestId.MISSING.value,
        test_name=_name(TestId.MISSING),
        test_family=_family(TestId.MISSING),
        table=table,
        chart=bar_chart(
            "Missing % by variable",
            [{"name": r.variable, "value": r.missing_pct} for r in table],
            x_key="name", y_key="value",
        ),
        insight=insight,
        next_step=step,
        key_stat=f"{with_missing} of {len(table)} variable(s) with missing values",
        variables_analyzed=refs(*[(v, "variable") for v in variables]),
    )


# ─────────────────────────────────────────────
# BIVARIATE ASSOCIATION
# ─────────────────────────────────────────────

def run_crosstab(ctx: RunContext) -> TestResult:
    """Contingency table, Pearson chi-square, Cramér's V; Fisher's exact p for 2×2."""
    if len(ctx.variables) < 2 or not all(v.is_categorical for v in ctx.variables[:2]):
        raise NotApplicable(
            "Crosstab requires two categorical (nominal or ordinal) variables.",
            "In Variable View, set at least two variables to Nominal or Ordinal, then run again.",
        )
    row_var, col_var = ctx.variables[:2]
    complete = ~missing_mask(ctx.frame, row_var) & ~missing_mask(ctx.frame, col_var)
    sub = ctx.frame[complete]
    row_cats = sorted(dict.fromkeys(sub[row_var.name].tolist()), key=str)
    col_cats = sorted(dict.fromkeys(sub[col_var.name].tolist()), key=str)
    if len(row_cats) < 2 or len(col_cats) < 2:
        raise NotApplicable(
            f"Crosstab needs at least 2 observed categories in each variable; "
            f"{row_var.label} has {len(row_cats)} and {col_var.label} has {len(col_cats)}.",
            "Choose variables with at least two categories each among rows where both are answered.",
        )

    row_index = {cat: i for i, cat in enumerate(row_cats)}
    col_index = {cat: j for j, cat in enumerate(col_cats)}
    observed = np.zeros((len(row_cats), len(col_cats)), dtype=int)
    for r, c in zip(sub[row_var.name].tolist(), sub[col_var.name].tolist()):
        observed[row_index[r], col_index[c]] += 1

    n = int(observed.sum())
    expected = np.outer(observed.sum(axis=1), observed.sum(axis=0)) / n
    nonzero = expected > 0
    chi_sq = float(np.sum((observed[nonzero] - expected[nonzero]) ** 2 / expected[nonzero]))
    df = (len(row_cats) - 1) * (len(col_cats) - 1)
    p = num.chi_square_to_p(chi_sq, df)
    cramers_v = math.sqrt(chi_sq / (n * (min(observed.shape) - 1)))

    table: list = [
        CrosstabCellRow(
            row=code_text(rc), column=code_text(cc),
            count=int(observed[i, j]), expected=rnd(expected[i, j]),
        )
        for i, rc in enumerate(row_cats)
        for j, cc in enumerate(col_cats)
    ]
    table += [
        StatisticRow(statistic="Chi-Square", value=rnd(chi_sq)),
        StatisticRow(statistic="df", value=df),
        StatisticRow(statistic="p-value (approx)", value=format_p(p)),
        StatisticRow(statistic="N", value=n),
        StatisticRow(statistic="Cramér's V", value=rnd(cramers_v)),
    ]
    two_by_two = observed.shape == (2, 2)
    if two_by_two:
        table.append(StatisticRow(statistic="Fisher's exact p (2-tailed)", value=format_p(num.fisher_exact_p(observed))))

    significant = is_significant(p)
    insight = (
        f"Chi-Square = {chi_sq:.2f}, df = {df}. "
        + ("The association is statistically significant (p < 0.05)." if significant
           else "The association is not statistically significant at α = 0.05.")
    )
    if (expected < MIN_EXPECTED_COUNT).any():
        insight += (f" Some expected counts are below {MIN_EXPECTED_COUNT}; rely on Fisher's exact test." if two_by_two
                    else f" Some expected counts are below {MIN_EXPECTED_COUNT}; consider collapsing categories.")

    magnitude = effect_magnitude(cramers_v, "Cramér's V")
    plain = in_practice(
        f'"{row_var.label}" and "{col_var.label}" '
        + (f"are related ({magnitude} association)." if significant else "appear to be independent.")
    )
    return TestResult(
        test_id=TestId.CROSSTAB.value,
        test_name=_name(TestId.CROSSTAB),
        test_family=_family(TestId.CROSSTAB),
        table=table,
        chart=bar_chart(
            f"Crosstab: {row_var.label} × {col_var.label}",
            [
                {"name": f"{code_text(rc)} × {code_text(cc)}", "count": int(observed[i, j])}
                for i, rc in enumerate(row_cats)
                for j, cc in enumerate(col_cats)
            ],
            x_key="name", y_key="count",
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.CROSSTAB, significant),
        key_stat=f"χ² = {chi_sq:.2f}, df = {df}",
        **effect_size(cramers_v, "Cramér's V"),
        variables_analyzed=refs((row_var, "row variable"), (col_var, "column variable")),
        value_label_maps=label_maps(row_var, col_var),
    )


def _run_correlation(ctx: RunContext, test_id: TestId) -> TestResult:
    ranked = test_id == TestId.SPEARMAN
    if len(ctx.variables) < 2:
        if ranked:
            raise NotApplicable(
                "Spearman requires two variables (scale or ordinal).",
                "In Variable View, set two variables to Scale or Ordinal, then run again.",
            )
        raise NotApplicable(
            "Correlation requires two continuous (scale) variables.",
            "In Variable View, set two variables to Scale, then run again.",
        )
    v1, v2 = ctx.variables[:2]
    x, y = paired_numeric(ctx.frame, v1, v2)
    n = len(x)
    if n < MIN_CORRELATION_PAIRS:
        raise NotApplicable(
            f"Need at least {MIN_CORRELATION_PAIRS} paired observations; you have {n}.",
            "Remove or impute missing values for both variables so more rows have valid pairs.",
        )

    r = num.spearman_rho(x, y) if ranked else num.pearson_r(x, y)
    if math.isnan(r):
        raise NotApplicable(
            "One of the variables has the same value in every row (zero variance).",
            "Choose variables whose values vary across rows.",
        )
    p = num.t_to_p(num.correlation_t(r, n), n - 2)

    symbol, stat_name = ("ρ", "Spearman ρ") if ranked else ("r", "Pearson r")
    significant = is_significant(p)
    strength = correlation_strength(r)
    direction = "positive" if r > 0 else "negative"
    if ranked:
        insight = (
            f"Spearman ρ = {r:.3f}, {p_relation(p)}. {strength.capitalize()} monotonic association. "
            + ("Statistically significant." if significant else "Not significant at α = 0.05.")
        )
        xs, ys = num.mid_ranks(x), num.mid_ranks(y)
        title = f"{v1.label} vs {v2.label} (ranks)"
    else:
        insight = (
            f"Correlation is {strength} and {direction} (r = {r:.3f}, {p_relation(p)}). "
            + ("The relationship is statistically significant." if significant
               else "The relationship is not statistically significant at α = 0.05.")
        )
        xs, ys = x, y
        title = f"{v1.label} vs {v2.label}"

    if significant:
        plain = in_practice(
            f'Higher "{v1.label}" tends to go with {"higher" if r > 0 else "lower"} "{v2.label}" '
            f"({effect_magnitude(r, symbol) or strength} relationship)."
        )
    else:
        plain = in_practice(f'There is no clear relationship between "{v1.label}" and "{v2.label}".')

    return TestResult(
        test_id=test_id.value,
        test_name=_name(test_id),
        test_family=_family(test_id),
        table=[
            StatisticRow(statistic=stat_name, value=rnd(r)),
            StatisticRow(statistic="p-value (approx)", value=format_p(p)),
            StatisticRow(statistic="N (pairs)", value=n),
        ],
        chart=scatter_chart(title, [{"x": chart_number(a), "y": chart_number(b)} for a, b in zip(xs, ys)]),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(test_id, significant),
        key_stat=f"{symbol} = {r:.3f}, {p_relation(p)}",
        **effect_size(r, symbol),
        variables_analyzed=refs((v1, "variable 1"), (v2, "variable 2")),
    )


def run_pearson_correlation(ctx: RunContext) -> TestResult:
    return _run_correlation(ctx, TestId.CORR)


def run_spearman_correlation(ctx: RunContext) -> TestResult:
    return _run_correlation(ctx, TestId.SPEARMAN)


# ─────────────────────────────────────────────
# GROUP COMPARISONS
# ─────────────────────────────────────────────

def run_independent_ttest(ctx: RunContext) -> TestResult:
    """Pooled t with Levene's test, Welch's t and Cohen's d."""
    if len(ctx.variables) < 2:
        raise NotApplicable(
            "Need one continuous (scale) outcome and one categorical variable with exactly two groups.",
            "In Variable View: set the outcome to Scale and the grouping variable to Nominal with two categories.",
        )
    outcome, group = ctx.variables[:2]
    groups = distinct_values(ctx.frame, group)
    if len(groups) != 2:
        raise NotApplicable(
            f"Grouping variable has {len(groups)} categories; t-test requires exactly 2.",
            "Use One-way ANOVA for 3+ groups, or create a binary variable (e.g. merge categories).",
        )
    s1, s2 = group_samples(ctx.frame, outcome, group, groups)
    n1, n2 = len(s1), len(s2)
    if n1 < MIN_GROUP_OBSERVATIONS or n2 < MIN_GROUP_OBSERVATIONS:
        raise NotApplicable(
            f"Need at least {MIN_GROUP_OBSERVATIONS} observations per group.",
            f"Current: {n1} and {n2}. Add data or check for missing values.",
        )

    df = n1 + n2 - 2
    pooled_var = ((n1 - 1) * num.sample_variance(s1) + (n2 - 1) * num.sample_variance(s2)) / df
    if pooled_var <= 0:
        raise NotApplicable(
            "Could not compute t-statistic (zero variance in both groups).",
            "Check data and variance in each group.",
        )
    m1, m2 = num.mean(s1), num.mean(s2)
    t = (m1 - m2) / math.sqrt(pooled_var * (1 / n1 + 1 / n2))
    p = num.t_to_p(t, df)
    levene_f, levene_p = num.levene_test([s1, s2])
    welch_t, welch_df, welch_p = num.welch_t(s1, s2)
    d = (m1 - m2) / math.sqrt(pooled_var)

    g1, g2 = code_text(groups[0]), code_text(groups[1])
    table = [
        _sample_row(g1, s1, with_skew=True),
        _sample_row(g2, s2, with_skew=True),
        StatisticRow(statistic="t (pooled)", value=rnd(t)),
        StatisticRow(statistic="df", value=df),
        StatisticRow(statistic="p-value (approx)", value=format_p(p)),
        StatisticRow(statistic="Levene's F", value=rnd(levene_f)),
        StatisticRow(statistic="Levene's p", value=format_p(levene_p)),
        StatisticRow(statistic="Welch t", value=rnd(welch_t)),
        StatisticRow(statistic="Welch df", value=welch_df),
        StatisticRow(statistic="Welch p (approx)", value=format_p(welch_p)),
        StatisticRow(statistic="Cohen's d", value=rnd(d)),
    ]

    unequal = is_significant(levene_p)
    significant = is_significant(welch_p if unequal else p)
    levene_note = (
        " Variances differ (Levene p < 0.05); prefer Welch t." if unequal
        else " Variances similar (Levene p ≥ 0.05); the pooled t is appropriate."
    )
    insight = (
        f"Mean {outcome.label} is {m1:.2f} ({g1}) vs {m2:.2f} ({g2}). "
        + ("The difference is statistically significant (p < 0.05)." if significant
           else "The difference is not statistically significant (p ≥ 0.05).")
        + levene_note
    )
    if significant:
        higher, lower = (g1, g2) if m1 > m2 else (g2, g1)
        plain = in_practice(
            f'"{outcome.label}" is higher for {higher} than for {lower} '
            f"({effect_magnitude(d, COHENS_D)} effect)."
        )
    else:
        plain = in_practice(f'"{outcome.label}" does not differ clearly between {g1} and {g2}.')

    return TestResult(
        test_id=TestId.TTEST.value,
        test_name=_name(TestId.TTEST),
        test_family=_family(TestId.TTEST),
        table=table,
        chart=bar_chart(
            f"Mean {outcome.label} by {group.label}",
            [{"name": g1, "mean": chart_number(m1)}, {"name": g2, "mean": chart_number(m2)}],
            x_key="name", y_key="mean",
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.TTEST, significant),
        key_stat=f"t = {t:.2f}, {p_relation(p)}",
        **effect_size(d, COHENS_D),
        variables_analyzed=refs((outcome, "outcome"), (group, "group")),
        value_label_maps=label_maps(group),
    )


def run_one_way_anova(ctx: RunContext) -> TestResult:
    """F test across 3+ groups, η², Levene's test, Tukey-style post-hoc rows."""
    if len(ctx.variables) < 2:
        raise NotApplicable(
            "Need one continuous (scale) outcome and one categorical variable with 3+ groups.",
            "In Variable View: set the outcome to Scale and the grouping variable to Nominal with at least 3 categories.",
        )
    outcome, group = ctx.variables[:2]
    groups = sorted_distinct_values(ctx.frame, group)
    if len(groups) < 3:
        raise NotApplicable(
            f"Grouping variable has {len(groups)} categories; ANOVA requires 3 or more.",
            "Use Independent-samples t-test for 2 groups.",
        )
    samples = group_samples(ctx.frame, outcome, group, groups)
    sizes = [len(s) for s in samples]
    if any(size < MIN_GROUP_OBSERVATIONS for size in sizes):
        raise NotApplicable(
            f"Need at least {MIN_GROUP_OBSERVATIONS} observations per group.",
            f"Current group sizes: {', '.join(str(s) for s in sizes)}.",
        )

    all_values = np.concatenate(samples)
    grand = num.mean(all_values)
    means = [num.mean(s) for s in samples]
    ssb = sum(size * (m - grand) ** 2 for size, m in zip(sizes, means))
    sst = float(np.sum((all_values - grand) ** 2))
    f, df1, df2 = num.one_way_f(samples)
    if math.isnan(f) and ssb > 0:
        f = math.inf
    p = num.f_to_p(f, df1, df2) if not math.isnan(f) else math.nan
    eta_sq = ssb / sst if sst > 0 else math.nan
    levene_f, levene_p = num.levene_test(samples)
    msw = max((sst - ssb) / df2, 0.0)

    labels = [code_text(g) for g in groups]
    table: list = [_sample_row(label, s) for label, s in zip(labels, samples)]
    table += [
        StatisticRow(statistic="F", value=rnd(f)),
        StatisticRow(statistic="df1 (groups)", value=df1),
        StatisticRow(statistic="df2 (error)", value=df2),
        StatisticRow(statistic="p-value (approx)", value=format_p(p)),
        StatisticRow(statistic="η²", value=rnd(eta_sq)),
        StatisticRow(statistic="Levene's F", value=rnd(levene_f)),
        StatisticRow(statistic="Levene's p", value=format_p(levene_p)),
    ]

    significant = is_significant(p)
    if significant:
        q_crit = num.tukey_q_crit(len(groups), df2)
        for i in range(len(groups)):
            for j in range(i + 1, len(groups)):
                diff = means[i] - means[j]
                se = math.sqrt(msw * (1 / sizes[i] + 1 / sizes[j]))
                if se > 0:
                    q = abs(diff) / se
                else:
                    # constant groups: any mean difference is infinitely many SEs
                    q = math.inf if diff != 0 else 0.0
                table.append(PostHocRow(
                    comparison=f"{labels[i]} vs {labels[j]}",
                    diff=round(diff, 3),
                    q=rnd(q),
                    q_crit=round(q_crit, 2),
                    significant="Yes" if q >= q_crit else "No",
                ))

    levene_note = (
        " Variances differ (Levene p < 0.05); consider Welch ANOVA or robust methods."
        if is_significant(levene_p) else ""
    )
    insight = (
        f"One-way ANOVA: F({df1}, {df2}) = {fixed(f)}, {p_relation(p)}. "
        + ("At least one group mean differs significantly. Post-hoc (Tukey HSD) above." if significant
           else "No significant difference between group means.")
        + levene_note
    )
    if significant:
        top = labels[int(np.argmax(means))]
        plain = in_practice(
            f'"{outcome.label}" differs across {group.label} groups; {top} has the highest mean '
            f"({effect_magnitude(eta_sq, 'η²')} effect)."
        )
    else:
        plain = in_practice(f'"{outcome.label}" is similar across {group.label} groups.')

    return TestResult(
        test_id=TestId.ANOVA.value,
        test_name=_name(TestId.ANOVA),
        test_family=_family(TestId.ANOVA),
        table=table,
        chart=bar_chart(
            f"Mean {outcome.label} by {group.label}",
            [{"name": label, "mean": chart_number(m)} for label, m in zip(labels, means)],
            x_key="name", y_key="mean",
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.ANOVA, significant),
        key_stat=f"F = {fixed(f)}, {p_relation(p)}",
        **effect_size(eta_sq, "η²"),
        variables_analyzed=refs((outcome, "outcome"), (group, "group")),
        value_label_maps=label_maps(group),
    )


def run_mann_whitney(ctx: RunContext) -> TestResult:
    """Mann-Whitney U for two groups, Kruskal-Wallis H for three or more."""
    if len(ctx.variables) < 2:
        raise NotApplicable(
            "Need one scale or ordinal outcome and one categorical group variable.",
            "In Variable View, set outcome (Scale or Ordinal) and a Nominal group variable.",
        )
    outcome, group = ctx.variables[:2]
    groups = sorted_distinct_values(ctx.frame, group)
    if len(groups) < 2:
        raise NotApplicable(
            f"Grouping variable has {len(groups)} categories; Mann-Whitney / Kruskal-Wallis requires at least 2.",
            "Choose a grouping variable with two or more observed categories.",
        )
    samples = group_samples(ctx.frame, outcome, group, groups)
    sizes = [len(s) for s in samples]
    n = sum(sizes)
    if n < MIN_RANK_TEST_TOTAL or min(sizes) < 1:
        raise NotApplicable(
            f"Need at least one observation per group and {MIN_RANK_TEST_TOTAL} total.",
            f"Current: {', '.join(str(s) for s in sizes)}.",
        )

    ranks = num.mid_ranks(np.concatenate(samples))
    bounds = np.cumsum([0] + sizes)
    rank_sums = [float(ranks[bounds[j]:bounds[j + 1]].sum()) for j in range(len(samples))]
    labels = [code_text(g) for g in groups]
    table: list = [
        RankSumRow(group=label, n=size, rank_sum=rnd(rs), median=rnd(num.median(s)))
        for label, size, rs, s in zip(labels, sizes, rank_sums, samples)
    ]
    chart = bar_chart(
        f"Median {outcome.label} by {group.label}",
        [{"name": label, "median": chart_number(num.median(s))} for label, s in zip(labels, samples)],
        x_key="name", y_key="median",
    )

    if len(groups) == 2:
        n1, n2 = sizes
        u1 = rank_sums[0] - n1 * (n1 + 1) / 2
        u = min(u1, n1 * n2 - u1)
        mu_u = n1 * n2 / 2
        sigma_u = math.sqrt(n1 * n2 * (n1 + n2 + 1) / 12)
        z = (u - mu_u) / sigma_u if sigma_u > 0 else 0.0
        p = min(1.0, 2 * num.normal_upper_tail(abs(z)))
        r = abs(z) / math.sqrt(n)
        table += [
            StatisticRow(statistic="Mann-Whitney U", value=rnd(u)),
            StatisticRow(statistic="z (approx)", value=rnd(z)),
            StatisticRow(statistic="p (approx)", value=format_p(p)),
            StatisticRow(statistic="Effect size r", value=rnd(r)),
        ]
        significant = is_significant(p)
        insight = (
            f"Mann-Whitney U = {u:g}, z ≈ {z:.2f}, {p_relation(p)}. "
            + ("The two groups differ significantly in distribution." if significant else "No significant difference.")
        )
        test_name, key_stat = "Mann-Whitney U", f"U = {u:g}, {p_relation(p)}"
        effect = effect_size(r, "r")
        magnitude = effect_magnitude(r, "r")
    else:
        df = len(groups) - 1
        h = 12 / (n * (n + 1)) * sum(rs * rs / size for rs, size in zip(rank_sums, sizes)) - 3 * (n + 1)
        p = 1.0 if h <= 0 else num.normal_upper_tail((h - df) / math.sqrt(2 * df))
        eps_sq = h / (n - 1)
        table += [
            StatisticRow(statistic="Kruskal-Wallis H", value=rnd(h)),
            StatisticRow(statistic="df", value=df),
            StatisticRow(statistic="p (approx)", value=format_p(p)),
            StatisticRow(statistic="ε²", value=rnd(eps_sq)),
        ]
        significant = is_significant(p)
        insight = (
            f"Kruskal-Wallis H = {h:.2f}, df = {df}, {p_relation(p)}. "
            + ("At least one group differs in distribution." if significant else "No significant difference.")
        )
        test_name, key_stat = "Kruskal-Wallis", f"H = {h:.2f}, {p_relation(p)}"
        effect = effect_size(eps_sq, "ε²")
        magnitude = effect_magnitude(eps_sq, "ε²")

    plain = in_practice(
        f'"{outcome.label}" tends to differ between {group.label} groups ({magnitude} effect).' if significant
        else f'"{outcome.label}" is distributed similarly across {group.label} groups.'
    )
    return TestResult(
        test_id=TestId.MANN.value,
        test_name=test_name,
        test_family=_family(TestId.MANN),
        table=table,
        chart=chart,
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.MANN, significant),
        key_stat=key_stat,
        **effect,
        variables_analyzed=refs((outcome, "outcome"), (group, "group")),
        value_label_maps=label_maps(group),
    )


# ─────────────────────────────────────────────
# REGRESSION
# ─────────────────────────────────────────────

def _usable_se(se: float) -> bool:
    return math.isfinite(se) and se > 0


def _coefficient_cells(beta: float, se: float, df: int) -> dict:
    """Coef / SE / t / p cells; SE, t and p fall back to SENTINEL when SE is unusable."""
    if not _usable_se(se):
        return {"coef": rnd(beta), "se": SENTINEL, "t": SENTINEL, "p_value": SENTINEL}
    t = beta / se
    return {"coef": rnd(beta), "se": rnd(se), "t": rnd(t), "p_value": format_p(num.t_to_p(t, df))}


def _regression_inputs(ctx: RunContext, test_id: TestId, min_cases: int):
    """Shared outcome / predictor / complete-case validation for both regressions."""
    if len(ctx.variables) < 2:
        if test_id == TestId.LINREG:
            raise NotApplicable(
                "Need one scale outcome and at least one predictor (scale or nominal).",
                "In Variable View, set outcome and predictors, then run again.",
            )
        raise NotApplicable(
            "Need one binary outcome and at least one predictor.",
            "In Variable View, set outcome to Nominal with two categories and add scale or nominal predictors.",
        )
    outcome, predictors = ctx.variables[0], ctx.variables[1:]
    complete = complete_mask(ctx.frame, ctx.variables)
    n = int(complete.sum())
    if n < min_cases:
        raise NotApplicable(
            f"Need at least {min_cases} complete cases; you have {n}.",
            "Remove or impute missing values for outcome and predictors.",
        )
    x, names = _design_matrix(ctx.frame, predictors, complete)
    if x.shape[1] < 2:
        raise NotApplicable(
            "The predictors do not vary among complete cases.",
            "Choose predictors whose values differ across rows.",
        )
    return outcome, predictors, complete, x, names


def run_linear_regression(ctx: RunContext) -> TestResult:
    """OLS via the normal equations, solved with the package's own Gauss–Jordan routine."""
    if ctx.variables and ctx.variables[0].measurement_level != MeasurementLevel.SCALE:
        raise NotApplicable(
            f"The outcome ({ctx.variables[0].label}) must be a scale variable.",
            "Use logistic regression for a binary outcome.",
        )
    outcome, predictors, complete, x, names = _regression_inputs(ctx, TestId.LINREG, MIN_OLS_CASES)
    y = numeric_column(ctx.frame, outcome)[complete].to_numpy()

    xtx = num.cross_product(x)
    try:
        beta = num.solve_linear_system(xtx, x.T @ y)
    except np.linalg.LinAlgError:
        raise NotApplicable(
            "Design matrix is singular (e.g. collinearity).",
            "Remove redundant predictors or add more data.",
        )

    n, k = x.shape[0], x.shape[1] - 1
    df_res = n - k - 1
    fitted = x @ beta
    ss_res = float(np.sum((y - fitted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_sq = 1 - ss_res / ss_tot if ss_tot > 0 else math.nan
    mse = ss_res / df_res if df_res > 0 else math.nan
    se = np.sqrt(mse * num.inverse_diagonal(xtx)) if df_res > 0 else np.full(k + 1, np.nan)

    if df_res < 1 or math.isnan(r_sq):
        f, p_model, adj_r_sq = math.nan, math.nan, math.nan
    elif r_sq >= 1:
        f, p_model, adj_r_sq = math.inf, 0.0, 1.0
    else:
        f = (r_sq / k) / ((1 - r_sq) / df_res)
        p_model = num.f_to_p(f, k, df_res)
        adj_r_sq = 1 - (1 - r_sq) * (n - 1) / df_res

    table: list = [
        CoefficientRow(predictor=name, **_coefficient_cells(float(b), float(s), df_res))
        for name, b, s in zip(names, beta, se)
    ]
    table += [
        StatisticRow(statistic="R²", value=rnd(r_sq)),
        StatisticRow(statistic="Adjusted R²", value=rnd(adj_r_sq)),
        StatisticRow(statistic="F", value=rnd(f)),
        StatisticRow(statistic="df1", value=k),
        StatisticRow(statistic="df2", value=df_res),
        StatisticRow(statistic="p (model, approx)", value=format_p(p_model)),
        StatisticRow(statistic="N", value=n),
    ]

    significant = is_significant(p_model)
    insight = (
        f"Linear regression: R² = {fixed(r_sq, 3)}. Model F({k}, {df_res}) = {fixed(f)}, {p_relation(p_model)}. "
        + ("At least one predictor is significant." if significant
           else "Model is not statistically significant at α = 0.05.")
    )
    plain = in_practice(
        f'The predictors explain about {round(r_sq * 100) if not math.isnan(r_sq) else 0}% '
        f'of the variation in "{outcome.label}".'
    )
    return TestResult(
        test_id=TestId.LINREG.value,
        test_name=_name(TestId.LINREG),
        test_family=_family(TestId.LINREG),
        table=table,
        chart=scatter_chart(
            f"Fitted vs observed: {outcome.label}",
            [{"observed": chart_number(o), "fitted": chart_number(fv)} for o, fv in zip(y, fitted)],
            x_key="observed", y_key="fitted",
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.LINREG, significant),
        key_stat=f"R² = {fixed(r_sq, 3)}, {p_relation(p_model)}",
        **effect_size(r_sq, "R²"),
        variables_analyzed=refs((outcome, "outcome"), *[(v, "predictor") for v in predictors]),
        value_label_maps=label_maps(*predictors),
    )


def _fit_logistic(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray, int]:
    """
    Newton / IRLS fit. Returns (beta, final working weights, iterations).
    Stops when every |Δβ| < IRLS_TOLERANCE, when the weighted normal
    equations become singular, or after IRLS_MAX_ITERATIONS.
    """
    beta = np.zeros(x.shape[1])
    iterations = 0
    converged = False
    for iteration in range(1, IRLS_MAX_ITERATIONS + 1):
        mu = _logistic(x @ beta)
        weights = mu * (1 - mu)
        try:
            delta = num.solve_linear_system(num.cross_product(x, weights), x.T @ (y - mu))
        except np.linalg.LinAlgError:
            logger.warning("IRLS stopped at iteration %d: weighted normal equations are singular", iteration)
            break
        beta = beta + delta
        iterations = iteration
        if np.all(np.abs(delta) < IRLS_TOLERANCE):
            converged = True
            break

    if iterations and not converged:
        logger.warning("IRLS did not converge after %d iterations", iterations)

    mu = _logistic(x @ beta)
    return beta, mu * (1 - mu), iterations


def _logistic(eta: np.ndarray) -> np.ndarray:
    return 1 / (1 + np.exp(-np.clip(eta, -LOGIT_CLIP, LOGIT_CLIP)))


def _log_likelihood(y: np.ndarray, mu: np.ndarray) -> float:
    return float(np.sum(y * np.log(mu) + (1 - y) * np.log(1 - mu)))


def run_logistic_regression(ctx: RunContext) -> TestResult:
    """Binary logistic regression; odds ratios with Wald z tests."""
    if ctx.variables:
        outcome_levels = distinct_values(ctx.frame, ctx.variables[0])
        if len(outcome_levels) != 2:
            raise NotApplicable(
                f"Outcome must have exactly two categories; it has {len(outcome_levels)}.",
                "Use a binary variable (e.g. yes/no, 0/1) as outcome.",
            )
    outcome, predictors, complete, x, names = _regression_inputs(ctx, TestId.LOGREG, MIN_LOGISTIC_CASES)
    _, positive = sorted(distinct_values(ctx.frame, outcome), key=str)
    y = (ctx.frame[outcome.name][complete] == positive).to_numpy(dtype=float)
    n, events = len(y), int(y.sum())
    if events in (0, n):
        raise NotApplicable(
            "Among complete cases the outcome takes only one value.",
            "Add rows where both outcome categories occur alongside the predictors.",
        )

    beta, weights, iterations = _fit_logistic(x, y)
    if iterations == 0:
        raise NotApplicable(
            "Design matrix is singular (e.g. collinearity or a constant predictor).",
            "Remove redundant predictors or add more data.",
        )
    se = np.sqrt(num.inverse_diagonal(num.cross_product(x, weights)))
    mu = _logistic(x @ beta)
    null_mu = np.full(n, events / n)
    mcfadden = 1 - _log_likelihood(y, mu) / _log_likelihood(y, null_mu)

    table: list = []
    significant_predictors = []
    for name, b, s in zip(names, beta, se):
        b, s = float(b), float(s)
        if _usable_se(s):
            z = b / s
            p = min(1.0, 2 * num.normal_upper_tail(abs(z)))
            if name != "(Intercept)" and is_significant(p):
                significant_predictors.append(name)
            z_cell, p_cell = rnd(z), format_p(p)
        else:
            z_cell, p_cell = SENTINEL, SENTINEL
        table.append(OddsRatioRow(
            predictor=name,
            coef=rnd(b),
            odds_ratio=rnd(np.exp(min(b, 700.0))),
            se=rnd(s) if _usable_se(s) else SENTINEL,
            z=z_cell,
            p_value=p_cell,
        ))
    table += [
        StatisticRow(statistic="N", value=n),
        StatisticRow(statistic="Events", value=events),
        StatisticRow(statistic="Iterations", value=iterations),
        StatisticRow(statistic="McFadden R²", value=rnd(mcfadden)),
    ]

    significant = bool(significant_predictors)
    insight = (
        f"Logistic regression: {len(names) - 1} predictor(s), N = {n}, events = {events} "
        f"({outcome.label} = {code_text(positive)}). "
        + (f"Significant predictors (p < 0.05): {', '.join(significant_predictors)}. " if significant
           else "No predictor is significant at α = 0.05. ")
        + "Odds ratios and Wald tests above. Check events per predictor (e.g. ≥10) for stability."
    )
    plain = in_practice(
        f'{", ".join(significant_predictors)} change the odds of "{outcome.label}" being {code_text(positive)}.'
        if significant
        else f'None of the predictors clearly changes the odds of "{outcome.label}" being {code_text(positive)}.'
    )
    return TestResult(
        test_id=TestId.LOGREG.value,
        test_name=_name(TestId.LOGREG),
        test_family=_family(TestId.LOGREG),
        table=table,
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.LOGREG, significant),
        key_stat=f"N = {n}, events = {events}",
        **effect_size(mcfadden, "McFadden R²"),
        variables_analyzed=refs((outcome, "outcome"), *[(v, "predictor") for v in predictors]),
        value_label_maps=label_maps(outcome, *predictors),
    )


# ─────────────────────────────────────────────
# REPEATED MEASURES
# ─────────────────────────────────────────────

def run_paired_ttest(ctx: RunContext) -> TestResult:
    """Paired t-test on the first two measures; Cohen's dz as effect size."""
    if len(ctx.variables) < 2:
        raise NotApplicable(
            "Need at least two scale variables (e.g. pre and post, or two conditions).",
            "In Variable View, add two or more scale variables for repeated measures.",
        )
    v1, v2 = ctx.variables[:2]
    a, b = paired_numeric(ctx.frame, v1, v2)
    n = len(a)
    if n < MIN_PAIRED_OBSERVATIONS:
        raise NotApplicable(
            f"Need at least {MIN_PAIRED_OBSERVATIONS} paired observations; you have {n}.",
            "Ensure both variables have valid numeric values for the same rows.",
        )
    diffs = a - b
    mean_diff = num.mean(diffs)
    sd_diff = num.sample_sd(diffs)
    if sd_diff == 0:
        raise NotApplicable(
            "The difference between the two measures is the same in every row (zero variance).",
            "A paired t-test needs variation in the differences; check the data.",
        )
    t = mean_diff / (sd_diff / math.sqrt(n))
    df = n - 1
    p = num.t_to_p(t, df)
    dz = mean_diff / sd_diff

    significant = is_significant(p)
    insight = (
        f"Paired t-test: mean difference = {mean_diff:.3f}, t({df}) = {t:.2f}, {p_relation(p)}. "
        + ("The difference is statistically significant." if significant else "No significant difference.")
    )
    if significant:
        higher, lower = (v1, v2) if mean_diff > 0 else (v2, v1)
        plain = in_practice(
            f'"{higher.label}" is higher than "{lower.label}" on average '
            f"({effect_magnitude(dz, COHENS_D)} effect)."
        )
    else:
        plain = in_practice(f'"{v1.label}" and "{v2.label}" do not differ clearly on average.')

    return TestResult(
        test_id=TestId.PAIRED.value,
        test_name=_name(TestId.PAIRED),
        test_family=_family(TestId.PAIRED),
        table=[
            StatisticRow(statistic=f"Mean {v1.label}", value=rnd(num.mean(a))),
            StatisticRow(statistic=f"Mean {v2.label}", value=rnd(num.mean(b))),
            StatisticRow(statistic="Mean difference", value=rnd(mean_diff)),
            StatisticRow(statistic="SD of differences", value=rnd(sd_diff)),
            StatisticRow(statistic="t", value=rnd(t)),
            StatisticRow(statistic="df", value=df),
            StatisticRow(statistic="p-value (approx)", value=format_p(p)),
            StatisticRow(statistic="Cohen's dz", value=rnd(dz)),
        ],
        chart=scatter_chart(
            f"{v1.label} vs {v2.label} (paired)",
            [{"x": chart_number(x), "y": chart_number(y)} for x, y in zip(a, b)],
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step_for(TestId.PAIRED, significant),
        key_stat=f"t = {t:.2f}, {p_relation(p)}",
        **effect_size(dz, COHENS_D),
        variables_analyzed=refs((v1, "repeated measure"), (v2, "repeated measure")),
    )


# ─────────────────────────────────────────────
# DIMENSIONALITY REDUCTION
# ─────────────────────────────────────────────

def run_pca(ctx: RunContext) -> TestResult:
    """PCA on the sample covariance matrix via power iteration with deflation."""
    if not ctx.variables:
        raise NotApplicable("Need at least one scale variable.", "In Variable View, set variables to Scale.")
    variables = ctx.variables
    columns = pd.concat([numeric_column(ctx.frame, v) for v in variables], axis=1).dropna()
    n, p = columns.shape
    if n < MIN_PCA_CASES:
        raise NotApplicable(
            f"Need at least {MIN_PCA_CASES} complete cases; you have {n}.",
            "Remove or impute missing values.",
        )

    covariance = num.covariance_matrix(columns.to_numpy())
    total_variance = float(np.trace(covariance))
    if total_variance <= 0:
        raise NotApplicable(
            "The chosen variables have no variance.",
            "Choose variables whose values vary across rows.",
        )
    pairs = num.top_eigenpairs(covariance, min(p, n - 1))

    table: list = []
    cumulative = 0.0
    components_for_target = None
    for i, (eigenvalue, vector) in enumerate(pairs, start=1):
        cumulative += eigenvalue
        top = int(np.argmax(np.abs(vector)))
        table.append(ComponentRow(
            component=f"PC{i}",
            eigenvalue=rnd(eigenvalue),
            variance_pct=pct(eigenvalue, total_variance),
            cumulative_pct=pct(cumulative, total_variance),
            top_loading=f"{variables[top].label} ({vector[top]:.3f})",
        ))
        if components_for_target is None and cumulative / total_variance >= CUMULATIVE_VARIANCE_TARGET - 1e-12:
            components_for_target = i

    table += [
        StatisticRow(statistic="Total variance", value=rnd(total_variance)),
        StatisticRow(
            statistic=f"Components for ≥{CUMULATIVE_VARIANCE_TARGET:.0%}",
            value=components_for_target if components_for_target is not None else SENTINEL,
        ),
        StatisticRow(statistic="N", value=n),
    ]

    target = f"{CUMULATIVE_VARIANCE_TARGET:.0%}"
    insight = (
        f"PCA on {p} variables, N = {n}. Total variance = {total_variance:.2f}. "
        + (f"First {components_for_target} component(s) explain ≥{target} of variance."
           if components_for_target is not None
           else "Consider retaining components with eigenvalue > 1 or using scree plot.")
    )
    plain = in_practice(
        f"{components_for_target} underlying dimension(s) capture most of the information in these {p} variables."
        if components_for_target is not None
        else f"The {p} variables do not reduce to a few dimensions."
    )
    return TestResult(
        test_id=TestId.PCA.value,
        test_name=_name(TestId.PCA),
        test_family=_family(TestId.PCA),
        table=table,
        chart=bar_chart(
            "Variance explained by component",
            [{"name": r.component, "value": r.variance_pct} for r in table if isinstance(r, ComponentRow)],
            x_key="name", y_key="value",
        ),
        insight=insight,
        plain_language=plain,
        next_step=next_step("Interpret each retained component through its top-loading variables."),
        key_stat=f"{len(pairs)} components, {total_variance:.2f} total variance",
        variables_analyzed=refs(*[(v, "variable") for v in variables]),
    )


# ─────────────────────────────────────────────
# DISPATCHER — ROUTES TO CORRECT TEST FUNCTION
# ─────────────────────────────────────────────

HANDLERS: dict[TestId, Callable[[RunContext], TestResult]] = {
    TestId.FREQ:     run_frequencies,
    TestId.DESC:     run_descriptives,
    TestId.MISSING:  run_missing_summary,
    TestId.CROSSTAB: run_crosstab,
    TestId.CORR:     run_pearson_correlation,
    TestId.SPEARMAN: run_spearman_correlation,
    TestId.TTEST:    run_independent_ttest,
    TestId.ANOVA:    run_one_way_anova,
    TestId.LINREG:   run_linear_regression,
    TestId.LOGREG:   run_logistic_regression,
    TestId.MANN:     run_mann_whitney,
    TestId.PAIRED:   run_paired_ttest,
    TestId.PCA:      run_pca,
}

require_every_test(HANDLERS, "Handlers")


def _not_implemented(test_id: str) -> TestResult:
    implemented = ", ".join(t.value for t in TestId)
    return TestResult(
        test_id=test_id,
        test_name=test_id,
        table=[NoteRow(note="This test is not yet implemented.", implemented=implemented)],
        insight=f"'{test_id}' is not yet implemented. Available tests: {implemented}.",
    )


def run_test(
    test_id: TestId | str,
    dataset: Dataset,
    selected_var_names: list[str] | None = None,
) -> TestResult | NotApplicableResult:
    """
    Runs one test. Explicit variable names take priority; otherwise the
    classifier's suggestion is used.
    Returns a TestResult, or a NotApplicableResult when the data cannot
    support the test. Unknown variable names raise ValueError.
    """
    try:
        test = TestId(test_id)
    except ValueError:
        logger.info("Unknown test id '%s'; returning stub result", test_id)
        return _not_implemented(str(test_id))

    variables = resolve_roles(test, dataset, selected_var_names)
    ctx = RunContext(
        dataset=dataset,
        frame=build_frame(dataset),
        variables=variables,
        explicit=bool(selected_var_names),
    )
    logger.debug("Running %s on %s", test.value, [v.name for v in variables])

    try:
        return HANDLERS[test](ctx)
    except NotApplicable as exc:
        logger.info("%s not applicable: %s", test.value, exc.requirement)
        return not_applicable_result(test.value, _name(test), exc.requirement, exc.suggestion)
