"""
FILE: Utils/critic_requirements_registry.py
---------------------------------------------
Registry of the structural checks run on a finished TestResult.
Each check names something the result's table must carry for its
narrative to be backed by numbers.

Keyed by TestId. Each check entry:
  name          — short identifier
  check_method  — "statistic"        : a StatisticRow with one of `values`
                  "statistic_prefix" : a StatisticRow whose name starts with one of `values`
                  "column"           : some row has one of the column labels in `values`
                  "component"        : a ComponentRow named one of `values`
                  "p_consistency"    : the narrative agrees with the StatisticRow named in `values`
                                       on significance (p < 0.05)
  values        — accepted statistic names / column labels / component names
  message       — issue text when the check fails
"""

from Schemas.statistician import TestId

P_CONSISTENCY = {
    "name": "p_consistency",
    "check_method": "p_consistency",
    "values": ["p-value (approx)"],
    "message": "Narrative significance does not match the reported p-value.",
}

RESULT_CHECKS: dict[TestId, list[dict]] = {

    TestId.FREQ: [
        {
            "name": "counts",
            "check_method": "column",
            "values": ["Count"],
            "message": "Frequency result should include counts.",
        },
    ],
    TestId.DESC: [
        {
            "name": "means",
            "check_method": "column",
            "values": ["Mean"],
            "message": "Descriptive result should include means.",
        },
    ],
    TestId.MISSING: [
        {
            "name": "missing_pct",
            "check_method": "column",
            "values": ["Missing %"],
            "message": "Missing summary should include missing percentages.",
        },
    ],

    # ─────────────────────────────────────────────
    # ASSOCIATION
    # ─────────────────────────────────────────────
    TestId.CROSSTAB: [
        {
            "name": "chi_square",
            "check_method": "statistic",
            "values": ["Chi-Square"],
            "message": "Crosstab result should include Chi-Square.",
        },
    ],
    TestId.CORR: [
        {
            "name": "pearson_r",
            "check_method": "statistic",
            "values": ["Pearson r"],
            "message": "Correlation result should include Pearson r.",
        },
        {
            "name": "p_value",
            "check_method": "statistic_prefix",
            "values": ["p-value"],
            "message": "Correlation result should include p-value.",
        },
        P_CONSISTENCY,
    ],
    TestId.SPEARMAN: [
        {
            "name": "spearman_rho",
            "check_method": "statistic",
            "values": ["Spearman ρ"],
            "message": "Spearman result should include Spearman ρ.",
        },
        P_CONSISTENCY,
    ],

    # ─────────────────────────────────────────────
    # GROUP COMPARISONS
    # ─────────────────────────────────────────────
    TestId.TTEST: [
        {
            "name": "t_statistic",
            "check_method": "statistic",
            "values": ["t (pooled)", "t"],
            "message": "t-test result should include t statistic.",
        },
        {
            "name": "levene",
            "check_method": "statistic",
            "values": ["Levene's F"],
            "message": "t-test result should include Levene's test.",
        },
        {
            "name": "welch",
            "check_method": "statistic",
            "values": ["Welch t"],
            "message": "t-test result should include Welch t.",
        },
    ],
    TestId.ANOVA: [
        {
            "name": "f_statistic",
            "check_method": "statistic",
            "values": ["F"],
            "message": "ANOVA result should include F statistic.",
        },
        {
            "name": "levene",
            "check_method": "statistic",
            "values": ["Levene's F"],
            "message": "ANOVA result should include Levene's test.",
        },
        P_CONSISTENCY,
    ],
    TestId.MANN: [
        {
            "name": "rank_statistic",
            "check_method": "statistic",
            "values": ["Mann-Whitney U", "Kruskal-Wallis H"],
            "message": "Mann-Whitney/Kruskal-Wallis result should include U or H statistic.",
        },
        {
            "name": "p_consistency",
            "check_method": "p_consistency",
            "values": ["p (approx)"],
            "message": "Narrative significance does not match the reported p-value.",
        },
    ],
    TestId.PAIRED: [
        {
            "name": "t_statistic",
            "check_method": "statistic",
            "values": ["t"],
            "message": "Paired t-test result should include t statistic.",
        },
        P_CONSISTENCY,
    ],

    # ─────────────────────────────────────────────
    # REGRESSION & DIMENSIONALITY
    # ─────────────────────────────────────────────
    TestId.LINREG: [
        {
            "name": "r_squared",
            "check_method": "statistic",
            "values": ["R²"],
            "message": "Linear regression result should include R².",
        },
    ],
    TestId.LOGREG: [
        {
            "name": "odds_ratios",
            "check_method": "column",
            "values": ["Odds ratio"],
            "message": "Logistic regression result should include odds ratios.",
        },
    ],
    TestId.PCA: [
        {
            "name": "components",
            "check_method": "component",
            "values": ["PC1", "PC2"],
            "message": "PCA result should include PC1 or PC2.",
        },
    ],
}
