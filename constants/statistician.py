
# ─────────────────────────────────────────────
# SIGNIFICANCE & FORMATTING
# ─────────────────────────────────────────────

DEFAULT_ALPHA      = 0.05    # significance level used in every verdict
DECIMALS           = 3       # most statistics are rounded to 3 dp
PERCENT_DECIMALS   = 1       # percentages are rounded to 1 dp
P_FLOOR            = 0.001   # p below this is reported as "< 0.001"
SENTINEL           = "—"     # shown instead of NaN / inf / undefined values

# ─────────────────────────────────────────────
# MINIMUM SAMPLE SIZES
# ─────────────────────────────────────────────

MIN_CORRELATION_PAIRS   = 3
MIN_GROUP_OBSERVATIONS  = 2     # t-test and ANOVA, per group
MIN_RANK_TEST_TOTAL     = 3     # Mann-Whitney / Kruskal-Wallis, all groups pooled
MIN_PAIRED_OBSERVATIONS = 3
MIN_OLS_CASES           = 4
MIN_LOGISTIC_CASES      = 10
MIN_PCA_CASES           = 4

# ─────────────────────────────────────────────
# PRE-RUN ADVICE (validate_test_choice)
# ─────────────────────────────────────────────

SMALL_GROUP_WARNING_N   = 30    # per-group n below this → suggest the rank test
MIN_EXPECTED_COUNT      = 5     # chi-square expected counts below this are unreliable
MIN_EVENTS_PER_PREDICTOR = 10
SKEWNESS_WARNING        = 1.0   # |skewness| above this → report median / IQR

# ─────────────────────────────────────────────
# NUMERICAL ROUTINES
# ─────────────────────────────────────────────

PIVOT_TOLERANCE         = 1e-10   # |pivot| below this → singular system
NORMAL_APPROX_MIN_DF    = 30      # t treated as standard normal from this df
WELCH_SE_TOLERANCE      = 1e-10   # Welch standard error below this → t = 0

IRLS_MAX_ITERATIONS     = 30
IRLS_TOLERANCE          = 1e-6    # stop once every |Δβ| is below this
LOGIT_CLIP              = 20.0    # linear predictor clipped to [-20, 20]

POWER_ITERATIONS        = 50
POWER_NORM_TOLERANCE    = 1e-12   # iterate norm below this → stop early
CUMULATIVE_VARIANCE_TARGET = 0.80

FISHER_LOG_TOLERANCE    = 1e-10   # log-probability slack when comparing tables

# ─────────────────────────────────────────────
# TUKEY CRITICAL VALUE APPROXIMATION
# q_crit(k, df2) = clamp(2.8 + 0.4·ln k + 2.5/√df2, 2.5, 6)
# ─────────────────────────────────────────────

TUKEY_Q_BASE      = 2.8
TUKEY_Q_K_WEIGHT  = 0.4
TUKEY_Q_DF_WEIGHT = 2.5
TUKEY_Q_MIN       = 2.5
TUKEY_Q_MAX       = 6.0
TUKEY_Q_FALLBACK  = 4.0   # used when df2 < 2 or k < 2

# ─────────────────────────────────────────────
# EFFECT SIZE & CORRELATION WORDING
# Checked top to bottom; the first threshold |value| reaches wins.
# ─────────────────────────────────────────────

CORRELATION_STRONG   = 0.6
CORRELATION_MODERATE = 0.3

EFFECT_SIZE_THRESHOLDS: dict[str, list[tuple[float, str]]] = {
    "Cohen's d":  [(0.8, "large"), (0.5, "moderate"), (0.2, "small")],
    "r":          [(0.5, "strong"), (0.3, "moderate"), (0.1, "weak")],
    "ρ":          [(0.5, "strong"), (0.3, "moderate"), (0.1, "weak")],
    "R²":         [(0.5, "strong"), (0.25, "moderate"), (0.1, "weak")],
    "Cramér's V": [(0.3, "strong"), (0.1, "moderate"), (0.0, "weak")],
    "η²":         [(0.14, "large"), (0.06, "moderate"), (0.01, "small")],
    "ε²":         [(0.14, "large"), (0.06, "moderate"), (0.01, "small")],
    "McFadden R²": [(0.4, "strong"), (0.2, "moderate"), (0.1, "weak")],
}
NEGLIGIBLE_EFFECT = "negligible"
