
# ─────────────────────────────────────────────
# SUGGESTION CAPS — how many variables each test proposes by default
# ─────────────────────────────────────────────

MAX_FREQ_CATEGORICAL  = 5
MAX_FREQ_SCALE        = 3     # fallback when no categorical variable exists
MAX_DESC_VARIABLES    = 6
MAX_MISSING_VARIABLES = 10
MAX_PREDICTORS        = 5     # linear and logistic regression
MAX_REPEATED_MEASURES = 4
MAX_PCA_VARIABLES     = 8
MAX_FALLBACK_VARIABLES = 3    # unknown test identifiers
