# ─────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────

# Label used for the missing bucket in frequency tables
MISSING_BUCKET_LABEL = "(missing)"

# Missing summary: variables above this percentage are flagged
MISSING_FLAG_PCT = 30.0
MISSING_FLAG_LABEL = "> 30%"

# Question group detection: rows sniffed when deciding if a column looks binary
BINARY_SNIFF_ROWS = 100

# Question group labels longer than this are truncated with an ellipsis
GROUP_LABEL_MAX_LENGTH = 40
