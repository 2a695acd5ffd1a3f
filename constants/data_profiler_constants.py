# ─────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────

# Cells treated as missing (after stripping whitespace)
MISSING_MARKERS = {""}

# Non-ASCII decimal separator accepted by numeric coercion (Arabic decimal separator)
ALT_DECIMAL_SEPARATOR = "٫"

# Dataset shape limits
MAX_ROWS    = 100_000
MAX_COLUMNS = 100

# Completeness thresholds (share of non-missing cells)
COMPLETENESS_WARNING_PCT = 80.0   # below this → warn

# Skewness thresholds
SKEW_MODERATE = 0.5
SKEW_HIGH = 1.0

# High cardinality threshold for categorical columns
HIGH_CARDINALITY_THRESHOLD = 50

# Dominant class share that flags imbalance
CLASS_IMBALANCE_SHARE = 0.80

# Frequency tables are capped in the profile output
MAX_FREQUENCY_ENTRIES = 50
