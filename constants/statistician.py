# ─────────────────────────────────────────────
# SIGNIFICANCE
# ─────────────────────────────────────────────

DEFAULT_ALPHA = 0.05

# p-value tiers → interpretation wording
VERY_HIGHLY_SIGNIFICANT_P = 0.001
HIGHLY_SIGNIFICANT_P      = 0.01
SIGNIFICANT_P             = 0.05

CONFIDENCE_LEVEL = 0.95
ADEQUATE_POWER   = 0.8

# Output precision for formatted statistics
DECIMALS = 4


# ─────────────────────────────────────────────
# SMALL-SAMPLE P-VALUE POLICY
# ─────────────────────────────────────────────

MANN_WHITNEY_EXACT_MAX_N = 20   # max(n1, n2) above this → normal approximation
WILCOXON_EXACT_MAX_N     = 10   # n above this → normal approximation
SPEARMAN_EXACT_MAX_N     = 10   # n above this → t-approximation


# ─────────────────────────────────────────────
# EFFECT SIZE BOUNDARIES (small, medium, large)
# ─────────────────────────────────────────────

COHENS_D_BOUNDS      = (0.2, 0.5, 0.8)
ETA_SQUARED_BOUNDS   = (0.01, 0.06, 0.14)
EFFECT_R_BOUNDS      = (0.1, 0.3, 0.5)
CRAMERS_V_BOUNDS     = (0.1, 0.3, 0.5)

# Correlation strength: weak, moderate, strong, very strong
CORRELATION_BOUNDS   = (0.3, 0.5, 0.7, 0.9)


# ─────────────────────────────────────────────
# CAVEATS
# ─────────────────────────────────────────────

MANY_GROUPS_THRESHOLD = 5   # more groups than this → multiple-comparison warning
