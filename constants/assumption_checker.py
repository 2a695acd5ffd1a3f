# ─────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────

ASSUMPTION_ALPHA          = 0.05   # p > alpha → assumption treated as met
NORMALITY_MIN_N           = 3      # Shapiro-Wilk needs at least 3 observations
NORMALITY_MAX_N           = 5000   # and is unreliable above 5000
HOMOGENEITY_MIN_GROUPS    = 2
OUTLIER_MIN_N             = 4      # IQR fence is meaningless below this
OUTLIER_IQR_MULTIPLIER    = 1.5

# Chi-square expected-count rule: no more than 20% of cells with E < 5
CHI_SQUARE_LOW_EXPECTED       = 5.0
CHI_SQUARE_LOW_EXPECTED_PCT   = 20.0

# Regression residual diagnostics
HOMOSCEDASTICITY_CORR_LIMIT = 0.3    # |corr(|e|, y_hat)| at or above this → heteroscedastic
DURBIN_WATSON_LOWER         = 1.5
DURBIN_WATSON_UPPER         = 2.5

# Assumption-check cache lifetime (seconds)
ASSUMPTION_CACHE_TTL_SECONDS = 300

# Wilcoxon symmetry proxy: absolute skewness of differences above this → asymmetric
SKEW_SYMMETRY_THRESHOLD = 1.0
