"""
Shared constants used across multiple modules.
Single source of truth for the statistical policies of the point-in-time core.
"""

# A mean/std needs at least this many historical observations
MIN_HISTORY = 2

# Substituted for a historical std of exactly zero, so a zero-variance
# window yields the raw difference from the mean instead of a division error
ZERO_STD_FALLBACK = 1.0

# Profile distance (in pooled sigmas) that maps to 0% similarity
SIMILARITY_SPAN_SIGMA = 3.0

# Divergence status bands
STATUS_HARMONY = "harmony"
STATUS_CAUTION = "caution"
STATUS_ALERT = "alert"

DEFAULT_CAUTION_THRESHOLD = 0.75
DEFAULT_ALERT_THRESHOLD = 1.5
DEFAULT_EXCLUDE_WINDOW_DAYS = 7
DEFAULT_TOP_N = 10
DEFAULT_RECENT_DAYS = 30
