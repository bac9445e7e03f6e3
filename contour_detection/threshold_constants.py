"""
Constants for the threshold engine.

Percentages are "valid pixel" percentages: the global threshold keeps the
cells carrying roughly that share of the total module mass. A lower
percentage therefore yields a higher threshold.
"""

# =============================================================================
# Histogram Constants
# =============================================================================

# Module values are expected in [0, 255] (normalized), one bin per integer
HISTOGRAM_BINS = 256

# Upper bound of the cumulative search (threshold never exceeds this)
MAX_THRESHOLD = 255


# =============================================================================
# Global Threshold Constants
# =============================================================================

# Default percentage of valid pixels for the global strategy
DEFAULT_GLOBAL_PERCENT = 60.0


# =============================================================================
# Local Threshold Constants
# =============================================================================

# Default half-size of the local mean window ((2w+1)^2 cells)
DEFAULT_LOCAL_WINDOW = 15


# =============================================================================
# Hysteresis Constants
# =============================================================================

# Percentage producing the high (strong edge) threshold
DEFAULT_HYSTERESIS_HIGH_PERCENT = 50.0

# Percentage producing the low (weak edge) threshold
DEFAULT_HYSTERESIS_LOW_PERCENT = 75.0


# =============================================================================
# Isolated Point Removal Constants
# =============================================================================

# Default neighborhood half-size for isolated point removal
DEFAULT_ISOLATED_POINTS_RING = 1
