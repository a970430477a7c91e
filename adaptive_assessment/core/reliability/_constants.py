"""
Shared constants for reliability estimation.

Threshold constants and data requirements used across the reliability
submodules.
"""

# =============================================================================
# CRONBACH'S ALPHA THRESHOLDS
# =============================================================================
# Standard psychometric thresholds for reliability interpretation.

ALPHA_THRESHOLDS = {
    "excellent": 0.90,  # α ≥ 0.90: Excellent internal consistency
    "good": 0.80,  # α ≥ 0.80: Good internal consistency
    "acceptable": 0.70,  # α ≥ 0.70: Acceptable internal consistency
    "questionable": 0.60,  # α ≥ 0.60: Questionable internal consistency
    # α < 0.60: Poor
}

# Internal consistency required for scientific validity
ALPHA_VALIDITY_THRESHOLD = 0.80


# =============================================================================
# TEST-RETEST STABILITY
# =============================================================================
# Stability between a respondent's first and last session is scored as
# 1 - |Δθ| / THETA_STABILITY_SCALE, floored at 0. A shift of 4 logits
# (half the theta range) or more scores 0.

THETA_STABILITY_SCALE = 4.0

TEST_RETEST_THRESHOLDS = {
    "excellent": 0.90,  # r > 0.90: Excellent stability
    "good": 0.70,  # r > 0.70: Good stability
    "acceptable": 0.50,  # r > 0.50: Acceptable stability
    # r <= 0.50: Poor stability
}

# Test-retest stability required for scientific validity
TEST_RETEST_VALIDITY_THRESHOLD = 0.80


# =============================================================================
# DATA REQUIREMENTS
# =============================================================================

# An item must be answered in at least this many sessions to enter the
# per-category alpha matrix
MIN_ITEM_APPEARANCES = 2

# Per-category alpha needs at least this many sessions answering every
# selected item
MIN_COMPLETE_SESSIONS = 3

# Minimum items and respondents for any alpha calculation
MIN_ALPHA_ITEMS = 2
MIN_ALPHA_RESPONDENTS = 2
