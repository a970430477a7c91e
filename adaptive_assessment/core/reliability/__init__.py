"""
Reliability estimation for adaptive assessment data.

- Cronbach's alpha (internal consistency), directly from a score matrix or
  per item category from adaptive sessions
- Test-retest stability of ability estimates across repeated sessions

Usage Example
-------------
    from adaptive_assessment.core.reliability import (
        calculate_internal_consistency,
        calculate_test_retest_reliability,
    )

    consistency = calculate_internal_consistency(sessions, item_bank)
    print(f"Mean alpha: {consistency['cronbachs_alpha']:.3f}")

    retest = calculate_test_retest_reliability(sessions)
    print(f"Stability: {retest['stability']:.3f} ({retest['num_pairs']} pairs)")
"""

from ._constants import (
    ALPHA_THRESHOLDS,
    ALPHA_VALIDITY_THRESHOLD,
    TEST_RETEST_THRESHOLDS,
    TEST_RETEST_VALIDITY_THRESHOLD,
    THETA_STABILITY_SCALE,
)
from ._types import (
    CronbachsAlphaResult,
    InternalConsistencyResult,
    RetestReliabilityResult,
)
from .cronbach import (
    calculate_category_alpha,
    calculate_cronbach_alpha,
    calculate_internal_consistency,
    interpret_cronbach_alpha,
)
from .test_retest import calculate_test_retest_reliability

__all__ = [
    "ALPHA_THRESHOLDS",
    "ALPHA_VALIDITY_THRESHOLD",
    "TEST_RETEST_THRESHOLDS",
    "TEST_RETEST_VALIDITY_THRESHOLD",
    "THETA_STABILITY_SCALE",
    "CronbachsAlphaResult",
    "InternalConsistencyResult",
    "RetestReliabilityResult",
    "calculate_category_alpha",
    "calculate_cronbach_alpha",
    "calculate_internal_consistency",
    "calculate_test_retest_reliability",
    "interpret_cronbach_alpha",
]
