"""
TypedDict definitions for reliability calculation results.
"""

from typing import Dict, Optional, TypedDict


class CronbachsAlphaResult(TypedDict):
    """
    Result structure for a per-category Cronbach's alpha calculation.

    Fields:
        category: Item category the alpha was computed for.
        cronbachs_alpha: The alpha coefficient, or None if it could not be
            calculated.
        num_sessions: Number of sessions in the response matrix.
        num_items: Number of items in the response matrix.
        interpretation: "excellent", "good", "acceptable", "questionable" or
            "poor", or None if calculation failed.
        error: Error message if calculation failed, None otherwise.
        insufficient_data: True if calculation failed for lack of data.
    """

    category: str
    cronbachs_alpha: Optional[float]
    num_sessions: int
    num_items: int
    interpretation: Optional[str]
    error: Optional[str]
    insufficient_data: bool


class InternalConsistencyResult(TypedDict):
    """
    Mean Cronbach's alpha across categories.

    Fields:
        cronbachs_alpha: Mean over categories that produced a value; 0.0 when
            none did.
        interpretation: Interpretation of the mean alpha.
        categories: Per-category results keyed by category value.
        categories_computed: Number of categories contributing to the mean.
    """

    cronbachs_alpha: float
    interpretation: str
    categories: Dict[str, CronbachsAlphaResult]
    categories_computed: int


class RetestReliabilityResult(TypedDict):
    """
    Result structure for test-retest stability.

    Fields:
        stability: Mean of 1 - |Δθ|/4 over respondents with at least two
            sessions (first vs last); 0.0 when there are none.
        correlation: Pearson r between first and last session thetas, or None
            when fewer than two pairs or zero variance.
        num_pairs: Number of respondents contributing a pair.
        mean_theta_change: Mean signed change (last - first), or None.
        interpretation: Interpretation of the stability score.
    """

    stability: float
    correlation: Optional[float]
    num_pairs: int
    mean_theta_change: Optional[float]
    interpretation: str
