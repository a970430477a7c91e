"""
Test-retest stability of ability estimates.

For every respondent with two or more sessions, the first and last session
(by start time) are compared:

    stability = max(0, 1 - |θ_last - θ_first| / 4)

The overall score is the mean over respondents. The Pearson correlation
between first and last thetas is reported alongside when computable.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from adaptive_assessment.core.cat.session import AdaptiveSession

from ._constants import TEST_RETEST_THRESHOLDS, THETA_STABILITY_SCALE
from ._types import RetestReliabilityResult

logger = logging.getLogger(__name__)


def _get_test_retest_interpretation(value: float) -> str:
    """
    Get interpretation string for a test-retest value.

    Returns:
        Interpretation: "excellent", "good", "acceptable", or "poor"
    """
    if value > TEST_RETEST_THRESHOLDS["excellent"]:
        return "excellent"
    elif value > TEST_RETEST_THRESHOLDS["good"]:
        return "good"
    elif value > TEST_RETEST_THRESHOLDS["acceptable"]:
        return "acceptable"
    else:
        return "poor"


def _calculate_pearson_correlation(
    x: List[float],
    y: List[float],
) -> Optional[float]:
    """
    Calculate Pearson correlation coefficient between two lists.

    Uses the formula:
        r = Σ((xi - x̄)(yi - ȳ)) / √(Σ(xi - x̄)² × Σ(yi - ȳ)²)

    Returns:
        Pearson correlation coefficient (-1.0 to 1.0), or None if cannot be calculated
    """
    if len(x) != len(y) or len(x) < 2:
        return None

    n = len(x)
    mean_x = sum(x) / n
    mean_y = sum(y) / n

    covariance = sum((x[i] - mean_x) * (y[i] - mean_y) for i in range(n))
    var_x = sum((xi - mean_x) ** 2 for xi in x)
    var_y = sum((yi - mean_y) ** 2 for yi in y)

    if var_x == 0 or var_y == 0:
        return None

    r = covariance / math.sqrt(var_x * var_y)

    # Clamp to valid range (floating point errors may cause slight exceeding)
    return max(-1.0, min(1.0, r))


def _first_last_pairs(
    sessions: Sequence[AdaptiveSession],
) -> List[Tuple[float, float]]:
    by_respondent: Dict[str, List[AdaptiveSession]] = defaultdict(list)
    for session in sessions:
        by_respondent[session.respondent_id].append(session)

    pairs = []
    for respondent_sessions in by_respondent.values():
        if len(respondent_sessions) < 2:
            continue
        ordered = sorted(respondent_sessions, key=lambda s: s.start_time)
        pairs.append((ordered[0].current_theta, ordered[-1].current_theta))
    return pairs


def calculate_test_retest_reliability(
    sessions: Sequence[AdaptiveSession],
) -> RetestReliabilityResult:
    """
    Compute test-retest stability from repeated sessions.

    Args:
        sessions: Sessions from any number of respondents. Respondents with a
            single session are ignored.

    Returns:
        RetestReliabilityResult; stability is 0.0 when no respondent has two
        sessions.
    """
    pairs = _first_last_pairs(sessions)
    if not pairs:
        logger.debug("Test-retest: no respondent with repeated sessions")
        return {
            "stability": 0.0,
            "correlation": None,
            "num_pairs": 0,
            "mean_theta_change": None,
            "interpretation": _get_test_retest_interpretation(0.0),
        }

    scores = [
        max(0.0, 1.0 - abs(last - first) / THETA_STABILITY_SCALE)
        for first, last in pairs
    ]
    stability = sum(scores) / len(scores)
    correlation = _calculate_pearson_correlation(
        [first for first, _ in pairs], [last for _, last in pairs]
    )
    mean_change = sum(last - first for first, last in pairs) / len(pairs)

    logger.info(
        f"Test-retest: stability={stability:.4f} over {len(pairs)} respondents "
        f"(r={correlation if correlation is not None else 'n/a'})"
    )
    return {
        "stability": stability,
        "correlation": correlation,
        "num_pairs": len(pairs),
        "mean_theta_change": mean_change,
        "interpretation": _get_test_retest_interpretation(stability),
    }
