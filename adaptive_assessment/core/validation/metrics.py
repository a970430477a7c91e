"""
Aggregate validation metrics over a corpus of adaptive sessions.

Combines reliability (internal consistency, test-retest), predictive
accuracy from cross-validation, agreement between model-expected and actual
responses, convergence of the ability estimates, and stability of the mean
ability over time.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

import numpy as np

from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.item_selection import probability_3pl
from adaptive_assessment.core.cat.session import AdaptiveSession
from adaptive_assessment.core.cat.stopping_rules import mean_recent_theta_change
from adaptive_assessment.core.config import settings
from adaptive_assessment.core.reliability import (
    THETA_STABILITY_SCALE,
    InternalConsistencyResult,
    RetestReliabilityResult,
    calculate_internal_consistency,
    calculate_test_retest_reliability,
)
from adaptive_assessment.core.validation.cross_validation import (
    perform_cross_validation,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationMetrics:
    """
    Scientific validation metrics for a session corpus.

    Attributes:
        cronbach_alpha: Mean per-category internal consistency.
        test_retest_reliability: Mean first-vs-last session stability.
        predictive_accuracy: Mean k-fold cross-validation accuracy.
        user_system_agreement: Mean closeness of actual to expected responses.
        convergence_rate: Fraction of sessions whose last estimates converged.
        stability_index: Stability of the mean theta across time buckets.
        sample_size: Number of sessions.
        confidence_interval: 95% interval of the fold accuracies.
    """

    cronbach_alpha: float
    test_retest_reliability: float
    predictive_accuracy: float
    user_system_agreement: float
    convergence_rate: float
    stability_index: float
    sample_size: int
    confidence_interval: Tuple[float, float]


def calculate_user_system_agreement(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
) -> float:
    """
    Mean agreement between model-expected and actual responses.

    For each response, the expected value is the item's scale minimum plus
    P_3pl(final theta) times the scale range, and

        agreement = 1 - |expected - actual| / (scale_max - scale_min)

    Responses to items missing from the bank are skipped. Returns 0.0 when
    there is nothing to compare.
    """
    agreements: List[float] = []
    for session in sessions:
        theta = session.current_theta
        for record in session.responses:
            item = item_bank.get(record.item_id)
            if item is None:
                continue
            prob = probability_3pl(
                theta, item.discrimination, item.difficulty, item.guessing
            )
            expected = item.scale_min + prob * item.scale_range
            error = abs(expected - record.response) / item.scale_range
            agreements.append(1.0 - error)

    return sum(agreements) / len(agreements) if agreements else 0.0


def calculate_convergence_rate(
    sessions: Sequence[AdaptiveSession],
    window: Optional[int] = None,
    threshold: Optional[float] = None,
) -> float:
    """
    Fraction of sessions whose final ``window`` theta changes average below
    ``threshold``.

    Sessions too short to evaluate count as not converged. Returns 0.0 for
    an empty corpus.

    Raises:
        ValueError: If window is less than 1.
    """
    if window is None:
        window = settings.CAT_CONVERGENCE_WINDOW
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    if not sessions:
        return 0.0
    if threshold is None:
        threshold = settings.CAT_CONVERGENCE_THRESHOLD

    converged = 0
    for session in sessions:
        mean_delta = mean_recent_theta_change(session.theta_history, window)
        if mean_delta is not None and mean_delta < threshold:
            converged += 1
    return converged / len(sessions)


def group_sessions_by_time(
    sessions: Sequence[AdaptiveSession],
    days: float,
) -> List[List[AdaptiveSession]]:
    """
    Group sessions into consecutive time buckets.

    Sessions are sorted by start time; a bucket opens at its first session
    and takes every later session starting within ``days`` of it.
    """
    ordered = sorted(sessions, key=lambda s: s.start_time)
    if not ordered:
        return []

    span = timedelta(days=days)
    groups: List[List[AdaptiveSession]] = [[ordered[0]]]
    bucket_start = ordered[0].start_time
    for session in ordered[1:]:
        if session.start_time - bucket_start <= span:
            groups[-1].append(session)
        else:
            groups.append([session])
            bucket_start = session.start_time
    return groups


def calculate_stability_index(
    sessions: Sequence[AdaptiveSession],
    bucket_days: Optional[float] = None,
) -> float:
    """
    Stability of mean final theta between consecutive time buckets.

        score_i = max(0, 1 - |mean_i - mean_{i-1}| / 4)

    Returns the mean score, or 1.0 when fewer than two buckets exist.
    """
    groups = group_sessions_by_time(
        sessions, bucket_days or settings.STABILITY_BUCKET_DAYS
    )
    if len(groups) < 2:
        return 1.0

    means = [float(np.mean([s.current_theta for s in group])) for group in groups]
    scores = [
        max(0.0, 1.0 - abs(current - previous) / THETA_STABILITY_SCALE)
        for previous, current in zip(means, means[1:])
    ]
    return sum(scores) / len(scores)


def calculate_validation_metrics(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
    k: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    consistency: Optional[InternalConsistencyResult] = None,
    retest: Optional[RetestReliabilityResult] = None,
) -> ValidationMetrics:
    """
    Compute all validation metrics for a session corpus.

    Args:
        sessions: Completed (or in-progress) sessions.
        item_bank: Bank with the parameters of the answered items.
        k: Cross-validation folds (default from settings).
        rng: Random generator for the cross-validation shuffle.
        consistency: Internal consistency already computed for these
            sessions; computed here when omitted.
        retest: Test-retest result already computed for these sessions;
            computed here when omitted.

    Returns:
        ValidationMetrics; the confidence interval is that of the fold
        accuracies.

    Raises:
        InsufficientDataError: If the pooled responses are too few for
            k-fold cross-validation.
        ValueError: If k is less than 2.
    """
    if k is None:
        k = settings.CROSS_VALIDATION_FOLDS
    all_responses = [record for session in sessions for record in session.responses]
    logger.info(
        f"Calculating validation metrics: {len(sessions)} sessions, "
        f"{len(all_responses)} responses"
    )

    if consistency is None:
        consistency = calculate_internal_consistency(sessions, item_bank)
    if retest is None:
        retest = calculate_test_retest_reliability(sessions)
    cross_validation = perform_cross_validation(all_responses, k=k, rng=rng)

    metrics = ValidationMetrics(
        cronbach_alpha=consistency["cronbachs_alpha"],
        test_retest_reliability=retest["stability"],
        predictive_accuracy=cross_validation.mean_accuracy,
        user_system_agreement=calculate_user_system_agreement(sessions, item_bank),
        convergence_rate=calculate_convergence_rate(sessions),
        stability_index=calculate_stability_index(sessions),
        sample_size=len(sessions),
        confidence_interval=cross_validation.confidence_interval,
    )

    logger.info(
        f"Validation metrics: alpha={metrics.cronbach_alpha:.3f}, "
        f"retest={metrics.test_retest_reliability:.3f}, "
        f"accuracy={metrics.predictive_accuracy:.3f}, "
        f"agreement={metrics.user_system_agreement:.3f}"
    )
    return metrics
