"""
K-fold cross-validation of response predictability.

Each held-out response is predicted by a majority vote over the training
responses to items of similar difficulty (|Δb| < 0.5): the prediction is
"correct" when more than half of those neighbours were correct. Held-out
responses with no neighbours count as misses.

The 95% interval around the mean fold accuracy uses t(0.975, k - 1).
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import t as t_distribution

from adaptive_assessment.core.cat.session import ResponseRecord
from adaptive_assessment.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

# Training responses count as neighbours within this difficulty distance
SIMILAR_DIFFICULTY_WINDOW = 0.5

# Minimum responses per fold
MIN_RESPONSES_PER_FOLD = 10

# Mean accuracy above which the model is considered predictive
ACCURACY_VALIDITY_THRESHOLD = 0.8

CONFIDENCE_LEVEL = 0.95


@dataclass(frozen=True)
class CrossValidationResult:
    """Per-fold and aggregate prediction accuracy."""

    folds: int
    accuracy: List[float]
    mean_accuracy: float
    standard_deviation: float
    confidence_interval: Tuple[float, float]
    is_valid: bool


def _fold_accuracy(
    train: Sequence[ResponseRecord],
    test: Sequence[ResponseRecord],
) -> float:
    if not test:
        return 0.0

    train_difficulty = np.array([r.difficulty for r in train], dtype=float)
    train_correct = np.array([r.correct for r in train], dtype=bool)

    hits = 0
    for record in test:
        similar = np.abs(train_difficulty - record.difficulty) < SIMILAR_DIFFICULTY_WINDOW
        if not similar.any():
            continue
        predicted = float(train_correct[similar].mean()) > 0.5
        if predicted == record.correct:
            hits += 1
    return hits / len(test)


def perform_cross_validation(
    responses: Sequence[ResponseRecord],
    k: int = 5,
    rng: Optional[np.random.Generator] = None,
) -> CrossValidationResult:
    """
    Run k-fold cross-validation over pooled responses.

    Responses are shuffled, then split into k folds of len // k responses;
    the last fold also takes the remainder.

    Args:
        responses: Responses from any number of sessions.
        k: Number of folds.
        rng: Random generator for the shuffle. Defaults to an unseeded one.

    Returns:
        CrossValidationResult.

    Raises:
        ValueError: If k < 2.
        InsufficientDataError: If there are fewer than 10 * k responses.
    """
    if k < 2:
        raise ValueError(f"k must be at least 2, got {k}")
    if len(responses) < MIN_RESPONSES_PER_FOLD * k:
        raise InsufficientDataError(
            f"Insufficient data for {k}-fold cross-validation",
            context={
                "responses": len(responses),
                "required": MIN_RESPONSES_PER_FOLD * k,
            },
        )

    rng = rng or np.random.default_rng()
    order = rng.permutation(len(responses))
    shuffled = [responses[i] for i in order]
    fold_size = len(shuffled) // k

    accuracies: List[float] = []
    for fold in range(k):
        start = fold * fold_size
        end = len(shuffled) if fold == k - 1 else start + fold_size
        test = shuffled[start:end]
        train = shuffled[:start] + shuffled[end:]
        accuracies.append(_fold_accuracy(train, test))

    values = np.array(accuracies, dtype=float)
    mean_accuracy = float(values.mean())
    standard_deviation = float(values.std(ddof=1))
    t_critical = float(t_distribution.ppf(1 - (1 - CONFIDENCE_LEVEL) / 2, k - 1))
    margin = t_critical * standard_deviation / math.sqrt(k)

    logger.info(
        f"{k}-fold cross-validation: mean accuracy={mean_accuracy:.4f} "
        f"(sd={standard_deviation:.4f}, n={len(responses)})"
    )

    return CrossValidationResult(
        folds=k,
        accuracy=accuracies,
        mean_accuracy=mean_accuracy,
        standard_deviation=standard_deviation,
        confidence_interval=(mean_accuracy - margin, mean_accuracy + margin),
        is_valid=mean_accuracy > ACCURACY_VALIDITY_THRESHOLD,
    )
