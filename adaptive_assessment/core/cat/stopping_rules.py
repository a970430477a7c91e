"""
Stopping rules for adaptive questionnaire sessions.

Stopping Rules (evaluated in priority order):
    1. Maximum questions: stop as soon as max_questions have been answered
    2. Minimum questions: continue until the floor (default 5) is reached;
       this floor overrides the precision rule
    3. Target precision: stop when SE(theta) <= target_precision
    4. Theta convergence: once at least 8 questions have been answered, stop
       when the mean |Δθ| over the last 3 re-estimations is below 0.1

All criteria are evaluated for diagnostics; the decision follows the order
above.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Default target precision (SE of theta)
TARGET_PRECISION = 0.3

# Safety limit on session length; overrides all other rules
MAX_QUESTIONS = 15

# Minimum questions before any rule except MAX_QUESTIONS may stop the session
MIN_QUESTIONS = 5

# Theta convergence: mean absolute change over the last CONVERGENCE_WINDOW
# re-estimations must fall below CONVERGENCE_THRESHOLD, and only after
# CONVERGENCE_MIN_ITEMS responses
CONVERGENCE_MIN_ITEMS = 8
CONVERGENCE_WINDOW = 3
CONVERGENCE_THRESHOLD = 0.1

# Stop reasons
REASON_MAX_QUESTIONS = "max_questions"
REASON_TARGET_PRECISION = "target_precision"
REASON_THETA_CONVERGED = "theta_converged"


@dataclass
class StoppingDecision:
    """
    Result of evaluating stopping criteria for a session.

    Attributes:
        should_stop: Whether the session should terminate.
        reason: Primary reason for stopping (if should_stop=True), or None.
        details: Diagnostic information including:
            - se: Current standard error of theta
            - num_answered: Number of questions answered
            - target_precision: Configured SE target
            - min_questions_met: Whether the minimum floor is satisfied
            - at_max_questions: Whether the maximum has been reached
            - precision_met: Whether SE <= target_precision
            - mean_delta_theta: Mean |Δθ| over the convergence window (if available)
            - theta_converged: Whether theta has converged (None if not evaluable)
    """

    should_stop: bool
    reason: Optional[str]
    details: Dict[str, Any]


def mean_recent_theta_change(
    theta_history: Sequence[float],
    window: int = CONVERGENCE_WINDOW,
) -> Optional[float]:
    """
    Mean absolute change across the last ``window`` consecutive estimates.

    Needs window + 1 entries; returns None otherwise.
    """
    if window <= 0 or len(theta_history) < window + 1:
        return None
    recent = list(theta_history[-(window + 1):])
    deltas = [abs(recent[i] - recent[i - 1]) for i in range(1, len(recent))]
    return sum(deltas) / len(deltas)


def check_stopping_criteria(
    se: float,
    num_answered: int,
    theta_history: Optional[List[float]] = None,
    target_precision: float = TARGET_PRECISION,
    max_questions: int = MAX_QUESTIONS,
    min_questions: int = MIN_QUESTIONS,
    convergence_min_items: int = CONVERGENCE_MIN_ITEMS,
    convergence_window: int = CONVERGENCE_WINDOW,
    convergence_threshold: float = CONVERGENCE_THRESHOLD,
) -> StoppingDecision:
    """
    Evaluate all stopping criteria and decide whether the session should stop.

    Args:
        se: Current standard error of the ability estimate.
        num_answered: Number of questions answered so far.
        theta_history: Theta estimate after each response, in order. Used for
            the convergence rule; skipped when too short.
        target_precision: SE at or below which the session stops.
        max_questions: Hard cap on questions.
        min_questions: Floor before SE or convergence may stop the session.
        convergence_min_items: Responses required before convergence applies.
        convergence_window: Number of trailing changes averaged.
        convergence_threshold: Mean |Δθ| below which theta has converged.

    Returns:
        StoppingDecision with should_stop flag, reason, and diagnostic details.

    Raises:
        ValueError: If se or num_answered is negative.
    """
    if se < 0:
        raise ValueError(f"Standard error must be non-negative, got {se}")
    if num_answered < 0:
        raise ValueError(f"Number answered must be non-negative, got {num_answered}")

    precision_met = se <= target_precision
    details: Dict[str, Any] = {
        "se": se,
        "num_answered": num_answered,
        "target_precision": target_precision,
        "min_questions_met": num_answered >= min_questions,
        "at_max_questions": num_answered >= max_questions,
        "precision_met": precision_met,
    }

    mean_delta = mean_recent_theta_change(theta_history or [], convergence_window)
    if mean_delta is not None:
        details["mean_delta_theta"] = round(mean_delta, 4)
        details["theta_converged"] = mean_delta < convergence_threshold
    else:
        details["theta_converged"] = None

    # Rule 1: Maximum questions
    if num_answered >= max_questions:
        return StoppingDecision(True, REASON_MAX_QUESTIONS, details)

    # Rule 2: Minimum floor
    if num_answered < min_questions:
        return StoppingDecision(False, None, details)

    # Rule 3: Target precision
    if precision_met:
        return StoppingDecision(True, REASON_TARGET_PRECISION, details)

    # Rule 4: Theta convergence
    if num_answered >= convergence_min_items and details["theta_converged"]:
        return StoppingDecision(True, REASON_THETA_CONVERGED, details)

    return StoppingDecision(False, None, details)
