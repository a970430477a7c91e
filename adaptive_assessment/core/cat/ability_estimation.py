"""
Maximum-likelihood ability estimation under the 3PL model.

Finds the theta maximising the log-likelihood of the dichotomized responses
with Newton-Raphson:

    theta_{n+1} = theta_n - L'(theta_n) / L''(theta_n)

Per item, with x in {0, 1}, s = sigmoid(a * (theta - b)) and
P = c + (1 - c) * s:

    P'  = a * (1 - c) * s * (1 - s)
    P'' = a^2 * (1 - c) * s * (1 - s) * (1 - 2s)

    L'  = sum (x - P) * P' / (P * (1 - P))
    L'' = sum x * (P''/P - (P'/P)^2) - (1 - x) * (P''/(1 - P) + (P'/(1 - P))^2)

Theta is clamped to [-4, 4] after every iteration, so all-correct and
all-incorrect patterns (where the MLE diverges) settle on a bound. Iteration
stops early when L'' is not safely negative: with guessing (c > 0) the
likelihood of a correct response is convex well below the item difficulty.

The standard error is the inverse square root of the test information:

    SE = 1 / sqrt(sum I_i(theta))
"""

import logging
import math
from typing import Sequence, Tuple

from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.item_selection import item_information, logistic
from adaptive_assessment.core.cat.session import ResponseRecord, clamp_theta

logger = logging.getLogger(__name__)

# Newton-Raphson configuration
MAX_ITERATIONS = 50
CONVERGENCE_TOLERANCE = 0.001  # |Δθ| below which the estimate has converged
MIN_SECOND_DERIVATIVE = 1e-4  # Flatter curvature stops iteration

# Reported when there is no information to bound the estimate
DEFAULT_STANDARD_ERROR = 1.0


def _log_likelihood_derivatives(
    theta: float,
    responses: Sequence[ResponseRecord],
    item_bank: ItemBank,
) -> Tuple[float, float]:
    """Return (L', L'') of the 3PL log-likelihood at theta."""
    first = 0.0
    second = 0.0
    for record in responses:
        item = item_bank.get(record.item_id)
        if item is None:
            continue

        a, b, c = item.discrimination, item.difficulty, item.guessing
        s = logistic(a * (theta - b))
        p = c + (1.0 - c) * s
        q = 1.0 - p
        if p <= 0.0 or q <= 0.0:
            continue

        dp = a * (1.0 - c) * s * (1.0 - s)
        d2p = a * a * (1.0 - c) * s * (1.0 - s) * (1.0 - 2.0 * s)

        if record.correct:
            first += dp / p
            second += d2p / p - (dp / p) ** 2
        else:
            first -= dp / q
            second -= d2p / q + (dp / q) ** 2

    return first, second


def estimate_ability_mle(
    responses: Sequence[ResponseRecord],
    item_bank: ItemBank,
    initial_theta: float = 0.0,
) -> float:
    """
    Estimate theta by Newton-Raphson maximisation of the 3PL likelihood.

    Args:
        responses: Answered items. Records whose item is missing from the
            bank are ignored.
        item_bank: Source of item parameters.
        initial_theta: Starting point. Returned unchanged for an empty history.

    Returns:
        Theta estimate in [-4, 4] (or initial_theta when there are no responses).
    """
    if not responses:
        return initial_theta

    theta = initial_theta
    for iteration in range(MAX_ITERATIONS):
        first, second = _log_likelihood_derivatives(theta, responses, item_bank)

        # Stops on flat, convex or non-finite curvature. The narrower
        # |L''| < 1e-4 test alone would step a positive L'' to the theta floor.
        if not math.isfinite(second) or second > -MIN_SECOND_DERIVATIVE:
            logger.debug(
                f"Newton-Raphson stopped at iteration {iteration}: "
                f"degenerate second derivative ({second})"
            )
            break

        new_theta = clamp_theta(theta - first / second)
        delta = abs(new_theta - theta)
        theta = new_theta

        if delta < CONVERGENCE_TOLERANCE:
            break

    return theta


def calculate_standard_error(
    responses: Sequence[ResponseRecord],
    item_bank: ItemBank,
    theta: float,
) -> float:
    """
    Standard error of theta from the total Fisher information.

    Returns DEFAULT_STANDARD_ERROR (1.0) when no known items were answered
    or they carry no information at theta.
    """
    total_information = 0.0
    for record in responses:
        item = item_bank.get(record.item_id)
        if item is not None:
            total_information += item_information(item, theta)

    if total_information <= 0:
        return DEFAULT_STANDARD_ERROR
    return 1.0 / math.sqrt(total_information)


def estimate_ability(
    responses: Sequence[ResponseRecord],
    item_bank: ItemBank,
    initial_theta: float = 0.0,
) -> Tuple[float, float]:
    """
    Estimate theta and its standard error.

    Returns:
        Tuple of (theta_estimate, standard_error).
    """
    theta = estimate_ability_mle(responses, item_bank, initial_theta)
    se = calculate_standard_error(responses, item_bank, theta)
    return theta, se
