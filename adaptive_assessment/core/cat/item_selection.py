"""
Maximum Fisher Information (MFI) item selection under the 3PL model.

For the three-parameter logistic model:

    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

    I(theta) = P'(theta)^2 / (P(theta) * (1 - P(theta)))

    P'(theta) = a * (1 - c) * s * (1 - s),  s = 1 / (1 + exp(-a * (theta - b)))

Selection is deterministic: the unanswered item with the highest score wins,
and ties go to the item that comes first in the bank. Scoring is pluggable
through the SelectionStrategy protocol; the default strategy scores items by
their Fisher information at the current ability estimate.

References:
    - Birnbaum, A. (1968). Some latent trait models and their use in
      inferring an examinee's ability.
    - Lord, F. M. (1980). Applications of item response theory to practical
      testing problems.
"""

import logging
import math
from typing import Collection, Optional, Protocol, Sequence

from adaptive_assessment.core.cat.item_bank import Item, ItemBank
from adaptive_assessment.core.cat.session import Ability, ResponseRecord

logger = logging.getLogger(__name__)


def logistic(z: float) -> float:
    """Numerically stable logistic function."""
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    exp_z = math.exp(z)
    return exp_z / (1.0 + exp_z)


def probability_3pl(
    theta: float,
    discrimination: float,
    difficulty: float,
    guessing: float,
) -> float:
    """
    Probability of a "correct" (above-midpoint) response under the 3PL model.

    Args:
        theta: Ability level.
        discrimination: Item discrimination parameter (a).
        difficulty: Item difficulty parameter (b).
        guessing: Lower asymptote (c).

    Returns:
        Probability in [c, 1].
    """
    return guessing + (1.0 - guessing) * logistic(discrimination * (theta - difficulty))


def fisher_information_3pl(
    theta: float,
    discrimination: float,
    difficulty: float,
    guessing: float,
) -> float:
    """
    Compute Fisher information for a 3PL item at a given ability level.

    Degenerate results (zero denominator, overflow, NaN) are coerced to 0.0
    so that far-off items simply carry no information.

    Returns:
        Fisher information value (non-negative, finite).
    """
    s = logistic(discrimination * (theta - difficulty))
    p = guessing + (1.0 - guessing) * s
    derivative = discrimination * (1.0 - guessing) * s * (1.0 - s)
    denominator = p * (1.0 - p)

    if denominator <= 0:
        return 0.0

    information = derivative**2 / denominator
    if not math.isfinite(information):
        return 0.0
    return information


def item_information(item: Item, theta: float) -> float:
    """Fisher information of a bank item at theta."""
    return fisher_information_3pl(
        theta, item.discrimination, item.difficulty, item.guessing
    )


class SelectionStrategy(Protocol):
    """
    Scores a candidate item for the current session.

    Higher scores are preferred. Implementations must be pure with respect to
    the session: they read the current Ability snapshot and the response
    history but never mutate them.
    """

    def __call__(
        self,
        item: Item,
        ability: Ability,
        history: Sequence[ResponseRecord],
    ) -> float:
        ...


def fisher_information_strategy(
    item: Item,
    ability: Ability,
    history: Sequence[ResponseRecord],
) -> float:
    """Default strategy: Fisher information at the current theta."""
    return item_information(item, ability.theta)


def select_next_item(
    item_bank: ItemBank,
    answered_item_ids: Collection[str],
    ability: Ability,
    history: Sequence[ResponseRecord] = (),
    strategy: SelectionStrategy = fisher_information_strategy,
) -> Optional[Item]:
    """
    Select the highest-scoring unanswered item.

    Args:
        item_bank: Bank to select from, iterated in bank order.
        answered_item_ids: Ids already answered in this session. Never
            selected again.
        ability: Current ability snapshot.
        history: Responses collected so far, passed through to the strategy.
        strategy: Scoring function. Defaults to Fisher information.

    Returns:
        The selected Item, or None if every item has been answered.
    """
    answered = set(answered_item_ids)

    best_item: Optional[Item] = None
    best_score = -math.inf
    candidates = 0
    for item in item_bank:
        if item.id in answered:
            continue
        candidates += 1
        score = strategy(item, ability, history)
        # Strict comparison keeps the earliest item on ties
        if best_item is None or score > best_score:
            best_item = item
            best_score = score

    if best_item is None:
        logger.debug(
            f"No unanswered items remaining (bank size={len(item_bank)}, "
            f"answered={len(answered)})"
        )
        return None

    logger.debug(
        f"Selected item {best_item.id} from {candidates} candidates "
        f"(theta={ability.theta:.3f}, score={best_score:.4f})"
    )
    return best_item
