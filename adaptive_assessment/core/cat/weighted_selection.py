"""
Multi-criteria item selection strategy.

Combines five normalized (0-1) component scores with configurable weights:

    information  Fisher information at theta, relative to the a^2/4 ceiling
    diversity    How under-represented the item's category is so far
    difficulty   Closeness of b to theta (linear falloff over 3 logits)
    time         Preference for items answered in about 45 seconds
    exposure     Penalty for items already presented many times

The strategy plugs into select_next_item() like any SelectionStrategy, so
the bank-order tie break still applies.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from adaptive_assessment.core.cat.exposure_control import ExposureMonitor
from adaptive_assessment.core.cat.item_bank import Item, ItemBank
from adaptive_assessment.core.cat.item_selection import item_information
from adaptive_assessment.core.cat.session import Ability, ResponseRecord
from adaptive_assessment.core.config import settings

logger = logging.getLogger(__name__)

# Difficulty fit: score reaches 0 at this |b - theta|
MAX_DIFFICULTY_GAP = 3.0

# Response time preferences (seconds)
OPTIMAL_RESPONSE_TIME = 45.0
MAX_RESPONSE_TIME = 120.0

# Heuristic response time when an item has no observed answers yet
BASE_RESPONSE_TIME = 30.0
WIDE_SCALE_THRESHOLD = 5.0  # scale ranges wider than this take longer
WIDE_SCALE_EXTRA_TIME = 5.0
SECONDS_PER_DIFFICULTY_UNIT = 3.0

# Selections at which the exposure score bottoms out
MAX_EXPECTED_EXPOSURE = 50

# Fallback share for categories missing from the target weights
DEFAULT_CATEGORY_TARGET = 0.25


@dataclass(frozen=True)
class SelectionCriteria:
    """Relative weights of the component scores."""

    information: float
    diversity: float
    difficulty: float
    time: float
    exposure: float

    def __post_init__(self) -> None:
        weights = self.as_dict()
        negative = [name for name, weight in weights.items() if weight < 0]
        if negative:
            raise ValueError(f"Selection weights must be non-negative: {negative}")
        if sum(weights.values()) <= 0:
            raise ValueError("At least one selection weight must be positive")

    def as_dict(self) -> Dict[str, float]:
        return {
            "information": self.information,
            "diversity": self.diversity,
            "difficulty": self.difficulty,
            "time": self.time,
            "exposure": self.exposure,
        }


SELECTION_PRESETS: Dict[str, SelectionCriteria] = {
    "maximum_information": SelectionCriteria(0.8, 0.1, 0.05, 0.03, 0.02),
    "balanced": SelectionCriteria(0.4, 0.3, 0.15, 0.1, 0.05),
    "diversity_focused": SelectionCriteria(0.2, 0.5, 0.15, 0.1, 0.05),
    "quick_assessment": SelectionCriteria(0.5, 0.1, 0.1, 0.25, 0.05),
    "comprehensive": SelectionCriteria(0.35, 0.25, 0.2, 0.05, 0.15),
}


def get_selection_preset(name: str) -> SelectionCriteria:
    """Look up a named preset (e.g. "balanced")."""
    try:
        return SELECTION_PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown selection preset '{name}'. "
            f"Expected one of: {sorted(SELECTION_PRESETS)}"
        ) from None


def estimate_response_time(item: Item) -> float:
    """Heuristic answer time in seconds for an item with no observations."""
    extra_scale = (
        WIDE_SCALE_EXTRA_TIME if item.scale_range > WIDE_SCALE_THRESHOLD else 0.0
    )
    return (
        BASE_RESPONSE_TIME
        + extra_scale
        + abs(item.difficulty) * SECONDS_PER_DIFFICULTY_UNIT
    )


class WeightedSelectionStrategy:
    """
    SelectionStrategy scoring items by a weighted sum of five criteria.

    Args:
        item_bank: Bank used to resolve the categories of answered items.
        criteria: Component weights. Defaults to the "balanced" preset.
        exposure_monitor: Optional ledger supplying selection counts and
            observed response times. Without it every item scores as unexposed
            and response time is estimated heuristically.
        category_targets: Target share per category value. Defaults to
            settings.CATEGORY_TARGET_WEIGHTS.
    """

    def __init__(
        self,
        item_bank: ItemBank,
        criteria: Optional[SelectionCriteria] = None,
        exposure_monitor: Optional[ExposureMonitor] = None,
        category_targets: Optional[Mapping[str, float]] = None,
    ):
        self.item_bank = item_bank
        self.criteria = criteria or SELECTION_PRESETS["balanced"]
        self.exposure_monitor = exposure_monitor
        self.category_targets = dict(
            category_targets
            if category_targets is not None
            else settings.CATEGORY_TARGET_WEIGHTS
        )

    def __call__(
        self,
        item: Item,
        ability: Ability,
        history: Sequence[ResponseRecord],
    ) -> float:
        components = self.component_scores(item, ability, history)
        weights = self.criteria.as_dict()
        return sum(weights[name] * score for name, score in components.items())

    def component_scores(
        self,
        item: Item,
        ability: Ability,
        history: Sequence[ResponseRecord],
    ) -> Dict[str, float]:
        """Per-criterion scores in [0, 1] for diagnostics and weighting."""
        return {
            "information": self._information_score(item, ability.theta),
            "diversity": self._diversity_score(item, history),
            "difficulty": self._difficulty_score(item, ability.theta),
            "time": self._time_score(item),
            "exposure": self._exposure_score(item),
        }

    def _information_score(self, item: Item, theta: float) -> float:
        ceiling = item.discrimination**2 / 4.0
        return min(item_information(item, theta) / ceiling, 1.0)

    def _diversity_score(self, item: Item, history: Sequence[ResponseRecord]) -> float:
        target = self.category_targets.get(item.category.value, DEFAULT_CATEGORY_TARGET)
        if not history:
            return 1.0

        same_category = 0
        for record in history:
            answered = self.item_bank.get(record.item_id)
            if answered is not None and answered.category == item.category:
                same_category += 1
        proportion = same_category / len(history)

        # Higher when the category is under-represented
        if proportion < target:
            return 1.0 - proportion / target
        if target >= 1.0:
            return 0.0
        return max(0.0, 1.0 - (proportion - target) / (1.0 - target))

    def _difficulty_score(self, item: Item, theta: float) -> float:
        return max(0.0, 1.0 - abs(item.difficulty - theta) / MAX_DIFFICULTY_GAP)

    def _time_score(self, item: Item) -> float:
        observed = None
        if self.exposure_monitor is not None:
            observed = self.exposure_monitor.get_average_response_time(item.id)
        expected = observed if observed is not None else estimate_response_time(item)

        if expected <= OPTIMAL_RESPONSE_TIME:
            return expected / OPTIMAL_RESPONSE_TIME
        return max(
            0.0,
            1.0
            - (expected - OPTIMAL_RESPONSE_TIME)
            / (MAX_RESPONSE_TIME - OPTIMAL_RESPONSE_TIME),
        )

    def _exposure_score(self, item: Item) -> float:
        if self.exposure_monitor is None:
            return 1.0
        times_selected = self.exposure_monitor.get_selection_count(item.id)
        return 1.0 - min(times_selected / MAX_EXPECTED_EXPOSURE, 1.0)
