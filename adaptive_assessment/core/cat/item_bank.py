"""
Item bank for adaptive questionnaires.

Holds calibrated 3PL items keyed by id, in insertion order. Insertion order is
significant: the question selector breaks score ties by bank order, so a bank
built from the same items in the same order always yields the same sessions.

The bank is only mutated between sessions (add_items); sessions read from it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from adaptive_assessment.core.exceptions import UnknownItemError
from adaptive_assessment.models import ItemCategory

logger = logging.getLogger(__name__)

# Item bank quality thresholds
MIN_RECOMMENDED_ITEMS = 50
MIN_DIFFICULTY_SPAN = 3.0
MIN_DISCRIMINATION = 0.5


@dataclass(frozen=True)
class Item:
    """
    A single questionnaire item with 3PL parameters.

    Attributes:
        id: Unique item identifier within the bank.
        category: Emotional-state dimension the item measures.
        difficulty: Location parameter (b).
        discrimination: Slope parameter (a). Must be > 0.
        guessing: Lower asymptote (c). Must satisfy 0 <= c < 1.
        scale_min: Lowest admissible response value.
        scale_max: Highest admissible response value. Must exceed scale_min.
        content: Opaque presentation payload (wording, media). Never inspected.
    """

    id: str
    category: ItemCategory
    difficulty: float
    discrimination: float
    guessing: float
    scale_min: float
    scale_max: float
    content: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.discrimination <= 0:
            raise ValueError(
                f"Discrimination must be positive, got {self.discrimination} "
                f"for item {self.id}"
            )
        if not (0.0 <= self.guessing < 1.0):
            raise ValueError(
                f"Guessing must be in [0, 1), got {self.guessing} for item {self.id}"
            )
        if self.scale_min >= self.scale_max:
            raise ValueError(
                f"scale_min ({self.scale_min}) must be less than scale_max "
                f"({self.scale_max}) for item {self.id}"
            )

    @property
    def scale_midpoint(self) -> float:
        return (self.scale_min + self.scale_max) / 2.0

    @property
    def scale_range(self) -> float:
        return self.scale_max - self.scale_min

    def in_scale(self, response: float) -> bool:
        """Whether a response value lies within the declared scale."""
        return self.scale_min <= response <= self.scale_max

    def is_correct(self, response: float) -> bool:
        """
        Dichotomize a scale response.

        A response counts as "correct" when it lies strictly above the scale
        midpoint. This collapses polytomous answers onto the 3PL model.
        """
        return response > self.scale_midpoint


class ItemBank:
    """
    Ordered collection of items keyed by id.

    Iteration yields items in insertion order.
    """

    def __init__(self, items: Optional[Iterable[Item]] = None):
        self._items: Dict[str, Item] = {}
        if items is not None:
            self.add_items(items)

    def add_items(self, items: Iterable[Item]) -> None:
        """
        Append items to the bank.

        Args:
            items: Items to add, in the order they should be appended.

        Raises:
            ValueError: If an item id is already present in the bank or repeated
                within ``items``. The bank is left unchanged in that case.
        """
        new_items = list(items)
        seen = set(self._items)
        for item in new_items:
            if item.id in seen:
                raise ValueError(f"Duplicate item id '{item.id}'")
            seen.add(item.id)

        for item in new_items:
            self._items[item.id] = item

        logger.debug(f"Added {len(new_items)} items to bank (size={len(self._items)})")

    def get(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def require(self, item_id: str) -> Item:
        """Return the item with the given id or raise UnknownItemError."""
        item = self._items.get(item_id)
        if item is None:
            raise UnknownItemError(item_id)
        return item

    def by_category(self, category: ItemCategory) -> List[Item]:
        return [item for item in self._items.values() if item.category == category]

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items


@dataclass
class ItemBankReport:
    """Quality summary of an item bank."""

    is_valid: bool
    total_items: int
    difficulty_range: Tuple[float, float]
    discrimination_range: Tuple[float, float]
    category_counts: Dict[str, int]
    issues: List[str] = field(default_factory=list)


def validate_item_bank(item_bank: ItemBank) -> ItemBankReport:
    """
    Check an item bank against basic adaptive-testing quality thresholds.

    Flags:
        - fewer than MIN_RECOMMENDED_ITEMS items
        - difficulty span narrower than MIN_DIFFICULTY_SPAN logits
        - any item with discrimination below MIN_DISCRIMINATION
        - categories with no items

    Args:
        item_bank: The bank to inspect.

    Returns:
        ItemBankReport; ``is_valid`` is True when no issues were found.
    """
    items = list(item_bank)
    issues: List[str] = []

    category_counts = {c.value: 0 for c in ItemCategory}
    for item in items:
        category_counts[item.category.value] += 1

    if not items:
        return ItemBankReport(
            is_valid=False,
            total_items=0,
            difficulty_range=(0.0, 0.0),
            discrimination_range=(0.0, 0.0),
            category_counts=category_counts,
            issues=["Item bank is empty"],
        )

    difficulties = [item.difficulty for item in items]
    discriminations = [item.discrimination for item in items]
    difficulty_range = (min(difficulties), max(difficulties))
    discrimination_range = (min(discriminations), max(discriminations))

    if len(items) < MIN_RECOMMENDED_ITEMS:
        issues.append(
            f"Item bank has {len(items)} items; at least {MIN_RECOMMENDED_ITEMS} "
            "are recommended for adaptive testing"
        )

    span = difficulty_range[1] - difficulty_range[0]
    if span < MIN_DIFFICULTY_SPAN:
        issues.append(
            f"Difficulty span is {span:.2f}; at least {MIN_DIFFICULTY_SPAN} "
            "is needed to cover the ability range"
        )

    low_discrimination = [
        item.id for item in items if item.discrimination < MIN_DISCRIMINATION
    ]
    if low_discrimination:
        issues.append(
            f"{len(low_discrimination)} items have discrimination below "
            f"{MIN_DISCRIMINATION}: {', '.join(low_discrimination)}"
        )

    empty_categories = [name for name, count in category_counts.items() if count == 0]
    if empty_categories:
        issues.append(f"No items for categories: {', '.join(empty_categories)}")

    if issues:
        logger.warning(f"Item bank validation found {len(issues)} issues")

    return ItemBankReport(
        is_valid=not issues,
        total_items=len(items),
        difficulty_range=difficulty_range,
        discrimination_range=discrimination_range,
        category_counts=category_counts,
        issues=issues,
    )


# (id, category, b, a, c, scale_min, scale_max)
_EMOTIONAL_ITEM_PARAMETERS: List[
    Tuple[str, ItemCategory, float, float, float, float, float]
] = [
    ("val_01", ItemCategory.VALENCIA, -0.5, 1.2, 0.10, 1, 7),
    ("val_02", ItemCategory.VALENCIA, 0.0, 1.5, 0.15, 1, 5),
    ("val_03", ItemCategory.VALENCIA, 0.3, 1.8, 0.10, 1, 10),
    ("ativ_01", ItemCategory.ATIVACAO, 0.2, 1.4, 0.12, 1, 7),
    ("ativ_02", ItemCategory.ATIVACAO, -0.2, 1.6, 0.08, 1, 5),
    ("ativ_03", ItemCategory.ATIVACAO, 0.5, 1.3, 0.15, 1, 10),
    ("conc_01", ItemCategory.CONCENTRACAO, 0.8, 2.0, 0.05, 1, 7),
    ("conc_02", ItemCategory.CONCENTRACAO, -0.3, 1.1, 0.20, 0, 10),
    ("motiv_01", ItemCategory.MOTIVACAO, 0.1, 1.7, 0.10, 1, 5),
    ("motiv_02", ItemCategory.MOTIVACAO, -0.4, 1.3, 0.12, 1, 10),
]


def build_emotional_item_bank() -> ItemBank:
    """
    Build the sample emotional-state item bank.

    Ten items across the four categories, parameters only (no wording).
    Useful for demos and simulation; too small to pass validate_item_bank.
    """
    return ItemBank(
        Item(
            id=item_id,
            category=category,
            difficulty=b,
            discrimination=a,
            guessing=c,
            scale_min=lo,
            scale_max=hi,
        )
        for item_id, category, b, a, c, lo, hi in _EMOTIONAL_ITEM_PARAMETERS
    )
