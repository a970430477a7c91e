r"""
Cronbach's alpha calculation for internal consistency.

Formula:
    α = (k / (k-1)) × (1 - Σσ²ᵢ / σ²ₜ)

Where:
    k = number of items
    σ²ᵢ = sample variance of item i
    σ²ₜ = sample variance of total scores

For adaptive sessions, each respondent answers a different subset of items,
so the per-category calculation first builds a complete response matrix:
responses are normalized to [0, 1] by their item's scale, items answered in
fewer than MIN_ITEM_APPEARANCES sessions are dropped, and the most frequently
answered items are kept while at least MIN_COMPLETE_SESSIONS sessions have
answered all of them.
"""

import logging
from collections import Counter
from typing import Dict, List, Sequence

import numpy as np

from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.session import AdaptiveSession
from adaptive_assessment.core.exceptions import InsufficientDataError
from adaptive_assessment.models import ItemCategory

from ._constants import (
    ALPHA_THRESHOLDS,
    MIN_ALPHA_ITEMS,
    MIN_ALPHA_RESPONDENTS,
    MIN_COMPLETE_SESSIONS,
    MIN_ITEM_APPEARANCES,
)
from ._types import CronbachsAlphaResult, InternalConsistencyResult

logger = logging.getLogger(__name__)


def interpret_cronbach_alpha(alpha: float) -> str:
    """
    Get interpretation string for a Cronbach's alpha value.

    Returns:
        Interpretation: "excellent", "good", "acceptable", "questionable",
                        or "poor"
    """
    if alpha >= ALPHA_THRESHOLDS["excellent"]:
        return "excellent"
    elif alpha >= ALPHA_THRESHOLDS["good"]:
        return "good"
    elif alpha >= ALPHA_THRESHOLDS["acceptable"]:
        return "acceptable"
    elif alpha >= ALPHA_THRESHOLDS["questionable"]:
        return "questionable"
    else:
        return "poor"


def calculate_cronbach_alpha(items: Sequence[Sequence[float]]) -> float:
    """
    Compute Cronbach's alpha from an item-by-respondent score matrix.

    Args:
        items: One row per item, one column per respondent.

    Returns:
        Alpha coefficient. May be negative for inconsistent items.

    Raises:
        InsufficientDataError: Fewer than 2 items, fewer than 2 respondents,
            or zero variance in the total scores.
        ValueError: If the rows have different lengths.
    """
    if len(items) < MIN_ALPHA_ITEMS:
        raise InsufficientDataError(
            "At least 2 items are required for Cronbach's alpha",
            context={"num_items": len(items)},
        )

    lengths = {len(row) for row in items}
    if len(lengths) != 1:
        raise ValueError(
            "All items must have the same number of responses, "
            f"got lengths {sorted(lengths)}"
        )

    n_respondents = lengths.pop()
    if n_respondents < MIN_ALPHA_RESPONDENTS:
        raise InsufficientDataError(
            "At least 2 respondents are required for Cronbach's alpha",
            context={"num_respondents": n_respondents},
        )

    matrix = np.asarray(items, dtype=float)
    k = matrix.shape[0]
    item_variances = matrix.var(axis=1, ddof=1)
    total_variance = float(matrix.sum(axis=0).var(ddof=1))

    if total_variance == 0:
        raise InsufficientDataError(
            "Total score variance is zero; alpha is undefined",
            context={"num_items": k, "num_respondents": n_respondents},
        )

    return float((k / (k - 1)) * (1 - item_variances.sum() / total_variance))


def _normalized_category_responses(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
    category: ItemCategory,
) -> List[Dict[str, float]]:
    """Per session: item id -> response rescaled to [0, 1] (last answer wins)."""
    per_session: List[Dict[str, float]] = []
    for session in sessions:
        normalized: Dict[str, float] = {}
        for record in session.responses:
            item = item_bank.get(record.item_id)
            if item is None or item.category != category:
                continue
            normalized[item.id] = (record.response - item.scale_min) / item.scale_range
        if normalized:
            per_session.append(normalized)
    return per_session


def calculate_category_alpha(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
    category: ItemCategory,
) -> CronbachsAlphaResult:
    """
    Cronbach's alpha for one category from adaptive session data.

    Items are ranked by how many sessions answered them (bank order breaks
    ties). The largest top-ranked item set of at least two items that at
    least MIN_COMPLETE_SESSIONS sessions answered completely is used.

    Returns:
        CronbachsAlphaResult; ``cronbachs_alpha`` is None when the data do
        not support a calculation.
    """
    result: CronbachsAlphaResult = {
        "category": category.value,
        "cronbachs_alpha": None,
        "num_sessions": 0,
        "num_items": 0,
        "interpretation": None,
        "error": None,
        "insufficient_data": False,
    }

    responses = _normalized_category_responses(sessions, item_bank, category)
    appearances = Counter(item_id for session in responses for item_id in session)
    bank_order = {item.id: index for index, item in enumerate(item_bank)}
    ranked = sorted(
        (item_id for item_id, count in appearances.items() if count >= MIN_ITEM_APPEARANCES),
        key=lambda item_id: (-appearances[item_id], bank_order.get(item_id, 0)),
    )

    for size in range(len(ranked), MIN_ALPHA_ITEMS - 1, -1):
        selected = ranked[:size]
        complete = [s for s in responses if all(item_id in s for item_id in selected)]
        if len(complete) < MIN_COMPLETE_SESSIONS:
            continue

        matrix = [[s[item_id] for s in complete] for item_id in selected]
        result["num_sessions"] = len(complete)
        result["num_items"] = len(selected)
        try:
            alpha = calculate_cronbach_alpha(matrix)
        except InsufficientDataError as e:
            result["error"] = e.message
            result["insufficient_data"] = True
            logger.debug(f"Category {category.value}: {e.message}")
            return result

        result["cronbachs_alpha"] = alpha
        result["interpretation"] = interpret_cronbach_alpha(alpha)
        logger.debug(
            f"Category {category.value}: alpha={alpha:.4f} "
            f"({len(selected)} items, {len(complete)} sessions)"
        )
        return result

    result["error"] = (
        f"Need at least {MIN_ALPHA_ITEMS} items answered together in "
        f"{MIN_COMPLETE_SESSIONS} sessions"
    )
    result["insufficient_data"] = True
    return result


def calculate_internal_consistency(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
) -> InternalConsistencyResult:
    """
    Mean Cronbach's alpha over the categories that yield a value.

    Returns 0.0 (interpreted "poor") when no category has enough data.
    """
    categories: Dict[str, CronbachsAlphaResult] = {}
    alphas: List[float] = []
    for category in ItemCategory:
        category_result = calculate_category_alpha(sessions, item_bank, category)
        categories[category.value] = category_result
        if category_result["cronbachs_alpha"] is not None:
            alphas.append(category_result["cronbachs_alpha"])

    mean_alpha = sum(alphas) / len(alphas) if alphas else 0.0
    if not alphas:
        logger.warning(
            f"Internal consistency: no category had enough data "
            f"({len(sessions)} sessions)"
        )

    return {
        "cronbachs_alpha": mean_alpha,
        "interpretation": interpret_cronbach_alpha(mean_alpha),
        "categories": categories,
        "categories_computed": len(alphas),
    }
