"""
Adaptive testing core: item bank, 3PL model, ability estimation, item
selection, stopping rules and the session controller.
"""

from .ability_estimation import (
    calculate_standard_error,
    estimate_ability,
    estimate_ability_mle,
)
from .data_export import (
    StatisticalExport,
    export_for_statistical_analysis,
)
from .engine import (
    AdaptiveSessionController,
    SessionStatistics,
    session_statistics,
)
from .exposure_control import ExposureMonitor, ExposureStatistics
from .item_bank import (
    Item,
    ItemBank,
    ItemBankReport,
    build_emotional_item_bank,
    validate_item_bank,
)
from .item_selection import (
    SelectionStrategy,
    fisher_information_3pl,
    fisher_information_strategy,
    probability_3pl,
    select_next_item,
)
from .repositories import (
    AbilityRepository,
    InMemoryAbilityRepository,
    InMemorySessionRepository,
    SessionRepository,
)
from .session import Ability, AdaptiveSession, ResponseRecord
from .stopping_rules import StoppingDecision, check_stopping_criteria
from .weighted_selection import (
    SELECTION_PRESETS,
    SelectionCriteria,
    WeightedSelectionStrategy,
)

__all__ = [
    "Ability",
    "AbilityRepository",
    "AdaptiveSession",
    "AdaptiveSessionController",
    "ExposureMonitor",
    "ExposureStatistics",
    "InMemoryAbilityRepository",
    "InMemorySessionRepository",
    "Item",
    "ItemBank",
    "ItemBankReport",
    "ResponseRecord",
    "SELECTION_PRESETS",
    "SelectionCriteria",
    "SelectionStrategy",
    "SessionRepository",
    "SessionStatistics",
    "StatisticalExport",
    "StoppingDecision",
    "WeightedSelectionStrategy",
    "build_emotional_item_bank",
    "calculate_standard_error",
    "check_stopping_criteria",
    "estimate_ability",
    "estimate_ability_mle",
    "export_for_statistical_analysis",
    "fisher_information_3pl",
    "fisher_information_strategy",
    "probability_3pl",
    "select_next_item",
    "session_statistics",
    "validate_item_bank",
]
