"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root to path so the package is importable without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import List, Optional, Sequence, Tuple  # noqa: E402

import pytest  # noqa: E402

from adaptive_assessment.core.cat.engine import AdaptiveSessionController  # noqa: E402
from adaptive_assessment.core.cat.item_bank import (  # noqa: E402
    Item,
    ItemBank,
    build_emotional_item_bank,
)
from adaptive_assessment.core.cat.session import (  # noqa: E402
    AdaptiveSession,
    ResponseRecord,
)
from adaptive_assessment.core.cat.simulation import (  # noqa: E402
    SimulationConfig,
    SimulationResult,
    generate_item_bank,
    simulate_cohort,
)
from adaptive_assessment.models import ItemCategory  # noqa: E402

STUDY_START = datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def emotional_bank() -> ItemBank:
    """The ten-item sample emotional-state bank."""
    return build_emotional_item_bank()


@pytest.fixture
def controller(emotional_bank: ItemBank) -> AdaptiveSessionController:
    return AdaptiveSessionController(emotional_bank)


@pytest.fixture
def make_item():
    """Factory for items with sensible defaults."""

    def _make(
        item_id: str,
        difficulty: float = 0.0,
        discrimination: float = 1.0,
        guessing: float = 0.0,
        category: ItemCategory = ItemCategory.VALENCIA,
        scale_min: float = 1,
        scale_max: float = 5,
    ) -> Item:
        return Item(
            id=item_id,
            category=category,
            difficulty=difficulty,
            discrimination=discrimination,
            guessing=guessing,
            scale_min=scale_min,
            scale_max=scale_max,
        )

    return _make


@pytest.fixture
def make_record():
    """Factory for response records independent of any bank."""

    def _make(
        item_id: str,
        correct: bool,
        difficulty: float = 0.0,
        response: Optional[float] = None,
        time_spent: float = 30.0,
    ) -> ResponseRecord:
        if response is None:
            response = 5.0 if correct else 1.0
        return ResponseRecord(
            item_id=item_id,
            response=response,
            timestamp=STUDY_START,
            time_spent=time_spent,
            difficulty=difficulty,
            correct=correct,
        )

    return _make


@pytest.fixture
def make_session():
    """
    Factory for completed sessions with hand-picked answers.

    ``answers`` is a list of (item, response) pairs; correctness follows the
    item's scale midpoint. theta_history defaults to ``theta`` repeated once
    per answer.
    """

    def _make(
        session_id: str,
        respondent_id: str,
        answers: Sequence[Tuple[Item, float]] = (),
        theta: float = 0.0,
        start_time: datetime = STUDY_START,
        theta_history: Optional[List[float]] = None,
    ) -> AdaptiveSession:
        responses = [
            ResponseRecord(
                item_id=item.id,
                response=response,
                timestamp=start_time + timedelta(seconds=30 * index),
                time_spent=30.0,
                difficulty=item.difficulty,
                correct=item.is_correct(response),
            )
            for index, (item, response) in enumerate(answers)
        ]
        if theta_history is None:
            theta_history = [theta] * len(responses)
        return AdaptiveSession(
            session_id=session_id,
            respondent_id=respondent_id,
            start_time=start_time,
            initial_theta=0.0,
            current_theta=theta,
            target_precision=0.3,
            max_questions=15,
            min_questions=5,
            responses=responses,
            current_se=0.5,
            is_complete=True,
            theta_history=list(theta_history),
            se_history=[0.5] * len(responses),
        )

    return _make


@pytest.fixture(scope="session")
def simulated_study() -> Tuple[ItemBank, SimulationResult]:
    """A small simulated cohort shared by the validation tests."""
    item_bank = generate_item_bank(n_items_per_category=10, seed=11)
    config = SimulationConfig(
        n_respondents=30,
        sessions_per_respondent=2,
        study_start=STUDY_START,
        seed=11,
    )
    return item_bank, simulate_cohort(item_bank, config)
