"""
Session state for adaptive questionnaires.

Plain dataclasses; all behaviour lives in the session controller
(engine.py). A session is terminal once ``is_complete`` is True.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from adaptive_assessment.core.datetime_utils import utc_now

# Latent trait bounds (logits)
THETA_MIN = -4.0
THETA_MAX = 4.0

# 95% normal quantile for ability confidence intervals
CI_Z = 1.96


def clamp_theta(theta: float) -> float:
    return max(THETA_MIN, min(THETA_MAX, theta))


@dataclass(frozen=True)
class ResponseRecord:
    """Single answered item within a session."""

    item_id: str
    response: float
    timestamp: datetime
    time_spent: float  # seconds
    difficulty: float  # b parameter at the time of answering
    correct: bool  # response above the item's scale midpoint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "response": self.response,
            "timestamp": self.timestamp.isoformat(),
            "time_spent": self.time_spent,
            "difficulty": self.difficulty,
            "correct": self.correct,
        }


@dataclass
class Ability:
    """Latent trait estimate for a respondent."""

    respondent_id: str
    theta: float
    standard_error: float
    response_history: Tuple[ResponseRecord, ...] = ()
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def confidence_interval(self) -> Tuple[float, float]:
        """95% interval: theta ± 1.96·SE."""
        margin = CI_Z * self.standard_error
        return (self.theta - margin, self.theta + margin)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable snapshot for display or persistence."""
        lower, upper = self.confidence_interval
        return {
            "respondent_id": self.respondent_id,
            "theta": self.theta,
            "standard_error": self.standard_error,
            "confidence_interval": [lower, upper],
            "responses": len(self.response_history),
            "response_history": [r.to_dict() for r in self.response_history],
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass
class AdaptiveSession:
    """In-memory representation of an adaptive questionnaire session."""

    session_id: str
    respondent_id: str
    start_time: datetime
    initial_theta: float  # Starting point for estimation
    current_theta: float
    target_precision: float
    max_questions: int
    min_questions: int
    responses: List[ResponseRecord] = field(default_factory=list)
    # Ability history carried over from a stored prior estimate
    prior_history: Tuple[ResponseRecord, ...] = ()
    current_se: float = 1.0
    is_complete: bool = False
    final_ability: Optional[Ability] = None
    stop_reason: Optional[str] = None
    # One entry per processed response: estimate after that response
    theta_history: List[float] = field(default_factory=list)
    se_history: List[float] = field(default_factory=list)

    @property
    def answered_item_ids(self) -> List[str]:
        return [r.item_id for r in self.responses]

    @property
    def questions_answered(self) -> int:
        return len(self.responses)
