"""
Cohort simulation for validating the adaptive engine.

Simulates respondents with known latent traits answering adaptive sessions
driven by the real AdaptiveSessionController. The resulting completed
sessions feed the validation toolkit (reliability, cross-validation,
stability) exactly like field data would.

Responses are generated from the 3PL model: a "correct" draw becomes a scale
point above the item midpoint, an "incorrect" draw one at or below it.

References:
    - Weiss, D. J. (2004). Computerized adaptive testing for effective and
      efficient measurement in counseling and education. Measurement and
      Evaluation in Counseling and Development, 37(2), 70-84.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import numpy as np

from adaptive_assessment.core.cat.engine import AdaptiveSessionController
from adaptive_assessment.core.cat.exposure_control import ExposureMonitor
from adaptive_assessment.core.cat.item_bank import Item, ItemBank
from adaptive_assessment.core.cat.item_selection import (
    SelectionStrategy,
    fisher_information_strategy,
    probability_3pl,
)
from adaptive_assessment.core.cat.session import AdaptiveSession
from adaptive_assessment.core.cat.weighted_selection import (
    WeightedSelectionStrategy,
    get_selection_preset,
)
from adaptive_assessment.core.datetime_utils import utc_now
from adaptive_assessment.core.logging_config import session_id_context
from adaptive_assessment.models import ItemCategory

logger = logging.getLogger(__name__)

# Synthetic item parameter distributions (Lord, 1980)
DISCRIMINATION_LOGNORMAL_MEAN = 0.0
DISCRIMINATION_LOGNORMAL_SD = 0.3
DISCRIMINATION_MIN = 0.5
DISCRIMINATION_MAX = 2.5
DIFFICULTY_NORMAL_MEAN = 0.0
DIFFICULTY_NORMAL_SD = 1.0
DIFFICULTY_MIN = -3.0
DIFFICULTY_MAX = 3.0
GUESSING_MAX = 0.2
SYNTHETIC_SCALES = [(1, 5), (1, 7), (1, 10)]

# Simulated response times (seconds)
RESPONSE_TIME_MEAN = 45.0
RESPONSE_TIME_SD = 15.0
RESPONSE_TIME_MIN = 5.0
RESPONSE_TIME_MAX = 120.0


@dataclass
class SimulationConfig:
    """Configuration for a cohort simulation run."""

    n_respondents: int = 100
    theta_mean: float = 0.0  # Mean of the true theta distribution
    theta_sd: float = 1.0  # SD of the true theta distribution
    sessions_per_respondent: int = 2  # Repeated sessions enable test-retest
    session_interval_days: float = 7.0  # Gap between a respondent's sessions
    target_precision: Optional[float] = None  # None -> settings default
    max_questions: Optional[int] = None  # None -> settings default
    # Named weighted-selection preset (e.g. "balanced"); None uses maximum
    # Fisher information
    selection_preset: Optional[str] = None
    study_start: Optional[datetime] = None  # None -> now minus study length
    seed: int = 42

    def __post_init__(self) -> None:
        if self.n_respondents <= 0:
            raise ValueError(
                f"n_respondents must be positive, got {self.n_respondents}"
            )
        if self.sessions_per_respondent <= 0:
            raise ValueError(
                "sessions_per_respondent must be positive, "
                f"got {self.sessions_per_respondent}"
            )
        if self.theta_sd < 0:
            raise ValueError(f"theta_sd must be non-negative, got {self.theta_sd}")


@dataclass
class RespondentResult:
    """Per-session simulation outcome."""

    respondent_id: str
    session_id: str
    true_theta: float
    estimated_theta: float
    final_se: float
    bias: float  # estimated_theta - true_theta
    items_administered: int
    stop_reason: str


@dataclass
class SimulationResult:
    """Aggregate simulation results."""

    config: SimulationConfig
    sessions: List[AdaptiveSession]
    respondent_results: List[RespondentResult]
    true_thetas: Dict[str, float]
    mean_items: float
    mean_se: float
    mean_bias: float
    rmse: float
    stop_reason_counts: Dict[str, int] = field(default_factory=dict)


def generate_item_bank(
    n_items_per_category: int = 15,
    seed: int = 42,
) -> ItemBank:
    """
    Generate a synthetic item bank with realistic 3PL parameters.

    Item parameters are drawn from distributions that match typical
    operational item banks:
        - Discrimination (a) ~ LogNormal(0.0, 0.3), clipped to [0.5, 2.5]
        - Difficulty (b) ~ Normal(0.0, 1.0), clipped to [-3.0, 3.0]
        - Guessing (c) ~ Uniform(0.0, 0.2)
        - Scale drawn from 1-5, 1-7 and 1-10 Likert ranges

    Args:
        n_items_per_category: Number of items to generate per category.
        seed: Random seed for reproducibility.

    Returns:
        ItemBank with ids of the form "<category>_<n>".
    """
    rng = np.random.default_rng(seed)
    items = []

    for category in ItemCategory:
        for index in range(1, n_items_per_category + 1):
            a = rng.lognormal(
                mean=DISCRIMINATION_LOGNORMAL_MEAN, sigma=DISCRIMINATION_LOGNORMAL_SD
            )
            a = float(np.clip(a, DISCRIMINATION_MIN, DISCRIMINATION_MAX))

            b = rng.normal(loc=DIFFICULTY_NORMAL_MEAN, scale=DIFFICULTY_NORMAL_SD)
            b = float(np.clip(b, DIFFICULTY_MIN, DIFFICULTY_MAX))

            c = float(rng.uniform(0.0, GUESSING_MAX))
            scale_min, scale_max = SYNTHETIC_SCALES[
                int(rng.integers(len(SYNTHETIC_SCALES)))
            ]

            items.append(
                Item(
                    id=f"{category.value}_{index:03d}",
                    category=category,
                    difficulty=b,
                    discrimination=a,
                    guessing=c,
                    scale_min=scale_min,
                    scale_max=scale_max,
                )
            )

    logger.info(
        f"Generated item bank: {len(items)} items across {len(ItemCategory)} "
        f"categories ({n_items_per_category} per category)"
    )
    return ItemBank(items)


def simulate_response(
    true_theta: float,
    item: Item,
    rng: np.random.Generator,
) -> float:
    """
    Draw a scale response for an item under the 3PL model.

    A Bernoulli draw with P = P_3pl(true_theta) decides the side of the
    midpoint; the scale point is then uniform among the integer points on
    that side.
    """
    prob = probability_3pl(
        true_theta, item.discrimination, item.difficulty, item.guessing
    )
    correct = rng.random() < prob

    lowest = math.ceil(item.scale_min)
    highest = math.floor(item.scale_max)
    midpoint_floor = math.floor(item.scale_midpoint)

    if correct:
        low, high = midpoint_floor + 1, highest
    else:
        low, high = lowest, min(midpoint_floor, highest)

    if low > high:
        # Scale without integer points on this side; use its boundary
        return float(item.scale_max if correct else item.scale_min)
    return float(rng.integers(low, high + 1))


def simulate_response_time(rng: np.random.Generator) -> float:
    seconds = rng.normal(loc=RESPONSE_TIME_MEAN, scale=RESPONSE_TIME_SD)
    return float(np.clip(seconds, RESPONSE_TIME_MIN, RESPONSE_TIME_MAX))


def _build_strategy(
    item_bank: ItemBank,
    config: SimulationConfig,
    monitor: ExposureMonitor,
) -> SelectionStrategy:
    if config.selection_preset is None:
        return fisher_information_strategy
    return WeightedSelectionStrategy(
        item_bank,
        criteria=get_selection_preset(config.selection_preset),
        exposure_monitor=monitor,
    )


def simulate_cohort(
    item_bank: ItemBank,
    config: SimulationConfig,
    exposure_monitor: Optional[ExposureMonitor] = None,
) -> SimulationResult:
    """
    Run a cohort of simulated respondents through adaptive sessions.

    For each respondent:
    1. Draw true_theta from N(config.theta_mean, config.theta_sd)
    2. For each repeated session: start (the previous session's ability is
       the starting point), then loop select -> simulate -> process until
       the controller completes the session
    3. Record a RespondentResult per session

    Session start times are spread over the study period so that
    time-bucketed analyses see realistic dates.

    Args:
        item_bank: Calibrated items.
        config: Simulation configuration.
        exposure_monitor: Optional ledger shared across the cohort.

    Returns:
        SimulationResult with the completed sessions and aggregate metrics.
    """
    logger.info(
        f"Starting cohort simulation: N={config.n_respondents}, "
        f"sessions={config.sessions_per_respondent}, "
        f"theta ~ N({config.theta_mean}, {config.theta_sd}²)"
    )

    rng = np.random.default_rng(config.seed)
    monitor = exposure_monitor or ExposureMonitor()
    controller = AdaptiveSessionController(
        item_bank,
        strategy=_build_strategy(item_bank, config, monitor),
        exposure_monitor=monitor,
    )

    interval = timedelta(days=config.session_interval_days)
    study_start = config.study_start or (
        utc_now() - interval * config.sessions_per_respondent
    )

    sessions: List[AdaptiveSession] = []
    results: List[RespondentResult] = []
    true_thetas: Dict[str, float] = {}

    for index in range(1, config.n_respondents + 1):
        respondent_id = f"respondent_{index:05d}"
        true_theta = float(rng.normal(loc=config.theta_mean, scale=config.theta_sd))
        true_thetas[respondent_id] = true_theta

        for repeat in range(config.sessions_per_respondent):
            session = controller.start_session(
                respondent_id,
                target_precision=config.target_precision,
                max_questions=config.max_questions,
                session_id=f"{respondent_id}_s{repeat + 1}",
            )
            # Spread sessions within their interval window
            offset = timedelta(seconds=float(rng.uniform(0, interval.total_seconds())))
            session.start_time = study_start + interval * repeat + offset

            token = session_id_context.set(session.session_id)
            try:
                while True:
                    item = controller.select_next_question(session.session_id)
                    if item is None:
                        break
                    controller.process_response(
                        session.session_id,
                        item.id,
                        simulate_response(true_theta, item, rng),
                        simulate_response_time(rng),
                    )
            finally:
                session_id_context.reset(token)

            sessions.append(session)
            results.append(
                RespondentResult(
                    respondent_id=respondent_id,
                    session_id=session.session_id,
                    true_theta=true_theta,
                    estimated_theta=session.current_theta,
                    final_se=session.current_se,
                    bias=session.current_theta - true_theta,
                    items_administered=len(session.responses),
                    stop_reason=session.stop_reason or "unknown",
                )
            )

        if index % 100 == 0:
            logger.info(f"Completed {index}/{config.n_respondents} respondents")

    return _aggregate_results(config, sessions, results, true_thetas)


def _aggregate_results(
    config: SimulationConfig,
    sessions: List[AdaptiveSession],
    results: List[RespondentResult],
    true_thetas: Dict[str, float],
) -> SimulationResult:
    items = np.array([r.items_administered for r in results], dtype=float)
    ses = np.array([r.final_se for r in results], dtype=float)
    biases = np.array([r.bias for r in results], dtype=float)

    stop_reason_counts: Dict[str, int] = {}
    for r in results:
        stop_reason_counts[r.stop_reason] = stop_reason_counts.get(r.stop_reason, 0) + 1

    result = SimulationResult(
        config=config,
        sessions=sessions,
        respondent_results=results,
        true_thetas=true_thetas,
        mean_items=float(np.mean(items)),
        mean_se=float(np.mean(ses)),
        mean_bias=float(np.mean(biases)),
        rmse=float(np.sqrt(np.mean(biases**2))),
        stop_reason_counts=stop_reason_counts,
    )

    logger.info(
        f"Simulation complete: {len(sessions)} sessions, "
        f"mean items={result.mean_items:.1f}, mean SE={result.mean_se:.3f}, "
        f"RMSE={result.rmse:.3f}"
    )
    return result
