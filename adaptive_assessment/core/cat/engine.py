"""
AdaptiveSessionController: orchestrator for adaptive questionnaire sessions.

Manages item selection, ability estimation (MLE) and stopping criteria
during a session. Session lifecycle:

    start_session -> select_next_question / process_response (repeated)
                  -> complete_session

A session completes when a stopping rule fires or the item pool runs out
(detected by select_next_question), or when complete_session is called
directly. Completed sessions are handed to the ability repository and
removed from the session repository.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence

from adaptive_assessment.core.cat.ability_estimation import (
    DEFAULT_STANDARD_ERROR,
    estimate_ability,
)
from adaptive_assessment.core.cat.exposure_control import ExposureMonitor
from adaptive_assessment.core.cat.item_bank import Item, ItemBank
from adaptive_assessment.core.cat.item_selection import (
    SelectionStrategy,
    fisher_information_strategy,
    select_next_item,
)
from adaptive_assessment.core.cat.repositories import (
    AbilityRepository,
    InMemoryAbilityRepository,
    InMemorySessionRepository,
    SessionRepository,
)
from adaptive_assessment.core.cat.session import (
    Ability,
    AdaptiveSession,
    ResponseRecord,
    clamp_theta,
)
from adaptive_assessment.core.cat.stopping_rules import (
    StoppingDecision,
    check_stopping_criteria,
)
from adaptive_assessment.core.config import settings
from adaptive_assessment.core.datetime_utils import utc_now
from adaptive_assessment.core.exceptions import (
    ConfigurationError,
    InvalidResponseError,
    UnknownItemError,
)

logger = logging.getLogger(__name__)

REASON_POOL_EXHAUSTED = "item_pool_exhausted"
REASON_MANUAL = "completed"


@dataclass
class SessionStatistics:
    """Diagnostics for a single session."""

    session_id: str
    respondent_id: str
    questions_answered: int
    average_time_per_question: float
    difficulty_progression: List[float]
    ability_progression: List[float]
    final_precision: float
    is_complete: bool
    stop_reason: Optional[str]


def session_statistics(session: AdaptiveSession) -> SessionStatistics:
    """Compute diagnostics for any session, active or completed."""
    responses = session.responses
    average_time = (
        sum(r.time_spent for r in responses) / len(responses) if responses else 0.0
    )
    return SessionStatistics(
        session_id=session.session_id,
        respondent_id=session.respondent_id,
        questions_answered=len(responses),
        average_time_per_question=average_time,
        difficulty_progression=[r.difficulty for r in responses],
        ability_progression=list(session.theta_history),
        final_precision=session.current_se,
        is_complete=session.is_complete,
        stop_reason=session.stop_reason,
    )


class AdaptiveSessionController:
    """
    Orchestrator for adaptive questionnaire sessions.

    Manages:
    - Session initialization from an explicit theta, a stored prior or 0
    - Item selection through a pluggable SelectionStrategy
    - Response processing and ability re-estimation using MLE
    - Stopping criteria evaluation (max/min questions, SE target, convergence)
    - Completion and hand-off of the final ability

    Sessions are single-writer: callers must not drive one session from
    several threads at once. Distinct sessions are independent.
    """

    def __init__(
        self,
        item_bank: ItemBank,
        strategy: SelectionStrategy = fisher_information_strategy,
        session_repository: Optional[SessionRepository] = None,
        ability_repository: Optional[AbilityRepository] = None,
        exposure_monitor: Optional[ExposureMonitor] = None,
    ):
        self.item_bank = item_bank
        self.strategy = strategy
        self.sessions = session_repository or InMemorySessionRepository()
        self.abilities = ability_repository or InMemoryAbilityRepository()
        self.exposure_monitor = exposure_monitor

        self.default_target_precision = settings.CAT_TARGET_PRECISION
        self.default_max_questions = settings.CAT_MAX_QUESTIONS
        self.min_questions = settings.CAT_MIN_QUESTIONS

        logger.info(
            f"AdaptiveSessionController initialized with {len(item_bank)} items "
            f"(target_precision={self.default_target_precision}, "
            f"max_questions={self.default_max_questions})"
        )

    def start_session(
        self,
        respondent_id: str,
        target_precision: Optional[float] = None,
        max_questions: Optional[int] = None,
        initial_theta: Optional[float] = None,
        session_id: Optional[str] = None,
    ) -> AdaptiveSession:
        """
        Create and register a new session.

        The starting theta is, in order of preference: the explicit
        initial_theta, the respondent's stored ability, or 0.0.

        Args:
            respondent_id: Respondent taking the questionnaire.
            target_precision: SE at which to stop (default from settings).
            max_questions: Hard cap on questions (default from settings).
            initial_theta: Optional starting ability override.
            session_id: Optional externally supplied id; generated if omitted.

        Returns:
            The new AdaptiveSession.

        Raises:
            ConfigurationError: If target_precision or max_questions is not
                positive, or session_id is already in use.
        """
        if target_precision is None:
            target_precision = self.default_target_precision
        if max_questions is None:
            max_questions = self.default_max_questions

        if target_precision <= 0:
            raise ConfigurationError(
                "target_precision must be positive",
                context={"target_precision": target_precision},
            )
        if max_questions <= 0:
            raise ConfigurationError(
                "max_questions must be positive",
                context={"max_questions": max_questions},
            )

        if session_id is None:
            session_id = uuid.uuid4().hex
        elif self.sessions.get(session_id) is not None:
            raise ConfigurationError(
                "Session id already in use", context={"session_id": session_id}
            )

        prior = self.abilities.get(respondent_id)
        if initial_theta is not None:
            theta = clamp_theta(initial_theta)
        elif prior is not None:
            theta = prior.theta
        else:
            theta = 0.0
        prior_history = prior.response_history if prior is not None else ()

        session = AdaptiveSession(
            session_id=session_id,
            respondent_id=respondent_id,
            start_time=utc_now(),
            initial_theta=theta,
            current_theta=theta,
            target_precision=target_precision,
            max_questions=max_questions,
            min_questions=self.min_questions,
            prior_history=prior_history,
            current_se=DEFAULT_STANDARD_ERROR,
        )
        session.final_ability = Ability(
            respondent_id=respondent_id,
            theta=theta,
            standard_error=DEFAULT_STANDARD_ERROR,
            response_history=prior_history,
        )
        self.sessions.add(session)

        logger.info(
            f"Started session {session_id} for respondent {respondent_id} "
            f"with theta={theta:.3f} (prior={'yes' if prior else 'no'})"
        )
        return session

    def get_session(self, session_id: str) -> Optional[AdaptiveSession]:
        return self.sessions.get(session_id)

    def select_next_question(self, session_id: str) -> Optional[Item]:
        """
        Choose the next item for a session.

        Completes the session when a stopping rule fires or no unanswered
        items remain.

        Returns:
            The next Item, or None if the session is missing, complete, or
            has just been completed.
        """
        session = self.sessions.get(session_id)
        if session is None or session.is_complete:
            return None

        decision = self.should_stop(session)
        if decision.should_stop:
            self._finish(session, decision.reason or REASON_MANUAL)
            return None

        item = select_next_item(
            self.item_bank,
            session.answered_item_ids,
            self._current_ability(session),
            session.responses,
            self.strategy,
        )
        if item is None:
            self._finish(session, REASON_POOL_EXHAUSTED)
            return None

        if self.exposure_monitor is not None:
            self.exposure_monitor.record_selection(item.id)
        return item

    def process_response(
        self,
        session_id: str,
        item_id: str,
        response: float,
        time_spent: float,
    ) -> Optional[Ability]:
        """
        Record a response and re-estimate ability.

        Args:
            session_id: Session being answered.
            item_id: Item the response belongs to.
            response: Scale value chosen by the respondent.
            time_spent: Seconds taken to answer.

        Returns:
            Updated Ability snapshot, or None if the session is missing or
            already complete.

        Raises:
            UnknownItemError: If item_id is not in the item bank.
            InvalidResponseError: If response lies outside the item's scale or
                time_spent is negative.
            Neither error modifies the session.
        """
        session = self.sessions.get(session_id)
        if session is None or session.is_complete:
            return None

        item = self.item_bank.get(item_id)
        if item is None:
            raise UnknownItemError(item_id, context={"session_id": session_id})
        if not item.in_scale(response):
            raise InvalidResponseError(
                "Response outside item scale",
                context={
                    "session_id": session_id,
                    "item_id": item_id,
                    "response": response,
                    "scale": f"[{item.scale_min}, {item.scale_max}]",
                },
            )
        if time_spent < 0:
            raise InvalidResponseError(
                "time_spent must be non-negative",
                context={"session_id": session_id, "time_spent": time_spent},
            )

        record = ResponseRecord(
            item_id=item.id,
            response=response,
            timestamp=utc_now(),
            time_spent=time_spent,
            difficulty=item.difficulty,
            correct=item.is_correct(response),
        )
        session.responses.append(record)

        theta, se = estimate_ability(
            session.responses, self.item_bank, session.initial_theta
        )
        session.current_theta = theta
        session.current_se = se
        session.theta_history.append(theta)
        session.se_history.append(se)
        session.final_ability = self._current_ability(session)

        if self.exposure_monitor is not None:
            self.exposure_monitor.record_response_time(item.id, time_spent)

        logger.debug(
            f"Session {session_id}: response #{len(session.responses)} "
            f"({item.id}={response}, correct={record.correct}) -> "
            f"theta={theta:.3f}, SE={se:.3f}"
        )
        return session.final_ability

    def should_stop(self, session: AdaptiveSession) -> StoppingDecision:
        """Evaluate the stopping rules for a session."""
        decision = check_stopping_criteria(
            se=session.current_se,
            num_answered=len(session.responses),
            theta_history=session.theta_history,
            target_precision=session.target_precision,
            max_questions=session.max_questions,
            min_questions=session.min_questions,
            convergence_min_items=settings.CAT_CONVERGENCE_MIN_ITEMS,
            convergence_window=settings.CAT_CONVERGENCE_WINDOW,
            convergence_threshold=settings.CAT_CONVERGENCE_THRESHOLD,
        )
        if decision.should_stop:
            d = decision.details
            logger.info(
                f"Session {session.session_id}: stopping due to {decision.reason} "
                f"(SE={d['se']:.3f}, answered={d['num_answered']}, "
                f"theta_converged={d['theta_converged']})"
            )
        return decision

    def complete_session(self, session_id: str) -> Optional[Ability]:
        """
        Mark a session complete and persist its final ability.

        Returns:
            The final Ability, or None for an unknown session id.
        """
        session = self.sessions.get(session_id)
        if session is None:
            return None
        return self._finish(session, session.stop_reason or REASON_MANUAL)

    def get_session_statistics(self, session_id: str) -> Optional[SessionStatistics]:
        """Diagnostics for an active session, or None if unknown."""
        session = self.sessions.get(session_id)
        if session is None:
            return None
        return session_statistics(session)

    def get_respondent_ability(self, respondent_id: str) -> Optional[Ability]:
        return self.abilities.get(respondent_id)

    def add_items(self, items: Sequence[Item]) -> None:
        """
        Extend the item bank.

        Only call between sessions; active sessions read the bank while
        selecting and estimating.
        """
        self.item_bank.add_items(items)
        logger.info(
            f"Item bank extended by {len(items)} items "
            f"(size={len(self.item_bank)})"
        )

    def _current_ability(self, session: AdaptiveSession) -> Ability:
        return Ability(
            respondent_id=session.respondent_id,
            theta=session.current_theta,
            standard_error=session.current_se,
            response_history=session.prior_history + tuple(session.responses),
        )

    def _finish(self, session: AdaptiveSession, reason: str) -> Ability:
        ability = self._current_ability(session)
        session.is_complete = True
        session.stop_reason = reason
        session.final_ability = ability

        self.abilities.save(ability)
        self.sessions.delete(session.session_id)

        logger.info(
            f"Completed session {session.session_id} ({reason}): "
            f"theta={ability.theta:.3f}, SE={ability.standard_error:.3f}, "
            f"answered={len(session.responses)}"
        )
        return ability
