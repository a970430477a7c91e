"""
Tests for AdaptiveSessionController: session lifecycle, response processing,
stopping and hand-off of the final ability.
"""

import pytest

from adaptive_assessment.core.cat.engine import (
    REASON_MANUAL,
    REASON_POOL_EXHAUSTED,
    AdaptiveSessionController,
)
from adaptive_assessment.core.cat.exposure_control import ExposureMonitor
from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.item_selection import item_information
from adaptive_assessment.core.cat.session import Ability
from adaptive_assessment.core.exceptions import (
    ConfigurationError,
    InvalidResponseError,
    UnknownItemError,
)


def _answer_until_complete(controller, session, high=True, time_spent=20.0):
    """Drive a session to completion; returns the administered item ids."""
    administered = []
    while True:
        item = controller.select_next_question(session.session_id)
        if item is None:
            return administered
        administered.append(item.id)
        response = item.scale_max if high else item.scale_min
        controller.process_response(session.session_id, item.id, response, time_spent)


class TestStartSession:
    """Session creation and starting theta."""

    def test_defaults(self, controller):
        session = controller.start_session("r1")
        assert session.current_theta == 0.0
        assert session.initial_theta == 0.0
        assert session.current_se == 1.0
        assert session.target_precision == pytest.approx(0.3)
        assert session.max_questions == 15
        assert session.min_questions == 5
        assert session.is_complete is False
        assert session.responses == []
        assert session.final_ability.theta == 0.0
        assert controller.get_session(session.session_id) is session

    def test_generated_ids_are_unique(self, controller):
        first = controller.start_session("r1")
        second = controller.start_session("r1")
        assert first.session_id != second.session_id

    def test_external_session_id(self, controller):
        session = controller.start_session("r1", session_id="s-001")
        assert session.session_id == "s-001"

    def test_duplicate_session_id_rejected(self, controller):
        controller.start_session("r1", session_id="s-001")
        with pytest.raises(ConfigurationError):
            controller.start_session("r2", session_id="s-001")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"target_precision": 0.0},
            {"target_precision": -0.2},
            {"max_questions": 0},
        ],
    )
    def test_non_positive_limits_rejected(self, controller, kwargs):
        with pytest.raises(ConfigurationError):
            controller.start_session("r1", **kwargs)

    def test_initial_theta_override_is_clamped(self, controller):
        session = controller.start_session("r1", initial_theta=7.0)
        assert session.current_theta == 4.0

    def test_prior_ability_used_as_start(self, controller):
        controller.abilities.save(
            Ability(respondent_id="r1", theta=1.25, standard_error=0.4)
        )
        session = controller.start_session("r1")
        assert session.initial_theta == 1.25

    def test_explicit_theta_beats_prior(self, controller):
        controller.abilities.save(
            Ability(respondent_id="r1", theta=1.25, standard_error=0.4)
        )
        session = controller.start_session("r1", initial_theta=-0.5)
        assert session.initial_theta == -0.5


class TestSelectNextQuestion:
    """Selection through the controller."""

    def test_first_item_is_most_informative(self, controller, emotional_bank):
        session = controller.start_session("r1")
        expected = max(emotional_bank, key=lambda i: item_information(i, 0.0))
        assert controller.select_next_question(session.session_id) == expected

    def test_unknown_session_returns_none(self, controller):
        assert controller.select_next_question("missing") is None

    def test_items_never_repeat(self, controller):
        session = controller.start_session("r1")
        administered = _answer_until_complete(controller, session)
        assert len(administered) == len(set(administered))

    def test_exposure_recorded(self, emotional_bank):
        monitor = ExposureMonitor()
        controller = AdaptiveSessionController(emotional_bank, exposure_monitor=monitor)
        session = controller.start_session("r1")
        item = controller.select_next_question(session.session_id)
        assert monitor.get_selection_count(item.id) == 1

        controller.process_response(session.session_id, item.id, item.scale_max, 12.5)
        assert monitor.get_average_response_time(item.id) == pytest.approx(12.5)


class TestProcessResponse:
    """Recording responses and re-estimating ability."""

    def test_records_response_and_updates_estimate(self, controller):
        session = controller.start_session("r1")
        item = controller.select_next_question(session.session_id)

        ability = controller.process_response(
            session.session_id, item.id, item.scale_max, 15.0
        )

        assert len(session.responses) == 1
        record = session.responses[0]
        assert record.item_id == item.id
        assert record.correct is True
        assert record.difficulty == item.difficulty
        assert session.theta_history == [session.current_theta]
        assert session.se_history == [session.current_se]
        assert session.current_theta > 0.0
        assert ability.theta == session.current_theta
        assert ability.standard_error == session.current_se
        assert len(ability.response_history) == 1

    def test_histories_grow_per_response(self, controller):
        session = controller.start_session("r1")
        for _ in range(3):
            item = controller.select_next_question(session.session_id)
            controller.process_response(session.session_id, item.id, item.scale_min, 5)
        assert len(session.theta_history) == 3
        assert len(session.se_history) == 3
        assert session.current_theta < 0.0

    def test_unknown_item_leaves_session_unchanged(self, controller):
        session = controller.start_session("r1")
        with pytest.raises(UnknownItemError) as exc_info:
            controller.process_response(session.session_id, "nope", 3, 10.0)
        assert exc_info.value.item_id == "nope"
        assert session.responses == []
        assert session.theta_history == []
        assert session.current_theta == 0.0

    def test_out_of_scale_response_rejected(self, controller):
        session = controller.start_session("r1")
        with pytest.raises(InvalidResponseError):
            controller.process_response(session.session_id, "val_02", 6, 10.0)
        assert session.responses == []

    def test_negative_time_rejected(self, controller):
        session = controller.start_session("r1")
        with pytest.raises(InvalidResponseError):
            controller.process_response(session.session_id, "val_02", 3, -1.0)

    def test_unknown_session_returns_none(self, controller):
        assert controller.process_response("missing", "val_01", 3, 10.0) is None

    def test_completed_session_ignores_responses(self, controller):
        session = controller.start_session("r1")
        controller.complete_session(session.session_id)
        assert controller.process_response(session.session_id, "val_01", 3, 1) is None
        assert session.responses == []


class TestSessionCompletion:
    """Stopping rules, pool exhaustion and manual completion."""

    def test_max_questions_completes_session(self, controller):
        session = controller.start_session("r1", max_questions=3)
        administered = _answer_until_complete(controller, session)

        assert len(administered) == 3
        assert session.is_complete is True
        assert session.stop_reason == "max_questions"
        assert controller.get_session(session.session_id) is None
        assert controller.get_respondent_ability("r1") is session.final_ability
        assert controller.select_next_question(session.session_id) is None

    def test_pool_exhaustion_completes_session(self, make_item):
        bank = ItemBank([make_item("a", difficulty=-0.5), make_item("b", difficulty=0.5)])
        controller = AdaptiveSessionController(bank)
        session = controller.start_session("r1")

        administered = _answer_until_complete(controller, session)

        assert sorted(administered) == ["a", "b"]
        assert session.is_complete is True
        assert session.stop_reason == REASON_POOL_EXHAUSTED

    def test_sample_bank_session_terminates(self, controller):
        session = controller.start_session("r1")
        _answer_until_complete(controller, session, high=False)
        assert session.is_complete is True
        assert len(session.responses) <= 10
        assert session.final_ability.theta == session.current_theta

    def test_manual_completion(self, controller):
        session = controller.start_session("r1")
        ability = controller.complete_session(session.session_id)
        assert session.is_complete is True
        assert session.stop_reason == REASON_MANUAL
        assert ability.theta == 0.0
        assert controller.get_respondent_ability("r1") is ability

    def test_complete_unknown_session(self, controller):
        assert controller.complete_session("missing") is None

    def test_final_ability_seeds_next_session(self, controller):
        first = controller.start_session("r1", max_questions=4)
        _answer_until_complete(controller, first, high=True)

        second = controller.start_session("r1")
        assert second.initial_theta == pytest.approx(first.current_theta)
        assert len(second.prior_history) == 4


class TestSessionStatistics:
    def test_statistics(self, controller):
        session = controller.start_session("r1")
        times = [10.0, 20.0]
        difficulties = []
        for seconds in times:
            item = controller.select_next_question(session.session_id)
            difficulties.append(item.difficulty)
            controller.process_response(
                session.session_id, item.id, item.scale_max, seconds
            )

        stats = controller.get_session_statistics(session.session_id)
        assert stats.questions_answered == 2
        assert stats.average_time_per_question == pytest.approx(15.0)
        assert stats.difficulty_progression == difficulties
        assert stats.ability_progression == session.theta_history
        assert stats.final_precision == session.current_se
        assert stats.is_complete is False

    def test_unknown_session(self, controller):
        assert controller.get_session_statistics("missing") is None


class TestAbilitySnapshot:
    def test_confidence_interval(self):
        ability = Ability(respondent_id="r1", theta=0.5, standard_error=0.2)
        lower, upper = ability.confidence_interval
        assert lower == pytest.approx(0.108)
        assert upper == pytest.approx(0.892)

    def test_to_dict(self):
        data = Ability(respondent_id="r1", theta=0.5, standard_error=0.2).to_dict()
        assert data["respondent_id"] == "r1"
        assert data["responses"] == 0
        assert data["response_history"] == []
        assert len(data["confidence_interval"]) == 2

    def test_to_dict_includes_response_history(self, make_record):
        first = make_record("q1", correct=True, difficulty=-0.5, time_spent=12.0)
        second = make_record("q2", correct=False, difficulty=0.7)
        ability = Ability(
            respondent_id="r1",
            theta=0.5,
            standard_error=0.3,
            response_history=(first, second),
        )
        data = ability.to_dict()

        assert data["responses"] == 2
        assert data["response_history"][0] == {
            "item_id": "q1",
            "response": 5.0,
            "timestamp": first.timestamp.isoformat(),
            "time_spent": 12.0,
            "difficulty": -0.5,
            "correct": True,
        }
        assert [r["item_id"] for r in data["response_history"]] == ["q1", "q2"]
        assert data["response_history"][1]["correct"] is False

    def test_completed_session_snapshot_has_history(self, controller):
        session = controller.start_session("r1")
        _answer_until_complete(controller, session)
        data = controller.get_respondent_ability("r1").to_dict()
        assert len(data["response_history"]) == len(session.responses)
        assert data["response_history"][0]["item_id"] == session.responses[0].item_id


class TestAddItems:
    def test_extends_bank(self, controller, make_item):
        controller.add_items([make_item("extra")])
        assert "extra" in controller.item_bank

    def test_duplicate_rejected(self, controller, make_item):
        with pytest.raises(ValueError):
            controller.add_items([make_item("val_01")])
