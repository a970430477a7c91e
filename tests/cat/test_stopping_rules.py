"""
Tests for adaptive session stopping rules.

Tests cover:
- Each stopping criterion independently
- Priority between criteria
- Theta convergence window
- Configurable threshold overrides
- Input validation
"""

import pytest

from adaptive_assessment.core.cat.stopping_rules import (
    CONVERGENCE_MIN_ITEMS,
    MAX_QUESTIONS,
    MIN_QUESTIONS,
    TARGET_PRECISION,
    check_stopping_criteria,
    mean_recent_theta_change,
)

STABLE_HISTORY = [0.50, 0.52, 0.53, 0.55]
MOVING_HISTORY = [0.0, 0.6, 1.2, 1.8]


class TestMaximumQuestions:
    """The question cap overrides every other rule."""

    def test_at_max_stops(self):
        result = check_stopping_criteria(se=0.9, num_answered=MAX_QUESTIONS)
        assert result.should_stop is True
        assert result.reason == "max_questions"
        assert result.details["at_max_questions"] is True

    def test_max_below_min_still_stops(self):
        result = check_stopping_criteria(
            se=0.9, num_answered=3, max_questions=3, min_questions=5
        )
        assert result.should_stop is True
        assert result.reason == "max_questions"

    def test_below_max_continues(self):
        result = check_stopping_criteria(se=0.9, num_answered=MAX_QUESTIONS - 1)
        assert result.should_stop is False
        assert result.reason is None


class TestMinimumQuestions:
    """No precision or convergence stop before the floor."""

    def test_below_min_continues_with_excellent_se(self):
        result = check_stopping_criteria(se=0.05, num_answered=MIN_QUESTIONS - 1)
        assert result.should_stop is False
        assert result.details["min_questions_met"] is False
        assert result.details["precision_met"] is True

    def test_zero_answered_continues(self):
        result = check_stopping_criteria(se=1.0, num_answered=0)
        assert result.should_stop is False


class TestTargetPrecision:
    """Stop once SE reaches the target."""

    def test_se_equal_to_target_stops(self):
        result = check_stopping_criteria(
            se=TARGET_PRECISION, num_answered=MIN_QUESTIONS
        )
        assert result.should_stop is True
        assert result.reason == "target_precision"

    def test_se_above_target_continues(self):
        result = check_stopping_criteria(se=0.31, num_answered=MIN_QUESTIONS)
        assert result.should_stop is False
        assert result.details["precision_met"] is False

    def test_custom_target(self):
        result = check_stopping_criteria(
            se=0.4, num_answered=MIN_QUESTIONS, target_precision=0.5
        )
        assert result.reason == "target_precision"
        assert result.details["target_precision"] == 0.5


class TestThetaConvergence:
    """Stop when recent estimates barely move."""

    def test_converged_after_min_items(self):
        result = check_stopping_criteria(
            se=0.5, num_answered=CONVERGENCE_MIN_ITEMS, theta_history=STABLE_HISTORY
        )
        assert result.should_stop is True
        assert result.reason == "theta_converged"
        assert result.details["mean_delta_theta"] == pytest.approx(0.0167, abs=1e-4)

    def test_converged_before_min_items_continues(self):
        result = check_stopping_criteria(
            se=0.5,
            num_answered=CONVERGENCE_MIN_ITEMS - 1,
            theta_history=STABLE_HISTORY,
        )
        assert result.should_stop is False
        assert result.details["theta_converged"] is True

    def test_moving_theta_continues(self):
        result = check_stopping_criteria(
            se=0.5, num_answered=10, theta_history=MOVING_HISTORY
        )
        assert result.should_stop is False
        assert result.details["theta_converged"] is False

    def test_short_history_not_evaluable(self):
        result = check_stopping_criteria(
            se=0.5, num_answered=10, theta_history=[0.1, 0.1, 0.1]
        )
        assert result.should_stop is False
        assert result.details["theta_converged"] is None
        assert "mean_delta_theta" not in result.details

    def test_precision_takes_priority(self):
        result = check_stopping_criteria(
            se=0.2, num_answered=10, theta_history=STABLE_HISTORY
        )
        assert result.reason == "target_precision"

    def test_custom_threshold(self):
        result = check_stopping_criteria(
            se=0.5,
            num_answered=10,
            theta_history=MOVING_HISTORY,
            convergence_threshold=1.0,
        )
        assert result.reason == "theta_converged"


class TestMeanRecentThetaChange:
    def test_uses_last_window_changes(self):
        assert mean_recent_theta_change([5.0, 0.0, 1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_needs_window_plus_one(self):
        assert mean_recent_theta_change([0.0, 1.0, 2.0]) is None

    def test_custom_window(self):
        assert mean_recent_theta_change([0.0, 0.5], window=1) == pytest.approx(0.5)


class TestInputValidation:
    def test_negative_se(self):
        with pytest.raises(ValueError, match="Standard error"):
            check_stopping_criteria(se=-0.1, num_answered=5)

    def test_negative_count(self):
        with pytest.raises(ValueError, match="Number answered"):
            check_stopping_criteria(se=0.5, num_answered=-1)
