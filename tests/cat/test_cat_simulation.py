"""
Tests for the cohort simulation used in validation studies.
"""

from datetime import timedelta

import numpy as np
import pytest

from adaptive_assessment.core.cat.exposure_control import ExposureMonitor
from adaptive_assessment.core.cat.simulation import (
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    DISCRIMINATION_MAX,
    DISCRIMINATION_MIN,
    GUESSING_MAX,
    SimulationConfig,
    generate_item_bank,
    simulate_cohort,
    simulate_response,
    simulate_response_time,
)
from adaptive_assessment.models import ItemCategory

KNOWN_REASONS = {
    "max_questions",
    "target_precision",
    "theta_converged",
    "item_pool_exhausted",
}


class TestGenerateItemBank:
    def test_size_and_ids(self):
        bank = generate_item_bank(n_items_per_category=5, seed=1)
        assert len(bank) == 5 * len(ItemCategory)
        assert "valencia_001" in bank
        assert "motivacao_005" in bank

    def test_parameters_within_bounds(self):
        for item in generate_item_bank(n_items_per_category=20, seed=2):
            assert DISCRIMINATION_MIN <= item.discrimination <= DISCRIMINATION_MAX
            assert DIFFICULTY_MIN <= item.difficulty <= DIFFICULTY_MAX
            assert 0.0 <= item.guessing <= GUESSING_MAX

    def test_reproducible(self):
        first = [(i.id, i.difficulty) for i in generate_item_bank(5, seed=3)]
        second = [(i.id, i.difficulty) for i in generate_item_bank(5, seed=3)]
        assert first == second


class TestSimulateResponse:
    def test_high_ability_answers_above_midpoint(self, make_item):
        item = make_item("q", difficulty=-3.0, discrimination=2.5, scale_max=7)
        rng = np.random.default_rng(0)
        responses = {simulate_response(4.0, item, rng) for _ in range(20)}
        assert responses <= {5.0, 6.0, 7.0}

    def test_low_ability_answers_at_or_below_midpoint(self, make_item):
        item = make_item("q", difficulty=3.0, discrimination=2.5, scale_max=7)
        rng = np.random.default_rng(0)
        responses = {simulate_response(-4.0, item, rng) for _ in range(20)}
        assert responses <= {1.0, 2.0, 3.0, 4.0}

    def test_binary_scale(self, make_item):
        item = make_item("q", difficulty=-3.0, discrimination=2.5, scale_min=0, scale_max=1)
        rng = np.random.default_rng(0)
        assert simulate_response(4.0, item, rng) == 1.0

    def test_response_time_bounds(self):
        rng = np.random.default_rng(0)
        times = [simulate_response_time(rng) for _ in range(200)]
        assert min(times) >= 5.0
        assert max(times) <= 120.0


class TestSimulationConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [{"n_respondents": 0}, {"sessions_per_respondent": 0}, {"theta_sd": -1.0}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SimulationConfig(**kwargs)


class TestSimulateCohort:
    def test_structure(self, simulated_study):
        _, result = simulated_study
        assert len(result.sessions) == 60
        assert len(result.respondent_results) == 60
        assert len(result.true_thetas) == 30
        assert all(session.is_complete for session in result.sessions)
        assert set(result.stop_reason_counts) <= KNOWN_REASONS
        assert sum(result.stop_reason_counts.values()) == 60
        assert result.rmse >= abs(result.mean_bias)

    def test_session_ids_and_schedule(self, simulated_study):
        _, result = simulated_study
        first, second = result.sessions[0], result.sessions[1]
        assert first.session_id == "respondent_00001_s1"
        assert second.session_id == "respondent_00001_s2"
        assert first.respondent_id == second.respondent_id
        assert second.start_time > first.start_time
        assert second.start_time - first.start_time < timedelta(days=14)

    def test_session_lengths_respect_limits(self, simulated_study):
        _, result = simulated_study
        for session in result.sessions:
            assert 1 <= len(session.responses) <= 15
            assert len(session.theta_history) == len(session.responses)

    def test_second_session_starts_from_first(self, simulated_study):
        _, result = simulated_study
        first, second = result.sessions[0], result.sessions[1]
        assert second.initial_theta == pytest.approx(first.current_theta)

    def test_reproducible(self):
        bank = generate_item_bank(5, seed=4)
        config = SimulationConfig(n_respondents=5, sessions_per_respondent=1, seed=9)
        first = simulate_cohort(bank, config)
        second = simulate_cohort(bank, config)
        assert [r.estimated_theta for r in first.respondent_results] == [
            r.estimated_theta for r in second.respondent_results
        ]

    def test_weighted_preset_records_exposure(self):
        bank = generate_item_bank(5, seed=5)
        monitor = ExposureMonitor()
        config = SimulationConfig(
            n_respondents=4, sessions_per_respondent=1, selection_preset="balanced"
        )
        result = simulate_cohort(bank, config, exposure_monitor=monitor)
        administered = sum(r.items_administered for r in result.respondent_results)
        assert monitor.total_selections == administered

    def test_unknown_preset(self):
        bank = generate_item_bank(5, seed=5)
        config = SimulationConfig(n_respondents=1, selection_preset="nope")
        with pytest.raises(ValueError, match="Unknown selection preset"):
            simulate_cohort(bank, config)
