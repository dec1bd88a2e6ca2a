#!/usr/bin/env python3
"""
Liquidation Probability Model Test Suite

Lognormal liquidation probability, at-threshold positions, ladders,
scenarios and the optimal collateral ratio search.
"""

import math

import pytest

from den_risk_engine.core.errors import ConfigurationError, UnsafePositionError
from den_risk_engine.core.liquidation import DEFAULT_RATIO_LADDER, LiquidationProbabilityModel
from den_risk_engine.core.math import RiskMath


class TestLiquidationProbability:
    """Single position assessments"""

    def setup_method(self):
        self.model = LiquidationProbabilityModel()

    def test_well_collateralized_short_horizon(self):
        result = self.model.calculate_liquidation_probability(2.0, 1.1, 0.60, 7)

        assert 0 < result.probability < 1e-3
        assert result.required_drop == pytest.approx(0.45)
        assert result.z_score < -5
        assert result.safety_buffer == pytest.approx(0.9)
        assert not result.at_threshold

    def test_z_score_formula(self):
        result = self.model.calculate_liquidation_probability(1.5, 1.1, 0.8, 30)

        t = 30 / 365
        drift = -0.5 * 0.8 ** 2 * t
        expected_z = (math.log(1 - 0.4 / 1.5) - drift) / (0.8 * math.sqrt(t))

        assert result.z_score == pytest.approx(expected_z)
        assert result.scaled_volatility == pytest.approx(0.8 * math.sqrt(t))
        assert result.probability == pytest.approx(RiskMath.normal_cdf(expected_z))

    def test_probability_rises_with_volatility(self):
        probabilities = [
            self.model.calculate_liquidation_probability(1.3, 1.1, vol, 14).probability
            for vol in (0.05, 0.2, 0.4, 0.6, 0.9, 1.5)
        ]
        assert all(b >= a for a, b in zip(probabilities, probabilities[1:]))

    def test_probability_rises_with_horizon(self):
        short = self.model.calculate_liquidation_probability(1.5, 1.1, 0.6, 7).probability
        long = self.model.calculate_liquidation_probability(1.5, 1.1, 0.6, 90).probability
        assert long > short

    def test_zero_volatility_stays_finite(self):
        result = self.model.calculate_liquidation_probability(2.0, 1.1, 0.0, 7)
        assert math.isfinite(result.z_score)
        assert result.probability == pytest.approx(0.0, abs=1e-12)

    def test_position_below_liquidation_ratio(self):
        with pytest.raises(UnsafePositionError):
            self.model.calculate_liquidation_probability(1.05, 1.1, 0.6, 7)

    def test_unsafe_position_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            self.model.calculate_liquidation_probability(1.0, 1.1, 0.6, 7)

    def test_non_positive_ratios(self):
        with pytest.raises(UnsafePositionError):
            self.model.calculate_liquidation_probability(0.0, 1.1, 0.6, 7)

    def test_invalid_inputs(self):
        with pytest.raises(ConfigurationError):
            self.model.calculate_liquidation_probability(2.0, 1.1, 0.6, 0)
        with pytest.raises(ConfigurationError):
            self.model.calculate_liquidation_probability(2.0, 1.1, float("nan"), 7)
        with pytest.raises(ConfigurationError):
            self.model.calculate_liquidation_probability(2.0, 1.1, -0.1, 7)


class TestAtThreshold:
    """Positions sitting on their liquidation ratio"""

    def test_exactly_at_threshold(self):
        result = LiquidationProbabilityModel().calculate_liquidation_probability(1.1, 1.1, 0.6, 7)
        assert result.at_threshold
        assert result.probability >= 0.5
        assert result.required_drop == pytest.approx(0.001)

    def test_within_buffer(self):
        result = LiquidationProbabilityModel().calculate_liquidation_probability(1.1005, 1.1, 0.6, 7)
        assert result.at_threshold
        assert result.probability >= 0.5

    def test_configurable_floor(self):
        model = LiquidationProbabilityModel(at_threshold_probability=0.9)
        result = model.calculate_liquidation_probability(1.1, 1.1, 0.6, 7)
        assert result.probability >= 0.9

    def test_just_outside_buffer_is_modelled(self):
        result = LiquidationProbabilityModel().calculate_liquidation_probability(1.11, 1.1, 0.6, 7)
        assert not result.at_threshold

    def test_buffer_scales_with_liquidation_ratio(self):
        model = LiquidationProbabilityModel()
        assert model.calculate_liquidation_probability(10.005, 10.0, 0.6, 7).at_threshold
        assert not model.calculate_liquidation_probability(10.05, 10.0, 0.6, 7).at_threshold


class TestLadderAndScenarios:
    """Ratio ladders, scenario analysis and optimal ratio"""

    def setup_method(self):
        self.model = LiquidationProbabilityModel()

    def test_ladder_is_monotonic(self):
        ladder = self.model.probability_ladder(1.1, 0.6, 30)
        assert [ratio for ratio, _ in ladder] == list(DEFAULT_RATIO_LADDER)
        probabilities = [assessment.probability for _, assessment in ladder]
        assert all(b <= a for a, b in zip(probabilities, probabilities[1:]))
        assert ladder[0][1].at_threshold

    def test_scenario_analysis(self):
        analysis = self.model.scenario_analysis(2.0, 1.1, 30)

        assert set(analysis["scenarios"]) == {"Conservative", "Base Case", "High Vol"}
        scenarios = analysis["scenarios"]
        assert scenarios["Conservative"].probability <= scenarios["Base Case"].probability
        assert scenarios["Base Case"].probability <= scenarios["High Vol"].probability
        assert analysis["risk_level"] == "LOW"

    def test_risk_levels(self):
        assert LiquidationProbabilityModel.classify_risk(0.01) == "LOW"
        assert LiquidationProbabilityModel.classify_risk(0.05) == "MODERATE"
        assert LiquidationProbabilityModel.classify_risk(0.10) == "MODERATE"
        assert LiquidationProbabilityModel.classify_risk(0.15) == "HIGH"

    def test_optimal_collateral_ratio(self):
        ratio = self.model.find_optimal_collateral_ratio(0.05, 1.1, 30, 0.6)
        probability = self.model.calculate_liquidation_probability(ratio, 1.1, 0.6, 30).probability

        assert 1.2 < ratio < 5.0
        assert probability == pytest.approx(0.05, abs=1e-3)

    def test_lower_target_needs_more_collateral(self):
        loose = self.model.find_optimal_collateral_ratio(0.10, 1.1, 30, 0.6)
        strict = self.model.find_optimal_collateral_ratio(0.01, 1.1, 30, 0.6)
        assert strict > loose

    def test_invalid_target(self):
        with pytest.raises(ConfigurationError):
            self.model.find_optimal_collateral_ratio(1.5, 1.1, 30, 0.6)
