#!/usr/bin/env python3
"""
Liquidation Probability Model

Probability that a collateralized borrowing position hits its liquidation
ratio within a horizon, assuming lognormal collateral returns with a
risk-neutral convexity correction.
"""

import logging
import math
from typing import Dict, List, Sequence, Tuple

from .math import RiskMath
from .records import LiquidationAssessment
from .errors import ConfigurationError, UnsafePositionError

logger = logging.getLogger(__name__)


DEFAULT_RATIO_LADDER = (1.1, 1.2, 1.3, 1.5, 2.0, 2.7)

VOLATILITY_SCENARIOS = (
    ("Conservative", 0.40),
    ("Base Case", 0.60),
    ("High Vol", 0.80),
)

# Scaled volatility floor keeping the z-score finite
MIN_SCALED_VOLATILITY = 1e-12


class LiquidationProbabilityModel:
    """Lognormal liquidation probability for a single collateral ratio"""

    LOW_RISK_THRESHOLD = 0.05
    MODERATE_RISK_THRESHOLD = 0.15

    def __init__(self, at_threshold_probability: float = 0.5, at_threshold_buffer: float = 0.001):
        self.at_threshold_probability = at_threshold_probability
        self.at_threshold_buffer = at_threshold_buffer

    @classmethod
    def from_config(cls, config) -> "LiquidationProbabilityModel":
        return cls(
            at_threshold_probability=config.at_threshold_probability,
            at_threshold_buffer=config.at_threshold_buffer,
        )

    @staticmethod
    def _validate(current_ratio: float, liquidation_ratio: float, volatility: float, days: float):
        for name, value in (("current_ratio", current_ratio), ("liquidation_ratio", liquidation_ratio),
                            ("volatility", volatility), ("days", days)):
            if not RiskMath.is_finite_number(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")
        if current_ratio <= 0 or liquidation_ratio <= 0:
            raise UnsafePositionError("Collateral ratios must be positive")
        if volatility < 0:
            raise ConfigurationError(f"volatility must be non-negative, got {volatility}")
        if days <= 0:
            raise ConfigurationError(f"days must be positive, got {days}")

    def calculate_liquidation_probability(
        self,
        current_ratio: float,
        liquidation_ratio: float,
        volatility: float,
        days: float,
    ) -> LiquidationAssessment:
        """
        Assess a position

        Args:
            current_ratio: Current collateral ratio (2.0 for 200%)
            liquidation_ratio: Ratio at which the position is liquidated (1.1 for 110%)
            volatility: Annualized collateral volatility as a decimal
            days: Horizon in days

        Raises:
            UnsafePositionError: if the position is already below its liquidation ratio
            ConfigurationError: for non-finite or out-of-range inputs
        """
        self._validate(current_ratio, liquidation_ratio, volatility, days)

        safety_buffer = current_ratio - liquidation_ratio
        if safety_buffer < 0:
            raise UnsafePositionError(
                f"Current ratio {current_ratio:.4f} is already below the liquidation ratio {liquidation_ratio:.4f}"
            )

        if safety_buffer / liquidation_ratio <= self.at_threshold_buffer:
            return self._assess_at_threshold(current_ratio, liquidation_ratio, volatility, days, safety_buffer)

        required_drop = safety_buffer / current_ratio
        probability, z_score, scaled_volatility = self._lognormal_probability(required_drop, volatility, days)

        return LiquidationAssessment(
            probability=probability,
            required_drop=required_drop,
            z_score=z_score,
            scaled_volatility=scaled_volatility,
            safety_buffer=safety_buffer,
        )

    def _assess_at_threshold(self, current_ratio: float, liquidation_ratio: float, volatility: float, days: float,
                             safety_buffer: float) -> LiquidationAssessment:
        """Position sits on its liquidation ratio: any adverse move liquidates it"""
        tiny_buffer = max(self.at_threshold_buffer * liquidation_ratio, 1e-9)
        required_drop = tiny_buffer / current_ratio
        probability, z_score, scaled_volatility = self._lognormal_probability(required_drop, volatility, days)

        return LiquidationAssessment(
            probability=max(probability, self.at_threshold_probability),
            required_drop=required_drop,
            z_score=z_score,
            scaled_volatility=scaled_volatility,
            safety_buffer=safety_buffer,
            at_threshold=True,
        )

    @staticmethod
    def _lognormal_probability(required_drop: float, volatility: float, days: float) -> Tuple[float, float, float]:
        time_horizon = RiskMath.horizon_fraction(days)
        scaled_volatility = volatility * math.sqrt(time_horizon)

        drift = -0.5 * volatility ** 2 * time_horizon
        log_return = math.log(1 - required_drop) - drift

        if scaled_volatility < MIN_SCALED_VOLATILITY:
            logger.debug("Scaled volatility %.3e floored to %.0e", scaled_volatility, MIN_SCALED_VOLATILITY)
        z_score = log_return / max(scaled_volatility, MIN_SCALED_VOLATILITY)

        return RiskMath.normal_cdf(z_score), z_score, scaled_volatility

    def probability_ladder(
        self,
        liquidation_ratio: float,
        volatility: float,
        days: float,
        ratios: Sequence[float] = DEFAULT_RATIO_LADDER,
    ) -> List[Tuple[float, LiquidationAssessment]]:
        """Assess each collateral ratio of a ladder"""
        return [
            (ratio, self.calculate_liquidation_probability(ratio, liquidation_ratio, volatility, days))
            for ratio in ratios
        ]

    def scenario_analysis(self, current_ratio: float, liquidation_ratio: float, days: float,
                          base_volatility: float = 0.60) -> Dict[str, object]:
        """Assess a position under the standard volatility scenarios"""
        scenarios = {
            name: self.calculate_liquidation_probability(current_ratio, liquidation_ratio, vol, days)
            for name, vol in VOLATILITY_SCENARIOS
        }
        base = self.calculate_liquidation_probability(current_ratio, liquidation_ratio, base_volatility, days)

        return {
            "scenarios": scenarios,
            "base_case": base,
            "risk_level": self.classify_risk(base.probability),
        }

    @classmethod
    def classify_risk(cls, probability: float) -> str:
        if probability < cls.LOW_RISK_THRESHOLD:
            return "LOW"
        if probability < cls.MODERATE_RISK_THRESHOLD:
            return "MODERATE"
        return "HIGH"

    def find_optimal_collateral_ratio(
        self,
        target_probability: float,
        liquidation_ratio: float,
        days: float,
        volatility: float,
        max_ratio: float = 5.0,
        max_iterations: int = 50,
        tolerance: float = 0.001,
    ) -> float:
        """
        Smallest collateral ratio whose liquidation probability is at the target

        Bisection over [liquidation_ratio + 0.1, max_ratio]; probability falls
        as the ratio rises.
        """
        if not 0 < target_probability < 1:
            raise ConfigurationError(f"target_probability must be in (0, 1), got {target_probability}")

        low = liquidation_ratio + 0.1
        high = max_ratio
        optimal = low

        for _ in range(max_iterations):
            mid = (low + high) / 2
            probability = self.calculate_liquidation_probability(mid, liquidation_ratio, volatility, days).probability

            optimal = mid
            if abs(probability - target_probability) < tolerance:
                break
            if probability > target_probability:
                low = mid
            else:
                high = mid

        return optimal
