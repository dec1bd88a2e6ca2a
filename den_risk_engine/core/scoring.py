#!/usr/bin/env python3
"""
Risk-Adjusted Score Calculator

Sortino-style score per pool over a finite horizon:

    S = ((APR_d(pool) - APR_d(baseline) - L) / max(sigma_d, eps)) * H

with APR_d = (1 + mu)^(d/365) - 1, sigma_d = sigma * sqrt(d/365),
L = p_liq * haircut and H = 1 - |rho|. Each pool is scored independently.
"""

import logging
from typing import Iterable, List, Optional

from .errors import ConfigurationError
from .math import RiskMath
from .records import PoolRecord, ScoreComponents, ScoredPool

logger = logging.getLogger(__name__)


class RiskAdjustedScoreCalculator:
    """Scores pools against a baseline yield under one set of assumptions"""

    def __init__(
        self,
        liquidation_probability: float = 0.005,
        baseline_apr: float = 0.03,
        emergency_haircut: float = 0.4,
        assumed_correlation: float = 0.3,
        volatility_floor: float = 0.001,
        baseline_volatility: float = 1.0,
    ):
        self.liquidation_probability = liquidation_probability
        self.baseline_apr = baseline_apr
        self.emergency_haircut = emergency_haircut
        self.assumed_correlation = assumed_correlation
        self.volatility_floor = volatility_floor
        self.baseline_volatility = baseline_volatility

    @classmethod
    def from_config(cls, config) -> "RiskAdjustedScoreCalculator":
        return cls(
            liquidation_probability=config.liquidation_probability,
            baseline_apr=config.baseline_apr,
            emergency_haircut=config.emergency_haircut,
            assumed_correlation=config.assumed_correlation,
            volatility_floor=config.volatility_floor,
            baseline_volatility=config.baseline_volatility,
        )

    @staticmethod
    def calculate_horizon_scaled_apr(annual_rate: Optional[float], delta: float) -> float:
        """APR_d = (1 + mu)^(d/365) - 1 with mu a decimal annual rate"""
        return RiskMath.horizon_scaled_apr(annual_rate, delta)

    @staticmethod
    def calculate_downside_volatility(annual_volatility_pct: Optional[float], delta: float) -> float:
        """sigma_d = sigma * sqrt(d/365), sigma given in percent"""
        if not annual_volatility_pct or annual_volatility_pct <= 0:
            return 0.0
        return RiskMath.scale_to_horizon(annual_volatility_pct / 100, delta)

    def calculate_expected_liquidation_loss(self) -> float:
        return self.liquidation_probability * self.emergency_haircut

    def calculate_correlation_haircut(self) -> float:
        return 1 - abs(self.assumed_correlation)

    def calculate_risk_adjusted_score(self, pool: PoolRecord, delta: float) -> ScoredPool:
        """
        Score one pool over a horizon of delta days

        Raises:
            ConfigurationError: if delta is not positive or the pool has no volatility
        """
        if not RiskMath.is_finite_number(delta) or delta <= 0:
            raise ConfigurationError(f"Horizon must be a positive number of days, got {delta!r}")
        if pool.volatility is None:
            raise ConfigurationError(f"Pool {pool.symbol} has no volatility and cannot be scored")

        apr_horizon = self.calculate_horizon_scaled_apr(pool.apy, delta)
        baseline_apr_horizon = self.calculate_horizon_scaled_apr(self.baseline_apr, delta)
        downside_volatility = self.calculate_downside_volatility(pool.volatility, delta)
        baseline_volatility_horizon = self.calculate_downside_volatility(self.baseline_volatility, delta)

        liquidation_loss = self.calculate_expected_liquidation_loss()
        correlation_haircut = self.calculate_correlation_haircut()

        numerator = apr_horizon - baseline_apr_horizon - liquidation_loss
        if downside_volatility < self.volatility_floor:
            logger.debug("Downside volatility %.6f of %s floored to %.6f",
                         downside_volatility, pool.symbol, self.volatility_floor)
        denominator = max(downside_volatility, self.volatility_floor)

        score = (numerator / denominator) * correlation_haircut

        components = ScoreComponents(
            apr_horizon=apr_horizon,
            baseline_apr_horizon=baseline_apr_horizon,
            downside_volatility=downside_volatility,
            liquidation_loss=liquidation_loss,
            correlation_haircut=correlation_haircut,
            numerator=numerator,
            delta=delta,
            baseline_volatility_horizon=baseline_volatility_horizon,
        )
        return ScoredPool(record=pool, risk_adjusted_score=score, score_components=components)

    def score_pools(self, pools: Iterable[PoolRecord], delta: float) -> List[ScoredPool]:
        """Score every pool, preserving input order"""
        return [self.calculate_risk_adjusted_score(pool, delta) for pool in pools]
