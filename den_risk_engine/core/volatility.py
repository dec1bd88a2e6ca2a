#!/usr/bin/env python3
"""
Volatility Estimator

Historical, recency-weighted (EWMA) and rolling-window statistics over a
price series, plus regime detection from the most recent returns.
"""

import math
from typing import Dict, Optional, Sequence, Union

import numpy as np

from .errors import ConfigurationError
from .math import RiskMath
from .records import MarketRegime, PriceSeries, Regime, VolatilityMetrics

PriceInput = Union[PriceSeries, Sequence[float]]


def _prices_of(series: PriceInput) -> np.ndarray:
    if isinstance(series, PriceSeries):
        return series.prices
    return np.asarray(series, dtype=float)


class VolatilityEstimator:
    """Volatility statistics of a single price series"""

    RECENT_WINDOW = 30
    ROLLING_WINDOW = 10
    REGIME_WINDOW = 20

    # Annualized vol thresholds
    HIGH_THRESHOLD = 0.8
    ELEVATED_THRESHOLD = 0.6
    LOW_THRESHOLD = 0.4
    REGIME_MULTIPLIERS = {
        Regime.HIGH: 1.3,
        Regime.ELEVATED: 1.1,
        Regime.NORMAL: 1.0,
        Regime.LOW: 0.9,
    }

    def __init__(self, decay_factor: float = 0.94, ewma_seed: Optional[float] = None):
        if not 0 < decay_factor < 1:
            raise ConfigurationError(f"decay_factor must be in (0, 1), got {decay_factor}")
        self.decay_factor = decay_factor
        self.ewma_seed = ewma_seed

    @classmethod
    def from_config(cls, config) -> "VolatilityEstimator":
        return cls(decay_factor=config.decay_factor, ewma_seed=config.ewma_seed)

    def calculate_returns(self, series: PriceInput) -> np.ndarray:
        return RiskMath.log_returns(_prices_of(series))

    def calculate_volatility_metrics(self, series: PriceInput) -> VolatilityMetrics:
        """
        Compute historical, recent, EWMA and vol-of-vol statistics

        Fewer than two returns cannot give a sample deviation; the result is
        then all zeros with sample_size telling the caller why.
        """
        returns = self.calculate_returns(series)
        if returns.size < 2:
            return VolatilityMetrics.empty(sample_size=int(returns.size))

        mean_return = float(np.mean(returns))
        daily_vol = RiskMath.sample_std(returns)
        historical_vol = RiskMath.annualize(daily_vol)

        recent = returns[-self.RECENT_WINDOW:]
        recent_vol = RiskMath.annualize(RiskMath.sample_std(recent))

        ewma_daily = self.calculate_ewma_volatility(returns, seed=daily_vol)
        ewma_vol = RiskMath.annualize(ewma_daily)

        rolling_vols = self.calculate_rolling_volatilities(returns)
        vol_of_vol = RiskMath.sample_std(rolling_vols)

        return VolatilityMetrics(
            historical_vol=historical_vol,
            recent_30_day_vol=recent_vol,
            ewma_vol=ewma_vol,
            volatility_of_volatility=vol_of_vol,
            daily_volatility=daily_vol,
            mean_return=mean_return,
            sample_size=int(returns.size),
        )

    def calculate_ewma_volatility(self, returns: Sequence[float], seed: float) -> float:
        """
        Daily EWMA volatility: sigma_t^2 = lambda * sigma_{t-1}^2 + (1 - lambda) * r_t^2

        The recursion starts from the seed and runs over returns[1:]; the first
        return is already reflected in the seed.
        """
        sigma = self.ewma_seed if self.ewma_seed is not None else seed
        lam = self.decay_factor
        for r in list(returns)[1:]:
            sigma = math.sqrt(lam * sigma ** 2 + (1 - lam) * r ** 2)
        return sigma

    def calculate_rolling_volatilities(self, returns: Sequence[float]) -> np.ndarray:
        """Daily sample deviations of each full trailing window (excluding the latest)"""
        returns = np.asarray(returns, dtype=float)
        window = self.ROLLING_WINDOW
        vols = [
            RiskMath.sample_std(returns[i - window:i])
            for i in range(window, returns.size)
        ]
        return np.asarray(vols, dtype=float)

    def detect_market_regime(self, series: PriceInput) -> MarketRegime:
        """Classify the regime from the annualized vol of the last 20 returns"""
        returns = self.calculate_returns(series)
        recent = returns[-self.REGIME_WINDOW:]

        if recent.size < 2:
            return MarketRegime(Regime.NORMAL, self.REGIME_MULTIPLIERS[Regime.NORMAL], 0.0)

        annualized = RiskMath.annualize(RiskMath.sample_std(recent))
        regime = self.classify_regime(annualized)
        return MarketRegime(regime, self.REGIME_MULTIPLIERS[regime], annualized)

    @classmethod
    def classify_regime(cls, annualized_vol: float) -> Regime:
        if annualized_vol > cls.HIGH_THRESHOLD:
            return Regime.HIGH
        if annualized_vol > cls.ELEVATED_THRESHOLD:
            return Regime.ELEVATED
        if annualized_vol < cls.LOW_THRESHOLD:
            return Regime.LOW
        return Regime.NORMAL

    @staticmethod
    def calculate_downside_volatility(series: PriceInput) -> float:
        """
        Annualized semi-deviation of simple returns below their mean

        Falls back to the ordinary sample deviation when no return sits below
        the mean. Returns 0.0 for fewer than two returns.
        """
        returns = RiskMath.simple_returns(_prices_of(series))
        if returns.size < 2:
            return 0.0

        mean_return = float(np.mean(returns))
        below = returns[returns < mean_return]
        if below.size == 0:
            return RiskMath.annualize(RiskMath.sample_std(returns))

        downside_variance = float(np.mean((below - mean_return) ** 2))
        return RiskMath.annualize(math.sqrt(downside_variance))


def calculate_pool_volatility(
    token_volatilities: Dict[str, float],
    correlation: float = 0.3,
    weights: Optional[Sequence[float]] = None,
) -> float:
    """
    Pool volatility (percent) from constituent token volatilities (percent)

    Portfolio variance with one fixed cross-token correlation; equal weights
    unless given.
    """
    vols = np.asarray(list(token_volatilities.values()), dtype=float) / 100
    if vols.size == 0:
        return 0.0
    if vols.size == 1:
        return float(vols[0] * 100)

    if weights is None:
        weights = np.full(vols.size, 1.0 / vols.size)
    else:
        weights = np.asarray(weights, dtype=float)
        if weights.size != vols.size:
            raise ValueError("weights must match the number of tokens")

    correlations = np.full((vols.size, vols.size), correlation)
    np.fill_diagonal(correlations, 1.0)

    weighted = weights * vols
    variance = float(weighted @ correlations @ weighted)
    return math.sqrt(max(variance, 0.0)) * 100
