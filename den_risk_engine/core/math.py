#!/usr/bin/env python3
"""
Risk Engine Mathematical Functions

Pure mathematical functions shared by the volatility, liquidation and scoring
stages: the normal CDF approximation, return series, sample deviations and
horizon scaling.
"""

import math
from typing import Optional, Sequence

import numpy as np


class RiskMath:
    """Pure mathematical functions for risk-adjusted yield calculations"""

    DAYS_PER_YEAR = 365
    WEEKS_PER_YEAR = 52

    # Abramowitz & Stegun 7.1.26 coefficients
    CDF_A1 = 0.254829592
    CDF_A2 = -0.284496736
    CDF_A3 = 1.421413741
    CDF_A4 = -1.453152027
    CDF_A5 = 1.061405429
    CDF_P = 0.3275911

    @staticmethod
    def normal_cdf(x: float) -> float:
        """Standard normal CDF via the Abramowitz-Stegun rational approximation"""
        sign = -1.0 if x < 0 else 1.0
        x = abs(x) / math.sqrt(2.0)

        t = 1.0 / (1.0 + RiskMath.CDF_P * x)
        poly = ((((RiskMath.CDF_A5 * t + RiskMath.CDF_A4) * t) + RiskMath.CDF_A3) * t + RiskMath.CDF_A2) * t + RiskMath.CDF_A1
        y = 1.0 - poly * t * math.exp(-x * x)

        return 0.5 * (1.0 + sign * y)

    @staticmethod
    def log_returns(prices: Sequence[float]) -> np.ndarray:
        """Per-step log returns ln(p_i / p_{i-1})"""
        prices = np.asarray(prices, dtype=float)
        if prices.size < 2:
            return np.empty(0)
        return np.log(prices[1:] / prices[:-1])

    @staticmethod
    def simple_returns(prices: Sequence[float]) -> np.ndarray:
        """Per-step simple returns (p_i - p_{i-1}) / p_{i-1}"""
        prices = np.asarray(prices, dtype=float)
        if prices.size < 2:
            return np.empty(0)
        return np.diff(prices) / prices[:-1]

    @staticmethod
    def sample_std(values: Sequence[float]) -> float:
        """Sample standard deviation (n-1); 0.0 when fewer than two values"""
        values = np.asarray(values, dtype=float)
        if values.size < 2:
            return 0.0
        return float(np.std(values, ddof=1))

    @staticmethod
    def annualize(daily_volatility: float, days_per_year: int = DAYS_PER_YEAR) -> float:
        return daily_volatility * math.sqrt(days_per_year)

    @staticmethod
    def horizon_fraction(days: float) -> float:
        return days / RiskMath.DAYS_PER_YEAR

    @staticmethod
    def scale_to_horizon(annual_volatility: float, days: float) -> float:
        """sigma * sqrt(days / 365)"""
        return annual_volatility * math.sqrt(RiskMath.horizon_fraction(days))

    @staticmethod
    def horizon_scaled_apr(annual_rate: Optional[float], days: float) -> float:
        """
        Compounded return over a horizon: (1 + mu)^(days/365) - 1

        A missing rate contributes nothing; a rate at or below -100% is a
        total loss.
        """
        if annual_rate is None:
            return 0.0
        if annual_rate <= -1.0:
            return -1.0
        return math.pow(1.0 + annual_rate, RiskMath.horizon_fraction(days)) - 1.0

    @staticmethod
    def is_finite_number(value) -> bool:
        """True for real, finite numbers (booleans excluded)"""
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float, np.integer, np.floating)):
            return math.isfinite(float(value))
        return False
