#!/usr/bin/env python3
"""
Volatility Forecaster

Combines the estimator's statistics with regime and calendar adjustments
into a fixed-weight ensemble forecast, then scales it to a horizon.
"""

from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from .math import RiskMath
from .records import MarketRegime, Regime, VolatilityForecast, VolatilityMetrics


class VolatilityForecaster:
    """Ensemble annualized volatility forecast"""

    BASE_CONFIDENCE = 0.7
    MIN_CONFIDENCE = 0.4
    MAX_CONFIDENCE = 0.9
    VOL_OF_VOL_THRESHOLD = 0.02
    AGREEMENT_THRESHOLD = 0.05
    MONTH_END_DAY = 28

    def __init__(
        self,
        weights: Mapping[str, float],
        weekend_multiplier: float = 0.9,
        month_end_multiplier: float = 1.1,
    ):
        self.weights = dict(weights)
        self.weekend_multiplier = weekend_multiplier
        self.month_end_multiplier = month_end_multiplier

    @classmethod
    def from_config(cls, config) -> "VolatilityForecaster":
        return cls(
            weights=config.ensemble_weights,
            weekend_multiplier=config.weekend_multiplier,
            month_end_multiplier=config.month_end_multiplier,
        )

    def get_macro_adjustment(self, as_of: Optional[datetime] = None) -> float:
        """Calendar multiplier: weekends quieter, month-end rebalancing louder"""
        as_of = as_of or datetime.now(timezone.utc)
        adjustment = 1.0

        if as_of.weekday() >= 5:
            adjustment *= self.weekend_multiplier
        if as_of.day >= self.MONTH_END_DAY:
            adjustment *= self.month_end_multiplier

        return adjustment

    def predict_future_volatility(
        self,
        metrics: VolatilityMetrics,
        regime: MarketRegime,
        horizon_days: float = 7,
        as_of: Optional[datetime] = None,
    ) -> VolatilityForecast:
        """Weighted ensemble of the prediction methods, time-scaled to the horizon"""
        macro_multiplier = self.get_macro_adjustment(as_of)
        regime_adjusted = metrics.ewma_vol * regime.risk_multiplier

        predictions: Dict[str, float] = {
            "historical": metrics.historical_vol,
            "recent30Day": metrics.recent_30_day_vol,
            "ewma": metrics.ewma_vol,
            "regimeAdjusted": regime_adjusted,
            "macroAdjusted": regime_adjusted * macro_multiplier,
        }

        ensemble = sum(predictions[method] * self.weights[method] for method in predictions)
        time_scaled = RiskMath.scale_to_horizon(ensemble, horizon_days)

        return VolatilityForecast(
            predictions=predictions,
            ensemble_prediction=ensemble,
            time_scaled_volatility=time_scaled,
            horizon_days=horizon_days,
            macro_multiplier=macro_multiplier,
            confidence=self.calculate_confidence(metrics, regime),
            regime=regime,
        )

    def calculate_confidence(self, metrics: VolatilityMetrics, regime: MarketRegime) -> float:
        """Diagnostic confidence in [0.4, 0.9]; not used for ranking"""
        confidence = self.BASE_CONFIDENCE

        if regime.regime == Regime.HIGH:
            confidence -= 0.2
        elif regime.regime == Regime.ELEVATED:
            confidence -= 0.1

        if metrics.volatility_of_volatility > self.VOL_OF_VOL_THRESHOLD:
            confidence -= 0.1

        if abs(metrics.historical_vol - metrics.recent_30_day_vol) < self.AGREEMENT_THRESHOLD:
            confidence += 0.1

        return max(self.MIN_CONFIDENCE, min(self.MAX_CONFIDENCE, confidence))
