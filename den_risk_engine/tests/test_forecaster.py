#!/usr/bin/env python3
"""
Volatility Forecaster Test Suite
"""

import math
from datetime import datetime

import pytest

from den_risk_engine.core.forecaster import VolatilityForecaster
from den_risk_engine.core.records import MarketRegime, Regime, VolatilityMetrics
from den_risk_engine.engine.config import DEFAULT_ENSEMBLE_WEIGHTS, EngineConfig

WEDNESDAY = datetime(2024, 6, 12)
SATURDAY = datetime(2024, 6, 1)
MONTH_END_TUESDAY = datetime(2024, 5, 28)
MONTH_END_SATURDAY = datetime(2024, 9, 28)


class TestVolatilityForecaster:
    """Ensemble forecast and diagnostics"""

    def setup_method(self):
        self.forecaster = VolatilityForecaster.from_config(EngineConfig())
        self.metrics = VolatilityMetrics(
            historical_vol=0.5,
            recent_30_day_vol=0.6,
            ewma_vol=0.4,
            volatility_of_volatility=0.01,
            daily_volatility=0.5 / math.sqrt(365),
            mean_return=0.0,
            sample_size=120,
        )
        self.elevated = MarketRegime(Regime.ELEVATED, 1.1, 0.7)

    def test_macro_adjustment_calendar(self):
        assert self.forecaster.get_macro_adjustment(WEDNESDAY) == 1.0
        assert self.forecaster.get_macro_adjustment(SATURDAY) == pytest.approx(0.9)
        assert self.forecaster.get_macro_adjustment(MONTH_END_TUESDAY) == pytest.approx(1.1)
        assert self.forecaster.get_macro_adjustment(MONTH_END_SATURDAY) == pytest.approx(0.99)

    def test_ensemble_prediction(self):
        forecast = self.forecaster.predict_future_volatility(self.metrics, self.elevated, 7, as_of=WEDNESDAY)

        regime_adjusted = 0.4 * 1.1
        expected = 0.10 * 0.5 + 0.20 * 0.6 + 0.30 * 0.4 + 0.25 * regime_adjusted + 0.15 * regime_adjusted

        assert forecast.predictions["regimeAdjusted"] == pytest.approx(regime_adjusted)
        assert forecast.predictions["macroAdjusted"] == pytest.approx(regime_adjusted)
        assert forecast.ensemble_prediction == pytest.approx(expected)
        assert forecast.time_scaled_volatility == pytest.approx(expected * math.sqrt(7 / 365))
        assert forecast.horizon_days == 7

    def test_weekend_lowers_macro_prediction(self):
        weekday = self.forecaster.predict_future_volatility(self.metrics, self.elevated, 7, as_of=WEDNESDAY)
        weekend = self.forecaster.predict_future_volatility(self.metrics, self.elevated, 7, as_of=SATURDAY)
        assert weekend.predictions["macroAdjusted"] < weekday.predictions["macroAdjusted"]
        assert weekend.ensemble_prediction < weekday.ensemble_prediction

    def test_custom_weights(self):
        weights = {key: 0.0 for key in DEFAULT_ENSEMBLE_WEIGHTS}
        weights["historical"] = 1.0
        forecaster = VolatilityForecaster(weights)
        forecast = forecaster.predict_future_volatility(self.metrics, self.elevated, 30, as_of=WEDNESDAY)
        assert forecast.ensemble_prediction == pytest.approx(0.5)

    def test_zero_metrics_forecast_zero(self):
        regime = MarketRegime(Regime.NORMAL, 1.0, 0.0)
        forecast = self.forecaster.predict_future_volatility(VolatilityMetrics.empty(1), regime, 7, as_of=WEDNESDAY)
        assert forecast.ensemble_prediction == 0.0
        assert forecast.time_scaled_volatility == 0.0

    def test_confidence_penalties(self):
        high = MarketRegime(Regime.HIGH, 1.3, 1.0)
        noisy = VolatilityMetrics(0.5, 0.9, 0.6, 0.05, 0.03, 0.0, 120)
        assert self.forecaster.calculate_confidence(noisy, high) == pytest.approx(0.4)

    def test_confidence_agreement_bonus(self):
        low = MarketRegime(Regime.LOW, 0.9, 0.2)
        steady = VolatilityMetrics(0.30, 0.31, 0.3, 0.001, 0.016, 0.0, 120)
        assert self.forecaster.calculate_confidence(steady, low) == pytest.approx(0.8)

    def test_confidence_is_clamped(self):
        for regime in Regime:
            market = MarketRegime(regime, 1.0, 0.5)
            for metrics in (self.metrics, VolatilityMetrics.empty()):
                confidence = self.forecaster.calculate_confidence(metrics, market)
                assert 0.4 <= confidence <= 0.9

    def test_forecast_serializes(self):
        forecast = self.forecaster.predict_future_volatility(self.metrics, self.elevated, 7, as_of=WEDNESDAY)
        payload = forecast.to_dict()
        assert payload["marketRegime"]["regime"] == "ELEVATED"
        assert set(payload["predictions"]) == set(DEFAULT_ENSEMBLE_WEIGHTS)
