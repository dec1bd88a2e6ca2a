#!/usr/bin/env python3
"""
Risk-Adjusted Yield Pipeline

Orchestrates normalization, scoring and ranking for a batch of raw pool
records, and the estimator -> forecaster -> liquidation chain for a price
history. Every call takes its configuration explicitly; nothing is cached
between calls.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .config import ConfigurationError, EngineConfig, InsufficientDataError, require_positive_horizon
from ..analysis.ranking import PoolRanker
from ..core.forecaster import VolatilityForecaster
from ..core.liquidation import LiquidationProbabilityModel
from ..core.normalizer import PoolRecordNormalizer
from ..core.records import (
    DroppedRecord, HorizonAnalysis, LiquidationAssessment, PriceSeries,
    ScoredPool, VolatilityForecast, VolatilityMetrics,
)
from ..core.scoring import RiskAdjustedScoreCalculator
from ..core.volatility import VolatilityEstimator

logger = logging.getLogger(__name__)


STANDARD_HORIZONS = (7, 30, 90)


@dataclass(frozen=True)
class AnalysisResult:
    """Ranked scores of one run plus what was left out"""
    ranking: Tuple[ScoredPool, ...]
    dropped: Tuple[DroppedRecord, ...]
    delta: int
    config: EngineConfig
    generated_at: datetime

    def top(self, n: int = 10) -> List[ScoredPool]:
        return list(self.ranking[:n])


@dataclass(frozen=True)
class PriceRiskAnalysis:
    """Volatility estimate, forecast and liquidation assessment of one series"""
    metrics: VolatilityMetrics
    forecast: VolatilityForecast
    liquidation: Optional[LiquidationAssessment] = None


def score_pools(raw_records: Iterable[Any], config: EngineConfig, delta: Optional[int] = None,
                stability_pool_defaults: bool = False) -> AnalysisResult:
    """
    Normalize, score and rank raw pool records

    Args:
        raw_records: Raw feed records (mappings with inconsistent fields)
        config: Assumptions for this run
        delta: Horizon in days; config.horizon_days when omitted
        stability_pool_defaults: Apply symbol-class volatility to stability pools

    Raises:
        ConfigurationError: if the horizon is not positive
    """
    delta = require_positive_horizon(config.horizon_days if delta is None else delta)

    normalized = PoolRecordNormalizer(stability_pool_defaults=stability_pool_defaults).normalize(raw_records)
    calculator = RiskAdjustedScoreCalculator.from_config(config)
    scored = calculator.score_pools(normalized.records, delta)
    ranking = PoolRanker().rank(scored)

    logger.info("Scored %d pools for a %s-day horizon (%d dropped)",
                len(ranking), delta, normalized.dropped_count)

    return AnalysisResult(
        ranking=tuple(ranking),
        dropped=normalized.dropped,
        delta=delta,
        config=config,
        generated_at=datetime.now(),
    )


def analyze_horizons(raw_records: Iterable[Any], config: EngineConfig,
                     horizons: Sequence[int] = STANDARD_HORIZONS,
                     stability_pool_defaults: bool = False,
                     price_series: Optional[PriceSeries] = None,
                     current_ratio: Optional[float] = None,
                     liquidation_ratio: Optional[float] = None,
                     as_of: Optional[datetime] = None) -> HorizonAnalysis:
    """
    Rank the same pools once per horizon

    With a price series and a position, the liquidation probability is
    modelled separately for each horizon; otherwise the flat probability of
    the config applies to all of them.
    """
    for days in horizons:
        require_positive_horizon(days)
    if price_series is not None and (current_ratio is None or liquidation_ratio is None):
        raise ConfigurationError("A price series needs both current_ratio and liquidation_ratio")

    raw_records = list(raw_records)
    rankings = {}
    probabilities = {}
    dropped: Tuple[DroppedRecord, ...] = ()
    for days in horizons:
        horizon_config = config
        if price_series is not None:
            horizon_config = derive_liquidation_probability(
                price_series, current_ratio, liquidation_ratio, config, days=days, as_of=as_of
            )
        result = score_pools(raw_records, horizon_config, delta=days, stability_pool_defaults=stability_pool_defaults)
        rankings[days] = list(result.ranking)
        probabilities[days] = horizon_config.liquidation_probability
        dropped = result.dropped

    return HorizonAnalysis(rankings=rankings, dropped=dropped, liquidation_probabilities=probabilities)


def forecast_from_prices(series: PriceSeries, config: EngineConfig, horizon_days: Optional[float] = None,
                         as_of: Optional[datetime] = None) -> PriceRiskAnalysis:
    """Estimate and forecast the volatility of one price history"""
    horizon_days = require_positive_horizon(config.horizon_days if horizon_days is None else horizon_days)

    estimator = VolatilityEstimator.from_config(config)
    metrics = estimator.calculate_volatility_metrics(series)
    if not metrics.has_sufficient_data:
        logger.warning("Price series has %d returns; volatility metrics are zero", metrics.sample_size)

    regime = estimator.detect_market_regime(series)
    forecast = VolatilityForecaster.from_config(config).predict_future_volatility(
        metrics, regime, horizon_days, as_of=as_of
    )
    return PriceRiskAnalysis(metrics=metrics, forecast=forecast)


def assess_position(series: PriceSeries, current_ratio: float, liquidation_ratio: float,
                    config: EngineConfig, days: Optional[float] = None,
                    as_of: Optional[datetime] = None) -> PriceRiskAnalysis:
    """
    Forecast collateral volatility and assess liquidation risk with it

    Raises:
        InsufficientDataError: if the series has fewer than two returns
        UnsafePositionError: if the position is already below its liquidation ratio
    """
    days = require_positive_horizon(config.horizon_days if days is None else days)
    analysis = forecast_from_prices(series, config, horizon_days=days, as_of=as_of)
    if not analysis.metrics.has_sufficient_data:
        raise InsufficientDataError(
            f"Price series has {analysis.metrics.sample_size} returns; "
            f"at least 2 are needed to model liquidation risk"
        )

    model = LiquidationProbabilityModel.from_config(config)
    assessment = model.calculate_liquidation_probability(
        current_ratio, liquidation_ratio, analysis.forecast.ensemble_prediction, days
    )
    return PriceRiskAnalysis(metrics=analysis.metrics, forecast=analysis.forecast, liquidation=assessment)


def derive_liquidation_probability(series: PriceSeries, current_ratio: float, liquidation_ratio: float,
                                   config: EngineConfig, days: Optional[float] = None,
                                   as_of: Optional[datetime] = None) -> EngineConfig:
    """New config whose flat liquidation probability comes from the model"""
    analysis = assess_position(series, current_ratio, liquidation_ratio, config, days=days, as_of=as_of)
    probability = analysis.liquidation.probability
    logger.info("Modelled liquidation probability %.6g at ratio %.3f", probability, current_ratio)
    return config.with_overrides(liquidation_probability=probability)
