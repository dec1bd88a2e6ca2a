"""
Den Risk Engine

Risk-adjusted yield scoring for liquidity pools: volatility estimation and
forecasting, lognormal liquidation probability, and a horizon-scaled
Sortino-style score used to rank competing pools.
"""

__version__ = "1.0.0"

# Core components
from .core.errors import RiskEngineError, ConfigurationError, UnsafePositionError, InsufficientDataError
from .core.records import (
    PoolRecord, DroppedRecord, NormalizationResult, PriceSeries, Regime, MarketRegime,
    VolatilityMetrics, VolatilityForecast, LiquidationAssessment, ScoreComponents,
    ScoredPool, HorizonAnalysis,
)
from .core.math import RiskMath
from .core.normalizer import PoolRecordNormalizer, flatten_pool_payload
from .core.volatility import VolatilityEstimator, calculate_pool_volatility
from .core.forecaster import VolatilityForecaster
from .core.liquidation import LiquidationProbabilityModel
from .core.scoring import RiskAdjustedScoreCalculator

# Engine
from .engine.config import EngineConfig
from .engine.pipeline import (
    AnalysisResult, PriceRiskAnalysis, score_pools, analyze_horizons,
    forecast_from_prices, assess_position, derive_liquidation_probability,
)

# Analysis
from .analysis.ranking import PoolRanker
from .analysis.report_builder import YieldReportBuilder, ranking_to_dataframe

__all__ = [
    # Core
    "RiskEngineError", "ConfigurationError", "UnsafePositionError", "InsufficientDataError",
    "PoolRecord", "DroppedRecord", "NormalizationResult", "PriceSeries", "Regime", "MarketRegime",
    "VolatilityMetrics", "VolatilityForecast", "LiquidationAssessment", "ScoreComponents",
    "ScoredPool", "HorizonAnalysis", "RiskMath",
    "PoolRecordNormalizer", "flatten_pool_payload",
    "VolatilityEstimator", "calculate_pool_volatility", "VolatilityForecaster",
    "LiquidationProbabilityModel", "RiskAdjustedScoreCalculator",

    # Engine
    "EngineConfig", "AnalysisResult", "PriceRiskAnalysis", "score_pools", "analyze_horizons",
    "forecast_from_prices", "assess_position", "derive_liquidation_probability",

    # Analysis
    "PoolRanker", "YieldReportBuilder", "ranking_to_dataframe",
]
