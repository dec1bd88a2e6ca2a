"""Core risk engine components"""

from .errors import RiskEngineError, ConfigurationError, UnsafePositionError
from .records import PoolRecord, PriceSeries, ScoredPool
from .math import RiskMath
from .normalizer import PoolRecordNormalizer
from .volatility import VolatilityEstimator
from .forecaster import VolatilityForecaster
from .liquidation import LiquidationProbabilityModel
from .scoring import RiskAdjustedScoreCalculator

__all__ = [
    "RiskEngineError", "ConfigurationError", "UnsafePositionError",
    "PoolRecord", "PriceSeries", "ScoredPool", "RiskMath",
    "PoolRecordNormalizer", "VolatilityEstimator", "VolatilityForecaster",
    "LiquidationProbabilityModel", "RiskAdjustedScoreCalculator",
]
