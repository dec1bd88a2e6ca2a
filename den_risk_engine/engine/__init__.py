"""Engine configuration and pipeline orchestration"""

from .config import EngineConfig
from .pipeline import score_pools, analyze_horizons, forecast_from_prices, derive_liquidation_probability

__all__ = ["EngineConfig", "score_pools", "analyze_horizons", "forecast_from_prices", "derive_liquidation_probability"]
