#!/usr/bin/env python3
"""
Engine Configuration

Validated configuration record passed explicitly into every pipeline call,
plus the error types raised for structurally invalid requests.
"""

import math
from types import MappingProxyType
from typing import Annotated, Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, ValidationError, field_validator

from ..core.errors import ConfigurationError, InsufficientDataError, RiskEngineError, UnsafePositionError

__all__ = [
    "EngineConfig", "DEFAULT_ENSEMBLE_WEIGHTS", "require_positive_horizon",
    "RiskEngineError", "ConfigurationError", "UnsafePositionError", "InsufficientDataError",
]


DEFAULT_ENSEMBLE_WEIGHTS = {
    "historical": 0.10,
    "recent30Day": 0.20,
    "ewma": 0.30,
    "regimeAdjusted": 0.25,
    "macroAdjusted": 0.15,
}

# camelCase option names accepted from external callers
OPTION_ALIASES = {
    "liquidationProbability": "liquidation_probability",
    "baselineAPR": "baseline_apr",
    "baselineApr": "baseline_apr",
    "baselineVolatility": "baseline_volatility",
    "emergencyHaircut": "emergency_haircut",
    "assumedCorrelation": "assumed_correlation",
    "horizonDays": "horizon_days",
    "decayFactor": "decay_factor",
    "ewmaSeed": "ewma_seed",
    "volatilityFloor": "volatility_floor",
    "atThresholdProbability": "at_threshold_probability",
    "atThresholdBuffer": "at_threshold_buffer",
    "weekendMultiplier": "weekend_multiplier",
    "monthEndMultiplier": "month_end_multiplier",
    "ensembleWeights": "ensemble_weights",
}


# Read-only once validated; dumped back to a plain dict
EnsembleWeights = Annotated[
    Dict[str, float],
    PlainSerializer(lambda weights: dict(weights), return_type=Dict[str, float]),
]


class EngineConfig(BaseModel):
    """Assumptions behind one analysis run"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Scoring
    liquidation_probability: float = Field(0.005, ge=0, le=1, description="Flat probability of a liquidation event within the horizon")
    baseline_apr: float = Field(0.03, gt=-1, description="Annual benchmark rate as a decimal fraction")
    baseline_volatility: float = Field(1.0, ge=0, description="Benchmark annual volatility in percent (informational)")
    emergency_haircut: float = Field(0.4, ge=0, le=1, description="Fraction of the position lost on a forced unwind")
    assumed_correlation: float = Field(0.3, ge=-1, le=1, description="Correlation with the reference portfolio")
    horizon_days: int = Field(7, gt=0, description="Analysis horizon in days")
    volatility_floor: float = Field(0.001, gt=0, description="Floor for the score denominator")

    # Volatility estimation
    decay_factor: float = Field(0.94, gt=0, lt=1, description="EWMA decay factor lambda")
    ewma_seed: Optional[float] = Field(None, ge=0, description="Daily volatility seeding the EWMA; historical daily vol when unset")

    # Forecasting
    weekend_multiplier: float = Field(0.9, gt=0)
    month_end_multiplier: float = Field(1.1, gt=0)
    ensemble_weights: EnsembleWeights = Field(default_factory=lambda: dict(DEFAULT_ENSEMBLE_WEIGHTS),
                                              validate_default=True)

    # Liquidation model
    at_threshold_probability: float = Field(0.5, ge=0, le=1, description="Probability floor for positions sitting on the liquidation ratio")
    at_threshold_buffer: float = Field(0.001, ge=0, description="Buffer, as a fraction of the liquidation ratio, at or below which a position counts as at-threshold")

    @field_validator(
        "liquidation_probability", "baseline_apr", "baseline_volatility", "emergency_haircut",
        "assumed_correlation", "volatility_floor", "decay_factor", "weekend_multiplier",
        "month_end_multiplier", "at_threshold_probability", "at_threshold_buffer",
    )
    @classmethod
    def validate_finite(cls, v):
        if not math.isfinite(v):
            raise ValueError("must be a finite number")
        return v

    @field_validator("ensemble_weights")
    @classmethod
    def validate_ensemble_weights(cls, v):
        if set(v) != set(DEFAULT_ENSEMBLE_WEIGHTS):
            raise ValueError(f"ensemble_weights must have exactly the keys {sorted(DEFAULT_ENSEMBLE_WEIGHTS)}")
        if any(weight < 0 for weight in v.values()):
            raise ValueError("ensemble_weights must be non-negative")
        if abs(sum(v.values()) - 1.0) > 1e-9:
            raise ValueError("ensemble_weights must sum to 1.0")
        return MappingProxyType(dict(v))

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **overrides) -> "EngineConfig":
        """
        Build a config from snake_case or camelCase options

        Raises:
            ConfigurationError: if any option is unknown or invalid
        """
        merged = {}
        for source in (options or {}, overrides):
            for key, value in source.items():
                merged[OPTION_ALIASES.get(key, key)] = value
        try:
            return cls(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid engine configuration: {e}") from e

    def with_overrides(self, **changes) -> "EngineConfig":
        """Return a new validated config with some fields replaced"""
        return EngineConfig.from_options(self.model_dump(), **changes)

    def as_metadata(self) -> Dict[str, Any]:
        """camelCase view for report metadata"""
        reverse = {}
        for alias, name in OPTION_ALIASES.items():
            reverse.setdefault(name, alias)
        return {reverse.get(name, name): value for name, value in self.model_dump().items()}


def require_positive_horizon(days: float) -> float:
    """Validate an analysis horizon in days"""
    if isinstance(days, bool) or not isinstance(days, (int, float)) or not math.isfinite(days) or days <= 0:
        raise ConfigurationError(f"Horizon must be a positive number of days, got {days!r}")
    return days
