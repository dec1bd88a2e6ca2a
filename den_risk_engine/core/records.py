#!/usr/bin/env python3
"""
Risk Engine Records

Canonical pool records and the derived, per-run entities produced by the
volatility, liquidation and scoring stages. Derived records are frozen: a run
creates them once and nothing mutates them afterwards.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


class Regime(Enum):
    """Coarse market volatility regimes"""
    LOW = "LOW"
    NORMAL = "NORMAL"
    ELEVATED = "ELEVATED"
    HIGH = "HIGH"


@dataclass(frozen=True)
class PoolRecord:
    """Canonical pool record produced by the normalizer"""
    symbol: str
    apy: Optional[float]
    volatility: Optional[float]
    volatility_source: Optional[str] = None
    tvl_usd: Optional[float] = None
    volume_usd_7d: Optional[float] = None
    pool_id: Optional[str] = None
    project: Optional[str] = None
    chain: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "apy": self.apy,
            "volatility": self.volatility,
            "volatilitySource": self.volatility_source,
            "tvlUsd": self.tvl_usd,
            "volumeUsd7d": self.volume_usd_7d,
            "poolId": self.pool_id,
            "project": self.project,
            "chain": self.chain,
        }


@dataclass(frozen=True)
class DroppedRecord:
    """A raw record the normalizer could not turn into a scorable pool"""
    symbol: str
    reason: str
    pool_id: Optional[str] = None


@dataclass(frozen=True)
class NormalizationResult:
    """Output of a normalizer batch: kept records plus drop diagnostics"""
    records: Tuple[PoolRecord, ...]
    dropped: Tuple[DroppedRecord, ...] = ()

    @property
    def kept_count(self) -> int:
        return len(self.records)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


class PriceSeries:
    """
    Ordered (timestamp, price) observations for one asset.

    Timestamps must be strictly increasing and prices strictly positive.
    Accepts epoch seconds, datetimes or pandas Timestamps as timestamps.
    """

    def __init__(self, points: Sequence[Tuple[Any, float]]):
        timestamps = []
        prices = []
        for timestamp, price in points:
            timestamps.append(self._to_epoch(timestamp))
            prices.append(float(price))

        for earlier, later in zip(timestamps, timestamps[1:]):
            if later <= earlier:
                raise ValueError("PriceSeries timestamps must be strictly increasing")
        for price in prices:
            if not math.isfinite(price) or price <= 0:
                raise ValueError(f"PriceSeries prices must be positive and finite, got {price}")

        self._timestamps = np.asarray(timestamps, dtype=float)
        self._prices = np.asarray(prices, dtype=float)

    @staticmethod
    def _to_epoch(timestamp: Any) -> float:
        if isinstance(timestamp, datetime):
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            return timestamp.timestamp()
        if isinstance(timestamp, pd.Timestamp):
            return timestamp.timestamp()
        return float(timestamp)

    @classmethod
    def from_prices(cls, prices: Sequence[float], start: float = 0.0, step: float = 86_400.0) -> "PriceSeries":
        """Build a daily series from bare prices"""
        return cls([(start + i * step, price) for i, price in enumerate(prices)])

    @classmethod
    def from_series(cls, series: pd.Series) -> "PriceSeries":
        """Build from a pandas Series indexed by timestamp"""
        series = series.dropna().sort_index()
        return cls(list(zip(series.index, series.values)))

    @property
    def prices(self) -> np.ndarray:
        return self._prices.copy()

    @property
    def timestamps(self) -> np.ndarray:
        return self._timestamps.copy()

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self):
        return iter(zip(self._timestamps.tolist(), self._prices.tolist()))


@dataclass(frozen=True)
class VolatilityMetrics:
    """Volatility statistics of one price series (annualized unless noted)"""
    historical_vol: float
    recent_30_day_vol: float
    ewma_vol: float
    volatility_of_volatility: float
    daily_volatility: float
    mean_return: float
    sample_size: int = 0

    @classmethod
    def empty(cls, sample_size: int = 0) -> "VolatilityMetrics":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, sample_size)

    @property
    def has_sufficient_data(self) -> bool:
        return self.sample_size >= 2

    def to_dict(self) -> Dict[str, float]:
        return {
            "historicalVol": self.historical_vol,
            "recent30DayVol": self.recent_30_day_vol,
            "ewmaVol": self.ewma_vol,
            "volatilityOfVolatility": self.volatility_of_volatility,
            "dailyVolatility": self.daily_volatility,
            "meanReturn": self.mean_return,
        }


@dataclass(frozen=True)
class MarketRegime:
    """Regime classification from the most recent returns"""
    regime: Regime
    risk_multiplier: float
    annualized_recent_vol: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regime": self.regime.value,
            "riskMultiplier": self.risk_multiplier,
            "annualizedRecentVol": self.annualized_recent_vol,
        }


@dataclass(frozen=True)
class VolatilityForecast:
    """Ensemble volatility forecast scaled to a horizon"""
    predictions: Dict[str, float]
    ensemble_prediction: float
    time_scaled_volatility: float
    horizon_days: float
    macro_multiplier: float
    confidence: float
    regime: MarketRegime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictions": dict(self.predictions),
            "ensemblePrediction": self.ensemble_prediction,
            "timeScaledVolatility": self.time_scaled_volatility,
            "horizonDays": self.horizon_days,
            "macroMultiplier": self.macro_multiplier,
            "confidence": self.confidence,
            "marketRegime": self.regime.to_dict(),
        }


@dataclass(frozen=True)
class LiquidationAssessment:
    """Probability that a collateralized position is liquidated within a horizon"""
    probability: float
    required_drop: float
    z_score: float
    scaled_volatility: float
    safety_buffer: float = 0.0
    at_threshold: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": self.probability,
            "requiredDrop": self.required_drop,
            "zScore": self.z_score,
            "scaledVolatility": self.scaled_volatility,
            "safetyBuffer": self.safety_buffer,
            "atThreshold": self.at_threshold,
        }


@dataclass(frozen=True)
class ScoreComponents:
    """Intermediate terms of the risk-adjusted score"""
    apr_horizon: float
    baseline_apr_horizon: float
    downside_volatility: float
    liquidation_loss: float
    correlation_haircut: float
    numerator: float
    delta: float
    baseline_volatility_horizon: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "aprHorizon": self.apr_horizon,
            "baselineAprHorizon": self.baseline_apr_horizon,
            "baselineVolatilityHorizon": self.baseline_volatility_horizon,
            "downsideVolatility": self.downside_volatility,
            "liquidationLoss": self.liquidation_loss,
            "correlationHaircut": self.correlation_haircut,
            "numerator": self.numerator,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class ScoredPool:
    """A pool record with its risk-adjusted score"""
    record: PoolRecord
    risk_adjusted_score: float
    score_components: ScoreComponents

    @property
    def symbol(self) -> str:
        return self.record.symbol

    @property
    def apy(self) -> Optional[float]:
        return self.record.apy

    @property
    def volatility(self) -> Optional[float]:
        return self.record.volatility

    def to_dict(self) -> Dict[str, Any]:
        payload = self.record.to_dict()
        payload["riskAdjustedScore"] = self.risk_adjusted_score
        payload["scoreComponents"] = self.score_components.to_dict()
        return payload


@dataclass(frozen=True)
class HorizonAnalysis:
    """Rankings of the same pool set across several horizons"""
    rankings: Dict[int, List[ScoredPool]] = field(default_factory=dict)
    dropped: Tuple[DroppedRecord, ...] = ()
    liquidation_probabilities: Dict[int, float] = field(default_factory=dict)

    def best_by_horizon(self) -> Dict[int, Optional[str]]:
        return {
            days: (ranking[0].symbol if ranking else None)
            for days, ranking in self.rankings.items()
        }
