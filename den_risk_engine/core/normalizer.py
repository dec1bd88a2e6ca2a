#!/usr/bin/env python3
"""
Pool Record Normalizer

Turns heterogeneous raw pool records from yield-aggregation feeds into
canonical PoolRecords. Volatility is resolved through an explicit, ordered
list of strategies; records where nothing yields a volatility are dropped
with a reason rather than scored with a made-up default.
"""

import logging
import math
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from .math import RiskMath
from .records import DroppedRecord, NormalizationResult, PoolRecord

logger = logging.getLogger(__name__)


# Checked in this order; the first usable value wins
VOLATILITY_FIELDS = (
    "il7d", "il30d", "il1d", "il365d",
    "impermanentLoss7d", "impermanentLoss30d", "impermanentLoss",
    "volatility", "volatility7d", "volatility30d",
    "priceVolatility", "vol7d", "vol30d",
    "std7d", "std30d", "stdDev7d", "stdDev30d",
    "variance7d", "variance30d", "riskScore",
    "poolVolatility", "tradingVolatility",
)

CATEGORICAL_VOLATILITY = {
    "low": 10.0,
    "medium": 25.0,
    "high": 50.0,
    "very high": 80.0,
    "extreme": 120.0,
}

# (current price field, price 7 days earlier)
PRICE_FIELD_PAIRS = (
    ("priceUsd", "price7dAgo"),
    ("price", "price7d"),
    ("currentPrice", "previousPrice"),
)

MIN_VOLATILITY = 0.5
MAX_VOLATILITY = 300.0
MIN_DAILY_TURNOVER = 0.01
TURNOVER_VOLATILITY_SCALE = 200.0
TURNOVER_VOLATILITY_CAP = 150.0

# Stability pools publish no volatility; symbol class estimates, opt-in only
STABILITY_POOL_VOLATILITY = (
    (("usdc", "usdt"), 2.0),
    (("honey", "nect"), 5.0),
)
STABILITY_POOL_FALLBACK_VOLATILITY = 10.0

VolatilityResolution = Tuple[float, str]


def _as_number(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None"""
    if RiskMath.is_finite_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def resolve_field_volatility(raw: Mapping[str, Any]) -> Optional[VolatilityResolution]:
    """Volatility from the first usable known volatility-like field"""
    for field in VOLATILITY_FIELDS:
        value = raw.get(field)
        if value is None:
            continue

        number = _as_number(value)
        if number is not None:
            return round(abs(number), 2), field

        if isinstance(value, str):
            category = CATEGORICAL_VOLATILITY.get(value.strip().lower())
            if category is not None:
                return category, f"{field}_categorical"

    return None


def resolve_price_change_volatility(raw: Mapping[str, Any]) -> Optional[VolatilityResolution]:
    """Annualized volatility estimate from a 7-day price change"""
    for current_field, past_field in PRICE_FIELD_PAIRS:
        current = _as_number(raw.get(current_field))
        past = _as_number(raw.get(past_field))
        if current is None or past is None:
            continue
        if current <= 0 or past <= 0:
            continue

        price_change = abs(current - past) / past
        volatility = price_change * 100 * math.sqrt(RiskMath.WEEKS_PER_YEAR)
        return round(volatility, 2), "calculated_from_price"

    return None


def resolve_turnover_volatility(raw: Mapping[str, Any]) -> Optional[VolatilityResolution]:
    """Volume/TVL turnover proxy, only when daily turnover exceeds 1%"""
    volume = _as_number(raw.get("volumeUsd7d"))
    tvl = _as_number(raw.get("tvlUsd"))
    if volume is None or tvl is None:
        return None
    if volume <= 0 or tvl <= 0:
        return None

    daily_volume_ratio = (volume / 7) / tvl
    if daily_volume_ratio <= MIN_DAILY_TURNOVER:
        return None

    volatility = min(daily_volume_ratio * TURNOVER_VOLATILITY_SCALE, TURNOVER_VOLATILITY_CAP)
    return round(volatility, 2), "volume_tvl_estimation"


def resolve_stability_pool_volatility(raw: Mapping[str, Any]) -> Optional[VolatilityResolution]:
    """Symbol-class volatility for stability pools"""
    symbol = str(raw.get("symbol") or "").lower()
    for tokens, volatility in STABILITY_POOL_VOLATILITY:
        if any(token in symbol for token in tokens):
            return volatility, "stability_pool_default"
    return STABILITY_POOL_FALLBACK_VOLATILITY, "stability_pool_default"


DEFAULT_RESOLVERS: Tuple[Callable[[Mapping[str, Any]], Optional[VolatilityResolution]], ...] = (
    resolve_field_volatility,
    resolve_price_change_volatility,
    resolve_turnover_volatility,
)


class PoolRecordNormalizer:
    """Normalizes raw feed records into canonical PoolRecords"""

    def __init__(self, stability_pool_defaults: bool = False):
        self.stability_pool_defaults = stability_pool_defaults
        resolvers = list(DEFAULT_RESOLVERS)
        if stability_pool_defaults:
            resolvers.append(resolve_stability_pool_volatility)
        self.resolvers = tuple(resolvers)

    def resolve_volatility(self, raw: Mapping[str, Any]) -> Optional[VolatilityResolution]:
        """Run the resolvers in order and clamp the first hit to [0.5, 300]"""
        for resolver in self.resolvers:
            resolution = resolver(raw)
            if resolution is not None:
                volatility, source = resolution
                return max(MIN_VOLATILITY, min(MAX_VOLATILITY, volatility)), source
        return None

    @staticmethod
    def normalize_apy(raw: Mapping[str, Any]) -> Optional[float]:
        """Percent APY (10 = 10%) to a decimal fraction rounded to 3 places"""
        apy = _as_number(raw.get("apy"))
        if apy is None:
            return None
        return round(apy / 100, 3)

    def normalize_record(self, raw: Any) -> Tuple[Optional[PoolRecord], Optional[DroppedRecord]]:
        """
        Normalize one raw record

        Returns:
            (record, None) when the record is usable, (None, dropped) otherwise
        """
        if not isinstance(raw, Mapping):
            return None, DroppedRecord(symbol="Unknown", reason=f"record is not a mapping ({type(raw).__name__})")

        symbol = str(raw.get("symbol") or "Unknown")
        pool_id = raw.get("pool") or raw.get("poolId")
        pool_id = str(pool_id) if pool_id is not None else None

        resolution = self.resolve_volatility(raw)
        if resolution is None:
            return None, DroppedRecord(symbol=symbol, reason="no derivable volatility", pool_id=pool_id)

        volatility, source = resolution
        tvl = _as_number(raw.get("tvlUsd"))
        volume = _as_number(raw.get("volumeUsd7d"))

        record = PoolRecord(
            symbol=symbol,
            apy=self.normalize_apy(raw),
            volatility=volatility,
            volatility_source=source,
            tvl_usd=tvl,
            volume_usd_7d=volume,
            pool_id=pool_id,
            project=raw.get("project"),
            chain=raw.get("chain"),
        )
        return record, None

    def normalize(self, raw_records: Iterable[Any]) -> NormalizationResult:
        """Normalize a batch, keeping input order and collecting drops"""
        records: List[PoolRecord] = []
        dropped: List[DroppedRecord] = []

        for raw in raw_records:
            record, drop = self.normalize_record(raw)
            if record is not None:
                records.append(record)
            else:
                logger.info("Excluded %s: %s", drop.symbol, drop.reason)
                dropped.append(drop)

        logger.debug("Normalized %d records, dropped %d", len(records), len(dropped))
        return NormalizationResult(records=tuple(records), dropped=tuple(dropped))


def flatten_pool_payload(payload: Any) -> List[Any]:
    """
    Extract raw pool records from the shapes the feeds produce: a bare list,
    {"pools": [...]}, {"data": [...]} or {"pools": {token: [...]}}
    """
    if isinstance(payload, list):
        return list(payload)
    if not isinstance(payload, Mapping):
        return []

    pools = payload.get("pools", payload.get("data", payload.get("stabilityPools")))
    if isinstance(pools, list):
        return list(pools)
    if isinstance(pools, Mapping):
        flattened = []
        for token_pools in pools.values():
            if isinstance(token_pools, list):
                flattened.extend(token_pools)
        return flattened
    return []
