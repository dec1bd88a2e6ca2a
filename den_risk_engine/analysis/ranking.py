#!/usr/bin/env python3
"""
Pool Ranking

Deterministic ordering of scored pools: score descending, then raw APY
descending, then symbol ascending. Always sorts a copy.
"""

import math
from typing import Iterable, List, Sequence, Tuple

from ..core.records import ScoredPool


def _ranking_key(pool: ScoredPool) -> Tuple[float, float, str]:
    score = pool.risk_adjusted_score
    if math.isnan(score):
        score = -math.inf
    apy = pool.apy if pool.apy is not None and not math.isnan(pool.apy) else -math.inf
    return (-score, -apy, pool.symbol)


class PoolRanker:
    """Sorts scored pools and exposes top-N slices"""

    def rank(self, scored_pools: Iterable[ScoredPool]) -> List[ScoredPool]:
        return sorted(scored_pools, key=_ranking_key)

    def top(self, scored_pools: Iterable[ScoredPool], n: int = 10) -> List[ScoredPool]:
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        return self.rank(scored_pools)[:n]

    @staticmethod
    def positions(ranked: Sequence[ScoredPool]) -> List[Tuple[int, ScoredPool]]:
        """1-based rank positions of an already ranked list"""
        return list(enumerate(ranked, start=1))
