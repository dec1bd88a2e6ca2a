#!/usr/bin/env python3
"""
Pool Ranker Test Suite
"""

import pytest

from den_risk_engine.analysis.ranking import PoolRanker
from den_risk_engine.core.records import PoolRecord, ScoreComponents, ScoredPool


def scored(symbol, score, apy=0.1, volatility=10.0):
    components = ScoreComponents(0.0, 0.0, 0.0, 0.0, 0.7, 0.0, 7)
    return ScoredPool(PoolRecord(symbol, apy, volatility), score, components)


class TestPoolRanker:
    """Deterministic ordering"""

    def setup_method(self):
        self.ranker = PoolRanker()
        self.pools = [
            scored("C", 0.5),
            scored("A", 1.2),
            scored("B", -0.3),
            scored("D", 0.9),
        ]

    def test_sorted_by_score_descending(self):
        assert [p.symbol for p in self.ranker.rank(self.pools)] == ["A", "D", "C", "B"]

    def test_ties_broken_by_apy_then_symbol(self):
        pools = [
            scored("zeta", 1.0, apy=0.10),
            scored("beta", 1.0, apy=0.20),
            scored("alpha", 1.0, apy=0.10),
            scored("none", 1.0, apy=None),
        ]
        assert [p.symbol for p in self.ranker.rank(pools)] == ["beta", "alpha", "zeta", "none"]

    def test_ranking_twice_is_identical(self):
        first = self.ranker.rank(self.pools)
        second = self.ranker.rank(self.pools)
        assert [p.symbol for p in first] == [p.symbol for p in second]

    def test_ranking_is_stable_under_input_order(self):
        forward = self.ranker.rank(self.pools)
        backward = self.ranker.rank(list(reversed(self.pools)))
        assert forward == backward

    def test_input_is_not_mutated(self):
        before = list(self.pools)
        self.ranker.rank(self.pools)
        assert self.pools == before

    def test_top(self):
        assert [p.symbol for p in self.ranker.top(self.pools, 2)] == ["A", "D"]
        assert len(self.ranker.top(self.pools, 10)) == 4
        assert self.ranker.top(self.pools, 0) == []

    def test_negative_top(self):
        with pytest.raises(ValueError):
            self.ranker.top(self.pools, -1)

    def test_nan_scores_sink(self):
        pools = self.pools + [scored("NAN", float("nan"))]
        assert self.ranker.rank(pools)[-1].symbol == "NAN"

    def test_positions(self):
        positions = PoolRanker.positions(self.ranker.rank(self.pools))
        assert [(rank, p.symbol) for rank, p in positions][:2] == [(1, "A"), (2, "D")]
