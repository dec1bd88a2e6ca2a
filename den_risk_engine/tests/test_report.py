#!/usr/bin/env python3
"""
Report and Chart Test Suite
"""

import json
from datetime import datetime

import matplotlib.pyplot as plt
import pytest

from den_risk_engine.analysis.charts import plot_liquidation_curve, plot_score_vs_volatility, plot_top_scores
from den_risk_engine.analysis.report_builder import (
    YieldReportBuilder, build_horizon_markdown_report, horizon_summary, ranking_to_dataframe,
)
from den_risk_engine.core.liquidation import LiquidationProbabilityModel
from den_risk_engine.engine.config import EngineConfig
from den_risk_engine.engine.pipeline import analyze_horizons, score_pools

RAW_POOLS = [
    {"symbol": "WBERA-HONEY", "apy": 12, "il7d": 20, "tvlUsd": 4_000_000, "pool": "p-a"},
    {"symbol": "USDC-HONEY", "apy": 5, "volatility": 2, "tvlUsd": 9_000_000, "pool": "p-b"},
    {"symbol": "IBGT-WBERA", "apy": 45, "il7d": 60, "pool": "p-c"},
    {"symbol": "BYUSD-HONEY", "apy": 3, "il7d": 0.6},
    {"symbol": "NO-VOL", "apy": 80},
]


class TestYieldReportBuilder:
    """Text, markdown and payload reports"""

    def setup_method(self):
        self.config = EngineConfig()
        self.result = score_pools(RAW_POOLS, self.config)
        self.builder = YieldReportBuilder(self.config, self.result.delta)

    def test_text_report_lists_top_pools_with_medals(self):
        report = self.builder.build_text_report(self.result.ranking, top_n=3)

        assert "🥇" in report and "🥈" in report and "🥉" in report
        for pool in self.result.ranking[:3]:
            assert pool.symbol in report
        assert self.result.ranking[3].symbol not in report
        assert "$4.00M" in report or "$9.00M" in report

    def test_text_report_empty(self):
        assert "No scorable pools" in self.builder.build_text_report([])

    def test_markdown_report(self, tmp_path):
        output = tmp_path / "reports" / "ranking.md"
        report = self.builder.build_markdown_report(self.result.ranking, self.result.dropped, output_path=output)

        assert report.startswith("# Risk-Adjusted Yield Ranking")
        assert "## Parameters" in report
        assert "| Rank | Symbol |" in report
        assert "NO-VOL: no derivable volatility" in report
        assert output.read_text(encoding="utf-8") == report

    def test_payload(self):
        timestamp = datetime(2024, 6, 12, 9, 30)
        payload = self.builder.build_payload(self.result.ranking, self.result.dropped, timestamp=timestamp)

        metadata = payload["metadata"]
        assert metadata["timestamp"] == "2024-06-12T09:30:00"
        assert metadata["delta"] == 7
        assert metadata["totalPools"] == 4
        assert metadata["droppedPools"][0]["symbol"] == "NO-VOL"
        assert metadata["calculationConfig"]["liquidationProbability"] == 0.005

        first = payload["pools"][0]
        assert first["symbol"] == self.result.ranking[0].symbol
        assert first["riskAdjustedScore"] == self.result.ranking[0].risk_adjusted_score
        assert "aprHorizon" in first["scoreComponents"]

        json.dumps(payload)

    def test_dataframe_export(self):
        frame = ranking_to_dataframe(self.result.ranking)

        assert list(frame.index) == [1, 2, 3, 4]
        assert frame.loc[1, "symbol"] == self.result.ranking[0].symbol
        assert {"riskAdjustedScore", "aprHorizon", "downsideVolatility", "tvlUsd"} <= set(frame.columns)

    def test_dataframe_export_empty(self):
        frame = ranking_to_dataframe([])
        assert frame.empty
        assert "riskAdjustedScore" in frame.columns

    def test_horizon_summary(self):
        summary = horizon_summary(analyze_horizons(RAW_POOLS, self.config), top_n=2)
        assert "7-day horizon" in summary
        assert "90-day horizon" in summary

    def test_horizon_summary_shows_probability_used(self):
        summary = horizon_summary(analyze_horizons(RAW_POOLS, self.config), top_n=2)
        assert "7-day horizon (liquidation probability 0.5000%):" in summary

    def test_horizon_markdown_report(self, tmp_path):
        analysis = analyze_horizons(RAW_POOLS, self.config, horizons=(7, 30))
        path = tmp_path / "reports" / "horizons.md"
        report = build_horizon_markdown_report(analysis, self.config, top_n=2, output_path=path)

        assert report.startswith("# Risk-Adjusted Yield Ranking by Horizon")
        assert "**Horizons:** 7 days, 30 days" in report
        assert "## 7-Day Ranking" in report
        assert "## 30-Day Ranking" in report
        assert "| 30d APR |" in report
        assert "Liquidation probability used: 0.5000%" in report
        assert "NO-VOL: " in report
        assert path.read_text(encoding="utf-8") == report


class TestCharts:
    """Figures are returned and only saved on request"""

    def setup_method(self):
        self.result = score_pools(RAW_POOLS, EngineConfig())

    def teardown_method(self):
        plt.close('all')

    def test_top_scores_chart(self, tmp_path):
        output = tmp_path / "charts" / "top.png"
        fig = plot_top_scores(self.result.ranking, top_n=3, delta=7, output_path=output)
        assert fig.axes[0].get_title().endswith("(7-day horizon)")
        assert output.exists()

    def test_score_vs_volatility_chart(self, tmp_path):
        fig = plot_score_vs_volatility(self.result.ranking)
        assert fig.axes[0].get_xlabel() == "Annual Volatility (%)"
        assert list(tmp_path.iterdir()) == []

    def test_liquidation_curve(self, tmp_path):
        ladder = LiquidationProbabilityModel().probability_ladder(1.1, 0.6, 30)
        output = tmp_path / "curve.png"
        fig = plot_liquidation_curve(ladder, 1.1, output_path=output)
        assert fig.axes[0].get_ylabel() == "Liquidation Probability (%)"
        assert output.exists()

    @pytest.mark.parametrize("plot", [plot_top_scores, plot_score_vs_volatility])
    def test_empty_ranking(self, plot):
        assert plot([]) is not None
