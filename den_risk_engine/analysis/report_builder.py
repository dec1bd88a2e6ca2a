#!/usr/bin/env python3
"""
Yield Ranking Report Builder

Turns ranked ScoredPools into a console summary, a markdown report, a
JSON-ready payload and a pandas frame. Persisting any of these is left to
the caller.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..core.records import DroppedRecord, HorizonAnalysis, ScoredPool
from ..engine.config import EngineConfig

MEDALS = ("🥇", "🥈", "🥉")


def _pct(value: Optional[float], digits: int = 2) -> str:
    if value is None:
        return "n/a"
    return f"{value * 100:.{digits}f}%"


def _millions(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"${value / 1e6:.2f}M"


class YieldReportBuilder:
    """Builds summaries of one ranking run"""

    def __init__(self, config: EngineConfig, delta: int):
        self.config = config
        self.delta = delta

    def build_text_report(self, ranking: Sequence[ScoredPool], top_n: int = 10) -> str:
        """Plain text top-N listing with medal markers for the podium"""
        lines = [
            f"🏆 TOP {min(top_n, len(ranking))} POOLS BY RISK-ADJUSTED SCORE ({self.delta}-day horizon)",
            "=" * 70,
        ]

        for i, pool in enumerate(ranking[:top_n]):
            marker = MEDALS[i] if i < len(MEDALS) else f"{i + 1}."
            components = pool.score_components
            lines.append(f"{marker} {pool.symbol}")
            lines.append(f"   Score: {pool.risk_adjusted_score:.4f}")
            lines.append(f"   APY: {_pct(pool.apy)} | Volatility: {pool.volatility:.2f}%")
            lines.append(f"   {self.delta}d APR: {_pct(components.apr_horizon, 4)} | "
                         f"Downside vol: {_pct(components.downside_volatility, 4)}")
            lines.append(f"   TVL: {_millions(pool.record.tvl_usd)} | Pool: {pool.record.pool_id or 'n/a'}")

        if not ranking:
            lines.append("No scorable pools")

        return "\n".join(lines)

    def build_markdown_report(self, ranking: Sequence[ScoredPool], dropped: Sequence[DroppedRecord] = (),
                              top_n: int = 10, output_path: Optional[Path] = None) -> str:
        """
        Markdown report with a parameters section and a ranking table

        Args:
            ranking: Pools already in rank order
            dropped: Records excluded by the normalizer
            top_n: Rows in the ranking table
            output_path: Optional path to save the report
        """
        sections = [
            self._title_section(),
            self._parameters_section(),
            self._ranking_section(ranking, top_n),
        ]
        if dropped:
            sections.append(self._dropped_section(dropped))

        report = "\n\n".join(sections) + "\n"

        if output_path:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report, encoding="utf-8")

        return report

    def _title_section(self) -> str:
        timestamp = datetime.now().strftime("%B %d, %Y")
        return f"""# Risk-Adjusted Yield Ranking

**Report Generated:** {timestamp}
**Horizon:** {self.delta} days"""

    def _parameters_section(self) -> str:
        c = self.config
        return f"""## Parameters

| Parameter | Value |
|---|---|
| Baseline APR | {_pct(c.baseline_apr)} |
| Liquidation probability | {c.liquidation_probability:.4%} |
| Emergency haircut | {_pct(c.emergency_haircut, 1)} |
| Assumed correlation | {c.assumed_correlation:.2f} |
| Volatility floor | {c.volatility_floor:g} |"""

    def _ranking_section(self, ranking: Sequence[ScoredPool], top_n: int) -> str:
        rows = [
            "## Ranking",
            "",
            f"| Rank | Symbol | Score | APY | Volatility | {self.delta}d APR | Downside Vol | TVL |",
            "|---|---|---|---|---|---|---|---|",
        ]
        for rank, pool in enumerate(ranking[:top_n], start=1):
            components = pool.score_components
            rows.append(
                f"| {rank} | {pool.symbol} | {pool.risk_adjusted_score:.4f} | {_pct(pool.apy)} | "
                f"{pool.volatility:.2f}% | {_pct(components.apr_horizon, 4)} | "
                f"{_pct(components.downside_volatility, 4)} | {_millions(pool.record.tvl_usd)} |"
            )
        return "\n".join(rows)

    @staticmethod
    def _dropped_section(dropped: Sequence[DroppedRecord]) -> str:
        rows = ["## Excluded Pools", ""]
        rows.extend(f"- {record.symbol}: {record.reason}" for record in dropped)
        return "\n".join(rows)

    def build_payload(self, ranking: Sequence[ScoredPool], dropped: Sequence[DroppedRecord] = (),
                      timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        """JSON-ready payload with camelCase field names"""
        timestamp = timestamp or datetime.now()
        return {
            "metadata": {
                "timestamp": timestamp.isoformat(),
                "delta": self.delta,
                "calculationConfig": self.config.as_metadata(),
                "totalPools": len(ranking),
                "droppedPools": [
                    {"symbol": record.symbol, "reason": record.reason, "poolId": record.pool_id}
                    for record in dropped
                ],
            },
            "pools": [pool.to_dict() for pool in ranking],
        }


def ranking_to_dataframe(ranking: Sequence[ScoredPool]) -> pd.DataFrame:
    """One row per pool in rank order, score components flattened"""
    rows: List[Dict[str, Any]] = []
    for rank, pool in enumerate(ranking, start=1):
        row = {"rank": rank}
        row.update(pool.record.to_dict())
        row["riskAdjustedScore"] = pool.risk_adjusted_score
        row.update(pool.score_components.to_dict())
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=["rank", "symbol", "apy", "volatility", "riskAdjustedScore"])
    return pd.DataFrame(rows).set_index("rank")


def build_horizon_markdown_report(analysis: HorizonAnalysis, config: EngineConfig, top_n: int = 10,
                                  output_path: Optional[Path] = None) -> str:
    """Markdown report with one ranking table per horizon"""
    sections = [
        f"""# Risk-Adjusted Yield Ranking by Horizon

**Report Generated:** {datetime.now().strftime("%B %d, %Y")}
**Horizons:** {", ".join(f"{days} days" for days in analysis.rankings)}""",
        YieldReportBuilder(config, 0)._parameters_section(),
    ]

    for days, ranking in analysis.rankings.items():
        builder = YieldReportBuilder(config, days)
        section = builder._ranking_section(ranking, top_n).replace("## Ranking", f"## {days}-Day Ranking", 1)
        probability = analysis.liquidation_probabilities.get(days)
        if probability is not None:
            section += f"\n\nLiquidation probability used: {probability:.4%}"
        sections.append(section)

    if analysis.dropped:
        sections.append(YieldReportBuilder._dropped_section(analysis.dropped))

    report = "\n\n".join(sections) + "\n"

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report, encoding="utf-8")

    return report


def horizon_summary(analysis: HorizonAnalysis, top_n: int = 3) -> str:
    """Best pools per horizon, one block per horizon"""
    lines = ["📊 MULTI-HORIZON ANALYSIS", "=" * 70]
    for days, ranking in analysis.rankings.items():
        probability = analysis.liquidation_probabilities.get(days)
        if probability is not None:
            lines.append(f"{days}-day horizon (liquidation probability {probability:.4%}):")
        else:
            lines.append(f"{days}-day horizon:")
        if not ranking:
            lines.append("   No scorable pools")
            continue
        for rank, pool in enumerate(ranking[:top_n], start=1):
            lines.append(f"   {rank}. {pool.symbol}: score {pool.risk_adjusted_score:.4f}, "
                         f"APY {_pct(pool.apy)}, volatility {pool.volatility:.2f}%")
    return "\n".join(lines)
