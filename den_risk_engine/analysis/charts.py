#!/usr/bin/env python3
"""
Yield Ranking Charts

Top-N score bars, score versus volatility, and liquidation probability
across a collateral ratio ladder. Every function returns its Figure and only
writes to disk when given a path.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..core.records import LiquidationAssessment, ScoredPool


def setup_chart_style():
    """Consistent chart styling"""
    plt.style.use('default')
    sns.set_palette("husl")
    plt.rcParams['figure.facecolor'] = 'white'
    plt.rcParams['axes.facecolor'] = 'white'
    plt.rcParams['axes.grid'] = True
    plt.rcParams['grid.alpha'] = 0.3


def _save(fig: plt.Figure, output_path: Optional[Path]):
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=300, bbox_inches='tight')


def plot_top_scores(ranking: Sequence[ScoredPool], top_n: int = 10, delta: Optional[int] = None,
                    output_path: Optional[Path] = None) -> plt.Figure:
    """Horizontal bars of the top-N risk-adjusted scores"""
    setup_chart_style()
    top = list(ranking[:top_n])
    frame = pd.DataFrame({
        "symbol": [pool.symbol for pool in top],
        "score": [pool.risk_adjusted_score for pool in top],
    })

    fig, ax = plt.subplots(figsize=(12, max(4, 0.6 * len(top) + 2)))
    if not frame.empty:
        colors = ['#2ca02c' if score >= 0 else '#d62728' for score in frame["score"]]
        positions = np.arange(len(frame))
        ax.barh(positions, frame["score"], color=colors, alpha=0.8)
        ax.set_yticks(positions)
        ax.set_yticklabels(frame["symbol"])
        ax.invert_yaxis()
        ax.axvline(0, color='black', linewidth=0.8)

    title = "Top Pools by Risk-Adjusted Score"
    if delta is not None:
        title += f" ({delta}-day horizon)"
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.set_xlabel("Risk-Adjusted Score")
    ax.set_ylabel("")

    fig.tight_layout()
    _save(fig, output_path)
    return fig


def plot_score_vs_volatility(ranking: Sequence[ScoredPool], output_path: Optional[Path] = None) -> plt.Figure:
    """Scatter of annual volatility against score, sized by APY"""
    setup_chart_style()
    frame = pd.DataFrame({
        "symbol": [pool.symbol for pool in ranking],
        "volatility": [pool.volatility for pool in ranking],
        "score": [pool.risk_adjusted_score for pool in ranking],
        "apy": [(pool.apy or 0.0) * 100 for pool in ranking],
    })

    fig, ax = plt.subplots(figsize=(12, 8))
    if not frame.empty:
        sns.scatterplot(data=frame, x="volatility", y="score", size="apy", sizes=(40, 400),
                        alpha=0.7, ax=ax)
        for _, row in frame.head(10).iterrows():
            ax.annotate(row["symbol"], (row["volatility"], row["score"]),
                        xytext=(5, 5), textcoords='offset points', fontsize=8)
        ax.set_xscale('log')

    ax.set_title("Risk-Adjusted Score vs Volatility", fontsize=14, fontweight='bold')
    ax.set_xlabel("Annual Volatility (%)")
    ax.set_ylabel("Risk-Adjusted Score")

    fig.tight_layout()
    _save(fig, output_path)
    return fig


def plot_liquidation_curve(ladder: Sequence[Tuple[float, LiquidationAssessment]], liquidation_ratio: float,
                           output_path: Optional[Path] = None) -> plt.Figure:
    """Liquidation probability across collateral ratios"""
    setup_chart_style()
    ratios = np.array([ratio for ratio, _ in ladder], dtype=float)
    probabilities = np.array([assessment.probability for _, assessment in ladder], dtype=float)

    fig, ax = plt.subplots(figsize=(12, 7))
    ax.plot(ratios * 100, probabilities * 100, marker='o', linewidth=2)
    ax.axvline(liquidation_ratio * 100, color='red', linestyle='--', alpha=0.7,
               label=f'Liquidation ratio ({liquidation_ratio:.0%})')

    ax.set_title("Liquidation Probability by Collateral Ratio", fontsize=14, fontweight='bold')
    ax.set_xlabel("Collateral Ratio (%)")
    ax.set_ylabel("Liquidation Probability (%)")
    ax.legend()

    fig.tight_layout()
    _save(fig, output_path)
    return fig
