#!/usr/bin/env python3
"""
Den Risk Engine - Main Entry Point

Ranks yield pools by risk-adjusted score from a pool feed dump, optionally
deriving the liquidation probability from a collateral price history.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt

from den_risk_engine.analysis.charts import plot_liquidation_curve, plot_score_vs_volatility, plot_top_scores
from den_risk_engine.analysis.report_builder import (
    YieldReportBuilder, build_horizon_markdown_report, horizon_summary,
)
from den_risk_engine.core.errors import RiskEngineError
from den_risk_engine.core.liquidation import DEFAULT_RATIO_LADDER, LiquidationProbabilityModel
from den_risk_engine.core.normalizer import flatten_pool_payload
from den_risk_engine.core.records import PriceSeries
from den_risk_engine.engine.config import EngineConfig
from den_risk_engine.engine.pipeline import analyze_horizons, assess_position, score_pools


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Risk-adjusted yield ranking and liquidation probability",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m den_risk_engine.main --pools pools.json                    # 7-day ranking
  python -m den_risk_engine.main --pools pools.json --multi-horizon    # 7/30/90-day rankings
  python -m den_risk_engine.main --pools pools.json --prices btc.json \\
      --current-ratio 2.0 --liquidation-ratio 1.1                      # modelled liquidation risk
        """
    )

    parser.add_argument('--pools', type=Path, required=True,
                        help='JSON file with raw pool records (list or {"pools": [...]})')
    parser.add_argument('--horizon', type=int, default=7,
                        help='Analysis horizon in days (default: 7)')
    parser.add_argument('--top', type=int, default=10,
                        help='Number of pools to show (default: 10)')
    parser.add_argument('--multi-horizon', action='store_true',
                        help='Rank over 7, 30 and 90 days')

    # Configuration overrides
    parser.add_argument('--baseline-apr', type=float,
                        help='Baseline annual rate as a decimal (default: 0.03)')
    parser.add_argument('--liquidation-probability', type=float,
                        help='Flat liquidation probability (default: 0.005)')
    parser.add_argument('--correlation', type=float,
                        help='Assumed correlation with the reference portfolio (default: 0.3)')
    parser.add_argument('--haircut', type=float,
                        help='Emergency unwind haircut (default: 0.4)')

    # Modelled liquidation probability
    parser.add_argument('--prices', type=Path,
                        help='JSON price history [[timestamp, price], ...] of the collateral')
    parser.add_argument('--current-ratio', type=float,
                        help='Current collateral ratio, e.g. 2.0 for 200%%')
    parser.add_argument('--liquidation-ratio', type=float,
                        help='Liquidation collateral ratio, e.g. 1.1 for 110%%')

    parser.add_argument('--stability-pools', action='store_true',
                        help='Estimate volatility for stability pools from their symbol')

    # Outputs
    parser.add_argument('--markdown', type=Path, help='Write a markdown report here')
    parser.add_argument('--json', type=Path, help='Write the JSON payload here')
    parser.add_argument('--chart-dir', type=Path, help='Write charts into this directory')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    return parser


def create_engine_config(args) -> EngineConfig:
    """Engine configuration from command-line overrides"""
    overrides = {
        "horizon_days": args.horizon,
        "baseline_apr": args.baseline_apr,
        "liquidation_probability": args.liquidation_probability,
        "assumed_correlation": args.correlation,
        "emergency_haircut": args.haircut,
    }
    return EngineConfig.from_options({k: v for k, v in overrides.items() if v is not None})


def load_pools(path: Path) -> list:
    with open(path, 'r', encoding='utf-8') as f:
        payload = json.load(f)
    return flatten_pool_payload(payload)


def load_prices(path: Path) -> PriceSeries:
    with open(path, 'r', encoding='utf-8') as f:
        points = json.load(f)
    return PriceSeries([(timestamp, price) for timestamp, price in points])


def require_position(args) -> None:
    if args.current_ratio is None or args.liquidation_ratio is None:
        raise ValueError("--prices needs both --current-ratio and --liquidation-ratio")


def apply_price_history(args, config: EngineConfig) -> EngineConfig:
    """Replace the flat liquidation probability with the modelled one"""
    require_position(args)

    series = load_prices(args.prices)
    analysis = assess_position(series, args.current_ratio, args.liquidation_ratio, config)
    forecast = analysis.forecast
    liquidation = analysis.liquidation

    print("📉 COLLATERAL RISK")
    print("=" * 70)
    print(f"Regime: {forecast.regime.regime.value} (x{forecast.regime.risk_multiplier:.1f})")
    print(f"Forecast volatility: {forecast.ensemble_prediction:.2%} annual, "
          f"{forecast.time_scaled_volatility:.2%} over {config.horizon_days} days")
    print(f"Confidence: {forecast.confidence:.0%}")
    print(f"Required drop: {liquidation.required_drop:.2%} | z-score: {liquidation.z_score:.3f}")
    print(f"Liquidation probability: {liquidation.probability:.6%}")
    print()

    if args.chart_dir:
        model = LiquidationProbabilityModel.from_config(config)
        ratios = sorted({r for r in DEFAULT_RATIO_LADDER if r >= args.liquidation_ratio} | {args.current_ratio})
        ladder = model.probability_ladder(args.liquidation_ratio, forecast.ensemble_prediction,
                                          config.horizon_days, ratios=ratios)
        fig = plot_liquidation_curve(ladder, args.liquidation_ratio,
                                     output_path=args.chart_dir / "liquidation_probability_curve.png")
        plt.close(fig)

    return config.with_overrides(liquidation_probability=liquidation.probability)


def run_single_horizon(raw_records: list, config: EngineConfig, args) -> int:
    result = score_pools(raw_records, config, stability_pool_defaults=args.stability_pools)
    builder = YieldReportBuilder(config, result.delta)

    print(builder.build_text_report(result.ranking, top_n=args.top))
    print()
    print(f"✅ Scored {len(result.ranking)} pools, excluded {len(result.dropped)}")

    if args.markdown:
        builder.build_markdown_report(result.ranking, result.dropped, top_n=args.top, output_path=args.markdown)
        print(f"📄 Report saved to: {args.markdown}")

    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        payload = builder.build_payload(result.ranking, result.dropped, timestamp=result.generated_at)
        with open(args.json, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        print(f"💾 Results saved to: {args.json}")

    if args.chart_dir:
        fig = plot_top_scores(result.ranking, top_n=args.top, delta=result.delta,
                              output_path=args.chart_dir / "top_scores.png")
        plt.close(fig)
        fig = plot_score_vs_volatility(result.ranking, output_path=args.chart_dir / "score_vs_volatility.png")
        plt.close(fig)
        print(f"📊 Charts saved to: {args.chart_dir}")

    return 0


def run_multi_horizon(raw_records: list, config: EngineConfig, args) -> int:
    series = None
    if args.prices:
        require_position(args)
        series = load_prices(args.prices)

    analysis = analyze_horizons(raw_records, config, stability_pool_defaults=args.stability_pools,
                                price_series=series, current_ratio=args.current_ratio,
                                liquidation_ratio=args.liquidation_ratio)
    print(horizon_summary(analysis, top_n=min(args.top, 3)))
    print()
    for days, best in analysis.best_by_horizon().items():
        print(f"Best {days}-day pool: {best or 'n/a'}")

    if args.markdown:
        build_horizon_markdown_report(analysis, config, top_n=args.top, output_path=args.markdown)
        print(f"📄 Report saved to: {args.markdown}")

    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            str(days): YieldReportBuilder(
                config.with_overrides(liquidation_probability=analysis.liquidation_probabilities[days]), days
            ).build_payload(ranking, analysis.dropped)
            for days, ranking in analysis.rankings.items()
        }
        with open(args.json, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        print(f"💾 Results saved to: {args.json}")

    if args.chart_dir:
        for days, ranking in analysis.rankings.items():
            fig = plot_top_scores(ranking, top_n=args.top, delta=days,
                                  output_path=args.chart_dir / f"top_scores_{days}d.png")
            plt.close(fig)
        print(f"📊 Charts saved to: {args.chart_dir}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line interface"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = create_engine_config(args)
        raw_records = load_pools(args.pools)

        print(f"Loaded {len(raw_records)} raw pool records from {args.pools}")
        print()

        if args.multi_horizon:
            return run_multi_horizon(raw_records, config, args)

        if args.prices:
            config = apply_price_history(args, config)
        return run_single_horizon(raw_records, config, args)

    except (RiskEngineError, ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
