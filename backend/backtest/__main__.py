"""CLI entry point for the walk-forward backtest.

Usage:
    python -m backtest --csv data/BTCUSDT_4h.csv --symbol BTCUSDT
    python -m backtest --csv data/ETHUSDT_1h.csv --symbol ETHUSDT --window 150 --step 10
    python -m backtest --csv data/BTCUSDT_4h.csv --config signals.yaml -o results.json
"""

import argparse
import asyncio
import logging
import os
import sys

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.signal_config import load_signal_config
from core.models.config import TieBreakPolicy

from backtest.config import get_backtest_settings
from backtest.report import ReportFormatter
from backtest.stats import PerformanceCalculator
from backtest.storage.candle_source import CsvCandleSource
from backtest.walkforward import WalkForwardBacktester


def parse_args() -> argparse.Namespace:
    settings = get_backtest_settings()
    parser = argparse.ArgumentParser(
        description="Walk-forward backtest of the SMC signal engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --csv data/BTCUSDT_4h.csv --symbol BTCUSDT
  python -m backtest --csv data/BTCUSDT_4h.csv --timeframes 1h,4h --tie-break take_profit_first
  python -m backtest --csv data/BTCUSDT_4h.csv -o results.json
        """,
    )
    parser.add_argument(
        "--csv",
        type=str,
        required=True,
        help="CSV file with timestamp,open,high,low,close,volume columns",
    )
    parser.add_argument(
        "--symbol",
        type=str,
        default="BTCUSDT",
        help="Symbol label for signals (default: BTCUSDT)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=settings.signals_config_path or None,
        help="Signal generation YAML (default: built-in defaults)",
    )
    parser.add_argument(
        "--timeframes",
        type=str,
        default=None,
        help="Comma-separated timeframes, overriding the config",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=settings.window,
        help=f"Analysis window in candles (default: {settings.window})",
    )
    parser.add_argument(
        "--step",
        type=int,
        default=settings.step,
        help=f"Anchor step in candles (default: {settings.step})",
    )
    parser.add_argument(
        "--tie-break",
        type=str,
        choices=[p.value for p in TieBreakPolicy],
        default=None,
        help="Exit when stop and target hit in one candle (default: from config)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args()


async def cmd_run_backtest(args: argparse.Namespace) -> None:
    """Run a walk-forward backtest."""
    config = load_signal_config(args.config)
    overrides = {}
    if args.timeframes:
        overrides["timeframes"] = [t.strip() for t in args.timeframes.split(",")]
    if args.tie_break:
        overrides["tie_break"] = TieBreakPolicy(args.tie_break)
    if overrides:
        config = config.model_validate({**config.model_dump(), **overrides})

    candles = CsvCandleSource(args.csv).load()
    if not candles:
        print(f"Error: no candles in {args.csv}")
        sys.exit(1)

    print(f"\nBacktest: {args.symbol}")
    print(
        f"Candles: {len(candles)} "
        f"({candles[0].timestamp:%Y-%m-%d} → {candles[-1].timestamp:%Y-%m-%d})"
    )
    print(f"Timeframes: {', '.join(config.timeframes)} | window={args.window} step={args.step}")

    backtester = WalkForwardBacktester(config, window=args.window, step=args.step)

    print("\nRunning backtest...")
    run = await backtester.run(args.symbol, candles)
    perf = PerformanceCalculator(get_backtest_settings().recent_count).calculate(run.results)

    # Print console report
    ReportFormatter.print_console(run, perf)

    # Optional: save JSON
    if args.output:
        ReportFormatter.save_json(run, perf, args.output)


async def main() -> None:
    args = parse_args()

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    await cmd_run_backtest(args)


if __name__ == "__main__":
    asyncio.run(main())
