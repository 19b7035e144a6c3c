"""Report formatting for backtest results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import orjson

from backtest.simulator import BacktestResult
from backtest.stats import SignalPerformance
from backtest.walkforward import WalkForwardResult


def _trade_dict(r: BacktestResult) -> dict:
    return {
        "signal_id": r.signal_id,
        "symbol": r.symbol,
        "type": r.signal_type.value,
        "entry_price": float(r.entry_price),
        "exit_price": float(r.exit_price),
        "exit_reason": r.exit_reason.value,
        "exit_time": r.exit_time.isoformat(),
        "take_profit_tier": r.take_profit_tier,
        "pnl": float(r.pnl),
        "pnl_percentage": round(r.pnl_percentage, 4),
        "holding_hours": round(r.holding_time.total_seconds() / 3600, 2),
        "max_drawdown": round(r.max_drawdown, 4),
        "max_profit": round(r.max_profit, 4),
    }


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(run: WalkForwardResult, perf: SignalPerformance) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print(f"  WALK-FORWARD BACKTEST: {run.symbol}")
        print("=" * 70)
        print(f"  Anchors evaluated: {run.anchors_evaluated} ({run.anchors_failed} skipped)")
        if run.interrupted:
            print("  Sweep was interrupted; results are partial")

        # Overall
        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Total signals:  {perf.total_signals}")
        print(f"  Wins:           {perf.successful_signals}")
        print(f"  Win rate:       {perf.win_rate * 100:.1f}%")
        print(f"  Average P&L:    {perf.average_pnl:+.2f}%")
        print(f"  Total return:   {perf.total_return * 100:+.2f}% (compounded)")
        print(f"  Sharpe (approx, per trade, no annualization): {perf.sharpe_ratio:.2f}")
        print(f"  Max drawdown:   {perf.max_drawdown:.2f}%")
        hours = perf.average_holding_time.total_seconds() / 3600
        print(f"  Avg holding:    {hours:.1f}h")
        if perf.best_trade and perf.worst_trade:
            print(f"  Best trade:     {perf.best_trade.pnl_percentage:+.2f}%")
            print(f"  Worst trade:    {perf.worst_trade.pnl_percentage:+.2f}%")

        # Exit reasons
        if perf.exit_reasons:
            print("\n" + "-" * 70)
            print("  EXIT REASONS")
            print("-" * 70)
            for reason, count in perf.exit_reasons.items():
                print(f"  {reason:<14} {count:>6}")

        # By Direction
        if perf.by_direction:
            print("\n" + "-" * 70)
            print("  BY DIRECTION")
            print("-" * 70)
            print(f"  {'Direction':<12} {'Total':>6} {'Wins':>6} {'Win%':>8}")
            for s in perf.by_direction:
                print(f"  {s.direction:<12} {s.total:>6} {s.wins:>6} {s.win_rate * 100:>7.1f}%")

        # Excursions
        if perf.excursions:
            print("\n" + "-" * 70)
            print("  EXCURSION DISTRIBUTION (% of entry)")
            print("-" * 70)
            for cat in ["win", "loss"]:
                if cat not in perf.excursions:
                    continue
                e = perf.excursions[cat]
                label = "Winning trades" if cat == "win" else "Losing trades"
                print(f"\n  {label} (n={e.count}):")
                print(f"    Drawdown: avg={e.avg_drawdown:.3f}  p50={e.drawdown_p50:.3f}  p90={e.drawdown_p90:.3f}")
                print(f"    Profit:   avg={e.avg_profit:.3f}  p50={e.profit_p50:.3f}  p90={e.profit_p90:.3f}")

        # Recent trades
        if perf.recent_performance:
            print("\n" + "-" * 70)
            print(f"  RECENT TRADES (last {len(perf.recent_performance)})")
            print("-" * 70)
            print(f"  {'Exit time':<20} {'Type':<5} {'Reason':<12} {'P&L%':>8}")
            for r in perf.recent_performance:
                print(
                    f"  {r.exit_time:%Y-%m-%d %H:%M}     {r.signal_type.value:<5} "
                    f"{r.exit_reason.value:<12} {r.pnl_percentage:>+7.2f}%"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(run: WalkForwardResult, perf: SignalPerformance) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "metadata": {
                "symbol": run.symbol,
                "anchors_evaluated": run.anchors_evaluated,
                "anchors_failed": run.anchors_failed,
                "interrupted": run.interrupted,
                "elapsed_seconds": round(run.elapsed_seconds, 2),
            },
            "overall": {
                "total_signals": perf.total_signals,
                "successful_signals": perf.successful_signals,
                "win_rate": round(perf.win_rate, 4),
                "average_pnl": round(perf.average_pnl, 4),
                "total_return": round(perf.total_return, 4),
                "sharpe_ratio_approx": round(perf.sharpe_ratio, 4),
                "max_drawdown": round(perf.max_drawdown, 4),
                "average_holding_hours": round(
                    perf.average_holding_time.total_seconds() / 3600, 2
                ),
                "best_trade": _trade_dict(perf.best_trade) if perf.best_trade else None,
                "worst_trade": _trade_dict(perf.worst_trade) if perf.worst_trade else None,
            },
            "exit_reasons": perf.exit_reasons,
            "by_symbol": [
                {
                    "symbol": s.symbol,
                    "total": s.total,
                    "wins": s.wins,
                    "win_rate": round(s.win_rate, 4),
                    "total_pnl_pct": round(s.total_pnl_pct, 4),
                }
                for s in perf.by_symbol
            ],
            "by_direction": [
                {
                    "direction": s.direction,
                    "total": s.total,
                    "wins": s.wins,
                    "win_rate": round(s.win_rate, 4),
                }
                for s in perf.by_direction
            ],
            "excursions": {
                cat: {
                    "count": e.count,
                    "avg_drawdown": e.avg_drawdown,
                    "avg_profit": e.avg_profit,
                    "drawdown_p50": e.drawdown_p50,
                    "drawdown_p90": e.drawdown_p90,
                    "profit_p50": e.profit_p50,
                    "profit_p90": e.profit_p90,
                }
                for cat, e in perf.excursions.items()
            },
            "trades": [_trade_dict(r) for r in run.results],
        }

    @staticmethod
    def save_json(run: WalkForwardResult, perf: SignalPerformance, filepath: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(run, perf)
        with open(filepath, "wb") as f:
            f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        print(f"\nResults saved to {filepath}")
