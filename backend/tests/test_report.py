"""Tests for backtest reporting and the CLI command."""

import argparse
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import orjson

from backtest.__main__ import cmd_run_backtest
from backtest.report import ReportFormatter
from backtest.simulator import BacktestResult, ExitReason
from backtest.stats import PerformanceCalculator
from backtest.walkforward import WalkForwardResult
from core.models.signal import SignalType

T0 = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)
T0_MS = 1748736000000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_result(index: int, pnl: str, reason: ExitReason) -> BacktestResult:
    entry = Decimal("50000")
    return BacktestResult(
        signal_id=f"sig-{index}",
        symbol="BTCUSDT",
        signal_type=SignalType.BUY,
        entry_price=entry,
        exit_price=entry + Decimal(pnl),
        exit_reason=reason,
        exit_time=T0 + timedelta(hours=index),
        take_profit_tier=1 if reason == ExitReason.TAKE_PROFIT else None,
        pnl=Decimal(pnl),
        pnl_percentage=float(Decimal(pnl) / entry * 100),
        holding_time=timedelta(hours=3),
        max_drawdown=-0.5,
        max_profit=4.0,
    )


def make_run() -> WalkForwardResult:
    return WalkForwardResult(
        symbol="BTCUSDT",
        results=[
            make_result(0, "2000", ExitReason.TAKE_PROFIT),
            make_result(1, "-1000", ExitReason.STOP_LOSS),
        ],
        anchors_evaluated=5,
        anchors_failed=1,
    )


def write_flat_csv(path, count: int = 260) -> None:
    lines = ["timestamp,open,high,low,close,volume"]
    for i in range(count):
        lines.append(f"{T0_MS + i * 3_600_000},100,100.5,99.5,100,10")
    path.write_text("\n".join(lines) + "\n")


# ---------------------------------------------------------------------------
# ReportFormatter
# ---------------------------------------------------------------------------

class TestReportFormatter:
    def test_to_dict(self):
        run = make_run()
        perf = PerformanceCalculator().calculate(run.results)
        data = ReportFormatter.to_dict(run, perf)

        assert data["metadata"]["anchors_evaluated"] == 5
        assert data["overall"]["total_signals"] == 2
        assert data["overall"]["win_rate"] == 0.5
        assert data["overall"]["best_trade"]["pnl"] == 2000.0
        assert data["exit_reasons"] == {"stop_loss": 1, "take_profit": 1, "time_exit": 0}
        assert data["trades"][1]["exit_reason"] == "stop_loss"
        assert data["trades"][0]["holding_hours"] == 3.0

    def test_save_json(self, tmp_path):
        run = make_run()
        perf = PerformanceCalculator().calculate(run.results)
        path = tmp_path / "results.json"

        ReportFormatter.save_json(run, perf, str(path))

        data = orjson.loads(path.read_bytes())
        assert data["metadata"]["symbol"] == "BTCUSDT"
        assert len(data["trades"]) == 2

    def test_print_console(self, capsys):
        run = make_run()
        ReportFormatter.print_console(run, PerformanceCalculator().calculate(run.results))
        out = capsys.readouterr().out
        assert "WALK-FORWARD BACKTEST: BTCUSDT" in out
        assert "Win rate:       50.0%" in out
        assert "EXIT REASONS" in out

    def test_print_console_empty(self, capsys):
        run = WalkForwardResult(symbol="ETHUSDT", interrupted=True)
        ReportFormatter.print_console(run, PerformanceCalculator().calculate([]))
        out = capsys.readouterr().out
        assert "results are partial" in out
        assert "Total signals:  0" in out


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestCli:
    async def test_run_backtest_writes_json(self, tmp_path, capsys):
        csv_path = tmp_path / "BTCUSDT_1h.csv"
        write_flat_csv(csv_path)
        config_path = tmp_path / "signals.yaml"
        config_path.write_text("use_ai: false\n")
        output = tmp_path / "out.json"

        args = argparse.Namespace(
            csv=str(csv_path),
            symbol="BTCUSDT",
            config=str(config_path),
            timeframes="1h,4h",
            window=100,
            step=20,
            tie_break="take_profit_first",
            output=str(output),
            verbose=False,
        )
        await cmd_run_backtest(args)

        data = orjson.loads(output.read_bytes())
        assert data["metadata"]["anchors_evaluated"] == 3
        # A flat market never produces a signal
        assert data["overall"]["total_signals"] == 0
        assert "Timeframes: 1h, 4h" in capsys.readouterr().out
