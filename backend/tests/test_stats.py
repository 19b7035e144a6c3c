"""Tests for backtest performance statistics."""

import math
import statistics
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backtest.simulator import BacktestResult, ExitReason
from backtest.stats import PerformanceCalculator
from core.models.signal import SignalType

T0 = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)

# Six wins and four losses averaging +1.2%
SCENARIO_RETURNS = [4.0, 4.0, 4.0, 4.0, 2.0, 2.0, -2.0, -2.0, -2.0, -2.0]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_result(
    pnl_pct: float,
    index: int = 0,
    symbol: str = "BTCUSDT",
    signal_type: SignalType = SignalType.BUY,
    holding_hours: int = 4,
    max_drawdown: float = -1.0,
    max_profit: float = 1.0,
) -> BacktestResult:
    """Result on a 50000 entry; pnl follows from the percentage."""
    entry = Decimal("50000")
    pnl = Decimal(str(pnl_pct)) * 500
    if pnl_pct > 0:
        reason = ExitReason.TAKE_PROFIT
    elif pnl_pct < 0:
        reason = ExitReason.STOP_LOSS
    else:
        reason = ExitReason.TIME_EXIT
    return BacktestResult(
        signal_id=f"sig-{index}",
        symbol=symbol,
        signal_type=signal_type,
        entry_price=entry,
        exit_price=entry + pnl,
        exit_reason=reason,
        exit_time=T0 + timedelta(hours=index),
        take_profit_tier=1 if pnl_pct > 0 else None,
        pnl=pnl,
        pnl_percentage=pnl_pct,
        holding_time=timedelta(hours=holding_hours),
        max_drawdown=max_drawdown,
        max_profit=max(max_profit, pnl_pct),
    )


def scenario_results() -> list[BacktestResult]:
    return [make_result(p, i) for i, p in enumerate(SCENARIO_RETURNS)]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestOverall:
    def test_win_rate_and_average(self):
        perf = PerformanceCalculator().calculate(scenario_results())
        assert perf.total_signals == 10
        assert perf.successful_signals == 6
        assert perf.win_rate == pytest.approx(0.6)
        assert perf.average_pnl == pytest.approx(1.2)

    def test_total_return_compounds(self):
        perf = PerformanceCalculator().calculate(scenario_results())
        expected = math.prod(1 + r / 100 for r in SCENARIO_RETURNS) - 1
        assert perf.total_return == pytest.approx(expected)

    def test_sharpe_is_mean_over_population_std(self):
        perf = PerformanceCalculator().calculate(scenario_results())
        expected = 1.2 / statistics.pstdev(SCENARIO_RETURNS)
        assert perf.sharpe_ratio == pytest.approx(expected)

    def test_constant_returns_have_zero_sharpe(self):
        perf = PerformanceCalculator().calculate([make_result(2.0, i) for i in range(3)])
        assert perf.sharpe_ratio == 0.0

    def test_best_and_worst(self):
        results = scenario_results()
        perf = PerformanceCalculator().calculate(results)
        assert perf.best_trade.pnl_percentage == 4.0
        assert perf.worst_trade.pnl_percentage == -2.0

    def test_max_drawdown_and_holding(self):
        results = [
            make_result(2.0, 0, holding_hours=2, max_drawdown=-0.5),
            make_result(-2.0, 1, holding_hours=6, max_drawdown=-2.3),
        ]
        perf = PerformanceCalculator().calculate(results)
        assert perf.max_drawdown == pytest.approx(-2.3)
        assert perf.average_holding_time == timedelta(hours=4)

    def test_recent_is_last_n(self):
        results = [make_result(1.0, i) for i in range(12)]
        perf = PerformanceCalculator(recent_count=10).calculate(results)
        assert perf.recent_performance == results[2:]

    def test_empty(self):
        perf = PerformanceCalculator().calculate([])
        assert perf.total_signals == 0
        assert perf.win_rate == 0.0
        assert perf.average_pnl == 0.0
        assert perf.total_return == 0.0
        assert perf.sharpe_ratio == 0.0
        assert perf.best_trade is None
        assert perf.worst_trade is None
        assert perf.recent_performance == []


class TestBreakdowns:
    def test_exit_reasons_include_zero_counts(self):
        perf = PerformanceCalculator().calculate(scenario_results())
        assert perf.exit_reasons == {"stop_loss": 4, "take_profit": 6, "time_exit": 0}

    def test_by_symbol(self):
        results = [
            make_result(2.0, 0, "BTCUSDT"),
            make_result(-2.0, 1, "BTCUSDT"),
            make_result(4.0, 2, "ETHUSDT"),
        ]
        perf = PerformanceCalculator().calculate(results)
        btc, eth = perf.by_symbol
        assert btc.symbol == "BTCUSDT"
        assert btc.total == 2
        assert btc.win_rate == pytest.approx(0.5)
        assert btc.total_pnl_pct == pytest.approx(0.0)
        assert eth.wins == 1

    def test_by_direction(self):
        results = [
            make_result(2.0, 0, signal_type=SignalType.BUY),
            make_result(-2.0, 1, signal_type=SignalType.SELL),
            make_result(2.0, 2, signal_type=SignalType.SELL),
        ]
        perf = PerformanceCalculator().calculate(results)
        assert [(d.direction, d.total, d.wins) for d in perf.by_direction] == [
            ("BUY", 1, 1),
            ("SELL", 2, 1),
        ]

    def test_excursions_split_by_outcome(self):
        perf = PerformanceCalculator().calculate(scenario_results())
        assert perf.excursions["win"].count == 6
        assert perf.excursions["loss"].count == 4
        assert perf.excursions["loss"].avg_drawdown == pytest.approx(-1.0)

    def test_single_result_excursion(self):
        perf = PerformanceCalculator().calculate([make_result(2.0, max_drawdown=-0.7)])
        assert perf.excursions["win"].drawdown_p50 == pytest.approx(-0.7)
        assert "loss" not in perf.excursions
