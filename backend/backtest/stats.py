"""Performance statistics over backtest results.

Computes overall metrics, per-symbol and per-direction breakdowns, the exit
reason mix, and excursion (drawdown / profit) distributions.

Sharpe convention: mean(pnl%) / population stddev(pnl%) across trades. There
is no annualization and no risk-free rate, so it is an approximation for
comparing runs, not a finance-grade Sharpe ratio.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from statistics import quantiles
from typing import Sequence

import numpy as np

from backtest.simulator import BacktestResult, ExitReason
from core.models.signal import SignalType

logger = logging.getLogger(__name__)

RECENT_COUNT = 10


@dataclass
class SymbolStats:
    symbol: str
    total: int = 0
    wins: int = 0
    total_pnl_pct: float = 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.total if self.total > 0 else 0.0


@dataclass
class DirectionStats:
    direction: str  # "BUY" or "SELL"
    total: int = 0
    wins: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.total if self.total > 0 else 0.0


@dataclass
class ExcursionStats:
    category: str  # "win" or "loss"
    count: int = 0
    avg_drawdown: float = 0.0
    avg_profit: float = 0.0
    drawdown_p50: float = 0.0
    drawdown_p90: float = 0.0
    profit_p50: float = 0.0
    profit_p90: float = 0.0


@dataclass
class SignalPerformance:
    """Aggregate performance of a set of backtest results.

    ``win_rate`` and ``total_return`` are fractions (0.6 = 60%);
    ``average_pnl`` and ``max_drawdown`` are in percent.
    """

    total_signals: int = 0
    successful_signals: int = 0
    win_rate: float = 0.0
    average_pnl: float = 0.0
    total_return: float = 0.0
    sharpe_ratio: float = 0.0  # simplified, see module docstring
    max_drawdown: float = 0.0
    average_holding_time: timedelta = timedelta(0)
    best_trade: BacktestResult | None = None
    worst_trade: BacktestResult | None = None
    recent_performance: list[BacktestResult] = field(default_factory=list)

    exit_reasons: dict[str, int] = field(default_factory=dict)
    by_symbol: list[SymbolStats] = field(default_factory=list)
    by_direction: list[DirectionStats] = field(default_factory=list)
    excursions: dict[str, ExcursionStats] = field(default_factory=dict)


class PerformanceCalculator:
    """Calculate performance statistics from backtest results."""

    def __init__(self, recent_count: int = RECENT_COUNT):
        self.recent_count = recent_count

    def calculate(self, results: Sequence[BacktestResult]) -> SignalPerformance:
        """Aggregate results given in chronological order.

        Empty input yields a zeroed performance with no best/worst trade.
        """
        perf = SignalPerformance()
        if not results:
            return perf

        self._calc_overall(perf, results)
        self._calc_exit_reasons(perf, results)
        self._calc_by_symbol(perf, results)
        self._calc_by_direction(perf, results)
        self._calc_excursions(perf, results)
        return perf

    def _calc_overall(self, perf: SignalPerformance, results: Sequence[BacktestResult]) -> None:
        returns = np.array([r.pnl_percentage for r in results], dtype=np.float64)

        perf.total_signals = len(results)
        perf.successful_signals = sum(1 for r in results if r.pnl > 0)
        perf.win_rate = perf.successful_signals / perf.total_signals
        perf.average_pnl = float(np.mean(returns))
        perf.total_return = float(np.prod(1 + returns / 100) - 1)

        std = float(np.std(returns))
        perf.sharpe_ratio = perf.average_pnl / std if std > 0 else 0.0

        perf.max_drawdown = min(r.max_drawdown for r in results)
        total_holding = sum((r.holding_time for r in results), timedelta(0))
        perf.average_holding_time = total_holding / len(results)

        perf.best_trade = max(results, key=lambda r: r.pnl)
        perf.worst_trade = min(results, key=lambda r: r.pnl)
        perf.recent_performance = list(results[-self.recent_count:])

    def _calc_exit_reasons(
        self, perf: SignalPerformance, results: Sequence[BacktestResult]
    ) -> None:
        counts = {reason.value: 0 for reason in ExitReason}
        for r in results:
            counts[r.exit_reason.value] += 1
        perf.exit_reasons = counts

    def _calc_by_symbol(self, perf: SignalPerformance, results: Sequence[BacktestResult]) -> None:
        groups: dict[str, SymbolStats] = {}
        for r in results:
            if r.symbol not in groups:
                groups[r.symbol] = SymbolStats(symbol=r.symbol)
            stats = groups[r.symbol]
            stats.total += 1
            stats.total_pnl_pct += r.pnl_percentage
            if r.pnl > 0:
                stats.wins += 1
        perf.by_symbol = sorted(groups.values(), key=lambda s: s.total, reverse=True)

    def _calc_by_direction(
        self, perf: SignalPerformance, results: Sequence[BacktestResult]
    ) -> None:
        groups: dict[str, DirectionStats] = {}
        for r in results:
            label = "BUY" if r.signal_type == SignalType.BUY else "SELL"
            if label not in groups:
                groups[label] = DirectionStats(direction=label)
            stats = groups[label]
            stats.total += 1
            if r.pnl > 0:
                stats.wins += 1
        perf.by_direction = sorted(groups.values(), key=lambda s: s.direction)

    def _calc_excursions(
        self, perf: SignalPerformance, results: Sequence[BacktestResult]
    ) -> None:
        wins = [r for r in results if r.pnl > 0]
        losses = [r for r in results if r.pnl <= 0]
        if wins:
            perf.excursions["win"] = self._compute_distribution("win", wins)
        if losses:
            perf.excursions["loss"] = self._compute_distribution("loss", losses)

    def _compute_distribution(
        self, category: str, results: list[BacktestResult]
    ) -> ExcursionStats:
        drawdowns = sorted(r.max_drawdown for r in results)
        profits = sorted(r.max_profit for r in results)
        count = len(results)

        def pct(data: list[float], p: int) -> float:
            if not data:
                return 0.0
            if len(data) < 2:
                return data[0]
            q = quantiles(data, n=100)
            idx = min(p - 1, len(q) - 1)
            return round(q[idx], 4)

        return ExcursionStats(
            category=category,
            count=count,
            avg_drawdown=round(sum(drawdowns) / count, 4),
            avg_profit=round(sum(profits) / count, 4),
            drawdown_p50=pct(drawdowns, 50),
            drawdown_p90=pct(drawdowns, 10),  # deepest decile: drawdowns are negative
            profit_p50=pct(profits, 50),
            profit_p90=pct(profits, 90),
        )
