"""Walk-forward backtesting for the SMC signal engine.

Independent of the live service: only depends on core/ for business logic
(the CLI additionally reuses app.signal_config to load YAML settings).

Storage:
- Candles: read from CSV files (timestamp,open,high,low,close,volume)

Usage:
    python -m backtest --csv data/BTCUSDT_4h.csv --symbol BTCUSDT
"""

from backtest.simulator import BacktestResult, ExitReason, simulate
from backtest.stats import PerformanceCalculator, SignalPerformance
from backtest.walkforward import WalkForwardBacktester, WalkForwardResult

__all__ = [
    "BacktestResult",
    "ExitReason",
    "simulate",
    "PerformanceCalculator",
    "SignalPerformance",
    "WalkForwardBacktester",
    "WalkForwardResult",
]
