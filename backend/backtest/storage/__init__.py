"""Backtest storage layer: candle sources."""

from backtest.storage.candle_source import CsvCandleSource

__all__ = [
    "CsvCandleSource",
]
