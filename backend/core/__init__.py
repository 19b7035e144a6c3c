"""Core shared logic for market structure analysis and signal generation.

This package contains pure business logic with no I/O dependencies
(no storage or network access). It is shared between the live signal
service (app/) and the backtesting system (backtest/).
"""
