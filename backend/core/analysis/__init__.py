"""Market structure analysis: per-timeframe features and MTF alignment."""

from core.analysis.market_structure import analyze
from core.analysis.timeframes import (
    aggregate,
    analyze_timeframes,
    determine_alignment,
    primary_timeframe,
)

__all__ = [
    "analyze",
    "aggregate",
    "analyze_timeframes",
    "determine_alignment",
    "primary_timeframe",
]
