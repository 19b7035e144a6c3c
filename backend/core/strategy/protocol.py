"""Interfaces between the signal pipeline and its collaborators.

This module provides:
- SentimentProvider: Runtime-checkable Protocol for the external analysis source
- CandleSource: Protocol for whatever supplies candle windows
- PipelineResult: Standard return type from one pipeline run
- Type aliases for callback functions used by the live service
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, runtime_checkable

from core.models.candle import Candle
from core.models.signal import ExternalSentiment, SignalValidation, TradingSignal
from core.models.structure import MultiTimeframeAnalysis


# ---------------------------------------------------------------------------
# Callback type aliases
# ---------------------------------------------------------------------------
SignalCallback = Callable[[TradingSignal], Awaitable[None]]


# ---------------------------------------------------------------------------
# PipelineResult: standard return value from SignalPipeline.run
# ---------------------------------------------------------------------------
@dataclass
class PipelineResult:
    """Result of running analysis, synthesis and validation on one window.

    Attributes:
        analysis: Multi-timeframe analysis the signal was derived from.
        signal: Synthesized signal, or None when the window gave no trade.
        validation: Validator verdict for ``signal`` (None without a signal).
        sentiment: External sentiment used, or None when degraded.
    """

    analysis: MultiTimeframeAnalysis | None = None
    signal: TradingSignal | None = None
    validation: SignalValidation | None = None
    sentiment: ExternalSentiment | None = None

    @property
    def is_valid(self) -> bool:
        return (
            self.signal is not None
            and self.validation is not None
            and self.validation.overall_valid
        )


# ---------------------------------------------------------------------------
# SentimentProvider Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class SentimentProvider(Protocol):
    """Protocol for the optional external (AI) market read.

    Implementations may be slow or fail; callers bound every lookup with a
    timeout and treat failure as "no sentiment".
    """

    async def analyze(
        self,
        symbol: str,
        timeframe: str,
        language: str = "en",
    ) -> ExternalSentiment | None:
        """Return the provider's sentiment for a symbol, or None if unavailable.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT').
            timeframe: Primary timeframe of the analysis.
            language: Preferred language for the reasons text.
        """
        ...


# ---------------------------------------------------------------------------
# CandleSource Protocol
# ---------------------------------------------------------------------------
class CandleSource(Protocol):
    """Latest candle window for one symbol and timeframe, ascending."""

    async def get_candles(self, symbol: str, timeframe: str) -> list[Candle]: ...
