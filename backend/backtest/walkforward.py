"""Walk-forward strategy backtest.

A fixed-size analysis window slides across the history at a fixed step. At
each anchor the full generation pipeline runs on the trailing window, and a
valid signal is replayed against every candle from the anchor onward.

The same trailing window is fed to every configured timeframe, so a single
candle series is enough to run a sweep.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from backtest.simulator import BacktestResult, simulate
from core.errors import SignalEngineError
from core.models.candle import Candle, ensure_ascending
from core.models.config import SignalGenerationConfig
from core.models.signal import TradingSignal
from core.strategy.pipeline import SignalPipeline

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 100
DEFAULT_STEP = 20


@dataclass
class WalkForwardResult:
    """Everything a sweep produced, including what it skipped."""

    symbol: str
    results: list[BacktestResult] = field(default_factory=list)
    signals: list[TradingSignal] = field(default_factory=list)
    anchors_evaluated: int = 0
    anchors_failed: int = 0
    interrupted: bool = False
    elapsed_seconds: float = 0.0


class WalkForwardBacktester:
    """Slide the generation pipeline across history and replay its signals."""

    def __init__(
        self,
        config: SignalGenerationConfig | None = None,
        window: int = DEFAULT_WINDOW,
        step: int = DEFAULT_STEP,
        pipeline: SignalPipeline | None = None,
    ):
        if window <= 0 or step <= 0:
            raise ValueError(f"window and step must be > 0, got {window}/{step}")
        self.config = config or SignalGenerationConfig()
        self.window = window
        self.step = step
        # No sentiment provider: historical sentiment is not reproducible
        self.pipeline = pipeline or SignalPipeline(self.config)

    def anchors(self, total: int) -> range:
        """Anchor indices in ``[window, total - window)``."""
        return range(self.window, max(total - self.window, self.window), self.step)

    async def run(
        self,
        symbol: str,
        candles: Sequence[Candle],
        stop_event: asyncio.Event | None = None,
    ) -> WalkForwardResult:
        """Run the sweep over one symbol's candle history.

        Setting ``stop_event`` stops the sweep before the next anchor; the
        results gathered so far are returned with ``interrupted=True``.

        Raises:
            ValueError: If the candles are not strictly ascending.
        """
        start_time = time.time()
        history = ensure_ascending(candles)
        outcome = WalkForwardResult(symbol=symbol)

        for anchor in self.anchors(len(history)):
            if stop_event is not None and stop_event.is_set():
                logger.info(f"{symbol}: walk-forward interrupted at anchor {anchor}")
                outcome.interrupted = True
                break

            outcome.anchors_evaluated += 1
            window = history[anchor - self.window : anchor]
            try:
                result = self.pipeline.evaluate(
                    symbol, {tf: window for tf in self.config.timeframes}
                )
                if result.is_valid:
                    replay = simulate(result.signal, history[anchor:], self.config.tie_break)
                    outcome.signals.append(result.signal)
                    outcome.results.append(replay)
            except (SignalEngineError, ValueError) as e:
                outcome.anchors_failed += 1
                logger.warning(f"{symbol}: anchor {anchor} skipped: {e}")

            # Yield so cancellation and stop_event are honored between anchors
            await asyncio.sleep(0)

        outcome.elapsed_seconds = time.time() - start_time
        logger.info(
            f"{symbol}: {outcome.anchors_evaluated} anchors, "
            f"{len(outcome.results)} signals replayed, {outcome.anchors_failed} skipped "
            f"in {outcome.elapsed_seconds:.1f}s"
        )
        return outcome
