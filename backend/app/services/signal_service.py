"""Live signal orchestration: generate → validate → admit → alert.

Also owns the periodic expiry sweep that moves stale active signals into
history.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Mapping, Sequence

from app.services.alert_dispatcher import AlertDispatcher
from app.storage.signal_registry import SignalRegistry
from core.errors import DataUnavailableError
from core.models.candle import Candle
from core.models.config import SignalGenerationConfig
from core.models.signal import TradingSignal
from core.strategy.pipeline import SignalPipeline
from core.strategy.protocol import SentimentProvider, SignalCallback
from core.strategy.sentiment import DEFAULT_SENTIMENT_TIMEOUT

logger = logging.getLogger(__name__)


class SignalService:
    """Runs the pipeline for incoming candle windows and manages the results.

    The registry and dispatcher are injected so several services (or tests)
    never share hidden state.
    """

    def __init__(
        self,
        config: SignalGenerationConfig,
        registry: SignalRegistry,
        dispatcher: AlertDispatcher,
        sentiment_provider: SentimentProvider | None = None,
        sentiment_timeout: float = DEFAULT_SENTIMENT_TIMEOUT,
        sweep_interval: float = 60.0,
    ):
        self.config = config
        self.registry = registry
        self.dispatcher = dispatcher
        self.pipeline = SignalPipeline(config, sentiment_provider, sentiment_timeout)
        self.sweep_interval = sweep_interval

        self._callbacks: list[SignalCallback] = []
        self._sweep_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for admitted signals.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        """Unregister callback for admitted signals."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def process(
        self,
        symbol: str,
        candles_by_timeframe: Mapping[str, Sequence[Candle]],
    ) -> TradingSignal | None:
        """Generate, validate and admit a signal for one symbol's latest windows.

        Returns:
            The admitted signal, or None.

        Raises:
            DataUnavailableError: If a configured timeframe has no candles.
        """
        result = await self.pipeline.run(symbol, candles_by_timeframe)
        if not result.is_valid:
            return None

        signal = result.signal
        if not await self.registry.admit(signal, result.validation):
            return None

        await self.dispatcher.dispatch(signal)
        for callback in self._callbacks:
            try:
                await callback(signal)
            except Exception as e:
                logger.error(f"Signal callback error: {e}", exc_info=True)
        return signal

    async def process_all(
        self,
        candles_by_symbol: Mapping[str, Mapping[str, Sequence[Candle]]],
    ) -> list[TradingSignal]:
        """Process several symbols; one symbol's missing data does not stop the rest."""
        admitted: list[TradingSignal] = []
        for symbol, candles_by_timeframe in candles_by_symbol.items():
            try:
                signal = await self.process(symbol, candles_by_timeframe)
            except DataUnavailableError as e:
                logger.warning(f"{symbol}: {e}")
                continue
            if signal is not None:
                admitted.append(signal)
        return admitted

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.registry.expire_sweep(datetime.now(timezone.utc))
            except Exception as e:
                logger.error(f"Expiry sweep error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.sweep_interval)
            except asyncio.TimeoutError:
                pass

    async def start(self) -> None:
        """Start the periodic expiry sweep."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._stop_event.clear()
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Expiry sweep started (every {self.sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the sweep and release dispatcher resources."""
        self._stop_event.set()
        if self._sweep_task is not None:
            await self._sweep_task
            self._sweep_task = None
        await self.dispatcher.close()
        logger.info("Signal service stopped")
