"""Live service wiring.

Market data ingestion lives outside this package: callers hand in any object
satisfying ``CandleSource`` and the service polls it for every configured
symbol and timeframe.
"""

import asyncio
import logging

from app.config import Settings, get_settings
from app.services import AlertDispatcher, SignalService
from app.signal_config import load_signal_config
from app.storage import SignalRegistry
from core.models.signal import TradingSignal
from core.strategy.protocol import CandleSource, SentimentProvider

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and reduce noise from third-party libraries."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_service(
    settings: Settings | None = None,
    sentiment_provider: SentimentProvider | None = None,
) -> SignalService:
    """Assemble registry, dispatcher and service from settings and signals.yaml."""
    settings = settings or get_settings()
    config = load_signal_config(settings.config_path or None)

    registry = SignalRegistry(config.risk_parameters, max_history=settings.max_history)
    dispatcher = AlertDispatcher(
        config.alert_config, webhook_timeout=settings.webhook_timeout_seconds
    )
    return SignalService(
        config,
        registry,
        dispatcher,
        sentiment_provider=sentiment_provider,
        sentiment_timeout=settings.sentiment_timeout_seconds,
        sweep_interval=settings.expiry_sweep_interval_seconds,
    )


async def poll_once(
    service: SignalService,
    source: CandleSource,
    symbols: list[str],
) -> list[TradingSignal]:
    """Fetch every symbol's windows and run them through the service."""
    candles_by_symbol = {}
    for symbol in symbols:
        candles_by_symbol[symbol] = {
            tf: await source.get_candles(symbol, tf) for tf in service.config.timeframes
        }
    return await service.process_all(candles_by_symbol)


async def run(
    source: CandleSource,
    interval: float,
    settings: Settings | None = None,
    sentiment_provider: SentimentProvider | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Poll ``source`` every ``interval`` seconds until ``stop_event`` is set."""
    settings = settings or get_settings()
    stop_event = stop_event or asyncio.Event()
    service = build_service(settings, sentiment_provider)

    logger.info(
        f"Starting signal service for {', '.join(settings.symbols)} "
        f"on {', '.join(service.config.timeframes)}"
    )
    await service.start()
    try:
        while not stop_event.is_set():
            try:
                admitted = await poll_once(service, source, settings.symbols)
                if admitted:
                    logger.info(f"Admitted {len(admitted)} new signals")
            except Exception as e:
                logger.error(f"Polling error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        await service.stop()
        logger.info("Shutting down...")
