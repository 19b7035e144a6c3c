"""Bounded-timeout sentiment lookup.

Sentiment is optional input: a slow or failing provider must never hold up
signal generation, so every lookup is wrapped in ``asyncio.wait_for`` and any
failure degrades to ``None``.
"""

from __future__ import annotations

import asyncio
import logging

from core.errors import ExternalAnalysisError
from core.models.signal import ExternalSentiment
from core.strategy.protocol import SentimentProvider

logger = logging.getLogger(__name__)

DEFAULT_SENTIMENT_TIMEOUT = 5.0


async def _lookup(
    provider: SentimentProvider,
    symbol: str,
    timeframe: str,
    language: str,
    timeout: float,
) -> ExternalSentiment | None:
    try:
        return await asyncio.wait_for(
            provider.analyze(symbol, timeframe, language), timeout=timeout
        )
    except asyncio.TimeoutError as e:
        raise ExternalAnalysisError(
            f"sentiment lookup for {symbol} timed out after {timeout}s"
        ) from e
    except Exception as e:
        raise ExternalAnalysisError(f"sentiment lookup for {symbol} failed: {e}") from e


async def fetch_sentiment(
    provider: SentimentProvider | None,
    symbol: str,
    timeframe: str,
    language: str = "en",
    timeout: float = DEFAULT_SENTIMENT_TIMEOUT,
) -> ExternalSentiment | None:
    """Ask the provider for sentiment, returning None on absence, failure or timeout."""
    if provider is None:
        return None

    try:
        sentiment = await _lookup(provider, symbol, timeframe, language, timeout)
    except ExternalAnalysisError as e:
        logger.warning(f"Degrading to MTF+SMC scoring: {e}")
        return None

    if sentiment is not None and not isinstance(sentiment, ExternalSentiment):
        logger.warning(
            f"Ignoring sentiment of unexpected type {type(sentiment).__name__} for {symbol}"
        )
        return None
    return sentiment
