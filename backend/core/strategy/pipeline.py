"""Analyze → synthesize → validate for one window of candles."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from core.analysis.market_structure import TREND_LOOKBACK
from core.analysis.timeframes import analyze_timeframes, primary_timeframe
from core.errors import DataUnavailableError, InsufficientDataError
from core.models.candle import Candle
from core.models.config import SignalGenerationConfig
from core.models.signal import ExternalSentiment
from core.strategy.protocol import PipelineResult, SentimentProvider
from core.strategy.sentiment import DEFAULT_SENTIMENT_TIMEOUT, fetch_sentiment
from core.strategy.synthesizer import SignalSynthesizer
from core.strategy.validator import SignalValidator

logger = logging.getLogger(__name__)

MIN_HISTORY = TREND_LOOKBACK


class SignalPipeline:
    """Runs the full generation pipeline for one symbol.

    The pipeline itself is stateless; the only I/O is the optional sentiment
    lookup, which is bounded by ``sentiment_timeout``.
    """

    def __init__(
        self,
        config: SignalGenerationConfig | None = None,
        sentiment_provider: SentimentProvider | None = None,
        sentiment_timeout: float = DEFAULT_SENTIMENT_TIMEOUT,
    ):
        self.config = config or SignalGenerationConfig()
        self.sentiment_provider = sentiment_provider
        self.sentiment_timeout = sentiment_timeout
        self.synthesizer = SignalSynthesizer(self.config)
        self.validator = SignalValidator(self.config)

    def _check_history(self, candles_by_timeframe: Mapping[str, Sequence[Candle]]) -> None:
        for timeframe in self.config.timeframes:
            candles = candles_by_timeframe.get(timeframe)
            if not candles:
                raise DataUnavailableError(f"no candles supplied for timeframe {timeframe}")
            if len(candles) < MIN_HISTORY:
                raise InsufficientDataError(
                    f"{timeframe} has {len(candles)} candles, need {MIN_HISTORY}"
                )

    def evaluate(
        self,
        symbol: str,
        candles_by_timeframe: Mapping[str, Sequence[Candle]],
        sentiment: ExternalSentiment | None = None,
    ) -> PipelineResult:
        """Synchronous pipeline run with an already-known sentiment (or none).

        Raises:
            DataUnavailableError: If a configured timeframe has no candles at all.
        """
        try:
            self._check_history(candles_by_timeframe)
        except InsufficientDataError as e:
            logger.debug(f"{symbol}: {e}, no signal")
            return PipelineResult(sentiment=sentiment)

        mtf = analyze_timeframes(
            candles_by_timeframe, self.config.timeframes, self.config.timeframe_weights
        )
        primary = candles_by_timeframe[primary_timeframe(self.config.timeframes)]
        signal = self.synthesizer.synthesize(symbol, mtf, primary, sentiment)
        if signal is None:
            return PipelineResult(analysis=mtf, sentiment=sentiment)

        validation = self.validator.validate(signal, mtf)
        if validation.overall_valid:
            logger.info(
                f"{symbol}: {signal.type.value.upper()} signal @ {signal.entry} "
                f"confidence={signal.confidence:.2f} rr={signal.risk_reward:.2f}"
            )
        else:
            logger.debug(
                f"{symbol}: {signal.type.value} rejected (score={validation.score}, "
                f"confidence={signal.confidence:.2f})"
            )
        return PipelineResult(
            analysis=mtf, signal=signal, validation=validation, sentiment=sentiment
        )

    async def run(
        self,
        symbol: str,
        candles_by_timeframe: Mapping[str, Sequence[Candle]],
    ) -> PipelineResult:
        """Fetch sentiment (bounded, optional) then evaluate the window."""
        sentiment = None
        if self.config.use_ai:
            sentiment = await fetch_sentiment(
                self.sentiment_provider,
                symbol,
                primary_timeframe(self.config.timeframes),
                self.config.alert_config.language,
                timeout=self.sentiment_timeout,
            )
        return self.evaluate(symbol, candles_by_timeframe, sentiment)
