"""Signal synthesis from multi-timeframe structure and optional sentiment.

Scoring weights:
- MTF alignment 0.4, external sentiment 0.3, SMC 0.3.
- When no sentiment is available the remaining weights are renormalized
  (0.4/0.7 and 0.3/0.7) so a missing provider does not drag every score down.

Levels are structural: the stop sits on the nearest opposing key level of the
primary timeframe when one exists, otherwise a fixed percentage away. Targets
are placed at fixed multiples of the risk distance.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Sequence

from core.models.candle import Candle
from core.models.config import SignalGenerationConfig
from core.models.signal import (
    ExternalSentiment,
    Priority,
    Sentiment,
    SignalType,
    TradingSignal,
)
from core.models.structure import (
    Alignment,
    Bias,
    LevelType,
    MultiTimeframeAnalysis,
    StructuralAnalysis,
)

logger = logging.getLogger(__name__)

MTF_WEIGHT = 0.4
SENTIMENT_WEIGHT = 0.3
SMC_WEIGHT = 0.3
DIRECTION_MARGIN = 0.2

# SMC score contributions per unit of delta
ORDER_BLOCK_FACTOR = 0.1
BOS_FACTOR = 0.15
FLOW_FACTOR = 0.2

# Confluence factor weights
CONFLUENCE_ORDER_BLOCKS = 0.2
CONFLUENCE_LIQUIDITY = 0.2
CONFLUENCE_FVG = 0.15
CONFLUENCE_FLOW = 0.25
CONFLUENCE_TOTAL = (
    CONFLUENCE_ORDER_BLOCKS + CONFLUENCE_LIQUIDITY + CONFLUENCE_FVG + CONFLUENCE_FLOW
)
STRONG_FLOW = 0.5
REASONING_FLOW = 0.6
MAX_REASONS = 5


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def smc_score(analysis: StructuralAnalysis) -> float:
    """Directional SMC score of one timeframe in [-1, 1] (positive = bullish)."""
    ob_delta = analysis.count_order_blocks(Bias.BULLISH) - analysis.count_order_blocks(
        Bias.BEARISH
    )
    bos_delta = analysis.count_breaks(Bias.BULLISH) - analysis.count_breaks(Bias.BEARISH)
    score = (
        ob_delta * ORDER_BLOCK_FACTOR
        + bos_delta * BOS_FACTOR
        + analysis.institutional_flow.signed_strength * FLOW_FACTOR
    )
    return _clamp(score, -1.0, 1.0)


def smc_confluence(analysis: StructuralAnalysis) -> float:
    """Share of the confluence factors present on one timeframe, in [0, 1]."""
    present = 0.0
    if analysis.order_blocks:
        present += CONFLUENCE_ORDER_BLOCKS
    if analysis.liquidity_pools:
        present += CONFLUENCE_LIQUIDITY
    if analysis.unfilled_gaps:
        present += CONFLUENCE_FVG
    if analysis.institutional_flow.strength > STRONG_FLOW:
        present += CONFLUENCE_FLOW
    return present / CONFLUENCE_TOTAL


def calculate_risk_reward(entry: Decimal, stop_loss: Decimal, take_profit: Decimal) -> float:
    """Reward to the given target divided by risk to the stop."""
    risk = abs(entry - stop_loss)
    if risk == 0:
        return 0.0
    return float(abs(take_profit - entry) / risk)


def determine_priority(confidence: float, risk_reward: float) -> Priority:
    score = confidence * 0.6 + (min(risk_reward, 5.0) / 5.0) * 0.4
    if score >= 0.9:
        return Priority.CRITICAL
    if score >= 0.8:
        return Priority.HIGH
    if score >= 0.6:
        return Priority.MEDIUM
    return Priority.LOW


class SignalSynthesizer:
    """Turns a multi-timeframe analysis into at most one trading signal.

    Every method is a pure function of its arguments and the config; the
    synthesizer holds no state between calls.
    """

    def __init__(self, config: SignalGenerationConfig | None = None):
        self.config = config or SignalGenerationConfig()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _weights(self, sentiment: ExternalSentiment | None) -> tuple[float, float, float]:
        """(mtf, sentiment, smc) weights, renormalized when sentiment is absent."""
        if sentiment is None:
            remaining = MTF_WEIGHT + SMC_WEIGHT
            return MTF_WEIGHT / remaining, 0.0, SMC_WEIGHT / remaining
        return MTF_WEIGHT, SENTIMENT_WEIGHT, SMC_WEIGHT

    def smc_score(self, mtf: MultiTimeframeAnalysis) -> float:
        """SMC score averaged across timeframes (0 when SMC is disabled)."""
        if not self.config.use_smc or not mtf.timeframes:
            return 0.0
        scores = [smc_score(a) for a in mtf.timeframes.values()]
        return sum(scores) / len(scores)

    def smc_confluence(self, mtf: MultiTimeframeAnalysis) -> float:
        if not self.config.use_smc or not mtf.timeframes:
            return 0.0
        values = [smc_confluence(a) for a in mtf.timeframes.values()]
        return sum(values) / len(values)

    def directional_scores(
        self,
        mtf: MultiTimeframeAnalysis,
        sentiment: ExternalSentiment | None = None,
    ) -> tuple[float, float]:
        """Return (bullish_score, bearish_score)."""
        w_mtf, w_sent, w_smc = self._weights(sentiment)
        bullish = 0.0
        bearish = 0.0

        if mtf.alignment == Alignment.BULLISH:
            bullish += mtf.confidence * w_mtf
        elif mtf.alignment == Alignment.BEARISH:
            bearish += mtf.confidence * w_mtf

        if sentiment is not None:
            if sentiment.sentiment == Sentiment.BULLISH:
                bullish += sentiment.weight * w_sent
            elif sentiment.sentiment == Sentiment.BEARISH:
                bearish += sentiment.weight * w_sent

        smc = self.smc_score(mtf)
        bullish += max(smc, 0.0) * w_smc
        bearish += max(-smc, 0.0) * w_smc
        return bullish, bearish

    def determine_signal_type(
        self,
        mtf: MultiTimeframeAnalysis,
        sentiment: ExternalSentiment | None = None,
    ) -> SignalType | None:
        """Buy/sell when one side leads by the margin, else None (hold)."""
        bullish, bearish = self.directional_scores(mtf, sentiment)
        if bullish > bearish + DIRECTION_MARGIN:
            return SignalType.BUY
        if bearish > bullish + DIRECTION_MARGIN:
            return SignalType.SELL
        return None

    def calculate_signal_confidence(
        self,
        mtf: MultiTimeframeAnalysis,
        sentiment: ExternalSentiment | None = None,
    ) -> float:
        w_mtf, w_sent, w_smc = self._weights(sentiment)
        confidence = mtf.confidence * w_mtf + self.smc_confluence(mtf) * w_smc
        if sentiment is not None:
            confidence += sentiment.weight * w_sent
        return _clamp(confidence, 0.0, 1.0)

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def calculate_levels(
        self,
        signal_type: SignalType,
        entry: Decimal,
        primary: StructuralAnalysis,
    ) -> tuple[Decimal, list[Decimal]]:
        """Return (stop_loss, take_profits) for an entry price.

        The stop is the nearest support strictly below entry (buy) or the
        nearest resistance strictly above it (sell); without one it falls
        back to ``stop_loss_percentage`` away from entry.
        """
        pct = self.config.risk_parameters.stop_loss_percentage

        if signal_type == SignalType.BUY:
            supports = [
                lvl.price
                for lvl in primary.key_levels
                if lvl.type == LevelType.SUPPORT and lvl.price < entry
            ]
            stop = max(supports) if supports else entry * (1 - pct)
            risk = entry - stop
            targets = [entry + risk * m for m in self.config.take_profit_multiples]
        else:
            resistances = [
                lvl.price
                for lvl in primary.key_levels
                if lvl.type == LevelType.RESISTANCE and lvl.price > entry
            ]
            stop = min(resistances) if resistances else entry * (1 + pct)
            risk = stop - entry
            targets = [entry - risk * m for m in self.config.take_profit_multiples]

        return stop, targets

    # ------------------------------------------------------------------
    # Reasoning
    # ------------------------------------------------------------------

    def generate_reasoning(
        self,
        mtf: MultiTimeframeAnalysis,
        sentiment: ExternalSentiment | None = None,
    ) -> list[str]:
        reasons: list[str] = []

        if mtf.alignment != Alignment.CONFLICTED:
            reasons.append(
                f"Multi-timeframe alignment shows {mtf.alignment.value} structure"
            )

        if sentiment is not None:
            reasons.extend(sentiment.reasons[:2])

        for analysis in mtf.timeframes.values():
            if analysis.order_blocks:
                reasons.append(
                    f"{len(analysis.order_blocks)} order blocks identified on {analysis.timeframe}"
                )
            if analysis.break_of_structure:
                latest = analysis.break_of_structure[-1]
                reasons.append(
                    f"Recent {latest.type.value} break of structure at {latest.level}"
                )
            flow = analysis.institutional_flow
            if flow.strength > REASONING_FLOW:
                reasons.append(f"Strong institutional {flow.direction.value} detected")

        return reasons[:MAX_REASONS]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def synthesize(
        self,
        symbol: str,
        mtf: MultiTimeframeAnalysis,
        primary_candles: Sequence[Candle],
        sentiment: ExternalSentiment | None = None,
    ) -> TradingSignal | None:
        """Build a signal for the window, or None when there is no trade.

        Args:
            symbol: Trading pair.
            mtf: Aggregated analysis of the window.
            primary_candles: Primary-timeframe window; its last candle sets
                the entry price and the signal timestamp.
            sentiment: External sentiment, or None to score on MTF+SMC only.
        """
        if not primary_candles:
            return None
        if not self.config.use_ai:
            sentiment = None

        signal_type = self.determine_signal_type(mtf, sentiment)
        if signal_type is None:
            return None

        last = primary_candles[-1]
        entry = last.close
        stop_loss, take_profit = self.calculate_levels(signal_type, entry, mtf.primary)
        if stop_loss <= 0 or any(tp <= 0 for tp in take_profit):
            logger.debug(f"{symbol}: levels out of range (stop={stop_loss}), no signal")
            return None

        risk_reward = calculate_risk_reward(entry, stop_loss, take_profit[0])
        if risk_reward < self.config.risk_parameters.min_risk_reward:
            logger.debug(
                f"{symbol}: risk/reward {risk_reward:.2f} below minimum "
                f"{self.config.risk_parameters.min_risk_reward}, no signal"
            )
            return None

        confidence = self.calculate_signal_confidence(mtf, sentiment)
        return TradingSignal(
            symbol=symbol,
            type=signal_type,
            entry=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            confidence=confidence,
            risk_reward=risk_reward,
            timeframe=mtf.primary_timeframe,
            timestamp=last.timestamp,
            expires_at=last.timestamp + timedelta(hours=self.config.signal_ttl_hours),
            priority=determine_priority(confidence, risk_reward),
            reasoning=self.generate_reasoning(mtf, sentiment),
            smc_based=self.config.use_smc,
            sentiment=sentiment,
        )
