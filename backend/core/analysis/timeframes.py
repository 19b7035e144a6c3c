"""Multi-timeframe alignment.

Each timeframe's trend direction votes with its configured weight; the
combined verdict needs a clear margin to be directional.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from core.analysis.market_structure import analyze
from core.errors import DataUnavailableError
from core.models.candle import Candle
from core.models.structure import (
    Alignment,
    MultiTimeframeAnalysis,
    StructuralAnalysis,
    TrendDirection,
)

logger = logging.getLogger(__name__)

ALIGNMENT_MARGIN = 0.1


def primary_timeframe(timeframes: Sequence[str]) -> str:
    """Middle entry of the configured timeframe list."""
    if not timeframes:
        raise ValueError("at least one timeframe is required")
    return timeframes[len(timeframes) // 2]


def determine_alignment(
    analyses: Mapping[str, StructuralAnalysis],
    weights: Mapping[str, float] | None = None,
) -> tuple[Alignment, float]:
    """Return (alignment, confidence) for a set of per-timeframe analyses.

    Shares are normalized by the total weight, so sideways timeframes dilute
    both sides. Confidence is the weighted share agreeing with the verdict,
    or 0 when conflicted.
    """
    weights = weights or {}
    total = 0.0
    bullish = 0.0
    bearish = 0.0
    for timeframe, analysis in analyses.items():
        weight = weights.get(timeframe, 1.0)
        total += weight
        if analysis.trend.direction == TrendDirection.BULLISH:
            bullish += weight
        elif analysis.trend.direction == TrendDirection.BEARISH:
            bearish += weight

    if total <= 0:
        return Alignment.CONFLICTED, 0.0

    bullish_share = bullish / total
    bearish_share = bearish / total
    if bullish_share > bearish_share + ALIGNMENT_MARGIN:
        return Alignment.BULLISH, bullish_share
    if bearish_share > bullish_share + ALIGNMENT_MARGIN:
        return Alignment.BEARISH, bearish_share
    return Alignment.CONFLICTED, 0.0


def aggregate(
    analyses: Mapping[str, StructuralAnalysis],
    timeframes: Sequence[str],
    weights: Mapping[str, float] | None = None,
) -> MultiTimeframeAnalysis:
    """Combine already-computed analyses into one verdict."""
    missing = [tf for tf in timeframes if tf not in analyses]
    if missing:
        raise DataUnavailableError(f"no analysis for timeframes {missing}")

    ordered = {tf: analyses[tf] for tf in timeframes}
    alignment, confidence = determine_alignment(ordered, weights)
    return MultiTimeframeAnalysis(
        primary_timeframe=primary_timeframe(timeframes),
        timeframes=ordered,
        alignment=alignment,
        confidence=confidence,
    )


def analyze_timeframes(
    candles_by_timeframe: Mapping[str, Sequence[Candle]],
    timeframes: Sequence[str],
    weights: Mapping[str, float] | None = None,
) -> MultiTimeframeAnalysis:
    """Analyze every configured timeframe and aggregate the results.

    Raises:
        DataUnavailableError: If any configured timeframe has no candles.
    """
    analyses: dict[str, StructuralAnalysis] = {}
    for timeframe in timeframes:
        candles = candles_by_timeframe.get(timeframe)
        if not candles:
            raise DataUnavailableError(f"no candles supplied for timeframe {timeframe}")
        analyses[timeframe] = analyze(candles, timeframe)

    mtf = aggregate(analyses, timeframes, weights)
    logger.debug(
        "MTF alignment %s (confidence %.2f) across %s",
        mtf.alignment.value, mtf.confidence, list(timeframes),
    )
    return mtf
