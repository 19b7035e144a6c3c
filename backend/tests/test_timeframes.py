"""Tests for multi-timeframe alignment."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from core.analysis.timeframes import (
    aggregate,
    analyze_timeframes,
    determine_alignment,
    primary_timeframe,
)
from core.errors import DataUnavailableError
from core.models.candle import Candle
from core.models.structure import (
    Alignment,
    MarketTrend,
    StructuralAnalysis,
    TrendDirection,
)

T0 = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)
BULL = TrendDirection.BULLISH
BEAR = TrendDirection.BEARISH
SIDE = TrendDirection.SIDEWAYS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_analysis(timeframe: str, direction: TrendDirection) -> StructuralAnalysis:
    return StructuralAnalysis(
        timeframe=timeframe,
        trend=MarketTrend(direction=direction, strength=0.8, confirmed=True),
    )


def analyses(**directions: TrendDirection) -> dict[str, StructuralAnalysis]:
    """Build {timeframe: analysis}; keyword ``h1`` becomes timeframe "1h"."""
    result = {}
    for key, direction in directions.items():
        tf = key[1:] + key[0]
        result[tf] = make_analysis(tf, direction)
    return result


def rising(count: int) -> list[Candle]:
    return [
        Candle(
            timestamp=T0 + timedelta(hours=i),
            open=Decimal(100 + i),
            high=Decimal(101 + i),
            low=Decimal("99.5") + i,
            close=Decimal("100.5") + i,
            volume=Decimal("100"),
        )
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestPrimaryTimeframe:
    def test_middle_of_three(self):
        assert primary_timeframe(["1h", "4h", "1d"]) == "4h"

    def test_single(self):
        assert primary_timeframe(["1d"]) == "1d"

    def test_even_count_takes_upper_middle(self):
        assert primary_timeframe(["15m", "1h", "4h", "1d"]) == "4h"

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            primary_timeframe([])


class TestDetermineAlignment:
    def test_all_bullish(self):
        alignment, confidence = determine_alignment(analyses(h1=BULL, h4=BULL, d1=BULL))
        assert alignment == Alignment.BULLISH
        assert confidence == pytest.approx(1.0)

    def test_majority_bearish(self):
        alignment, confidence = determine_alignment(analyses(h1=BULL, h4=BEAR, d1=BEAR))
        assert alignment == Alignment.BEARISH
        assert confidence == pytest.approx(2 / 3)

    def test_split_is_conflicted(self):
        alignment, confidence = determine_alignment(analyses(h1=BULL, h4=BEAR, d1=SIDE))
        assert alignment == Alignment.CONFLICTED
        assert confidence == 0.0

    def test_all_sideways_is_conflicted(self):
        alignment, confidence = determine_alignment(analyses(h1=SIDE, h4=SIDE))
        assert alignment == Alignment.CONFLICTED
        assert confidence == 0.0

    def test_sideways_dilutes_share(self):
        alignment, confidence = determine_alignment(analyses(h1=BULL, h4=SIDE))
        assert alignment == Alignment.BULLISH
        assert confidence == pytest.approx(0.5)

    def test_weights_tip_the_vote(self):
        alignment, confidence = determine_alignment(
            analyses(h1=BULL, h4=BEAR, d1=SIDE), {"1h": 3.0}
        )
        assert alignment == Alignment.BULLISH
        assert confidence == pytest.approx(0.6)

    def test_margin_required(self):
        alignment, _ = determine_alignment(
            analyses(h1=BULL, h4=BEAR), {"1h": 21.0, "4h": 19.0}
        )
        assert alignment == Alignment.CONFLICTED

    def test_zero_total_weight(self):
        alignment, confidence = determine_alignment(
            analyses(h1=BULL), {"1h": 0.0}
        )
        assert alignment == Alignment.CONFLICTED
        assert confidence == 0.0


class TestAggregate:
    def test_orders_by_configured_timeframes(self):
        mtf = aggregate(analyses(d1=BULL, h1=BULL, h4=BULL), ["1h", "4h", "1d"])
        assert list(mtf.timeframes) == ["1h", "4h", "1d"]
        assert mtf.primary_timeframe == "4h"
        assert mtf.primary.timeframe == "4h"

    def test_missing_timeframe_raises(self):
        with pytest.raises(DataUnavailableError):
            aggregate(analyses(h1=BULL), ["1h", "4h"])


class TestAnalyzeTimeframes:
    def test_rising_everywhere_is_bullish(self):
        candles = rising(30)
        mtf = analyze_timeframes(
            {"1h": candles, "4h": candles, "1d": candles}, ["1h", "4h", "1d"]
        )
        assert mtf.alignment == Alignment.BULLISH
        assert mtf.confidence == pytest.approx(1.0)

    def test_missing_candles_raise(self):
        with pytest.raises(DataUnavailableError, match="1d"):
            analyze_timeframes({"1h": rising(30), "4h": rising(30)}, ["1h", "4h", "1d"])

    def test_empty_candles_raise(self):
        with pytest.raises(DataUnavailableError):
            analyze_timeframes({"1h": []}, ["1h"])
