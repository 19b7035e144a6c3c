"""Market structure (Smart Money Concepts) feature extraction.

``analyze`` turns one timeframe's candle window into a ``StructuralAnalysis``.
Everything here is a pure function of the window: no caches, no clocks, so
replaying the same window always yields the same features.

Detection runs on float64 numpy arrays; price levels in the output are taken
from the input ``Candle`` objects so they stay exact ``Decimal`` values.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from core.errors import DataUnavailableError
from core.models.candle import Candle
from core.models.structure import (
    Bias,
    BreakOfStructure,
    ChangeOfCharacter,
    FairValueGap,
    FlowDirection,
    InstitutionalFlow,
    KeyLevel,
    LevelType,
    LiquidityPool,
    LiquidityType,
    MarketTrend,
    OrderBlock,
    StructuralAnalysis,
    TrendDirection,
)

logger = logging.getLogger(__name__)

TREND_LOOKBACK = 20
SIDEWAYS_STRENGTH = 0.3

OB_SIDE_CANDLES = 5
OB_MIN_BODY_RATIO = 0.7
OB_MIN_VOLUME_RATIO = 1.5
OB_MIN_MOVE_PCT = 2.0
MAX_ORDER_BLOCKS = 15

LIQUIDITY_LOOKBACK = 20
LIQUIDITY_TOLERANCE = 0.001  # 0.1%
LIQUIDITY_SENSITIVITY = 1.5
MAX_LIQUIDITY_POOLS = 20

MIN_FVG_PCT = 0.001
MAX_FAIR_VALUE_GAPS = 10

BOS_LOOKBACK = 20
MAX_BREAKS = 8

CHOCH_LOOKBACK = 30
CHOCH_MIN_CHANGE_PCT = 3.0
MAX_CHOCH = 5

KEY_LEVEL_LOOKBACK = 50
KEY_LEVEL_SIDE_CANDLES = 2
MAX_KEY_LEVELS = 10


class _Series:
    """Column view of a candle window as float64 arrays."""

    def __init__(self, candles: Sequence[Candle]):
        self.candles = candles
        self.open = np.array([float(c.open) for c in candles], dtype=np.float64)
        self.high = np.array([float(c.high) for c in candles], dtype=np.float64)
        self.low = np.array([float(c.low) for c in candles], dtype=np.float64)
        self.close = np.array([float(c.close) for c in candles], dtype=np.float64)
        self.volume = np.array([float(c.volume) for c in candles], dtype=np.float64)

        self.body = np.abs(self.close - self.open)
        self.range = self.high - self.low
        # Doji with zero range has no body either
        self.body_ratio = np.divide(
            self.body, self.range, out=np.zeros_like(self.body), where=self.range > 0
        )

    def __len__(self) -> int:
        return len(self.candles)


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return float(numerator / denominator)


def _mean(values: np.ndarray) -> float:
    if values.size == 0:
        return 0.0
    return float(np.mean(values))


# =============================================================================
# Trend
# =============================================================================

def detect_trend(s: _Series) -> MarketTrend:
    """Count higher-highs/higher-lows vs lower-highs/lower-lows over the last 20."""
    if len(s) < TREND_LOOKBACK:
        return MarketTrend(direction=TrendDirection.SIDEWAYS, strength=0.0, confirmed=False)

    highs = s.high[-TREND_LOOKBACK:]
    lows = s.low[-TREND_LOOKBACK:]
    dh = np.diff(highs)
    dl = np.diff(lows)
    higher_highs = int(np.sum(dh > 0))
    higher_lows = int(np.sum(dl > 0))
    lower_highs = int(np.sum(dh < 0))
    lower_lows = int(np.sum(dl < 0))

    if higher_highs >= 2 and higher_lows >= 2:
        direction = TrendDirection.BULLISH
        strength = (higher_highs + higher_lows) / 8
    elif lower_highs >= 2 and lower_lows >= 2:
        direction = TrendDirection.BEARISH
        strength = (lower_highs + lower_lows) / 8
    else:
        direction = TrendDirection.SIDEWAYS
        strength = SIDEWAYS_STRENGTH

    strength = min(strength, 1.0)
    return MarketTrend(direction=direction, strength=strength, confirmed=strength > 0.5)


# =============================================================================
# Order blocks
# =============================================================================

def detect_order_blocks(s: _Series) -> list[OrderBlock]:
    """Displacement candles with enough context on both sides.

    A displacement candle has a dominant body, volume well above the
    preceding candles and a body move of at least 2% of its open.
    """
    blocks: list[OrderBlock] = []
    n = len(s)

    for i in range(OB_SIDE_CANDLES, n - OB_SIDE_CANDLES):
        body_ratio = float(s.body_ratio[i])
        if body_ratio < OB_MIN_BODY_RATIO:
            continue

        avg_volume = _mean(s.volume[i - OB_SIDE_CANDLES : i + 1])
        volume_ratio = _safe_ratio(s.volume[i], avg_volume)
        if volume_ratio < OB_MIN_VOLUME_RATIO:
            continue

        move_pct = _safe_ratio(s.body[i], s.open[i]) * 100
        if move_pct < OB_MIN_MOVE_PCT:
            continue

        bias = Bias.BULLISH if s.close[i] > s.open[i] else Bias.BEARISH
        later_closes = s.close[i + 1 :]
        if bias == Bias.BULLISH:
            broken = bool(np.any(later_closes < s.low[i]))
        else:
            broken = bool(np.any(later_closes > s.high[i]))

        candle = s.candles[i]
        blocks.append(
            OrderBlock(
                type=bias,
                high=candle.high,
                low=candle.low,
                volume=candle.volume,
                strength=min(body_ratio * volume_ratio, 1.0),
                created=candle.timestamp,
                broken=broken,
            )
        )

    return blocks[-MAX_ORDER_BLOCKS:]


# =============================================================================
# Liquidity pools
# =============================================================================

def _equal_level_clusters(prices: np.ndarray) -> list[np.ndarray]:
    """Group window indices whose prices sit within the tolerance of each other."""
    order = np.argsort(prices, kind="stable")
    clusters: list[np.ndarray] = []
    start = 0
    for k in range(1, len(order) + 1):
        if k < len(order):
            anchor = prices[order[start]]
            if anchor > 0 and (prices[order[k]] - anchor) / anchor < LIQUIDITY_TOLERANCE:
                continue
        if k - start >= 2:
            clusters.append(np.sort(order[start:k]))
        start = k
    return clusters


def detect_liquidity_pools(s: _Series) -> list[LiquidityPool]:
    """Equal highs (sell-side) and equal lows (buy-side) carrying heavy volume."""
    found: dict[tuple[LiquidityType, str], LiquidityPool] = {}
    n = len(s)

    for end in range(LIQUIDITY_LOOKBACK, n + 1):
        start = end - LIQUIDITY_LOOKBACK
        window_volume = s.volume[start:end]
        avg_volume = _mean(window_volume)
        if avg_volume <= 0:
            continue
        created = s.candles[end - 1].timestamp

        for pool_type, prices in (
            (LiquidityType.SELL_SIDE, s.high[start:end]),
            (LiquidityType.BUY_SIDE, s.low[start:end]),
        ):
            for cluster in _equal_level_clusters(prices):
                volume = float(np.sum(window_volume[cluster]))
                if volume <= avg_volume * LIQUIDITY_SENSITIVITY:
                    continue

                if pool_type == LiquidityType.SELL_SIDE:
                    idx = start + int(cluster[np.argmax(prices[cluster])])
                    level = s.candles[idx].high
                    swept = bool(np.any(s.high[end:] > float(level)))
                else:
                    idx = start + int(cluster[np.argmin(prices[cluster])])
                    level = s.candles[idx].low
                    swept = bool(np.any(s.low[end:] < float(level)))

                key = (pool_type, str(level))
                if key in found:
                    continue
                found[key] = LiquidityPool(
                    type=pool_type,
                    price=level,
                    volume=sum((s.candles[start + int(j)].volume for j in cluster)),
                    touches=len(cluster),
                    strength=min(volume / avg_volume / 3, 1.0),
                    created=created,
                    swept=swept,
                )

    pools = sorted(found.values(), key=lambda p: p.created)
    return pools[-MAX_LIQUIDITY_POOLS:]


# =============================================================================
# Fair value gaps
# =============================================================================

def detect_fair_value_gaps(s: _Series) -> list[FairValueGap]:
    """Three-candle imbalances and how far later price has filled them."""
    gaps: list[FairValueGap] = []
    n = len(s)

    for i in range(1, n - 1):
        prev_high, prev_low = s.high[i - 1], s.low[i - 1]
        next_high, next_low = s.high[i + 1], s.low[i + 1]
        created = s.candles[i + 1].timestamp

        if prev_high < next_low:
            lower, upper = s.candles[i - 1].high, s.candles[i + 1].low
            size = next_low - prev_high
            if _safe_ratio(size, prev_high) * 100 < MIN_FVG_PCT:
                continue
            later_lows = s.low[i + 2 :]
            deepest = float(np.min(later_lows)) if later_lows.size else next_low
            fill = min(max((next_low - deepest) / size, 0.0), 1.0)
            gaps.append(
                FairValueGap(
                    type=Bias.BULLISH,
                    upper=upper,
                    lower=lower,
                    created=created,
                    partial_fill=fill,
                    filled=bool(deepest <= prev_high),
                )
            )
        elif prev_low > next_high:
            upper, lower = s.candles[i - 1].low, s.candles[i + 1].high
            size = prev_low - next_high
            if _safe_ratio(size, prev_low) * 100 < MIN_FVG_PCT:
                continue
            later_highs = s.high[i + 2 :]
            highest = float(np.max(later_highs)) if later_highs.size else next_high
            fill = min(max((highest - next_high) / size, 0.0), 1.0)
            gaps.append(
                FairValueGap(
                    type=Bias.BEARISH,
                    upper=upper,
                    lower=lower,
                    created=created,
                    partial_fill=fill,
                    filled=bool(highest >= prev_low),
                )
            )

    return gaps[-MAX_FAIR_VALUE_GAPS:]


# =============================================================================
# Break of structure / change of character
# =============================================================================

def detect_breaks_of_structure(s: _Series) -> list[BreakOfStructure]:
    """Closes beyond the highest high / lowest low of the prior 20 candles."""
    breaks: list[BreakOfStructure] = []
    n = len(s)

    for i in range(BOS_LOOKBACK, n):
        lo, hi = i - BOS_LOOKBACK, i
        window_high = s.high[lo:hi]
        window_low = s.low[lo:hi]
        avg_range = _mean(s.range[lo:hi])
        avg_volume = _mean(s.volume[lo:hi])
        volume_ratio = _safe_ratio(s.volume[i], avg_volume)
        close = s.close[i]
        candle = s.candles[i]

        if close > np.max(window_high):
            bias = Bias.BULLISH
            level = s.candles[lo + int(np.argmax(window_high))].high
        elif close < np.min(window_low):
            bias = Bias.BEARISH
            level = s.candles[lo + int(np.argmin(window_low))].low
        else:
            continue

        distance_ratio = _safe_ratio(abs(close - float(level)), avg_range)
        breaks.append(
            BreakOfStructure(
                type=bias,
                level=level,
                strength=min((distance_ratio + volume_ratio) / 4, 1.0),
                volume=candle.volume,
                created=candle.timestamp,
                displacement=bool(s.body_ratio[i] > 0.6 and volume_ratio > 1.8),
            )
        )

    return breaks[-MAX_BREAKS:]


def _window_direction(closes: np.ndarray) -> TrendDirection:
    if closes.size < 10 or closes[0] <= 0:
        return TrendDirection.SIDEWAYS
    change_pct = (closes[-1] - closes[0]) / closes[0] * 100
    if change_pct > CHOCH_MIN_CHANGE_PCT:
        return TrendDirection.BULLISH
    if change_pct < -CHOCH_MIN_CHANGE_PCT:
        return TrendDirection.BEARISH
    return TrendDirection.SIDEWAYS


def detect_changes_of_character(s: _Series) -> list[ChangeOfCharacter]:
    """Consecutive 30-candle windows trending in opposite directions."""
    changes: list[ChangeOfCharacter] = []
    n = len(s)

    for i in range(CHOCH_LOOKBACK * 2, n):
        older = slice(i - CHOCH_LOOKBACK * 2, i - CHOCH_LOOKBACK)
        recent = slice(i - CHOCH_LOOKBACK, i)
        previous_trend = _window_direction(s.close[older])
        new_trend = _window_direction(s.close[recent])
        if (
            previous_trend == TrendDirection.SIDEWAYS
            or new_trend == TrendDirection.SIDEWAYS
            or previous_trend == new_trend
        ):
            continue

        volume_change = _safe_ratio(_mean(s.volume[recent]), _mean(s.volume[older]))
        candle = s.candles[i]
        changes.append(
            ChangeOfCharacter(
                previous_trend=Bias(previous_trend.value),
                new_trend=Bias(new_trend.value),
                level=candle.close,
                strength=min((volume_change + float(s.body_ratio[i])) / 3, 1.0),
                created=candle.timestamp,
            )
        )

    return changes[-MAX_CHOCH:]


# =============================================================================
# Institutional flow / key levels
# =============================================================================

def estimate_institutional_flow(s: _Series) -> InstitutionalFlow:
    """Accumulation/distribution estimate from how volume is distributed.

    Smart-money activity rewards high-volume strong-body candles and
    penalizes low-volume indecision. The imbalance term compares volume on
    up candles against volume on down candles.
    """
    avg_volume = _mean(s.volume)
    strong = (s.volume > avg_volume * 2) & (s.body_ratio > 0.7)
    indecisive = (s.volume < avg_volume * 0.5) & (s.body_ratio < 0.3)
    activity = float(np.clip(0.1 * np.sum(strong) - 0.05 * np.sum(indecisive), 0.0, 1.0))

    up_volume = float(np.sum(s.volume[s.close > s.open]))
    down_volume = float(np.sum(s.volume[s.close < s.open]))
    total_volume = float(np.sum(s.volume))
    imbalance = _safe_ratio(abs(up_volume - down_volume), total_volume)

    direction = (
        FlowDirection.ACCUMULATION if up_volume > down_volume else FlowDirection.DISTRIBUTION
    )
    directional = up_volume + down_volume
    confidence = _safe_ratio(max(up_volume, down_volume), directional)

    return InstitutionalFlow(
        direction=direction,
        strength=min((activity + imbalance) / 2, 1.0),
        confidence=confidence,
    )


def detect_key_levels(s: _Series) -> list[KeyLevel]:
    """Swing highs (resistance) and swing lows (support) in the last 50 candles."""
    levels: list[KeyLevel] = []
    offset = max(len(s) - KEY_LEVEL_LOOKBACK, 0)
    highs = s.high[offset:]
    lows = s.low[offset:]
    avg_volume = _mean(s.volume[offset:])
    side = KEY_LEVEL_SIDE_CANDLES

    for j in range(side, len(highs) - side):
        i = offset + j
        neighbours = np.r_[j - side : j, j + 1 : j + side + 1]
        strength = min(
            (_safe_ratio(s.volume[i], avg_volume) + float(s.body_ratio[i])) / 3, 1.0
        )
        candle = s.candles[i]

        if np.all(highs[j] > highs[neighbours]):
            levels.append(
                KeyLevel(
                    type=LevelType.RESISTANCE,
                    price=candle.high,
                    strength=strength,
                    created=candle.timestamp,
                )
            )
        if np.all(lows[j] < lows[neighbours]):
            levels.append(
                KeyLevel(
                    type=LevelType.SUPPORT,
                    price=candle.low,
                    strength=strength,
                    created=candle.timestamp,
                )
            )

    return levels[-MAX_KEY_LEVELS:]


# =============================================================================
# Public API
# =============================================================================

def analyze(candles: Sequence[Candle], timeframe: str) -> StructuralAnalysis:
    """Extract every structural feature from one timeframe's candle window.

    Args:
        candles: Window in ascending timestamp order.
        timeframe: Label carried into the result (e.g. "4h").

    Raises:
        DataUnavailableError: If the window is empty.
    """
    if not candles:
        raise DataUnavailableError(f"no candles supplied for timeframe {timeframe}")

    s = _Series(candles)
    analysis = StructuralAnalysis(
        timeframe=timeframe,
        trend=detect_trend(s),
        order_blocks=detect_order_blocks(s),
        liquidity_pools=detect_liquidity_pools(s),
        fair_value_gaps=detect_fair_value_gaps(s),
        break_of_structure=detect_breaks_of_structure(s),
        change_of_character=detect_changes_of_character(s),
        institutional_flow=estimate_institutional_flow(s),
        key_levels=detect_key_levels(s),
    )
    logger.debug(
        f"Analyzed {len(s)} {timeframe} candles: trend={analysis.trend.direction.value} "
        f"obs={len(analysis.order_blocks)} bos={len(analysis.break_of_structure)} "
        f"fvgs={len(analysis.fair_value_gaps)} levels={len(analysis.key_levels)}"
    )
    return analysis
