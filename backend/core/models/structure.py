"""Market structure (Smart Money Concepts) feature models.

Prices are kept as ``Decimal`` because every level is taken directly from a
candle's high/low/close. Strength and ratio fields are plain floats in [0, 1].
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Bias(str, Enum):
    """Directional bias of a structural feature."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class TrendDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"


class Alignment(str, Enum):
    """Multi-timeframe verdict."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    CONFLICTED = "conflicted"


class FlowDirection(str, Enum):
    ACCUMULATION = "accumulation"
    DISTRIBUTION = "distribution"


class LiquidityType(str, Enum):
    BUY_SIDE = "buy_side"  # resting below equal lows
    SELL_SIDE = "sell_side"  # resting above equal highs


class LevelType(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


class _Feature(BaseModel):
    model_config = ConfigDict(frozen=True)


class MarketTrend(_Feature):
    """Swing-based trend read of the most recent candles."""

    direction: TrendDirection = TrendDirection.SIDEWAYS
    strength: float = 0.0
    confirmed: bool = False


class OrderBlock(_Feature):
    """Zone left by a displacement candle (presumed institutional order)."""

    type: Bias
    high: Decimal
    low: Decimal
    volume: Decimal
    strength: float
    created: datetime
    broken: bool = False


class LiquidityPool(_Feature):
    """Cluster of equal highs/lows with concentrated volume."""

    type: LiquidityType
    price: Decimal
    volume: Decimal
    touches: int
    strength: float
    created: datetime
    swept: bool = False


class FairValueGap(_Feature):
    """Price range skipped by a three-candle imbalance."""

    type: Bias
    upper: Decimal
    lower: Decimal
    created: datetime
    partial_fill: float = 0.0
    filled: bool = False

    @property
    def size(self) -> Decimal:
        return self.upper - self.lower


class BreakOfStructure(_Feature):
    """Close beyond the prior swing extreme."""

    type: Bias
    level: Decimal
    strength: float
    volume: Decimal
    created: datetime
    displacement: bool = False


class ChangeOfCharacter(_Feature):
    """Recent trend window disagreeing with the preceding one."""

    previous_trend: Bias
    new_trend: Bias
    level: Decimal
    strength: float
    created: datetime


class InstitutionalFlow(_Feature):
    """Accumulation/distribution estimate from volume behaviour."""

    direction: FlowDirection = FlowDirection.ACCUMULATION
    strength: float = 0.0
    confidence: float = 0.0

    @property
    def signed_strength(self) -> float:
        """Positive for accumulation, negative for distribution."""
        if self.direction == FlowDirection.ACCUMULATION:
            return self.strength
        return -self.strength


class KeyLevel(_Feature):
    """Swing high (resistance) or swing low (support)."""

    type: LevelType
    price: Decimal
    strength: float
    created: datetime


class StructuralAnalysis(_Feature):
    """All structural features extracted from one timeframe's window."""

    timeframe: str
    trend: MarketTrend = Field(default_factory=MarketTrend)
    order_blocks: list[OrderBlock] = Field(default_factory=list)
    liquidity_pools: list[LiquidityPool] = Field(default_factory=list)
    fair_value_gaps: list[FairValueGap] = Field(default_factory=list)
    break_of_structure: list[BreakOfStructure] = Field(default_factory=list)
    change_of_character: list[ChangeOfCharacter] = Field(default_factory=list)
    institutional_flow: InstitutionalFlow = Field(default_factory=InstitutionalFlow)
    key_levels: list[KeyLevel] = Field(default_factory=list)

    def count_order_blocks(self, bias: Bias) -> int:
        return sum(1 for ob in self.order_blocks if ob.type == bias)

    def count_breaks(self, bias: Bias) -> int:
        return sum(1 for bos in self.break_of_structure if bos.type == bias)

    @property
    def unfilled_gaps(self) -> list[FairValueGap]:
        return [fvg for fvg in self.fair_value_gaps if not fvg.filled]


class MultiTimeframeAnalysis(_Feature):
    """Per-timeframe analyses combined into one alignment verdict."""

    primary_timeframe: str
    timeframes: dict[str, StructuralAnalysis]
    alignment: Alignment
    confidence: float

    @property
    def primary(self) -> StructuralAnalysis:
        return self.timeframes[self.primary_timeframe]
