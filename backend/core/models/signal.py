"""Trading signal and validation models."""

from __future__ import annotations

import hashlib
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SignalType(str, Enum):
    """Trade direction of a signal."""

    BUY = "buy"
    SELL = "sell"


class SignalStatus(str, Enum):
    """Signal lifecycle status."""

    ACTIVE = "active"
    EXECUTED = "executed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not SignalStatus.ACTIVE


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class ExternalSentiment(BaseModel):
    """Qualitative read supplied by the external analysis provider.

    ``confidence`` is on the provider's 0-100 scale.
    """

    model_config = ConfigDict(frozen=True)

    sentiment: Sentiment
    confidence: float = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)

    @property
    def weight(self) -> float:
        """Confidence normalized to [0, 1]."""
        return self.confidence / 100


def _generate_signal_id(
    symbol: str, timeframe: str, timestamp: datetime, signal_type: str
) -> str:
    """Generate deterministic signal ID based on signal attributes.

    The same window replayed twice yields the same ID, which keeps
    walk-forward results reproducible.
    """
    ts_str = timestamp.strftime("%Y%m%d%H%M%S%f")
    key = f"{symbol}:{timeframe}:{ts_str}:{signal_type}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class TradingSignal(BaseModel):
    """Directional trade signal with tiered take-profit levels.

    Immutable: status changes produce a copy via ``with_status``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""  # Will be set in model_post_init
    symbol: str
    type: SignalType
    entry: Decimal
    stop_loss: Decimal
    take_profit: list[Decimal]
    confidence: float = Field(ge=0, le=1)
    risk_reward: float
    timeframe: str
    timestamp: datetime
    expires_at: datetime
    status: SignalStatus = SignalStatus.ACTIVE
    priority: Priority = Priority.LOW
    reasoning: list[str] = Field(default_factory=list, max_length=5)
    smc_based: bool = True
    sentiment: ExternalSentiment | None = None

    @field_validator("timestamp", "expires_at")
    @classmethod
    def _require_tz(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError(f"{v} must be timezone-aware")
        return v

    @model_validator(mode="after")
    def _check_levels(self):
        if self.risk_amount <= 0:
            raise ValueError(
                f"stop_loss {self.stop_loss} is not on the risk side of entry {self.entry}"
            )
        if not self.take_profit:
            raise ValueError("at least one take-profit level is required")
        distances = [self._distance(tp) for tp in self.take_profit]
        if any(d <= 0 for d in distances):
            raise ValueError("take-profit levels must be on the profit side of entry")
        if any(b <= a for a, b in zip(distances, distances[1:])):
            raise ValueError("take-profit levels must move away from entry")
        if self.expires_at <= self.timestamp:
            raise ValueError("expires_at must be after timestamp")
        return self

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.symbol, self.timeframe, self.timestamp, self.type.value
                ),
            )

    def _distance(self, price: Decimal) -> Decimal:
        if self.type == SignalType.BUY:
            return price - self.entry
        return self.entry - price

    @property
    def risk_amount(self) -> Decimal:
        """Get the risk amount (distance to stop loss)."""
        if self.type == SignalType.BUY:
            return self.entry - self.stop_loss
        return self.stop_loss - self.entry

    @property
    def reward_amount(self) -> Decimal:
        """Get the reward amount (distance to the first take-profit tier)."""
        return self._distance(self.take_profit[0])

    def with_status(self, status: SignalStatus) -> TradingSignal:
        return self.model_copy(update={"status": status})


class SignalValidation(BaseModel):
    """Outcome of the confirmation rules for one signal."""

    model_config = ConfigDict(frozen=True)

    alignment_ok: bool = False
    volume_ok: bool = False
    structure_ok: bool = False
    risk_reward_ok: bool = False
    score: float = 0.0
    overall_valid: bool = False
