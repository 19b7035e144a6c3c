"""Signal generation configuration models."""

from __future__ import annotations

import os
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class TieBreakPolicy(str, Enum):
    """Which exit wins when one candle touches both stop and a target."""

    STOP_LOSS_FIRST = "stop_loss_first"
    TAKE_PROFIT_FIRST = "take_profit_first"


class RiskParameters(BaseModel):
    """Risk limits applied when building signal levels."""

    # Reserved for position sizing, not used by the synthesizer
    max_risk_per_trade: float = 0.02
    max_daily_risk: float = 0.06

    min_risk_reward: float = 2.0
    max_correlated_trades: int = 3  # max active signals per symbol
    stop_loss_percentage: Decimal = Decimal("0.02")
    # Reserved: targets derive from risk multiples, not a fixed percentage
    take_profit_percentage: Decimal = Decimal("0.06")

    @model_validator(mode="after")
    def _validate(self):
        if self.min_risk_reward <= 0:
            raise ValueError(f"min_risk_reward must be > 0, got {self.min_risk_reward}")
        if not (0 < self.stop_loss_percentage < 1):
            raise ValueError(
                f"stop_loss_percentage must be in (0, 1), got {self.stop_loss_percentage}"
            )
        if self.take_profit_percentage <= 0:
            raise ValueError("take_profit_percentage must be > 0")
        if not (0 < self.max_risk_per_trade <= 1) or not (0 < self.max_daily_risk <= 1):
            raise ValueError("max_risk_per_trade and max_daily_risk must be in (0, 1]")
        if self.max_correlated_trades < 1:
            raise ValueError("max_correlated_trades must be >= 1")
        return self


_VALID_CHANNELS = ("push", "email", "voice", "webhook")
_VALID_LANGUAGES = ("en", "pt", "fr", "es")


class AlertConfig(BaseModel):
    """Which signals are alerted, and through which channels."""

    enabled: bool = True
    min_confidence: float = 0.8
    symbols: list[str] = []  # empty = all symbols
    channels: list[str] = ["push", "voice"]
    language: str = "en"
    custom_webhook: str | None = None
    custom_webhook_env: str = ""  # env var holding the webhook URL

    @model_validator(mode="after")
    def _validate(self):
        if not (0 <= self.min_confidence <= 1):
            raise ValueError(f"alert min_confidence must be in [0, 1], got {self.min_confidence}")
        unknown = [c for c in self.channels if c not in _VALID_CHANNELS]
        if unknown:
            raise ValueError(f"unknown alert channels {unknown}, expected {_VALID_CHANNELS}")
        if self.language not in _VALID_LANGUAGES:
            raise ValueError(f"language must be one of {_VALID_LANGUAGES}, got '{self.language}'")
        return self

    @property
    def webhook_url(self) -> str | None:
        if self.custom_webhook:
            return self.custom_webhook
        if self.custom_webhook_env:
            return os.environ.get(self.custom_webhook_env) or None
        return None


class SignalGenerationConfig(BaseModel):
    """Top-level configuration of the signal pipeline."""

    timeframes: list[str] = ["1h", "4h", "1d"]
    min_confidence: float = 0.7
    use_ai: bool = True
    use_smc: bool = True
    risk_parameters: RiskParameters = Field(default_factory=RiskParameters)
    alert_config: AlertConfig = Field(default_factory=AlertConfig)
    backtest_period: int = 30  # days

    # Per-timeframe weight in the alignment vote; missing entries weigh 1.0
    timeframe_weights: dict[str, float] = {}
    signal_ttl_hours: float = 4.0
    take_profit_multiples: list[Decimal] = [Decimal("2"), Decimal("3"), Decimal("5")]
    tie_break: TieBreakPolicy = TieBreakPolicy.STOP_LOSS_FIRST

    @model_validator(mode="after")
    def _validate(self):
        if not self.timeframes:
            raise ValueError("at least one timeframe is required")
        if len(set(self.timeframes)) != len(self.timeframes):
            raise ValueError(f"duplicate timeframes in {self.timeframes}")
        if not (0 <= self.min_confidence <= 1):
            raise ValueError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if self.backtest_period <= 0:
            raise ValueError("backtest_period must be > 0")
        if self.signal_ttl_hours <= 0:
            raise ValueError("signal_ttl_hours must be > 0")
        if any(w < 0 for w in self.timeframe_weights.values()):
            raise ValueError("timeframe weights must be >= 0")
        multiples = self.take_profit_multiples
        if len(multiples) != 3:
            raise ValueError("exactly three take-profit multiples are required")
        if multiples[0] <= 0 or any(b <= a for a, b in zip(multiples, multiples[1:])):
            raise ValueError(f"take_profit_multiples must be positive and ascending, got {multiples}")
        return self

    def weight_for(self, timeframe: str) -> float:
        return self.timeframe_weights.get(timeframe, 1.0)
