"""Candle (OHLCV) data model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class Candle(BaseModel):
    """OHLCV candle.

    Validated at construction so analysis code never sees inverted ranges
    or negative volume. Timestamps must be timezone-aware.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    @field_validator("timestamp")
    @classmethod
    def _require_tz(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError(f"timestamp {v} must be timezone-aware")
        return v

    @model_validator(mode="after")
    def _check_range(self):
        if self.high < max(self.open, self.close):
            raise ValueError(f"high {self.high} below open/close at {self.timestamp}")
        if self.low > min(self.open, self.close):
            raise ValueError(f"low {self.low} above open/close at {self.timestamp}")
        if self.volume < 0:
            raise ValueError(f"negative volume at {self.timestamp}")
        return self


def ensure_ascending(candles: Iterable[Candle]) -> list[Candle]:
    """Return candles as a list, raising if timestamps are not strictly ascending."""
    result = list(candles)
    for prev, cur in zip(result, result[1:]):
        if cur.timestamp <= prev.timestamp:
            raise ValueError(
                f"Candles must be strictly ascending: {cur.timestamp} after {prev.timestamp}"
            )
    return result
