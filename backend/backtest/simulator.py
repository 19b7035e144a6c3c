"""Candle-based replay of a single signal.

Rules:
- Candles at or before the signal timestamp are skipped (entry fills on the
  signal candle's close); the rest must be strictly ascending
- candle.timestamp > expires_at → time_exit at that candle's close
- Max profit / drawdown updated from candle high/low, as % of entry
- BUY: low <= stop → SL, high >= target → TP
- SELL: high >= stop → SL, low <= target → TP
- Both hit same candle → SL (pessimistic, default) or TP, per TieBreakPolicy
- Targets checked nearest first; the first breached tier is the exit
- Candles exhausted → time_exit at the last close
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from core.errors import BacktestDataGapError
from core.models.candle import Candle, ensure_ascending
from core.models.config import TieBreakPolicy
from core.models.signal import SignalType, TradingSignal

logger = logging.getLogger(__name__)


class ExitReason(str, Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    TIME_EXIT = "time_exit"


class BacktestResult(BaseModel):
    """Outcome of replaying one signal against forward candles.

    ``max_drawdown`` (<= 0) and ``max_profit`` (>= 0) are the worst and best
    unrealized excursions seen, in percent of entry.
    """

    model_config = ConfigDict(frozen=True)

    signal_id: str
    symbol: str
    signal_type: SignalType
    entry_price: Decimal
    exit_price: Decimal
    exit_reason: ExitReason
    exit_time: datetime
    take_profit_tier: int | None = None  # 1-based tier on take_profit exits
    pnl: Decimal
    pnl_percentage: float
    holding_time: timedelta
    max_drawdown: float
    max_profit: float

    @property
    def is_win(self) -> bool:
        return self.pnl > 0


def _excursions(signal: TradingSignal, candle: Candle) -> tuple[float, float]:
    """(favourable, adverse) excursion of one candle in percent of entry."""
    entry = signal.entry
    if signal.type == SignalType.BUY:
        favourable = (candle.high - entry) / entry * 100
        adverse = (candle.low - entry) / entry * 100
    else:
        favourable = (entry - candle.low) / entry * 100
        adverse = (entry - candle.high) / entry * 100
    return float(favourable), float(adverse)


def _stop_hit(signal: TradingSignal, candle: Candle) -> bool:
    if signal.type == SignalType.BUY:
        return candle.low <= signal.stop_loss
    return candle.high >= signal.stop_loss


def _first_target_hit(signal: TradingSignal, candle: Candle) -> int | None:
    """Index of the nearest breached take-profit tier, if any."""
    for i, target in enumerate(signal.take_profit):
        if signal.type == SignalType.BUY and candle.high >= target:
            return i
        if signal.type == SignalType.SELL and candle.low <= target:
            return i
    return None


def simulate(
    signal: TradingSignal,
    candles: Sequence[Candle],
    tie_break: TieBreakPolicy = TieBreakPolicy.STOP_LOSS_FIRST,
) -> BacktestResult:
    """Replay a signal against the candles that follow it.

    Deterministic: the same (signal, candles, tie_break) always gives the
    same result.

    Raises:
        ValueError: If the forward candles are not strictly ascending.
        BacktestDataGapError: If no candle follows the signal timestamp.
    """
    forward = ensure_ascending(c for c in candles if c.timestamp > signal.timestamp)
    if not forward:
        raise BacktestDataGapError(
            f"no candles after {signal.timestamp.isoformat()} for signal {signal.id}"
        )

    max_profit = 0.0
    max_drawdown = 0.0

    def _result(
        candle: Candle,
        price: Decimal,
        reason: ExitReason,
        tier: int | None = None,
    ) -> BacktestResult:
        if signal.type == SignalType.BUY:
            pnl = price - signal.entry
        else:
            pnl = signal.entry - price
        return BacktestResult(
            signal_id=signal.id,
            symbol=signal.symbol,
            signal_type=signal.type,
            entry_price=signal.entry,
            exit_price=price,
            exit_reason=reason,
            exit_time=candle.timestamp,
            take_profit_tier=tier,
            pnl=pnl,
            pnl_percentage=float(pnl / signal.entry * 100),
            holding_time=candle.timestamp - signal.timestamp,
            max_drawdown=max_drawdown,
            max_profit=max_profit,
        )

    for candle in forward:
        if candle.timestamp > signal.expires_at:
            return _result(candle, candle.close, ExitReason.TIME_EXIT)

        favourable, adverse = _excursions(signal, candle)
        max_profit = max(max_profit, favourable)
        max_drawdown = min(max_drawdown, adverse)

        stop_hit = _stop_hit(signal, candle)
        tier = _first_target_hit(signal, candle)

        if stop_hit and (tier is None or tie_break == TieBreakPolicy.STOP_LOSS_FIRST):
            return _result(candle, signal.stop_loss, ExitReason.STOP_LOSS)
        if tier is not None:
            return _result(
                candle, signal.take_profit[tier], ExitReason.TAKE_PROFIT, tier + 1
            )

    last = forward[-1]
    logger.debug(f"Signal {signal.id[:8]} unresolved after {len(forward)} candles")
    return _result(last, last.close, ExitReason.TIME_EXIT)
