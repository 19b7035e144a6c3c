"""Tests for single-signal replay (backtest.simulator)."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backtest.simulator import ExitReason, simulate
from core.errors import BacktestDataGapError
from core.models.candle import Candle
from core.models.config import TieBreakPolicy
from core.models.signal import SignalType, TradingSignal

T0 = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_candle(
    hour: int,
    high: str = "50500",
    low: str = "49500",
    open: str = "50000",
    close: str = "50200",
) -> Candle:
    """Candle ``hour`` hours after the signal."""
    return Candle(
        timestamp=T0 + timedelta(hours=hour),
        open=Decimal(open),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        volume=Decimal("10"),
    )


def make_buy_signal(ttl_hours: int = 4) -> TradingSignal:
    return TradingSignal(
        symbol="BTCUSDT",
        type=SignalType.BUY,
        entry=Decimal("50000"),
        stop_loss=Decimal("49000"),
        take_profit=[Decimal("52000"), Decimal("53000"), Decimal("55000")],
        confidence=0.8,
        risk_reward=2.0,
        timeframe="4h",
        timestamp=T0,
        expires_at=T0 + timedelta(hours=ttl_hours),
    )


def make_sell_signal() -> TradingSignal:
    return TradingSignal(
        symbol="BTCUSDT",
        type=SignalType.SELL,
        entry=Decimal("50000"),
        stop_loss=Decimal("51000"),
        take_profit=[Decimal("48000"), Decimal("47000"), Decimal("45000")],
        confidence=0.8,
        risk_reward=2.0,
        timeframe="4h",
        timestamp=T0,
        expires_at=T0 + timedelta(hours=4),
    )


# ---------------------------------------------------------------------------
# Exits
# ---------------------------------------------------------------------------

class TestBuyExits:
    def test_stop_loss(self):
        candles = [make_candle(1, high="50500", low="48800", close="49200")]
        result = simulate(make_buy_signal(), candles)

        assert result.exit_reason == ExitReason.STOP_LOSS
        assert result.exit_price == Decimal("49000")
        assert result.pnl == Decimal("-1000")
        assert result.pnl_percentage == pytest.approx(-2.0)
        assert result.take_profit_tier is None
        assert result.holding_time == timedelta(hours=1)
        assert result.max_drawdown == pytest.approx(-2.4)
        assert result.max_profit == pytest.approx(1.0)
        assert not result.is_win

    def test_take_profit(self):
        candles = [make_candle(1, high="52500", low="49500", close="52100")]
        result = simulate(make_buy_signal(), candles)

        assert result.exit_reason == ExitReason.TAKE_PROFIT
        assert result.exit_price == Decimal("52000")
        assert result.pnl == Decimal("2000")
        assert result.pnl_percentage == pytest.approx(4.0)
        assert result.take_profit_tier == 1
        assert result.is_win

    def test_nearest_breached_tier_wins(self):
        candles = [make_candle(1, high="53500", low="49500", close="53000")]
        result = simulate(make_buy_signal(), candles)
        assert result.exit_price == Decimal("52000")
        assert result.take_profit_tier == 1

    def test_expiry_time_exit(self):
        candles = [make_candle(h) for h in range(1, 6)]
        result = simulate(make_buy_signal(ttl_hours=4), candles)

        assert result.exit_reason == ExitReason.TIME_EXIT
        assert result.exit_time == T0 + timedelta(hours=5)
        assert result.exit_price == Decimal("50200")
        assert result.pnl == Decimal("200")
        assert result.holding_time == timedelta(hours=5)

    def test_candle_at_expiry_still_trades(self):
        candles = [make_candle(4, high="52500", low="49500", close="52100")]
        result = simulate(make_buy_signal(ttl_hours=4), candles)
        assert result.exit_reason == ExitReason.TAKE_PROFIT

    def test_exhausted_candles_time_exit_at_last_close(self):
        candles = [make_candle(1), make_candle(2, close="50300")]
        result = simulate(make_buy_signal(ttl_hours=48), candles)

        assert result.exit_reason == ExitReason.TIME_EXIT
        assert result.exit_price == Decimal("50300")
        assert result.exit_time == T0 + timedelta(hours=2)

    def test_excursions_accumulate(self):
        candles = [
            make_candle(1, high="50800", low="49700", close="50100"),
            make_candle(2, high="51500", low="49400", close="51000"),
            make_candle(3, high="52200", low="50500", open="51000", close="52100"),
        ]
        result = simulate(make_buy_signal(), candles)
        assert result.exit_reason == ExitReason.TAKE_PROFIT
        assert result.max_profit == pytest.approx(4.4)
        assert result.max_drawdown == pytest.approx(-1.2)


class TestSellExits:
    def test_take_profit(self):
        candles = [make_candle(1, high="50200", low="47900", close="48100")]
        result = simulate(make_sell_signal(), candles)

        assert result.exit_reason == ExitReason.TAKE_PROFIT
        assert result.exit_price == Decimal("48000")
        assert result.pnl == Decimal("2000")
        assert result.pnl_percentage == pytest.approx(4.0)
        assert result.max_profit == pytest.approx(4.2)

    def test_stop_loss(self):
        candles = [make_candle(1, high="51200", low="49800", close="51100")]
        result = simulate(make_sell_signal(), candles)

        assert result.exit_reason == ExitReason.STOP_LOSS
        assert result.exit_price == Decimal("51000")
        assert result.pnl == Decimal("-1000")
        assert result.max_drawdown == pytest.approx(-2.4)


# ---------------------------------------------------------------------------
# Tie-break and determinism
# ---------------------------------------------------------------------------

class TestTieBreak:
    def _wide_candle(self):
        return [make_candle(1, high="52500", low="48800", close="50000")]

    def test_stop_loss_first_by_default(self):
        result = simulate(make_buy_signal(), self._wide_candle())
        assert result.exit_reason == ExitReason.STOP_LOSS

    def test_take_profit_first(self):
        result = simulate(
            make_buy_signal(), self._wide_candle(), TieBreakPolicy.TAKE_PROFIT_FIRST
        )
        assert result.exit_reason == ExitReason.TAKE_PROFIT
        assert result.exit_price == Decimal("52000")

    def test_take_profit_first_without_target_is_stop(self):
        candles = [make_candle(1, high="50500", low="48800", close="49200")]
        result = simulate(make_buy_signal(), candles, TieBreakPolicy.TAKE_PROFIT_FIRST)
        assert result.exit_reason == ExitReason.STOP_LOSS

    def test_sell_stop_loss_first_by_default(self):
        candles = [make_candle(1, high="51200", low="47800", close="50000")]
        result = simulate(make_sell_signal(), candles)
        assert result.exit_reason == ExitReason.STOP_LOSS
        assert result.exit_price == Decimal("51000")
        assert result.pnl == Decimal("-1000")

    def test_sell_take_profit_first(self):
        candles = [make_candle(1, high="51200", low="47800", close="50000")]
        result = simulate(make_sell_signal(), candles, TieBreakPolicy.TAKE_PROFIT_FIRST)
        assert result.exit_reason == ExitReason.TAKE_PROFIT
        assert result.exit_price == Decimal("48000")
        assert result.take_profit_tier == 1
        assert result.pnl == Decimal("2000")


class TestReplayInputs:
    def test_deterministic(self):
        candles = [make_candle(h) for h in range(1, 4)] + [
            make_candle(4, high="52500", low="49500", close="52100")
        ]
        signal = make_buy_signal()
        assert simulate(signal, candles) == simulate(signal, candles)

    def test_candles_up_to_signal_ignored(self):
        candles = [
            make_candle(-1, high="50500", low="48000", close="48500"),
            make_candle(0, high="50500", low="48000", close="50000"),
            make_candle(1, high="52500", low="49500", close="52100"),
        ]
        result = simulate(make_buy_signal(), candles)
        assert result.exit_reason == ExitReason.TAKE_PROFIT

    def test_no_forward_candles(self):
        with pytest.raises(BacktestDataGapError):
            simulate(make_buy_signal(), [make_candle(0), make_candle(-1)])

    def test_empty_candles(self):
        with pytest.raises(BacktestDataGapError):
            simulate(make_buy_signal(), [])

    def test_unordered_candles_rejected(self):
        with pytest.raises(ValueError):
            simulate(make_buy_signal(), [make_candle(2), make_candle(1)])
