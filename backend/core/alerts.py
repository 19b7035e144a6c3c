"""Alert payloads, localized messages and the webhook wire body."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from core.models.signal import Priority, SignalType, TradingSignal

_MESSAGES = {
    "en": "🚀 {priority} SIGNAL: {type} {symbol} at ${entry} | SL: ${stop} | TP: ${tp} | R:R {rr:.1f} | Confidence: {conf:.0f}%",
    "pt": "🚀 SINAL {priority}: {type} {symbol} em ${entry} | SL: ${stop} | TP: ${tp} | R:R {rr:.1f} | Confiança: {conf:.0f}%",
    "fr": "🚀 SIGNAL {priority}: {type} {symbol} à ${entry} | SL: ${stop} | TP: ${tp} | R:R {rr:.1f} | Confiance: {conf:.0f}%",
    "es": "🚀 SEÑAL {priority}: {type} {symbol} en ${entry} | SL: ${stop} | TP: ${tp} | R:R {rr:.1f} | Confianza: {conf:.0f}%",
}


class AlertPayload(BaseModel):
    """Channel-neutral summary of a signal handed to delivery collaborators."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    type: SignalType
    entry: Decimal
    stop_loss: Decimal
    take_profit: Decimal  # first tier
    risk_reward: float
    confidence_percent: int
    priority: Priority
    timestamp: datetime


def build_alert_payload(signal: TradingSignal) -> AlertPayload:
    return AlertPayload(
        id=signal.id,
        symbol=signal.symbol,
        type=signal.type,
        entry=signal.entry,
        stop_loss=signal.stop_loss,
        take_profit=signal.take_profit[0],
        risk_reward=signal.risk_reward,
        confidence_percent=round(signal.confidence * 100),
        priority=signal.priority,
        timestamp=signal.timestamp,
    )


def format_signal_message(signal: TradingSignal, language: str = "en") -> str:
    """One-line human-readable alert; unknown languages fall back to English."""
    template = _MESSAGES.get(language, _MESSAGES["en"])
    return template.format(
        priority=signal.priority.value.upper(),
        type=signal.type.value.upper(),
        symbol=signal.symbol,
        entry=signal.entry,
        stop=signal.stop_loss,
        tp=signal.take_profit[0],
        rr=signal.risk_reward,
        conf=signal.confidence * 100,
    )


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def build_webhook_body(signal: TradingSignal, sent_at: datetime) -> dict:
    """JSON body POSTed to a custom webhook.

    Keys are camelCase and timestamps are epoch milliseconds; prices are
    plain JSON numbers.
    """
    return {
        "signal": {
            "id": signal.id,
            "symbol": signal.symbol,
            "type": signal.type.value,
            "entry": float(signal.entry),
            "stopLoss": float(signal.stop_loss),
            "takeProfit": [float(tp) for tp in signal.take_profit],
            "confidence": signal.confidence,
            "riskReward": signal.risk_reward,
            "priority": signal.priority.value,
            "timestamp": _epoch_ms(signal.timestamp),
        },
        "timestamp": _epoch_ms(sent_at),
    }
