"""In-memory registry of active and historical signals.

The registry is an explicit instance injected into whatever needs it (the
live service, tests); there is no module-level singleton. All mutations go
through one ``asyncio.Lock`` so an expiry sweep can never race a manual
status update on the same signal.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone

from core.models.config import RiskParameters
from core.models.signal import (
    Priority,
    SignalStatus,
    SignalType,
    SignalValidation,
    TradingSignal,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 10_000


@dataclass(frozen=True)
class SignalFilter:
    """AND-composed predicate over signals; ``None`` fields match anything."""

    symbols: tuple[str, ...] | None = None
    timeframes: tuple[str, ...] | None = None
    min_confidence: float | None = None
    min_risk_reward: float | None = None
    signal_types: tuple[SignalType, ...] | None = None
    smc_only: bool = False
    priorities: tuple[Priority, ...] | None = None

    def matches(self, signal: TradingSignal) -> bool:
        if self.symbols is not None and signal.symbol not in self.symbols:
            return False
        if self.timeframes is not None and signal.timeframe not in self.timeframes:
            return False
        if self.min_confidence is not None and signal.confidence < self.min_confidence:
            return False
        if self.min_risk_reward is not None and signal.risk_reward < self.min_risk_reward:
            return False
        if self.signal_types is not None and signal.type not in self.signal_types:
            return False
        if self.smc_only and not signal.smc_based:
            return False
        if self.priorities is not None and signal.priority not in self.priorities:
            return False
        return True


class SignalRegistry:
    """Active signals keyed by id, plus a bounded history of terminal ones.

    Status transitions are monotonic: ``active`` moves to exactly one of
    ``executed``, ``expired`` or ``cancelled`` and the signal then lives in
    history, never mutated again.
    """

    def __init__(
        self,
        risk_parameters: RiskParameters | None = None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self.risk_parameters = risk_parameters or RiskParameters()
        self.max_history = max_history

        self._active: dict[str, TradingSignal] = {}
        self._history: deque[TradingSignal] = deque()
        self._history_ids: set[str] = set()

        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def admit(self, signal: TradingSignal, validation: SignalValidation) -> bool:
        """Add a validated signal to the active set.

        Returns False (and leaves the registry untouched) when the signal is
        not valid, not active, already known, or when its symbol already has
        ``max_correlated_trades`` active signals.
        """
        if not validation.overall_valid:
            logger.debug(f"Not admitting {signal.id}: validation failed")
            return False
        if signal.status != SignalStatus.ACTIVE:
            logger.debug(f"Not admitting {signal.id}: status is {signal.status.value}")
            return False

        async with self._lock:
            if signal.id in self._active or signal.id in self._history_ids:
                logger.debug(f"Not admitting {signal.id}: duplicate")
                return False

            same_symbol = sum(1 for s in self._active.values() if s.symbol == signal.symbol)
            if same_symbol >= self.risk_parameters.max_correlated_trades:
                logger.info(
                    f"Not admitting {signal.symbol} {signal.type.value}: "
                    f"{same_symbol} active signals already (max "
                    f"{self.risk_parameters.max_correlated_trades})"
                )
                return False

            self._active[signal.id] = signal

        logger.info(
            f"Admitted {signal.symbol} {signal.type.value.upper()} {signal.id[:8]} "
            f"(confidence {signal.confidence:.2f}, priority {signal.priority.value})"
        )
        return True

    def _retire(self, signal_id: str, status: SignalStatus) -> TradingSignal:
        """Move an active signal into history with a terminal status (lock held)."""
        retired = self._active.pop(signal_id).with_status(status)
        if len(self._history) >= self.max_history:
            evicted = self._history.popleft()
            self._history_ids.discard(evicted.id)
        self._history.append(retired)
        self._history_ids.add(retired.id)
        return retired

    async def update_status(self, signal_id: str, status: SignalStatus) -> bool:
        """Transition an active signal to a terminal status.

        Returns False for unknown ids, already-terminal signals, and attempts
        to set ``active``.
        """
        if not status.is_terminal:
            return False

        async with self._lock:
            if signal_id not in self._active:
                return False
            self._retire(signal_id, status)

        logger.info(f"Signal {signal_id[:8]} -> {status.value}")
        return True

    async def expire_sweep(self, now: datetime | None = None) -> list[TradingSignal]:
        """Expire every active signal whose ``expires_at`` is before ``now``."""
        now = now or datetime.now(timezone.utc)
        async with self._lock:
            due = [s.id for s in self._active.values() if now > s.expires_at]
            expired = [self._retire(signal_id, SignalStatus.EXPIRED) for signal_id in due]

        if expired:
            logger.info(f"Expired {len(expired)} signals")
        return expired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, signal_id: str) -> TradingSignal | None:
        signal = self._active.get(signal_id)
        if signal is not None:
            return signal
        if signal_id in self._history_ids:
            return next(s for s in self._history if s.id == signal_id)
        return None

    def get_active(self, signal_filter: SignalFilter | None = None) -> list[TradingSignal]:
        """Active signals matching the filter, highest confidence first."""
        signals = [
            s for s in self._active.values()
            if signal_filter is None or signal_filter.matches(s)
        ]
        return sorted(signals, key=lambda s: s.confidence, reverse=True)

    def get_history(self, signal_filter: SignalFilter | None = None) -> list[TradingSignal]:
        """Terminal signals matching the filter, newest first."""
        signals = [
            s for s in self._history
            if signal_filter is None or signal_filter.matches(s)
        ]
        return sorted(signals, key=lambda s: s.timestamp, reverse=True)

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def history_count(self) -> int:
        return len(self._history)
