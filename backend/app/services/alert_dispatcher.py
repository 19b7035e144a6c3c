"""Best-effort alert fan-out to the configured channels.

Only the webhook channel has a concrete wire contract; push, email and voice
are delivered by external collaborators, represented here by channels that
log the formatted message. One channel's failure never blocks the others,
and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import httpx
import orjson

from core.alerts import (
    AlertPayload,
    build_alert_payload,
    build_webhook_body,
    format_signal_message,
)
from core.errors import AlertDeliveryError
from core.models.config import AlertConfig
from core.models.signal import TradingSignal

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_TIMEOUT = 10.0


@runtime_checkable
class AlertChannel(Protocol):
    """A delivery route for signal alerts."""

    @property
    def name(self) -> str:
        ...

    async def send(self, payload: AlertPayload, message: str, signal: TradingSignal) -> None:
        """Deliver one alert; raise on failure."""
        ...


class LogChannel:
    """Stand-in for channels delivered outside this service (push, email, voice)."""

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def send(self, payload: AlertPayload, message: str, signal: TradingSignal) -> None:
        logger.info(f"[{self._name}] {message}")


class WebhookChannel:
    """POSTs the JSON signal body to a custom webhook URL."""

    name = "webhook"

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(self, payload: AlertPayload, message: str, signal: TradingSignal) -> None:
        body = build_webhook_body(signal, datetime.now(timezone.utc))
        client = await self._get_client()
        try:
            response = await client.post(
                self.url,
                content=orjson.dumps(body),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise AlertDeliveryError(self.name, f"request failed: {e}") from e

        if not response.is_success:
            raise AlertDeliveryError(self.name, f"HTTP {response.status_code}")


class AlertDispatcher:
    """Filters signals by the alert config and fans them out to channels."""

    def __init__(
        self,
        config: AlertConfig | None = None,
        channels: list[AlertChannel] | None = None,
        webhook_timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
    ):
        self.config = config or AlertConfig()
        if channels is None:
            channels = self._build_channels(webhook_timeout)
        self.channels = channels

    def _build_channels(self, webhook_timeout: float) -> list[AlertChannel]:
        channels: list[AlertChannel] = []
        for name in self.config.channels:
            if name == "webhook":
                url = self.config.webhook_url
                if not url:
                    logger.warning("Webhook channel configured without a URL, skipping")
                    continue
                channels.append(WebhookChannel(url, timeout=webhook_timeout))
            else:
                channels.append(LogChannel(name))
        return channels

    def should_alert(self, signal: TradingSignal) -> bool:
        if not self.config.enabled:
            return False
        if signal.confidence < self.config.min_confidence:
            return False
        if self.config.symbols and signal.symbol not in self.config.symbols:
            return False
        return True

    async def _deliver(
        self,
        channel: AlertChannel,
        payload: AlertPayload,
        message: str,
        signal: TradingSignal,
    ) -> bool:
        try:
            await channel.send(payload, message, signal)
            return True
        except Exception as e:
            logger.error(f"Alert delivery via {channel.name} failed for {signal.id[:8]}: {e}")
            return False

    async def dispatch(self, signal: TradingSignal) -> dict[str, bool]:
        """Send one signal through every channel.

        Returns:
            Map of channel name -> delivered; empty when the signal is
            filtered out by the alert config.
        """
        if not self.should_alert(signal):
            return {}

        payload = build_alert_payload(signal)
        message = format_signal_message(signal, self.config.language)
        results = await asyncio.gather(
            *(self._deliver(ch, payload, message, signal) for ch in self.channels)
        )
        return {ch.name: ok for ch, ok in zip(self.channels, results)}

    async def close(self) -> None:
        for channel in self.channels:
            if isinstance(channel, WebhookChannel):
                await channel.close()
