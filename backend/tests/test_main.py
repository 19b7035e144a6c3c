"""Tests for live service wiring (app.main)."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

from app.config import Settings
from app.main import build_service, poll_once, run
from core.errors import DataUnavailableError
from core.models.candle import Candle
from core.strategy.protocol import PipelineResult

T0 = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_settings(tmp_path, yaml_text: str = "", **kwargs) -> Settings:
    path = tmp_path / "signals.yaml"
    path.write_text(yaml_text)
    return Settings(_env_file=None, config_path=str(path), **kwargs)


class StaticSource:
    def __init__(self, candles: dict[str, list[Candle]]):
        self.candles = candles
        self.requests = []

    async def get_candles(self, symbol, timeframe):
        self.requests.append((symbol, timeframe))
        return self.candles.get(symbol, [])


def flat(count: int = 30) -> list[Candle]:
    return [
        Candle(
            timestamp=T0 + timedelta(hours=i),
            open=Decimal("100"),
            high=Decimal("101"),
            low=Decimal("99"),
            close=Decimal("100"),
            volume=Decimal("10"),
        )
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestBuildService:
    def test_settings_flow_into_service(self, tmp_path):
        settings = make_settings(
            tmp_path,
            "timeframes: [1h, 4h]\nrisk_parameters:\n  max_correlated_trades: 5\n",
            max_history=50,
            sentiment_timeout_seconds=1.5,
            expiry_sweep_interval_seconds=30.0,
        )
        service = build_service(settings)

        assert service.config.timeframes == ["1h", "4h"]
        assert service.registry.max_history == 50
        assert service.registry.risk_parameters.max_correlated_trades == 5
        assert service.pipeline.sentiment_timeout == 1.5
        assert service.sweep_interval == 30.0
        assert [ch.name for ch in service.dispatcher.channels] == ["push", "voice"]


class TestPollOnce:
    async def test_requests_every_symbol_and_timeframe(self, tmp_path):
        service = build_service(make_settings(tmp_path, "use_ai: false\n"))
        source = StaticSource({"BTCUSDT": flat(), "ETHUSDT": flat()})

        admitted = await poll_once(service, source, ["BTCUSDT", "ETHUSDT"])

        assert admitted == []
        assert len(source.requests) == 6
        assert ("ETHUSDT", "1d") in source.requests

    async def test_symbol_without_data_skipped(self, tmp_path):
        service = build_service(make_settings(tmp_path, "use_ai: false\n"))
        service.pipeline.run = AsyncMock(
            side_effect=[DataUnavailableError("no candles"), PipelineResult()]
        )
        source = StaticSource({"ETHUSDT": flat()})

        assert await poll_once(service, source, ["BTCUSDT", "ETHUSDT"]) == []
        assert service.pipeline.run.await_count == 2


class TestRun:
    async def test_stops_on_event(self, tmp_path):
        settings = make_settings(tmp_path, "use_ai: false\n", symbols=["BTCUSDT"])
        source = StaticSource({"BTCUSDT": flat()})
        stop = asyncio.Event()

        task = asyncio.create_task(run(source, 0.01, settings, stop_event=stop))
        for _ in range(100):
            if source.requests:
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1.0)

        assert ("BTCUSDT", "4h") in source.requests
