"""Candle data source for backtesting.

Reads OHLCV candles from CSV files with a
``timestamp,open,high,low,close,volume`` header. Timestamps may be epoch
milliseconds, epoch seconds or ISO-8601; naive ISO times are taken as UTC.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from core.models.candle import Candle, ensure_ascending

logger = logging.getLogger(__name__)

_EPOCH_MS_THRESHOLD = 10**11  # larger values are milliseconds


def parse_timestamp(value: str) -> datetime:
    value = value.strip()
    if value.isdigit():
        epoch = int(value)
        if epoch >= _EPOCH_MS_THRESHOLD:
            return datetime.fromtimestamp(epoch / 1000, tz=timezone.utc)
        return datetime.fromtimestamp(epoch, tz=timezone.utc)
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class CsvCandleSource:
    """Read candles from CSV files.

    ``paths`` maps timeframe -> file; a single path serves every timeframe.
    Malformed rows are skipped; ``skipped_rows`` counts them for the last load.
    """

    def __init__(self, paths: Path | str | dict[str, Path | str]):
        if isinstance(paths, dict):
            self._paths = {tf: Path(p) for tf, p in paths.items()}
            self._default: Path | None = None
        else:
            self._paths = {}
            self._default = Path(paths)
        self.skipped_rows = 0

    def _path_for(self, timeframe: str) -> Path:
        path = self._paths.get(timeframe, self._default)
        if path is None:
            raise FileNotFoundError(f"no CSV configured for timeframe {timeframe}")
        return path

    def _iter_rows(self, path: Path) -> Iterator[Candle]:
        """Stream-parse candles from a CSV file."""
        with open(path, newline="") as f:
            for row in csv.DictReader(f):
                try:
                    yield Candle(
                        timestamp=parse_timestamp(row["timestamp"]),
                        open=Decimal(row["open"]),
                        high=Decimal(row["high"]),
                        low=Decimal(row["low"]),
                        close=Decimal(row["close"]),
                        volume=Decimal(row["volume"]),
                    )
                except (KeyError, TypeError, ValueError, InvalidOperation, ValidationError):
                    self.skipped_rows += 1
                    continue

    def load(self, timeframe: str = "") -> list[Candle]:
        """Load all candles for a timeframe in ascending order.

        Raises:
            ValueError: If timestamps are not strictly ascending.
        """
        path = self._path_for(timeframe)
        self.skipped_rows = 0
        candles = ensure_ascending(self._iter_rows(path))
        if self.skipped_rows:
            logger.warning(f"Skipped {self.skipped_rows} malformed rows in {path}")
        logger.info(f"Loaded {len(candles)} candles from {path}")
        return candles

    async def get_candles(self, symbol: str, timeframe: str) -> list[Candle]:
        return self.load(timeframe)
