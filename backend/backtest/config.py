"""Backtest-specific configuration.

Independent of app/config.py: only the walk-forward geometry and where to
find the signal config.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Walk-forward geometry (candles)
    window: int = 100
    step: int = 20

    # Results shown as "recent" in the performance summary
    recent_count: int = 10

    # Signal generation YAML; empty = defaults
    signals_config_path: str = ""


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
