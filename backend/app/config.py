"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Signal generation config (YAML); unset = next to the backend package
    config_path: str = ""

    # Symbols the live service generates for
    symbols: list[str] = ["BTCUSDT", "ETHUSDT"]

    # External I/O bounds
    sentiment_timeout_seconds: float = 5.0
    webhook_timeout_seconds: float = 10.0

    # Registry maintenance
    expiry_sweep_interval_seconds: float = 60.0
    max_history: int = 10_000

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
