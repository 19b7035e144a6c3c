"""Signal generation configuration loaded from signals.yaml.

Supports:
- Every SignalGenerationConfig field (timeframes, risk parameters, alerts, ...)
- Webhook URLs kept out of the YAML via ``alert_config.custom_webhook_env``
- No YAML file = defaults

Malformed values fail here, at startup, with a pydantic ValidationError.
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv

from core.models.config import SignalGenerationConfig

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path(__file__).parent.parent / "signals.yaml"


def load_signal_config(path: Path | str | None = None) -> SignalGenerationConfig:
    """Load signal generation config from a YAML file.

    Falls back to defaults if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    # Load .env into os.environ so AlertConfig.webhook_url can read it
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No signals.yaml found at %s, using defaults", config_path)
        return SignalGenerationConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = SignalGenerationConfig(**raw)
    logger.info(
        "Loaded signal config: timeframes=%s, min_confidence=%.2f, min_rr=%.1f, channels=%s",
        config.timeframes,
        config.min_confidence,
        config.risk_parameters.min_risk_reward,
        config.alert_config.channels,
    )
    return config
