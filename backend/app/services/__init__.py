"""Business services."""

from app.services.alert_dispatcher import (
    AlertChannel,
    AlertDispatcher,
    LogChannel,
    WebhookChannel,
)
from app.services.signal_service import SignalService

__all__ = [
    "AlertChannel",
    "AlertDispatcher",
    "LogChannel",
    "WebhookChannel",
    "SignalService",
]
