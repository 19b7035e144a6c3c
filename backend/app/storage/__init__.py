"""Signal storage layer."""

from app.storage.signal_registry import SignalFilter, SignalRegistry

__all__ = [
    "SignalFilter",
    "SignalRegistry",
]
