"""Exception hierarchy for the signal engine.

A rejected signal is never an exception: the synthesizer returns ``None``
and the validator returns ``overall_valid=False``.
"""


class SignalEngineError(Exception):
    """Base class for all engine errors."""


class DataUnavailableError(SignalEngineError):
    """No candle data at all was supplied for a required timeframe."""


class InsufficientDataError(SignalEngineError):
    """Some data exists but not enough for the required lookback.

    Callers convert this into "no signal" rather than propagating it.
    """


class ExternalAnalysisError(SignalEngineError):
    """The sentiment provider failed or timed out."""


class AlertDeliveryError(SignalEngineError):
    """An alert channel could not deliver (e.g. webhook non-2xx)."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class BacktestDataGapError(SignalEngineError):
    """No forward candles were available to replay a signal against."""
