"""Signal strategy: synthesis, validation and the generation pipeline.

Public API:
- SignalSynthesizer: Builds a TradingSignal from multi-timeframe structure
- SignalValidator: Confirmation rules producing a SignalValidation
- SignalPipeline: Analyze → synthesize → validate for one window
- SentimentProvider: Protocol for the optional external analysis source
- CandleSource: Protocol for live candle windows
- PipelineResult: Standard return type from the pipeline
- fetch_sentiment: Bounded-timeout sentiment lookup
"""

from core.strategy.pipeline import SignalPipeline
from core.strategy.protocol import (
    CandleSource,
    PipelineResult,
    SentimentProvider,
    SignalCallback,
)
from core.strategy.sentiment import fetch_sentiment
from core.strategy.synthesizer import (
    SignalSynthesizer,
    calculate_risk_reward,
    determine_priority,
)
from core.strategy.validator import SignalValidator

__all__ = [
    "SignalPipeline",
    "PipelineResult",
    "SentimentProvider",
    "CandleSource",
    "SignalCallback",
    "fetch_sentiment",
    "SignalSynthesizer",
    "calculate_risk_reward",
    "determine_priority",
    "SignalValidator",
]
