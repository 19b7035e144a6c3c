"""Data models shared by analysis, strategy, registry and backtest code."""

from core.models.candle import Candle, ensure_ascending
from core.models.config import (
    AlertConfig,
    RiskParameters,
    SignalGenerationConfig,
    TieBreakPolicy,
)
from core.models.signal import (
    ExternalSentiment,
    Priority,
    Sentiment,
    SignalStatus,
    SignalType,
    SignalValidation,
    TradingSignal,
)
from core.models.structure import (
    Alignment,
    Bias,
    BreakOfStructure,
    ChangeOfCharacter,
    FairValueGap,
    FlowDirection,
    InstitutionalFlow,
    KeyLevel,
    LevelType,
    LiquidityPool,
    LiquidityType,
    MarketTrend,
    MultiTimeframeAnalysis,
    OrderBlock,
    StructuralAnalysis,
    TrendDirection,
)

__all__ = [
    "Candle",
    "ensure_ascending",
    "AlertConfig",
    "RiskParameters",
    "SignalGenerationConfig",
    "TieBreakPolicy",
    "ExternalSentiment",
    "Priority",
    "Sentiment",
    "SignalStatus",
    "SignalType",
    "SignalValidation",
    "TradingSignal",
    "Alignment",
    "Bias",
    "BreakOfStructure",
    "ChangeOfCharacter",
    "FairValueGap",
    "FlowDirection",
    "InstitutionalFlow",
    "KeyLevel",
    "LevelType",
    "LiquidityPool",
    "LiquidityType",
    "MarketTrend",
    "MultiTimeframeAnalysis",
    "OrderBlock",
    "StructuralAnalysis",
    "TrendDirection",
]
