"""Confirmation rules applied to every synthesized signal."""

from __future__ import annotations

from core.models.config import SignalGenerationConfig
from core.models.signal import SignalType, SignalValidation, TradingSignal
from core.models.structure import Alignment, Bias, MultiTimeframeAnalysis

ALIGNMENT_WEIGHT = 0.25
VOLUME_WEIGHT = 0.25
STRUCTURE_WEIGHT = 0.30
RISK_REWARD_WEIGHT = 0.20

MIN_VALID_SCORE = 0.7
MIN_VALIDATION_RISK_REWARD = 2.0
CONFIRMING_FLOW = 0.5


class SignalValidator:
    """Scores a signal against alignment, volume, structure and R:R checks.

    A rejected signal is a normal result (``overall_valid=False``), never an
    exception.
    """

    def __init__(self, config: SignalGenerationConfig | None = None):
        self.config = config or SignalGenerationConfig()

    def validate(
        self, signal: TradingSignal, mtf: MultiTimeframeAnalysis
    ) -> SignalValidation:
        bias = Bias.BULLISH if signal.type == SignalType.BUY else Bias.BEARISH
        analyses = list(mtf.timeframes.values())

        alignment_ok = mtf.alignment != Alignment.CONFLICTED
        volume_ok = any(
            a.institutional_flow.strength > CONFIRMING_FLOW for a in analyses
        )
        structure_ok = any(
            a.count_order_blocks(bias) > 0 or a.count_breaks(bias) > 0 for a in analyses
        )
        risk_reward_ok = signal.risk_reward >= MIN_VALIDATION_RISK_REWARD

        score = 0.0
        if alignment_ok:
            score += ALIGNMENT_WEIGHT
        if volume_ok:
            score += VOLUME_WEIGHT
        if structure_ok:
            score += STRUCTURE_WEIGHT
        if risk_reward_ok:
            score += RISK_REWARD_WEIGHT
        score = round(score, 4)

        return SignalValidation(
            alignment_ok=alignment_ok,
            volume_ok=volume_ok,
            structure_ok=structure_ok,
            risk_reward_ok=risk_reward_ok,
            score=score,
            overall_valid=(
                score >= MIN_VALID_SCORE and signal.confidence >= self.config.min_confidence
            ),
        )
