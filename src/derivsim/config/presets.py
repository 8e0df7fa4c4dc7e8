"""
Пресеты весов score.

DEFAULT — стандартная сессия, COMPETITION — жёсткие штрафы за риск,
TRAINING — мягкие штрафы для обучения.
"""

from typing import Dict, Final

from derivsim.config.models import ScoringWeights

DEFAULT_WEIGHTS: Final[ScoringWeights] = ScoringWeights(
    breach_weight=0.1, var_weight=0.2, drawdown_weight=0.1, fee_weight=1.0
)

COMPETITION_WEIGHTS: Final[ScoringWeights] = ScoringWeights(
    breach_weight=0.25, var_weight=0.6, drawdown_weight=0.25, fee_weight=1.0
)

TRAINING_WEIGHTS: Final[ScoringWeights] = ScoringWeights(
    breach_weight=0.05, var_weight=0.08, drawdown_weight=0.05, fee_weight=1.0
)

WEIGHT_PRESETS: Final[Dict[str, ScoringWeights]] = {
    "default": DEFAULT_WEIGHTS,
    "competition": COMPETITION_WEIGHTS,
    "training": TRAINING_WEIGHTS,
}
