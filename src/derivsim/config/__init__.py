"""
Session configuration: pydantic модели, пресеты весов score и загрузчик.
"""

from derivsim.config.loader import load_session_config, read_config_file
from derivsim.config.models import (
    DEFAULT_CONTRACT_MULTIPLIER,
    DEFAULT_INITIAL_BANKROLL,
    DEFAULT_VAR_LIMIT,
    BreachSeverityConfig,
    FeeStructure,
    FuturesSpreadBands,
    IVBounds,
    MarketFillMode,
    OptionSpreadBands,
    RiskLimits,
    ScoringWeights,
    SessionConfig,
    SpreadBands,
    VaRSettings,
)
from derivsim.config.presets import (
    COMPETITION_WEIGHTS,
    DEFAULT_WEIGHTS,
    TRAINING_WEIGHTS,
    WEIGHT_PRESETS,
)

__all__ = [
    # Constants
    "DEFAULT_CONTRACT_MULTIPLIER",
    "DEFAULT_INITIAL_BANKROLL",
    "DEFAULT_VAR_LIMIT",
    # Models
    "BreachSeverityConfig",
    "FeeStructure",
    "FuturesSpreadBands",
    "IVBounds",
    "MarketFillMode",
    "OptionSpreadBands",
    "RiskLimits",
    "ScoringWeights",
    "SessionConfig",
    "SpreadBands",
    "VaRSettings",
    # Presets
    "COMPETITION_WEIGHTS",
    "DEFAULT_WEIGHTS",
    "TRAINING_WEIGHTS",
    "WEIGHT_PRESETS",
    # Loader
    "load_session_config",
    "read_config_file",
]
