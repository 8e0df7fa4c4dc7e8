"""
Pricing: Black-76 kernel и модель спредов/комиссий.
"""

from derivsim.pricing.black76 import (
    DEFAULT_FD_STEPS,
    IV_SOLVER_MAX,
    IV_SOLVER_MIN,
    FiniteDifferenceSteps,
    black76_greeks,
    black76_price,
    implied_volatility,
    intrinsic_value,
)
from derivsim.pricing.spread_fees import SpreadFeeModel

__all__ = [
    # Black-76
    "DEFAULT_FD_STEPS",
    "IV_SOLVER_MAX",
    "IV_SOLVER_MIN",
    "FiniteDifferenceSteps",
    "black76_greeks",
    "black76_price",
    "implied_volatility",
    "intrinsic_value",
    # Spreads & fees
    "SpreadFeeModel",
]
