"""
Core math modules для derivsim

Математические примитивы и численные алгоритмы с гарантией стабильности.
"""

# Numerical Safeguards
from derivsim.core.math.numerical_safeguards import (
    # Constants
    EPS_CALC,
    EPS_PRICE,
    PRICE_TICK,
    # Safe division / validation
    is_valid_float,
    safe_divide,
    # Utilities
    clamp,
    round_to_cents,
)

# Normal distribution
from derivsim.core.math.normal import (
    NORMAL_CDF_ABS_ERROR,
    normal_cdf,
    normal_pdf,
)

__all__ = [
    # Numerical Safeguards: Constants
    "EPS_CALC",
    "EPS_PRICE",
    "PRICE_TICK",
    # Numerical Safeguards: Safe division / validation
    "is_valid_float",
    "safe_divide",
    # Numerical Safeguards: Utilities
    "clamp",
    "round_to_cents",
    # Normal distribution
    "NORMAL_CDF_ABS_ERROR",
    "normal_cdf",
    "normal_pdf",
]
