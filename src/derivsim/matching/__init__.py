"""
Matching: исполнение ордеров против синтетической котировки.
"""

from derivsim.matching.engine import (
    MIN_ORDER_TIME_TO_EXPIRY,
    REJECT_MESSAGES,
    FillEngine,
    MatchResult,
    RejectReason,
)

__all__ = [
    "MIN_ORDER_TIME_TO_EXPIRY",
    "REJECT_MESSAGES",
    "FillEngine",
    "MatchResult",
    "RejectReason",
]
