"""
Risk Limits — Чистые проверки |Greek| > cap и VaR > limit

Проверки не меняют состояния: открытие/закрытие BreachEvent по переходам
выполняет BreachTracker.
"""

from dataclasses import dataclass
from typing import List, Tuple

from derivsim.config.models import RiskLimits
from derivsim.core.domain.risk import PortfolioGreeks, RiskDimension
from derivsim.core.math.numerical_safeguards import safe_divide

GREEK_DIMENSIONS: Tuple[RiskDimension, ...] = (
    RiskDimension.DELTA,
    RiskDimension.GAMMA,
    RiskDimension.VEGA,
    RiskDimension.THETA,
)


@dataclass(frozen=True)
class LimitCheck:
    """Результат проверки одного измерения риска."""

    dimension: RiskDimension
    value: float
    limit: float
    breached: bool

    @property
    def ratio(self) -> float:
        """|value| / limit (1.0 — ровно на лимите)."""
        return safe_divide(abs(self.value), self.limit)

    @property
    def excess(self) -> float:
        return max(0.0, abs(self.value) - self.limit)


def check_limit(dimension: RiskDimension, value: float, limit: float) -> LimitCheck:
    return LimitCheck(dimension=dimension, value=value, limit=limit, breached=abs(value) > limit)


def check_greek_limits(greeks: PortfolioGreeks, limits: RiskLimits) -> List[LimitCheck]:
    """Проверка |delta|, |gamma|, |vega|, |theta| против лимитов."""
    return [
        check_limit(dim, greeks.value_of(dim), limits.cap_for(dim)) for dim in GREEK_DIMENSIONS
    ]


def check_var_limit(var95: float, limit: float) -> LimitCheck:
    """VaR-95 (положительное число) против лимита."""
    return LimitCheck(
        dimension=RiskDimension.VAR, value=var95, limit=limit, breached=var95 > limit
    )
