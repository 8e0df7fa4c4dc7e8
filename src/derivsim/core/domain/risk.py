"""
Risk value objects — Greeks, VaR сценарии, события нарушения лимитов
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from derivsim.core.domain.clock import ensure_utc


# =============================================================================
# ENUMS
# =============================================================================


class RiskDimension(str, Enum):
    """Измерение риска с лимитом"""

    DELTA = "DELTA"
    GAMMA = "GAMMA"
    VEGA = "VEGA"
    THETA = "THETA"
    VAR = "VAR"


class Severity(str, Enum):
    """Тяжесть нарушения лимита"""

    WARNING = "WARNING"
    BREACH = "BREACH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.WARNING: 0, Severity.BREACH: 1, Severity.CRITICAL: 2}


# =============================================================================
# GREEKS
# =============================================================================


class Greeks(BaseModel):
    """
    Цена и чувствительности одного опциона (на 1 контракт, без множителя).

    theta — за год (годовая производная по времени с обратным знаком).
    """

    price: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    vega: float = 0.0
    theta: float = 0.0
    vanna: float = 0.0
    vomma: float = 0.0

    model_config = {"frozen": True}

    def scale(self, factor: float) -> "Greeks":
        """Greeks позиции: все компоненты × factor (qty × multiplier)."""
        return Greeks(
            price=self.price * factor,
            delta=self.delta * factor,
            gamma=self.gamma * factor,
            vega=self.vega * factor,
            theta=self.theta * factor,
            vanna=self.vanna * factor,
            vomma=self.vomma * factor,
        )


class PortfolioGreeks(BaseModel):
    """Агрегированные Greeks портфеля на версии рынка market_version."""

    value: float = Field(0.0, description="Стоимость портфеля (mark-to-model)")
    delta: float = 0.0
    gamma: float = 0.0
    vega: float = 0.0
    theta: float = Field(0.0, description="Портфельная theta: −ΔV за 1 день × 365")
    vanna: float = 0.0
    vomma: float = 0.0
    timestamp: datetime
    market_version: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def value_of(self, dimension: RiskDimension) -> float:
        """Значение Greek по измерению риска (VAR не является Greek)."""
        if dimension is RiskDimension.VAR:
            raise ValueError("VAR is not a greek dimension")
        return getattr(self, dimension.value.lower())


# =============================================================================
# VaR
# =============================================================================


class ScenarioResult(BaseModel):
    """Результат полной переоценки портфеля в одном сценарии."""

    price_shock: float = Field(..., description="Относительный шок цены фьючерса")
    iv_shock: float = Field(..., description="Абсолютный шок IV")
    portfolio_value: float
    pnl: float

    model_config = {"frozen": True}


class VaRResult(BaseModel):
    """Scenario-grid VaR. scenarios упорядочены по возрастанию pnl."""

    var95: float = Field(..., ge=0, description="VaR-95 (положительное число = потеря)")
    current_value: float
    scenarios: List[ScenarioResult] = Field(default_factory=list)
    worst_case: float = 0.0
    best_case: float = 0.0
    percentile_index: int = Field(0, ge=0, description="Индекс сценария, давшего VaR")

    model_config = {"frozen": True}


# =============================================================================
# BREACH EVENTS
# =============================================================================


class BreachEvent(BaseModel):
    """
    Интервал нарушения лимита по одному измерению.

    Открыт, пока closed_at is None. weighted_seconds — накопленные секунды
    нарушения, взвешенные тяжестью и множителем измерения.
    """

    event_id: str = Field(..., min_length=1)
    participant_id: str = Field(..., min_length=1)
    dimension: RiskDimension
    severity: Severity
    limit_value: float = Field(..., gt=0)
    actual_value: float
    peak_value: float = Field(..., description="Максимальный |value| за время события")
    opened_at: datetime
    closed_at: Optional[datetime] = None
    weighted_seconds: float = Field(0.0, ge=0)

    model_config = {"frozen": True}

    @field_validator("opened_at", "closed_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def duration_seconds(self, now: Optional[datetime] = None) -> float:
        end = self.closed_at or (ensure_utc(now) if now is not None else self.opened_at)
        return max(0.0, (end - self.opened_at).total_seconds())
