"""
Scoring value objects — кривая equity, состояние drawdown, итоговый score
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from derivsim.core.domain.clock import ensure_utc


class EquityPoint(BaseModel):
    """Точка кривой equity."""

    timestamp: datetime
    equity: float
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class DrawdownState(BaseModel):
    """
    Состояние drawdown трекера.

    Инварианты:
    - current_drawdown = current_peak − equity >= 0
    - max_drawdown монотонно не убывает до reset
    """

    current_peak: float
    current_drawdown: float = Field(0.0, ge=0)
    current_drawdown_pct: float = Field(0.0, ge=0)
    max_drawdown: float = Field(0.0, ge=0)
    max_drawdown_pct: float = Field(0.0, ge=0)
    drawdown_start: Optional[datetime] = None
    max_drawdown_start: Optional[datetime] = None
    max_drawdown_end: Optional[datetime] = None
    recovery_minutes: Optional[float] = Field(
        None, description="Время восстановления после max drawdown (минуты)"
    )
    underwater_periods: int = Field(0, ge=0, description="Количество периодов ниже пика")
    total_underwater_minutes: float = Field(0.0, ge=0)

    model_config = {"frozen": True}

    @property
    def is_underwater(self) -> bool:
        return self.current_drawdown > 0


class ScoreResult(BaseModel):
    """
    Разложение score участника.

    raw_score не ограничен снизу и используется для ранжирования;
    display_score = max(0, raw_score).
    """

    gross_pnl: float = Field(..., description="Реализованный PnL")
    unrealized_pnl: float = 0.0
    breach_penalty: float = Field(0.0, ge=0)
    var_penalty: float = Field(0.0, ge=0)
    drawdown_penalty: float = Field(0.0, ge=0)
    fee_penalty: float = Field(0.0, ge=0)
    total_penalties: float = Field(0.0, ge=0)
    raw_score: float
    display_score: float = Field(..., ge=0)

    model_config = {"frozen": True}
