"""
PortfolioSnapshot — Исходящий снапшот портфеля участника

Публикуется ParticipantWorker после каждого MarketUpdate. Leaderboard
ранжирует только такие снапшоты одной версии рынка.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from derivsim.core.domain.position import Position
from derivsim.core.domain.risk import BreachEvent, PortfolioGreeks
from derivsim.core.domain.scoring import DrawdownState, ScoreResult


class PortfolioSnapshot(BaseModel):
    """Замороженное состояние портфеля на версии рынка market_version."""

    participant_id: str = Field(..., min_length=1)
    market_version: int = Field(..., ge=0)
    positions: List[Position] = Field(default_factory=list)
    greeks: PortfolioGreeks
    var95: float = Field(0.0, ge=0)
    score: ScoreResult
    drawdown: DrawdownState
    open_breaches: List[BreachEvent] = Field(default_factory=list)
    resting_orders: int = Field(0, ge=0, description="Количество ожидающих ордеров")

    model_config = {"frozen": True}

    @property
    def equity_pnl(self) -> float:
        return self.score.gross_pnl + self.score.unrealized_pnl
