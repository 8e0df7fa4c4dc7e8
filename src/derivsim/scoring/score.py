"""
Score — Риск-скорректированный результат участника

raw = realized − (α·breach_seconds + β·max(0, VaR − limit) + γ·max_drawdown + δ·fees)
display = max(0, raw)

breach_seconds — секунды нарушений, взвешенные тяжестью (WARNING 0,
BREACH 1, CRITICAL 2) и множителем измерения (GAMMA 1.5, VAR 2.0,
THETA 0.8, DELTA/VEGA 1.0); их накапливает BreachTracker.

raw_score не ограничен снизу и используется для ранжирования и тай-брейков.
"""

import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from derivsim.config.models import ScoringWeights
from derivsim.config.presets import (
    COMPETITION_WEIGHTS,
    DEFAULT_WEIGHTS,
    TRAINING_WEIGHTS,
)
from derivsim.core.domain.scoring import ScoreResult
from derivsim.scoring.drawdown import TRADING_DAYS_PER_YEAR

@dataclass(frozen=True)
class ScoreInputs:
    """Входы score участника на момент расчёта."""

    realized_pnl: float
    var_limit: float
    unrealized_pnl: float = 0.0
    weighted_breach_seconds: float = 0.0
    current_var: float = 0.0
    max_drawdown: float = 0.0
    total_fees: float = 0.0


def compute_score(inputs: ScoreInputs, weights: Optional[ScoringWeights] = None) -> ScoreResult:
    """
    Расчёт score.

    Args:
        inputs: PnL, штрафные секунды, VaR, drawdown, комиссии
        weights: Веса α, β, γ, δ (default: DEFAULT_WEIGHTS)

    Returns:
        ScoreResult с разложением штрафов; нереализованный PnL не входит в score
    """
    w = weights or DEFAULT_WEIGHTS

    breach_penalty = w.breach_weight * max(0.0, inputs.weighted_breach_seconds)
    var_penalty = w.var_weight * max(0.0, inputs.current_var - inputs.var_limit)
    drawdown_penalty = w.drawdown_weight * max(0.0, inputs.max_drawdown)
    fee_penalty = w.fee_weight * max(0.0, inputs.total_fees)
    total = breach_penalty + var_penalty + drawdown_penalty + fee_penalty

    raw = inputs.realized_pnl - total
    return ScoreResult(
        gross_pnl=inputs.realized_pnl,
        unrealized_pnl=inputs.unrealized_pnl,
        breach_penalty=breach_penalty,
        var_penalty=var_penalty,
        drawdown_penalty=drawdown_penalty,
        fee_penalty=fee_penalty,
        total_penalties=total,
        raw_score=raw,
        display_score=max(0.0, raw),
    )


# =============================================================================
# RANKING
# =============================================================================


@dataclass(frozen=True)
class RankedScore:
    rank: int
    participant_id: str
    score: ScoreResult
    percentile: float


def score_percentile(score: float, all_scores: Sequence[float]) -> float:
    """
    Перцентиль score среди всех участников.

    Доля участников со score строго ниже, в процентах (1 знак).
    Пустой список или score выше всех → 100.
    """
    if not all_scores:
        return 100.0

    ordered = sorted(all_scores)
    position = next((i for i, s in enumerate(ordered) if s >= score), None)
    if position is None:
        return 100.0
    return round(position / len(ordered) * 100.0, 1)


def rank_scores(scores: Mapping[str, ScoreResult]) -> List[RankedScore]:
    """
    Ранжирование участников.

    Порядок: display_score ↓, raw_score ↓ (тай-брейк для обнулённых score),
    participant_id ↑. Ранги плотные: 1, 2, 3, ...
    """
    ordered = sorted(
        scores.items(),
        key=lambda item: (-item[1].display_score, -item[1].raw_score, item[0]),
    )
    raw_values = [s.raw_score for s in scores.values()]
    return [
        RankedScore(
            rank=i + 1,
            participant_id=pid,
            score=result,
            percentile=score_percentile(result.raw_score, raw_values),
        )
        for i, (pid, result) in enumerate(ordered)
    ]


# =============================================================================
# PERFORMANCE STATISTICS
# =============================================================================


def sharpe_ratio(
    returns: Sequence[float],
    risk_free_rate: float = 0.02,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """
    Annualized Sharpe ratio по периодическим доходностям.

    (mean − rf/periods) / stdev × √periods; меньше двух точек или нулевая
    волатильность → 0.
    """
    if len(returns) < 2:
        return 0.0

    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    std = math.sqrt(variance)
    if std == 0:
        return 0.0

    return (mean - risk_free_rate / periods_per_year) / std * math.sqrt(periods_per_year)


@dataclass(frozen=True)
class WinStats:
    trades: int
    win_rate: float  # проценты
    avg_win: float
    avg_loss: float


def win_stats(trade_pnls: Sequence[float]) -> WinStats:
    """Доля прибыльных сделок и средние выигрыш/проигрыш."""
    wins = [p for p in trade_pnls if p > 0]
    losses = [p for p in trade_pnls if p < 0]
    n = len(trade_pnls)
    return WinStats(
        trades=n,
        win_rate=len(wins) / n * 100.0 if n else 0.0,
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
    )
