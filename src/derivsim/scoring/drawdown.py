"""
Drawdown Tracker — High-water mark и периоды просадки equity

equity = initial_bankroll + realized_pnl + unrealized_pnl

- equity ≥ peak: пик обновляется, открытый период просадки закрывается
  (если это период max drawdown — фиксируется время восстановления)
- equity < peak: открывается/продлевается период просадки; новый максимум
  просадки обновляет max_drawdown и max_drawdown_pct
- Время под водой начисляется между обновлениями, пока equity ниже пика

Проценты (current_drawdown_pct, max_drawdown_pct) — в процентах от пика.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from derivsim.core.domain.clock import SECONDS_PER_DAY, ensure_utc
from derivsim.core.domain.scoring import DrawdownState, EquityPoint
from derivsim.core.math.numerical_safeguards import safe_divide

TRADING_DAYS_PER_YEAR = 252

# Нижняя граница max drawdown (доля) в знаменателе Calmar ratio
CALMAR_MIN_DRAWDOWN_FRACTION = 0.01


def _minutes_between(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / 60.0)


class DrawdownTracker:
    """
    Трекер просадки одного участника.

    Принадлежит ParticipantWorker. reset() полностью очищает историю
    (граница торгового дня в многодневной сессии).
    """

    def __init__(self, initial_bankroll: float):
        if initial_bankroll <= 0:
            raise ValueError(f"initial_bankroll must be positive, got {initial_bankroll}")
        self._initial_bankroll = initial_bankroll
        self._clear()

    def _clear(self) -> None:
        self._history: List[EquityPoint] = []
        self._peak = self._initial_bankroll
        self._max_drawdown = 0.0
        self._max_drawdown_pct = 0.0
        self._drawdown_start: Optional[datetime] = None
        self._max_drawdown_start: Optional[datetime] = None
        self._max_drawdown_end: Optional[datetime] = None
        self._recovery_minutes: Optional[float] = None
        self._underwater_periods = 0
        self._underwater_minutes = 0.0
        self._last_update: Optional[datetime] = None

    @property
    def initial_bankroll(self) -> float:
        return self._initial_bankroll

    @property
    def current_equity(self) -> float:
        return self._history[-1].equity if self._history else self._initial_bankroll

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_equity(
        self, realized_pnl: float, unrealized_pnl: float, timestamp: datetime
    ) -> DrawdownState:
        """
        Новая точка кривой equity.

        Args:
            realized_pnl: Реализованный PnL (накопленный)
            unrealized_pnl: Нереализованный PnL
            timestamp: Момент оценки (UTC)

        Returns:
            DrawdownState после обновления
        """
        now = ensure_utc(timestamp)
        equity = self._initial_bankroll + realized_pnl + unrealized_pnl
        self._history.append(
            EquityPoint(
                timestamp=now,
                equity=equity,
                realized_pnl=realized_pnl,
                unrealized_pnl=unrealized_pnl,
            )
        )

        # Время под водой с прошлого обновления
        if self._drawdown_start is not None and self._last_update is not None:
            self._underwater_minutes += _minutes_between(self._last_update, now)

        if equity >= self._peak:
            if self._drawdown_start is not None:
                if (
                    self._max_drawdown_start == self._drawdown_start
                    and self._max_drawdown_end is None
                ):
                    self._max_drawdown_end = now
                    self._recovery_minutes = _minutes_between(self._max_drawdown_start, now)
                self._drawdown_start = None
            self._peak = equity
        else:
            drawdown = self._peak - equity
            if self._drawdown_start is None:
                self._underwater_periods += 1
                self._drawdown_start = now

            if drawdown > self._max_drawdown:
                self._max_drawdown = drawdown
                self._max_drawdown_pct = safe_divide(drawdown, self._peak) * 100.0
                self._max_drawdown_start = self._drawdown_start
                self._max_drawdown_end = None
                self._recovery_minutes = None

        self._last_update = now
        return self.state()

    def state(self) -> DrawdownState:
        """Текущее состояние (замороженная копия)."""
        current = max(0.0, self._peak - self.current_equity)
        return DrawdownState(
            current_peak=self._peak,
            current_drawdown=current,
            current_drawdown_pct=safe_divide(current, self._peak) * 100.0,
            max_drawdown=self._max_drawdown,
            max_drawdown_pct=self._max_drawdown_pct,
            drawdown_start=self._drawdown_start,
            max_drawdown_start=self._max_drawdown_start,
            max_drawdown_end=self._max_drawdown_end,
            recovery_minutes=self._recovery_minutes,
            underwater_periods=self._underwater_periods,
            total_underwater_minutes=self._underwater_minutes,
        )

    def equity_history(self) -> List[EquityPoint]:
        return list(self._history)

    # -------------------------------------------------------------------------
    # Ratios
    # -------------------------------------------------------------------------

    def calmar_ratio(self, period_days: int = TRADING_DAYS_PER_YEAR) -> float:
        """
        Calmar ratio: annualized return / max drawdown (доля).

        Доходность масштабируется на period_days / max(span_days, 1);
        max drawdown в знаменателе не ниже 1%.
        """
        if len(self._history) < 2 or self._max_drawdown == 0:
            return 0.0

        first, last = self._history[0], self._history[-1]
        total_return = safe_divide(last.equity - first.equity, first.equity)
        span_days = (last.timestamp - first.timestamp).total_seconds() / SECONDS_PER_DAY
        annualized = total_return * (period_days / max(span_days, 1.0))

        return annualized / max(self._max_drawdown_pct / 100.0, CALMAR_MIN_DRAWDOWN_FRACTION)

    def recovery_factor(self) -> float:
        """Net profit / max drawdown (0 без просадки)."""
        if self._max_drawdown == 0:
            return 0.0
        return (self.current_equity - self._initial_bankroll) / self._max_drawdown

    def reset(self, new_bankroll: Optional[float] = None) -> None:
        """Полная очистка истории, пика и счётчиков."""
        if new_bankroll is not None:
            if new_bankroll <= 0:
                raise ValueError(f"new_bankroll must be positive, got {new_bankroll}")
            self._initial_bankroll = new_bankroll
        self._clear()


# =============================================================================
# EQUITY CURVE ANALYSIS
# =============================================================================


@dataclass(frozen=True)
class DrawdownPeriod:
    """Период просадки на кривой equity."""

    start: datetime
    depth: float
    depth_pct: float
    end: Optional[datetime] = None

    @property
    def recovered(self) -> bool:
        return self.end is not None

    @property
    def duration_minutes(self) -> Optional[float]:
        if self.end is None:
            return None
        return _minutes_between(self.start, self.end)


def drawdown_series(points: Sequence[EquityPoint]) -> List[float]:
    """Просадка от бегущего пика для каждой точки кривой."""
    if not points:
        return []

    series = []
    running_peak = points[0].equity
    for point in points:
        running_peak = max(running_peak, point.equity)
        series.append(running_peak - point.equity)
    return series


def find_drawdown_periods(points: Sequence[EquityPoint]) -> List[DrawdownPeriod]:
    """
    Все периоды просадки на кривой equity.

    Период закрывается, когда equity возвращается к бегущему пику;
    незакрытый последний период возвращается с end=None.
    """
    if not points:
        return []

    periods: List[DrawdownPeriod] = []
    running_peak = points[0].equity
    current: Optional[DrawdownPeriod] = None

    for point in points:
        if point.equity >= running_peak:
            if current is not None:
                periods.append(
                    DrawdownPeriod(
                        start=current.start,
                        depth=current.depth,
                        depth_pct=current.depth_pct,
                        end=point.timestamp,
                    )
                )
                current = None
            running_peak = point.equity
            continue

        depth = running_peak - point.equity
        depth_pct = safe_divide(depth, running_peak) * 100.0
        if current is None:
            current = DrawdownPeriod(start=point.timestamp, depth=depth, depth_pct=depth_pct)
        elif depth > current.depth:
            current = DrawdownPeriod(start=current.start, depth=depth, depth_pct=depth_pct)

    if current is not None:
        periods.append(current)
    return periods
