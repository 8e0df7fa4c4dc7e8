"""
Breach Tracker — Жизненный цикл нарушений лимитов риска

Явная state machine по каждому измерению риска:

    INSIDE --(|value| > cap)--> OPEN(event)
    OPEN   --(|value| > cap)--> OPEN(event, обновлены actual/peak/severity)
    OPEN   --(|value| ≤ cap)--> INSIDE (event закрыт, уходит в историю)

Тяжесть: ratio = |value| / cap; ratio ≤ warning_max_ratio → WARNING,
≤ breach_max_ratio → BREACH, иначе CRITICAL.

Штрафное время начисляется непрерывно: между двумя вызовами evaluate
каждое открытое событие получает dt × weight(severity, dimension),
где severity — текущая тяжесть события на начало интервала.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from derivsim.config.models import BreachSeverityConfig
from derivsim.core.domain.clock import ensure_utc
from derivsim.core.domain.risk import BreachEvent, RiskDimension
from derivsim.core.logging import get_logger
from derivsim.risk.limits import LimitCheck


class BreachState(str, Enum):
    """Состояние измерения риска"""

    INSIDE = "INSIDE"
    OPEN = "OPEN"


@dataclass(frozen=True)
class BreachUpdate:
    """Переходы, произошедшие за один вызов evaluate."""

    opened: List[BreachEvent] = field(default_factory=list)
    closed: List[BreachEvent] = field(default_factory=list)
    escalated: List[BreachEvent] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.opened or self.closed or self.escalated)


class BreachTracker:
    """
    Трекер нарушений лимитов одного участника.

    Принадлежит ParticipantWorker; не потокобезопасен и не должен
    разделяться между задачами.
    """

    def __init__(
        self,
        participant_id: str,
        severity_config: Optional[BreachSeverityConfig] = None,
        event_id_factory: Optional[Callable[[], str]] = None,
    ):
        self.participant_id = participant_id
        self.severity_config = severity_config or BreachSeverityConfig()
        self._event_id_factory = event_id_factory or (lambda: uuid.uuid4().hex)
        self._log = get_logger("BreachTracker", participant=participant_id)

        self._open: Dict[RiskDimension, BreachEvent] = {}
        self._history: List[BreachEvent] = []
        self._last_evaluated_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def state(self, dimension: RiskDimension) -> BreachState:
        return BreachState.OPEN if dimension in self._open else BreachState.INSIDE

    def open_events(self) -> List[BreachEvent]:
        return list(self._open.values())

    def history(self) -> List[BreachEvent]:
        """Закрытые события (в порядке закрытия)."""
        return list(self._history)

    def weighted_breach_seconds(self) -> float:
        """Суммарные взвешенные секунды нарушений (закрытые + открытые)."""
        return sum(e.weighted_seconds for e in self._history) + sum(
            e.weighted_seconds for e in self._open.values()
        )

    def reset(self) -> None:
        """Полная очистка (граница торгового дня)."""
        self._open.clear()
        self._history.clear()
        self._last_evaluated_at = None

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def evaluate(self, checks: Iterable[LimitCheck], timestamp: datetime) -> BreachUpdate:
        """
        Применение результатов проверок лимитов в момент timestamp.

        Args:
            checks: Результаты check_greek_limits / check_var_limit
            timestamp: Момент проверки (UTC)

        Returns:
            BreachUpdate с открытыми, закрытыми и эскалированными событиями
        """
        now = ensure_utc(timestamp)
        self._accrue(now)

        update = BreachUpdate()
        for check in checks:
            current = self._open.get(check.dimension)

            if check.breached:
                severity = self.severity_config.classify(check.ratio)
                if current is None:
                    event = BreachEvent(
                        event_id=self._event_id_factory(),
                        participant_id=self.participant_id,
                        dimension=check.dimension,
                        severity=severity,
                        limit_value=check.limit,
                        actual_value=check.value,
                        peak_value=abs(check.value),
                        opened_at=now,
                    )
                    self._open[check.dimension] = event
                    update.opened.append(event)
                    self._log.warning(
                        f"{check.dimension.value} breach opened: |{check.value:.2f}| > "
                        f"{check.limit:.2f} ({severity.value})"
                    )
                else:
                    event = current.model_copy(
                        update={
                            "severity": severity,
                            "actual_value": check.value,
                            "limit_value": check.limit,
                            "peak_value": max(current.peak_value, abs(check.value)),
                        }
                    )
                    self._open[check.dimension] = event
                    if severity.rank > current.severity.rank:
                        update.escalated.append(event)
                        self._log.warning(
                            f"{check.dimension.value} breach escalated: "
                            f"{current.severity.value} -> {severity.value}"
                        )
            elif current is not None:
                closed = current.model_copy(
                    update={"closed_at": now, "actual_value": check.value}
                )
                del self._open[check.dimension]
                self._history.append(closed)
                update.closed.append(closed)
                self._log.info(
                    f"{check.dimension.value} breach closed after "
                    f"{closed.duration_seconds():.0f}s (weighted {closed.weighted_seconds:.1f})"
                )

        self._last_evaluated_at = now if self._last_evaluated_at is None else max(
            self._last_evaluated_at, now
        )
        return update

    def _accrue(self, now: datetime) -> None:
        """Начисление взвешенного времени открытым событиям до момента now."""
        if self._last_evaluated_at is None:
            return

        dt = (now - self._last_evaluated_at).total_seconds()
        if dt <= 0:
            return

        for dimension, event in list(self._open.items()):
            weight = self.severity_config.weight(event.severity, dimension)
            self._open[dimension] = event.model_copy(
                update={"weighted_seconds": event.weighted_seconds + dt * weight}
            )
