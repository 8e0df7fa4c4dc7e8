"""
Тесты для BreachTracker

Coverage:
1. Классификация тяжести по ratio |value| / cap
2. Переходы INSIDE → OPEN → INSIDE и история событий
3. Эскалация тяжести и пиковое значение
4. Начисление взвешенных секунд (severity × dimension multiplier)
5. Независимость измерений и reset
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from derivsim.config import BreachSeverityConfig
from derivsim.core.domain import RiskDimension, Severity
from derivsim.risk import BreachState, BreachTracker, check_limit, check_var_limit

T0 = datetime(2026, 5, 4, 10, 0, tzinfo=timezone.utc)

DELTA = RiskDimension.DELTA
GAMMA = RiskDimension.GAMMA


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def tracker() -> BreachTracker:
    ids = count(1)
    return BreachTracker("alice", event_id_factory=lambda: f"evt-{next(ids)}")


class TestSeverityConfig:
    """Тесты BreachSeverityConfig."""

    @pytest.mark.parametrize(
        "ratio,severity",
        [
            (1.01, Severity.WARNING),
            (1.1, Severity.WARNING),
            (1.2, Severity.BREACH),
            (1.5, Severity.BREACH),
            (1.51, Severity.CRITICAL),
            (4.0, Severity.CRITICAL),
        ],
    )
    def test_classify(self, ratio, severity):
        assert BreachSeverityConfig().classify(ratio) == severity

    def test_weights(self):
        config = BreachSeverityConfig()
        assert config.weight(Severity.WARNING, DELTA) == 0.0
        assert config.weight(Severity.BREACH, GAMMA) == pytest.approx(1.5)
        assert config.weight(Severity.CRITICAL, RiskDimension.VAR) == pytest.approx(4.0)
        assert config.weight(Severity.CRITICAL, RiskDimension.THETA) == pytest.approx(1.6)

    def test_invalid_ratios(self):
        with pytest.raises(ValueError):
            BreachSeverityConfig(warning_max_ratio=1.6, breach_max_ratio=1.5)


class TestTransitions:
    """Тесты state machine нарушения."""

    def test_inside_stays_inside(self, tracker: BreachTracker):
        update = tracker.evaluate([check_limit(DELTA, 900.0, 1000.0)], T0)
        assert not update.changed
        assert tracker.state(DELTA) == BreachState.INSIDE
        assert tracker.open_events() == []

    def test_open_then_close(self, tracker: BreachTracker):
        opened = tracker.evaluate([check_limit(DELTA, 1050.0, 1000.0)], T0)
        assert len(opened.opened) == 1
        event = opened.opened[0]
        assert event.event_id == "evt-1"
        assert event.participant_id == "alice"
        assert event.severity == Severity.WARNING
        assert event.is_open
        assert tracker.state(DELTA) == BreachState.OPEN

        closed = tracker.evaluate([check_limit(DELTA, 900.0, 1000.0)], at(30))
        assert len(closed.closed) == 1
        assert tracker.state(DELTA) == BreachState.INSIDE
        history = tracker.history()
        assert len(history) == 1
        assert history[0].closed_at == at(30)
        assert history[0].duration_seconds() == pytest.approx(30.0)

    def test_negative_values_use_absolute(self, tracker: BreachTracker):
        update = tracker.evaluate([check_limit(DELTA, -1200.0, 1000.0)], T0)
        assert update.opened[0].severity == Severity.BREACH
        assert update.opened[0].peak_value == pytest.approx(1200.0)

    def test_escalation_updates_event(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1050.0, 1000.0)], T0)
        update = tracker.evaluate([check_limit(DELTA, 1600.0, 1000.0)], at(10))
        assert len(update.escalated) == 1
        event = tracker.open_events()[0]
        assert event.severity == Severity.CRITICAL
        assert event.event_id == "evt-1"
        assert event.peak_value == pytest.approx(1600.0)

        # Снижение тяжести: то же событие, пик сохраняется
        update = tracker.evaluate([check_limit(DELTA, 1200.0, 1000.0)], at(20))
        assert not update.escalated
        event = tracker.open_events()[0]
        assert event.severity == Severity.BREACH
        assert event.actual_value == pytest.approx(1200.0)
        assert event.peak_value == pytest.approx(1600.0)

    def test_reopen_creates_new_event(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1200.0, 1000.0)], T0)
        tracker.evaluate([check_limit(DELTA, 100.0, 1000.0)], at(5))
        update = tracker.evaluate([check_limit(DELTA, 1200.0, 1000.0)], at(10))
        assert update.opened[0].event_id == "evt-2"
        assert len(tracker.history()) == 1

    def test_dimensions_are_independent(self, tracker: BreachTracker):
        tracker.evaluate(
            [check_limit(DELTA, 1200.0, 1000.0), check_limit(GAMMA, 50.0, 100.0)], T0
        )
        assert tracker.state(DELTA) == BreachState.OPEN
        assert tracker.state(GAMMA) == BreachState.INSIDE


class TestWeightedSeconds:
    """Тесты начисления взвешенного времени."""

    def test_accrual_uses_severity_at_interval_start(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1050.0, 1000.0)], T0)   # WARNING
        tracker.evaluate([check_limit(DELTA, 1200.0, 1000.0)], at(10))  # +10·0
        tracker.evaluate([check_limit(DELTA, 1600.0, 1000.0)], at(20))  # +10·1
        tracker.evaluate([check_limit(DELTA, 900.0, 1000.0)], at(30))   # +10·2

        assert tracker.weighted_breach_seconds() == pytest.approx(30.0)
        assert tracker.history()[0].weighted_seconds == pytest.approx(30.0)

    def test_dimension_multiplier(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(GAMMA, 160.0, 100.0)], T0)
        tracker.evaluate([check_limit(GAMMA, 160.0, 100.0)], at(10))
        assert tracker.weighted_breach_seconds() == pytest.approx(30.0)

    def test_var_breach(self, tracker: BreachTracker):
        tracker.evaluate([check_var_limit(12_000.0, 5_000.0)], T0)
        tracker.evaluate([check_var_limit(12_000.0, 5_000.0)], at(10))
        assert tracker.open_events()[0].severity == Severity.CRITICAL
        assert tracker.weighted_breach_seconds() == pytest.approx(40.0)

    def test_open_events_accrue_until_now(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1300.0, 1000.0)], T0)
        tracker.evaluate([], at(60))
        assert tracker.weighted_breach_seconds() == pytest.approx(60.0)
        assert tracker.state(DELTA) == BreachState.OPEN

    def test_out_of_order_timestamp_does_not_accrue(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1300.0, 1000.0)], at(60))
        tracker.evaluate([check_limit(DELTA, 1300.0, 1000.0)], at(30))
        assert tracker.weighted_breach_seconds() == 0.0

    def test_reset(self, tracker: BreachTracker):
        tracker.evaluate([check_limit(DELTA, 1300.0, 1000.0)], T0)
        tracker.evaluate([check_limit(DELTA, 100.0, 1000.0)], at(10))
        tracker.reset()
        assert tracker.history() == []
        assert tracker.open_events() == []
        assert tracker.weighted_breach_seconds() == 0.0
