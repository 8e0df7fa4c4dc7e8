"""
Тесты для риск-скорректированного score

Coverage:
1. Формула score и разложение штрафов
2. display_score = max(0, raw_score)
3. Пресеты весов
4. Ранжирование и перцентили
5. Статистика результатов (Sharpe, win rate)
"""

from dataclasses import replace

import pytest

from derivsim.config import ScoringWeights
from derivsim.core.domain import ScoreResult
from derivsim.scoring import (
    COMPETITION_WEIGHTS,
    DEFAULT_WEIGHTS,
    TRAINING_WEIGHTS,
    ScoreInputs,
    compute_score,
    rank_scores,
    score_percentile,
    sharpe_ratio,
    win_stats,
)


@pytest.fixture
def inputs() -> ScoreInputs:
    return ScoreInputs(
        realized_pnl=1_000.0,
        var_limit=5_000.0,
        unrealized_pnl=250.0,
        weighted_breach_seconds=100.0,
        current_var=6_000.0,
        max_drawdown=2_000.0,
        total_fees=50.0,
    )


def result(raw: float) -> ScoreResult:
    return ScoreResult(gross_pnl=raw, raw_score=raw, display_score=max(0.0, raw))


class TestComputeScore:
    """Тесты compute_score."""

    def test_penalty_breakdown(self, inputs: ScoreInputs):
        score = compute_score(inputs)
        assert score.breach_penalty == pytest.approx(10.0)
        assert score.var_penalty == pytest.approx(200.0)
        assert score.drawdown_penalty == pytest.approx(200.0)
        assert score.fee_penalty == pytest.approx(50.0)
        assert score.total_penalties == pytest.approx(460.0)
        assert score.raw_score == pytest.approx(540.0)
        assert score.display_score == pytest.approx(540.0)
        assert score.gross_pnl == 1_000.0
        assert score.unrealized_pnl == 250.0

    def test_unrealized_not_scored(self, inputs: ScoreInputs):
        richer = compute_score(replace(inputs, unrealized_pnl=1e6))
        assert richer.raw_score == compute_score(inputs).raw_score

    def test_var_under_limit_not_penalized(self):
        score = compute_score(ScoreInputs(realized_pnl=0.0, var_limit=5_000.0, current_var=4_000.0))
        assert score.var_penalty == 0.0
        assert score.raw_score == 0.0

    def test_display_floored_at_zero(self):
        score = compute_score(
            ScoreInputs(realized_pnl=-300.0, var_limit=5_000.0, total_fees=20.0)
        )
        assert score.raw_score == pytest.approx(-320.0)
        assert score.display_score == 0.0

    def test_custom_weights(self, inputs: ScoreInputs):
        weights = ScoringWeights(breach_weight=0, var_weight=0, drawdown_weight=0, fee_weight=0)
        assert compute_score(inputs, weights).raw_score == pytest.approx(1_000.0)


class TestPresets:
    """Тесты пресетов весов."""

    def test_default_preset_values(self):
        assert DEFAULT_WEIGHTS == ScoringWeights()
        assert DEFAULT_WEIGHTS.var_weight == 0.2

    def test_presets_ordering(self, inputs: ScoreInputs):
        default = compute_score(inputs, DEFAULT_WEIGHTS).raw_score
        competition = compute_score(inputs, COMPETITION_WEIGHTS).raw_score
        training = compute_score(inputs, TRAINING_WEIGHTS).raw_score
        assert competition < default < training


class TestRanking:
    """Тесты ранжирования."""

    def test_rank_order_and_tie_breaks(self):
        ranked = rank_scores(
            {"d": result(500.0), "b": result(-10.0), "a": result(500.0), "c": result(-50.0)}
        )
        assert [r.participant_id for r in ranked] == ["a", "d", "b", "c"]
        assert [r.rank for r in ranked] == [1, 2, 3, 4]

    def test_percentiles(self):
        ranked = rank_scores(
            {"d": result(500.0), "b": result(-10.0), "a": result(500.0), "c": result(-50.0)}
        )
        by_id = {r.participant_id: r.percentile for r in ranked}
        assert by_id == {"a": 50.0, "d": 50.0, "b": 25.0, "c": 0.0}

    def test_empty(self):
        assert rank_scores({}) == []

    def test_score_percentile_edges(self):
        assert score_percentile(10.0, []) == 100.0
        assert score_percentile(10.0, [1.0, 2.0]) == 100.0
        assert score_percentile(1.0, [1.0, 2.0, 3.0]) == 0.0


class TestPerformanceStats:
    """Тесты Sharpe ratio и win rate."""

    def test_sharpe_degenerate(self):
        assert sharpe_ratio([0.01]) == 0.0
        assert sharpe_ratio([0.5, 0.5, 0.5]) == 0.0

    def test_sharpe_sign(self):
        assert sharpe_ratio([0.01, 0.03, 0.02, 0.015]) > 0
        assert sharpe_ratio([-0.01, -0.03, -0.02, -0.015]) < 0

    def test_win_stats(self):
        stats = win_stats([100.0, -50.0, 200.0, 0.0])
        assert stats.trades == 4
        assert stats.win_rate == pytest.approx(50.0)
        assert stats.avg_win == pytest.approx(150.0)
        assert stats.avg_loss == pytest.approx(-50.0)

    def test_win_stats_empty(self):
        stats = win_stats([])
        assert stats.trades == 0
        assert stats.win_rate == 0.0
