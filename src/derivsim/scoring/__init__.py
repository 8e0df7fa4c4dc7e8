"""
Scoring: drawdown трекер и риск-скорректированный score.
"""

from derivsim.scoring.drawdown import (
    TRADING_DAYS_PER_YEAR,
    DrawdownPeriod,
    DrawdownTracker,
    drawdown_series,
    find_drawdown_periods,
)
from derivsim.scoring.score import (
    COMPETITION_WEIGHTS,
    DEFAULT_WEIGHTS,
    TRAINING_WEIGHTS,
    RankedScore,
    ScoreInputs,
    WinStats,
    compute_score,
    rank_scores,
    score_percentile,
    sharpe_ratio,
    win_stats,
)

__all__ = [
    # Drawdown
    "TRADING_DAYS_PER_YEAR",
    "DrawdownPeriod",
    "DrawdownTracker",
    "drawdown_series",
    "find_drawdown_periods",
    # Score
    "COMPETITION_WEIGHTS",
    "DEFAULT_WEIGHTS",
    "TRAINING_WEIGHTS",
    "RankedScore",
    "ScoreInputs",
    "WinStats",
    "compute_score",
    "rank_scores",
    "score_percentile",
    "sharpe_ratio",
    "win_stats",
]
