"""
Risk: агрегирование Greeks, scenario-grid VaR, проверки лимитов
и жизненный цикл нарушений.
"""

from derivsim.risk.aggregator import PortfolioRiskAggregator
from derivsim.risk.breaches import BreachState, BreachTracker, BreachUpdate
from derivsim.risk.limits import (
    GREEK_DIMENSIONS,
    LimitCheck,
    check_greek_limits,
    check_limit,
    check_var_limit,
)
from derivsim.risk.var import DEFAULT_VAR_GRID, VaRGrid, empty_var_result, run_scenarios

__all__ = [
    # Aggregator
    "PortfolioRiskAggregator",
    # VaR
    "DEFAULT_VAR_GRID",
    "VaRGrid",
    "empty_var_result",
    "run_scenarios",
    # Limits
    "GREEK_DIMENSIONS",
    "LimitCheck",
    "check_greek_limits",
    "check_limit",
    "check_var_limit",
    # Breaches
    "BreachState",
    "BreachTracker",
    "BreachUpdate",
]
