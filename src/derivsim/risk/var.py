"""
Scenario-grid VaR

Фиксированная сетка: шоки цены {−2,−1,0,+1,+2}·price_vol (относительные)
× шоки IV {−Δ, 0, +Δ} = 15 сценариев полной переоценки портфеля.

VaR-95 = −pnl[floor(0.05·N)] по возрастанию pnl. Для сетки из 15 сценариев
floor(0.75) = 0, то есть VaR-95 — худший сценарий сетки. Правило
выбора сохраняется буквально, без интерполяции перцентиля.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Tuple

from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.risk import ScenarioResult, VaRResult


@dataclass(frozen=True)
class VaRGrid:
    """Параметры сетки сценариев."""

    sigma_multiples: Tuple[float, ...] = (-2.0, -1.0, 0.0, 1.0, 2.0)
    iv_multiples: Tuple[float, ...] = (-1.0, 0.0, 1.0)
    percentile: float = 0.05

    def shocks(self, price_vol: float, iv_shock: float) -> List[Tuple[float, float]]:
        """Пары (price_shock, iv_shock) в порядке цена-внешний, IV-внутренний."""
        return [
            (m * price_vol, k * iv_shock)
            for m in self.sigma_multiples
            for k in self.iv_multiples
        ]

    def percentile_index(self, n_scenarios: int) -> int:
        return min(n_scenarios - 1, int(math.floor(n_scenarios * self.percentile)))


DEFAULT_VAR_GRID = VaRGrid()


def run_scenarios(
    value_fn: Callable[[MarketState], float],
    market: MarketState,
    price_vol: float,
    iv_shock: float,
    grid: VaRGrid = DEFAULT_VAR_GRID,
) -> VaRResult:
    """
    Переоценка портфеля по сетке сценариев.

    Args:
        value_fn: Стоимость портфеля на снапшоте
        market: Текущий снапшот
        price_vol: Дневная волатильность цены (доля)
        iv_shock: Абсолютный шок IV

    Returns:
        VaRResult; scenarios упорядочены по возрастанию pnl
    """
    current_value = value_fn(market)

    scenarios = []
    for price_shock, vol_shock in grid.shocks(price_vol, iv_shock):
        value = value_fn(market.with_shock(price_shock, vol_shock))
        scenarios.append(
            ScenarioResult(
                price_shock=price_shock,
                iv_shock=vol_shock,
                portfolio_value=value,
                pnl=value - current_value,
            )
        )

    scenarios.sort(key=lambda s: s.pnl)
    index = grid.percentile_index(len(scenarios))

    return VaRResult(
        var95=max(0.0, -scenarios[index].pnl),
        current_value=current_value,
        scenarios=scenarios,
        worst_case=scenarios[0].pnl,
        best_case=scenarios[-1].pnl,
        percentile_index=index,
    )


def empty_var_result() -> VaRResult:
    """VaR пустого портфеля: 0 без сценариев."""
    return VaRResult(var95=0.0, current_value=0.0)
