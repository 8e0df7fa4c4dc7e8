"""
Portfolio Risk Aggregator — Greeks и VaR портфеля участника

Greeks позиции = Greeks опциона (Black-76, собственные strike/expiry/IV)
× quantity × contract_multiplier. Фьючерсы дают только delta.

Портфельная theta считается конечной разностью полной стоимости портфеля
на один календарный день вперёд, а не суммой theta отдельных опционов:
так учитываются экспирации внутри горизонта.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from derivsim.config.models import SessionConfig
from derivsim.core.domain.clock import ONE_DAY_YEARS
from derivsim.core.domain.instrument import Option
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.position import Position
from derivsim.core.domain.risk import PortfolioGreeks, VaRResult
from derivsim.core.logging import get_logger
from derivsim.pricing.black76 import FiniteDifferenceSteps, black76_greeks, black76_price
from derivsim.risk.var import DEFAULT_VAR_GRID, VaRGrid, empty_var_result, run_scenarios


def _open_positions(positions: Iterable[Position]) -> List[Position]:
    return [p for p in positions if not p.is_flat]


class PortfolioRiskAggregator:
    """
    Агрегатор риска портфеля.

    Работает только с замороженными значениями (позиции, снапшот рынка),
    поэтому безопасен для чтения опубликованных снапшотов из разных задач.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        fd_steps: Optional[FiniteDifferenceSteps] = None,
        var_grid: VaRGrid = DEFAULT_VAR_GRID,
    ):
        self.config = config or SessionConfig()
        self.fd_steps = fd_steps
        self.var_grid = var_grid
        self._log = get_logger("RiskAggregator")

    # =========================================================================
    # VALUATION
    # =========================================================================

    def position_value(
        self, position: Position, market: MarketState, time_shift_years: float = 0.0
    ) -> float:
        """
        Стоимость позиции (mark-to-model).

        Истёкший опцион (T ≤ 0) оценивается по недисконтированной внутренней стоимости.
        """
        instrument = position.instrument
        scale = position.quantity * position.contract_multiplier

        if not isinstance(instrument, Option):
            return market.futures_price * scale

        T = market.time_to_expiry(instrument.expiry) - time_shift_years
        iv = market.implied_vol_for(instrument, self.config.fallback_iv)
        price = black76_price(
            market.futures_price,
            instrument.strike,
            T,
            iv,
            market.risk_free_rate,
            instrument.option_type,
        )
        return price * scale

    def portfolio_value(
        self,
        positions: Iterable[Position],
        market: MarketState,
        time_shift_years: float = 0.0,
    ) -> float:
        """Стоимость портфеля; time_shift_years сдвигает оценку вперёд по времени."""
        return sum(
            self.position_value(p, market, time_shift_years) for p in _open_positions(positions)
        )

    # =========================================================================
    # GREEKS
    # =========================================================================

    def aggregate(
        self,
        positions: Iterable[Position],
        market: MarketState,
        timestamp: Optional[datetime] = None,
    ) -> PortfolioGreeks:
        """
        Агрегированные Greeks портфеля на снапшоте.

        Returns:
            PortfolioGreeks с value, delta, gamma, vega, theta, vanna, vomma
        """
        open_positions = _open_positions(positions)

        delta = gamma = vega = vanna = vomma = 0.0
        for position in open_positions:
            instrument = position.instrument
            scale = position.quantity * position.contract_multiplier

            if not isinstance(instrument, Option):
                delta += scale
                continue

            greeks = black76_greeks(
                market.futures_price,
                instrument.strike,
                market.time_to_expiry(instrument.expiry),
                market.implied_vol_for(instrument, self.config.fallback_iv),
                market.risk_free_rate,
                instrument.option_type,
                self.fd_steps,
            ).scale(scale)
            delta += greeks.delta
            gamma += greeks.gamma
            vega += greeks.vega
            vanna += greeks.vanna
            vomma += greeks.vomma

        value = self.portfolio_value(open_positions, market)
        value_tomorrow = self.portfolio_value(open_positions, market, ONE_DAY_YEARS)
        theta = (value_tomorrow - value) / ONE_DAY_YEARS

        self._log.debug(
            f"v{market.version}: {len(open_positions)} positions, "
            f"value={value:.2f} delta={delta:.2f} gamma={gamma:.4f} theta={theta:.2f}"
        )
        return PortfolioGreeks(
            value=value,
            delta=delta,
            gamma=gamma,
            vega=vega,
            theta=theta,
            vanna=vanna,
            vomma=vomma,
            timestamp=timestamp or market.timestamp,
            market_version=market.version,
        )

    def proposed_greeks(
        self, positions: Iterable[Position], proposed: Position, market: MarketState
    ) -> PortfolioGreeks:
        """Greeks портфеля с дополнительной позицией (pre-trade what-if)."""
        return self.aggregate([*positions, proposed], market)

    # =========================================================================
    # VaR
    # =========================================================================

    def estimate_var(
        self,
        positions: Iterable[Position],
        market: MarketState,
        price_vol: Optional[float] = None,
        iv_shock: Optional[float] = None,
    ) -> VaRResult:
        """
        Scenario-grid VaR-95.

        Args:
            price_vol: Дневная волатильность цены (default: config.var.price_volatility)
            iv_shock: Абсолютный шок IV (default: config.var.iv_shock)

        Returns:
            VaRResult; для пустого портфеля var95 = 0
        """
        open_positions = _open_positions(positions)
        if not open_positions:
            return empty_var_result()

        settings = self.config.var
        return run_scenarios(
            lambda state: self.portfolio_value(open_positions, state),
            market.with_fallback_vol(self.config.fallback_iv),
            settings.price_volatility if price_vol is None else price_vol,
            settings.iv_shock if iv_shock is None else iv_shock,
            self.var_grid,
        )

    def stressed_var(self, positions: Iterable[Position], market: MarketState) -> VaRResult:
        """VaR при стрессовых шоках (price_vol и iv_shock × stress_multiplier)."""
        settings = self.config.var
        return self.estimate_var(
            positions,
            market,
            settings.price_volatility * settings.stress_multiplier,
            settings.iv_shock * settings.stress_multiplier,
        )

    def marginal_var(
        self, positions: Iterable[Position], market: MarketState
    ) -> Dict[str, float]:
        """
        Вклад каждой позиции в VaR (leave-one-out).

        Returns:
            {instrument.key: VaR(портфель) − VaR(портфель без позиции)}
        """
        open_positions = _open_positions(positions)
        total = self.estimate_var(open_positions, market).var95

        contributions: Dict[str, float] = {}
        for i, position in enumerate(open_positions):
            others = open_positions[:i] + open_positions[i + 1:]
            contributions[position.instrument.key] = total - self.estimate_var(others, market).var95
        return contributions

    def proposed_var(
        self, positions: Iterable[Position], proposed: Position, market: MarketState
    ) -> VaRResult:
        """VaR портфеля с дополнительной позицией (pre-trade what-if)."""
        return self.estimate_var([*positions, proposed], market)
