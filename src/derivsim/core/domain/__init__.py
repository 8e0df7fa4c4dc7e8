"""
Domain models and value objects.

Contains fundamental domain entities: Instrument, MarketState, Order, Fill,
Position, Greeks, VaR results, breach events, drawdown and score state.
"""

from derivsim.core.domain.clock import (
    DAYS_PER_YEAR,
    ONE_DAY_YEARS,
    SECONDS_PER_YEAR,
    days_between,
    ensure_utc,
    utc_now,
    year_fraction,
)
from derivsim.core.domain.instrument import (
    Future,
    Instrument,
    InstrumentClass,
    Option,
    OptionType,
    make_iv_key,
)
from derivsim.core.domain.market_state import (
    DEFAULT_BASE_VOLATILITY,
    SHOCKED_IV_FLOOR,
    MarketState,
)
from derivsim.core.domain.order import (
    TERMINAL_STATUSES,
    Fill,
    Order,
    OrderStatus,
    OrderStyle,
    Side,
)
from derivsim.core.domain.position import Position
from derivsim.core.domain.quote import Quote
from derivsim.core.domain.risk import (
    BreachEvent,
    Greeks,
    PortfolioGreeks,
    RiskDimension,
    ScenarioResult,
    Severity,
    VaRResult,
)
from derivsim.core.domain.scoring import DrawdownState, EquityPoint, ScoreResult
from derivsim.core.domain.snapshot import PortfolioSnapshot

__all__ = [
    # Clock
    "DAYS_PER_YEAR",
    "ONE_DAY_YEARS",
    "SECONDS_PER_YEAR",
    "days_between",
    "ensure_utc",
    "utc_now",
    "year_fraction",
    # Instruments
    "Future",
    "Instrument",
    "InstrumentClass",
    "Option",
    "OptionType",
    "make_iv_key",
    # Market
    "DEFAULT_BASE_VOLATILITY",
    "SHOCKED_IV_FLOOR",
    "MarketState",
    "Quote",
    # Orders
    "TERMINAL_STATUSES",
    "Fill",
    "Order",
    "OrderStatus",
    "OrderStyle",
    "Side",
    # Positions
    "Position",
    # Risk
    "BreachEvent",
    "Greeks",
    "PortfolioGreeks",
    "RiskDimension",
    "ScenarioResult",
    "Severity",
    "VaRResult",
    # Scoring
    "DrawdownState",
    "EquityPoint",
    "ScoreResult",
    # Outbound
    "PortfolioSnapshot",
]
