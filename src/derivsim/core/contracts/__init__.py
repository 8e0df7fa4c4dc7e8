"""
Contract Validation Module

Модуль для валидации входящих JSON контрактов derivsim и их разбора
в доменные модели.
"""

from .parsers import parse_market_tick, parse_order_intake
from .validators import (
    ContractValidator,
    MarketTickValidator,
    OrderIntakeValidator,
    SchemaLoader,
    SessionConfigValidator,
    validate_market_tick,
    validate_order_intake,
    validate_session_config,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "MarketTickValidator",
    "OrderIntakeValidator",
    "SessionConfigValidator",
    # Functions
    "validate_market_tick",
    "validate_order_intake",
    "validate_session_config",
    # Parsers
    "parse_market_tick",
    "parse_order_intake",
]
