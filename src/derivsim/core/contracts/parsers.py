"""
Разбор входящих payload в доменные модели.

Payload сначала проходит JSON Schema (ContractViolation при нарушении),
затем собирается pydantic модель. Бизнес-валидация ордера (quantity > 0,
limit price, strike, expiry) остаётся за FillEngine.
"""

import uuid
from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from derivsim.core.contracts.validators import validate_market_tick, validate_order_intake
from derivsim.core.domain.clock import utc_now
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.order import Order
from derivsim.core.errors import ContractViolation


def parse_order_intake(
    payload: Mapping[str, Any],
    order_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Order:
    """
    Order из payload заявки.

    Args:
        payload: Словарь по контракту order_intake
        order_id: ID ордера (default: из payload или новый uuid4)
        created_at: Время создания (default: сейчас, UTC)

    Raises:
        ContractViolation: Payload не соответствует контракту
    """
    data = dict(payload)
    validate_order_intake(data)

    data["order_id"] = order_id or data.get("order_id") or uuid.uuid4().hex
    data["created_at"] = created_at or utc_now()

    try:
        return Order.model_validate(data)
    except ValidationError as e:
        raise ContractViolation("order_intake", [str(err["msg"]) for err in e.errors()], data) from e


def parse_market_tick(payload: Mapping[str, Any], version: int, symbol: str) -> MarketState:
    """
    MarketState из тика рыночного фида.

    Args:
        payload: Словарь по контракту market_tick
        version: Версия, присваиваемая публикатором
        symbol: Тикер сессии (если в тике не указан)

    Raises:
        ContractViolation: Payload не соответствует контракту
    """
    data = dict(payload)
    validate_market_tick(data)

    data["version"] = version
    data.setdefault("symbol", symbol)

    try:
        return MarketState.model_validate(data)
    except ValidationError as e:
        raise ContractViolation("market_tick", [str(err["msg"]) for err in e.errors()], data) from e
