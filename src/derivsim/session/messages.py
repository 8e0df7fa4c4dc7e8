"""
Сообщения почтового ящика ParticipantWorker.

Запросы с ответом несут asyncio.Future, которую worker завершает
результатом или исключением.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from derivsim.config.models import SessionConfig
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.order import Order


@dataclass(frozen=True)
class SubmitOrder:
    order: Order
    reply: asyncio.Future


@dataclass(frozen=True)
class CancelOrder:
    order_id: str
    timestamp: datetime
    reply: asyncio.Future


@dataclass(frozen=True)
class MarketUpdate:
    """Новый опубликованный снапшот рынка. Ответа не требует."""

    market: MarketState


@dataclass(frozen=True)
class SnapshotRequest:
    reply: asyncio.Future


@dataclass(frozen=True)
class ResetDay:
    reply: asyncio.Future
    new_bankroll: Optional[float] = None


@dataclass(frozen=True)
class Reconfigure:
    config: SessionConfig
    reply: asyncio.Future


@dataclass(frozen=True)
class Stop:
    pass


WorkerMessage = Union[
    SubmitOrder, CancelOrder, MarketUpdate, SnapshotRequest, ResetDay, Reconfigure, Stop
]
