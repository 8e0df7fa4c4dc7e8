"""
Order / Fill — Ордер участника и запись исполнения

Жизненный цикл ордера:
    PENDING → {FILLED, PARTIALLY_FILLED, CANCELLED, REJECTED}
    PARTIALLY_FILLED → {FILLED, CANCELLED}
    FILLED / CANCELLED / REJECTED — терминальные

quantity не ограничено на уровне модели: FillEngine проверяет его и
возвращает REJECTED вместо исключения.
Fill создаётся только FillEngine; история исполнений append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from derivsim.core.domain.clock import ensure_utc
from derivsim.core.domain.instrument import Instrument
from derivsim.core.domain.quote import Quote


# =============================================================================
# ENUMS
# =============================================================================


class Side(str, Enum):
    """Сторона ордера"""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def sign(self) -> int:
        return 1 if self is Side.BUY else -1


class OrderStyle(str, Enum):
    """Тип ордера"""

    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    """Статус ордера"""

    PENDING = "PENDING"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.FILLED, OrderStatus.CANCELLED, OrderStatus.REJECTED})


# =============================================================================
# ORDER MODEL
# =============================================================================


class Order(BaseModel):
    """
    Ордер участника.

    Immutable модель (frozen=True). Каждое изменение статуса создаёт новый
    экземпляр через model_copy(update=...).
    """

    # Идентификация
    order_id: str = Field(..., min_length=1, description="Уникальный ID ордера")
    participant_id: str = Field(..., min_length=1, description="ID участника")

    # Параметры
    side: Side = Field(..., description="BUY/SELL")
    style: OrderStyle = Field(..., description="MARKET/LIMIT")
    instrument: Instrument = Field(..., description="Фьючерс или опцион")
    quantity: int = Field(..., description="Количество контрактов (engine проверяет > 0)")
    limit_price: Optional[float] = Field(None, description="Лимитная цена (для LIMIT)")
    iv_override: Optional[float] = Field(None, description="IV участника вместо рыночной")

    # Состояние
    status: OrderStatus = Field(OrderStatus.PENDING, description="Текущий статус")
    filled_quantity: int = Field(0, ge=0, description="Исполненное количество")
    avg_fill_price: Optional[float] = Field(None, description="Средняя цена исполнения")
    total_fees: float = Field(0.0, ge=0, description="Накопленные комиссии")
    reject_reason: Optional[str] = Field(None, description="Причина отклонения")

    # Время и версия рынка
    created_at: datetime = Field(..., description="Время создания (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Время последнего изменения (UTC)")
    last_evaluated_version: Optional[int] = Field(
        None, description="Версия MarketState последней оценки (идемпотентность)"
    )

    model_config = {"frozen": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_resting(self) -> bool:
        """Ордер ждёт исполнения (PENDING или PARTIALLY_FILLED)."""
        return not self.is_terminal

    @property
    def remaining_quantity(self) -> int:
        return max(0, self.quantity - self.filled_quantity)


# =============================================================================
# FILL MODEL
# =============================================================================


class Fill(BaseModel):
    """Запись исполнения. Создаётся только FillEngine."""

    fill_id: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    participant_id: str = Field(..., min_length=1)
    instrument: Instrument
    side: Side
    price: float = Field(..., ge=0, description="Цена исполнения")
    quantity: int = Field(..., gt=0, description="Исполненное количество")
    fees: float = Field(..., ge=0, description="Комиссии за исполнение")
    theoretical_price: float = Field(..., ge=0, description="Теоретическая цена на момент fill")
    quote: Quote = Field(..., description="Котировка, против которой исполнен ордер")
    market_version: int = Field(..., ge=0, description="Версия MarketState")
    timestamp: datetime = Field(..., description="Время исполнения (UTC)")

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def signed_quantity(self) -> int:
        return self.side.sign * self.quantity

    @property
    def notional(self) -> float:
        return self.price * self.quantity
