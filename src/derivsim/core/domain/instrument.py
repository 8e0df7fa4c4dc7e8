"""
Instrument — Фьючерс или опцион на фьючерс

Discriminated union по полю kind: Future | Option.

Идентичность опциона (iv_key) — (strike, expiry, type). По этому ключу
MarketState хранит implied volatility.

Параметры опциона (strike, expiry) намеренно не ограничены на уровне модели:
некорректный опцион должен дойти до FillEngine и получить REJECTED,
а не упасть исключением при разборе ордера.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from derivsim.core.domain.clock import ensure_utc


# =============================================================================
# ENUMS
# =============================================================================


class OptionType(str, Enum):
    """Тип опциона"""

    CALL = "C"
    PUT = "P"


class InstrumentClass(str, Enum):
    """Класс инструмента (для выбора спредовой полосы)"""

    FUTURE = "future"
    OPTION = "option"


def make_iv_key(strike: float, expiry: datetime, option_type: OptionType) -> str:
    """
    Ключ implied volatility опциона: "{strike}_{expiry ISO}_{C|P}".

    Examples:
        >>> make_iv_key(82.5, datetime(2026, 12, 18, tzinfo=timezone.utc), OptionType.CALL)
        '82.5_2026-12-18T00:00:00+00:00_C'
    """
    return f"{strike:g}_{ensure_utc(expiry).isoformat()}_{OptionType(option_type).value}"


# =============================================================================
# INSTRUMENT MODELS
# =============================================================================


class Future(BaseModel):
    """Фьючерсный контракт. expiry опционален (без него — default спредовая полоса)."""

    kind: Literal["future"] = "future"
    symbol: str = Field(..., min_length=1, description="Тикер фьючерса (например, 'CL')")
    expiry: Optional[datetime] = Field(None, description="Экспирация фьючерса (UTC)")

    model_config = {"frozen": True}

    @field_validator("expiry")
    @classmethod
    def normalize_expiry(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def instrument_class(self) -> InstrumentClass:
        return InstrumentClass.FUTURE

    @property
    def key(self) -> str:
        """Идентичность инструмента (для агрегирования по позициям)."""
        expiry = self.expiry.isoformat() if self.expiry else "perp"
        return f"{self.symbol}_FUT_{expiry}"


class Option(BaseModel):
    """Опцион на фьючерс (европейский, Black-76)."""

    kind: Literal["option"] = "option"
    symbol: str = Field(..., min_length=1, description="Тикер базового фьючерса")
    strike: float = Field(..., description="Страйк (engine проверяет strike > 0)")
    expiry: datetime = Field(..., description="Экспирация опциона (UTC)")
    option_type: OptionType = Field(..., description="C или P")

    model_config = {"frozen": True}

    @field_validator("expiry")
    @classmethod
    def normalize_expiry(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def instrument_class(self) -> InstrumentClass:
        return InstrumentClass.OPTION

    @property
    def iv_key(self) -> str:
        """Идентичность опциона для поиска implied volatility."""
        return make_iv_key(self.strike, self.expiry, self.option_type)

    @property
    def key(self) -> str:
        return f"{self.symbol}_{self.iv_key}"

    @property
    def is_call(self) -> bool:
        return self.option_type == OptionType.CALL

    def moneyness(self, futures_price: float) -> float:
        """Moneyness = strike / F."""
        return self.strike / futures_price


Instrument = Annotated[Union[Future, Option], Field(discriminator="kind")]
