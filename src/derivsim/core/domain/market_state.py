"""
MarketState — Версионированный снапшот рынка

Immutable Pydantic модель. Каждый тик рынка порождает новый снапшот со
следующей версией; снапшоты разделяются между участниками только на чтение.
Полная совместимость с JSON Schema (contracts/schema/market_tick.json)
для входящей части (futures_price, risk_free_rate, implied_vols, timestamp).
"""

import math
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Final, Mapping, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from derivsim.core.domain.clock import days_between, ensure_utc, year_fraction
from derivsim.core.domain.instrument import Option

# IV по умолчанию, если нет ни котировки, ни base_volatility, ни fallback сессии
DEFAULT_BASE_VOLATILITY: Final[float] = 0.25

# Нижняя граница IV после шока сценария
SHOCKED_IV_FLOOR: Final[float] = 0.01

# Нижняя граница цены фьючерса после шока сценария
SHOCKED_PRICE_FLOOR: Final[float] = 1e-8


class MarketState(BaseModel):
    """
    Снапшот рынка фьючерса и его опционной поверхности.

    Никогда не мутируется: with_shock() и model_copy() создают новый экземпляр.
    """

    version: int = Field(..., ge=0, description="Монотонная версия снапшота")
    symbol: str = Field(..., min_length=1, description="Тикер фьючерса")
    futures_price: float = Field(..., gt=0, description="Цена фьючерса F")
    risk_free_rate: float = Field(..., description="Безрисковая ставка r (годовая, непрерывная)")
    implied_vols: Mapping[str, float] = Field(
        default_factory=lambda: MappingProxyType({}), description="IV по iv_key опциона (read-only)"
    )
    base_volatility: Optional[float] = Field(
        None, gt=0, description="IV тика для опционов без котировки в implied_vols"
    )
    timestamp: datetime = Field(..., description="Момент снапшота (UTC)")

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("futures_price", "risk_free_rate", "base_volatility")
    @classmethod
    def validate_finite(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError(f"value must be finite, got {v}")
        return v

    @field_validator("implied_vols")
    @classmethod
    def validate_vols(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        for key, vol in v.items():
            if not math.isfinite(vol) or vol <= 0:
                raise ValueError(f"implied vol for {key} must be positive and finite, got {vol}")
        return MappingProxyType(dict(v))

    @field_serializer("implied_vols")
    def serialize_vols(self, v: Mapping[str, float]) -> Dict[str, float]:
        return dict(v)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def implied_vol_for(self, option: Option, fallback: Optional[float] = None) -> float:
        """
        IV опциона из снапшота.

        Порядок: котировка implied_vols → base_volatility тика → fallback
        сессии → DEFAULT_BASE_VOLATILITY.
        """
        vol = self.implied_vols.get(option.iv_key)
        if vol is not None:
            return vol
        if self.base_volatility is not None:
            return self.base_volatility
        return fallback if fallback is not None else DEFAULT_BASE_VOLATILITY

    def time_to_expiry(self, expiry: datetime) -> float:
        """Время до экспирации в годах (ACT/365); отрицательно для истёкших."""
        return year_fraction(self.timestamp, expiry)

    def days_to_expiry(self, expiry: datetime) -> float:
        return days_between(self.timestamp, expiry)

    def with_fallback_vol(self, fallback: float) -> "MarketState":
        """Снапшот с base_volatility = fallback, если тик не задал свою."""
        if self.base_volatility is not None:
            return self
        return self.model_copy(update={"base_volatility": fallback})

    def with_shock(self, price_shock: float = 0.0, iv_shock: float = 0.0) -> "MarketState":
        """
        Сценарный снапшот: F·(1 + price_shock), IV + iv_shock (floored at 0.01).

        Шок IV применяется и к base_volatility, поэтому опционы без котировки
        в implied_vols шокируются так же, как котируемые (если base_volatility
        задана; см. with_fallback_vol).

        Args:
            price_shock: Относительный шок цены фьючерса (например, -0.04)
            iv_shock: Абсолютный шок волатильности (например, +0.05)

        Returns:
            Новый MarketState с той же версией
        """
        base = self.base_volatility
        return self.model_copy(
            update={
                "futures_price": max(SHOCKED_PRICE_FLOOR, self.futures_price * (1.0 + price_shock)),
                "implied_vols": MappingProxyType(
                    {
                        key: max(SHOCKED_IV_FLOOR, vol + iv_shock)
                        for key, vol in self.implied_vols.items()
                    }
                ),
                "base_volatility": None if base is None else max(SHOCKED_IV_FLOOR, base + iv_shock),
            }
        )
