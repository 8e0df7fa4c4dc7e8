"""
Quote — Двусторонняя котировка инструмента

Цены квантованы к тику 0.01.
"""

from pydantic import BaseModel, Field, model_validator


class Quote(BaseModel):
    """Котировка bid/ask вокруг теоретической mid цены."""

    bid: float = Field(..., ge=0, description="Цена покупки маркет-мейкера")
    ask: float = Field(..., ge=0, description="Цена продажи маркет-мейкера")
    mid: float = Field(..., ge=0, description="Теоретическая (mid) цена")
    spread_bps: float = Field(..., ge=0, description="Применённый спред (базисные пункты)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_not_crossed(self) -> "Quote":
        if self.bid > self.ask:
            raise ValueError(f"crossed quote: bid {self.bid} > ask {self.ask}")
        return self

    @property
    def width(self) -> float:
        return self.ask - self.bid
