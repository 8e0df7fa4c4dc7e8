"""
Position — Позиция участника по одному инструменту

Immutable Pydantic модель. apply_fill() возвращает новую позицию:
- Добавление в ту же сторону: weighted-average cost
- Сокращение/закрытие: реализуется closed_qty × (exit − avg) × sign × multiplier,
  средняя цена остатка не меняется
- Переворот: закрывается вся позиция, остаток открывается по цене fill
"""

from pydantic import BaseModel, Field

from derivsim.core.domain.instrument import Instrument
from derivsim.core.domain.order import Fill


class Position(BaseModel):
    """
    Позиция участника.

    quantity со знаком: > 0 long, < 0 short, 0 — позиция закрыта
    (realized_pnl и total_fees сохраняются).
    """

    participant_id: str = Field(..., min_length=1, description="ID участника")
    instrument: Instrument = Field(..., description="Инструмент позиции")
    quantity: int = Field(0, description="Количество контрактов со знаком")
    avg_price: float = Field(0.0, ge=0, description="Средняя цена открытой части")
    realized_pnl: float = Field(0.0, description="Реализованный PnL")
    contract_multiplier: float = Field(1.0, gt=0, description="Множитель контракта")
    total_fees: float = Field(0.0, ge=0, description="Накопленные комиссии")

    model_config = {"frozen": True}  # Immutable

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0

    @property
    def direction(self) -> int:
        """+1 long, -1 short, 0 flat."""
        return (self.quantity > 0) - (self.quantity < 0)

    def apply_fill(self, fill: Fill) -> "Position":
        """
        Применение исполнения к позиции.

        Args:
            fill: Исполнение по тому же инструменту

        Returns:
            Новый экземпляр Position

        Raises:
            ValueError: Если fill относится к другому инструменту или участнику
        """
        if fill.instrument != self.instrument or fill.participant_id != self.participant_id:
            raise ValueError(
                f"fill {fill.fill_id} does not belong to position "
                f"{self.participant_id}/{self.instrument}"
            )

        signed = fill.signed_quantity
        qty = self.quantity
        avg = self.avg_price
        realized = self.realized_pnl

        if qty == 0 or (qty > 0) == (signed > 0):
            # Открытие или добавление в ту же сторону
            new_qty = qty + signed
            avg = (abs(qty) * avg + abs(signed) * fill.price) / abs(new_qty)
        else:
            closed = min(abs(qty), abs(signed))
            realized += closed * (fill.price - avg) * self.direction * self.contract_multiplier
            new_qty = qty + signed
            if new_qty == 0:
                avg = 0.0
            elif (new_qty > 0) != (qty > 0):
                # Переворот: остаток открыт по цене fill
                avg = fill.price

        return self.model_copy(
            update={
                "quantity": new_qty,
                "avg_price": avg,
                "realized_pnl": realized,
                "total_fees": self.total_fees + fill.fees,
            }
        )

    def unrealized_pnl(self, mark_price: float) -> float:
        """Нереализованный PnL открытой части по цене mark_price."""
        return self.quantity * (mark_price - self.avg_price) * self.contract_multiplier

    def market_value(self, mark_price: float) -> float:
        return self.quantity * mark_price * self.contract_multiplier
