"""
Fill/Matching Engine — Исполнение ордеров против синтетического рынка

Порядок обработки ордера:
1. Валидация (validate_order) → REJECTED с RejectReason, без побочных эффектов
2. Теоретическая цена и котировка (Black-76 + SpreadFeeModel)
3. Решение об исполнении (match):
   - MARKET: по mid (MarketFillMode.MID) или через спред (MarketFillMode.CROSS)
   - LIMIT BUY: limit ≥ ask → по min(limit, ask)
   - LIMIT SELL: limit ≤ bid → по max(limit, bid)
   - иначе ордер ждёт (PENDING) до следующего снапшота
4. Комиссии и Fill; позицию обновляет вызывающий код

Исключения не используются для управления потоком: каждая операция
возвращает MatchResult.

Идемпотентность: ордер хранит last_evaluated_version; повторная оценка
на той же (или более старой) версии рынка ничего не меняет.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Final, Iterable, List, Optional, Tuple

from derivsim.config.models import MarketFillMode, SessionConfig
from derivsim.core.domain.clock import ONE_DAY_YEARS, ensure_utc
from derivsim.core.domain.instrument import Future, InstrumentClass, Option, OptionType
from derivsim.core.domain.market_state import MarketState
from derivsim.core.domain.order import Fill, Order, OrderStatus, OrderStyle, Side
from derivsim.core.domain.quote import Quote
from derivsim.core.logging import get_logger
from derivsim.core.math.numerical_safeguards import clamp, is_valid_float
from derivsim.pricing.black76 import black76_price
from derivsim.pricing.spread_fees import SpreadFeeModel

# Минимальное время до экспирации при ценообразовании ордера (1 день)
MIN_ORDER_TIME_TO_EXPIRY: Final[float] = ONE_DAY_YEARS


class RejectReason(str, Enum):
    """Причина отклонения ордера"""

    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_LIMIT_PRICE = "INVALID_LIMIT_PRICE"
    INVALID_STRIKE = "INVALID_STRIKE"
    EXPIRED_OPTION = "EXPIRED_OPTION"
    INVALID_OPTION_TYPE = "INVALID_OPTION_TYPE"
    INVALID_IV_OVERRIDE = "INVALID_IV_OVERRIDE"
    SYMBOL_MISMATCH = "SYMBOL_MISMATCH"
    NO_MARKET_DATA = "NO_MARKET_DATA"
    ORDER_TERMINAL = "ORDER_TERMINAL"
    ORDER_NOT_CANCELLABLE = "ORDER_NOT_CANCELLABLE"
    UNKNOWN_ORDER = "UNKNOWN_ORDER"
    DUPLICATE_ORDER_ID = "DUPLICATE_ORDER_ID"


REJECT_MESSAGES: Final[dict] = {
    RejectReason.INVALID_QUANTITY: "Invalid quantity",
    RejectReason.INVALID_LIMIT_PRICE: "Invalid limit price",
    RejectReason.INVALID_STRIKE: "Invalid strike price",
    RejectReason.EXPIRED_OPTION: "Invalid or expired expiry date",
    RejectReason.INVALID_OPTION_TYPE: "Invalid option type",
    RejectReason.INVALID_IV_OVERRIDE: "Invalid IV override",
    RejectReason.SYMBOL_MISMATCH: "Instrument symbol does not match market",
    RejectReason.NO_MARKET_DATA: "No market snapshot available",
    RejectReason.ORDER_TERMINAL: "Order is already in a terminal state",
    RejectReason.ORDER_NOT_CANCELLABLE: "Order cannot be cancelled",
    RejectReason.UNKNOWN_ORDER: "Unknown order",
    RejectReason.DUPLICATE_ORDER_ID: "Duplicate order_id",
}


@dataclass(frozen=True)
class MatchResult:
    """
    Результат операции FillEngine.

    status — статус ордера после операции (для отказа в отмене — REJECTED,
    при этом order возвращается без изменений). order = None только для
    отмены неизвестного order_id.
    """

    status: OrderStatus
    order: Optional[Order]
    fill: Optional[Fill] = None
    reject_reason: Optional[RejectReason] = None
    theoretical_price: Optional[float] = None
    quote: Optional[Quote] = None
    message: str = ""

    @property
    def filled(self) -> bool:
        return self.fill is not None

    @property
    def rejected(self) -> bool:
        return self.status == OrderStatus.REJECTED


class FillEngine:
    """
    Движок исполнения ордеров.

    Чистые вычисления над неизменяемыми Order/MarketState: состояние
    движка — только конфигурация сессии и генератор fill_id.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        fill_id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            config: Конфигурация сессии (default: SessionConfig())
            fill_id_factory: Генератор fill_id (default: uuid4 hex)
        """
        self.config = config or SessionConfig()
        self.spread_fee_model = SpreadFeeModel(
            spread_bands=self.config.spread_bands,
            fee_structure=self.config.fees,
            contract_multiplier=self.config.contract_multiplier,
        )
        self._fill_id_factory = fill_id_factory or (lambda: uuid.uuid4().hex)
        self._log = get_logger("FillEngine")

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_order(self, order: Order, market: MarketState) -> Optional[RejectReason]:
        """
        Проверка ордера против снапшота рынка.

        Returns:
            None если ордер валиден, иначе причина отклонения
        """
        if order.is_terminal:
            return RejectReason.ORDER_TERMINAL

        if order.quantity <= 0:
            return RejectReason.INVALID_QUANTITY

        if order.style == OrderStyle.LIMIT and (
            order.limit_price is None
            or not is_valid_float(order.limit_price)
            or order.limit_price <= 0
        ):
            return RejectReason.INVALID_LIMIT_PRICE

        instrument = order.instrument
        if instrument.symbol != market.symbol:
            return RejectReason.SYMBOL_MISMATCH

        if isinstance(instrument, Option):
            if not is_valid_float(instrument.strike) or instrument.strike <= 0:
                return RejectReason.INVALID_STRIKE
            if instrument.expiry <= market.timestamp:
                return RejectReason.EXPIRED_OPTION
            if instrument.option_type not in (OptionType.CALL, OptionType.PUT):
                return RejectReason.INVALID_OPTION_TYPE

        if order.iv_override is not None and (
            not is_valid_float(order.iv_override) or order.iv_override <= 0
        ):
            return RejectReason.INVALID_IV_OVERRIDE

        return None

    # =========================================================================
    # PRICING
    # =========================================================================

    def bounded_iv(self, requested_iv: float, moneyness: float) -> float:
        """
        IV в допустимом диапазоне.

        clamp в [iv_min, iv_max]; для экстремальной moneyness
        (вне [extreme_moneyness_low, extreme_moneyness_high]) — дополнительно
        в [extreme_iv_min, extreme_iv_max].
        """
        bounds = self.config.iv_bounds
        iv = clamp(requested_iv, bounds.iv_min, bounds.iv_max)
        if moneyness > bounds.extreme_moneyness_high or moneyness < bounds.extreme_moneyness_low:
            iv = clamp(iv, bounds.extreme_iv_min, bounds.extreme_iv_max)
        return iv

    def theoretical_quote(
        self,
        instrument: Future | Option,
        market: MarketState,
        iv_override: Optional[float] = None,
    ) -> Tuple[float, Quote]:
        """
        Теоретическая цена и котировка инструмента на снапшоте.

        Опцион: Black-76 с T = max(time_to_expiry, 1 день) и bounded IV
        (override участника или IV снапшота). Фьючерс: theo = F.
        """
        F = market.futures_price

        if isinstance(instrument, Future):
            days = market.days_to_expiry(instrument.expiry) if instrument.expiry else None
            return F, self.spread_fee_model.quote(F, InstrumentClass.FUTURE, None, days)

        moneyness = instrument.moneyness(F)
        requested_iv = iv_override
        if requested_iv is None:
            requested_iv = market.implied_vol_for(instrument, self.config.fallback_iv)
        iv = self.bounded_iv(requested_iv, moneyness)
        T = max(market.time_to_expiry(instrument.expiry), MIN_ORDER_TIME_TO_EXPIRY)

        theo = black76_price(F, instrument.strike, T, iv, market.risk_free_rate, instrument.option_type)
        quote = self.spread_fee_model.quote(
            theo,
            InstrumentClass.OPTION,
            moneyness,
            market.days_to_expiry(instrument.expiry),
        )
        return theo, quote

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, order: Order, quote: Quote) -> Tuple[bool, Optional[float]]:
        """
        Решение об исполнении ордера против котировки.

        Returns:
            (should_fill, fill_price); fill_price is None если исполнения нет
        """
        if order.style == OrderStyle.MARKET:
            if self.config.market_fill_mode == MarketFillMode.CROSS:
                return True, quote.ask if order.side == Side.BUY else quote.bid
            return True, quote.mid

        limit = order.limit_price
        if limit is None:
            return False, None

        if order.side == Side.BUY:
            if limit >= quote.ask:
                return True, min(limit, quote.ask)
        elif limit <= quote.bid:
            return True, max(limit, quote.bid)

        return False, None

    def submit(self, order: Order, market: MarketState) -> MatchResult:
        """
        Первичная обработка нового ордера.

        Returns:
            MatchResult со статусом FILLED / PARTIALLY_FILLED / PENDING / REJECTED
        """
        if order.is_terminal:
            # Терминальный ордер не меняется
            return MatchResult(
                status=OrderStatus.REJECTED,
                order=order,
                reject_reason=RejectReason.ORDER_TERMINAL,
                message=REJECT_MESSAGES[RejectReason.ORDER_TERMINAL],
            )

        reason = self.validate_order(order, market)
        if reason is not None:
            return self.reject(order, reason, market.timestamp, market.version)

        return self._execute(order, market)

    def reject(
        self,
        order: Order,
        reason: RejectReason,
        timestamp: datetime,
        market_version: Optional[int] = None,
    ) -> MatchResult:
        """Отклонение нового ордера: REJECTED без fill и других побочных эффектов."""
        rejected = order.model_copy(
            update={
                "status": OrderStatus.REJECTED,
                "reject_reason": reason.value,
                "updated_at": ensure_utc(timestamp),
                "last_evaluated_version": market_version,
            }
        )
        self._log.info(
            f"Order {order.order_id} rejected: {reason.value} "
            f"(participant={order.participant_id})"
        )
        return MatchResult(
            status=OrderStatus.REJECTED,
            order=rejected,
            reject_reason=reason,
            message=REJECT_MESSAGES[reason],
        )

    def unknown_order(self, order_id: str) -> MatchResult:
        """Отказ в операции над order_id, которого нет у участника."""
        self._log.info(f"Unknown order {order_id}")
        return MatchResult(
            status=OrderStatus.REJECTED,
            order=None,
            reject_reason=RejectReason.UNKNOWN_ORDER,
            message=f"{REJECT_MESSAGES[RejectReason.UNKNOWN_ORDER]}: {order_id}",
        )

    def reevaluate(self, order: Order, market: MarketState) -> MatchResult:
        """
        Повторная оценка ожидающего ордера на новом снапшоте.

        Терминальный ордер или ордер, уже оценённый на этой (или более новой)
        версии рынка, возвращается без изменений и без fill. Ордер, ставший
        невалидным (например, опцион истёк), снимается как CANCELLED.
        """
        if order.is_terminal:
            return MatchResult(status=order.status, order=order, message="Order is terminal")

        if order.last_evaluated_version is not None and order.last_evaluated_version >= market.version:
            return MatchResult(
                status=order.status,
                order=order,
                message=f"Already evaluated at market version {order.last_evaluated_version}",
            )

        reason = self.validate_order(order, market)
        if reason is not None:
            cancelled = order.model_copy(
                update={
                    "status": OrderStatus.CANCELLED,
                    "reject_reason": reason.value,
                    "updated_at": market.timestamp,
                    "last_evaluated_version": market.version,
                }
            )
            self._log.info(f"Resting order {order.order_id} withdrawn: {reason.value}")
            return MatchResult(
                status=OrderStatus.CANCELLED,
                order=cancelled,
                reject_reason=reason,
                message=REJECT_MESSAGES[reason],
            )

        return self._execute(order, market)

    def reevaluate_resting(self, orders: Iterable[Order], market: MarketState) -> List[MatchResult]:
        """Повторная оценка всех ожидающих ордеров (в порядке поступления)."""
        return [self.reevaluate(order, market) for order in orders if order.is_resting]

    def cancel(self, order: Order, timestamp: datetime) -> MatchResult:
        """
        Отмена ожидающего ордера.

        PENDING / PARTIALLY_FILLED → CANCELLED; терминальный ордер не меняется,
        результат REJECTED с ORDER_NOT_CANCELLABLE.
        """
        if order.is_terminal:
            return MatchResult(
                status=OrderStatus.REJECTED,
                order=order,
                reject_reason=RejectReason.ORDER_NOT_CANCELLABLE,
                message=f"{REJECT_MESSAGES[RejectReason.ORDER_NOT_CANCELLABLE]}: {order.status.value}",
            )

        cancelled = order.model_copy(
            update={"status": OrderStatus.CANCELLED, "updated_at": ensure_utc(timestamp)}
        )
        self._log.debug(f"Order {order.order_id} cancelled")
        return MatchResult(status=OrderStatus.CANCELLED, order=cancelled, message="Order cancelled")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _execute(self, order: Order, market: MarketState) -> MatchResult:
        theo, quote = self.theoretical_quote(order.instrument, market, order.iv_override)
        should_fill, price = self.match(order, quote)

        if not should_fill or price is None:
            resting_status = (
                OrderStatus.PENDING if order.filled_quantity == 0 else OrderStatus.PARTIALLY_FILLED
            )
            resting = order.model_copy(
                update={
                    "status": resting_status,
                    "updated_at": market.timestamp,
                    "last_evaluated_version": market.version,
                }
            )
            return MatchResult(
                status=resting_status,
                order=resting,
                theoretical_price=theo,
                quote=quote,
                message="Order resting in book",
            )

        fill_qty = order.remaining_quantity
        cap = self.config.max_fill_quantity_per_tick
        if cap is not None:
            fill_qty = min(fill_qty, cap)

        fees = self.spread_fee_model.fees(fill_qty, price, order.instrument.instrument_class)
        fill = Fill(
            fill_id=self._fill_id_factory(),
            order_id=order.order_id,
            participant_id=order.participant_id,
            instrument=order.instrument,
            side=order.side,
            price=price,
            quantity=fill_qty,
            fees=fees,
            theoretical_price=max(0.0, theo),
            quote=quote,
            market_version=market.version,
            timestamp=market.timestamp,
        )

        filled_total = order.filled_quantity + fill_qty
        prev_notional = (order.avg_fill_price or 0.0) * order.filled_quantity
        avg_price = (prev_notional + price * fill_qty) / filled_total
        status = OrderStatus.FILLED if filled_total >= order.quantity else OrderStatus.PARTIALLY_FILLED

        updated = order.model_copy(
            update={
                "status": status,
                "filled_quantity": filled_total,
                "avg_fill_price": avg_price,
                "total_fees": order.total_fees + fees,
                "updated_at": market.timestamp,
                "last_evaluated_version": market.version,
            }
        )

        self._log.info(
            f"Fill {fill.fill_id}: {order.side.value} {fill_qty} {order.instrument.symbol} "
            f"@ {price:.2f} (theo={theo:.4f}, fees={fees:.2f}, v{market.version}, {status.value})"
        )
        return MatchResult(
            status=status,
            order=updated,
            fill=fill,
            theoretical_price=theo,
            quote=quote,
            message="Order filled" if status == OrderStatus.FILLED else "Order partially filled",
        )

