"""
Spread & Fee Model — Синтетическая котировка и комиссии

Детерминированные чистые функции от конфигурации и входов.

Спред (bps) по таблице решений:
- Фьючерс: без экспирации → default; days < front_month_days → front_month; иначе back_month
- Опцион по |K/F − 1|: ≤ atm_threshold → ATM; > deep_threshold → deep OTM; иначе OTM;
  × near_expiry_multiplier при days < near_expiry_days

Котировка: half = mid·bps/10000/2, bid = mid − half (для опционов не ниже 0.01),
ask = mid + half; все цены квантованы к 0.01.

Комиссии: (exchange + clearing + commission)·qty + regulatory·(price·qty·multiplier),
clamp в [min_total, max_total], округление до центов.
"""

from typing import Final, Optional

from derivsim.config.models import FeeStructure, SpreadBands
from derivsim.core.domain.instrument import InstrumentClass
from derivsim.core.domain.quote import Quote
from derivsim.core.math.numerical_safeguards import PRICE_TICK, clamp, round_to_cents

BPS_DIVISOR: Final[float] = 10_000.0

# Минимальный bid опциона
OPTION_MIN_BID: Final[float] = PRICE_TICK


class SpreadFeeModel:
    """
    Модель спредов и комиссий сессии.

    Не хранит состояния кроме неизменяемой конфигурации.
    """

    def __init__(
        self,
        spread_bands: Optional[SpreadBands] = None,
        fee_structure: Optional[FeeStructure] = None,
        contract_multiplier: float = 1_000.0,
    ):
        """
        Args:
            spread_bands: Полосы спредов (default: SpreadBands())
            fee_structure: Структура комиссий (default: FeeStructure())
            contract_multiplier: Множитель контракта для notional
        """
        if contract_multiplier <= 0:
            raise ValueError(f"contract_multiplier must be positive, got {contract_multiplier}")
        self.spread_bands = spread_bands or SpreadBands()
        self.fee_structure = fee_structure or FeeStructure()
        self.contract_multiplier = contract_multiplier

    # -------------------------------------------------------------------------
    # Spreads
    # -------------------------------------------------------------------------

    def spread_bps(
        self,
        instrument_class: InstrumentClass,
        moneyness: Optional[float] = None,
        days_to_expiry: Optional[float] = None,
    ) -> float:
        """
        Ширина спреда в базисных пунктах.

        Args:
            instrument_class: FUTURE или OPTION
            moneyness: K/F (обязателен для опционов)
            days_to_expiry: Дни до экспирации (None — фьючерс без экспирации)
        """
        if InstrumentClass(instrument_class) is InstrumentClass.FUTURE:
            bands = self.spread_bands.futures
            if days_to_expiry is None:
                return bands.default
            if days_to_expiry < bands.front_month_days:
                return bands.front_month
            return bands.back_month

        if moneyness is None:
            raise ValueError("moneyness is required for option spreads")

        bands = self.spread_bands.options
        # Границы включительно: K/F = 1.05 ещё ATM, 1.15 ещё OTM
        if not 1.0 - bands.deep_threshold <= moneyness <= 1.0 + bands.deep_threshold:
            bps = bands.deep_otm
        elif not 1.0 - bands.atm_threshold <= moneyness <= 1.0 + bands.atm_threshold:
            bps = bands.otm
        else:
            bps = bands.atm

        if days_to_expiry is not None and days_to_expiry < bands.near_expiry_days:
            bps *= bands.near_expiry_multiplier
        return bps

    def quote(
        self,
        mid: float,
        instrument_class: InstrumentClass,
        moneyness: Optional[float] = None,
        days_to_expiry: Optional[float] = None,
    ) -> Quote:
        """
        Котировка вокруг теоретической цены.

        Args:
            mid: Теоретическая цена (Black-76 для опционов, F для фьючерсов)

        Returns:
            Quote с ценами, квантованными к 0.01
        """
        bps = self.spread_bps(instrument_class, moneyness, days_to_expiry)
        half_spread = mid * bps / BPS_DIVISOR / 2.0

        bid = mid - half_spread
        if InstrumentClass(instrument_class) is InstrumentClass.OPTION:
            bid = max(OPTION_MIN_BID, bid)

        bid = round_to_cents(bid)
        ask = max(round_to_cents(mid + half_spread), bid)
        return Quote(bid=bid, ask=ask, mid=round_to_cents(mid), spread_bps=bps)

    # -------------------------------------------------------------------------
    # Fees
    # -------------------------------------------------------------------------

    def fees(
        self,
        quantity: int,
        fill_price: float,
        instrument_class: InstrumentClass = InstrumentClass.OPTION,
    ) -> float:
        """
        Комиссии за исполнение.

        Одна структура комиссий для фьючерсов и опционов; для опционов
        notional считается от премии.

        Args:
            quantity: Исполненное количество контрактов
            fill_price: Цена исполнения
            instrument_class: Класс инструмента

        Returns:
            Сумма комиссий, округлённая до центов
        """
        fs = self.fee_structure
        notional = fill_price * abs(quantity) * self.contract_multiplier
        total = fs.per_contract * abs(quantity) + fs.regulatory_rate * notional
        total = clamp(total, fs.min_total, fs.max_total)
        return round_to_cents(total)
