"""
Session Configuration — Неизменяемая конфигурация сессии

Все модели frozen; изменение конфигурации — только явная замена целиком
(Session.reconfigure). Значения по умолчанию соответствуют стандартной
учебной сессии (bankroll 100 000, VaR limit 5 000, лимиты Greeks от VaR limit).
"""

from enum import Enum
from typing import Dict, Final, Optional

from pydantic import BaseModel, Field, model_validator

from derivsim.core.domain.market_state import DEFAULT_BASE_VOLATILITY
from derivsim.core.domain.risk import RiskDimension, Severity

DEFAULT_INITIAL_BANKROLL: Final[float] = 100_000.0
DEFAULT_CONTRACT_MULTIPLIER: Final[float] = 1_000.0
DEFAULT_VAR_LIMIT: Final[float] = 5_000.0


class MarketFillMode(str, Enum):
    """
    Цена исполнения MARKET ордеров.

    MID — по теоретической mid цене котировки.
    CROSS — BUY по ask, SELL по bid.
    """

    MID = "MID"
    CROSS = "CROSS"


# =============================================================================
# SPREADS & FEES
# =============================================================================


class FuturesSpreadBands(BaseModel):
    """Спреды фьючерсов (bps)."""

    default: float = Field(2.0, ge=0, description="Без экспирации")
    front_month: float = Field(1.5, ge=0, description="days_to_expiry < front_month_days")
    back_month: float = Field(3.0, ge=0, description="Остальные экспирации")
    front_month_days: float = Field(30.0, gt=0)

    model_config = {"frozen": True}


class OptionSpreadBands(BaseModel):
    """Спреды опционов (bps) по moneyness |K/F − 1|."""

    atm: float = Field(5.0, ge=0, description="|K/F − 1| ≤ atm_threshold")
    otm: float = Field(10.0, ge=0, description="atm_threshold < |K/F − 1| ≤ deep_threshold")
    deep_otm: float = Field(20.0, ge=0, description="|K/F − 1| > deep_threshold")
    near_expiry_multiplier: float = Field(1.5, ge=1.0)
    atm_threshold: float = Field(0.05, gt=0)
    deep_threshold: float = Field(0.15, gt=0)
    near_expiry_days: float = Field(7.0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_thresholds(self) -> "OptionSpreadBands":
        if self.deep_threshold <= self.atm_threshold:
            raise ValueError(
                f"deep_threshold {self.deep_threshold} must exceed atm_threshold {self.atm_threshold}"
            )
        return self


class SpreadBands(BaseModel):
    futures: FuturesSpreadBands = Field(default_factory=FuturesSpreadBands)
    options: OptionSpreadBands = Field(default_factory=OptionSpreadBands)

    model_config = {"frozen": True}


class FeeStructure(BaseModel):
    """
    Комиссии за контракт и регуляторный сбор от notional.

    total = (exchange + clearing + commission)·qty + regulatory·notional,
    clamp в [min_total, max_total] (если заданы).
    """

    exchange_per_contract: float = Field(0.50, ge=0)
    clearing_per_contract: float = Field(0.25, ge=0)
    commission_per_contract: float = Field(1.00, ge=0)
    regulatory_rate: float = Field(0.00002, ge=0, description="Доля notional")
    min_total: Optional[float] = Field(2.00, ge=0)
    max_total: Optional[float] = Field(100.00, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_bounds(self) -> "FeeStructure":
        if (
            self.min_total is not None
            and self.max_total is not None
            and self.min_total > self.max_total
        ):
            raise ValueError(f"min_total {self.min_total} exceeds max_total {self.max_total}")
        return self

    @property
    def per_contract(self) -> float:
        return self.exchange_per_contract + self.clearing_per_contract + self.commission_per_contract


class IVBounds(BaseModel):
    """Допустимый диапазон IV при ценообразовании ордеров."""

    iv_min: float = Field(0.05, gt=0)
    iv_max: float = Field(1.0, gt=0)
    extreme_iv_min: float = Field(0.10, gt=0, description="Для moneyness вне [low, high]")
    extreme_iv_max: float = Field(0.80, gt=0)
    extreme_moneyness_low: float = Field(0.5, gt=0)
    extreme_moneyness_high: float = Field(1.5, gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_ranges(self) -> "IVBounds":
        if self.iv_min >= self.iv_max:
            raise ValueError(f"iv_min {self.iv_min} must be below iv_max {self.iv_max}")
        if self.extreme_iv_min >= self.extreme_iv_max:
            raise ValueError("extreme_iv_min must be below extreme_iv_max")
        if self.extreme_moneyness_low >= self.extreme_moneyness_high:
            raise ValueError("extreme_moneyness_low must be below extreme_moneyness_high")
        return self


# =============================================================================
# RISK & SCORING
# =============================================================================


class RiskLimits(BaseModel):
    """Лимиты |Greek| и VaR-95 портфеля участника."""

    delta: float = Field(1_000.0, gt=0)
    gamma: float = Field(100.0, gt=0)
    vega: float = Field(500.0, gt=0)
    theta: float = Field(200.0, gt=0)
    var: float = Field(DEFAULT_VAR_LIMIT, gt=0)

    model_config = {"frozen": True}

    def cap_for(self, dimension: RiskDimension) -> float:
        return getattr(self, dimension.value.lower())

    @classmethod
    def from_var_limit(cls, var_limit: float) -> "RiskLimits":
        """Лимиты Greeks, производные от VaR limit (0.2 / 0.02 / 0.1 / 0.04)."""
        return cls(
            delta=var_limit * 0.2,
            gamma=var_limit * 0.02,
            vega=var_limit * 0.1,
            theta=var_limit * 0.04,
            var=var_limit,
        )


class VaRSettings(BaseModel):
    """Параметры scenario-grid VaR."""

    price_volatility: float = Field(0.02, gt=0, description="Дневная волатильность цены (доля)")
    iv_shock: float = Field(0.05, ge=0, description="Абсолютный шок IV")
    stress_multiplier: float = Field(2.0, ge=1.0)

    model_config = {"frozen": True}


class ScoringWeights(BaseModel):
    """
    Веса штрафов score.

    raw = realized − (α·breach_seconds + β·VaR excess + γ·max_drawdown + δ·fees)
    """

    breach_weight: float = Field(0.1, ge=0, description="α — за взвешенную секунду нарушения")
    var_weight: float = Field(0.2, ge=0, description="β — за единицу превышения VaR limit")
    drawdown_weight: float = Field(0.1, ge=0, description="γ — за единицу max drawdown")
    fee_weight: float = Field(1.0, ge=0, description="δ — за единицу комиссий")

    model_config = {"frozen": True}


def _default_severity_weights() -> Dict[Severity, float]:
    return {Severity.WARNING: 0.0, Severity.BREACH: 1.0, Severity.CRITICAL: 2.0}


def _default_dimension_multipliers() -> Dict[RiskDimension, float]:
    return {
        RiskDimension.DELTA: 1.0,
        RiskDimension.GAMMA: 1.5,
        RiskDimension.VEGA: 1.0,
        RiskDimension.THETA: 0.8,
        RiskDimension.VAR: 2.0,
    }


class BreachSeverityConfig(BaseModel):
    """
    Классификация тяжести нарушения по ratio = |value| / cap.

    ratio ≤ warning_max_ratio → WARNING, ≤ breach_max_ratio → BREACH, иначе CRITICAL.
    """

    warning_max_ratio: float = Field(1.1, gt=1.0)
    breach_max_ratio: float = Field(1.5, gt=1.0)
    severity_weights: Dict[Severity, float] = Field(default_factory=_default_severity_weights)
    dimension_multipliers: Dict[RiskDimension, float] = Field(
        default_factory=_default_dimension_multipliers
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_ratios(self) -> "BreachSeverityConfig":
        if self.breach_max_ratio <= self.warning_max_ratio:
            raise ValueError("breach_max_ratio must exceed warning_max_ratio")
        return self

    def classify(self, ratio: float) -> Severity:
        if ratio <= self.warning_max_ratio:
            return Severity.WARNING
        if ratio <= self.breach_max_ratio:
            return Severity.BREACH
        return Severity.CRITICAL

    def weight(self, severity: Severity, dimension: RiskDimension) -> float:
        """Вес секунды нарушения: severity weight × dimension multiplier."""
        return self.severity_weights.get(severity, 0.0) * self.dimension_multipliers.get(
            dimension, 1.0
        )


# =============================================================================
# SESSION
# =============================================================================


class SessionConfig(BaseModel):
    """Полная конфигурация сессии."""

    session_id: str = Field("default", min_length=1)
    symbol: str = Field("BRN", min_length=1, description="Тикер фьючерса сессии")
    initial_bankroll: float = Field(DEFAULT_INITIAL_BANKROLL, gt=0)
    contract_multiplier: float = Field(DEFAULT_CONTRACT_MULTIPLIER, gt=0)
    fallback_iv: float = Field(
        DEFAULT_BASE_VOLATILITY,
        gt=0,
        description="IV для опционов без котировки и без base_volatility тика",
    )

    spread_bands: SpreadBands = Field(default_factory=SpreadBands)
    fees: FeeStructure = Field(default_factory=FeeStructure)
    iv_bounds: IVBounds = Field(default_factory=IVBounds)
    risk_limits: RiskLimits = Field(default_factory=RiskLimits)
    var: VaRSettings = Field(default_factory=VaRSettings)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    breach_severity: BreachSeverityConfig = Field(default_factory=BreachSeverityConfig)

    market_fill_mode: MarketFillMode = Field(MarketFillMode.MID)
    max_fill_quantity_per_tick: Optional[int] = Field(
        None, gt=0, description="Лимит ликвидности на снапшот (None — без лимита)"
    )
    snapshot_history_size: int = Field(256, gt=0, description="Размер кольца версий MarketState")

    model_config = {"frozen": True}
