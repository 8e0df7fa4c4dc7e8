"""
Numerical Safeguards — примитивы для цен, спредов и отношений риска

Используются движком исполнения (валидация float, clamp IV), моделью
спредов (квантование к шагу котировки) и метриками риска (деление на
лимит/пик equity без ZeroDivisionError).

ИНВАРИАНТЫ:
1. safe_divide никогда не бросает исключение: 0/NaN/Inf знаменатель → fallback
2. Денежные суммы квантуются к PRICE_TICK, половина округляется от нуля
"""

import math
from typing import Final

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

# Минимальный модуль знаменателя в safe_divide
EPS_CALC: Final[float] = 1e-12

# Сдвиг перед квантованием цены (двоичное представление 82.525 → 82.52499999)
EPS_PRICE: Final[float] = 1e-8

# Шаг котировки и денежных сумм (центы)
PRICE_TICK: Final[float] = 0.01


# =============================================================================
# ДЕЛЕНИЕ И ВАЛИДАЦИЯ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """True для конечного float (не NaN, не Inf)."""
    return math.isfinite(value)


def safe_divide(
    numerator: float,
    denominator: float,
    eps: float = EPS_CALC,
    fallback: float = 0.0,
) -> float:
    """
    Деление с защитой от нуля и NaN/Inf.

    Знаменатель 0.0, NaN или Inf → fallback. Ненулевой знаменатель по модулю
    меньше eps заменяется на ±eps с сохранением знака. Невалидный числитель
    считается нулём.

    Examples:
        >>> safe_divide(10.0, 4.0)
        2.5
        >>> safe_divide(10.0, 0.0, fallback=-1.0)
        -1.0
    """
    if not is_valid_float(denominator) or denominator == 0.0:
        return fallback
    if not is_valid_float(numerator):
        numerator = 0.0

    result = numerator / math.copysign(max(abs(denominator), eps), denominator)
    return result if is_valid_float(result) else fallback


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_to_cents(value: float) -> float:
    """
    Квантование цены или денежной суммы к PRICE_TICK (half away from zero).

    Examples:
        >>> round_to_cents(0.125)
        0.13
        >>> round_to_cents(-0.125)
        -0.13
    """
    ratio = (value + math.copysign(EPS_PRICE, value)) / PRICE_TICK
    steps = math.floor(ratio + 0.5) if ratio >= 0 else math.ceil(ratio - 0.5)
    # round() убирает хвосты двоичного представления (0.1 * 3 → 0.30000000000000004)
    return round(steps * PRICE_TICK, 2)


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """Ограничение значения диапазоном; None — граница не задана."""
    result = value
    if min_value is not None:
        result = max(result, min_value)
    if max_value is not None:
        result = min(result, max_value)
    return result
