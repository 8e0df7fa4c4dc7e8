"""
Стандартное нормальное распределение для ценообразования опционов.

N(x) вычисляется через функцию ошибок: N(x) = 0.5 * (1 + erf(x / sqrt(2))).
math.erf реализована с точностью двойной точности (абсолютная ошибка ~1e-16),
что на порядки меньше требуемой границы 1e-7. Нечётность erf гарантирует
N(x) + N(-x) = 1, на чём держится put-call parity.
"""

import math
from typing import Final

SQRT_2: Final[float] = math.sqrt(2.0)
SQRT_2PI: Final[float] = math.sqrt(2.0 * math.pi)

# Гарантированная граница абсолютной ошибки normal_cdf
NORMAL_CDF_ABS_ERROR: Final[float] = 1e-7


def normal_pdf(x: float) -> float:
    """Плотность стандартного нормального распределения φ(x)."""
    return math.exp(-0.5 * x * x) / SQRT_2PI


def normal_cdf(x: float) -> float:
    """Функция распределения стандартного нормального закона N(x)."""
    return 0.5 * (1.0 + math.erf(x / SQRT_2))
