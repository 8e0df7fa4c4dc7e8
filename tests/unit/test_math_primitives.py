"""
Тесты для Numerical Safeguards и нормального распределения

Coverage:
1. Безопасное деление: ноль, NaN/Inf, малый знаменатель
2. Округление к центам (round half away from zero)
3. clamp с открытыми границами
4. normal_cdf / normal_pdf: симметрия и точность
"""

import math

import pytest

from derivsim.core.math import (
    EPS_CALC,
    NORMAL_CDF_ABS_ERROR,
    PRICE_TICK,
    clamp,
    is_valid_float,
    normal_cdf,
    normal_pdf,
    round_to_cents,
    safe_divide,
)


# =============================================================================
# SAFE DIVISION
# =============================================================================


class TestSafeDivision:
    """Тесты safe_divide и is_valid_float."""

    def test_regular_division(self):
        assert safe_divide(10.0, 2.0) == 5.0
        assert safe_divide(-9.0, 3.0) == -3.0

    def test_zero_denominator_returns_fallback(self):
        """Точный ноль в знаменателе → fallback."""
        assert safe_divide(10.0, 0.0) == 0.0
        assert safe_divide(10.0, 0.0, fallback=-1.0) == -1.0

    def test_nan_inputs(self):
        assert safe_divide(float("nan"), 2.0) == 0.0
        assert safe_divide(1.0, float("nan"), fallback=7.0) == 7.0
        assert safe_divide(1.0, float("inf"), fallback=7.0) == 7.0

    def test_tiny_denominator_keeps_sign(self):
        """Малый знаменатель заменяется на eps с сохранением знака."""
        assert safe_divide(1.0, -1e-20, eps=1e-6) == pytest.approx(-1e6)
        assert safe_divide(1.0, 1e-20) == pytest.approx(1.0 / EPS_CALC)

    def test_overflow_returns_fallback(self):
        assert safe_divide(1e308, 1e-300, fallback=-2.0) == -2.0

    def test_valid_float(self):
        assert is_valid_float(1.5)
        assert not is_valid_float(float("inf"))
        assert not is_valid_float(float("nan"))


# =============================================================================
# ROUNDING
# =============================================================================


class TestRounding:
    """Тесты квантования цен."""

    def test_round_to_cents_half_away_from_zero(self):
        """82.525 в двоичном виде чуть меньше — всё равно округляется вверх."""
        assert round_to_cents(82.525) == 82.53
        assert round_to_cents(82.524) == 82.52
        assert round_to_cents(-0.005) == -0.01
        assert round_to_cents(0.0) == 0.0

    def test_round_to_cents_tick(self):
        assert PRICE_TICK == 0.01
        assert round_to_cents(0.1 * 3) == 0.3
        assert round_to_cents(1.23456789) == 1.23


class TestClamp:
    """Тесты clamp."""

    def test_both_bounds(self):
        assert clamp(-1.0, 0.0, 10.0) == 0.0
        assert clamp(15.0, 0.0, 10.0) == 10.0
        assert clamp(5.0, 0.0, 10.0) == 5.0

    def test_open_bounds(self):
        """None означает отсутствие границы; 0.0 — валидная граница."""
        assert clamp(-5.0, None, 10.0) == -5.0
        assert clamp(50.0, 0.0, None) == 50.0
        assert clamp(-5.0, 0.0) == 0.0


# =============================================================================
# NORMAL DISTRIBUTION
# =============================================================================


class TestNormalDistribution:
    """Тесты normal_cdf / normal_pdf."""

    def test_cdf_reference_values(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=NORMAL_CDF_ABS_ERROR)
        assert normal_cdf(1.0) == pytest.approx(0.8413447460685429, abs=NORMAL_CDF_ABS_ERROR)
        assert normal_cdf(-1.959963984540054) == pytest.approx(0.025, abs=NORMAL_CDF_ABS_ERROR)

    @pytest.mark.parametrize("x", [0.1, 0.5, 1.3, 2.7, 5.0])
    def test_cdf_symmetry(self, x):
        """N(x) + N(−x) = 1."""
        assert normal_cdf(x) + normal_cdf(-x) == pytest.approx(1.0, abs=EPS_CALC)

    def test_cdf_tails(self):
        assert normal_cdf(-40.0) == 0.0
        assert normal_cdf(40.0) == 1.0

    def test_pdf(self):
        assert normal_pdf(0.0) == pytest.approx(1.0 / math.sqrt(2.0 * math.pi))
        assert normal_pdf(1.5) == pytest.approx(normal_pdf(-1.5))
