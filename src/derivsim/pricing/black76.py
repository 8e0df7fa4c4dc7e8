"""
Black-76 — Ценообразование европейских опционов на фьючерсы

Closed-form цена, delta, gamma, vega. Theta, vanna, vomma — конечными
разностями по цене (централизованные схемы); шаги задаются
FiniteDifferenceSteps.

Вырожденные входы (T <= 0, σ <= 0, F <= 0, K <= 0) не являются ошибкой:
цена = дисконтированная внутренняя стоимость e^{-r·max(T,0)}·max(±(F−K), 0),
все Greeks = 0.

Формулы:
    d1 = (ln(F/K) + σ²T/2) / (σ√T),   d2 = d1 − σ√T
    C = e^{-rT}·(F·N(d1) − K·N(d2))
    P = e^{-rT}·(K·N(−d2) − F·N(−d1))
"""

import math
from dataclasses import dataclass
from typing import Final, Optional

from scipy.optimize import brentq

from derivsim.core.domain.instrument import OptionType
from derivsim.core.domain.risk import Greeks
from derivsim.core.math.normal import normal_cdf, normal_pdf
from derivsim.core.math.numerical_safeguards import clamp

# Диапазон поиска implied volatility
IV_SOLVER_MIN: Final[float] = 1e-4
IV_SOLVER_MAX: Final[float] = 5.0
IV_SOLVER_TOLERANCE: Final[float] = 1e-8
IV_SOLVER_MAX_ITERATIONS: Final[int] = 100
IV_SOLVER_NEWTON_ITERATIONS: Final[int] = 20
IV_SOLVER_MIN_VEGA: Final[float] = 1e-12


@dataclass(frozen=True)
class FiniteDifferenceSteps:
    """
    Шаги конечных разностей для theta, vanna, vomma.

    h_T = clamp(theta_rel·T, theta_min, theta_max); нижняя нога T − h_T не ниже theta_floor_T
    h_F = max(min_abs_step, spot_rel·F)
    h_σ = max(min_abs_step, vol_rel·σ)
    """

    theta_rel: float = 0.01
    theta_min: float = 1e-5
    theta_max: float = 1e-3
    theta_floor_T: float = 1e-8
    spot_rel: float = 1e-4
    vol_rel: float = 1e-4
    min_abs_step: float = 1e-4

    def time_step(self, T: float) -> float:
        return clamp(self.theta_rel * T, self.theta_min, self.theta_max)

    def spot_step(self, F: float) -> float:
        return max(self.min_abs_step, self.spot_rel * F)

    def vol_step(self, sigma: float) -> float:
        return max(self.min_abs_step, self.vol_rel * sigma)


DEFAULT_FD_STEPS: Final[FiniteDifferenceSteps] = FiniteDifferenceSteps()


def _is_call(option_type: OptionType | str) -> bool:
    return OptionType(option_type) == OptionType.CALL


def intrinsic_value(F: float, K: float, option_type: OptionType | str) -> float:
    """Недисконтированная внутренняя стоимость."""
    if _is_call(option_type):
        return max(F - K, 0.0)
    return max(K - F, 0.0)


def _d1_d2(F: float, K: float, T: float, sigma: float) -> tuple[float, float, float]:
    vol_sqrt_t = sigma * math.sqrt(T)
    d1 = (math.log(F / K) + 0.5 * sigma * sigma * T) / vol_sqrt_t
    return d1, d1 - vol_sqrt_t, vol_sqrt_t


def black76_price(
    F: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    option_type: OptionType | str,
) -> float:
    """
    Цена опциона Black-76.

    Args:
        F: Цена фьючерса
        K: Страйк
        T: Время до экспирации (годы)
        sigma: Волатильность (доля, 0.30 = 30%)
        r: Безрисковая ставка (годовая, непрерывная)
        option_type: C или P

    Returns:
        Цена опциона (на 1 единицу базового актива)
    """
    if T <= 0 or sigma <= 0 or F <= 0 or K <= 0:
        return math.exp(-r * max(T, 0.0)) * intrinsic_value(F, K, option_type)

    d1, d2, _ = _d1_d2(F, K, T, sigma)
    df = math.exp(-r * T)

    if _is_call(option_type):
        return df * (F * normal_cdf(d1) - K * normal_cdf(d2))
    return df * (K * normal_cdf(-d2) - F * normal_cdf(-d1))


def black76_greeks(
    F: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    option_type: OptionType | str,
    steps: Optional[FiniteDifferenceSteps] = None,
) -> Greeks:
    """
    Цена и Greeks опциона Black-76.

    delta, gamma, vega — closed form; theta (за год, −∂P/∂T), vanna (∂²P/∂F∂σ),
    vomma (∂²P/∂σ²) — центральными конечными разностями.

    Args:
        steps: Шаги конечных разностей (default: DEFAULT_FD_STEPS)

    Returns:
        Greeks (на 1 единицу базового актива)
    """
    price = black76_price(F, K, T, sigma, r, option_type)

    if T <= 0 or sigma <= 0 or F <= 0 or K <= 0:
        return Greeks(price=price)

    steps = steps or DEFAULT_FD_STEPS
    d1, _, vol_sqrt_t = _d1_d2(F, K, T, sigma)
    df = math.exp(-r * T)
    phi_d1 = normal_pdf(d1)

    if _is_call(option_type):
        delta = df * normal_cdf(d1)
    else:
        delta = -df * normal_cdf(-d1)
    gamma = df * phi_d1 / (F * vol_sqrt_t)
    vega = df * F * phi_d1 * math.sqrt(T)

    def p(f: float = F, t: float = T, s: float = sigma) -> float:
        return black76_price(f, K, t, s, r, option_type)

    # Theta: центральная разность по T, theta = −dP/dT
    h_t = steps.time_step(T)
    theta = -(p(t=T + h_t) - p(t=max(T - h_t, steps.theta_floor_T))) / (2.0 * h_t)

    # Vanna: перекрёстная разность по F и σ
    h_f = steps.spot_step(F)
    h_s = steps.vol_step(sigma)
    vanna = (
        p(F + h_f, s=sigma + h_s)
        - p(F + h_f, s=sigma - h_s)
        - p(F - h_f, s=sigma + h_s)
        + p(F - h_f, s=sigma - h_s)
    ) / (4.0 * h_f * h_s)

    # Vomma: вторая разность по σ
    vomma = (p(s=sigma + h_s) - 2.0 * price + p(s=sigma - h_s)) / (h_s * h_s)

    return Greeks(
        price=price,
        delta=delta,
        gamma=gamma,
        vega=vega,
        theta=theta,
        vanna=vanna,
        vomma=vomma,
    )


def implied_volatility(
    price: float,
    F: float,
    K: float,
    T: float,
    r: float,
    option_type: OptionType | str,
    initial_guess: float = 0.3,
) -> Optional[float]:
    """
    Implied volatility по цене опциона.

    Newton-Raphson по vega от initial_guess; если vega вырождена, шаг выходит
    из [IV_SOLVER_MIN, IV_SOLVER_MAX] или итерации исчерпаны — scipy brentq
    на том же брекете. Цена вне арбитражных границ → None.

    Returns:
        σ в [IV_SOLVER_MIN, IV_SOLVER_MAX] или None, если решения нет
    """
    if T <= 0 or F <= 0 or K <= 0 or not math.isfinite(price):
        return None

    df = math.exp(-r * T)
    lower_bound = df * intrinsic_value(F, K, option_type)
    upper_bound = df * (F if _is_call(option_type) else K)
    if price < lower_bound - IV_SOLVER_TOLERANCE or price > upper_bound + IV_SOLVER_TOLERANCE:
        return None

    def objective(sigma: float) -> float:
        return black76_price(F, K, T, sigma, r, option_type) - price

    f_lo = objective(IV_SOLVER_MIN)
    f_hi = objective(IV_SOLVER_MAX)
    if f_lo > 0:
        return IV_SOLVER_MIN if abs(f_lo) <= IV_SOLVER_TOLERANCE else None
    if f_hi < 0:
        return IV_SOLVER_MAX if abs(f_hi) <= IV_SOLVER_TOLERANCE else None

    sigma = clamp(initial_guess, IV_SOLVER_MIN, IV_SOLVER_MAX)
    for _ in range(IV_SOLVER_NEWTON_ITERATIONS):
        diff = objective(sigma)
        if abs(diff) <= IV_SOLVER_TOLERANCE:
            return sigma

        d1, _, _ = _d1_d2(F, K, T, sigma)
        vega = df * F * normal_pdf(d1) * math.sqrt(T)
        if vega <= IV_SOLVER_MIN_VEGA:
            break
        sigma -= diff / vega
        if not IV_SOLVER_MIN < sigma < IV_SOLVER_MAX:
            break

    return brentq(
        objective,
        IV_SOLVER_MIN,
        IV_SOLVER_MAX,
        xtol=IV_SOLVER_TOLERANCE,
        maxiter=IV_SOLVER_MAX_ITERATIONS,
    )
