"""
Время и календарные константы домена.

Все timestamps в домене — timezone-aware UTC. Naive datetime трактуется как UTC.
Время до экспирации считается по конвенции ACT/365.
"""

from datetime import datetime, timezone
from typing import Final

SECONDS_PER_DAY: Final[float] = 86_400.0
DAYS_PER_YEAR: Final[float] = 365.0
SECONDS_PER_YEAR: Final[float] = SECONDS_PER_DAY * DAYS_PER_YEAR

# Один календарный день в годах (шаг theta и минимальный T для опционов)
ONE_DAY_YEARS: Final[float] = 1.0 / DAYS_PER_YEAR


def ensure_utc(value: datetime) -> datetime:
    """Приведение datetime к UTC (naive считается UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def year_fraction(start: datetime, end: datetime) -> float:
    """Доля года между двумя моментами (ACT/365). Отрицательна, если end < start."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / SECONDS_PER_YEAR


def days_between(start: datetime, end: datetime) -> float:
    """Календарные дни между двумя моментами (дробные)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / SECONDS_PER_DAY
