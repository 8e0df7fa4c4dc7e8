"""
Настройка логирования (loguru).

Библиотечный код получает логгер через get_logger(component) и пишет
структурированные сообщения с полем component. Приложение вызывает
configure_logging() один раз на старте.
"""

import sys
from typing import Any, Final

from loguru import logger

DEFAULT_FORMAT: Final[str] = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)

# Значение по умолчанию для записей без bind(component=...)
logger.configure(extra={"component": "derivsim"})


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """
    Замена стандартного handler loguru на форматированный sink.

    Args:
        level: Минимальный уровень (DEBUG/INFO/WARNING/...)
        sink: Куда писать (default: sys.stderr). Принимает всё, что принимает logger.add

    Returns:
        Идентификатор handler (для logger.remove)
    """
    logger.remove()
    return logger.add(sink or sys.stderr, level=level.upper(), format=DEFAULT_FORMAT)


def get_logger(component: str, **extra: Any):
    """Логгер с привязанным именем компонента и дополнительными полями extra."""
    return logger.bind(component=component, **extra)
