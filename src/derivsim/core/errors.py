"""
Иерархия исключений derivsim.

Исключения используются только для фатальных ошибок настройки и нарушений
входящих контрактов. Проблемы с ордерами не являются исключениями: они
возвращаются как RejectReason в MatchResult.
"""

from typing import Any


class DerivsimError(Exception):
    """Базовое исключение пакета."""


class ConfigurationError(DerivsimError):
    """Невалидная конфигурация сессии. Фатально до приёма первого ордера."""


class ContractViolation(DerivsimError):
    """
    Входящий payload не соответствует JSON Schema контракту.

    Attributes:
        contract: Имя контракта (например, 'order_intake')
        errors: Сообщения всех найденных ошибок валидации
    """

    def __init__(self, contract: str, errors: list[str], payload: Any = None):
        self.contract = contract
        self.errors = errors
        self.payload = payload
        joined = "; ".join(errors) if errors else "unknown violation"
        super().__init__(f"{contract} contract violated: {joined}")
