"""
JSON Schema Contract Validators

Модуль для валидации входящих JSON payload согласно формальным JSON Schema
контрактам. Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы (contracts/schema/ внутри пакета):
- market_tick.json — тик рыночного фида
- order_intake.json — заявка участника
- session_config.json — конфигурация сессии
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

from derivsim.core.errors import ContractViolation


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются как package data рядом с этим модулем.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'order_intake')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме (первая ошибка)
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)

    def error_messages(self, data: Dict[str, Any]) -> List[str]:
        """Сообщения всех ошибок в формате 'path: message' (стабильный порядок)."""
        messages = []
        for error in sorted(self.iter_errors(data), key=lambda e: list(e.absolute_path)):
            path = "/".join(str(p) for p in error.absolute_path) or "<root>"
            messages.append(f"{path}: {error.message}")
        return messages

    def check(self, data: Dict[str, Any]) -> None:
        """
        Валидация с доменным исключением.

        Raises:
            ContractViolation: Со списком всех найденных ошибок
        """
        errors = self.error_messages(data)
        if errors:
            raise ContractViolation(self.schema_name, errors, payload=data)


class MarketTickValidator(ContractValidator):
    """Валидатор для market_tick контракта."""

    def __init__(self):
        super().__init__("market_tick")


class OrderIntakeValidator(ContractValidator):
    """Валидатор для order_intake контракта."""

    def __init__(self):
        super().__init__("order_intake")


class SessionConfigValidator(ContractValidator):
    """Валидатор для session_config контракта."""

    def __init__(self):
        super().__init__("session_config")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_market_tick(data: Dict[str, Any]) -> None:
    """
    Валидация market_tick данных.

    Raises:
        ContractViolation: Если данные не соответствуют схеме
    """
    MarketTickValidator().check(data)


def validate_order_intake(data: Dict[str, Any]) -> None:
    """
    Валидация order_intake данных.

    Raises:
        ContractViolation: Если данные не соответствуют схеме
    """
    OrderIntakeValidator().check(data)


def validate_session_config(data: Dict[str, Any]) -> None:
    """
    Валидация session_config данных.

    Raises:
        ContractViolation: Если данные не соответствуют схеме
    """
    SessionConfigValidator().check(data)
