"""
Configuration Loader Module

Загрузка SessionConfig из YAML/JSON файла или готового словаря.
Порядок проверок: JSON Schema (структура) → pydantic (диапазоны и инварианты).
Любая ошибка — ConfigurationError до приёма первого ордера.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml
from pydantic import ValidationError

from derivsim.config.models import SessionConfig
from derivsim.config.presets import WEIGHT_PRESETS
from derivsim.core.contracts.validators import validate_session_config
from derivsim.core.errors import ConfigurationError, ContractViolation
from derivsim.core.logging import get_logger

_log = get_logger("ConfigLoader")

ConfigSource = Union[str, Path, Mapping[str, Any]]


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Чтение YAML (или JSON — подмножество YAML) файла конфигурации.

    Raises:
        ConfigurationError: Файл не найден, не парсится или не является mapping
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Config file not found: {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_file} must contain a mapping, got {type(data).__name__}"
        )

    _log.info(f"Loaded config from {config_file}")
    return data


def load_session_config(source: ConfigSource) -> SessionConfig:
    """
    Загрузка и валидация конфигурации сессии.

    Args:
        source: Путь к YAML/JSON файлу или словарь с конфигурацией

    Returns:
        Замороженный SessionConfig

    Raises:
        ConfigurationError: Невалидная конфигурация
    """
    if isinstance(source, (str, Path)):
        data = read_config_file(source)
    else:
        data = dict(source)

    try:
        validate_session_config(data)
    except ContractViolation as e:
        raise ConfigurationError(f"Session config violates schema: {'; '.join(e.errors)}") from e

    preset = data.pop("scoring_preset", None)
    if preset is not None:
        data["scoring"] = WEIGHT_PRESETS[preset]

    try:
        config = SessionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid session config: {e}") from e

    _log.debug(
        f"Session config {config.session_id}: symbol={config.symbol} "
        f"bankroll={config.initial_bankroll} multiplier={config.contract_multiplier}"
    )
    return config
