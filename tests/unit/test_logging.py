"""
Тесты настройки логирования

Coverage:
1. configure_logging: уровень и формат с полем component
2. get_logger: привязка component и дополнительных полей
"""

import pytest
from loguru import logger

from derivsim.core.logging import configure_logging, get_logger


@pytest.fixture
def captured():
    """Список отформатированных записей; после теста handler удаляется."""
    records = []
    handler_id = configure_logging("debug", sink=records.append)
    yield records
    logger.remove(handler_id)


class TestLogging:
    """Логгеры компонентов."""

    def test_component_in_output(self, captured):
        get_logger("FillEngine").info("order accepted")
        assert len(captured) == 1
        assert "FillEngine" in captured[0]
        assert "order accepted" in captured[0]

    def test_default_component(self, captured):
        logger.info("plain message")
        assert "derivsim" in captured[0]

    def test_extra_fields_bound(self, captured):
        log = get_logger("ParticipantWorker", participant="alice")
        log.warning("breach opened")
        assert captured[0].record["extra"] == {"component": "ParticipantWorker", "participant": "alice"}
        assert captured[0].record["level"].name == "WARNING"

    def test_level_filter(self):
        records = []
        handler_id = configure_logging("warning", sink=records.append)
        try:
            get_logger("Session").info("hidden")
            get_logger("Session").error("shown")
        finally:
            logger.remove(handler_id)
        assert len(records) == 1
        assert "shown" in records[0]
