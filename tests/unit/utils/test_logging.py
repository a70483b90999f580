import logging

import pytest

from cruxlens.core.config import get_settings
from cruxlens.services.vector_store import manager as manager_module
from cruxlens.utils.logging import DEFAULT_LOG_LEVEL, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_level():
    yield
    get_settings.cache_clear()
    configure_logging(DEFAULT_LOG_LEVEL)


class TestLogging:

    def test_default_level_is_info(self):
        logger = get_logger("cruxlens.tests.default")

        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_handlers_are_not_duplicated(self):
        get_logger("cruxlens.tests.once")
        logger = get_logger("cruxlens.tests.once")

        assert len(logger.handlers) == 1

    def test_configure_applies_to_existing_and_new_loggers(self):
        configure_logging("debug")

        assert manager_module.LOGGER.level == logging.DEBUG
        assert all(handler.level == logging.DEBUG for handler in manager_module.LOGGER.handlers)
        assert get_logger("cruxlens.tests.later").level == logging.DEBUG

    def test_explicit_level_is_kept(self):
        logger = get_logger("cruxlens.tests.pinned", level="ERROR")

        configure_logging("DEBUG")

        assert logger.level == logging.ERROR

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging("LOUD")

    def test_settings_log_level_is_applied(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.log_level == "WARNING"
        assert manager_module.LOGGER.level == logging.WARNING
