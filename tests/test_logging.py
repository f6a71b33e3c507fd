"""
Tests for logger naming, level parsing and the quiet HTTP loggers.
"""
import logging

import pytest

from posturecam.core.config import settings
from posturecam.core.logging import get_logger, parse_level, setup_logging


class TestParseLevel:
    def test_names_are_case_insensitive(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(" Warning ") == logging.WARNING

    def test_unknown_name_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            parse_level("chatty")


class TestSetupLogging:
    def test_request_loggers_are_quiet_by_default(self):
        expected = parse_level(settings.library_log_level)
        assert logging.getLogger("httpx").level == expected
        assert logging.getLogger("httpcore").level == expected

    def test_library_level_is_independent_of_app_level(self):
        app_logger = logging.getLogger("posturecam")
        library = logging.getLogger("posturecam-test-library")
        previous = app_logger.level
        try:
            returned = setup_logging("DEBUG", "ERROR", library_loggers=["posturecam-test-library"])
            assert returned is app_logger
            assert app_logger.level == logging.DEBUG
            assert library.level == logging.ERROR
        finally:
            app_logger.setLevel(previous)

    def test_repeated_setup_adds_no_handlers(self):
        root = logging.getLogger()
        app_logger = logging.getLogger("posturecam")
        previous = app_logger.level
        try:
            setup_logging("INFO", library_loggers=())
            handlers = list(root.handlers)
            setup_logging("INFO", library_loggers=())
            assert root.handlers == handlers
        finally:
            app_logger.setLevel(previous)


def test_get_logger_namespaces_under_app():
    assert get_logger("live.loop").name == "posturecam.live.loop"
    assert get_logger().name == "posturecam"
