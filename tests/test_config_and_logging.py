"""
Unit Tests for configuration and logging
Tests for: settings validation, JSON formatting and logger context
"""
import json
import logging

import pytest
from pydantic import ValidationError

from schoolhub.config.settings import (
    Environment,
    LoggingSettings,
    Settings,
    StoreSettings,
    get_test_settings,
)
from schoolhub.core.logging import (
    CustomJsonFormatter,
    RedactionProcessor,
    get_logger,
    operation_id,
)


class TestSettings:
    """Test settings parsing"""

    def test_test_settings(self):
        """Test the testing profile uses local collaborators"""
        settings = get_test_settings()
        assert settings.is_testing()
        assert not settings.is_production()
        assert settings.store.STORE_BASE_URL is None
        assert settings.calendar.CALENDAR_DATASET_URL is None

    def test_environment_case_insensitive(self):
        """Test environment names in any case"""
        assert Settings(ENVIRONMENT="Production").ENVIRONMENT == Environment.PRODUCTION

    def test_log_format_validated(self):
        """Test only text and json are accepted"""
        assert LoggingSettings(LOG_FORMAT=" JSON ").LOG_FORMAT == "json"
        with pytest.raises(ValidationError):
            LoggingSettings(LOG_FORMAT="xml")

    def test_store_url_normalized(self):
        """Test trailing slashes are dropped"""
        assert StoreSettings(STORE_BASE_URL="https://store.example/v1/").STORE_BASE_URL == "https://store.example/v1"

    def test_api_key_hidden(self):
        """Test the key does not leak through repr"""
        store = StoreSettings(STORE_API_KEY="s3cret")
        assert "s3cret" not in repr(store)
        assert store.STORE_API_KEY.get_secret_value() == "s3cret"


class TestLogging:
    """Test logging helpers"""

    def test_json_formatter(self):
        """Test JSON records carry level, logger and operation id"""
        record = logging.LogRecord("schoolhub.test", logging.WARNING, __file__, 10, "hello %s", ("there",), None)
        token = operation_id.set("op-7")
        try:
            output = json.loads(CustomJsonFormatter("%(message)s").format(record))
        finally:
            operation_id.reset(token)
        assert output["message"] == "hello there"
        assert output["level"] == "WARNING"
        assert output["logger"] == "schoolhub.test"
        assert output["operation_id"] == "op-7"

    def test_adapter_context(self, caplog):
        """Test bound context is attached to every record"""
        logger = get_logger("schoolhub.tests.context").add_context(student_id="STD-001")
        with caplog.at_level(logging.INFO, logger="schoolhub.tests.context"):
            logger.info("first", extra={"leave_id": "L1"})
            logger.remove_context("student_id").info("second")

        first, second = caplog.records
        assert first.student_id == "STD-001"
        assert first.leave_id == "L1"
        assert not hasattr(second, "student_id")

    def test_default_logger_name(self):
        """Test the caller's module name is used"""
        assert get_logger().name == __name__

    def test_redaction(self):
        """Test credentials are masked in nested event dicts"""
        event = {"event": "call", "request": {"X_API_KEY": "k", "path": "/x"}, "token": "t"}
        RedactionProcessor()(None, "info", event)
        assert event["token"] == "[REDACTED]"
        assert event["request"] == {"X_API_KEY": "[REDACTED]", "path": "/x"}
