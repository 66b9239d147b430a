from __future__ import annotations

import json
import logging
import uuid

from langop_agent.config.settings import RuntimeSettings
from langop_agent.utilities.logger_manager import (
    ROOT_LOGGER_NAME,
    CustomLogger,
    FieldsFormatter,
    LoggerConfig,
    LoggerManager,
    StructuredFormatter,
    configure_default_logging,
    get_default_logger,
)


def _record(message: str, **fields: object) -> logging.LogRecord:
    record = logging.LogRecord("langop_agent.test", logging.INFO, __file__, 1, message, None, None)
    record.fields = fields
    return record


def test_fields_are_rendered_after_message() -> None:
    formatter = FieldsFormatter("%(message)s")
    rendered = formatter.format(_record("Executing step", step="fetch", attempt=2))
    assert rendered == "Executing step (step=fetch, attempt=2)"


def test_long_field_values_are_truncated() -> None:
    formatter = FieldsFormatter("%(message)s")
    rendered = formatter.format(_record("Prompt", text="x" * 500))
    assert rendered.endswith("...)")
    assert len(rendered) < 150


def test_structured_formatter_merges_fields() -> None:
    payload = json.loads(StructuredFormatter().format(_record("HTTP request", status=200)))
    assert payload["message"] == "HTTP request"
    assert payload["level"] == "INFO"
    assert payload["component"] == "langop_agent.test"
    assert payload["status"] == 200


def test_logger_records_carry_fields(logger: CustomLogger, log_records) -> None:
    logger.info("Task started", task="greet")
    record = log_records.find("Task started")
    assert record.fields == {"task": "greet"}
    assert record.levelno == logging.INFO


def test_child_logger_shares_handlers(logger: CustomLogger, log_records) -> None:
    child = logger.child("sandbox")
    child.warning("Rejected", url="http://127.0.0.1/")
    record = log_records.find("Rejected")
    assert record.name.endswith(".sandbox")


def test_timed_adds_duration(logger: CustomLogger, log_records) -> None:
    with logger.timed("Step execution", step="a"):
        pass
    record = log_records.find("Step execution")
    assert record.fields["step"] == "a"
    assert record.fields["duration_s"] >= 0


def test_context_is_attached_to_records(logger: CustomLogger, log_records) -> None:
    with logger.context(run="r1"):
        logger.info("Inside")
    logger.info("Outside")
    assert log_records.find("Inside").context == {"run": "r1"}
    assert getattr(log_records.find("Outside"), "context", None) is None


def test_level_filters_debug(log_records) -> None:
    manager = LoggerManager(f"langop_agent_test_{uuid.uuid4().hex}", LoggerConfig())
    manager.add_filter("recorder", log_records)
    manager.get_logger().debug("hidden")
    manager.get_logger().info("shown")
    assert log_records.messages() == ["shown"]


def test_config_from_settings() -> None:
    config = LoggerConfig.from_settings(RuntimeSettings(log_level="debug", log_format="json"))
    assert config.log_level == "DEBUG"
    assert config.structured_logging is True


def test_configure_default_logging_replaces_handlers() -> None:
    manager = configure_default_logging(LoggerConfig(log_level="WARNING"))
    try:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert get_default_logger("sandbox").manager is manager
    finally:
        configure_default_logging(LoggerConfig())
