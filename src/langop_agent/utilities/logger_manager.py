"""Logger manager with colored console output, rotation, and structured fields.

Every component of the execution core receives a ``CustomLogger`` at
construction time. Structured fields are passed as keyword arguments::

    logger.info("Executing step", step="fetch", tool="web_search")

In text mode they are rendered as ``key=value`` pairs after the message; in
structured mode they are merged into the JSON payload.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
import datetime
import json
import logging
from logging import Handler, Logger, LogRecord, getLevelName, getLogRecordFactory, setLogRecordFactory
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
import time
from typing import Any, ClassVar

import colorlog

ROOT_LOGGER_NAME = "langop_agent"
_MAX_FIELD_LENGTH = 100


@dataclass
class LoggerConfig:
    """Configuration for LoggerManager."""

    log_dir: Path | None = None
    log_level: str = "INFO"
    log_file_name: str = "langop-agent.log"
    max_file_size_mb: int = 10
    backup_count: int = 3
    structured_logging: bool = False
    log_filters: dict[str, Callable[[LogRecord], bool]] | None = None
    log_colors: dict[str, str] | None = None

    DEFAULT_LOG_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "red,bg_white",
    }

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).resolve()
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_colors = self.log_colors or self.DEFAULT_LOG_COLORS

    @classmethod
    def from_settings(cls, settings: Any, log_dir: Path | None = None) -> LoggerConfig:
        """Derive a config from ``RuntimeSettings`` (log level and format)."""
        return cls(
            log_dir=log_dir,
            log_level=settings.log_level,
            structured_logging=settings.log_format == "json",
        )


def _render_value(value: Any) -> str:
    text = value if isinstance(value, str) else repr(value)
    if len(text) > _MAX_FIELD_LENGTH:
        return f"{text[: _MAX_FIELD_LENGTH - 3]}..."
    return text


def _record_fields(record: LogRecord) -> dict[str, Any]:
    fields = getattr(record, "fields", None)
    return dict(fields) if isinstance(fields, Mapping) else {}


class FieldsFormatter(logging.Formatter):
    """Plain formatter that appends structured fields as ``key=value``."""

    def format(self, record: LogRecord) -> str:
        base = super().format(record)
        fields = _record_fields(record)
        if not fields:
            return base
        rendered = ", ".join(f"{key}={_render_value(value)}" for key, value in fields.items())
        return f"{base} ({rendered})"


class ColoredFieldsFormatter(colorlog.ColoredFormatter):
    """Console formatter with level colors and trailing structured fields."""

    def format(self, record: LogRecord) -> str:
        base = super().format(record)
        fields = _record_fields(record)
        if not fields:
            return base
        rendered = ", ".join(f"{key}={_render_value(value)}" for key, value in fields.items())
        return f"{base} ({rendered})"


class StructuredFormatter(logging.Formatter):
    """JSON formatter merging structured fields and bound context."""

    def format(self, record: LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, Mapping) and context:
            payload["context"] = dict(context)
        payload.update(_record_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=repr)


class LoggerSettings:
    """Builds console and file handlers from a LoggerConfig."""

    def __init__(self, config: LoggerConfig) -> None:
        self.config = config

    def get_handlers(self) -> tuple[Handler, Handler | None]:
        """Return the console handler and, when a log dir is set, a file handler."""
        return self._get_console_handler(), self._get_file_handler()

    def _apply_filters(self, handler: Handler) -> None:
        if self.config.log_filters:
            for filter_fn in self.config.log_filters.values():
                handler.addFilter(filter_fn)

    def _get_console_handler(self) -> Handler:
        handler = colorlog.StreamHandler(sys.stderr)
        formatter: logging.Formatter
        if self.config.structured_logging:
            formatter = StructuredFormatter()
        else:
            formatter = ColoredFieldsFormatter(
                "%(log_color)s%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors=self.config.log_colors,
            )
        handler.setFormatter(formatter)
        self._apply_filters(handler)
        return handler

    def _get_file_handler(self) -> RotatingFileHandler | None:
        if self.config.log_dir is None:
            return None
        file_path = self.config.log_dir / self.config.log_file_name
        try:
            handler = RotatingFileHandler(
                file_path,
                maxBytes=self.config.max_file_size_mb * 1024 * 1024,
                backupCount=self.config.backup_count,
            )
        except OSError as e:
            print(f"Failed to create RotatingFileHandler: {e}", file=sys.stderr)
            return None
        formatter: logging.Formatter = (
            StructuredFormatter()
            if self.config.structured_logging
            else FieldsFormatter(
                "%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler.setFormatter(formatter)
        self._apply_filters(handler)
        return handler


class CustomLogger:
    """Logger handle injected into components; accepts structured fields."""

    def __init__(self, logger: Logger, manager: LoggerManager) -> None:
        self.logger = logger
        self.manager = manager

    @property
    def name(self) -> str:
        return self.logger.name

    def _log(self, level: int, msg: str, fields: dict[str, Any], **kwargs: Any) -> None:
        extra = dict(kwargs.pop("extra", None) or {})
        extra["fields"] = fields
        self.logger.log(level, msg, extra=extra, **kwargs)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def critical(self, msg: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, msg, fields)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    @contextmanager
    def timed(self, message: str, **fields: Any) -> Iterator[None]:
        """Log ``message`` with the elapsed time once the block completes."""
        start = time.perf_counter()
        yield
        duration = time.perf_counter() - start
        self.info(message, **fields, duration_s=round(duration, 3))

    def child(self, component: str) -> CustomLogger:
        """Return a logger for a sub-component sharing this logger's handlers."""
        return CustomLogger(self.logger.getChild(component), self.manager)

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[CustomLogger]:
        with self.manager.context(**context_kwargs):
            yield self


class LoggerManager:
    """Owns handler configuration for the runtime's logger hierarchy."""

    def __init__(
        self,
        name: str | LoggerConfig = ROOT_LOGGER_NAME,
        config: LoggerConfig | None = None,
    ) -> None:
        if isinstance(name, LoggerConfig):
            config = name
            name = ROOT_LOGGER_NAME
        self.name = name
        self.config = config or LoggerConfig()
        self.settings = LoggerSettings(self.config)
        self._logger = self._configure_logger()

    def get_logger(self, component: str | None = None) -> CustomLogger:
        """Return the configured logger, optionally for a named sub-component."""
        logger = CustomLogger(self._logger, self)
        return logger.child(component) if component else logger

    def _configure_logger(self) -> Logger:
        logger = logging.getLogger(self.name)
        logger.setLevel(getLevelName(self.config.log_level))
        if getattr(logger, "_is_configured", False):
            return logger

        console_handler, file_handler = self.settings.get_handlers()
        logger.addHandler(console_handler)
        if file_handler:
            logger.addHandler(file_handler)

        logger.propagate = False
        logger._is_configured = True  # type: ignore[attr-defined]
        return logger

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[Logger]:
        """Attach contextual data to every record emitted inside the block."""
        current_factory = getLogRecordFactory()

        def context_log_record_factory(*args: Any, **kwargs: Any) -> LogRecord:
            record = current_factory(*args, **kwargs)
            merged = dict(getattr(record, "context", None) or {})
            merged.update(context_kwargs)
            record.context = merged
            return record

        setLogRecordFactory(context_log_record_factory)
        try:
            yield self._logger
        finally:
            setLogRecordFactory(current_factory)

    def add_filter(self, name: str, filter_fn: Callable[[LogRecord], bool]) -> None:
        if self.config.log_filters is None:
            self.config.log_filters = {}
        self.config.log_filters[name] = filter_fn
        for handler in self._logger.handlers:
            handler.addFilter(filter_fn)

    def flush(self) -> None:
        for handler in self._logger.handlers:
            handler.flush()


_default_manager: LoggerManager | None = None


def get_default_logger(component: str | None = None) -> CustomLogger:
    """Return a console logger for components built without an injected one."""
    global _default_manager
    if _default_manager is None:
        _default_manager = LoggerManager(ROOT_LOGGER_NAME)
    return _default_manager.get_logger(component)


def configure_default_logging(config: LoggerConfig) -> LoggerManager:
    """Install the manager used by ``get_default_logger`` for this process."""
    global _default_manager
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root._is_configured = False  # type: ignore[attr-defined]
    _default_manager = LoggerManager(ROOT_LOGGER_NAME, config)
    return _default_manager


__all__ = [
    "LoggerConfig",
    "LoggerManager",
    "CustomLogger",
    "StructuredFormatter",
    "configure_default_logging",
    "get_default_logger",
]
