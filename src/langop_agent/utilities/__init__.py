"""Shared utilities."""

from __future__ import annotations

from .logger_manager import (
    CustomLogger,
    LoggerConfig,
    LoggerManager,
    configure_default_logging,
    get_default_logger,
)

__all__ = [
    "CustomLogger",
    "LoggerConfig",
    "LoggerManager",
    "configure_default_logging",
    "get_default_logger",
]
