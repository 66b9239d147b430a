"""Imperative entry point of an agent.

Generated code defines a single ``main(inputs, context)`` function. The
context is passed explicitly, so the entry point reaches tasks, tools, and
sandboxes only through it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import os
import time
import traceback
from typing import Any

from langop_agent.config.defaults import RUNTIME_DEFAULTS
from langop_agent.runtime.context import ExecutionContext
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger

MainEntry = Callable[[dict[str, Any], ExecutionContext], Any]


def _default_excerpt_frames() -> int:
    raw = os.getenv("LANGOP_TRACE_EXCERPT_FRAMES", "")
    if raw.strip().isdigit():
        return int(raw.strip())
    return int(RUNTIME_DEFAULTS["trace_excerpt_frames"])  # type: ignore[call-overload]


def trace_excerpt(exc: BaseException, frames: int) -> list[str]:
    """Return the last ``frames`` frames of ``exc``'s traceback as text."""
    if frames <= 0:
        return []
    summary = traceback.extract_tb(exc.__traceback__)
    return [
        f"{frame.filename}:{frame.lineno} in {frame.name}"
        for frame in summary[-frames:]
    ]


class MainExecutionContext:
    """Holds the single entry point and runs it with logging around it."""

    def __init__(
        self,
        logger: CustomLogger | None = None,
        excerpt_frames: int | None = None,
    ) -> None:
        self._entry: MainEntry | None = None
        self.logger = logger or get_default_logger("main")
        self.excerpt_frames = (
            _default_excerpt_frames() if excerpt_frames is None else excerpt_frames
        )

    def define(self, entry: MainEntry) -> MainEntry:
        """Store ``entry``; a second definition replaces the first."""
        if not callable(entry):
            raise TypeError(f"main entry point must be callable, got {type(entry).__name__}")
        self._entry = entry
        return entry

    @property
    def is_defined(self) -> bool:
        return self._entry is not None

    def call(self, input_map: Mapping[str, Any] | None, context: ExecutionContext) -> Any:
        if self._entry is None:
            raise RuntimeError("main entry point not defined")
        if input_map is None:
            input_map = {}
        if not isinstance(input_map, Mapping):
            raise TypeError(f"main inputs must be a mapping, got {type(input_map).__name__}")

        self.logger.info("Executing main block", inputs=sorted(str(k) for k in input_map))
        start = time.perf_counter()
        try:
            result = self._entry(dict(input_map), context)
        except Exception as exc:
            self.logger.error(
                "Main block execution failed",
                error_class=type(exc).__name__,
                error_message=str(exc),
                trace=trace_excerpt(exc, self.excerpt_frames),
            )
            raise
        self.logger.info(
            "Main block execution completed",
            execution_time=round(time.perf_counter() - start, 3),
            result_type=type(result).__name__,
        )
        return result


__all__ = ["MainEntry", "MainExecutionContext", "trace_excerpt"]
