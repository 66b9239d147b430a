"""Runtime glue: execution context, main entry point, tools, and neural execution."""

from __future__ import annotations

from .context import ExecutionContext
from .main_context import MainExecutionContext
from .neural import LLMNeuralExecutor
from .tools import ToolRegistry, ToolSpec

__all__ = [
    "ExecutionContext",
    "LLMNeuralExecutor",
    "MainExecutionContext",
    "ToolRegistry",
    "ToolSpec",
]
