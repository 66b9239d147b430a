"""Typed task contracts and their coercion rules."""

from __future__ import annotations

from .registry import TaskRegistry
from .task import NeuralExecutor, TaskBody, TaskContract, define, invoke
from .types import FALSY_SPELLINGS, TRUTHY_SPELLINGS, coerce, validate_schema

__all__ = [
    "TaskContract",
    "TaskBody",
    "NeuralExecutor",
    "TaskRegistry",
    "define",
    "invoke",
    "coerce",
    "validate_schema",
    "TRUTHY_SPELLINGS",
    "FALSY_SPELLINGS",
]
