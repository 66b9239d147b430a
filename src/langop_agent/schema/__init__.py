"""Frozen result models handed back to generated code."""

from __future__ import annotations

from .base import TypedBaseModel
from .results import HttpResult, ProcessResult, SandboxDecision

__all__ = [
    "TypedBaseModel",
    "SandboxDecision",
    "HttpResult",
    "ProcessResult",
]
