"""Declarative dependency-ordered workflows."""

from __future__ import annotations

from .executor import DependencyWorkflowExecutor
from .interpolation import interpolate_params, interpolate_template
from .steps import StepResultStore, WorkflowStep

__all__ = [
    "DependencyWorkflowExecutor",
    "StepResultStore",
    "WorkflowStep",
    "interpolate_params",
    "interpolate_template",
]
