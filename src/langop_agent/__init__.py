"""Execution core for synthesized language agents.

Typed task contracts, dependency workflows, an imperative main entry point,
and sandboxes for outbound HTTP and external processes.
"""

from __future__ import annotations

from langop_agent.agent import AgentDefinition
from langop_agent.config.settings import RuntimeSettings
from langop_agent.constants import RUNTIME_VERSION as __version__
from langop_agent.contracts import TaskContract, TaskRegistry, define, invoke
from langop_agent.enums import Strategy, TypeTag
from langop_agent.errors import LangopError
from langop_agent.runtime import (
    ExecutionContext,
    LLMNeuralExecutor,
    MainExecutionContext,
    ToolRegistry,
)
from langop_agent.sandbox import NetworkSandbox, ProcessSandbox
from langop_agent.schema import HttpResult, ProcessResult, SandboxDecision
from langop_agent.workflow import DependencyWorkflowExecutor, StepResultStore

__all__ = [
    "__version__",
    "AgentDefinition",
    "DependencyWorkflowExecutor",
    "ExecutionContext",
    "HttpResult",
    "LLMNeuralExecutor",
    "LangopError",
    "MainExecutionContext",
    "NetworkSandbox",
    "ProcessResult",
    "ProcessSandbox",
    "RuntimeSettings",
    "SandboxDecision",
    "StepResultStore",
    "Strategy",
    "TaskContract",
    "TaskRegistry",
    "ToolRegistry",
    "TypeTag",
    "define",
    "invoke",
]
