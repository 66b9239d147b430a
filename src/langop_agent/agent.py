"""Agent definition: tasks and tools plus one entry point (main or workflow)."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from langop_agent.config.settings import RuntimeSettings
from langop_agent.contracts.registry import TaskRegistry
from langop_agent.contracts.task import NeuralExecutor, TaskBody, TaskContract
from langop_agent.enums import TypeTag
from langop_agent.errors import NotSupportedHereError
from langop_agent.models.llm_adapter import BaseLLMAdapter
from langop_agent.runtime.context import ExecutionContext
from langop_agent.runtime.main_context import MainEntry, MainExecutionContext
from langop_agent.runtime.neural import LLMNeuralExecutor
from langop_agent.runtime.tools import ToolFunction, ToolRegistry
from langop_agent.sandbox.address_policy import Resolver
from langop_agent.sandbox.network import NetworkSandbox
from langop_agent.sandbox.process import ProcessSandbox
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger
from langop_agent.workflow.executor import DependencyWorkflowExecutor


class AgentDefinition:
    """Everything generated code declares for one agent.

    Declarations happen once at import time of the agent module. ``run`` then
    builds a fresh ``ExecutionContext`` per invocation, so no state leaks
    between runs.
    """

    def __init__(
        self,
        name: str,
        *,
        settings: RuntimeSettings | None = None,
        logger: CustomLogger | None = None,
        llm: BaseLLMAdapter | None = None,
        neural_executor: NeuralExecutor | None = None,
        http_session: Any | None = None,
        resolver: Resolver | None = None,
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("agent name must be a non-empty string")
        self.name = name
        self.settings = settings or RuntimeSettings()
        self.logger = logger or get_default_logger(f"agent.{name}")
        self.llm = llm
        self._neural_executor = neural_executor
        self._http_session = http_session
        self._resolver = resolver
        self.tasks = TaskRegistry(self.logger)
        self.tools = ToolRegistry()
        self.main_context = MainExecutionContext(
            self.logger.child("main"), self.settings.trace_excerpt_frames
        )
        self.workflow = DependencyWorkflowExecutor(self.logger.child("workflow"))

    def apply_settings(self, settings: RuntimeSettings) -> None:
        """Replace the runtime settings used by future invocations."""
        self.settings = settings
        self.main_context.excerpt_frames = settings.trace_excerpt_frames

    def define_task(
        self,
        name: str,
        input_schema: Mapping[str, TypeTag | str] | None = None,
        output_schema: Mapping[str, TypeTag | str] | None = None,
        instructions: str | None = None,
        body: TaskBody | None = None,
    ) -> TaskContract:
        return self.tasks.define(name, input_schema, output_schema, instructions, body)

    def task(
        self,
        name: str | None = None,
        *,
        inputs: Mapping[str, TypeTag | str] | None = None,
        outputs: Mapping[str, TypeTag | str] | None = None,
        instructions: str | None = None,
    ) -> Callable[[TaskBody], TaskBody]:
        return self.tasks.task(name, inputs=inputs, outputs=outputs, instructions=instructions)

    def tool(
        self, name: str | None = None, *, description: str | None = None
    ) -> Callable[[ToolFunction], ToolFunction]:
        return self.tools.tool(name, description=description)

    def main(self, entry: MainEntry) -> MainEntry:
        """Decorator registering the imperative entry point."""
        return self.main_context.define(entry)

    @property
    def neural_executor(self) -> NeuralExecutor | None:
        if self._neural_executor is None and self.llm is not None:
            self._neural_executor = LLMNeuralExecutor(self.llm, self.logger.child("neural"))
        return self._neural_executor

    def build_context(self) -> ExecutionContext:
        context_logger = self.logger.child("context")
        return ExecutionContext(
            self.tasks,
            tools=self.tools,
            neural_executor=self.neural_executor,
            llm=self.llm,
            http=NetworkSandbox(
                self.settings,
                session=self._http_session,
                resolver=self._resolver,
                logger=context_logger.child("http"),
            ),
            shell=ProcessSandbox(self.settings, logger=context_logger.child("shell")),
            logger=context_logger,
            settings=self.settings,
        )

    def run(self, inputs: Mapping[str, Any] | None = None) -> Any:
        """Run the agent once; main takes precedence over a declared workflow."""
        with self.build_context() as context:
            if self.main_context.is_defined:
                return self.main_context.call(inputs or {}, context)
            if self.workflow.steps:
                return self.workflow.execute(context).to_dict()
        raise NotSupportedHereError(
            f"Agent '{self.name}' defines neither a main entry point nor a workflow"
        )

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entry": "main"
            if self.main_context.is_defined
            else ("workflow" if self.workflow.steps else None),
            "tasks": self.tasks.schemas(),
            "tools": self.tools.names(),
        }


__all__ = ["AgentDefinition"]
