"""Per-invocation execution context handed to tasks, steps, and main."""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from langop_agent.config.settings import RuntimeSettings
from langop_agent.contracts.registry import TaskRegistry
from langop_agent.contracts.task import NeuralExecutor
from langop_agent.errors import NotSupportedHereError
from langop_agent.models.llm_adapter import BaseLLMAdapter
from langop_agent.runtime.tools import ToolRegistry
from langop_agent.sandbox.network import NetworkSandbox
from langop_agent.sandbox.process import ProcessSandbox
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger


def _maybe_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not (text.startswith("{") or text.startswith("[")):
        return value
    try:
        return json.loads(text)
    except ValueError:
        return value


class ExecutionContext:
    """Capabilities available to generated code for one agent invocation."""

    def __init__(
        self,
        tasks: TaskRegistry,
        tools: ToolRegistry | None = None,
        neural_executor: NeuralExecutor | None = None,
        llm: BaseLLMAdapter | None = None,
        http: NetworkSandbox | None = None,
        shell: ProcessSandbox | None = None,
        logger: CustomLogger | None = None,
        settings: RuntimeSettings | None = None,
    ) -> None:
        self.settings = settings or RuntimeSettings()
        self.logger = logger or get_default_logger("context")
        self.tasks = tasks
        self.tools = tools or ToolRegistry()
        self.neural_executor = neural_executor
        self.llm = llm
        self.http = http or NetworkSandbox(self.settings, logger=self.logger.child("http"))
        self.shell = shell or ProcessSandbox(self.settings, logger=self.logger.child("shell"))

    def execute_task(self, name: str, inputs: Mapping[str, Any] | None = None) -> dict[str, Any]:
        contract = self.tasks.get(name)
        self.logger.info("Executing task", task=name, strategy=contract.strategy.value)
        with self.logger.timed("Task completed", task=name):
            return contract.invoke(inputs, self, self.neural_executor)

    def execute_tool(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        """Call a registered tool; JSON object or array text is decoded."""
        self.logger.info("Tool call", tool=name, params=dict(params or {}))
        result = self.tools.call(name, params)
        self.logger.debug("Tool call completed", tool=name, result_type=type(result).__name__)
        return _maybe_json(result)

    def execute_llm(self, prompt: str) -> str:
        if self.llm is None:
            raise NotSupportedHereError(
                "No language model is configured for this agent; execute_llm is unavailable"
            )
        self.logger.debug("LLM call", prompt_length=len(prompt))
        return self.llm.generate(prompt).text

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["ExecutionContext"]
