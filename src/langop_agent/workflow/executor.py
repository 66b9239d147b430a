"""Declarative workflow executor for agents that predate the main entry point.

Steps run strictly in declaration order. Dependencies are checked, not
sorted: a step whose dependency has not produced a result stops the run.
There is no parallel fan-out and no retry.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from langop_agent.errors import DependencyNotSatisfiedError, NotSupportedHereError
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger
from langop_agent.workflow.interpolation import interpolate_params, interpolate_template
from langop_agent.workflow.steps import StepHandler, StepResultStore, WorkflowStep

if TYPE_CHECKING:
    from langop_agent.runtime.context import ExecutionContext


def _normalize_dependencies(depends_on: str | Iterable[str] | None) -> tuple[str, ...]:
    if depends_on is None:
        return ()
    if isinstance(depends_on, str):
        return (depends_on,)
    return tuple(depends_on)


class DependencyWorkflowExecutor:
    """Runs a fixed list of named steps with ``{step.field}`` interpolation."""

    def __init__(self, logger: CustomLogger | None = None) -> None:
        self._steps: list[WorkflowStep] = []
        self.logger = logger or get_default_logger("workflow")

    @property
    def steps(self) -> tuple[WorkflowStep, ...]:
        return tuple(self._steps)

    def add_step(
        self,
        name: str,
        *,
        depends_on: str | Iterable[str] | None = None,
        tool: str | None = None,
        params: Mapping[str, Any] | None = None,
        prompt: str | None = None,
        handler: StepHandler | None = None,
    ) -> WorkflowStep:
        if any(step.name == name for step in self._steps):
            raise ValueError(f"Step {name} is already declared")
        step = WorkflowStep(
            name=name,
            dependencies=_normalize_dependencies(depends_on),
            tool=tool,
            params=dict(params or {}),
            template=prompt,
            handler=handler,
        )
        self._steps.append(step)
        return step

    def execute(self, context: ExecutionContext | None = None) -> StepResultStore:
        """Run every step once and return the results keyed by step name."""
        results = StepResultStore()
        self.logger.info("Executing workflow", step_count=len(self._steps))

        for step in self._steps:
            self._check_dependencies(step, results)
            self.logger.info(
                "Executing step",
                step=step.name,
                action=step.action.value,
                tool=step.tool,
            )
            with self.logger.timed("Step execution", step=step.name):
                value = self._run_step(step, results, context)
            results.record(step.name, value)
            self.logger.info("Step completed", step=step.name)

        self.logger.info("Workflow execution completed", total_steps=len(self._steps))
        return results

    def _check_dependencies(self, step: WorkflowStep, results: StepResultStore) -> None:
        if step.dependencies:
            self.logger.debug(
                "Checking dependencies",
                step=step.name,
                dependencies=list(step.dependencies),
            )
        for dependency in step.dependencies:
            if dependency in results:
                continue
            self.logger.error(
                "Dependency not satisfied",
                step=step.name,
                missing_dependency=dependency,
            )
            raise DependencyNotSatisfiedError(step.name, dependency)

    def _run_step(
        self,
        step: WorkflowStep,
        results: StepResultStore,
        context: ExecutionContext | None,
    ) -> Any:
        if step.handler is not None:
            self.logger.debug("Executing custom logic", step=step.name)
            return step.handler(results.view(), context)

        if step.tool is not None:
            params = interpolate_params(step.params, results)
            self.logger.info("Calling tool", step=step.name, tool=step.tool, params=params)
            execute_tool = getattr(context, "execute_tool", None)
            if execute_tool is None:
                raise NotSupportedHereError(
                    f"Step {step.name} calls tool '{step.tool}' but no execution "
                    "context with tool access was provided"
                )
            return execute_tool(step.tool, params)

        if step.template is not None:
            prompt = interpolate_template(step.template, results)
            self.logger.debug("LLM prompt", step=step.name, prompt=prompt[:200])
            execute_llm = getattr(context, "execute_llm", None)
            if execute_llm is None:
                raise NotSupportedHereError(
                    f"Step {step.name} uses a prompt but no execution context "
                    "with model access was provided"
                )
            return execute_llm(prompt)

        self.logger.debug("No execution logic defined", step=step.name)
        return None


__all__ = ["DependencyWorkflowExecutor"]
