"""Named lookup of task contracts for one agent."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

from langop_agent.contracts.task import TaskBody, TaskContract, define
from langop_agent.enums import TypeTag
from langop_agent.errors import TaskNotFoundError
from langop_agent.utilities.logger_manager import CustomLogger


class TaskRegistry:
    """Ordered registry of contracts, filled at definition time."""

    def __init__(self, logger: CustomLogger | None = None) -> None:
        self._tasks: dict[str, TaskContract] = {}
        self._logger = logger

    def register(self, contract: TaskContract) -> TaskContract:
        if contract.name in self._tasks:
            raise ValueError(f"Task '{contract.name}' is already registered")
        self._tasks[contract.name] = contract
        return contract

    def define(
        self,
        name: str,
        input_schema: Mapping[str, TypeTag | str] | None = None,
        output_schema: Mapping[str, TypeTag | str] | None = None,
        instructions: str | None = None,
        body: TaskBody | None = None,
    ) -> TaskContract:
        logger = self._logger.child(f"task.{name}") if self._logger else None
        return self.register(
            define(name, input_schema, output_schema, instructions, body, logger=logger)
        )

    def task(
        self,
        name: str | None = None,
        *,
        inputs: Mapping[str, TypeTag | str] | None = None,
        outputs: Mapping[str, TypeTag | str] | None = None,
        instructions: str | None = None,
    ) -> Callable[[TaskBody], TaskBody]:
        """Decorator form: register the decorated function as a task body."""

        def decorator(fn: TaskBody) -> TaskBody:
            task_name = name or getattr(fn, "__name__", None)
            if not task_name:
                raise ValueError("task name could not be determined")
            self.define(task_name, inputs, outputs, instructions, fn)
            return fn

        return decorator

    def get(self, name: str) -> TaskContract:
        contract = self._tasks.get(name)
        if contract is None:
            raise TaskNotFoundError(name, self._tasks)
        return contract

    def names(self) -> list[str]:
        return list(self._tasks)

    def schemas(self) -> list[dict[str, Any]]:
        return [contract.to_schema() for contract in self._tasks.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[TaskContract]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)


__all__ = ["TaskRegistry"]
