"""Workflow step declarations and the per-run result store."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from langop_agent.constants import IDENTIFIER_PATTERN
from langop_agent.enums import StepAction

if TYPE_CHECKING:
    from langop_agent.runtime.context import ExecutionContext

StepHandler = Callable[[Mapping[str, Any], "ExecutionContext | None"], Any]

_IDENTIFIER = re.compile(IDENTIFIER_PATTERN)


@dataclass(frozen=True)
class WorkflowStep:
    """One named unit of a declarative workflow."""

    name: str
    dependencies: tuple[str, ...] = ()
    tool: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)
    template: str | None = None
    handler: StepHandler | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _IDENTIFIER.fullmatch(self.name):
            raise ValueError(f"step name {self.name!r} is not a valid identifier")
        actions = [
            label
            for label, present in (
                ("tool", self.tool is not None),
                ("prompt", self.template is not None),
                ("handler", self.handler is not None),
            )
            if present
        ]
        if len(actions) > 1:
            raise ValueError(
                f"Step {self.name} declares more than one action: {', '.join(actions)}"
            )
        if self.handler is not None and not callable(self.handler):
            raise ValueError(f"Step {self.name} handler must be callable")
        if self.params and self.tool is None:
            raise ValueError(f"Step {self.name} declares params without a tool")
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def action(self) -> StepAction:
        if self.handler is not None:
            return StepAction.CUSTOM
        if self.tool is not None:
            return StepAction.TOOL
        if self.template is not None:
            return StepAction.PROMPT
        return StepAction.NOOP


class StepResultStore(Mapping[str, Any]):
    """Append-only step name -> result mapping scoped to one execution."""

    def __init__(self) -> None:
        self._results: dict[str, Any] = {}

    def record(self, step: str, value: Any) -> None:
        if step in self._results:
            raise ValueError(f"Result for step {step} is already recorded")
        self._results[step] = value

    def view(self) -> Mapping[str, Any]:
        """Read-only live view handed to custom step handlers."""
        return MappingProxyType(self._results)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._results)

    def __getitem__(self, step: str) -> Any:
        return self._results[step]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"StepResultStore({self._results!r})"


__all__ = ["StepHandler", "WorkflowStep", "StepResultStore"]
