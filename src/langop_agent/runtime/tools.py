"""Named tools that tasks and workflow steps can call."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from langop_agent.errors import ToolNotFoundError

ToolFunction = Callable[..., Any]


@dataclass(frozen=True)
class ToolSpec:
    """A callable tool plus the description surfaced to neural prompts."""

    name: str
    function: ToolFunction
    description: str = ""


class ToolRegistry:
    """Ordered name -> tool mapping; tools receive params as keyword arguments."""

    def __init__(self, tools: Mapping[str, ToolFunction] | None = None) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for name, function in (tools or {}).items():
            self.register(name, function)

    def register(
        self, name: str, function: ToolFunction, description: str | None = None
    ) -> ToolSpec:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("tool name must be a non-empty string")
        if not callable(function):
            raise ValueError(f"Tool '{name}' must be callable")
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        spec = ToolSpec(
            name=name,
            function=function,
            description=description or (function.__doc__ or "").strip(),
        )
        self._tools[name] = spec
        return spec

    def tool(
        self, name: str | None = None, *, description: str | None = None
    ) -> Callable[[ToolFunction], ToolFunction]:
        """Decorator form of ``register``."""

        def decorator(function: ToolFunction) -> ToolFunction:
            self.register(name or function.__name__, function, description)
            return function

        return decorator

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise ToolNotFoundError(name, self._tools)
        return spec

    def call(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        return self.get(name).function(**dict(params or {}))

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


__all__ = ["ToolFunction", "ToolRegistry", "ToolSpec"]
