"""Task contracts: a stable typed interface over an evolving implementation.

A contract's implementation may be natural-language instructions (neural),
a Python callable (symbolic), or both (hybrid). Callers never see the
difference: every invocation goes through the same input coercion and
output validation.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, cast

from langop_agent.contracts.types import (
    CoercionFailure,
    coerce,
    schema_to_json,
    validate_schema,
)
from langop_agent.enums import Strategy, TypeTag
from langop_agent.errors import (
    ContractViolation,
    MissingInputError,
    MissingOutputError,
    NotSupportedHereError,
    SchemaDefinitionError,
    TypeCoercionError,
    UndefinedStrategyError,
)
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger

if TYPE_CHECKING:
    from langop_agent.runtime.context import ExecutionContext

TaskBody = Callable[[dict[str, Any], "ExecutionContext | None"], Mapping[str, Any]]


class NeuralExecutor(Protocol):
    """Capability that turns instructions plus inputs into task outputs."""

    def __call__(
        self,
        instructions: str,
        inputs: Mapping[str, Any],
        output_schema: Mapping[str, TypeTag],
        *,
        task_name: str,
    ) -> Mapping[str, Any]: ...


@dataclass(frozen=True)
class TaskContract:
    """Immutable task definition with typed inputs and outputs."""

    name: str
    input_schema: Mapping[str, TypeTag]
    output_schema: Mapping[str, TypeTag]
    instructions: str | None = None
    body: TaskBody | None = field(default=None, compare=False)
    logger: CustomLogger | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise SchemaDefinitionError("task name must be a non-empty string")
        if self.body is not None and not callable(self.body):
            raise SchemaDefinitionError(f"Task '{self.name}' body must be callable")
        if self.instructions is not None and not isinstance(self.instructions, str):
            raise SchemaDefinitionError(f"Task '{self.name}' instructions must be text")
        try:
            inputs = validate_schema(self.input_schema, "inputs")
            outputs = validate_schema(self.output_schema, "outputs")
        except ValueError as exc:
            raise SchemaDefinitionError(f"Task '{self.name}': {exc}") from exc
        object.__setattr__(self, "input_schema", MappingProxyType(inputs))
        object.__setattr__(self, "output_schema", MappingProxyType(outputs))
        if self.logger is None:
            object.__setattr__(self, "logger", get_default_logger(f"task.{self.name}"))

    @property
    def strategy(self) -> Strategy:
        has_instructions = bool(self.instructions and self.instructions.strip())
        return Strategy.resolve(has_instructions, self.body is not None)

    @property
    def _log(self) -> CustomLogger:
        if self.logger is None:
            return get_default_logger(f"task.{self.name}")
        return self.logger

    def _coerce_field(self, value: Any, tag: TypeTag, field_name: str, direction: str) -> Any:
        try:
            return coerce(value, tag)
        except CoercionFailure as exc:
            raise TypeCoercionError(self.name, field_name, direction, str(exc)) from exc

    def validate_inputs(self, input_map: Mapping[str, Any] | None) -> dict[str, Any]:
        """Require and coerce every declared input; extra keys are logged and dropped."""
        params = {} if input_map is None else input_map
        if not isinstance(params, Mapping):
            raise ContractViolation(
                self.name, None, f"inputs must be a mapping, got {type(params).__name__}"
            )
        validated: dict[str, Any] = {}
        for key, tag in self.input_schema.items():
            value = params.get(key)
            if value is None:
                raise MissingInputError(self.name, key)
            validated[key] = self._coerce_field(value, tag, key, "input parameter")

        extra = sorted(str(key) for key in params if key not in self.input_schema)
        if extra:
            self._log.warning("Unexpected input parameters", task=self.name, extra=extra)
        return validated

    def validate_outputs(self, result: Any) -> dict[str, Any]:
        """Require and coerce every declared output; undeclared keys pass through."""
        if not isinstance(result, Mapping):
            raise ContractViolation(
                self.name,
                None,
                f"outputs must be a mapping, got {type(result).__name__}",
            )
        validated = dict(result)
        for key, tag in self.output_schema.items():
            value = result.get(key)
            if value is None:
                raise MissingOutputError(self.name, key)
            validated[key] = self._coerce_field(value, tag, key, "output field")
        return validated

    def invoke(
        self,
        input_map: Mapping[str, Any] | None = None,
        context: ExecutionContext | None = None,
        neural_executor: NeuralExecutor | None = None,
    ) -> dict[str, Any]:
        """Validate inputs, dispatch by strategy, and validate outputs."""
        strategy = self.strategy
        if strategy is Strategy.UNDEFINED:
            raise UndefinedStrategyError(self.name)

        inputs = self.validate_inputs(input_map)

        if self.body is not None:
            # Hybrid tasks always run the body; instructions are not consulted.
            self._log.debug("Executing symbolic task", task=self.name, strategy=strategy.value)
            result = self.body(inputs, context)
        else:
            executor = neural_executor or getattr(context, "neural_executor", None)
            if executor is None:
                raise NotSupportedHereError(
                    f"Task '{self.name}' is neural and requires a neural executor "
                    "supplied by the agent runtime",
                    task=self.name,
                )
            self._log.debug("Executing neural task", task=self.name)
            result = executor(
                cast(str, self.instructions),
                inputs,
                self.output_schema,
                task_name=self.name,
            )

        return self.validate_outputs(result)

    def to_schema(self) -> dict[str, Any]:
        """Export the contract as a JSON-serializable description."""
        return {
            "name": self.name,
            "type": self.strategy.value,
            "instructions": self.instructions,
            "inputs": schema_to_json(self.input_schema),
            "outputs": schema_to_json(self.output_schema),
        }


def define(
    name: str,
    input_schema: Mapping[str, TypeTag | str] | None = None,
    output_schema: Mapping[str, TypeTag | str] | None = None,
    instructions: str | None = None,
    body: TaskBody | None = None,
    *,
    logger: CustomLogger | None = None,
) -> TaskContract:
    """Build a contract; schemas are validated here, once."""
    return TaskContract(
        name=name,
        input_schema=dict(input_schema or {}),  # type: ignore[arg-type]
        output_schema=dict(output_schema or {}),  # type: ignore[arg-type]
        instructions=instructions,
        body=body,
        logger=logger,
    )


def invoke(
    contract: TaskContract,
    input_map: Mapping[str, Any] | None,
    context: ExecutionContext | None = None,
    neural_executor: NeuralExecutor | None = None,
) -> dict[str, Any]:
    """Module-level alias for ``TaskContract.invoke``."""
    return contract.invoke(input_map, context, neural_executor)


__all__ = ["NeuralExecutor", "TaskBody", "TaskContract", "define", "invoke"]
