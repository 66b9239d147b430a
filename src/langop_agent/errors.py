"""Error taxonomy for contract, workflow, and sandbox failures."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from langop_agent.constants import SECURITY_DISABLED_SUFFIX
from langop_agent.enums import ErrorKind


@dataclass(frozen=True)
class ErrorProfile:
    """How a kind of failure travels back to the caller."""

    raised: bool
    retryable: bool
    user_visible: bool


ERROR_PROFILES: dict[ErrorKind, ErrorProfile] = {
    ErrorKind.CONTRACT_VIOLATION: ErrorProfile(
        raised=True, retryable=False, user_visible=True
    ),
    ErrorKind.DEPENDENCY_NOT_SATISFIED: ErrorProfile(
        raised=True, retryable=False, user_visible=True
    ),
    # Sandbox rejections and external failures come back as result values.
    ErrorKind.SANDBOX_REJECTION: ErrorProfile(
        raised=False, retryable=False, user_visible=True
    ),
    ErrorKind.EXTERNAL_FAILURE: ErrorProfile(
        raised=False, retryable=True, user_visible=True
    ),
    ErrorKind.SECURITY_DISABLED: ErrorProfile(
        raised=True, retryable=False, user_visible=True
    ),
    ErrorKind.CONFIGURATION: ErrorProfile(
        raised=True, retryable=False, user_visible=True
    ),
}


def error_profile_for(kind: ErrorKind) -> ErrorProfile:
    profile = ERROR_PROFILES.get(kind)
    if profile is None:
        raise RuntimeError(f"Missing error profile for {kind.value}")
    return profile


class LangopError(RuntimeError):
    """Base class for every error raised by the execution core."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    @property
    def profile(self) -> ErrorProfile:
        return error_profile_for(self.kind)


class ContractViolation(LangopError):
    """A task's inputs or outputs do not satisfy its declared schema."""

    kind = ErrorKind.CONTRACT_VIOLATION

    def __init__(self, task: str, field: str | None, message: str) -> None:
        self.task = task
        self.field = field
        super().__init__(f"Task '{task}': {message}")


class MissingInputError(ContractViolation):
    def __init__(self, task: str, field: str) -> None:
        super().__init__(task, field, f"missing required input parameter '{field}'")


class MissingOutputError(ContractViolation):
    def __init__(self, task: str, field: str) -> None:
        super().__init__(task, field, f"missing required output field '{field}'")


class TypeCoercionError(ContractViolation):
    def __init__(self, task: str, field: str, direction: str, reason: str) -> None:
        self.direction = direction
        self.reason = reason
        super().__init__(task, field, f"{reason} for {direction} '{field}'")


class SchemaDefinitionError(LangopError, ValueError):
    """A task schema is malformed at definition time."""


class UndefinedStrategyError(LangopError):
    """A task has neither instructions nor a body."""

    def __init__(self, task: str) -> None:
        self.task = task
        super().__init__(
            f"Task '{task}' has no implementation (neither instructions nor body)"
        )


class NotSupportedHereError(LangopError):
    """The requested capability is not available in this execution scope."""

    def __init__(self, message: str, task: str | None = None) -> None:
        self.task = task
        super().__init__(message)


class TaskNotFoundError(LangopError, KeyError):
    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        known = ", ".join(available) or "<none>"
        super().__init__(f"Task not found: {name}. Available tasks: {known}")

    def __str__(self) -> str:
        return str(self.args[0])


class ToolNotFoundError(LangopError, KeyError):
    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        known = ", ".join(available) or "<none>"
        super().__init__(f"Tool not found: {name}. Available tools: {known}")

    def __str__(self) -> str:
        return str(self.args[0])


class NeuralResponseError(LangopError):
    """The language model reply could not be turned into task outputs."""

    def __init__(self, task: str, message: str) -> None:
        self.task = task
        super().__init__(f"Task '{task}' returned invalid JSON: {message}")


class DependencyNotSatisfiedError(LangopError):
    """A workflow step ran before one of its declared dependencies."""

    kind = ErrorKind.DEPENDENCY_NOT_SATISFIED

    def __init__(self, step: str, dependency: str) -> None:
        self.step = step
        self.dependency = dependency
        super().__init__(
            f"Step {step} depends on {dependency}, but {dependency} has not been executed"
        )


class CommandFailedError(LangopError):
    """Raised by ``ProcessSandbox.capture_strict`` when a command fails."""

    kind = ErrorKind.EXTERNAL_FAILURE

    def __init__(self, exitcode: int, error: str) -> None:
        self.exitcode = exitcode
        self.error = error
        super().__init__(f"Command failed (exit {exitcode}): {error}")


class SecurityDisabledError(LangopError):
    """A capability that was permanently removed was called."""

    kind = ErrorKind.SECURITY_DISABLED

    def __init__(self, capability: str, alternative: str) -> None:
        self.capability = capability
        super().__init__(
            f"{capability} {SECURITY_DISABLED_SUFFIX}. Use {alternative} instead."
        )


if set(ERROR_PROFILES) != set(ErrorKind):
    missing = set(ErrorKind) - set(ERROR_PROFILES)
    raise RuntimeError(
        "Error profiles must cover all error kinds: "
        f"missing={sorted(kind.value for kind in missing)}"
    )


__all__ = [
    "ERROR_PROFILES",
    "ErrorProfile",
    "error_profile_for",
    "LangopError",
    "ContractViolation",
    "MissingInputError",
    "MissingOutputError",
    "TypeCoercionError",
    "SchemaDefinitionError",
    "UndefinedStrategyError",
    "NotSupportedHereError",
    "TaskNotFoundError",
    "ToolNotFoundError",
    "NeuralResponseError",
    "DependencyNotSatisfiedError",
    "CommandFailedError",
    "SecurityDisabledError",
]
