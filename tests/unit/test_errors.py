from __future__ import annotations

from typing import cast

import pytest

from langop_agent.enums import ErrorKind
from langop_agent.errors import (
    ERROR_PROFILES,
    CommandFailedError,
    DependencyNotSatisfiedError,
    LangopError,
    MissingInputError,
    MissingOutputError,
    SchemaDefinitionError,
    SecurityDisabledError,
    TaskNotFoundError,
    TypeCoercionError,
    UndefinedStrategyError,
    error_profile_for,
)


def test_error_profiles_cover_all_kinds() -> None:
    for kind in cast(list[ErrorKind], list(ErrorKind)):
        profile = error_profile_for(kind)
        assert isinstance(profile.raised, bool)
        assert isinstance(profile.retryable, bool)
        assert profile.user_visible is True
    assert set(ERROR_PROFILES) == set(ErrorKind)


def test_result_kinds_are_not_raised() -> None:
    assert error_profile_for(ErrorKind.SANDBOX_REJECTION).raised is False
    assert error_profile_for(ErrorKind.EXTERNAL_FAILURE).raised is False
    assert error_profile_for(ErrorKind.CONTRACT_VIOLATION).raised is True


@pytest.mark.parametrize(
    ("error", "message", "kind"),
    [
        (
            MissingInputError("greet", "name"),
            "Task 'greet': missing required input parameter 'name'",
            ErrorKind.CONTRACT_VIOLATION,
        ),
        (
            MissingOutputError("greet", "text"),
            "Task 'greet': missing required output field 'text'",
            ErrorKind.CONTRACT_VIOLATION,
        ),
        (
            TypeCoercionError("sum", "n", "input", "cannot coerce 'x' to integer"),
            "Task 'sum': cannot coerce 'x' to integer for input 'n'",
            ErrorKind.CONTRACT_VIOLATION,
        ),
        (
            UndefinedStrategyError("empty"),
            "Task 'empty' has no implementation (neither instructions nor body)",
            ErrorKind.CONFIGURATION,
        ),
        (
            DependencyNotSatisfiedError("b", "a"),
            "Step b depends on a, but a has not been executed",
            ErrorKind.DEPENDENCY_NOT_SATISFIED,
        ),
        (
            CommandFailedError(1, "boom"),
            "Command failed (exit 1): boom",
            ErrorKind.EXTERNAL_FAILURE,
        ),
        (
            SecurityDisabledError("Shell.raw", "ProcessSandbox.run"),
            "Shell.raw has been removed for security reasons. Use ProcessSandbox.run instead.",
            ErrorKind.SECURITY_DISABLED,
        ),
    ],
)
def test_error_messages_and_kinds(error: LangopError, message: str, kind: ErrorKind) -> None:
    assert str(error) == message
    assert error.kind is kind
    assert error.profile is ERROR_PROFILES[kind]


def test_lookup_errors_stay_catchable_as_key_errors() -> None:
    error = TaskNotFoundError("missing", ["a", "b"])
    assert isinstance(error, KeyError)
    assert str(error) == "Task not found: missing. Available tasks: a, b"
    assert str(TaskNotFoundError("x", [])).endswith("Available tasks: <none>")


def test_schema_definition_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        raise SchemaDefinitionError("bad schema")
