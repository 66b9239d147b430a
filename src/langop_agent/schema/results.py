"""Structured values returned by the sandboxes instead of exceptions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field

from langop_agent.enums import ErrorKind
from langop_agent.schema.base import TypedBaseModel


class SandboxDecision(TypedBaseModel):
    """Outcome of a policy check, produced before any external effect."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> SandboxDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> SandboxDecision:
        return cls(allowed=False, reason=reason)


class HttpResult(TypedBaseModel):
    """Normalized response of a sandboxed HTTP call."""

    status: int = 0
    headers: Mapping[str, str] = Field(default_factory=dict)
    body: str = ""
    success: bool = False
    json_body: Any = Field(default=None, alias="json")
    error: str | None = None
    error_kind: ErrorKind | None = None

    model_config = TypedBaseModel.model_config | {"populate_by_name": True}

    @property
    def json(self) -> Any:  # type: ignore[override]
        """Parsed JSON body, when the response declared a JSON content type."""
        return self.json_body

    @classmethod
    def rejected(cls, decision: SandboxDecision) -> HttpResult:
        return cls(
            success=False,
            error=decision.reason,
            error_kind=ErrorKind.SANDBOX_REJECTION,
        )

    @classmethod
    def failed(cls, message: str) -> HttpResult:
        return cls(
            success=False, error=message, error_kind=ErrorKind.EXTERNAL_FAILURE
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProcessResult(TypedBaseModel):
    """Outcome of a sandboxed process invocation."""

    success: bool
    output: str = ""
    error: str = ""
    exitcode: int = -1
    timeout: bool = False
    error_kind: ErrorKind | None = None

    @property
    def stdout(self) -> str:
        return self.output

    @property
    def stderr(self) -> str:
        return self.error

    @property
    def exit_code(self) -> int:
        return self.exitcode

    @property
    def timed_out(self) -> bool:
        return self.timeout

    @classmethod
    def rejected(cls, reason: str) -> ProcessResult:
        return cls(
            success=False,
            error=reason,
            exitcode=-1,
            error_kind=ErrorKind.SANDBOX_REJECTION,
        )

    @classmethod
    def failed(cls, message: str, *, timed_out: bool = False) -> ProcessResult:
        return cls(
            success=False,
            error=message,
            exitcode=-1,
            timeout=timed_out,
            error_kind=ErrorKind.EXTERNAL_FAILURE,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
