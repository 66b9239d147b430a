"""Centralized semantic enums for the execution core."""

from __future__ import annotations

from enum import Enum


class TypeTag(str, Enum):
    """Type tags allowed in task input/output schemas."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    MAP = "map"
    ANY = "any"

    @classmethod
    def parse(cls, raw: TypeTag | str) -> TypeTag:
        """Resolve a tag from its spelling, accepting the legacy aliases."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"type tag must be a string, got {type(raw).__name__}")
        normalized = raw.strip().lower()
        normalized = TYPE_TAG_ALIASES.get(normalized, normalized)
        return cls(normalized)


TYPE_TAG_ALIASES: dict[str, str] = {
    "hash": TypeTag.MAP.value,
    "object": TypeTag.MAP.value,
}


class Strategy(str, Enum):
    """Resolved implementation approach of a task contract."""

    NEURAL = "neural"
    SYMBOLIC = "symbolic"
    HYBRID = "hybrid"
    UNDEFINED = "undefined"

    @classmethod
    def resolve(cls, has_instructions: bool, has_body: bool) -> Strategy:
        if has_instructions and has_body:
            return cls.HYBRID
        if has_body:
            return cls.SYMBOLIC
        if has_instructions:
            return cls.NEURAL
        return cls.UNDEFINED


class StepAction(str, Enum):
    """Kinds of work a workflow step can perform."""

    TOOL = "tool"
    PROMPT = "prompt"
    CUSTOM = "custom"
    NOOP = "noop"


class AuthScheme(str, Enum):
    """Single auth scheme accepted by the network sandbox."""

    BASIC = "basic"
    BEARER = "bearer"
    TOKEN = "token"
    HEADER = "header"


class ErrorKind(str, Enum):
    """Error taxonomy of the execution core."""

    CONTRACT_VIOLATION = "contract_violation"
    DEPENDENCY_NOT_SATISFIED = "dependency_not_satisfied"
    SANDBOX_REJECTION = "sandbox_rejection"
    EXTERNAL_FAILURE = "external_failure"
    SECURITY_DISABLED = "security_disabled"
    CONFIGURATION = "configuration"
