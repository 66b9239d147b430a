"""Runtime settings resolved from defaults, a YAML file, and the environment."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from langop_agent.config.defaults import RUNTIME_DEFAULTS
from langop_agent.config.env import env_overrides

_VALID_LOG_FORMATS = {"pretty", "json"}


@dataclass(frozen=True)
class RuntimeSettings:
    """Immutable knobs shared by the sandboxes, contracts, and logging."""

    http_connect_timeout: float = float(RUNTIME_DEFAULTS["http_connect_timeout"])  # type: ignore[arg-type]
    http_read_timeout: float = float(RUNTIME_DEFAULTS["http_read_timeout"])  # type: ignore[arg-type]
    http_max_redirects: int = int(RUNTIME_DEFAULTS["http_max_redirects"])  # type: ignore[call-overload]
    user_agent: str = str(RUNTIME_DEFAULTS["user_agent"])
    process_timeout: float = float(RUNTIME_DEFAULTS["process_timeout"])  # type: ignore[arg-type]
    trace_excerpt_frames: int = int(RUNTIME_DEFAULTS["trace_excerpt_frames"])  # type: ignore[call-overload]
    coercion_cache_size: int = int(RUNTIME_DEFAULTS["coercion_cache_size"])  # type: ignore[call-overload]
    log_level: str = str(RUNTIME_DEFAULTS["log_level"])
    log_format: str = str(RUNTIME_DEFAULTS["log_format"])

    def __post_init__(self) -> None:
        for name in ("http_connect_timeout", "http_read_timeout", "process_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.http_max_redirects not in (0, 1):
            raise ValueError("http_max_redirects must be 0 or 1")
        if self.trace_excerpt_frames < 0:
            raise ValueError("trace_excerpt_frames must not be negative")
        if self.coercion_cache_size < 0:
            raise ValueError("coercion_cache_size must not be negative")
        if self.log_format not in _VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(_VALID_LOG_FORMATS)}, "
                f"got '{self.log_format}'"
            )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RuntimeSettings:
        """Build settings from loosely typed values, converting each field."""
        known = {item.name: item for item in fields(cls)}
        unknown = sorted(set(raw) - set(known))
        if unknown:
            raise ValueError(f"Unknown runtime settings: {', '.join(unknown)}")
        converted: dict[str, Any] = {}
        for name, value in raw.items():
            default = getattr(cls, name)
            try:
                converted[name] = type(default)(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid value for {name}: {value!r}") from exc
        return cls(**converted)

    @classmethod
    def load(cls, path: Path | str | None = None) -> RuntimeSettings:
        """Resolve settings: defaults, then the YAML ``runtime`` section, then env."""
        merged: dict[str, Any] = {}
        if path is not None:
            resolved = Path(path)
            if resolved.is_file():
                raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
                section = raw.get("runtime", {}) if isinstance(raw, dict) else {}
                if not isinstance(section, dict):
                    raise ValueError("'runtime' section must be a mapping")
                merged.update(section)
        merged.update(env_overrides())
        return cls.from_mapping(merged)

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


__all__ = ["RuntimeSettings"]
