"""Configuration helpers for the runtime."""

from __future__ import annotations

from .defaults import RUNTIME_DEFAULTS
from .env import (
    KEY_REGISTRY,
    APIKeySpec,
    configured_providers,
    key_for_provider,
    load_environment,
)
from .settings import RuntimeSettings

__all__ = [
    "APIKeySpec",
    "KEY_REGISTRY",
    "RUNTIME_DEFAULTS",
    "RuntimeSettings",
    "load_environment",
    "configured_providers",
    "key_for_provider",
]
