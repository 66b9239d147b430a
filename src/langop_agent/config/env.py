"""Loads API key configuration and runtime overrides from the environment."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from langop_agent.config.defaults import ENV_PREFIX, RUNTIME_DEFAULTS


@dataclass(frozen=True)
class APIKeySpec:
    """Describes how each model provider exposes an API key in the environment."""

    provider: str
    env_var: str
    description: str


KEY_REGISTRY: tuple[APIKeySpec, ...] = (
    APIKeySpec("OpenAI", "OPENAI_API_KEY", "OpenAI-compatible chat completions"),
    APIKeySpec("Anthropic", "ANTHROPIC_API_KEY", "Claude conversational endpoints"),
    APIKeySpec("Deepseek", "DEEPSEEK_API_KEY", "Deepseek chat completions"),
    APIKeySpec("Local", "LANGOP_MODEL_API_KEY", "In-cluster model proxy"),
)


def load_environment(dotenv_path: str | Path | None = None) -> None:
    """Load a `.env` file when available to seed key and override lookups."""
    path = Path(dotenv_path) if dotenv_path else Path(".env")
    if path.exists():
        load_dotenv(dotenv_path=path)


def key_for_provider(provider: str) -> str:
    """Return the configured key for a specific provider, or raise."""
    spec = next(
        (spec for spec in KEY_REGISTRY if spec.provider.lower() == provider.lower()),
        None,
    )
    if not spec:
        raise KeyError(f"Unknown provider: {provider}")
    value = os.getenv(spec.env_var)
    if not value:
        raise RuntimeError(f"API key for {provider} ({spec.env_var}) is not configured")
    return value


def configured_providers() -> Iterable[str]:
    """List providers that currently have API keys configured."""
    return [spec.provider for spec in KEY_REGISTRY if os.getenv(spec.env_var)]


def env_overrides() -> dict[str, str]:
    """Collect raw ``LANGOP_*`` overrides for known runtime settings."""
    overrides: dict[str, str] = {}
    for name in RUNTIME_DEFAULTS:
        value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if value is not None and value.strip() != "":
            overrides[name] = value.strip()
    return overrides


__all__ = [
    "KEY_REGISTRY",
    "APIKeySpec",
    "load_environment",
    "key_for_provider",
    "configured_providers",
    "env_overrides",
]
