"""Factory for selecting LLM adapters based on configuration."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import os
from typing import Any

from langop_agent.config.env import load_environment
from langop_agent.enums import ErrorKind
from langop_agent.models.llm_adapter import (
    AdapterConfig,
    AdapterError,
    BaseLLMAdapter,
    ChatCompletionsAdapter,
    StaticAdapter,
)

DEFAULT_TEMPERATURE = 0.0
DEFAULT_MAX_TOKENS = 1024
DEFAULT_TIMEOUT = 30.0

PROVIDER_BASE_URLS: dict[str, str] = {
    "openai": ChatCompletionsAdapter.DEFAULT_BASE_URL,
    "deepseek": "https://api.deepseek.com/v1/chat/completions",
}

SKIP_DOTENV_ENV = "LANGOP_SKIP_DOTENV"


def _resolve_model_name(config: Mapping[str, Any]) -> str:
    env_model = os.getenv("LANGOP_MODEL")
    if env_model and env_model.strip():
        return env_model.strip()
    config_model = config.get("model")
    if config_model:
        return str(config_model)
    raise AdapterError(
        "Model selection is required; set `model` in configuration",
        ErrorKind.CONFIGURATION,
    )


def _resolve_float(config: Mapping[str, Any], key: str, default: float) -> float:
    if config.get(key) is not None:
        return float(config[key])
    return default


def _build_chat_adapter(
    adapter_config: AdapterConfig, user_config: Mapping[str, Any]
) -> BaseLLMAdapter:
    base_url = user_config.get("base_url") or PROVIDER_BASE_URLS.get(
        adapter_config.provider
    )
    if not base_url:
        raise AdapterError(
            f"Provider '{adapter_config.provider}' requires a base_url",
            ErrorKind.CONFIGURATION,
        )
    return ChatCompletionsAdapter(
        adapter_config, base_url=str(base_url), api_key=user_config.get("api_key")
    )


def _build_static_adapter(
    adapter_config: AdapterConfig, user_config: Mapping[str, Any]
) -> BaseLLMAdapter:
    responses = user_config.get("responses")
    if isinstance(responses, str):
        responses = [responses]
    return StaticAdapter(adapter_config, responses=responses)


_ADAPTER_BUILDERS: dict[
    str, Callable[[AdapterConfig, Mapping[str, Any]], BaseLLMAdapter]
] = {
    "openai": _build_chat_adapter,
    "deepseek": _build_chat_adapter,
    "local": _build_chat_adapter,
    "static": _build_static_adapter,
}


def build_adapter(config: Mapping[str, Any]) -> BaseLLMAdapter:
    """Build an adapter from a ``{"provider", "model", ...}`` mapping."""
    if os.getenv(SKIP_DOTENV_ENV) != "1":
        load_environment()
    provider = str(config.get("provider") or "openai").strip().lower()
    builder = _ADAPTER_BUILDERS.get(provider)
    if not builder:
        raise AdapterError(
            f"No adapter registered for provider {provider}", ErrorKind.CONFIGURATION
        )
    model_name = (
        str(config.get("model") or "static")
        if provider == "static"
        else _resolve_model_name(config)
    )
    adapter_config = AdapterConfig(
        provider=provider,
        model_name=model_name,
        temperature=_resolve_float(config, "temperature", DEFAULT_TEMPERATURE),
        max_tokens=int(config.get("max_tokens") or DEFAULT_MAX_TOKENS),
        timeout=_resolve_float(config, "timeout", DEFAULT_TIMEOUT),
    )
    return builder(adapter_config, config)


__all__ = ["build_adapter", "PROVIDER_BASE_URLS"]
