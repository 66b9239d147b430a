"""Model adapters backing neural task execution."""

from __future__ import annotations

from .adapter_factory import build_adapter
from .llm_adapter import (
    AdapterConfig,
    AdapterError,
    BaseLLMAdapter,
    ChatCompletionsAdapter,
    LLMResponse,
    StaticAdapter,
    prompt_hash,
)

__all__ = [
    "AdapterConfig",
    "AdapterError",
    "BaseLLMAdapter",
    "ChatCompletionsAdapter",
    "LLMResponse",
    "StaticAdapter",
    "build_adapter",
    "prompt_hash",
]
