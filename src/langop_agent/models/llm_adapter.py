"""Lightweight adapter layer for the language models behind neural tasks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
import hashlib
from typing import Any, cast
import unicodedata
from urllib import parse as urllib_parse

from pydantic import ConfigDict, Field
import requests

from langop_agent.config.env import key_for_provider
from langop_agent.enums import ErrorKind
from langop_agent.errors import LangopError
from langop_agent.schema.base import TypedBaseModel


def prompt_hash(prompt: str) -> str:
    """Return a stable sha256 hash for a given prompt text (NFC-normalized)."""
    normalized = unicodedata.normalize("NFC", prompt.strip())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class AdapterError(LangopError):
    """Structured failure for model adapter configuration and requests."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.EXTERNAL_FAILURE) -> None:
        super().__init__(message)
        self.kind = kind


class LLMResponse(TypedBaseModel):
    """Normalized response container for any backend adapter."""

    model_config = ConfigDict(frozen=True, extra="forbid")
    text: str
    model: str
    prompt_hash: str
    metadata: Mapping[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class AdapterConfig:
    """Shared configuration used to initialize adapters."""

    provider: str
    model_name: str
    temperature: float = 0.0
    max_tokens: int = 1024
    timeout: float = 30.0


class BaseLLMAdapter(ABC):
    """Base class keeping metadata handling consistent across backends."""

    def __init__(self, config: AdapterConfig) -> None:
        self._config = config

    @property
    def config(self) -> AdapterConfig:
        return self._config

    @abstractmethod
    def generate(self, prompt: str, **kwargs: Any) -> LLMResponse:
        """Generate text from the language model."""

    def _prepare_metadata(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        base: dict[str, Any] = {
            "provider": self._config.provider,
            "model_name": self._config.model_name,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }
        if extra:
            base.update(extra)
        return base

    def _response(self, prompt: str, text: str, metadata: Mapping[str, Any]) -> LLMResponse:
        return LLMResponse(
            text=text,
            model=self._config.model_name,
            prompt_hash=prompt_hash(prompt),
            metadata=metadata,
        )


class ChatCompletionsAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible ``/chat/completions`` endpoints."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"

    def __init__(
        self,
        config: AdapterConfig,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(config)
        self.base_url = base_url
        self._client = client
        self._validate_base_url()
        if config.timeout <= 0:
            raise AdapterError(
                "Adapter timeout must be positive", ErrorKind.CONFIGURATION
            )
        self._api_key = api_key or self._resolve_api_key()

    def _resolve_api_key(self) -> str:
        try:
            return key_for_provider(self.config.provider)
        except (KeyError, RuntimeError) as exc:
            raise AdapterError(str(exc), ErrorKind.CONFIGURATION) from exc

    def _validate_base_url(self) -> None:
        parsed = urllib_parse.urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise AdapterError(
                "Chat completions base_url must be an http(s) URL with a host",
                ErrorKind.CONFIGURATION,
            )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        payload.update({k: v for k, v in kwargs.items() if k != "metadata"})
        return payload

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        client = self._client or requests
        try:
            response = client.post(
                self.base_url,
                json=payload,
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise AdapterError(f"Chat completions request failed: {exc!s}") from exc
        status_code = getattr(response, "status_code", 200)
        if status_code != 200:
            raise AdapterError(f"Chat completions API error: status {status_code}")
        try:
            return cast(dict[str, Any], response.json())
        except ValueError as exc:
            raise AdapterError("Chat completions API returned a non-JSON body") from exc

    def generate(self, prompt: str, **kwargs: Any) -> LLMResponse:
        metadata = self._prepare_metadata(kwargs.get("metadata"))
        response = self._post(self._build_payload(prompt, **kwargs))
        try:
            text = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AdapterError("Chat completions API returned no message content") from exc
        return self._response(
            prompt, str(text), {**metadata, "usage": response.get("usage", {})}
        )


class StaticAdapter(BaseLLMAdapter):
    """Deterministic adapter for tests and dry runs.

    Replies are taken in order from ``responses``; the last one repeats once
    the sequence is exhausted. A ``responder`` callable takes precedence and
    receives the prompt. Every prompt seen is kept in ``prompts``.
    """

    def __init__(
        self,
        config: AdapterConfig | None = None,
        responses: Iterable[str] | None = None,
        responder: Callable[[str], str] | None = None,
    ) -> None:
        super().__init__(config or AdapterConfig(provider="static", model_name="static"))
        self._responses = list(responses or ["{}"])
        self._responder = responder
        self.prompts: list[str] = []

    def generate(self, prompt: str, **kwargs: Any) -> LLMResponse:
        self.prompts.append(prompt)
        if self._responder is not None:
            text = self._responder(prompt)
        else:
            index = min(len(self.prompts), len(self._responses)) - 1
            text = self._responses[index]
        return self._response(prompt, text, self._prepare_metadata(kwargs.get("metadata")))


__all__ = [
    "AdapterConfig",
    "AdapterError",
    "BaseLLMAdapter",
    "ChatCompletionsAdapter",
    "LLMResponse",
    "StaticAdapter",
    "prompt_hash",
]
