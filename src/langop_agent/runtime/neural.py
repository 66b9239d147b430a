"""LLM-backed execution of neural tasks.

The model is asked for a JSON object matching the task's output schema.
Replies may wrap that object in ``[THINK]...[/THINK]`` reasoning or a
Markdown code fence; both are stripped before parsing. A reply that still
does not parse earns exactly one retry with a stricter prompt.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import re
from typing import Any

from langop_agent.enums import TypeTag
from langop_agent.errors import NeuralResponseError
from langop_agent.models.llm_adapter import BaseLLMAdapter
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger

_THINK_BLOCK = re.compile(r"\[THINK\](.*?)\[/THINK\]", re.DOTALL)
_THINK_BEFORE_OBJECT = re.compile(r"\[THINK\].*?(?=\{)", re.DOTALL)
_UNCLOSED_THINK = re.compile(r"\[THINK\].*$", re.DOTALL)
_JSON_FENCE = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_EXAMPLE_VALUES = {
    TypeTag.STRING: '"example"',
    TypeTag.INTEGER: "42",
    TypeTag.NUMBER: "3.14",
    TypeTag.BOOLEAN: "true",
    TypeTag.ARRAY: "[]",
    TypeTag.MAP: "{}",
}
_DEFAULT_EXAMPLE = '"value"'
_PREVIEW_LENGTH = 500


def _render_inputs(inputs: Mapping[str, Any]) -> str:
    if not inputs:
        return ""
    lines = [f"- {key}: {value!r}" for key, value in inputs.items()]
    return "## Inputs\n" + "\n".join(lines) + "\n\n"


def _render_schema(output_schema: Mapping[str, TypeTag]) -> str:
    return "\n".join(f"- {key} ({tag.value})" for key, tag in output_schema.items())


def build_prompt(
    task_name: str,
    instructions: str,
    inputs: Mapping[str, Any],
    output_schema: Mapping[str, TypeTag],
) -> str:
    return (
        f"# Task: {task_name}\n\n"
        f"## Instructions\n{instructions}\n\n"
        f"{_render_inputs(inputs)}"
        "## Output Schema\n"
        "You must return a JSON object with the following fields:\n"
        f"{_render_schema(output_schema)}\n\n"
        "## Response Format\n"
        "You may include your reasoning in [THINK]...[/THINK] tags if helpful.\n"
        "Return your final answer as valid JSON matching the output schema above.\n"
        "Do not include explanations outside of [THINK] tags, only the JSON output.\n"
    )


def build_retry_prompt(
    task_name: str,
    instructions: str,
    inputs: Mapping[str, Any],
    output_schema: Mapping[str, TypeTag],
    failed_response: str,
    error_message: str,
) -> str:
    preview = failed_response[:_PREVIEW_LENGTH]
    if len(failed_response) > _PREVIEW_LENGTH:
        preview += "..."
    example = ",\n".join(
        f'  "{key}": {_EXAMPLE_VALUES.get(tag, _DEFAULT_EXAMPLE)}'
        for key, tag in output_schema.items()
    )
    return (
        f"# Task: {task_name} (RETRY - JSON Parsing Failed)\n\n"
        f"## Instructions\n{instructions}\n\n"
        f"{_render_inputs(inputs)}"
        "## Previous Response (Failed to Parse)\n"
        f"Your previous response caused a parsing error: {error_message}\n"
        f"Previous response preview:\n```\n{preview}\n```\n\n"
        "## Output Schema (CRITICAL)\n"
        "You MUST return valid JSON with exactly these fields:\n"
        f"{_render_schema(output_schema)}\n\n"
        "## Response Format (CRITICAL)\n"
        "Your response must be ONLY valid JSON. No other text.\n"
        "Do NOT use [THINK] tags or code blocks.\n\n"
        f"Example correct format:\n{{\n{example}\n}}\n"
    )


def strip_reasoning(text: str) -> str:
    """Remove ``[THINK]`` blocks, including an unclosed trailing one."""
    cleaned = _THINK_BEFORE_OBJECT.sub("", _THINK_BLOCK.sub("", text)).strip()
    if not cleaned or cleaned.startswith("[THINK]"):
        cleaned = _UNCLOSED_THINK.sub("", text).strip()
        if not cleaned and "{" in text:
            tail = text[text.rindex("[THINK]") :] if "[THINK]" in text else text
            cleaned = tail[tail.index("{") :] if "{" in tail else ""
    return cleaned


def extract_json_text(text: str) -> str:
    fenced = _JSON_FENCE.search(text)
    if fenced:
        return fenced.group(1)
    whole = _JSON_OBJECT.search(text)
    if whole:
        return whole.group(0)
    if "{" in text:
        return text[text.index("{") :]
    return text


def parse_response(text: str) -> dict[str, Any]:
    """Parse a model reply into a JSON object or raise ``ValueError``."""
    parsed = json.loads(extract_json_text(strip_reasoning(text)))
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


class LLMNeuralExecutor:
    """Neural executor that prompts a model adapter for task outputs."""

    def __init__(self, adapter: BaseLLMAdapter, logger: CustomLogger | None = None) -> None:
        self.adapter = adapter
        self.logger = logger or get_default_logger("neural")

    def __call__(
        self,
        instructions: str,
        inputs: Mapping[str, Any],
        output_schema: Mapping[str, TypeTag],
        *,
        task_name: str,
    ) -> dict[str, Any]:
        prompt = build_prompt(task_name, instructions, inputs, output_schema)
        self.logger.debug("Neural prompt built", task=task_name, prompt_length=len(prompt))
        response_text = self.adapter.generate(prompt).text
        self._log_reasoning(task_name, response_text)
        try:
            return parse_response(response_text)
        except ValueError as exc:
            self.logger.warning(
                "JSON parsing failed, retrying with clarified prompt",
                task=task_name,
                error=str(exc),
                response=response_text[:200],
            )
            first_error = str(exc)

        retry_prompt = build_retry_prompt(
            task_name, instructions, inputs, output_schema, response_text, first_error
        )
        retry_text = self.adapter.generate(retry_prompt).text
        try:
            return parse_response(retry_text)
        except ValueError as exc:
            self.logger.error(
                "Failed to parse neural task response as JSON",
                task=task_name,
                response=retry_text[:200],
                error=str(exc),
            )
            raise NeuralResponseError(task_name, str(exc)) from exc

    def _log_reasoning(self, task_name: str, text: str) -> None:
        blocks = _THINK_BLOCK.findall(text)
        if blocks:
            self.logger.info(
                "LLM thinking captured",
                task=task_name,
                thinking_steps=len(blocks),
                thinking_preview=blocks[0][:_PREVIEW_LENGTH],
            )


__all__ = [
    "LLMNeuralExecutor",
    "build_prompt",
    "build_retry_prompt",
    "parse_response",
    "strip_reasoning",
]
