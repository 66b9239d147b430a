from __future__ import annotations

import pytest

from langop_agent.contracts.task import define
from langop_agent.enums import TypeTag
from langop_agent.errors import NeuralResponseError
from langop_agent.models.llm_adapter import StaticAdapter
from langop_agent.runtime.neural import (
    LLMNeuralExecutor,
    build_prompt,
    parse_response,
    strip_reasoning,
)
from langop_agent.utilities.logger_manager import CustomLogger


def test_prompt_lists_inputs_and_output_schema() -> None:
    prompt = build_prompt(
        "summarize", "Summarize it", {"text": "abc"}, {"summary": TypeTag.STRING}
    )
    assert prompt.startswith("# Task: summarize\n")
    assert "## Instructions\nSummarize it" in prompt
    assert "- text: 'abc'" in prompt
    assert "- summary (string)" in prompt


@pytest.mark.parametrize(
    ("reply", "expected"),
    [
        ('{"a": 1}', {"a": 1}),
        ('[THINK]reasoning here[/THINK]\n{"a": 2}', {"a": 2}),
        ('[THINK]unclosed reasoning {"a": 3}', {"a": 3}),
        ('Here you go:\n```json\n{"a": 4}\n```', {"a": 4}),
        ('prefix text {"a": {"nested": true}} suffix', {"a": {"nested": True}}),
    ],
)
def test_parse_response_extracts_json_object(reply: str, expected: dict) -> None:
    assert parse_response(reply) == expected


@pytest.mark.parametrize("reply", ["no json here", "[1, 2]", '{"a": '])
def test_parse_response_rejects_non_objects(reply: str) -> None:
    with pytest.raises(ValueError):
        parse_response(reply)


def test_strip_reasoning_removes_closed_blocks() -> None:
    assert strip_reasoning("[THINK]x[/THINK]answer") == "answer"


def test_executor_returns_parsed_outputs(logger: CustomLogger) -> None:
    adapter = StaticAdapter(responses=['[THINK]ok[/THINK]{"score": 0.9}'])
    executor = LLMNeuralExecutor(adapter, logger)
    result = executor("Rate", {"text": "t"}, {"score": TypeTag.NUMBER}, task_name="rate")
    assert result == {"score": 0.9}
    assert len(adapter.prompts) == 1


def test_executor_retries_once_with_clarified_prompt(logger: CustomLogger, log_records) -> None:
    adapter = StaticAdapter(responses=["not json at all", '{"score": 1}'])
    executor = LLMNeuralExecutor(adapter, logger)
    result = executor("Rate", {}, {"score": TypeTag.NUMBER}, task_name="rate")

    assert result == {"score": 1}
    assert len(adapter.prompts) == 2
    assert "(RETRY - JSON Parsing Failed)" in adapter.prompts[1]
    assert "not json at all" in adapter.prompts[1]
    assert "JSON parsing failed, retrying with clarified prompt" in log_records.messages()


def test_executor_raises_after_second_failure(logger: CustomLogger) -> None:
    adapter = StaticAdapter(responses=["nope", "still nope", '{"score": 1}'])
    executor = LLMNeuralExecutor(adapter, logger)
    with pytest.raises(NeuralResponseError, match="Task 'rate' returned invalid JSON"):
        executor("Rate", {}, {"score": TypeTag.NUMBER}, task_name="rate")
    assert len(adapter.prompts) == 2


def test_contract_validates_neural_outputs(logger: CustomLogger) -> None:
    adapter = StaticAdapter(responses=['{"count": "12", "note": "extra"}'])
    contract = define("count", {"text": "string"}, {"count": "integer"}, instructions="Count")
    outputs = contract.invoke({"text": "a b"}, neural_executor=LLMNeuralExecutor(adapter, logger))
    assert outputs == {"count": 12, "note": "extra"}
