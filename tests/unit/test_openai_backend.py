"""Tests for the OpenAI analysis backend, using an in-process fake client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import OpenAIError

from sibylline_scribe.analysis import IssueKind, OpenAIAnalysisService, prompts
from sibylline_scribe.analysis.spans import Complexity
from sibylline_scribe.errors import AnalysisServiceError, InputValidationError


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_service(config, content=None, error=None, **kwargs):
    completions = FakeCompletions(content, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions), close=AsyncMock())
    service = OpenAIAnalysisService(config=config, client=client, **kwargs)
    return service, completions, client


ISSUES = [
    {"type": "grammar", "start": 3, "end": 7, "suggestion": "went", "explanation": "irregular verb"},
]

METRICS = {
    "wordCount": 4,
    "sentenceCount": 1,
    "averageWordLength": 3.5,
    "averageSentenceLength": 4.0,
    "fleschReadingEase": 85.2,
    "complexity": "easy",
}


class TestProofread:
    @pytest.mark.asyncio
    async def test_returns_spans(self, config):
        service, completions, _ = make_service(config, json.dumps(ISSUES))
        spans = await service.proofread("He goed to school.")

        assert len(spans) == 1
        assert spans[0].kind is IssueKind.GRAMMAR
        assert (spans[0].start, spans[0].end) == (3, 7)

        (call,) = completions.calls
        assert call["model"] == "gpt-4o-mini"
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 2000
        assert call["messages"][0] == {"role": "system", "content": prompts.PROOFREAD_PROMPT}
        assert call["messages"][1] == {"role": "user", "content": "He goed to school."}

    @pytest.mark.asyncio
    async def test_no_issues(self, config):
        service, _, _ = make_service(config, "[]")
        assert await service.proofread("Fine text here.") == []

    @pytest.mark.asyncio
    async def test_payload_in_prose(self, config):
        service, _, _ = make_service(config, f"Sure, here you go: {json.dumps(ISSUES)}")
        assert len(await service.proofread("He goed to school.")) == 1

    @pytest.mark.asyncio
    async def test_malformed_payload(self, config):
        service, _, _ = make_service(config, "I could not find any JSON for you.")
        with pytest.raises(AnalysisServiceError, match="Invalid response format"):
            await service.proofread("He goed to school.")

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self, config):
        error = OpenAIError("rate limited")
        service, _, _ = make_service(config, error=error)
        with pytest.raises(AnalysisServiceError, match="Failed to get response from AI") as info:
            await service.proofread("He goed to school.")
        assert info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, config):
        service, _, _ = make_service(config, error=httpx.ConnectError("refused"))
        with pytest.raises(AnalysisServiceError):
            await service.proofread("He goed to school.")

    @pytest.mark.asyncio
    async def test_empty_response(self, config):
        service, _, _ = make_service(config, "")
        with pytest.raises(AnalysisServiceError, match="Failed to get response from AI"):
            await service.proofread("He goed to school.")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", None, 42])
    async def test_invalid_input_rejected_before_call(self, config, text):
        service, completions, _ = make_service(config, "[]")
        with pytest.raises(InputValidationError, match="Text is required"):
            await service.proofread(text)
        assert completions.calls == []

    @pytest.mark.asyncio
    async def test_length_cap(self, config):
        service, completions, _ = make_service(config, "[]", max_text_length=10)
        with pytest.raises(InputValidationError, match="maximum length"):
            await service.proofread("x" * 11)
        assert completions.calls == []


class TestReadability:
    @pytest.mark.asyncio
    async def test_metrics(self, config):
        service, completions, _ = make_service(config, json.dumps(METRICS))
        metrics = await service.readability("The cat sat down.")
        assert metrics.word_count == 4
        assert metrics.complexity is Complexity.EASY

        (call,) = completions.calls
        assert call["model"] == "gpt-4o-2024-11-20"
        assert call["max_tokens"] == 500
        assert call["messages"][0]["content"] == prompts.READABILITY_PROMPT

    @pytest.mark.asyncio
    async def test_malformed(self, config):
        service, _, _ = make_service(config, '{"wordCount": "many"}')
        with pytest.raises(AnalysisServiceError, match="Invalid response format"):
            await service.readability("The cat sat down.")


class TestRewrite:
    @pytest.mark.asyncio
    async def test_rewrite(self, config):
        service, completions, _ = make_service(config, "  Rewritten text.\n")
        result = await service.rewrite("Original text.", "My sample voice.")
        assert result == "Rewritten text."

        (call,) = completions.calls
        assert call["temperature"] == 0.7
        assert call["messages"][0]["content"] == prompts.REWRITE_PROMPT
        user = call["messages"][1]["content"]
        assert "My sample voice." in user
        assert "Original text." in user

    @pytest.mark.asyncio
    async def test_missing_sample(self, config):
        service, completions, _ = make_service(config, "x")
        with pytest.raises(InputValidationError, match="Writing sample is required"):
            await service.rewrite("Original text.", "")
        assert completions.calls == []


class TestLifecycle:
    def test_name(self):
        assert OpenAIAnalysisService.name() == "openai"

    def test_kwargs_override_config(self, config):
        service, _, _ = make_service(config, model="custom-model")
        assert service._model == "custom-model"
        assert service._readability_model == "gpt-4o-2024-11-20"

    @pytest.mark.asyncio
    async def test_aclose(self, config):
        service, _, client = make_service(config)
        await service.aclose()
        client.close.assert_awaited_once()
