"""Tests for the completion adapter and system prompt."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import litellm
import pytest

from codeforge_agent import llm as llm_module
from codeforge_agent.errors import CompletionError
from codeforge_agent.llm import LLMAdapter, build_system_prompt


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def fake_completion(monkeypatch):
    mock = MagicMock(return_value=_response("hello"))
    monkeypatch.setattr(llm_module.litellm, "completion", mock)
    return mock


class TestComplete:
    def test_passes_request_fields(self, fake_completion):
        adapter = LLMAdapter(api_base="http://localhost:9999/v1")
        text = adapter.complete([{"role": "user", "content": "hi"}], "llama3-70b-8192", 0.7, "gsk-x")
        assert text == "hello"
        kwargs = fake_completion.call_args.kwargs
        assert kwargs["model"] == "groq/llama3-70b-8192"
        assert kwargs["temperature"] == 0.7
        assert kwargs["api_key"] == "gsk-x"
        assert kwargs["api_base"] == "http://localhost:9999/v1"

    def test_provider_prefix_not_doubled(self):
        assert LLMAdapter().model_string("groq/mistral-saba-24b") == "groq/mistral-saba-24b"

    def test_no_choices(self, fake_completion):
        fake_completion.return_value = SimpleNamespace(choices=[])
        with pytest.raises(CompletionError, match="No response from API"):
            LLMAdapter().complete([], "m", 0.7, "k")

    def test_null_content(self, fake_completion):
        fake_completion.return_value = _response(None)
        with pytest.raises(CompletionError, match="No response from API"):
            LLMAdapter().complete([], "m", 0.7, "k")

    def test_rate_limit_mapped(self, fake_completion):
        fake_completion.side_effect = litellm.exceptions.RateLimitError(
            message="slow down", llm_provider="groq", model="m")
        with pytest.raises(CompletionError) as exc:
            LLMAdapter().complete([], "m", 0.7, "k")
        assert exc.value.rate_limited

    def test_generic_error_detects_quota_text(self, fake_completion):
        fake_completion.side_effect = RuntimeError("monthly quota exhausted")
        with pytest.raises(CompletionError) as exc:
            LLMAdapter().complete([], "m", 0.7, "k")
        assert exc.value.rate_limited
        assert "RuntimeError" in exc.value.message


class TestSystemPrompt:
    def test_bare_prompt(self):
        prompt = build_system_prompt()
        assert "CodeForge" in prompt
        assert "## Available tools:" not in prompt

    def test_with_tools(self, registry):
        prompt = build_system_prompt(registry.describe())
        assert "## Available tools:" in prompt
        assert "- create_file:" in prompt
        assert '<tool_call>{"name": "list_files", "input": {"path": "./"}}</tool_call>' in prompt
