"""
Tests for ai_client.py - provider dispatch and response helpers.
"""

import json
from types import SimpleNamespace

import pytest

from core.ai_client import (
    AIClient,
    AIProvider,
    COLUMNS_SYSTEM_PROMPT,
    OPTIONS_SYSTEM_PROMPT,
    parse_json_content,
    strip_code_fence,
)


class FakeChatCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            model=kwargs["model"],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=5),
        )


class FakeMessages:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            content=[SimpleNamespace(text=self.content)],
            model=kwargs["model"],
            usage=SimpleNamespace(input_tokens=2, output_tokens=4),
        )


class TestAIClient:

    def test_openai_analyze_instructions(self):
        completions = FakeChatCompletions('[]')
        sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        client = AIClient(provider="openai", client=sdk)

        response = client.analyze_instructions("Оценить участие")

        call = completions.calls[0]
        assert call["model"] == "gpt-4"
        assert call["messages"][0] == {"role": "system", "content": COLUMNS_SYSTEM_PROMPT}
        assert "Оценить участие" in call["messages"][1]["content"]
        assert response.content == '[]'
        assert response.usage == {"input_tokens": 3, "output_tokens": 5}

    def test_claude_options(self):
        messages = FakeMessages('["a"]')
        client = AIClient(provider="anthropic", client=SimpleNamespace(messages=messages))

        response = client.generate_column_options("Активность", "уровень активности")

        call = messages.calls[0]
        assert client.provider == AIProvider.CLAUDE
        assert call["system"] == OPTIONS_SYSTEM_PROMPT
        assert call["max_tokens"] == 500
        assert "Активность" in call["messages"][0]["content"][0]["text"]
        assert response.provider == "claude"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            AIClient(provider="gemini", client=object())

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            AIClient(provider="openai")


class TestJsonHelpers:

    def test_strip_code_fence(self):
        assert strip_code_fence('```json\n[1]\n```') == '[1]'
        assert strip_code_fence('  [1] ') == '[1]'
        assert strip_code_fence(None) == ''

    def test_parse_json_content(self):
        assert parse_json_content('```\n{"a": 1}\n```') == {"a": 1}
        with pytest.raises(json.JSONDecodeError):
            parse_json_content("nope")
