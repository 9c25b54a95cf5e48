"""Tests for the schema-constrained LLM clients.

Tests cover:
- OllamaLLMClient with a mocked Ollama async client
- PaidLLMClient with mocked Anthropic and OpenAI SDKs
- FallbackLLMClient composite behavior (primary → fallback)
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ledgerbot.agent.llm_client import (
    FallbackLLMClient,
    LLMResponse,
    OllamaLLMClient,
    PaidLLMClient,
)

SCHEMA = {
    "type": "object",
    "properties": {"isAccounting": {"type": "boolean"}},
    "required": ["isAccounting"],
    "additionalProperties": False,
}


def test_llm_response_defaults() -> None:
    resp = LLMResponse()
    assert resp.content == ""
    assert resp.input_tokens is None
    assert resp.provider == ""


# ── OllamaLLMClient tests ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ollama_client_passes_schema_as_format() -> None:
    mock_response = {
        "message": {"content": '{"isAccounting": false}'},
        "prompt_eval_count": 50,
        "eval_count": 20,
    }

    with patch("ollama.AsyncClient") as mock_ollama_cls:
        instance = AsyncMock()
        instance.chat = AsyncMock(return_value=mock_response)
        mock_ollama_cls.return_value = instance

        client = OllamaLLMClient(base_url="http://test:11434", model="test-model")
        result = await client.generate_json("hello", SCHEMA, schema_name="record_entries")

    kwargs = instance.chat.call_args.kwargs
    assert kwargs["format"] == SCHEMA
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert kwargs["options"] == {"temperature": 0}
    mock_ollama_cls.assert_called_once_with(host="http://test:11434")

    assert result.content == '{"isAccounting": false}'
    assert result.input_tokens == 50
    assert result.output_tokens == 20
    assert result.provider == "ollama"
    assert result.latency_ms is not None


# ── PaidLLMClient tests ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_paid_client_anthropic_forces_tool() -> None:
    """The forced tool's input is returned as the JSON content."""
    mock_tool_block = MagicMock()
    mock_tool_block.type = "tool_use"
    mock_tool_block.name = "record_entries"
    mock_tool_block.input = {"isAccounting": True, "entries": []}

    mock_response = MagicMock()
    mock_response.content = [mock_tool_block]
    mock_response.usage.input_tokens = 100
    mock_response.usage.output_tokens = 40

    with patch("anthropic.AsyncAnthropic") as mock_anthropic_cls:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)
        mock_anthropic_cls.return_value = mock_client

        client = PaidLLMClient(provider="anthropic", model="claude-3-5-haiku-latest")
        result = await client.generate_json("lunch 50", SCHEMA, schema_name="record_entries")

    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["tool_choice"] == {"type": "tool", "name": "record_entries"}
    assert kwargs["tools"][0]["input_schema"] == SCHEMA
    assert json.loads(result.content) == {"isAccounting": True, "entries": []}
    assert result.provider == "anthropic"
    assert result.input_tokens == 100


@pytest.mark.asyncio
async def test_paid_client_openai_strict_json_schema() -> None:
    mock_choice = MagicMock()
    mock_choice.message.content = '{"isAccounting": false}'

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage.prompt_tokens = 60
    mock_response.usage.completion_tokens = 10

    with patch("openai.AsyncOpenAI") as mock_openai_cls:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
        mock_openai_cls.return_value = mock_client

        client = PaidLLMClient(provider="openai", model="gpt-4o-mini")
        result = await client.generate_json("hello", SCHEMA, schema_name="record_entries")

    response_format = mock_client.chat.completions.create.call_args.kwargs["response_format"]
    assert response_format["type"] == "json_schema"
    assert response_format["json_schema"] == {
        "name": "record_entries",
        "schema": SCHEMA,
        "strict": True,
    }
    assert result.content == '{"isAccounting": false}'
    assert result.input_tokens == 60
    assert result.output_tokens == 10
    assert result.provider == "openai"


@pytest.mark.asyncio
async def test_paid_client_unknown_provider_raises() -> None:
    client = PaidLLMClient(provider="unknown", model="test")

    with pytest.raises(ValueError, match="Unknown LLM provider"):
        await client.generate_json("hi", SCHEMA, schema_name="record_entries")


# ── FallbackLLMClient tests ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fallback_uses_primary_on_success() -> None:
    primary = AsyncMock()
    primary.generate_json = AsyncMock(
        return_value=LLMResponse(content="{}", provider="ollama", model="test")
    )
    fallback = AsyncMock()
    fallback.generate_json = AsyncMock()

    client = FallbackLLMClient(primary=primary, fallback=fallback)
    result = await client.generate_json("hello", SCHEMA, schema_name="record_entries")

    assert result.provider == "ollama"
    primary.generate_json.assert_called_once_with("hello", SCHEMA, schema_name="record_entries")
    fallback.generate_json.assert_not_called()


@pytest.mark.asyncio
async def test_fallback_uses_fallback_on_primary_failure() -> None:
    primary = AsyncMock()
    primary.generate_json = AsyncMock(side_effect=ConnectionError("Ollama down"))
    fallback = AsyncMock()
    fallback.generate_json = AsyncMock(
        return_value=LLMResponse(content="{}", provider="openai", model="gpt-4o-mini")
    )

    client = FallbackLLMClient(primary=primary, fallback=fallback)
    result = await client.generate_json("hello", SCHEMA, schema_name="record_entries")

    assert result.provider == "openai (fallback)"
    fallback.generate_json.assert_called_once()


@pytest.mark.asyncio
async def test_fallback_raises_when_both_fail() -> None:
    primary = AsyncMock()
    primary.generate_json = AsyncMock(side_effect=ConnectionError("Ollama down"))
    fallback = AsyncMock()
    fallback.generate_json = AsyncMock(side_effect=RuntimeError("API error"))

    client = FallbackLLMClient(primary=primary, fallback=fallback)

    with pytest.raises(RuntimeError, match="API error"):
        await client.generate_json("hello", SCHEMA, schema_name="record_entries")
