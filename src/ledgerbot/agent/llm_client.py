"""Schema-constrained LLM clients.

A client answers one prompt with JSON text that must satisfy a JSON Schema
supplied by the caller.  Each provider has its own native mechanism:

- :class:`OllamaLLMClient` — structured outputs via ``format=<schema>``
- :class:`PaidLLMClient` — OpenAI ``json_schema`` response format (strict),
  or an Anthropic tool call forced with ``tool_choice``
- :class:`FallbackLLMClient` — local model first, paid provider on failure

Clients only hold configuration.  One instance is built at startup and
shared by every message.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from ledgerbot.config import settings

logger = logging.getLogger(__name__)

JsonSchema = dict[str, Any]


class LLMResponse(BaseModel):
    """JSON text produced by one structured-output call, plus usage data."""

    content: str = ""
    provider: str = ""
    model: str = ""
    input_tokens: int | None = None
    output_tokens: int | None = None
    latency_ms: int | None = None


@runtime_checkable
class LLMClient(Protocol):
    async def generate_json(
        self,
        prompt: str,
        schema: JsonSchema,
        *,
        schema_name: str,
    ) -> LLMResponse:
        """Ask the model for a JSON document matching *schema*.

        Args:
            prompt: The full instruction, sent as a single user message.
            schema: JSON Schema the answer must satisfy.
            schema_name: Identifier used where a provider wants the schema
                (or tool) to be named.
        """
        ...


def _elapsed_ms(started: float) -> int:
    return round((time.monotonic() - started) * 1000)


# ── Local model ───────────────────────────────────────────────────────────────


class OllamaLLMClient:
    """Local model served by Ollama (``settings.ollama_*`` by default)."""

    provider = "ollama"

    def __init__(self, base_url: str | None = None, model: str | None = None) -> None:
        self.base_url = base_url or settings.ollama_base_url
        self.model = model or settings.ollama_model

    async def generate_json(
        self,
        prompt: str,
        schema: JsonSchema,
        *,
        schema_name: str,
    ) -> LLMResponse:
        import ollama

        started = time.monotonic()
        response = await ollama.AsyncClient(host=self.base_url).chat(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            format=schema,
            options={"temperature": 0},
        )
        message = response.get("message") or {}
        return LLMResponse(
            content=message.get("content") or "",
            provider=self.provider,
            model=self.model,
            input_tokens=response.get("prompt_eval_count"),
            output_tokens=response.get("eval_count"),
            latency_ms=_elapsed_ms(started),
        )


# ── Paid providers ────────────────────────────────────────────────────────────


class PaidLLMClient:
    """OpenAI or Anthropic, chosen by ``settings.fallback_llm_provider``."""

    def __init__(self, provider: str | None = None, model: str | None = None) -> None:
        self.provider = provider or settings.fallback_llm_provider
        self.model = model or settings.fallback_llm_model

    async def generate_json(
        self,
        prompt: str,
        schema: JsonSchema,
        *,
        schema_name: str,
    ) -> LLMResponse:
        call = {"openai": self._call_openai, "anthropic": self._call_anthropic}.get(self.provider)
        if call is None:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

        started = time.monotonic()
        response = await call(prompt, schema, schema_name)
        response.latency_ms = _elapsed_ms(started)
        return response

    async def _call_openai(self, prompt: str, schema: JsonSchema, schema_name: str) -> LLMResponse:
        import openai

        client = openai.AsyncOpenAI(api_key=settings.openai_api_key)
        completion = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema, "strict": True},
            },
        )
        usage = completion.usage
        return LLMResponse(
            content=completion.choices[0].message.content or "",
            provider="openai",
            model=self.model,
            input_tokens=usage.prompt_tokens if usage else None,
            output_tokens=usage.completion_tokens if usage else None,
        )

    async def _call_anthropic(
        self,
        prompt: str,
        schema: JsonSchema,
        schema_name: str,
    ) -> LLMResponse:
        """The forced tool's input *is* the structured answer."""
        import anthropic

        client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        message = await client.messages.create(
            model=self.model,
            max_tokens=2048,
            messages=[{"role": "user", "content": prompt}],
            tools=[
                {
                    "name": schema_name,
                    "description": "Submit the structured answer.",
                    "input_schema": schema,
                }
            ],
            tool_choice={"type": "tool", "name": schema_name},
        )
        tool_input = next(
            (b.input for b in message.content if b.type == "tool_use" and b.name == schema_name),
            None,
        )
        return LLMResponse(
            content=json.dumps(tool_input) if tool_input is not None else "",
            provider="anthropic",
            model=self.model,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )


# ── Fallback ──────────────────────────────────────────────────────────────────


class FallbackLLMClient:
    """Try the local model; on any error ask the paid provider instead.

    If the paid provider fails too, its exception propagates.
    """

    def __init__(
        self,
        primary: LLMClient | None = None,
        fallback: LLMClient | None = None,
    ) -> None:
        self._primary = primary or OllamaLLMClient()
        self._fallback = fallback or PaidLLMClient()

    async def generate_json(
        self,
        prompt: str,
        schema: JsonSchema,
        *,
        schema_name: str,
    ) -> LLMResponse:
        try:
            return await self._primary.generate_json(prompt, schema, schema_name=schema_name)
        except Exception as exc:
            logger.warning("Primary model failed (%s: %s), using fallback", type(exc).__name__, exc)

        try:
            response = await self._fallback.generate_json(prompt, schema, schema_name=schema_name)
        except Exception as exc:
            logger.error("Fallback model failed as well: %s", exc)
            raise

        response.provider = f"{response.provider} (fallback)"
        logger.info("Fallback %s answered in %sms", response.model, response.latency_ms)
        return response
