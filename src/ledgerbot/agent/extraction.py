"""Entry extraction from free-text chat messages.

:class:`EntryExtractor` turns a message into an :class:`ExtractionResult`
by asking an :class:`~ledgerbot.agent.llm_client.LLMClient` for JSON that
matches a schema built from the group's current categories.

This is the only place where the external model can fail.  Every failure
(transport error, non-JSON answer, schema violation, category outside the
vocabulary) is logged and turned into :meth:`ExtractionResult.not_accounting`.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ledgerbot.agent.llm_client import JsonSchema, LLMClient
from ledgerbot.agent.prompts import format_extraction_prompt

logger = logging.getLogger(__name__)

SCHEMA_NAME = "record_entries"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class Entry(BaseModel):
    """One extracted, not yet saved, transaction candidate."""

    model_config = ConfigDict(populate_by_name=True)

    item: str
    amount: Decimal = Field(gt=0)
    parent_category: str = Field(alias="parentCategory")
    sub_category: str = Field(default="", alias="subCategory")
    payer: str = "self"
    kind: Literal["expense", "income"] = "expense"
    entry_date: date = Field(alias="date")

    @field_validator("parent_category")
    @classmethod
    def category_in_vocabulary(cls, v: str, info: ValidationInfo) -> str:
        categories = (info.context or {}).get("categories")
        if categories is not None and v not in categories:
            raise ValueError(f"category {v!r} is not one of {categories}")
        return v

    @field_validator("entry_date", mode="before")
    @classmethod
    def iso_day_only(cls, v: Any) -> Any:
        if isinstance(v, str) and not _DATE_RE.match(v.strip()):
            raise ValueError(f"date {v!r} is not in YYYY-MM-DD format")
        return v.strip() if isinstance(v, str) else v


class ExtractionResult(BaseModel):
    """Structured answer of the extraction step."""

    model_config = ConfigDict(populate_by_name=True)

    is_accounting: bool = Field(alias="isAccounting")
    entries: list[Entry] = Field(default_factory=list)

    @classmethod
    def not_accounting(cls) -> ExtractionResult:
        """The deterministic result used whenever extraction fails."""
        return cls(is_accounting=False, entries=[])

    @property
    def has_entries(self) -> bool:
        return self.is_accounting and bool(self.entries)


def build_extraction_schema(categories: list[str]) -> JsonSchema:
    """Build the JSON Schema the model must answer with.

    ``parentCategory`` is an enum over *categories*, so the vocabulary is
    enforced at generation time.  All object properties are required and
    closed, which also satisfies OpenAI strict mode.
    """
    entry_schema: JsonSchema = {
        "type": "object",
        "properties": {
            "item": {"type": "string", "description": "What was bought or received."},
            "amount": {"type": "number", "description": "Positive amount."},
            "parentCategory": {"type": "string", "enum": list(categories)},
            "subCategory": {"type": "string"},
            "payer": {
                "type": "string",
                "description": "Payer name, or 'self' when the author paid.",
            },
            "kind": {"type": "string", "enum": ["expense", "income"]},
            "date": {"type": "string", "description": "Transaction date, YYYY-MM-DD."},
        },
        "required": ["item", "amount", "parentCategory", "subCategory", "payer", "kind", "date"],
        "additionalProperties": False,
    }
    return {
        "type": "object",
        "properties": {
            "isAccounting": {"type": "boolean"},
            "entries": {"type": "array", "items": entry_schema},
        },
        "required": ["isAccounting", "entries"],
        "additionalProperties": False,
    }


def parse_extraction(raw: str, categories: list[str]) -> ExtractionResult:
    """Parse and validate the model's JSON text.

    Markdown code fences around the JSON are tolerated.

    Raises:
        ValueError: If *raw* is not JSON or does not match the schema
            (``pydantic.ValidationError`` is a ``ValueError``).
    """
    text = _FENCE_RE.sub("", raw.strip())
    data = json.loads(text)
    return ExtractionResult.model_validate(data, context={"categories": categories})


class EntryExtractor:
    """Extraction client adapter around a shared :class:`LLMClient`.

    Args:
        llm_client: Client used for the schema-constrained call.
    """

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm = llm_client

    async def extract(
        self,
        text: str,
        *,
        categories: list[str],
        nicknames: list[str],
        today: date,
    ) -> ExtractionResult:
        """Extract ledger entries from *text*.

        Args:
            text: The chat message.
            categories: The group's category vocabulary, read at call time.
            nicknames: Nicknames registered in the group.
            today: Reference date for relative date terms.

        Returns:
            The validated result, or ``ExtractionResult.not_accounting()``
            on any failure.  Never raises.
        """
        prompt = format_extraction_prompt(
            message=text,
            categories=categories,
            nicknames=nicknames,
            today=today.isoformat(),
            weekday=today.strftime("%A"),
        )
        schema = build_extraction_schema(categories)

        try:
            response = await self._llm.generate_json(prompt, schema, schema_name=SCHEMA_NAME)
            logger.debug(
                "Extraction answered by %s/%s in %sms",
                response.provider,
                response.model,
                response.latency_ms,
            )
            result = parse_extraction(response.content, categories)
        except Exception:
            logger.exception("Entry extraction failed for message: %s", text[:100])
            return ExtractionResult.not_accounting()

        logger.info(
            "Extraction result: is_accounting=%s, entries=%d",
            result.is_accounting,
            len(result.entries),
        )
        return result
