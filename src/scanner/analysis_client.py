"""Analysis service clients.

The scanner treats the language model as an opaque request/response
boundary: given a prompt, return text (or JSON text) plus any web citations
the service attached. Two providers are supported; tests inject fakes that
satisfy the same ``AnalysisClient`` protocol.

Usage:
    client = create_analysis_client()
    response = await client.generate(prompt, grounded=True)
    print(response.text, response.sources)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.common.config import (
    LLMSettings,
    Settings,
    get_anthropic_api_key,
    get_openai_api_key,
    settings as default_settings,
)
from src.common.models import GroundingSource

from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResponse:
    """Text answer plus citations, in the order the service returned them."""

    text: str
    sources: list[GroundingSource] = field(default_factory=list)


class AnalysisClient(Protocol):
    """Anything that can answer a prompt, optionally grounded in web search."""

    async def generate(
        self,
        prompt: str,
        *,
        grounded: bool = False,
        response_schema: dict | None = None,
    ) -> AnalysisResponse:
        ...


class OpenAIAnalysisClient:
    """OpenAI chat-completions client.

    Grounded requests go to the search-enabled model; citations are read
    from the message's ``url_citation`` annotations.
    """

    def __init__(self, api_key: str | None = None, llm: LLMSettings | None = None) -> None:
        self.api_key = api_key or get_openai_api_key()
        self.llm = llm or default_settings.llm
        self._client = None

    def _get_client(self):
        """Lazy-initialize the OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        grounded: bool = False,
        response_schema: dict | None = None,
    ) -> AnalysisResponse:
        kwargs: dict[str, Any] = {
            "model": self.llm.openai_search_model if grounded else self.llm.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.llm.max_tokens,
        }
        if grounded:
            # Search models reject sampling parameters
            kwargs["web_search_options"] = {}
        else:
            kwargs["temperature"] = self.llm.temperature
        if response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "market_scan", "schema": response_schema},
            }

        response = await self._get_client().chat.completions.create(**kwargs)
        message = response.choices[0].message
        return AnalysisResponse(
            text=message.content or "",
            sources=self._extract_citations(message),
        )

    @staticmethod
    def _extract_citations(message: Any) -> list[GroundingSource]:
        sources: list[GroundingSource] = []
        for annotation in getattr(message, "annotations", None) or []:
            if getattr(annotation, "type", None) != "url_citation":
                continue
            citation = annotation.url_citation
            if not getattr(citation, "url", None):
                continue
            sources.append(
                GroundingSource(title=getattr(citation, "title", None) or "", uri=citation.url)
            )
        return sources


class AnthropicAnalysisClient:
    """Anthropic messages client.

    Grounded requests enable the server-side web search tool; citations are
    read from the text blocks. The answer is the text after the last tool
    block. JSON requests append the schema to the prompt
    since the messages API has no JSON response mode.
    """

    def __init__(self, api_key: str | None = None, llm: LLMSettings | None = None) -> None:
        self.api_key = api_key or get_anthropic_api_key()
        self.llm = llm or default_settings.llm
        self._client = None

    def _get_client(self):
        """Lazy-initialize the Anthropic client."""
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        grounded: bool = False,
        response_schema: dict | None = None,
    ) -> AnalysisResponse:
        if response_schema is not None:
            prompt = (
                f"{prompt}\n\nRespond with ONLY a valid JSON object matching this "
                f"schema, no markdown formatting:\n{json.dumps(response_schema)}"
            )

        kwargs: dict[str, Any] = {
            "model": self.llm.anthropic_model,
            "max_tokens": self.llm.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        if grounded:
            kwargs["tools"] = [{
                "type": "web_search_20250305",
                "name": "web_search",
                "max_uses": self.llm.web_search_max_uses,
            }]
        else:
            kwargs["temperature"] = self.llm.temperature

        response = await self._get_client().messages.create(**kwargs)

        texts: list[str] = []
        sources: list[GroundingSource] = []
        for block in response.content:
            if getattr(block, "type", None) != "text":
                # Text before a tool call or search result is narration, not the answer
                texts = []
                continue
            texts.append(block.text)
            for citation in getattr(block, "citations", None) or []:
                url = getattr(citation, "url", None)
                if url:
                    sources.append(
                        GroundingSource(title=getattr(citation, "title", None) or "", uri=url)
                    )
        return AnalysisResponse(text="".join(texts), sources=sources)


def create_analysis_client(config: Settings | None = None) -> AnalysisClient:
    """Build the client for the configured provider.

    Raises:
        ValueError: Unknown provider or the provider's API key is not set.
    """
    config = config or default_settings
    provider = config.llm.provider.lower()
    if provider == "openai":
        return OpenAIAnalysisClient(llm=config.llm)
    if provider == "anthropic":
        return AnthropicAnalysisClient(llm=config.llm)
    raise ValueError(f"Unknown LLM provider: {config.llm.provider}")
