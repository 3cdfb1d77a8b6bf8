"""Google Gemini provider implementation using the google-genai SDK.

Structured output requests ``application/json`` responses constrained by
the schema; the response text is decoded as JSON.
"""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types
from pydantic_core import to_jsonable_python

from crediagent.executor.output import parse_json_output
from crediagent.providers.base import InvocationSettings, Message, ModelProvider

logger = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


class GeminiProvider(ModelProvider):
    """Gemini provider using the async surface of ``genai.Client``."""

    def __init__(self, api_key: str | None = None) -> None:
        """Initialize the Gemini provider.

        Args:
            api_key: Gemini API key. If None, the SDK reads GEMINI_API_KEY / GOOGLE_API_KEY.
        """
        self._client: genai.Client | None = genai.Client(api_key=api_key)

    async def invoke(self, messages: list[Message], settings: InvocationSettings) -> str:
        """Send messages and return the response text."""
        response = await self._generate(
            messages,
            types.GenerateContentConfig(
                temperature=settings.temperature,
                max_output_tokens=settings.max_tokens,
            ),
            settings,
        )
        return response.text or ""

    async def invoke_structured(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        """Invoke with a JSON response MIME type and schema.

        Uses the SDK-parsed value when present, otherwise decodes the text.
        """
        response = await self._generate(
            messages,
            types.GenerateContentConfig(
                temperature=settings.temperature,
                max_output_tokens=settings.max_tokens,
                response_mime_type="application/json",
                response_schema=schema,
            ),
            settings,
        )
        parsed = getattr(response, "parsed", None)
        if parsed is not None:
            return to_jsonable_python(parsed)
        return parse_json_output(response.text or "")

    async def close(self) -> None:
        """Release provider resources."""
        if self._client is not None:
            aclose = getattr(self._client.aio, "aclose", None)
            if aclose is not None:
                await aclose()
            self._client = None
            logger.debug("Gemini provider closed")

    async def _generate(
        self,
        messages: list[Message],
        config: types.GenerateContentConfig,
        settings: InvocationSettings,
    ) -> Any:
        if self._client is None:
            raise RuntimeError("Gemini client is closed")

        logger.debug(f"Executing Gemini API call: model={settings.model}")
        return await self._client.aio.models.generate_content(
            model=settings.model,
            contents=self._build_contents(messages),
            config=config,
        )

    @staticmethod
    def _build_contents(messages: list[Message]) -> list[dict[str, Any]]:
        """Translate role/content messages into Gemini content dicts."""
        return [
            {
                "role": _ROLE_MAP.get(message["role"], "user"),
                "parts": [{"text": message["content"]}],
            }
            for message in messages
        ]
