"""OpenAI SDK provider implementation.

Structured output uses the chat completions ``json_schema`` response
format; the message content is then decoded as JSON.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI

from crediagent.executor.output import parse_json_output, schema_name
from crediagent.providers.base import (
    InvocationSettings,
    Message,
    ModelProvider,
    object_schema_for,
    unwrap_result,
)

logger = logging.getLogger(__name__)

# Reasoning models reject temperature and use max_completion_tokens
REASONING_MODEL_PREFIXES = ("o1",)


class OpenAIProvider(ModelProvider):
    """OpenAI chat completions provider."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 600.0,
    ) -> None:
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. If None, uses OPENAI_API_KEY env var.
            base_url: Optional alternative API base URL.
            timeout: SDK-level request timeout in seconds.
        """
        kwargs: dict[str, Any] = {"api_key": api_key, "timeout": timeout}
        if base_url:
            kwargs["base_url"] = base_url
        self._client: AsyncOpenAI | None = AsyncOpenAI(**kwargs)

    async def invoke(self, messages: list[Message], settings: InvocationSettings) -> str:
        """Send messages and return the first choice's content."""
        response = await self._create(messages, settings)
        return response.choices[0].message.content or ""

    async def invoke_structured(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        """Invoke with a JSON-schema response format and decode the content."""
        json_schema, wrapped = object_schema_for(schema)
        response = await self._create(
            messages,
            settings,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name(schema),
                    "schema": json_schema,
                    "strict": False,
                },
            },
        )
        content = response.choices[0].message.content or ""
        return unwrap_result(parse_json_output(content), wrapped)

    async def close(self) -> None:
        """Release provider resources and close connections."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.debug("OpenAI provider closed")

    async def _create(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        **extra: Any,
    ) -> Any:
        if self._client is None:
            raise RuntimeError("OpenAI client is closed")

        kwargs: dict[str, Any] = {"model": settings.model, "messages": messages, **extra}
        if settings.model.startswith(REASONING_MODEL_PREFIXES):
            kwargs["max_completion_tokens"] = settings.max_tokens
        else:
            kwargs["max_tokens"] = settings.max_tokens
            kwargs["temperature"] = settings.temperature

        logger.debug(f"Executing OpenAI API call: model={settings.model}")
        return await self._client.chat.completions.create(**kwargs)
