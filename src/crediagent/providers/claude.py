"""Anthropic Claude SDK provider implementation.

This module provides the ClaudeProvider class for invoking Claude models
with tool-based structured output: the schema becomes the input schema of
a forced ``emit_output`` tool, and the tool call's input is the result.
When Claude answers with text instead, JSON is parsed from the text.
"""

from __future__ import annotations

import logging
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from crediagent.exceptions import SchemaValidationError
from crediagent.executor.output import parse_json_output
from crediagent.providers.base import (
    InvocationSettings,
    Message,
    ModelProvider,
    object_schema_for,
    unwrap_result,
)

logger = logging.getLogger(__name__)

EMIT_OUTPUT_TOOL = "emit_output"


class ClaudeProvider(ModelProvider):
    """Anthropic Claude SDK provider.

    Example:
        >>> provider = ClaudeProvider(api_key="sk-ant-...")
        >>> text = await provider.invoke(
        ...     [{"role": "user", "content": "Hi"}],
        ...     InvocationSettings("claude-3-haiku-20240307", 0.2, 1000),
        ... )
        >>> await provider.close()
    """

    def __init__(self, api_key: str | None = None, timeout: float = 600.0) -> None:
        """Initialize the Claude provider.

        Args:
            api_key: Anthropic API key. If None, uses ANTHROPIC_API_KEY env var.
            timeout: SDK-level request timeout in seconds.
        """
        self._client: AsyncAnthropic | None = AsyncAnthropic(api_key=api_key, timeout=timeout)
        sdk_version = getattr(anthropic, "__version__", "unknown")
        logger.debug(f"Initialized Claude provider with SDK version {sdk_version}")

    async def invoke(self, messages: list[Message], settings: InvocationSettings) -> str:
        """Send messages and return the concatenated text blocks."""
        response = await self._create(messages, settings)
        return self._extract_text(response)

    async def invoke_structured(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        """Invoke Claude with a forced emit_output tool built from the schema.

        Raises:
            SchemaValidationError: If neither a tool call nor JSON text was returned.
        """
        input_schema, wrapped = object_schema_for(schema)
        tools = [
            {
                "name": EMIT_OUTPUT_TOOL,
                "description": "Emit the structured output for this task",
                "input_schema": input_schema,
            }
        ]

        request_messages = [dict(m) for m in messages]
        request_messages[-1]["content"] += (
            f"\n\nPlease use the '{EMIT_OUTPUT_TOOL}' tool to return your response "
            "in the required structured format."
        )

        response = await self._create(
            request_messages,
            settings,
            tools=tools,
            tool_choice={"type": "tool", "name": EMIT_OUTPUT_TOOL},
        )

        content = self._extract_structured_output(response)
        if content is not None:
            logger.debug("Extracted structured output from tool_use block")
            return unwrap_result(content, wrapped)

        text = self._extract_text(response)
        try:
            content = parse_json_output(text)
        except SchemaValidationError as e:
            raise SchemaValidationError(
                f"Claude returned neither an {EMIT_OUTPUT_TOOL} call nor valid JSON: {e.message}",
                suggestion="Ensure the prompt asks for the emit_output tool",
            ) from e

        logger.info("Claude returned text instead of tool_use, but JSON extraction succeeded")
        return unwrap_result(content, wrapped)

    async def close(self) -> None:
        """Release provider resources and close connections."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.debug("Claude provider closed")

    async def _create(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        **extra: Any,
    ) -> Any:
        """Execute a non-streaming messages.create call."""
        if self._client is None:
            raise RuntimeError("Claude client is closed")

        logger.debug(
            f"Executing Claude API call: model={settings.model}, "
            f"max_tokens={settings.max_tokens}, temperature={settings.temperature}"
        )
        return await self._client.messages.create(
            model=settings.model,
            messages=messages,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            **extra,
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Join all text blocks of a response."""
        text_parts = [
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        ]
        return "\n".join(text_parts)

    @staticmethod
    def _extract_structured_output(response: Any) -> dict[str, Any] | None:
        """Return the emit_output tool input, or None if no such block exists."""
        for block in response.content:
            is_tool_use = getattr(block, "type", None) == "tool_use"
            if is_tool_use and block.name == EMIT_OUTPUT_TOOL:
                return dict(block.input)
        return None
