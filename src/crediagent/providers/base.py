"""Abstract base class for model providers.

This module defines the ModelProvider ABC and the InvocationSettings
dataclass that all provider integrations use, so that every provider
family exposes the same uniform call surface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from crediagent.executor.output import json_schema_for

Message = dict[str, str]

WRAPPED_RESULT_KEY = "result"


@dataclass(frozen=True)
class InvocationSettings:
    """Resolved sampling parameters for one provider call.

    Attributes:
        model: Provider model identifier.
        temperature: Sampling temperature.
        max_tokens: Maximum output tokens.
    """

    model: str
    temperature: float
    max_tokens: int


class ModelProvider(ABC):
    """Abstract base class for provider integrations.

    Providers translate the uniform message list into a specific SDK call
    and return either plain text or the decoded structured value.

    Implementations must provide:
    - invoke(): Send messages and return the text response
    - invoke_structured(): Send messages and return a decoded value shaped by a schema
    - close(): Clean up resources

    Example:
        >>> class EchoProvider(ModelProvider):
        ...     async def invoke(self, messages, settings):
        ...         return messages[-1]["content"]
        ...     async def invoke_structured(self, messages, settings, schema):
        ...         return {}
        ...     async def close(self):
        ...         pass
    """

    @abstractmethod
    async def invoke(self, messages: list[Message], settings: InvocationSettings) -> str:
        """Send messages and return the model's text response.

        Raises:
            Exception: Any SDK error; the invoker wraps it.
        """
        ...

    @abstractmethod
    async def invoke_structured(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        """Send messages using the provider's native structured output.

        Returns the decoded (not yet validated) value.

        Raises:
            SchemaValidationError: If no JSON value could be decoded.
            Exception: Any SDK error; the invoker wraps it.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release provider resources and close connections."""
        ...


def user_message(prompt: str) -> Message:
    """Build a single user message."""
    return {"role": "user", "content": prompt}


def object_schema_for(schema: Any) -> tuple[dict[str, Any], bool]:
    """Return a JSON Schema whose root is an object.

    Tool inputs and JSON response formats require an object at the root.
    Non-object schemas (arrays, scalars) are wrapped under a single
    ``result`` property.

    Returns:
        Tuple of (json_schema, wrapped).
    """
    json_schema = json_schema_for(schema)
    if json_schema.get("type") == "object":
        return json_schema, False

    defs = json_schema.pop("$defs", None)
    wrapped: dict[str, Any] = {
        "type": "object",
        "properties": {WRAPPED_RESULT_KEY: json_schema},
        "required": [WRAPPED_RESULT_KEY],
    }
    if defs:
        wrapped["$defs"] = defs
    return wrapped, True


def unwrap_result(value: Any, wrapped: bool) -> Any:
    """Undo the ``result`` wrapping applied by object_schema_for."""
    if wrapped and isinstance(value, dict) and WRAPPED_RESULT_KEY in value:
        return value[WRAPPED_RESULT_KEY]
    return value
