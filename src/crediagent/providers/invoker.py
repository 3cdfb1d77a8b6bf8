"""Uniform model invocation over every provider family.

This module provides the ModelInvoker class, which turns a ModelIdentity
plus optional ExecutionOptions into a single provider call: it resolves
the provider, applies sampling defaults, enforces the per-call timeout,
and wraps SDK failures as ProviderInvocationError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from crediagent.config.schema import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    ExecutionOptions,
    ModelIdentity,
)
from crediagent.exceptions import CrediAgentError, ProviderInvocationError
from crediagent.providers.base import InvocationSettings, Message, ModelProvider
from crediagent.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_settings(
    identity: ModelIdentity,
    options: ExecutionOptions | None = None,
) -> InvocationSettings:
    """Merge per-call options over identity defaults."""
    temperature = options.temperature if options and options.temperature is not None else None
    if temperature is None:
        temperature = identity.temperature if identity.temperature is not None else DEFAULT_TEMPERATURE

    max_tokens = options.max_tokens if options and options.max_tokens is not None else None
    if max_tokens is None:
        max_tokens = identity.max_tokens if identity.max_tokens is not None else DEFAULT_MAX_TOKENS

    return InvocationSettings(model=identity.name, temperature=temperature, max_tokens=max_tokens)


class ModelInvoker:
    """Invokes configured models through their provider integration.

    Example:
        >>> async with ProviderRegistry() as registry:
        ...     invoker = ModelInvoker(registry)
        ...     text = await invoker.invoke(identity, [user_message("Hello")])
    """

    def __init__(self, registry: ProviderRegistry | None = None) -> None:
        """Initialize the ModelInvoker.

        Args:
            registry: Provider registry; a default one is created when omitted.
        """
        self.registry = registry if registry is not None else ProviderRegistry()

    def ensure_supported(self, identity: ModelIdentity) -> None:
        """Fail fast if no provider integration matches the identity.

        Raises:
            UnsupportedModelError: If the model name matches no provider pattern.
        """
        self.registry.resolve_family(identity.name)

    async def invoke(
        self,
        identity: ModelIdentity,
        messages: list[Message],
        options: ExecutionOptions | None = None,
    ) -> str:
        """Send messages to the model and return its text response.

        Raises:
            UnsupportedModelError: If the model name matches no provider.
            ProviderInvocationError: If the call fails or times out.
        """
        return await self._call(
            identity,
            options,
            lambda provider, settings: provider.invoke(messages, settings),
        )

    async def invoke_structured(
        self,
        identity: ModelIdentity,
        messages: list[Message],
        schema: Any,
        options: ExecutionOptions | None = None,
    ) -> Any:
        """Send messages using the provider's native structured output.

        The returned value is decoded but not validated.

        Raises:
            UnsupportedModelError: If the model name matches no provider.
            ProviderInvocationError: If the call fails or times out.
            SchemaValidationError: If the provider returned no decodable JSON.
        """
        return await self._call(
            identity,
            options,
            lambda provider, settings: provider.invoke_structured(messages, settings, schema),
        )

    async def _call(
        self,
        identity: ModelIdentity,
        options: ExecutionOptions | None,
        call: Callable[[ModelProvider, InvocationSettings], Awaitable[T]],
    ) -> T:
        timeout = options.timeout if options else None

        try:
            provider = self.registry.get_provider(identity)
            settings = resolve_settings(identity, options)
            logger.debug(
                f"Invoking {identity.name}: temperature={settings.temperature}, "
                f"max_tokens={settings.max_tokens}, timeout={timeout}"
            )
            async with asyncio.timeout(timeout):
                return await call(provider, settings)
        except TimeoutError as e:
            limit = f" after {timeout}s" if timeout is not None else ""
            raise ProviderInvocationError(
                f"Model {identity.name} timed out{limit}",
                model=identity.name,
                is_timeout=True,
                suggestion="Increase the timeout or use a faster model",
            ) from e
        except CrediAgentError:
            raise
        except Exception as e:
            raise ProviderInvocationError(
                f"Agent execution failed for {identity.name}: {e}",
                model=identity.name,
                status_code=getattr(e, "status_code", None),
                suggestion="Check API key, model name, and network connectivity",
            ) from e
