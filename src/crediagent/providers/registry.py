"""Provider registry mapping model names to provider integrations.

This module provides the ProviderRegistry class. It owns an explicit,
ordered table of (model-name pattern, provider family) entries compiled
once at construction, and caches one provider instance per family and
credential.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from crediagent.config.schema import ModelIdentity
from crediagent.exceptions import UnsupportedModelError
from crediagent.providers.base import ModelProvider
from crediagent.providers.claude import ClaudeProvider
from crediagent.providers.gemini import GeminiProvider
from crediagent.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str | None], ModelProvider]

DEFAULT_PROVIDER_PATTERNS: tuple[tuple[str, str], ...] = (
    (r"^(gpt-|o1-)", "openai"),
    (r"^claude-", "anthropic"),
    (r"gemini", "gemini"),
)


def default_factories() -> dict[str, ProviderFactory]:
    """Return the built-in provider factories keyed by family."""
    return {
        "openai": lambda api_key: OpenAIProvider(api_key=api_key),
        "anthropic": lambda api_key: ClaudeProvider(api_key=api_key),
        "gemini": lambda api_key: GeminiProvider(api_key=api_key),
    }


class ProviderRegistry:
    """Resolves model identities to cached provider instances.

    Example:
        >>> async with ProviderRegistry() as registry:
        ...     provider = registry.get_provider(ModelIdentity(name="gpt-4o-mini"))

    Key behaviors:
    - **Pattern dispatch**: First matching pattern in table order wins
    - **Lazy creation**: Providers created on first identity that needs them
    - **Caching**: One provider per (family, credential)
    - **Lifecycle management**: close() releases every provider
    """

    def __init__(
        self,
        factories: Mapping[str, ProviderFactory] | None = None,
        patterns: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        """Initialize the ProviderRegistry.

        Args:
            factories: Provider factories keyed by family. Defaults to the
                OpenAI, Anthropic and Gemini integrations.
            patterns: Ordered (regex, family) entries. Defaults to
                DEFAULT_PROVIDER_PATTERNS.
        """
        self._factories: dict[str, ProviderFactory] = dict(
            factories if factories is not None else default_factories()
        )
        self._patterns: list[tuple[re.Pattern[str], str]] = [
            (re.compile(pattern), family)
            for pattern, family in (patterns if patterns is not None else DEFAULT_PROVIDER_PATTERNS)
        ]
        self._providers: dict[tuple[str, str | None], ModelProvider] = {}

    def register(self, pattern: str, family: str, factory: ProviderFactory) -> None:
        """Add a provider family, checked before the existing patterns."""
        self._patterns.insert(0, (re.compile(pattern), family))
        self._factories[family] = factory

    def resolve_family(self, model_name: str) -> str:
        """Return the provider family for a model name.

        Raises:
            UnsupportedModelError: If no pattern matches or no factory is registered.
        """
        for pattern, family in self._patterns:
            if pattern.search(model_name) and family in self._factories:
                return family
        raise UnsupportedModelError(model_name)

    def get_provider(self, identity: ModelIdentity) -> ModelProvider:
        """Get the provider for an identity, creating it if necessary.

        Raises:
            UnsupportedModelError: If the model name matches no provider.
        """
        family = self.resolve_family(identity.name)
        key = (family, identity.api_key)
        provider = self._providers.get(key)
        if provider is None:
            logger.debug(f"Creating {family} provider for model {identity.name}")
            provider = self._factories[family](identity.api_key)
            self._providers[key] = provider
        return provider

    def active_families(self) -> set[str]:
        """Return the families that currently have a provider instance."""
        return {family for family, _ in self._providers}

    async def close(self) -> None:
        """Close all provider instances.

        Errors are collected so every provider gets closed; the first one
        is re-raised afterwards.
        """
        errors: list[Exception] = []
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                errors.append(e)

        self._providers.clear()

        if errors:
            raise errors[0]

    async def __aenter__(self) -> ProviderRegistry:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - closes all providers."""
        await self.close()
