"""Pytest configuration and shared fixtures for crediagent tests.

This module contains a scripted provider double and fixtures wiring it
into a real ProviderRegistry, ModelInvoker and AgentExecutor.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from crediagent.config.schema import ModelIdentity
from crediagent.executor.agent import AgentExecutor
from crediagent.providers.base import InvocationSettings, Message, ModelProvider
from crediagent.providers.invoker import ModelInvoker
from crediagent.providers.registry import ProviderRegistry


class ScriptedProvider(ModelProvider):
    """Provider double that replays scripted responses per model name.

    Each model has a queue of responses. Items are consumed in order and
    the last one repeats once the queue is down to a single entry.
    Exception instances are raised instead of returned.
    """

    def __init__(self) -> None:
        self.responses: dict[str, list[Any]] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def script(self, model: str, *responses: Any, delay: float = 0.0) -> None:
        self.responses[model] = list(responses)
        self.delays[model] = delay

    def calls_for(self, model: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["model"] == model]

    def prompts_for(self, model: str) -> list[str]:
        return [c["messages"][-1]["content"] for c in self.calls_for(model)]

    async def invoke(self, messages: list[Message], settings: InvocationSettings) -> str:
        return await self._respond(messages, settings, None)

    async def invoke_structured(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        return await self._respond(messages, settings, schema)

    async def close(self) -> None:
        self.closed = True

    async def _respond(
        self,
        messages: list[Message],
        settings: InvocationSettings,
        schema: Any,
    ) -> Any:
        self.calls.append(
            {
                "model": settings.model,
                "messages": messages,
                "settings": settings,
                "schema": schema,
            }
        )
        delay = self.delays.get(settings.model, 0.0)
        if delay:
            await asyncio.sleep(delay)

        queue = self.responses.get(settings.model)
        if not queue:
            raise RuntimeError(f"No scripted response for {settings.model}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def provider() -> ScriptedProvider:
    """Create a fresh scripted provider."""
    return ScriptedProvider()


@pytest.fixture
def registry(provider: ScriptedProvider) -> ProviderRegistry:
    """Registry using the default name patterns, with every family scripted."""
    return ProviderRegistry(
        factories={
            "openai": lambda api_key: provider,
            "anthropic": lambda api_key: provider,
            "gemini": lambda api_key: provider,
        }
    )


@pytest.fixture
def executor(registry: ProviderRegistry) -> AgentExecutor:
    """AgentExecutor wired to the scripted provider."""
    return AgentExecutor(ModelInvoker(registry))


@pytest.fixture
def gpt() -> ModelIdentity:
    return ModelIdentity(name="gpt-4o-mini", api_key="sk-test")


@pytest.fixture
def claude() -> ModelIdentity:
    return ModelIdentity(name="claude-3-haiku-20240307", api_key="sk-ant-test")


@pytest.fixture
def gemini() -> ModelIdentity:
    return ModelIdentity(name="gemini-1.5-flash", api_key="gm-test")


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid models YAML for testing."""
    return """\
models:
  - name: gpt-4o-mini
    api_key: sk-test
    temperature: 0.2
  - name: claude-3-haiku-20240307
aggregator:
  name: gpt-4o
options:
  max_retries: 2
  timeout: 30
"""


@pytest.fixture
def tmp_config_file(tmp_path: Path, sample_config_yaml: str) -> Path:
    """Create a temporary models YAML file."""
    config_file = tmp_path / "models.yaml"
    config_file.write_text(sample_config_yaml)
    return config_file
