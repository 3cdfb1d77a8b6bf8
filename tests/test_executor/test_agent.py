"""Unit tests for AgentExecutor single-model execution.

Tests cover:
- Plain-text execution without validation
- Structured output with bounded retries
- Prompt escalation across attempts
- Error handling (unsupported models, timeouts, exhaustion)
"""

from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, Literal
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import BaseModel, Field

from crediagent.config.schema import ExecutionOptions, ModelIdentity
from crediagent.exceptions import (
    ProviderInvocationError,
    SchemaValidationError,
    StructuredOutputError,
    UnsupportedModelError,
)
from crediagent.executor.agent import AgentExecutor, new_execution_id
from crediagent.executor.output import serialize_value
from crediagent.executor.results import ResponseEnvelope
from crediagent.providers.invoker import ModelInvoker
from crediagent.providers.registry import ProviderRegistry

if TYPE_CHECKING:
    from conftest import ScriptedProvider


class Score(BaseModel):
    score: float = Field(ge=0, le=10)
    reasoning: str


class Verdict(str, Enum):
    CREDIBLE = "credible"
    DUBIOUS = "dubious"


PROMPT = "Rate the credibility of @ada from 0 to 10."
VALID = {"score": 7.5, "reasoning": "Cites sources consistently"}
OUT_OF_RANGE = {"score": 42, "reasoning": "Too enthusiastic"}


class TestExecuteAgent:
    """Tests for plain-text execution."""

    @pytest.mark.asyncio
    async def test_returns_raw_text(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", "Looks credible.")

        envelope = await executor.execute_agent(gpt, PROMPT)

        assert isinstance(envelope, ResponseEnvelope)
        assert envelope.content == "Looks credible."
        assert envelope.model == "gpt-4o-mini"
        assert envelope.attempts == 1
        assert envelope.processing_time >= 0
        assert envelope.tokens_used == math.ceil(len(PROMPT + "Looks credible.") / 4)

    @pytest.mark.asyncio
    async def test_never_validates_or_escalates(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        """Arbitrary text comes back unchanged in exactly one call."""
        provider.script("gpt-4o-mini", "{not json at all")

        with (
            patch("crediagent.executor.agent.validate") as mock_validate,
            patch("crediagent.executor.agent.escalate_prompt") as mock_escalate,
        ):
            envelope = await executor.execute_agent(gpt, PROMPT)

        assert envelope.content == "{not json at all"
        assert len(provider.calls) == 1
        assert provider.calls[0]["schema"] is None
        mock_validate.assert_not_called()
        mock_escalate.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_propagates_without_retry(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", RuntimeError("connection reset"))

        with pytest.raises(ProviderInvocationError) as exc_info:
            await executor.execute_agent(gpt, PROMPT, ExecutionOptions(max_retries=5))

        assert "connection reset" in exc_info.value.message
        assert exc_info.value.model == "gpt-4o-mini"
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_client_construction_error_is_wrapped(self, gpt: ModelIdentity) -> None:
        def missing_credentials(api_key: str | None) -> ScriptedProvider:
            raise RuntimeError("Missing credentials")

        executor = AgentExecutor(
            ModelInvoker(ProviderRegistry(factories={"openai": missing_credentials}))
        )

        with pytest.raises(ProviderInvocationError) as exc_info:
            await executor.execute_agent(gpt, PROMPT)

        assert exc_info.value.model == "gpt-4o-mini"
        assert "Missing credentials" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", "late", delay=0.5)

        with pytest.raises(ProviderInvocationError) as exc_info:
            await executor.execute_agent(gpt, PROMPT, ExecutionOptions(timeout=0.05))

        assert exc_info.value.is_timeout is True
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unsupported_model(
        self, executor: AgentExecutor, provider: ScriptedProvider
    ) -> None:
        with pytest.raises(UnsupportedModelError):
            await executor.execute_agent(ModelIdentity(name="llama-3-70b"), PROMPT)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_sampling_settings(
        self, executor: AgentExecutor, provider: ScriptedProvider
    ) -> None:
        provider.script("gpt-4o", "ok")
        identity = ModelIdentity(name="gpt-4o", temperature=0.3, max_tokens=500)

        await executor.execute_agent(identity, PROMPT)
        await executor.execute_agent(identity, PROMPT, ExecutionOptions(temperature=0.9))

        first, second = provider.calls
        assert (first["settings"].temperature, first["settings"].max_tokens) == (0.3, 500)
        assert (second["settings"].temperature, second["settings"].max_tokens) == (0.9, 500)


class TestExecuteAgentTyped:
    """Tests for structured-output execution."""

    @pytest.mark.asyncio
    async def test_valid_first_attempt(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", VALID)

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Score)

        assert isinstance(envelope.content, Score)
        assert envelope.content.score == 7.5
        assert envelope.attempts == 1
        assert provider.prompts_for("gpt-4o-mini") == [PROMPT]
        assert provider.calls[0]["schema"] is Score
        expected = math.ceil((len(PROMPT) + len(serialize_value(envelope.content))) / 4)
        assert envelope.tokens_used == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_retries", [1, 2, 3, 5])
    async def test_exhaustion_makes_exactly_n_attempts(
        self,
        executor: AgentExecutor,
        provider: ScriptedProvider,
        gpt: ModelIdentity,
        max_retries: int,
    ) -> None:
        provider.script("gpt-4o-mini", OUT_OF_RANGE)

        with pytest.raises(StructuredOutputError) as exc_info:
            await executor.execute_agent_typed(
                gpt, PROMPT, Score, ExecutionOptions(max_retries=max_retries)
            )

        assert len(provider.calls) == max_retries
        error = exc_info.value
        assert error.model == "gpt-4o-mini"
        assert error.attempts == max_retries
        assert isinstance(error.last_error, SchemaValidationError)
        assert error.__cause__ is error.last_error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [1, 2])
    async def test_recovers_after_k_failures(
        self,
        executor: AgentExecutor,
        provider: ScriptedProvider,
        gpt: ModelIdentity,
        failures: int,
    ) -> None:
        provider.script("gpt-4o-mini", *([OUT_OF_RANGE] * failures), VALID)

        envelope = await executor.execute_agent_typed(
            gpt, PROMPT, Score, ExecutionOptions(max_retries=3)
        )

        assert len(provider.calls) == failures + 1
        assert envelope.attempts == failures + 1
        assert envelope.content.reasoning == VALID["reasoning"]

    @pytest.mark.asyncio
    async def test_retries_use_escalated_prompt(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", OUT_OF_RANGE, {"score": 3}, VALID)

        await executor.execute_agent_typed(gpt, PROMPT, Score)

        first, second, third = provider.prompts_for("gpt-4o-mini")
        assert first == PROMPT
        for retry in (second, third):
            assert retry.startswith(PROMPT)
            assert len(retry) > len(PROMPT)
            assert "JSON Schema:" in retry
        assert "- score:" in second
        assert "- reasoning: Field required" in third

    @pytest.mark.asyncio
    async def test_invocation_error_consumes_attempt(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", RuntimeError("HTTP 503"), VALID)

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Score)

        assert envelope.attempts == 2
        second_prompt = provider.prompts_for("gpt-4o-mini")[1]
        assert second_prompt.startswith(PROMPT)
        assert "did not match" not in second_prompt

    @pytest.mark.asyncio
    async def test_undecodable_provider_output_consumes_attempt(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script(
            "gpt-4o-mini",
            SchemaValidationError("Failed to parse JSON from model response"),
            VALID,
        )

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Score)

        assert envelope.attempts == 2
        assert "- <root>: Failed to parse JSON" in provider.prompts_for("gpt-4o-mini")[1]

    @pytest.mark.asyncio
    async def test_json_text_is_validated(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", '```json\n{"score": 4, "reasoning": "Mixed"}\n```')

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Score)

        assert envelope.content == Score(score=4, reasoning="Mixed")

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failed_attempt(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", VALID, delay=0.5)

        with pytest.raises(StructuredOutputError) as exc_info:
            await executor.execute_agent_typed(
                gpt, PROMPT, Score, ExecutionOptions(timeout=0.05, max_retries=2)
            )

        assert len(provider.calls) == 2
        last_error = exc_info.value.last_error
        assert isinstance(last_error, ProviderInvocationError)
        assert last_error.is_timeout is True
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unsupported_model_is_not_retried(
        self, executor: AgentExecutor, provider: ScriptedProvider
    ) -> None:
        with pytest.raises(UnsupportedModelError):
            await executor.execute_agent_typed(ModelIdentity(name="mistral-large"), PROMPT, Score)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_retry_delay_between_attempts(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", OUT_OF_RANGE)

        with patch("crediagent.executor.agent.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(StructuredOutputError):
                await executor.execute_agent_typed(
                    gpt, PROMPT, Score, ExecutionOptions(max_retries=3, retry_delay=0.25)
                )

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.25)

    @pytest.mark.asyncio
    async def test_type_adapter_schema(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", ["misinformation", "selling"])

        envelope = await executor.execute_agent_typed(gpt, PROMPT, list[str])

        assert envelope.content == ["misinformation", "selling"]


    @pytest.mark.asyncio
    async def test_literal_schema_accepts_plain_string(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", "pass")

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Literal["pass", "fail"])

        assert envelope.content == "pass"
        assert envelope.attempts == 1
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_enum_schema_accepts_member_value(
        self, executor: AgentExecutor, provider: ScriptedProvider, gpt: ModelIdentity
    ) -> None:
        provider.script("gpt-4o-mini", "dubious")

        envelope = await executor.execute_agent_typed(gpt, PROMPT, Verdict)

        assert envelope.content is Verdict.DUBIOUS
        assert envelope.attempts == 1


class TestExecutionId:
    """Tests for execution id generation."""

    def test_prefix_and_uniqueness(self) -> None:
        first = new_execution_id("consensus")
        second = new_execution_id("consensus")
        assert first.startswith("consensus_")
        assert first != second
        assert len(first.split("_")) == 3
