"""Agent execution orchestration for crediagent.

This module provides the AgentExecutor class, which runs prompts against
one or more configured models:

- execute_agent: one plain-text call, no validation
- execute_agent_typed: schema-validated call with escalating retries
- agent_consensus: concurrent fan-out tolerant of partial failure
- execute_consensus_with_aggregation: consensus plus a single final answer
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from crediagent.config.schema import ExecutionOptions, ModelIdentity
from crediagent.exceptions import (
    AggregationError,
    AllModelsFailedError,
    InvalidArgumentError,
    SchemaValidationError,
    StructuredOutputError,
    UnsupportedModelError,
    describe_error,
)
from crediagent.executor.escalation import escalate_prompt
from crediagent.executor.output import ROOT_PATH, Valid, Violation, serialize_value, validate
from crediagent.executor.results import (
    BranchFailure,
    ConsensusEnvelope,
    ResponseEnvelope,
    estimate_tokens,
)
from crediagent.executor.synthesis import build_synthesis_prompt
from crediagent.providers.base import user_message
from crediagent.providers.invoker import ModelInvoker

logger = logging.getLogger(__name__)

AGGREGATION_TEMPERATURE = 0.1


def new_execution_id(prefix: str = "exec") -> str:
    """Return an id tagging the log records of one execution."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def consensus_label(models: Sequence[str]) -> str:
    return f"consensus({','.join(models)})"


class AgentExecutor:
    """Executes prompts against configured models.

    The executor holds no per-call state; concurrent calls on one instance
    are independent. Construct it with the invoker it should use.

    Example:
        >>> async with ProviderRegistry() as registry:
        ...     executor = AgentExecutor(ModelInvoker(registry))
        ...     envelope = await executor.execute_agent_typed(
        ...         ModelIdentity(name="gpt-4o-mini"), prompt, ScoringResult
        ...     )
        ...     envelope.content.score
    """

    def __init__(self, invoker: ModelInvoker) -> None:
        """Initialize the AgentExecutor.

        Args:
            invoker: The model invoker used for every provider call.
        """
        self.invoker = invoker

    async def execute_agent(
        self,
        identity: ModelIdentity,
        prompt: str,
        options: ExecutionOptions | None = None,
    ) -> ResponseEnvelope[str]:
        """Execute a single plain-text call.

        There is no retry and no validation: whatever text the model
        returns is the content.

        Args:
            identity: The model to call.
            prompt: The prompt text.
            options: Optional per-call overrides.

        Returns:
            Envelope with the raw response text.

        Raises:
            UnsupportedModelError: If no provider matches the model name.
            ProviderInvocationError: If the call fails or times out.
        """
        execution_id = new_execution_id()
        start = time.monotonic()
        logger.info(f"[{execution_id}] Executing {identity.name} ({len(prompt)} prompt chars)")

        try:
            content = await self.invoker.invoke(identity, [user_message(prompt)], options)
        except Exception as e:
            logger.error(f"[{execution_id}] {identity.name} failed: {describe_error(e)}")
            raise

        elapsed = time.monotonic() - start
        logger.info(f"[{execution_id}] {identity.name} completed in {elapsed:.2f}s")

        return ResponseEnvelope(
            content=content,
            model=identity.name,
            tokens_used=estimate_tokens(prompt + content),
            processing_time=elapsed,
        )

    async def execute_agent_typed(
        self,
        identity: ModelIdentity,
        prompt: str,
        schema: Any,
        options: ExecutionOptions | None = None,
    ) -> ResponseEnvelope[Any]:
        """Execute a call whose result must conform to a schema.

        Attempt 0 sends the prompt unchanged. Every later attempt sends the
        escalated prompt, listing the previous attempt's violations. Both
        invocation errors and validation failures consume an attempt.

        Args:
            identity: The model to call.
            prompt: The original prompt text.
            schema: Pydantic model class or TypeAdapter-compatible type.
            options: Optional per-call overrides; ``max_retries`` bounds attempts.

        Returns:
            Envelope whose content is the validated value.

        Raises:
            UnsupportedModelError: If no provider matches the model name (never retried).
            StructuredOutputError: If every attempt failed.
        """
        opts = options or ExecutionOptions()
        max_attempts = opts.max_retries
        execution_id = new_execution_id()
        start = time.monotonic()

        last_error: BaseException | None = None
        violations: list[Violation] = []

        for attempt in range(max_attempts):
            attempt_prompt = prompt if attempt == 0 else escalate_prompt(prompt, schema, violations)
            logger.debug(
                f"[{execution_id}] {identity.name} attempt {attempt + 1}/{max_attempts}"
            )

            try:
                raw_value = await self.invoker.invoke_structured(
                    identity, [user_message(attempt_prompt)], schema, opts
                )
            except UnsupportedModelError:
                raise
            except SchemaValidationError as e:
                last_error = e
                violations = e.violations or [Violation(ROOT_PATH, e.message)]
            except Exception as e:
                last_error = e
                violations = []
            else:
                outcome = validate(raw_value, schema)
                if isinstance(outcome, Valid):
                    elapsed = time.monotonic() - start
                    logger.info(
                        f"[{execution_id}] {identity.name} produced valid output "
                        f"on attempt {attempt + 1} in {elapsed:.2f}s"
                    )
                    return ResponseEnvelope(
                        content=outcome.value,
                        model=identity.name,
                        tokens_used=estimate_tokens(prompt + serialize_value(outcome.value)),
                        processing_time=elapsed,
                        attempts=attempt + 1,
                    )
                last_error = outcome.to_error()
                violations = outcome.violations

            logger.warning(
                f"[{execution_id}] {identity.name} attempt {attempt + 1}/{max_attempts} "
                f"failed: {describe_error(last_error)}"
            )
            if attempt + 1 < max_attempts and opts.retry_delay > 0:
                await asyncio.sleep(opts.retry_delay)

        logger.error(
            f"[{execution_id}] {identity.name} exhausted {max_attempts} structured-output attempts"
        )
        raise StructuredOutputError(
            model=identity.name,
            attempts=max_attempts,
            last_error=last_error,
        ) from last_error

    async def agent_consensus(
        self,
        identities: Sequence[ModelIdentity],
        prompt: str,
        options: ExecutionOptions | None = None,
        schema: Any | None = None,
    ) -> ConsensusEnvelope[Any]:
        """Run the prompt against every model concurrently.

        Every branch runs to completion; a failing branch never cancels its
        siblings. Responses are returned in the order the identities were
        given, not completion order.

        Args:
            identities: Models to fan out to.
            prompt: The prompt text shared by every branch.
            options: Optional per-call overrides applied to every branch.
            schema: Optional schema; each branch then uses execute_agent_typed.

        Returns:
            Envelope with every successful response.

        Raises:
            InvalidArgumentError: If no identities were given.
            UnsupportedModelError: If any model name matches no provider.
            AllModelsFailedError: If every branch failed.
        """
        identities = list(identities)
        if not identities:
            raise InvalidArgumentError(
                "At least one model is required for consensus",
                suggestion="Pass one or more model identities",
            )
        for identity in identities:
            self.invoker.ensure_supported(identity)

        consensus_id = new_execution_id("consensus")
        start = time.monotonic()
        logger.info(
            f"[{consensus_id}] Starting consensus across {len(identities)} models: "
            f"{', '.join(i.name for i in identities)}"
        )

        results = await asyncio.gather(
            *(self._run_branch(identity, prompt, options, schema) for identity in identities),
            return_exceptions=True,
        )

        responses: list[ResponseEnvelope[Any]] = []
        failures: list[BranchFailure] = []
        for identity, result in zip(identities, results):
            if isinstance(result, ResponseEnvelope):
                responses.append(result)
            elif isinstance(result, Exception):
                failure = BranchFailure(model=identity.name, error=result)
                failures.append(failure)
                logger.warning(f"[{consensus_id}] {identity.name} failed: {failure.reason}")
            else:
                raise result

        elapsed = time.monotonic() - start

        if not responses:
            logger.error(f"[{consensus_id}] All {len(identities)} models failed")
            raise AllModelsFailedError(failure_reasons(failures))

        logger.info(
            f"[{consensus_id}] Consensus completed in {elapsed:.2f}s: "
            f"{len(responses)} succeeded, {len(failures)} failed"
        )
        return ConsensusEnvelope(responses=responses, processing_time=elapsed, failures=failures)

    async def execute_consensus_with_aggregation(
        self,
        input_identities: Sequence[ModelIdentity],
        aggregator: ModelIdentity,
        prompt: str,
        options: ExecutionOptions | None = None,
        schema: Any | None = None,
    ) -> ResponseEnvelope[Any]:
        """Run consensus and reduce it to one answer.

        With a schema, the first successful response (by input order) is
        returned and the aggregator is never called. Without one, the
        aggregator synthesizes every response into a final text.

        Args:
            input_identities: Models that answer the prompt.
            aggregator: Model that synthesizes free-text answers.
            prompt: The prompt text.
            options: Optional per-call overrides.
            schema: Optional schema for the input models.

        Returns:
            Envelope labeled ``consensus(a,b)`` or ``consensus(a,b) -> z``.

        Raises:
            InvalidArgumentError: If no input identities were given.
            UnsupportedModelError: If any model name matches no provider.
            AllModelsFailedError: If every input model failed.
            AggregationError: If the aggregator call failed.
        """
        aggregation_id = new_execution_id("aggregation")
        start = time.monotonic()

        if schema is not None:
            consensus = await self.agent_consensus(input_identities, prompt, options, schema)
            label = consensus_label(consensus.models)
            logger.info(f"[{aggregation_id}] Using first structured response as {label}")
            return replace(
                consensus.responses[0],
                model=label,
                tokens_used=consensus.total_tokens,
            )

        self.invoker.ensure_supported(aggregator)
        consensus = await self.agent_consensus(input_identities, prompt, options)
        label = f"{consensus_label(consensus.models)} -> {aggregator.name}"

        base_options = options or ExecutionOptions()
        temperature = base_options.temperature
        aggregator_options = base_options.model_copy(
            update={
                "temperature": temperature if temperature is not None else AGGREGATION_TEMPERATURE
            }
        )

        logger.info(
            f"[{aggregation_id}] Aggregating {len(consensus.responses)} responses with "
            f"{aggregator.name}"
        )
        try:
            final = await self.execute_agent(
                aggregator,
                build_synthesis_prompt(prompt, consensus.responses),
                aggregator_options,
            )
        except Exception as e:
            logger.error(f"[{aggregation_id}] Consensus aggregation failed: {describe_error(e)}")
            raise AggregationError(
                f"Consensus aggregation failed with {aggregator.name}: {describe_error(e)}",
                aggregator=aggregator.name,
                suggestion="Check the aggregator model's credentials or choose another aggregator",
            ) from e

        elapsed = time.monotonic() - start
        logger.info(f"[{aggregation_id}] {label} completed in {elapsed:.2f}s")

        return ResponseEnvelope(
            content=final.content,
            model=label,
            tokens_used=consensus.total_tokens + final.tokens_used,
            processing_time=elapsed,
        )

    async def _run_branch(
        self,
        identity: ModelIdentity,
        prompt: str,
        options: ExecutionOptions | None,
        schema: Any | None,
    ) -> ResponseEnvelope[Any]:
        if schema is None:
            return await self.execute_agent(identity, prompt, options)
        return await self.execute_agent_typed(identity, prompt, schema, options)


def failure_reasons(failures: list[BranchFailure]) -> dict[str, str]:
    """Map model names to failure reasons, suffixing repeated names."""
    reasons: dict[str, str] = {}
    for index, failure in enumerate(failures):
        key = failure.model if failure.model not in reasons else f"{failure.model}#{index}"
        reasons[key] = failure.reason
    return reasons
