"""Implementation of the 'crediagent run' and 'crediagent models' commands.

This module resolves models and options from flags, config files and the
environment, dispatches to the right executor, and renders the results.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python
from rich.console import Console
from rich.table import Table

from crediagent.analysis.schemas import CredibilityAnalysisResult, ScoringResult
from crediagent.config.loader import default_models_from_env, load_config
from crediagent.config.schema import ExecutionOptions, ModelIdentity
from crediagent.exceptions import InvalidArgumentError, UnsupportedModelError
from crediagent.executor.agent import AgentExecutor, failure_reasons
from crediagent.executor.results import ConsensusEnvelope, ResponseEnvelope
from crediagent.providers.invoker import ModelInvoker
from crediagent.providers.registry import ProviderRegistry

# Verbose console for logging (stderr)
_verbose_console = Console(stderr=True)

SCHEMAS: dict[str, Any] = {
    "scoring": ScoringResult,
    "analysis": CredibilityAnalysisResult,
}


def verbose_log(message: str, style: str = "dim") -> None:
    """Log a message if verbose mode is enabled."""
    from crediagent.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[{style}]{message}[/{style}]")


def verbose_log_timing(operation: str, elapsed: float) -> None:
    """Log timing information if verbose mode is enabled."""
    from crediagent.cli.app import is_verbose

    if is_verbose():
        _verbose_console.print(f"[dim]⏱ {operation}: {elapsed:.2f}s[/dim]")


def resolve_schema(name: str | None) -> Any | None:
    """Map a --schema value to its schema class.

    Raises:
        InvalidArgumentError: If the name is unknown.
    """
    if name is None:
        return None
    try:
        return SCHEMAS[name]
    except KeyError:
        raise InvalidArgumentError(
            f"Unknown schema: {name}",
            suggestion=f"Use one of: {', '.join(sorted(SCHEMAS))}",
        ) from None


def resolve_models(
    model_names: Sequence[str] | None,
    aggregator_name: str | None,
    config_path: Path | None,
) -> tuple[list[ModelIdentity], ModelIdentity | None, ExecutionOptions]:
    """Resolve input models, aggregator and base options.

    Named models are looked up in the config file first; names not found
    there get an identity whose credential comes from the provider's
    environment variable. Without names, the config's models are used, or
    the models configured in the environment.

    Raises:
        ConfigurationError: If the config file is invalid or no models are available.
    """
    config_models: list[ModelIdentity] = []
    configured: dict[str, ModelIdentity] = {}
    aggregator: ModelIdentity | None = None
    options = ExecutionOptions()

    if config_path is not None:
        config = load_config(config_path)
        config_models = list(config.models)
        configured = {m.name: m for m in config_models}
        if config.aggregator is not None:
            configured.setdefault(config.aggregator.name, config.aggregator)
        aggregator = config.aggregator
        options = config.options
        verbose_log(f"Loaded {len(config.models)} models from {config_path}")

    if model_names:
        models = [configured.get(name) or ModelIdentity(name=name) for name in model_names]
    elif config_models:
        models = config_models
    else:
        models = default_models_from_env()

    if aggregator_name:
        aggregator = configured.get(aggregator_name) or ModelIdentity(name=aggregator_name)

    return models, aggregator, options


def apply_overrides(
    options: ExecutionOptions,
    *,
    temperature: float | None = None,
    timeout: float | None = None,
    max_retries: int | None = None,
) -> ExecutionOptions:
    """Return options with every given CLI override applied and validated."""
    updates: dict[str, Any] = {}
    if temperature is not None:
        updates["temperature"] = temperature
    if timeout is not None:
        updates["timeout"] = timeout
    if max_retries is not None:
        updates["max_retries"] = max_retries
    if not updates:
        return options
    return ExecutionOptions.model_validate({**options.model_dump(), **updates})


async def run_prompt_async(
    prompt: str,
    models: list[ModelIdentity],
    aggregator: ModelIdentity | None,
    options: ExecutionOptions,
    schema: Any | None,
) -> dict[str, Any]:
    """Execute a prompt and return a JSON-serializable result.

    One model runs as a single agent, several run as consensus, and an
    aggregator reduces consensus to one answer.
    """
    start = time.monotonic()
    async with ProviderRegistry() as registry:
        executor = AgentExecutor(ModelInvoker(registry))

        if aggregator is not None:
            verbose_log(f"Aggregating {len(models)} models with {aggregator.name}")
            result: ResponseEnvelope[Any] | ConsensusEnvelope[Any] = (
                await executor.execute_consensus_with_aggregation(
                    models, aggregator, prompt, options, schema
                )
            )
        elif len(models) > 1:
            verbose_log(f"Running consensus across {len(models)} models")
            result = await executor.agent_consensus(models, prompt, options, schema)
        elif schema is not None:
            verbose_log(f"Running {models[0].name} with structured output")
            result = await executor.execute_agent_typed(models[0], prompt, schema, options)
        else:
            verbose_log(f"Running {models[0].name}")
            result = await executor.execute_agent(models[0], prompt, options)

    verbose_log_timing("Execution", time.monotonic() - start)
    return result_to_dict(result)


def result_to_dict(result: ResponseEnvelope[Any] | ConsensusEnvelope[Any]) -> dict[str, Any]:
    """Convert an envelope into plain JSON-compatible data."""
    if isinstance(result, ConsensusEnvelope):
        return {
            "responses": [result_to_dict(r) for r in result.responses],
            "failures": failure_reasons(result.failures),
            "total_tokens": result.total_tokens,
            "processing_time": round(result.processing_time, 3),
        }
    return {
        "model": result.model,
        "content": to_jsonable_python(result.content, by_alias=True),
        "tokens_used": result.tokens_used,
        "processing_time": round(result.processing_time, 3),
        "attempts": result.attempts,
    }


def display_models(
    models: Sequence[ModelIdentity],
    aggregator: ModelIdentity | None,
    console: Console,
) -> None:
    """Print a table of models with their provider and sampling defaults."""
    registry = ProviderRegistry()
    table = Table(title="Models", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="green")
    table.add_column("Provider")
    table.add_column("Role")
    table.add_column("Temperature", justify="right")
    table.add_column("Max tokens", justify="right")
    table.add_column("Credential")

    rows = [(m, "input") for m in models]
    if aggregator is not None:
        rows.append((aggregator, "aggregator"))

    for identity, role in rows:
        try:
            family = registry.resolve_family(identity.name)
        except UnsupportedModelError:
            family = "[red]unsupported[/red]"
        table.add_row(
            identity.name,
            family,
            role,
            f"{identity.temperature:g}",
            str(identity.max_tokens),
            "configured" if identity.api_key else "[dim]from environment[/dim]",
        )

    console.print(table)
