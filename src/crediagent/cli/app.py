"""Typer application definition for the crediagent CLI.

This module defines the main Typer app, global options, and error display.
"""

from __future__ import annotations

import contextvars
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from crediagent import __version__

# Create the main Typer app
app = typer.Typer(
    name="crediagent",
    help="crediagent - Run prompts across LLM providers with validated structured output.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console(stderr=True)
output_console = Console()

# Context variable for verbose mode (--verbose flag)
verbose_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "verbose_mode", default=False
)


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return verbose_mode.get()


def configure_logging(verbose: bool) -> None:
    """Route package logging through Rich on stderr.

    Verbose mode shows debug records; otherwise only warnings and errors.
    """
    package_logger = logging.getLogger("crediagent")
    package_logger.handlers.clear()
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def format_error(error: Exception) -> Panel:
    """Format an exception for Rich console display.

    Creates a styled Panel with error type, message, field path (if
    available), and suggestion (if available).

    Args:
        error: The exception to format.

    Returns:
        Rich Panel with formatted error content.
    """
    from crediagent.exceptions import CrediAgentError

    content = Text()

    if isinstance(error, CrediAgentError):
        content.append(error.message, style="bold red")

        # Add field path for configuration errors
        field_path = getattr(error, "field_path", None)
        if field_path:
            content.append("\n")
            content.append("📋 Field: ", style="yellow")
            content.append(field_path, style="cyan")

        if error.suggestion:
            content.append("\n\n")
            content.append("💡 Suggestion: ", style="green")
            content.append(error.suggestion, style="white")

        error_type = error.error_type
    else:
        content.append(str(error), style="red")
        error_type = type(error).__name__

    return Panel(
        content,
        title=f"[bold red]❌ {error_type}[/bold red]",
        border_style="red",
        padding=(1, 2),
    )


def print_error(error: Exception) -> None:
    """Print a formatted error to stderr."""
    console.print(format_error(error))


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        output_console.print(f"crediagent v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Show debug logging for every model call.",
        ),
    ] = False,
) -> None:
    """crediagent - Run prompts across LLM providers with validated structured output."""
    verbose_mode.set(verbose)
    configure_logging(verbose)


@app.command()
def run(
    prompt: Annotated[
        str,
        typer.Argument(help="Prompt text, or '-' to read it from stdin."),
    ],
    models: Annotated[
        list[str] | None,
        typer.Option(
            "--model",
            "-m",
            help="Model to run (e.g. gpt-4o-mini). Repeat for consensus.",
        ),
    ] = None,
    aggregator: Annotated[
        str | None,
        typer.Option(
            "--aggregator",
            "-a",
            help="Model that synthesizes the consensus into one answer.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML file listing models, aggregator and options.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    schema: Annotated[
        str | None,
        typer.Option(
            "--schema",
            "-s",
            help="Validate output against a built-in schema: 'scoring' or 'analysis'.",
        ),
    ] = None,
    max_retries: Annotated[
        int | None,
        typer.Option("--max-retries", help="Structured-output attempts per model."),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Seconds allowed for each model call."),
    ] = None,
    temperature: Annotated[
        float | None,
        typer.Option("--temperature", "-t", help="Sampling temperature override."),
    ] = None,
) -> None:
    """Run a prompt against one or more models.

    One model runs directly, several run concurrently as a consensus, and
    an aggregator reduces the consensus to a single answer.

    \b
    Examples:
        crediagent run "Summarize this thread" -m gpt-4o-mini
        crediagent run "Rate this profile" -m gpt-4o-mini -m claude-3-haiku-20240307 -s scoring
        crediagent run "Summarize" -c models.yaml -a gpt-4o
    """
    import asyncio
    import sys

    from crediagent.cli.run import (
        apply_overrides,
        resolve_models,
        resolve_schema,
        run_prompt_async,
    )

    try:
        text = sys.stdin.read() if prompt == "-" else prompt
        schema_type = resolve_schema(schema)
        model_list, aggregator_identity, options = resolve_models(models, aggregator, config)
        options = apply_overrides(
            options,
            temperature=temperature,
            timeout=timeout,
            max_retries=max_retries,
        )

        result = asyncio.run(
            run_prompt_async(text, model_list, aggregator_identity, options, schema_type)
        )

        output_console.print_json(data=result)

    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None


@app.command(name="models")
def list_models(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML file listing models, aggregator and options.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """List the models available from a config file or the environment.

    \b
    Examples:
        crediagent models
        crediagent models -c models.yaml
    """
    from crediagent.cli.run import display_models, resolve_models

    try:
        model_list, aggregator_identity, _ = resolve_models(None, None, config)
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    display_models(model_list, aggregator_identity, output_console)
