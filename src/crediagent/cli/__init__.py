"""CLI module for crediagent.

This module provides the command-line interface using Typer.
"""

from crediagent.cli.app import app

__all__ = ["app"]
