"""Entry point for running crediagent as a module.

Usage:
    python -m crediagent
"""

from crediagent.cli.app import app


def main() -> None:
    """Main entry point for the crediagent CLI."""
    app()


if __name__ == "__main__":
    main()
