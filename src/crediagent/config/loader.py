"""YAML configuration loader with environment variable resolution.

This module handles loading model configuration files, resolving
environment variables, and parsing them into typed Pydantic models.
It also assembles a default model list from provider credentials found
in the environment.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from crediagent.config.schema import AgentsConfig, ModelIdentity
from crediagent.exceptions import ConfigurationError

# Pattern to match ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
ENV_MODEL_TEMPERATURE = 0.2
ENV_MODEL_MAX_TOKENS = 4000


def resolve_env_vars(value: str, max_depth: int = 10) -> str:
    """Resolve ${ENV:-default} patterns in strings.

    Supports recursive resolution where environment variable values
    may themselves contain environment variable references.

    Args:
        value: The string potentially containing env var references.
        max_depth: Maximum recursion depth to prevent infinite loops.

    Returns:
        The string with all environment variables resolved.

    Raises:
        ConfigurationError: If a required environment variable is missing
            (no default provided) or recursion limit is exceeded.
    """
    if max_depth <= 0:
        raise ConfigurationError(
            f"Maximum recursion depth exceeded while resolving environment variables in: {value}",
            suggestion="Check for circular references in your environment variables.",
        )

    def replace_env_var(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default_value is not None:
            return default_value
        else:
            raise ConfigurationError(
                f"Required environment variable '{var_name}' is not set",
                suggestion=f"Set the environment variable '{var_name}' or provide a default "
                f"value using the syntax: ${{{var_name}:-default_value}}",
            )

    result = ENV_VAR_PATTERN.sub(replace_env_var, value)

    if ENV_VAR_PATTERN.search(result):
        return resolve_env_vars(result, max_depth - 1)

    return result


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


class ConfigLoader:
    """Loads and validates model configuration from YAML files.

    This class handles:
    - YAML parsing with line number tracking for error messages
    - Environment variable resolution
    - Pydantic schema validation
    """

    def __init__(self) -> None:
        """Initialize the config loader with a ruamel.yaml parser."""
        self._yaml = YAML(typ="safe")

    def load(self, path: str | Path) -> AgentsConfig:
        """Load a model configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            A validated AgentsConfig object.

        Raises:
            ConfigurationError: If the file cannot be read, contains invalid
                YAML syntax, or fails schema validation.
        """
        path = Path(path)

        if not path.is_file():
            raise ConfigurationError(
                f"Config file not found: {path}",
                suggestion="Check that the file path is correct and the file exists.",
            )

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file '{path}': {e}",
                suggestion="Check file permissions and ensure the file is readable.",
            ) from e

        return self.load_string(content, source_path=path)

    def load_string(self, content: str, source_path: Path | None = None) -> AgentsConfig:
        """Load a model configuration from a YAML string.

        Args:
            content: The YAML content as a string.
            source_path: Optional path for error messages.

        Returns:
            A validated AgentsConfig object.

        Raises:
            ConfigurationError: If the YAML is invalid or fails validation.
        """
        source = str(source_path) if source_path else "<string>"

        try:
            data = self._yaml.load(content)
        except YAMLError as e:
            line_info = ""
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                line_info = f" at line {mark.line + 1}, column {mark.column + 1}"

            raise ConfigurationError(
                f"Invalid YAML syntax in '{source}'{line_info}: {e}",
                suggestion="Check the YAML syntax. Common issues include incorrect "
                "indentation, missing colons, or unquoted special characters.",
            ) from e

        if data is None:
            raise ConfigurationError(
                f"Empty configuration file: {source}",
                suggestion="Add a 'models' list to the YAML file.",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration format in '{source}': "
                f"expected a mapping, got {type(data).__name__}",
                suggestion="Ensure the YAML file contains a 'models' mapping.",
            )

        data = _resolve_env_vars_recursive(data)
        return self._validate(data, source)

    def _validate(self, data: dict[str, Any], source: str) -> AgentsConfig:
        """Validate configuration data against the Pydantic schema."""
        try:
            return AgentsConfig.model_validate(data)
        except PydanticValidationError as e:
            formatted_errors: list[str] = []
            for err in e.errors():
                loc = ".".join(str(x) for x in err.get("loc", ()))
                formatted_errors.append(f"  - {loc}: {err.get('msg', 'Unknown error')}")
            first_loc = e.errors()[0].get("loc", ()) if e.errors() else ()

            raise ConfigurationError(
                f"Configuration validation failed in '{source}':\n"
                + "\n".join(formatted_errors),
                suggestion="Ensure every model has a name and valid sampling values.",
                field_path=".".join(str(x) for x in first_loc) or None,
            ) from e


def load_config(path: str | Path) -> AgentsConfig:
    """Convenience function to load a model configuration file.

    Raises:
        ConfigurationError: If loading or validation fails.
    """
    return ConfigLoader().load(path)


def load_config_string(content: str, source_path: Path | None = None) -> AgentsConfig:
    """Convenience function to load a model configuration from a string.

    Raises:
        ConfigurationError: If loading or validation fails.
    """
    return ConfigLoader().load_string(content, source_path)


def default_models_from_env(environ: Mapping[str, str] | None = None) -> list[ModelIdentity]:
    """Build model identities from the provider credentials that are present.

    One model is added per provider whose API key is set, in the order
    OpenAI, Anthropic, Gemini.

    Args:
        environ: Environment mapping; defaults to os.environ.

    Returns:
        Non-empty list of ModelIdentity.

    Raises:
        ConfigurationError: If no provider credential is configured.
    """
    env = os.environ if environ is None else environ
    models: list[ModelIdentity] = []

    if env.get("OPENAI_API_KEY"):
        models.append(
            ModelIdentity(
                name=env.get("AGENT_DEFAULT_MODEL") or DEFAULT_OPENAI_MODEL,
                api_key=env["OPENAI_API_KEY"],
                temperature=ENV_MODEL_TEMPERATURE,
                max_tokens=ENV_MODEL_MAX_TOKENS,
            )
        )

    if env.get("ANTHROPIC_API_KEY"):
        models.append(
            ModelIdentity(
                name=DEFAULT_ANTHROPIC_MODEL,
                api_key=env["ANTHROPIC_API_KEY"],
                temperature=ENV_MODEL_TEMPERATURE,
                max_tokens=ENV_MODEL_MAX_TOKENS,
            )
        )

    gemini_key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY")
    if gemini_key:
        models.append(
            ModelIdentity(
                name=DEFAULT_GEMINI_MODEL,
                api_key=gemini_key,
                temperature=ENV_MODEL_TEMPERATURE,
                max_tokens=ENV_MODEL_MAX_TOKENS,
            )
        )

    if not models:
        raise ConfigurationError(
            "No API keys configured for AI models",
            suggestion="Set OPENAI_API_KEY, ANTHROPIC_API_KEY or GEMINI_API_KEY",
        )

    return models
