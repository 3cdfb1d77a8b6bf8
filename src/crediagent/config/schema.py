"""Pydantic models for model configuration.

This module defines the immutable model identity and per-call execution
options consumed by the executors, plus the YAML configuration file layout.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4000
DEFAULT_MAX_RETRIES = 3


class ModelIdentity(BaseModel):
    """One configured model: provider-qualified name, credential and defaults."""

    model_config = ConfigDict(frozen=True)

    name: str
    """Model name; its prefix selects the provider (e.g. 'gpt-4o-mini')."""

    api_key: str | None = Field(default=None, repr=False)
    """Credential handle. None lets the provider SDK fall back to its env var."""

    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    """Default sampling temperature."""

    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)
    """Default maximum output tokens."""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject empty model names."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()


class ExecutionOptions(BaseModel):
    """Per-call overrides. Unset fields fall back to ModelIdentity defaults."""

    model_config = ConfigDict(frozen=True)

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    """Sampling temperature override."""

    max_tokens: int | None = Field(default=None, ge=1)
    """Maximum output tokens override."""

    timeout: float | None = Field(default=None, gt=0)
    """Seconds allowed for a single model invocation."""

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    """Total structured-output attempts per model (including the first)."""

    retry_delay: float = Field(default=0.0, ge=0.0)
    """Seconds to wait between structured-output attempts."""


class AgentsConfig(BaseModel):
    """Top-level layout of a models YAML file.

    Example:
        models:
          - name: gpt-4o-mini
            api_key: ${OPENAI_API_KEY}
          - name: claude-3-haiku-20240307
            api_key: ${ANTHROPIC_API_KEY}
        aggregator:
          name: gpt-4o
          api_key: ${OPENAI_API_KEY}
        options:
          max_retries: 3
    """

    models: list[ModelIdentity]
    """Input models used for single-agent and consensus calls."""

    aggregator: ModelIdentity | None = None
    """Optional model used to synthesize consensus answers."""

    options: ExecutionOptions = Field(default_factory=ExecutionOptions)
    """Default execution options for calls made from this config."""

    @model_validator(mode="after")
    def validate_models(self) -> AgentsConfig:
        """Ensure at least one model is configured and names are unique."""
        if not self.models:
            raise ValueError("At least one model must be configured")
        names = [m.name for m in self.models]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate model names: {', '.join(duplicates)}")
        return self
