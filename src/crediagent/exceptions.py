"""Exception hierarchy for crediagent.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from CrediAgentError and support optional suggestions
to help callers resolve issues.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crediagent.executor.output import Violation


class CrediAgentError(Exception):
    """Base exception for all crediagent errors.

    All custom exceptions in the package inherit from this class.
    Supports an optional suggestion message to help users resolve the issue.

    Attributes:
        suggestion: Optional actionable advice for resolving the error.
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        """Initialize a CrediAgentError.

        Args:
            message: The error message describing what went wrong.
            suggestion: Optional advice for resolving the error.
        """
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        """Format the error message with optional suggestion."""
        msg = super().__str__()
        if self.suggestion:
            msg += f"\n\n💡 Suggestion: {self.suggestion}"
        return msg

    @property
    def message(self) -> str:
        """Return the bare error message without the suggestion."""
        return super().__str__()

    @property
    def error_type(self) -> str:
        """Return the type name for display purposes."""
        return self.__class__.__name__


class ConfigurationError(CrediAgentError):
    """Raised when model configuration is invalid.

    This includes malformed YAML, missing credentials, or invalid
    sampling values.

    Attributes:
        field_path: Optional path to the invalid field (e.g., 'models.0.temperature').
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        field_path: str | None = None,
    ) -> None:
        self.field_path = field_path
        super().__init__(message, suggestion)


class TemplateError(CrediAgentError):
    """Raised when Jinja2 prompt rendering fails."""

    pass


class UnsupportedModelError(CrediAgentError):
    """Raised when a model name matches no known provider pattern.

    This is fatal and never retried.

    Attributes:
        model: The model name that could not be mapped to a provider.
    """

    def __init__(self, model: str, suggestion: str | None = None) -> None:
        self.model = model
        super().__init__(
            f"Unsupported model: {model}. Unable to infer provider.",
            suggestion
            or "Use a model name starting with 'gpt-', 'o1-', 'claude-' or containing 'gemini'",
        )


class InvalidArgumentError(CrediAgentError):
    """Raised when an executor is called with invalid arguments.

    For example, a consensus call with zero models.
    """

    pass


class ProviderInvocationError(CrediAgentError):
    """Raised when a single provider call fails.

    This includes network errors, SDK exceptions, and per-call timeouts.

    Attributes:
        model: The model whose invocation failed.
        is_timeout: True when the failure was the per-call timeout expiring.
        status_code: HTTP status code reported by the SDK, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str,
        is_timeout: bool = False,
        status_code: int | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.model = model
        self.is_timeout = is_timeout
        self.status_code = status_code
        super().__init__(message, suggestion)


class SchemaValidationError(CrediAgentError):
    """Raised when a model response does not conform to the requested schema.

    Attributes:
        violations: The individual rule violations, in encounter order.
    """

    def __init__(
        self,
        message: str,
        violations: list[Violation] | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.violations = list(violations or [])
        super().__init__(message, suggestion)


class StructuredOutputError(CrediAgentError):
    """Raised when every structured-output attempt for one model failed.

    Attributes:
        model: The model that exhausted its attempts.
        attempts: Number of attempts made.
        last_error: The failure from the final attempt.
    """

    def __init__(
        self,
        *,
        model: str,
        attempts: int,
        last_error: BaseException | None,
        suggestion: str | None = None,
    ) -> None:
        self.model = model
        self.attempts = attempts
        self.last_error = last_error
        reason = describe_error(last_error) if last_error is not None else "unknown error"
        super().__init__(
            f"Structured output failed after {attempts} attempts for {model}: {reason}",
            suggestion
            or "Simplify the schema or raise max_retries; check the model supports JSON output",
        )


class AllModelsFailedError(CrediAgentError):
    """Raised when every branch of a consensus call failed.

    Attributes:
        failures: Mapping of model name to that branch's failure reason,
            in the order models were supplied.
    """

    def __init__(self, failures: dict[str, str], suggestion: str | None = None) -> None:
        self.failures = dict(failures)
        details = "; ".join(f"{model}: {reason}" for model, reason in self.failures.items())
        super().__init__(
            f"All models failed to execute ({details})",
            suggestion or "Check provider credentials and network connectivity",
        )


class AggregationError(CrediAgentError):
    """Raised when the aggregator model fails to synthesize a final answer.

    Attributes:
        aggregator: Name of the aggregator model.
    """

    def __init__(self, message: str, *, aggregator: str, suggestion: str | None = None) -> None:
        self.aggregator = aggregator
        super().__init__(message, suggestion)


def describe_error(error: BaseException) -> str:
    """Return the bare message of an error, without any suggestion suffix."""
    if isinstance(error, CrediAgentError):
        return error.message
    return str(error) or type(error).__name__
