"""Executor module for crediagent.

This module handles schema validation, prompt escalation, template
rendering, and the result envelopes. The executors themselves live in
``crediagent.executor.agent``, which depends on the provider layer.
"""

from crediagent.executor.escalation import escalate_prompt
from crediagent.executor.output import (
    Invalid,
    Valid,
    ValidationOutcome,
    Violation,
    json_schema_for,
    parse_json_output,
    validate,
)
from crediagent.executor.results import ConsensusEnvelope, ResponseEnvelope
from crediagent.executor.template import TemplateRenderer

__all__ = [
    "ConsensusEnvelope",
    "Invalid",
    "ResponseEnvelope",
    "TemplateRenderer",
    "Valid",
    "ValidationOutcome",
    "Violation",
    "escalate_prompt",
    "json_schema_for",
    "parse_json_output",
    "validate",
]
