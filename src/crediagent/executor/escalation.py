"""Prompt escalation for structured-output retries.

After a response fails schema validation, the retry prompt is the original
prompt followed by explicit formatting instructions. The original prompt is
always kept verbatim as a prefix.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from crediagent.executor.output import Violation, json_schema_for
from crediagent.executor.template import TemplateRenderer

ESCALATION_TEMPLATE = """\
IMPORTANT - RESPONSE FORMAT REQUIREMENTS:
{% if violations %}
Your previous response did not match the required format:
{% for violation in violations %}
- {{ violation.path }}: {{ violation.message }}
{% endfor %}
{% endif %}
1. Respond ONLY with a single JSON value that conforms to the schema below.
2. Do not wrap the JSON in prose, explanations, or markdown code fences.
3. Include every required field, using exactly the declared types.
4. Numeric values must respect their minimum and maximum bounds, and enumerated
   values must be one of the allowed options.
{% if json_schema %}

JSON Schema:
{{ json_schema | json }}
{% endif %}
"""

_renderer = TemplateRenderer()


def escalate_prompt(
    prompt: str,
    schema: Any | None = None,
    violations: Sequence[Violation] | None = None,
) -> str:
    """Build a retry prompt that is more likely to produce conforming output.

    Args:
        prompt: The original prompt, kept unchanged as the prefix.
        schema: Optional schema whose JSON Schema is embedded in the instructions.
        violations: Optional violations from the previous attempt.

    Returns:
        The escalated prompt.
    """
    instructions = _renderer.render(
        ESCALATION_TEMPLATE,
        {
            "violations": list(violations or []),
            "json_schema": json_schema_for(schema) if schema is not None else None,
        },
    )
    return f"{prompt}\n\n{instructions.strip()}"
