"""Synthesis prompt given to the aggregator model."""

from __future__ import annotations

from collections.abc import Sequence

from crediagent.executor.results import ResponseEnvelope
from crediagent.executor.template import TemplateRenderer

SYNTHESIS_TEMPLATE = """\
You are tasked with analyzing multiple AI model responses to the same prompt \
and creating a single, comprehensive, and well-reasoned final response.

Original Prompt:
{{ prompt }}

Multiple Model Responses:
{% for response in responses %}
## Response {{ loop.index }} ({{ response.model }}):
{{ response.content }}
{% endfor %}
Instructions:
1. Analyze all the responses above for common themes, insights, and conclusions
2. Identify areas where models agree and where they differ
3. Synthesize the best elements from each response
4. Create a single, coherent response that represents the collective intelligence
5. Maintain the same format and structure as expected from the original prompt
6. If there are conflicting viewpoints, use your judgment to determine the most reasonable conclusion
7. Ensure the final response is comprehensive and addresses all aspects of the original prompt

Provide your synthesized response:"""

_renderer = TemplateRenderer()


def build_synthesis_prompt(prompt: str, responses: Sequence[ResponseEnvelope[str]]) -> str:
    """Combine the original instructions with every labeled input response.

    Args:
        prompt: The original aggregation instructions, kept verbatim.
        responses: Successful consensus responses, in input order.

    Returns:
        The aggregator prompt.
    """
    return _renderer.render(
        SYNTHESIS_TEMPLATE,
        {"prompt": prompt, "responses": list(responses)},
    )
