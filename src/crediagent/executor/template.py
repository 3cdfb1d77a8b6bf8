"""Jinja2-based template renderer for prompts.

This module provides the TemplateRenderer class used to build escalation,
synthesis, and analysis prompts, including a custom filter for JSON
serialization.
"""

from __future__ import annotations

import json
import re
from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateSyntaxError
from jinja2 import UndefinedError as Jinja2UndefinedError

from crediagent.exceptions import TemplateError

# Matches single-brace placeholders such as {username}
_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class TemplateRenderer:
    """Jinja2-based template renderer for prompts.

    Uses StrictUndefined to fail fast on missing variables and provides
    a ``json`` filter for embedding schemas and structured data.

    Example:
        >>> renderer = TemplateRenderer()
        >>> renderer.render("Hello {{ name }}!", {"name": "World"})
        'Hello World!'
        >>> renderer.render_placeholders("Hi {user}", {"user": "ada"})
        'Hi ada'
    """

    def __init__(self) -> None:
        """Initialize the template renderer with Jinja2 environment."""
        self.env = Environment(
            loader=BaseLoader(),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters["json"] = self._json_filter

    @staticmethod
    def _json_filter(value: Any, indent: int = 2) -> str:
        """Serialize value to formatted JSON string."""
        return json.dumps(value, indent=indent, default=str)

    def render(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string with the given context.

        Args:
            template: Jinja2 template string.
            context: Variables available in the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: If rendering fails due to missing variables or syntax errors.
        """
        try:
            tmpl = self.env.from_string(template)
            return tmpl.render(**context)
        except Jinja2UndefinedError as e:
            variable_name = self._extract_variable_name(str(e))
            raise TemplateError(
                f"Undefined variable in template: {e}",
                suggestion=f"Ensure variable '{variable_name}' is defined in the context",
            ) from e
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error: {e}",
                suggestion="Check template syntax for Jinja2 compatibility",
            ) from e

    def render_placeholders(self, template: str, values: dict[str, Any]) -> str:
        """Substitute ``{name}`` placeholders, leaving unknown ones untouched.

        Operator-supplied prompt templates (e.g. from environment variables)
        use this single-brace style rather than Jinja2 syntax.
        """

        def replace(match: re.Match) -> str:
            key = match.group(1)
            if key in values:
                return str(values[key])
            return match.group(0)

        return _PLACEHOLDER.sub(replace, template)

    @staticmethod
    def _extract_variable_name(error_msg: str) -> str:
        """Extract variable name from Jinja2 undefined error message."""
        # Jinja2 error messages are like "'name' is undefined"
        if "'" in error_msg:
            parts = error_msg.split("'")
            if len(parts) >= 2:
                return parts[1]
        return "unknown"
