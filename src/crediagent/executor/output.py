"""Output parsing and schema validation for model responses.

This module checks arbitrary values against caller-supplied schemas.
A schema is either a Pydantic model class or any type Pydantic's
TypeAdapter accepts (``list[str]``, ``Literal[...]``, dataclasses, ...).
Validation never raises for bad input: it returns a ``Valid`` or an
``Invalid`` outcome listing every violated rule.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from crediagent.exceptions import SchemaValidationError

T = TypeVar("T")

ROOT_PATH = "<root>"

_JSON_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_JSON_PREFIXES = ("{", "[", "```")


@dataclass(frozen=True)
class Violation:
    """A single broken schema rule.

    Attributes:
        path: Dotted path to the offending field ('<root>' for the value itself).
        message: Human-readable reason, including the actual input type.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class Valid(Generic[T]):
    """Successful validation carrying the typed value."""

    value: T

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """Failed validation carrying every violation in encounter order."""

    violations: list[Violation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return False

    def summary(self) -> str:
        """Join violations into a single diagnostic line."""
        return "; ".join(str(v) for v in self.violations)

    def to_error(self) -> SchemaValidationError:
        """Convert this outcome into a raisable SchemaValidationError."""
        return SchemaValidationError(
            f"Response does not match schema: {self.summary()}",
            violations=self.violations,
            suggestion="Ensure the model returns every required field with the exact type",
        )


ValidationOutcome = Valid[Any] | Invalid


def validate(raw_value: Any, schema: Any) -> ValidationOutcome:
    """Validate a value against a schema.

    Strings that look like JSON (an object, an array or a code fence) are
    decoded first. Other strings are validated as they are, so enum members,
    literals and dates pass through; JSON embedded in prose is only extracted
    when the text itself does not validate.

    Args:
        raw_value: Value to check, typically decoded model output.
        schema: Pydantic model class or TypeAdapter-compatible type.

    Returns:
        ``Valid`` with the typed value, or ``Invalid`` with violations.

    Example:
        >>> from pydantic import BaseModel
        >>> class Score(BaseModel):
        ...     score: float
        >>> validate({"score": 7}, Score).value.score
        7.0
        >>> validate({}, Score).violations[0].path
        'score'
    """
    if not isinstance(raw_value, str) or schema is str:
        return _check(raw_value, schema)

    decode_error: SchemaValidationError | None = None
    if raw_value.lstrip().startswith(_JSON_PREFIXES):
        try:
            return _check(parse_json_output(raw_value), schema)
        except SchemaValidationError as e:
            decode_error = e

    outcome = _check(raw_value, schema)
    if isinstance(outcome, Valid):
        return outcome

    if decode_error is None and ("{" in raw_value or "[" in raw_value):
        try:
            return _check(parse_json_output(raw_value), schema)
        except SchemaValidationError as e:
            decode_error = e

    if decode_error is not None:
        return Invalid([Violation(ROOT_PATH, decode_error.message)])
    return outcome


def _check(value: Any, schema: Any) -> ValidationOutcome:
    try:
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            typed = schema.model_validate(value)
        else:
            typed = TypeAdapter(schema).validate_python(value)
    except PydanticValidationError as e:
        return Invalid([_to_violation(err) for err in e.errors()])
    return Valid(typed)


def _to_violation(error: Any) -> Violation:
    """Convert one Pydantic error dict into a Violation."""
    loc = error.get("loc", ())
    path = ".".join(str(part) for part in loc) or ROOT_PATH
    message = error.get("msg", "Invalid value")
    if error.get("type") != "missing" and "input" in error:
        message = f"{message} (got {type(error['input']).__name__})"
    return Violation(path, message)


def json_schema_for(schema: Any) -> dict[str, Any]:
    """Return the JSON Schema document for a schema.

    Providers use this to drive their native structured-output features.
    """
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema()
    return TypeAdapter(schema).json_schema()


def schema_name(schema: Any) -> str:
    """Return a short identifier for a schema, safe for tool/format names."""
    name = getattr(schema, "__name__", None) or "output"
    return re.sub(r"[^a-zA-Z0-9_-]", "_", name)[:64]


def serialize_value(value: Any) -> str:
    """Serialize a validated value to JSON text."""
    return json.dumps(to_jsonable_python(value), ensure_ascii=False)


def parse_json_output(raw_response: str) -> Any:
    """Parse JSON from a model's raw text response.

    Attempts to extract JSON from the response, handling common cases
    like markdown code blocks and leading prose.

    Args:
        raw_response: The raw text response from the model.

    Returns:
        The decoded JSON value.

    Raises:
        SchemaValidationError: If no JSON can be decoded.
    """
    text = raw_response.strip()

    json_block_match = _JSON_BLOCK.search(text)
    if json_block_match:
        text = json_block_match.group(1).strip()

    if not text.startswith(("{", "[")):
        obj_start = text.find("{")
        arr_start = text.find("[")

        if obj_start >= 0 and (arr_start < 0 or obj_start < arr_start):
            text = text[obj_start:]
        elif arr_start >= 0:
            text = text[arr_start:]

    # raw_decode tolerates trailing prose after the JSON value
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
        return value
    except json.JSONDecodeError as e:
        raise SchemaValidationError(
            f"Failed to parse JSON from model response: {e}",
            suggestion="Ensure the model outputs valid JSON without surrounding prose",
        ) from e
