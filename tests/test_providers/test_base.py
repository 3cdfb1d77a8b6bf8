"""Unit tests for the provider base helpers."""

import pytest
from pydantic import BaseModel

from crediagent.providers.base import (
    WRAPPED_RESULT_KEY,
    ModelProvider,
    object_schema_for,
    unwrap_result,
    user_message,
)


class Flag(BaseModel):
    category: str
    severity: int


class Report(BaseModel):
    flags: list[Flag]


class TestModelProvider:
    """Tests for the abstract interface."""

    def test_cannot_instantiate_abstract(self) -> None:
        with pytest.raises(TypeError):
            ModelProvider()  # type: ignore[abstract]


class TestUserMessage:
    def test_builds_user_role(self) -> None:
        assert user_message("Hi") == {"role": "user", "content": "Hi"}


class TestObjectSchemaFor:
    """Tests for object-root schema construction."""

    def test_model_schema_is_not_wrapped(self) -> None:
        schema, wrapped = object_schema_for(Flag)
        assert wrapped is False
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"category", "severity"}

    def test_list_schema_is_wrapped(self) -> None:
        schema, wrapped = object_schema_for(list[str])
        assert wrapped is True
        assert schema["required"] == [WRAPPED_RESULT_KEY]
        assert schema["properties"][WRAPPED_RESULT_KEY]["type"] == "array"

    def test_defs_are_hoisted_to_root(self) -> None:
        schema, wrapped = object_schema_for(list[Flag])
        assert wrapped is True
        assert "Flag" in schema["$defs"]
        assert "$defs" not in schema["properties"][WRAPPED_RESULT_KEY]

    def test_nested_model_keeps_defs(self) -> None:
        schema, wrapped = object_schema_for(Report)
        assert wrapped is False
        assert "Flag" in schema["$defs"]


class TestUnwrapResult:
    def test_unwraps_when_wrapped(self) -> None:
        assert unwrap_result({"result": [1, 2]}, True) == [1, 2]

    def test_passthrough_when_not_wrapped(self) -> None:
        assert unwrap_result({"result": 1}, False) == {"result": 1}

    def test_passthrough_when_key_missing(self) -> None:
        assert unwrap_result([1, 2], True) == [1, 2]
