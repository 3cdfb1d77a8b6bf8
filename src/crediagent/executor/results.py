"""Result envelopes returned by the executors.

This module defines the ResponseEnvelope wrapping one model's answer,
the ConsensusEnvelope collecting every successful branch of a fan-out,
and the token estimate applied to prompts and responses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from crediagent.exceptions import describe_error

T = TypeVar("T")

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate token usage as one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class ResponseEnvelope(Generic[T]):
    """One model's answer plus execution metadata.

    Attributes:
        content: Raw text, or the validated value when a schema was used.
        model: Model name, or a composite label such as 'consensus(a,b)'.
        tokens_used: Estimated tokens over prompt and response.
        processing_time: Wall-clock seconds spent producing this envelope.
        attempts: Structured-output attempts consumed (1 for plain calls).
    """

    content: T
    model: str
    tokens_used: int
    processing_time: float
    attempts: int = 1


@dataclass(frozen=True)
class BranchFailure:
    """A consensus branch that produced no response."""

    model: str
    error: BaseException

    @property
    def reason(self) -> str:
        return describe_error(self.error)


@dataclass(frozen=True)
class ConsensusEnvelope(Generic[T]):
    """Successful branches of a consensus call, in input order.

    Attributes:
        responses: One envelope per successful model.
        processing_time: Wall-clock seconds for the whole fan-out.
        failures: Branches that failed, in input order.
    """

    responses: list[ResponseEnvelope[T]]
    processing_time: float
    failures: list[BranchFailure] = field(default_factory=list)

    @property
    def models(self) -> list[str]:
        """Names of the models that answered."""
        return [r.model for r in self.responses]

    @property
    def total_tokens(self) -> int:
        return sum(r.tokens_used for r in self.responses)

    def contents(self) -> list[Any]:
        return [r.content for r in self.responses]
