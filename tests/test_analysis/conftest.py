"""Shared fixtures for credibility analysis tests."""

from collections.abc import Callable
from typing import Any

import pytest


def build_analysis_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "crediScore": 6.5,
        "overview": {
            "Sampled Posts": "12 posts",
            "Focus Areas": "Nutrition, Fitness",
            "Analysis Date": "2024-01-15T10:30:00Z",
            "Platform": "twitter",
            "Profile Status": "Active",
        },
        "strengths": {"Source Citations": "Links to peer-reviewed studies"},
        "criteriaEvaluation": [
            {"criterion": "Lack of Sourcing", "status": "pass", "evaluation": "Cites studies"}
        ],
        "representativePosts": [
            {
                "category": "Health Claim",
                "content": "New meta-analysis on sleep",
                "timestamp": "Jan 3, 2024",
                "url": "https://x.com/ada/status/1",
                "reasoning": "Well sourced",
            }
        ],
        "scoreJustification": {"Key Factors": ["Consistent sourcing"]},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def analysis_payload() -> Callable[..., dict[str, Any]]:
    """Factory for a valid aliased analysis payload."""
    return build_analysis_payload
