"""Unit tests for the credibility analysis models."""

from collections.abc import Callable
from typing import Any

import pytest
from pydantic import ValidationError

from crediagent.analysis.schemas import (
    CredibilityAnalysisResult,
    CriteriaEvaluationItem,
    ProfileInfo,
    ScoringResult,
)

PayloadFactory = Callable[..., dict[str, Any]]


class TestCredibilityAnalysisResult:
    def test_accepts_aliased_payload(self, analysis_payload: PayloadFactory) -> None:
        result = CredibilityAnalysisResult.model_validate(analysis_payload())

        assert result.credi_score == 6.5
        assert result.overview.sampled_posts == "12 posts"
        assert result.strengths.source_citations == "Links to peer-reviewed studies"
        assert result.strengths.balanced_perspective is None
        assert result.score_justification.key_factors == ["Consistent sourcing"]

    def test_dump_uses_aliases(self, analysis_payload: PayloadFactory) -> None:
        result = CredibilityAnalysisResult.model_validate(analysis_payload())
        data = result.model_dump(by_alias=True, exclude_none=True)

        assert data["crediScore"] == 6.5
        assert data["overview"]["Profile Status"] == "Active"
        assert data["strengths"] == {"Source Citations": "Links to peer-reviewed studies"}

    @pytest.mark.parametrize("score", [-0.1, 10.5])
    def test_score_bounds(self, analysis_payload: PayloadFactory, score: float) -> None:
        with pytest.raises(ValidationError):
            CredibilityAnalysisResult.model_validate(analysis_payload(crediScore=score))

    def test_json_schema_uses_aliases(self) -> None:
        schema = CredibilityAnalysisResult.model_json_schema()
        assert "crediScore" in schema["required"]
        assert "criteriaEvaluation" in schema["properties"]


class TestCriteriaEvaluationItem:
    def test_status_is_restricted(self) -> None:
        with pytest.raises(ValidationError):
            CriteriaEvaluationItem(criterion="Guru Syndrome", status="maybe", evaluation="?")


class TestScoringResult:
    def test_bounds(self) -> None:
        assert ScoringResult(score=10, reasoning="max").score == 10
        with pytest.raises(ValidationError):
            ScoringResult(score=11, reasoning="too high")


class TestProfileInfo:
    def test_display_name_alias_and_field_name(self) -> None:
        assert ProfileInfo.model_validate({"displayName": "Ada"}).display_name == "Ada"
        assert ProfileInfo(display_name="Ada").display_name == "Ada"
        assert ProfileInfo().verified is False
