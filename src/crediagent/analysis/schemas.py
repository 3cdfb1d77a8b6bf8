"""Pydantic models for credibility analysis.

The result models double as structured-output schemas: their field
descriptions end up in the JSON Schema sent to the providers, so they
are written as instructions to the model.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class OverviewSection(BaseModel):
    """High-level summary of the analysis scope, timing, and profile."""

    model_config = ConfigDict(populate_by_name=True)

    sampled_posts: str = Field(
        alias="Sampled Posts",
        description="Total number of posts analyzed from the profile (e.g., '15 posts')",
    )
    focus_areas: str = Field(
        alias="Focus Areas",
        description=(
            "Comma-separated list of main topics or themes identified in the analyzed "
            "content (e.g., 'Health advice, Nutrition claims, Personal anecdotes')"
        ),
    )
    analysis_date: str = Field(
        alias="Analysis Date",
        description="ISO timestamp of when the analysis was performed (e.g., '2024-01-15T10:30:00Z')",
    )
    platform: str = Field(
        alias="Platform",
        description="Social media platform where the profile was found (e.g., 'twitter', 'linkedin')",
    )
    profile_status: str = Field(
        alias="Profile Status",
        description="Current status of the profile (e.g., 'Active', 'Verified', 'Private', 'Suspended')",
    )


class StrengthsSection(BaseModel):
    """Positive credibility indicators, each with examples from the content."""

    model_config = ConfigDict(populate_by_name=True)

    source_citations: str | None = Field(
        default=None,
        alias="Source Citations",
        description="Examples of how the profile cites sources and references for claims",
    )
    balanced_perspective: str | None = Field(
        default=None,
        alias="Balanced Perspective",
        description="Evidence of presenting multiple viewpoints or acknowledging limitations",
    )
    expert_credentials: str | None = Field(
        default=None,
        alias="Expert Credentials",
        description="Relevant qualifications or expertise demonstrated in the content",
    )
    transparent_communication: str | None = Field(
        default=None,
        alias="Transparent Communication",
        description="Clear, honest communication style without hidden agendas",
    )
    evidence_based_claims: str | None = Field(
        default=None,
        alias="Evidence-Based Claims",
        description="Use of data, research, or factual evidence to support statements",
    )
    constructive_tone: str | None = Field(
        default=None,
        alias="Constructive Tone",
        description="Professional, respectful communication that builds understanding",
    )


class CriteriaEvaluationItem(BaseModel):
    """Evaluation of a single credibility criterion."""

    criterion: str = Field(
        description=(
            "Name of the credibility criterion being evaluated "
            "(e.g., 'Unnecessary Complexity', 'Lack of Sourcing', 'Guru Syndrome')"
        )
    )
    status: Literal["pass", "warning", "fail"] = Field(
        description=(
            "'pass' means the profile performs well on this criterion, 'warning' "
            "indicates some concerns, 'fail' means significant issues were found"
        )
    )
    evaluation: str = Field(
        description="Detailed explanation of the evaluation and the reasoning for the status"
    )
    examples: list[str] | None = Field(
        default=None,
        description="Specific excerpts or observed patterns that illustrate this criterion",
    )


class RepresentativePost(BaseModel):
    """A post that exemplifies key credibility patterns found in the profile."""

    category: str = Field(
        description="Category of post (e.g., 'Health Claim', 'Product Promotion', 'Educational Content')"
    )
    content: str = Field(description="The text of the post, quoted exactly")
    timestamp: str = Field(description="When the post was published, in a readable format")
    url: str = Field(description="Direct URL to the original post, if available")
    reasoning: str = Field(
        description="Why this post was selected and which credibility patterns it demonstrates"
    )


class ScoreJustificationSection(BaseModel):
    """Reasoning behind the numerical rating."""

    model_config = ConfigDict(populate_by_name=True)

    why_not_higher: list[str] | None = Field(
        default=None,
        alias="Why Not Higher",
        description="Factors that prevented a higher score, with concrete examples",
    )
    why_not_lower: list[str] | None = Field(
        default=None,
        alias="Why Not Lower",
        description="Positive factors that prevented a lower score",
    )
    key_factors: list[str] | None = Field(
        default=None,
        alias="Key Factors",
        description="Most important factors behind the final score, ranked by impact",
    )


class CredibilityAnalysisResult(BaseModel):
    """Complete credibility analysis: score plus a breakdown of every section."""

    model_config = ConfigDict(populate_by_name=True)

    credi_score: float = Field(
        alias="crediScore",
        ge=0,
        le=10,
        description=(
            "Overall credibility score from 0-10, where 0 is completely unreliable, "
            "5 is average credibility with mixed signals, and 10 is highly credible "
            "content with excellent sourcing and balanced perspectives"
        ),
    )
    overview: OverviewSection
    strengths: StrengthsSection
    criteria_evaluation: list[CriteriaEvaluationItem] = Field(alias="criteriaEvaluation")
    representative_posts: list[RepresentativePost] = Field(alias="representativePosts")
    score_justification: ScoreJustificationSection = Field(alias="scoreJustification")


class ScoringResult(BaseModel):
    """Scoring result with numerical score and reasoning."""

    score: float = Field(ge=0, le=10, description="Credibility score from 0-10")
    reasoning: str = Field(
        description="How the score was calculated and which factors influenced it"
    )


class Post(BaseModel):
    """One collected social-media post."""

    content: str
    timestamp: str | None = None
    url: str | None = None
    links: list[str] = Field(default_factory=list)


class ProfileInfo(BaseModel):
    """Public profile metadata of the analyzed account."""

    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    bio: str | None = None
    verified: bool = False
    platform: str | None = None


class AnalysisSection(BaseModel):
    """A named section of a finished analysis."""

    name: str
    data: Any


class ProfileAnalysis(BaseModel):
    """Outcome of analyzing one profile."""

    username: str
    platform: str
    credi_score: float
    sections: list[AnalysisSection]
    processing_time: float
    model_used: str
    tokens_used: int
    degraded: bool = False
    """True when no model produced a valid analysis and a placeholder was returned."""
