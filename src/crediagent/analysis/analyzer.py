"""Credibility analysis of social-media profiles.

This module provides the CredibilityAnalyzer class, which builds the
analysis prompt from a profile and its posts, runs it across the
configured models with a structured-output schema, and turns the result
into a ProfileAnalysis.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Mapping, Sequence
from typing import Any

from crediagent.analysis.schemas import (
    AnalysisSection,
    CredibilityAnalysisResult,
    Post,
    ProfileAnalysis,
    ProfileInfo,
    ScoringResult,
)
from crediagent.config.loader import default_models_from_env
from crediagent.config.schema import ExecutionOptions, ModelIdentity
from crediagent.exceptions import AllModelsFailedError, ConfigurationError, StructuredOutputError
from crediagent.executor.agent import AgentExecutor
from crediagent.executor.template import TemplateRenderer

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.2
ANALYSIS_MAX_TOKENS = 4000
SCORING_TEMPERATURE = 0.1
SCORING_MAX_TOKENS = 1000
DEFAULT_ANALYSIS_TIMEOUT = 120.0
NEUTRAL_SCORE = 5.0

PLATFORM_LABELS = {
    "twitter": "Twitter/X",
    "linkedin": "LinkedIn",
}

DEFAULT_ANALYSIS_PROMPT = """\
Analyze the following {platform} profile for credibility based on these 8 criteria:

1. Unnecessary Complexity - Does the content use overly complex language when simpler explanations would suffice?
2. Proprietary/Pushy Selling - Is the content primarily focused on selling products or services?
3. Us-vs-Them Framing - Does the content create divisive "us vs them" narratives?
4. Overselling Narrow Interventions - Does the content oversell limited solutions as cure-alls?
5. Emotion/Story Over Data - Does the content rely more on emotional appeals than factual evidence?
6. Lack of Sourcing - Does the content fail to cite credible sources for claims?
7. Serial Contrarian - Does the content consistently take contrarian positions without justification?
8. Guru Syndrome - Does the content position the author as an infallible expert?

Profile Information:
- Username: {username}
- Display Name: {displayName}
- Bio: {bio}
- Verified: {verified}

Recent Posts ({postCount} total):
{posts}

Evaluate every criterion, list the profile's strengths, pick representative posts
that illustrate the patterns you found, and justify the final crediScore (0-10)."""

DEFAULT_SCORING_PROMPT = """\
Based on the credibility analysis provided, calculate a final credibility score from 0-10 \
using this RIGOROUS gaussian-distributed scoring system:

SCORING DISTRIBUTION (Normal Curve - Be Tough but Fair):
- 9-10 (Top 5%): EXCEPTIONAL - Consistent sourcing, balanced analysis, professional expertise. Zero red flags.
- 7-8 (Next 15%): RELIABLE - Maximum 1-2 'warning' flags, no 'fail' flags.
- 5-6 (Middle 60%): AVERAGE - 2-4 'warning' flags or 1 'fail' flag.
- 3-4 (Next 15%): CONCERNING - Multiple 'fail' flags or pervasive 'warning' patterns.
- 0-2 (Bottom 5%): UNRELIABLE - Multiple 'fail' flags across criteria.

SCORING GUIDELINES:
1. DEFAULT to 5-6 range unless evidence clearly justifies moving up/down
2. Weight 'fail' flags heavily: each 'fail' = -1.5 points, each 'warning' = -0.5 points from a baseline of 6
3. Consider CONSISTENCY across all 8 criteria

Analysis Data: {analysisData}"""


def detect_platform(username: str) -> str:
    """Guess the platform from a username or profile handle."""
    if "@" in username:
        return "twitter"
    if "linkedin" in username.lower():
        return "linkedin"
    return "unknown"


def format_posts(posts: Sequence[Post]) -> str:
    """Render posts as numbered blocks for the analysis prompt."""
    blocks: list[str] = []
    for i, post in enumerate(posts, start=1):
        lines = [f"Post {i} ({post.timestamp or 'unknown time'}):", post.content]
        if post.links:
            lines.append("Links: " + ", ".join(post.links))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class CredibilityAnalyzer:
    """Scores profile credibility using consensus across configured models.

    Example:
        >>> async with ProviderRegistry() as registry:
        ...     analyzer = CredibilityAnalyzer(AgentExecutor(ModelInvoker(registry)))
        ...     analysis = await analyzer.analyze_profile(posts, profile)
        ...     analysis.credi_score
    """

    def __init__(
        self,
        executor: AgentExecutor,
        models: Sequence[ModelIdentity] | None = None,
        prompt_template: str | None = None,
        scoring_template: str | None = None,
        mock: bool | None = None,
    ) -> None:
        """Initialize the CredibilityAnalyzer.

        Args:
            executor: Executor used for every model call.
            models: Models to consult. Defaults to those configured in the environment.
            prompt_template: Analysis prompt with ``{name}`` placeholders. Defaults to
                CREDIBILITY_ANALYSIS_PROMPT or the built-in prompt.
            scoring_template: Scoring prompt with an ``{analysisData}`` placeholder.
                Defaults to CREDIBILITY_SCORING_PROMPT or the built-in prompt.
            mock: Return canned results without calling any model. Defaults to
                MOCK_AGENT_CALL=true.
        """
        self.executor = executor
        self.models = list(models) if models else None
        self.prompt_template = (
            prompt_template
            or os.environ.get("CREDIBILITY_ANALYSIS_PROMPT")
            or DEFAULT_ANALYSIS_PROMPT
        )
        self.scoring_template = (
            scoring_template
            or os.environ.get("CREDIBILITY_SCORING_PROMPT")
            or DEFAULT_SCORING_PROMPT
        )
        self.mock = mock if mock is not None else os.environ.get("MOCK_AGENT_CALL") == "true"
        self.renderer = TemplateRenderer()

    def default_models(self) -> list[ModelIdentity]:
        """Return the configured models, falling back to the environment.

        Raises:
            ConfigurationError: If no models are configured anywhere.
        """
        if self.models:
            return list(self.models)
        return default_models_from_env()

    def check_configuration(self) -> tuple[bool, list[str]]:
        """Report whether any model is available, and which ones."""
        try:
            models = self.default_models()
        except ConfigurationError:
            return False, []
        return True, [m.name for m in models]

    def build_credibility_prompt(
        self,
        posts: Sequence[Post | Mapping[str, Any]],
        profile: ProfileInfo | Mapping[str, Any],
    ) -> str:
        """Fill the analysis prompt template for one profile."""
        post_models = [_as_post(p) for p in posts]
        info = _as_profile(profile)
        platform = info.platform or detect_platform(info.username or "")

        return self.renderer.render_placeholders(
            self.prompt_template,
            {
                "username": info.username or "unknown",
                "displayName": info.display_name or "unknown",
                "bio": info.bio or "No bio available",
                "verified": "Yes" if info.verified else "No",
                "postCount": len(post_models),
                "posts": format_posts(post_models),
                "platform": PLATFORM_LABELS.get(platform, "social media"),
            },
        )

    def build_scoring_prompt(self, analysis_data: Any) -> str:
        return self.renderer.render_placeholders(
            self.scoring_template,
            {"analysisData": json.dumps(analysis_data, default=str)},
        )

    async def analyze_profile(
        self,
        posts: Sequence[Post | Mapping[str, Any]],
        profile: ProfileInfo | Mapping[str, Any],
        timeout: float = DEFAULT_ANALYSIS_TIMEOUT,
    ) -> ProfileAnalysis:
        """Analyze a profile's credibility across every configured model.

        The first valid analysis (by model order) supplies the score and
        sections; tokens are summed over every model that answered. When
        no model produces a valid analysis, a neutral result flagged
        ``degraded`` is returned instead of raising.

        Raises:
            ConfigurationError: If no models are configured.
        """
        info = _as_profile(profile)
        username = info.username or "unknown"
        platform = info.platform or detect_platform(username)

        if self.mock:
            logger.info(f"Returning mock analysis for {username}")
            return _mock_analysis(username, platform)

        prompt = self.build_credibility_prompt(posts, info)
        models = self.default_models()
        options = ExecutionOptions(
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=ANALYSIS_MAX_TOKENS,
            timeout=timeout,
        )

        start = time.monotonic()
        try:
            consensus = await self.executor.agent_consensus(
                models, prompt, options, schema=CredibilityAnalysisResult
            )
        except (AllModelsFailedError, StructuredOutputError) as e:
            logger.error(f"Credibility analysis failed for {username}: {e.message}")
            return ProfileAnalysis(
                username=username,
                platform=platform,
                credi_score=NEUTRAL_SCORE,
                sections=[
                    AnalysisSection(
                        name="raw_analysis",
                        data={
                            "Analysis Result": e.message,
                            "Note": "No model produced a structured analysis",
                        },
                    )
                ],
                processing_time=time.monotonic() - start,
                model_used=", ".join(m.name for m in models),
                tokens_used=0,
                degraded=True,
            )

        result: CredibilityAnalysisResult = consensus.responses[0].content
        return ProfileAnalysis(
            username=username,
            platform=platform,
            credi_score=result.credi_score,
            sections=_sections_from(result),
            processing_time=time.monotonic() - start,
            model_used=", ".join(consensus.models),
            tokens_used=consensus.total_tokens,
        )

    async def score_profile(
        self,
        analysis_data: Any,
        models: Sequence[ModelIdentity] | None = None,
    ) -> ScoringResult:
        """Compute a final score from analysis data using a single model.

        Raises:
            ConfigurationError: If no models are configured.
            AllModelsFailedError: If the scoring model failed.
        """
        if self.mock:
            return ScoringResult(score=7.5, reasoning="Mock scoring result for testing")

        scoring_models = list(models) if models else self.default_models()[:1]
        consensus = await self.executor.agent_consensus(
            scoring_models,
            self.build_scoring_prompt(analysis_data),
            ExecutionOptions(temperature=SCORING_TEMPERATURE, max_tokens=SCORING_MAX_TOKENS),
            schema=ScoringResult,
        )
        return consensus.responses[0].content


def _as_post(post: Post | Mapping[str, Any]) -> Post:
    return post if isinstance(post, Post) else Post.model_validate(post)


def _as_profile(profile: ProfileInfo | Mapping[str, Any]) -> ProfileInfo:
    return profile if isinstance(profile, ProfileInfo) else ProfileInfo.model_validate(profile)


def _sections_from(result: CredibilityAnalysisResult) -> list[AnalysisSection]:
    data = result.model_dump(by_alias=True, exclude_none=True)
    return [
        AnalysisSection(name="overview", data=data["overview"]),
        AnalysisSection(name="strengths", data=data["strengths"]),
        AnalysisSection(name="criteria_evaluation", data=data["criteriaEvaluation"]),
        AnalysisSection(name="representative_posts", data=data["representativePosts"]),
        AnalysisSection(name="score_justification", data=data["scoreJustification"]),
    ]


def _mock_analysis(username: str, platform: str) -> ProfileAnalysis:
    return ProfileAnalysis(
        username=username,
        platform=platform,
        credi_score=7.5,
        sections=[
            AnalysisSection(
                name="overview",
                data={
                    "Sampled Posts": "10",
                    "Focus Areas": "Content Quality, Source Citations",
                    "Platform": platform,
                    "Profile Status": "Active",
                },
            )
        ],
        processing_time=1.5,
        model_used="mock-model",
        tokens_used=2500,
    )
