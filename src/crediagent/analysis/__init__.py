"""Credibility analysis built on the executors.

This module provides the result schemas used as structured output and
the CredibilityAnalyzer that scores social-media profiles.
"""

from crediagent.analysis.analyzer import CredibilityAnalyzer, detect_platform
from crediagent.analysis.schemas import (
    CredibilityAnalysisResult,
    Post,
    ProfileAnalysis,
    ProfileInfo,
    ScoringResult,
)

__all__ = [
    "CredibilityAnalysisResult",
    "CredibilityAnalyzer",
    "Post",
    "ProfileAnalysis",
    "ProfileInfo",
    "ScoringResult",
    "detect_platform",
]
