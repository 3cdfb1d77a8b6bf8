"""Providers module for crediagent.

This module defines the model provider abstraction, the implementations
for each LLM SDK (OpenAI, Anthropic Claude, Google Gemini), the registry
that maps model names to them, and the invoker used by the executors.
"""

from crediagent.providers.base import InvocationSettings, ModelProvider, user_message
from crediagent.providers.claude import ClaudeProvider
from crediagent.providers.gemini import GeminiProvider
from crediagent.providers.invoker import ModelInvoker
from crediagent.providers.openai import OpenAIProvider
from crediagent.providers.registry import ProviderRegistry

__all__ = [
    "ClaudeProvider",
    "GeminiProvider",
    "InvocationSettings",
    "ModelInvoker",
    "ModelProvider",
    "OpenAIProvider",
    "ProviderRegistry",
    "user_message",
]
