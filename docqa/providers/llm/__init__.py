"""LLM provider adapters and the provider registry."""

from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.gemini_provider import GeminiLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.llm.registry import LLMProviderRegistry

__all__ = [
    "AnthropicLLMProvider",
    "GeminiLLMProvider",
    "LLMProviderRegistry",
    "OpenAILLMProvider",
]
