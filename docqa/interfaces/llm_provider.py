"""Abstract base class for LLM service providers.

Defines the request/response completion contract used by document
extraction and QA generation: a system prompt, a user prompt, an optional
binary attachment (the source document), and an optional request for a
JSON-shaped response.  Implementations wrap Gemini (REST via httpx),
Anthropic or an OpenAI-compatible API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Attachment:
    """A binary document sent alongside the prompt."""

    data: bytes
    mime_type: str
    file_name: str | None = None


@dataclass(frozen=True)
class LLMCompletion:
    """Text returned by a provider plus token usage when reported."""

    text: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None


# Concrete implementations: GeminiLLMProvider, AnthropicLLMProvider, OpenAILLMProvider
# Located in: docqa/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the extraction and QA pipeline."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        attachment: Attachment | None = None,
        json_response: bool = False,
    ) -> LLMCompletion:
        """Generate a completion from the model.

        Parameters
        ----------
        system_prompt:
            Instruction message setting the model's behaviour, or ``None``.
        user_prompt:
            The prompt containing the actual request.
        model:
            Model identifier; the provider's default when ``None``.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on response tokens.
        attachment:
            Optional document bytes to send with the prompt.
        json_response:
            Ask the provider to constrain output to JSON where supported.

        Returns
        -------
        LLMCompletion
            The response text and token usage.

        Raises
        ------
        docqa.utils.errors.ConfigurationError
            If credentials are missing.
        docqa.utils.errors.LLMError
            If the call fails or returns no text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider identifier, e.g. ``"gemini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
