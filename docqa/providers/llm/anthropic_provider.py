"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Differences from the Gemini adapter:
    - the system prompt is a top-level ``system`` parameter
    - PDFs travel as ``document`` content blocks, images as ``image`` blocks,
      text files are decoded and sent as a text block
    - there is no native JSON mode; the request appends a JSON-only
      instruction to the system prompt instead
    - response content is a list of blocks, of which only text blocks count
"""

from __future__ import annotations

import base64
from typing import Any

import anthropic
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import Attachment, ILLMProvider, LLMCompletion
from docqa.utils.errors import ConfigurationError, LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "claude-sonnet-4-20250514"
_JSON_ONLY_INSTRUCTION = "Respond with valid JSON only, with no prose or markdown fences."


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings, default_model: str = _DEFAULT_MODEL) -> None:
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key or None,
            timeout=settings.llm_timeout_seconds,
        )
        self._default_model = default_model

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
        if not self._api_key:
            raise ConfigurationError(
                message="ANTHROPIC_API_KEY is not configured",
                provider_name=self.get_provider_name(),
            )

        model_name = model or self._default_model
        system = system_prompt or ""
        if json_response:
            system = f"{system}\n\n{_JSON_ONLY_INSTRUCTION}".strip()

        content: list[dict[str, Any]] = []
        if attachment is not None:
            content.append(_attachment_block(attachment))
        content.append({"type": "text", "text": user_prompt})

        kwargs: dict[str, Any] = {
            "model": model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )

        completion = LLMCompletion(
            text="\n".join(text_blocks),
            model=model_name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        logger.info(
            "anthropic_completion",
            model=model_name,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
        return completion

    def get_provider_name(self) -> str:
        return "anthropic"

    def is_available(self) -> bool:
        return bool(self._api_key)


def _attachment_block(attachment: Attachment) -> dict[str, Any]:
    """Map an attachment onto the matching Anthropic content block type."""
    if attachment.mime_type.startswith("text/"):
        return {"type": "text", "text": attachment.data.decode("utf-8", errors="replace")}
    b64 = base64.b64encode(attachment.data).decode("ascii")
    block_type = "image" if attachment.mime_type.startswith("image/") else "document"
    return {
        "type": block_type,
        "source": {"type": "base64", "media_type": attachment.mime_type, "data": b64},
    }
