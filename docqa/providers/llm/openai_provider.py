"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client.  When ``openai_base_url`` is set the
client points at that endpoint instead (any OpenAI-compatible server).
PDF attachments are sent as ``file`` content parts, images as
``image_url`` data URIs, and text files inline.  JSON mode maps onto
``response_format={"type": "json_object"}``; callers that expect an array
unwrap the single-array object via :func:`docqa.utils.json_parsing.expect_array`.
"""

from __future__ import annotations

import base64
from typing import Any

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import Attachment, ILLMProvider, LLMCompletion
from docqa.utils.errors import ConfigurationError, LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "gpt-4o-mini"


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings, default_model: str = _DEFAULT_MODEL) -> None:
        self._api_key = settings.openai_api_key
        client_kwargs: dict[str, Any] = {
            "api_key": self._api_key or "unset",
            "timeout": openai.Timeout(settings.llm_timeout_seconds, connect=10.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._default_model = default_model
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

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
                message="OPENAI_API_KEY is not configured",
                provider_name=self.get_provider_name(),
            )

        model_name = model or self._default_model
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        if attachment is None:
            messages.append({"role": "user", "content": user_prompt})
        else:
            messages.append(
                {
                    "role": "user",
                    "content": [{"type": "text", "text": user_prompt}, _attachment_part(attachment)],
                }
            )

        kwargs: dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_response:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )

        usage = response.usage
        completion = LLMCompletion(
            text=content,
            model=model_name,
            input_tokens=usage.prompt_tokens if usage else None,
            output_tokens=usage.completion_tokens if usage else None,
        )
        logger.info(
            "openai_completion",
            model=model_name,
            provider=self._provider_label,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
        return completion

    def get_provider_name(self) -> str:
        return "openai"

    def is_available(self) -> bool:
        return bool(self._api_key)


def _attachment_part(attachment: Attachment) -> dict[str, Any]:
    if attachment.mime_type.startswith("text/"):
        return {"type": "text", "text": attachment.data.decode("utf-8", errors="replace")}
    b64 = base64.b64encode(attachment.data).decode("ascii")
    data_uri = f"data:{attachment.mime_type};base64,{b64}"
    if attachment.mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_uri}}
    return {
        "type": "file",
        "file": {"filename": attachment.file_name or "document", "file_data": data_uri},
    }
