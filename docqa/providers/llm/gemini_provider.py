"""Google Gemini LLM provider adapter (REST via httpx).

Talks to the ``generateContent`` endpoint directly instead of through an
SDK so that the attachment payload (base64 ``inline_data``) and the JSON
response mode are explicit in the request body:

    POST {base_url}/v1beta/models/{model}:generateContent
    x-goog-api-key: <key>
    {
      "contents": [{"role": "user", "parts": [{"text": ...}, {"inline_data": {...}}]}],
      "systemInstruction": {"parts": [{"text": ...}]},
      "generationConfig": {"temperature": ..., "maxOutputTokens": ...,
                           "responseMimeType": "application/json"}
    }
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import Attachment, ILLMProvider, LLMCompletion
from docqa.utils.errors import ConfigurationError, LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "gemini-2.0-flash"
# Cap on how much of an error body is echoed back in the exception message.
_MAX_ERROR_BODY = 2000


class GeminiLLMProvider(ILLMProvider):
    """LLM provider backed by the Gemini ``generateContent`` REST API.

    The shared ``httpx.AsyncClient`` is injected so connection pooling and
    shutdown are owned by the application lifespan.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        default_model: str = _DEFAULT_MODEL,
    ) -> None:
        self._api_key = settings.gemini_api_key
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._timeout = settings.llm_timeout_seconds
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)
        self._default_model = default_model

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

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
                message="GEMINI_API_KEY is not configured",
                provider_name=self.get_provider_name(),
            )

        model_name = model or self._default_model
        body = self._build_request_body(
            system_prompt,
            user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            attachment=attachment,
            json_response=json_response,
        )
        url = f"{self._base_url}/v1beta/models/{model_name}:generateContent"

        try:
            response = await self._http.post(
                url,
                json=body,
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise LLMError(
                message=f"Gemini request timed out after {self._timeout:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMError(
                message=f"Gemini request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise LLMError(
                message=f"Gemini API error: {response.status_code} - {response.text[:_MAX_ERROR_BODY]}",
                provider_name=self.get_provider_name(),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise LLMError(
                message="Gemini returned a non-JSON response body",
                provider_name=self.get_provider_name(),
            ) from exc

        text = self._extract_text(payload)
        if not text:
            raise LLMError(
                message="No content returned from Gemini",
                provider_name=self.get_provider_name(),
            )

        usage = payload.get("usageMetadata") or {}
        completion = LLMCompletion(
            text=text,
            model=model_name,
            input_tokens=usage.get("promptTokenCount"),
            output_tokens=usage.get("candidatesTokenCount"),
        )
        logger.info(
            "gemini_completion",
            model=model_name,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            attachment_bytes=len(attachment.data) if attachment else 0,
        )
        return completion

    def get_provider_name(self) -> str:
        return "gemini"

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Request / response helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_request_body(
        system_prompt: str | None,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        attachment: Attachment | None,
        json_response: bool,
    ) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": user_prompt}]
        if attachment is not None:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": attachment.mime_type,
                        "data": base64.b64encode(attachment.data).decode("ascii"),
                    }
                }
            )

        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        }
        if json_response:
            generation_config["responseMimeType"] = "application/json"

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return body

    @staticmethod
    def _extract_text(payload: dict[str, Any]) -> str:
        """Join the text parts of the first candidate (empty string if none)."""
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        content = candidates[0].get("content") or {}
        texts = [p.get("text", "") for p in content.get("parts") or [] if isinstance(p, dict)]
        return "".join(texts).strip()
