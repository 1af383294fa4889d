"""Unit tests for LLM provider adapters — Gemini, Anthropic, OpenAI — and the registry."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import Attachment
from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.gemini_provider import GeminiLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.utils.errors import ConfigurationError, LLMError


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(**overrides) -> Settings:
    defaults = {
        "gemini_api_key": "gemini-test-key",
        "gemini_base_url": "https://gemini.test",
        "anthropic_api_key": "test-anthropic",
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "llm_timeout_seconds": 5.0,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _gemini(handler, **overrides) -> GeminiLLMProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiLLMProvider(_settings(**overrides), http_client=client)


def _gemini_reply(text: str) -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {"promptTokenCount": 11, "candidatesTokenCount": 7},
    }


# ======================================================================
# Gemini LLM Provider
# ======================================================================


class TestGeminiLLMProvider:
    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_gemini_reply('{"ok": true}'))

        provider = _gemini(handler)
        result = await provider.complete(
            "be precise",
            "extract",
            model="gemini-test",
            temperature=0.1,
            max_tokens=500,
            attachment=Attachment(data=b"%PDF", mime_type="application/pdf"),
            json_response=True,
        )

        assert result.text == '{"ok": true}'
        assert result.model == "gemini-test"
        assert (result.input_tokens, result.output_tokens) == (11, 7)

        request = seen[0]
        assert str(request.url) == "https://gemini.test/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "gemini-test-key"
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "extract"}
        assert parts[1]["inline_data"] == {
            "mime_type": "application/pdf",
            "data": base64.b64encode(b"%PDF").decode("ascii"),
        }
        assert body["systemInstruction"] == {"parts": [{"text": "be precise"}]}
        assert body["generationConfig"] == {
            "temperature": 0.1,
            "maxOutputTokens": 500,
            "responseMimeType": "application/json",
        }

    @pytest.mark.asyncio
    async def test_no_system_prompt_or_json_mode(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=_gemini_reply("plain"))

        await _gemini(handler).complete(None, "hi")

        assert "systemInstruction" not in seen[0]
        assert "responseMimeType" not in seen[0]["generationConfig"]

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_status_and_body(self) -> None:
        provider = _gemini(lambda request: httpx.Response(429, text="quota exhausted"))
        with pytest.raises(LLMError, match="Gemini API error: 429 - quota exhausted"):
            await provider.complete(None, "hi")

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self) -> None:
        provider = _gemini(lambda request: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(LLMError, match="No content returned from Gemini"):
            await provider.complete(None, "hi")

    @pytest.mark.asyncio
    async def test_transport_error_raises_llm_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LLMError, match="Gemini request failed"):
            await _gemini(handler).complete(None, "hi")

    @pytest.mark.asyncio
    async def test_missing_key_is_a_configuration_error(self) -> None:
        provider = _gemini(lambda request: httpx.Response(200), gemini_api_key="")
        assert provider.is_available() is False
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            await provider.complete(None, "hi")


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text='[{"question": "q"}]')]
        mock_response.usage = MagicMock(input_tokens=20, output_tokens=5)

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "docqa.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(_settings())
            result = await provider.complete(
                "system",
                "user",
                model="claude-test",
                attachment=Attachment(data=b"%PDF", mime_type="application/pdf"),
                json_response=True,
            )

        assert result.text == '[{"question": "q"}]'
        assert result.input_tokens == 20
        kwargs = mock_client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["system"].startswith("system")
        assert "JSON" in kwargs["system"]
        blocks = kwargs["messages"][0]["content"]
        assert blocks[0]["type"] == "document"
        assert blocks[-1] == {"type": "text", "text": "user"}

    @pytest.mark.asyncio
    async def test_complete_error(self) -> None:
        import anthropic

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="overloaded", request=MagicMock(), body=None)
        )

        with patch(
            "docqa.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(_settings())
            with pytest.raises(LLMError, match="Anthropic API error"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        provider = AnthropicLLMProvider(_settings(anthropic_api_key=""))
        assert provider.is_available() is False
        with pytest.raises(ConfigurationError):
            await provider.complete(None, "user")


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content='{"pairs": []}'))]
        mock_response.usage = MagicMock(prompt_tokens=9, completion_tokens=3)

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch(
            "docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client
        ):
            provider = OpenAILLMProvider(_settings())
            result = await provider.complete("system prompt", "user prompt", json_response=True)

        assert result.text == '{"pairs": []}'
        assert (result.input_tokens, result.output_tokens) == (9, 3)
        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}

    @pytest.mark.asyncio
    async def test_empty_response_raises(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content=""))]

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch(
            "docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client
        ):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(LLMError, match="empty response"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_complete_error(self) -> None:
        import openai

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="Rate limit exceeded", request=MagicMock(), body=None)
        )

        with patch(
            "docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client
        ):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(LLMError, match="Rate limit exceeded"):
                await provider.complete("system", "user")


# ======================================================================
# Registry
# ======================================================================


class TestLLMProviderRegistry:
    def _provider(self, name: str, available: bool = True) -> MagicMock:
        provider = MagicMock()
        provider.get_provider_name.return_value = name
        provider.is_available.return_value = available
        return provider

    def test_vendor_and_product_names_resolve(self) -> None:
        gemini = self._provider("gemini")
        claude = self._provider("anthropic")
        registry = LLMProviderRegistry([gemini, claude])

        assert registry.get("google") is gemini
        assert registry.get("Gemini") is gemini
        assert registry.get("claude") is claude

    def test_unknown_provider(self) -> None:
        registry = LLMProviderRegistry([self._provider("gemini")])
        with pytest.raises(ConfigurationError, match="No LLM provider configured for 'openai'"):
            registry.get("openai")

    def test_available(self) -> None:
        registry = LLMProviderRegistry(
            [self._provider("openai", available=False), self._provider("gemini")]
        )
        assert registry.names() == ["gemini", "openai"]
        assert registry.available() == {"gemini": True, "openai": False}
