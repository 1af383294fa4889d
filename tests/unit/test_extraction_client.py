"""Unit tests for ExtractionClient and extraction response parsing."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.interfaces.llm_provider import LLMCompletion
from docqa.models.extraction import FlatContent, PagedContent, PromptConfig
from docqa.services.document_converter import PDF_MIME_TYPE, DocumentConverter
from docqa.services.extraction_client import (
    UNSTRUCTURED_WARNING,
    ExtractionClient,
    parse_extraction_response,
)
from docqa.utils.errors import ConfigurationError, ExtractionError, LLMError


def _prompt(**overrides) -> PromptConfig:
    defaults = {
        "function_name": "extraction",
        "model_provider": "google",
        "model_name": "gemini-test",
        "user_prompt_template": "Extract the text content from this document.",
        "temperature": 0.1,
        "max_tokens": 1000,
    }
    defaults.update(overrides)
    return PromptConfig(**defaults)


# ---------------------------------------------------------------------------
# parse_extraction_response
# ---------------------------------------------------------------------------


class TestParseExtractionResponse:
    def test_pages_object(self) -> None:
        content = parse_extraction_response(
            '{"title": "Handbook", "language": "fr", "pages": ['
            '{"pageNumber": 1, "text": "Bonjour", "headings": ["Accueil"]},'
            '{"pageNumber": 2, "text": "Au revoir"}]}'
        )
        assert isinstance(content, PagedContent)
        assert content.title == "Handbook"
        assert content.language == "fr"
        assert [p.page_number for p in content.pages] == [1, 2]
        assert content.pages[0].headings == ["Accueil"]
        assert content.pages[1].headings == []

    def test_bare_page_array(self) -> None:
        content = parse_extraction_response('[{"pageNumber": 1, "text": "only page"}]')
        assert isinstance(content, PagedContent)
        assert content.language == "en"

    def test_blank_pages_are_dropped_and_missing_numbers_use_position(self) -> None:
        content = parse_extraction_response(
            '{"pages": [{"text": "  "}, {"text": "second"}, {"pageNumber": 0, "text": "third"}]}'
        )
        assert isinstance(content, PagedContent)
        assert [(p.page_number, p.text) for p in content.pages] == [(2, "second"), (3, "third")]

    def test_full_text_object(self) -> None:
        content = parse_extraction_response('{"title": "Memo", "fullText": "Body of the memo"}')
        assert isinstance(content, FlatContent)
        assert content.full_text == "Body of the memo"
        assert content.title == "Memo"
        assert content.warnings == []

    def test_json_wrapped_in_prose(self) -> None:
        content = parse_extraction_response(
            'Sure! Here it is:\n{"pages": [{"pageNumber": 1, "text": "wrapped"}]}\nThanks.'
        )
        assert isinstance(content, PagedContent)
        assert content.pages[0].text == "wrapped"

    def test_plain_text_becomes_flat_content_with_warning(self) -> None:
        content = parse_extraction_response("Just the words of the document.")
        assert isinstance(content, FlatContent)
        assert content.full_text == "Just the words of the document."
        assert content.warnings == [UNSTRUCTURED_WARNING]

    def test_prose_with_bracketed_references_stays_text(self) -> None:
        reply = "Revenue rose sharply [1] as noted in {appendix B}."
        content = parse_extraction_response(reply)
        assert isinstance(content, FlatContent)
        assert content.full_text == reply

    def test_empty_response_is_an_error(self) -> None:
        with pytest.raises(ExtractionError, match="no text"):
            parse_extraction_response("   ")

    @pytest.mark.parametrize(
        "reply",
        [
            {"title": "Scan", "pages": [{"pageNumber": 1, "text": "  "}]},
            {"title": "Scan", "fullText": ""},
            {},
            [],
        ],
    )
    def test_json_without_text_is_an_error(self, reply) -> None:
        with pytest.raises(ExtractionError, match="Extraction returned no text"):
            parse_extraction_response(json.dumps(reply))


# ---------------------------------------------------------------------------
# ExtractionClient.extract
# ---------------------------------------------------------------------------


class TestExtractionClient:
    @pytest.mark.asyncio
    async def test_sends_document_as_json_request(self, llm_registry, mock_llm) -> None:
        mock_llm.complete.return_value = LLMCompletion(
            text='{"pages": [{"pageNumber": 1, "text": "hello"}]}',
            model="gemini-test",
            input_tokens=120,
            output_tokens=30,
        )
        client = ExtractionClient(llm_registry=llm_registry)

        result = await client.extract(b"%PDF-1.7 data", "report.pdf", "application/pdf", _prompt())

        assert isinstance(result.content, PagedContent)
        assert result.input_tokens == 120
        assert result.output_tokens == 30
        kwargs = mock_llm.complete.await_args.kwargs
        assert kwargs["json_response"] is True
        assert kwargs["model"] == "gemini-test"
        assert kwargs["temperature"] == 0.1
        assert kwargs["attachment"].data == b"%PDF-1.7 data"
        assert kwargs["attachment"].mime_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_guesses_mime_type_from_file_name(self, llm_registry, mock_llm) -> None:
        mock_llm.complete.return_value = LLMCompletion(text='{"fullText": "x"}', model="m")
        client = ExtractionClient(llm_registry=llm_registry)

        await client.extract(b"plain", "notes.txt", None, _prompt())

        assert mock_llm.complete.await_args.kwargs["attachment"].mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_word_documents_are_converted_to_pdf(self, llm_registry, mock_llm) -> None:
        mock_llm.complete.return_value = LLMCompletion(text='{"fullText": "x"}', model="m")
        converter = MagicMock(spec=DocumentConverter)
        converter.word_to_pdf = AsyncMock(return_value=b"%PDF-converted")
        client = ExtractionClient(llm_registry=llm_registry, converter=converter)

        await client.extract(
            b"PK\x03\x04docx",
            "letter.docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            _prompt(),
        )

        attachment = mock_llm.complete.await_args.kwargs["attachment"]
        assert attachment.data == b"%PDF-converted"
        assert attachment.mime_type == PDF_MIME_TYPE
        converter.word_to_pdf.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_error_becomes_extraction_error(self, llm_registry, mock_llm) -> None:
        mock_llm.complete.side_effect = LLMError(
            message="Gemini API error: 500 - boom", provider_name="gemini"
        )
        client = ExtractionClient(llm_registry=llm_registry)

        with pytest.raises(ExtractionError) as exc_info:
            await client.extract(b"x", "a.pdf", "application/pdf", _prompt())

        assert exc_info.value.message == "Gemini API error: 500 - boom"
        assert exc_info.value.provider_name == "gemini"

    @pytest.mark.asyncio
    async def test_missing_credentials_propagate_as_configuration_error(
        self, llm_registry, mock_llm
    ) -> None:
        mock_llm.complete.side_effect = ConfigurationError(message="GEMINI_API_KEY is not configured")
        client = ExtractionClient(llm_registry=llm_registry)

        with pytest.raises(ConfigurationError):
            await client.extract(b"x", "a.pdf", "application/pdf", _prompt())

    @pytest.mark.asyncio
    async def test_unknown_provider_is_a_configuration_error(self, llm_registry) -> None:
        client = ExtractionClient(llm_registry=llm_registry)
        with pytest.raises(ConfigurationError, match="No LLM provider configured"):
            await client.extract(b"x", "a.pdf", "application/pdf", _prompt(model_provider="mistral"))
