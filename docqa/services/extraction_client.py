"""Turns a source document into structured extracted content via an LLM.

Flow for one document:

    1. Word uploads are re-rendered as PDF (:mod:`docqa.services.document_converter`);
       everything else is sent as-is.
    2. The active ``extraction`` prompt is sent with the document attached,
       asking for a JSON response.
    3. The reply goes through :func:`parse_model_json`.  A JSON object with
       ``pages`` becomes :class:`PagedContent`; an object with only a text
       field, or a reply that is not JSON at all, becomes
       :class:`FlatContent` (the latter with a warning attached).  Extraction
       JSON that carries no text at all is an error, not content.

Nothing is written anywhere; the only side effect is the provider call.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from typing import Any

import structlog

from docqa.config.constants import DEFAULT_LANGUAGE
from docqa.interfaces.llm_provider import Attachment
from docqa.models.extraction import (
    ExtractedContent,
    ExtractedPage,
    FlatContent,
    PagedContent,
    PromptConfig,
)
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.services.document_converter import (
    PDF_MIME_TYPE,
    DocumentConverter,
    is_word_document,
)
from docqa.utils.errors import ExtractionError, LLMError
from docqa.utils.json_parsing import STRATEGY_BRACKET, ParsedJson, parse_model_json

logger = structlog.get_logger(logger_name=__name__)

UNSTRUCTURED_WARNING = "Model response was not valid JSON; stored as unstructured full text"

_FLAT_TEXT_KEYS = ("fullText", "full_text", "text", "content")


@dataclass(frozen=True)
class ExtractionResult:
    """Extracted content plus what the call cost."""

    content: ExtractedContent
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None


class ExtractionClient:
    """Sends documents to the configured extraction model and parses the reply."""

    def __init__(
        self,
        *,
        llm_registry: LLMProviderRegistry,
        converter: DocumentConverter | None = None,
    ) -> None:
        self._llm_registry = llm_registry
        self._converter = converter or DocumentConverter()

    async def extract(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str | None,
        prompt: PromptConfig,
    ) -> ExtractionResult:
        """Extract the text content of one document.

        Raises
        ------
        ConfigurationError
            If the prompt's provider has no credentials.
        ExtractionError
            If conversion or the provider call fails, or no text came back.
        """
        attachment = await self._prepare_attachment(file_bytes, file_name, mime_type)
        provider = self._llm_registry.get(prompt.model_provider)

        logger.info(
            "extraction_request",
            file_name=file_name,
            mime_type=attachment.mime_type,
            size_bytes=len(attachment.data),
            provider=provider.get_provider_name(),
            model=prompt.model_name,
        )

        try:
            completion = await provider.complete(
                prompt.system_prompt,
                prompt.user_prompt_template,
                model=prompt.model_name,
                temperature=prompt.temperature,
                max_tokens=prompt.max_tokens,
                attachment=attachment,
                json_response=True,
            )
        except LLMError as exc:
            raise ExtractionError(message=exc.message, provider_name=exc.provider_name) from exc

        content = parse_extraction_response(completion.text)
        logger.info(
            "extraction_parsed",
            file_name=file_name,
            kind=content.kind,
            pages=len(content.pages) if isinstance(content, PagedContent) else None,
            warnings=len(content.warnings),
        )
        return ExtractionResult(
            content=content,
            model=completion.model,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )

    async def _prepare_attachment(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str | None,
    ) -> Attachment:
        if is_word_document(file_name, mime_type):
            pdf_bytes = await self._converter.word_to_pdf(file_bytes, file_name, mime_type)
            return Attachment(data=pdf_bytes, mime_type=PDF_MIME_TYPE, file_name=file_name)

        resolved = mime_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        return Attachment(data=file_bytes, mime_type=resolved, file_name=file_name)


def parse_extraction_response(text: str) -> ExtractedContent:
    """Map a raw model reply onto :data:`ExtractedContent`.

    Raises :class:`ExtractionError` if the reply is blank, or is extraction
    JSON whose pages and text fields are all empty.
    """
    parsed = parse_model_json(text)
    value = parsed.value if parsed.ok else None

    # Some models return the page array bare instead of wrapped in an object.
    if isinstance(value, list):
        value = {"pages": value}

    if isinstance(value, dict):
        title = _optional_str(value.get("title"))
        language = _optional_str(value.get("language")) or DEFAULT_LANGUAGE
        pages = _pages_from_json(value.get("pages"))
        if pages:
            return PagedContent(title=title, language=language, pages=pages)
        for key in _FLAT_TEXT_KEYS:
            flat = value.get(key)
            if isinstance(flat, str) and flat.strip():
                return FlatContent(title=title, language=language, full_text=flat)

    if not text.strip() or _is_structured_reply(parsed):
        raise ExtractionError(message="Extraction returned no text")
    return FlatContent(full_text=text, warnings=[UNSTRUCTURED_WARNING])


def _is_structured_reply(parsed: ParsedJson) -> bool:
    """Extraction-shaped JSON, as opposed to prose that happens to contain brackets."""
    if not parsed.ok:
        return False
    value = parsed.value
    if parsed.strategy != STRATEGY_BRACKET:
        return isinstance(value, (dict, list))
    return isinstance(value, dict) and any(k in value for k in ("pages", "title", *_FLAT_TEXT_KEYS))


def _pages_from_json(raw_pages: Any) -> list[ExtractedPage]:
    if not isinstance(raw_pages, list):
        return []
    pages: list[ExtractedPage] = []
    for position, raw in enumerate(raw_pages, start=1):
        if not isinstance(raw, dict):
            continue
        page_text = raw.get("text")
        if not isinstance(page_text, str) or not page_text.strip():
            continue
        number = raw.get("pageNumber", raw.get("page_number"))
        if not isinstance(number, int) or number < 1:
            number = position
        headings = raw.get("headings") or []
        if isinstance(headings, str):
            headings = [headings]
        pages.append(
            ExtractedPage(
                page_number=number,
                text=page_text,
                headings=[str(h) for h in headings if str(h).strip()],
            )
        )
    return pages


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
