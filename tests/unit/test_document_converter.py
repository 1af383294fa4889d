"""Unit tests for Word -> PDF normalization."""

from __future__ import annotations

import io

import fitz
import pytest
from docx import Document

from docqa.services.document_converter import (
    DocumentConverter,
    is_legacy_doc,
    is_pdf,
    is_word_document,
    wrap_text,
)
from docqa.utils.errors import DocumentConversionError

_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class TestFormatDetection:
    def test_word_detection(self) -> None:
        assert is_word_document("a.docx", None)
        assert is_word_document("a.bin", _DOCX_MIME)
        assert is_word_document("a.doc", "application/msword")
        assert not is_word_document("a.pdf", "application/pdf")

    def test_legacy_doc_detection(self) -> None:
        assert is_legacy_doc("old.doc", None)
        assert is_legacy_doc("x", "application/msword")
        assert not is_legacy_doc("new.docx", _DOCX_MIME)

    def test_pdf_detection(self) -> None:
        assert is_pdf("a.pdf", None)
        assert is_pdf("a", "application/pdf")


class TestWrapText:
    def test_lines_fit_the_width(self) -> None:
        lines = wrap_text("word " * 200, max_width=200)
        assert len(lines) > 1
        for line in lines:
            assert fitz.get_text_length(line, fontname="helv", fontsize=11) <= 200

    def test_long_word_is_hard_split(self) -> None:
        lines = wrap_text("x" * 500, max_width=100)
        assert "".join(lines) == "x" * 500
        assert len(lines) > 1


class TestDocumentConverter:
    def test_docx_paragraphs_skip_empty(self) -> None:
        paragraphs = DocumentConverter().docx_paragraphs(_docx_bytes("First", "", "Second"))
        assert paragraphs == ["First", "Second"]

    def test_invalid_docx_raises(self) -> None:
        with pytest.raises(DocumentConversionError, match="Could not read Word document"):
            DocumentConverter().docx_paragraphs(b"not a zip")

    def test_render_pdf_contains_the_text(self) -> None:
        data = DocumentConverter().render_pdf(["Hello from the converter"])
        assert data.startswith(b"%PDF")
        with fitz.open(stream=data, filetype="pdf") as pdf:
            assert "Hello from the converter" in pdf[0].get_text()

    def test_long_documents_span_pages(self) -> None:
        paragraphs = [f"Paragraph {i} " + "lorem ipsum " * 20 for i in range(80)]
        data = DocumentConverter().render_pdf(paragraphs)
        with fitz.open(stream=data, filetype="pdf") as pdf:
            assert pdf.page_count > 1
            assert pdf[0].rect.width == 612

    def test_empty_document_raises(self) -> None:
        with pytest.raises(DocumentConversionError, match="No text could be extracted"):
            DocumentConverter().render_pdf([])

    @pytest.mark.asyncio
    async def test_word_to_pdf_for_docx(self) -> None:
        data = await DocumentConverter().word_to_pdf(
            _docx_bytes("Quarterly results"), "results.docx", _DOCX_MIME
        )
        with fitz.open(stream=data, filetype="pdf") as pdf:
            assert "Quarterly results" in pdf[0].get_text()
