"""Normalizes word-processing documents into PDF before extraction.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# The extraction model reads page-oriented input (PDF) far more
# consistently than raw word-processing archives, so Word uploads are
# re-rendered as plain paginated PDF first:
#
#   DOCX -> paragraphs via python-docx -> laid out with PyMuPDF (fitz)
#   DOC  -> PDF via LibreOffice CLI (headless), when installed
#
# Layout: US-letter pages, Helvetica 11pt, 50pt margins, 1.2x line
# height, greedy word wrap, half a line between paragraphs.  Formatting,
# tables and images are dropped; only the text matters to the model.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import io
import shutil
import tempfile
from pathlib import Path, PurePosixPath

import fitz  # PyMuPDF
import structlog

from docqa.utils.errors import DocumentConversionError

logger = structlog.get_logger(logger_name=__name__)

PDF_MIME_TYPE = "application/pdf"

_PAGE_WIDTH = 612.0
_PAGE_HEIGHT = 792.0
_MARGIN = 50.0
_FONT_NAME = "helv"
_FONT_SIZE = 11.0
_LINE_HEIGHT = _FONT_SIZE * 1.2
_PARAGRAPH_GAP = _LINE_HEIGHT / 2

_WORD_EXTENSIONS = (".docx", ".doc")


def _suffix(file_name: str) -> str:
    return PurePosixPath(file_name.lower()).suffix


def is_word_document(file_name: str, mime_type: str | None) -> bool:
    """Return ``True`` for DOCX/DOC uploads, judged by MIME type or extension."""
    mime = (mime_type or "").lower()
    if "wordprocessingml" in mime or "msword" in mime:
        return True
    return _suffix(file_name) in _WORD_EXTENSIONS


def is_pdf(file_name: str, mime_type: str | None) -> bool:
    return "pdf" in (mime_type or "").lower() or _suffix(file_name) == ".pdf"


def is_legacy_doc(file_name: str, mime_type: str | None) -> bool:
    """Binary ``.doc`` (not the OOXML ``.docx`` archive)."""
    mime = (mime_type or "").lower()
    if "wordprocessingml" in mime:
        return False
    return "msword" in mime or _suffix(file_name) == ".doc"


def wrap_text(text: str, max_width: float, font_size: float = _FONT_SIZE) -> list[str]:
    """Greedy word wrap measured with the PDF font metrics.

    A single word wider than the line is hard-split by character.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if fitz.get_text_length(candidate, fontname=_FONT_NAME, fontsize=font_size) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        current = ""
        while fitz.get_text_length(word, fontname=_FONT_NAME, fontsize=font_size) > max_width:
            cut = len(word)
            while cut > 1 and fitz.get_text_length(
                word[:cut], fontname=_FONT_NAME, fontsize=font_size
            ) > max_width:
                cut -= 1
            lines.append(word[:cut])
            word = word[cut:]
        current = word
    if current:
        lines.append(current)
    return lines


class DocumentConverter:
    """Renders Word documents as plain paginated PDF bytes."""

    def docx_paragraphs(self, data: bytes) -> list[str]:
        """Return the non-empty paragraph texts of a DOCX file."""
        from docx import Document

        try:
            document = Document(io.BytesIO(data))
        except Exception as exc:  # python-docx raises assorted zip/XML errors
            raise DocumentConversionError(
                message=f"Could not read Word document: {exc}",
                provider_name="python-docx",
            ) from exc
        return [p.text.strip() for p in document.paragraphs if p.text.strip()]

    def render_pdf(self, paragraphs: list[str]) -> bytes:
        """Lay *paragraphs* out onto letter-size pages and return the PDF bytes."""
        if not paragraphs:
            raise DocumentConversionError(
                message="No text could be extracted from the Word document",
            )

        max_width = _PAGE_WIDTH - 2 * _MARGIN
        bottom = _PAGE_HEIGHT - _MARGIN
        pdf = fitz.open()
        page = pdf.new_page(width=_PAGE_WIDTH, height=_PAGE_HEIGHT)
        # insert_text positions by baseline; start one line below the top margin.
        y = _MARGIN + _FONT_SIZE

        for paragraph in paragraphs:
            for line in wrap_text(paragraph, max_width):
                if y > bottom:
                    page = pdf.new_page(width=_PAGE_WIDTH, height=_PAGE_HEIGHT)
                    y = _MARGIN + _FONT_SIZE
                page.insert_text((_MARGIN, y), line, fontname=_FONT_NAME, fontsize=_FONT_SIZE)
                y += _LINE_HEIGHT
            y += _PARAGRAPH_GAP

        page_count = pdf.page_count
        data = pdf.tobytes()
        pdf.close()
        logger.info("word_rendered_to_pdf", paragraphs=len(paragraphs), pages=page_count)
        return data

    async def word_to_pdf(self, data: bytes, file_name: str, mime_type: str | None) -> bytes:
        """Convert a DOCX (python-docx) or legacy DOC (LibreOffice) upload to PDF."""
        if is_legacy_doc(file_name, mime_type):
            return await self._legacy_doc_to_pdf(data, file_name)
        paragraphs = await asyncio.to_thread(self.docx_paragraphs, data)
        return await asyncio.to_thread(self.render_pdf, paragraphs)

    async def _legacy_doc_to_pdf(self, data: bytes, file_name: str) -> bytes:
        """DOC -> PDF via LibreOffice in headless mode."""
        lo_cmd = shutil.which("libreoffice") or shutil.which("soffice")
        if not lo_cmd:
            raise DocumentConversionError(
                message="Legacy .doc files require LibreOffice, which is not installed",
                provider_name="libreoffice",
            )

        with tempfile.TemporaryDirectory() as work_dir:
            source = Path(work_dir) / (PurePosixPath(file_name).name or "document.doc")
            source.write_bytes(data)
            proc = await asyncio.create_subprocess_exec(
                lo_cmd, "--headless", "--convert-to", "pdf",
                "--outdir", work_dir, str(source),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await proc.communicate()

            output = source.with_suffix(".pdf")
            if proc.returncode != 0 or not output.exists():
                raise DocumentConversionError(
                    message=f"LibreOffice conversion failed: {stderr.decode(errors='replace')[:500]}",
                    provider_name="libreoffice",
                )
            pdf_bytes = output.read_bytes()

        logger.info("doc_converted", file_name=file_name, size_bytes=len(pdf_bytes))
        return pdf_bytes
