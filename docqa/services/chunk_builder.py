"""Builds schema-versioned chunk records from extracted content.

Page-oriented content is chunked page by page: each page's windows keep
that page's number as ``page_start``/``page_end`` and its headings as the
section path, while the chunk index keeps counting across pages.  Flat
content is chunked once with no page bounds.

The index is threaded through an explicit fold (:class:`_BuildState`), so
ids come out as ``documentId:000000, 000001, ...`` in page order then
window order, with no gaps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from docqa.config.constants import DEFAULT_CONFIDENCE, SCHEMA_VERSION
from docqa.models.chunk import (
    ChunkContent,
    ChunkProvenance,
    ChunkQuality,
    ChunkRecord,
    ChunkSource,
    ChunkTimestamps,
)
from docqa.models.extraction import (
    ExtractedContent,
    ExtractedPage,
    FlatContent,
    PagedContent,
    SourceMeta,
)
from docqa.services.chunker import TextChunker
from docqa.utils.clock import utc_now

logger = structlog.get_logger(logger_name=__name__)


def format_chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}:{index:06d}"


def build_search_text(title: str, section_path: list[str], chunk_text: str) -> str:
    """Join title, section headings and chunk text with newlines."""
    return "\n".join([title, *section_path, chunk_text])


@dataclass(frozen=True)
class _BuildState:
    next_index: int
    records: tuple[ChunkRecord, ...]


class ChunkRecordBuilder:
    """Turns :data:`ExtractedContent` into an ordered list of :class:`ChunkRecord`."""

    def __init__(self, chunker: TextChunker | None = None) -> None:
        self._chunker = chunker or TextChunker()

    def build(
        self,
        extracted: ExtractedContent,
        source: SourceMeta,
        extraction_version: str,
        *,
        extracted_at: datetime | None = None,
    ) -> list[ChunkRecord]:
        """Return chunk records for *extracted* in stable page/window order."""
        stamp = extracted_at or utc_now()
        title = extracted.title or source.file_name
        chunk_source = ChunkSource(
            source_uri=source.source_uri,
            file_name=source.file_name,
            mime_type=source.mime_type,
            size_bytes=source.size_bytes,
            byte_hash_sha256=source.content_hash,
        )

        def emit(state: _BuildState, page: ExtractedPage | None, text: str) -> _BuildState:
            section_path = list(page.headings) if page else []
            page_number = page.page_number if page else None
            records = list(state.records)
            index = state.next_index
            for window in self._chunker.windows(text):
                records.append(
                    ChunkRecord(
                        schema_version=SCHEMA_VERSION,
                        extraction_version=extraction_version,
                        document_id=source.document_id,
                        chunk_id=format_chunk_id(source.document_id, index),
                        source=chunk_source,
                        provenance=ChunkProvenance(
                            page_start=page_number,
                            page_end=page_number,
                            section_path=section_path,
                            content_offset_start=window.start,
                            content_offset_end=window.end,
                        ),
                        content=ChunkContent(
                            title=title,
                            chunk_text=window.text,
                            search_text=build_search_text(title, section_path, window.text),
                            language=extracted.language,
                        ),
                        quality=ChunkQuality(
                            confidence=DEFAULT_CONFIDENCE,
                            warnings=list(extracted.warnings),
                        ),
                        timestamps=ChunkTimestamps(extracted_at=stamp),
                    )
                )
                index += 1
            return _BuildState(next_index=index, records=tuple(records))

        state = _BuildState(next_index=0, records=())
        if isinstance(extracted, PagedContent):
            for page in extracted.pages:
                state = emit(state, page, page.text)
        elif isinstance(extracted, FlatContent):
            state = emit(state, None, extracted.full_text)
        else:
            raise TypeError(f"Unsupported extracted content: {type(extracted).__name__}")

        logger.info(
            "chunk_records_built",
            document_id=source.document_id,
            chunks=len(state.records),
            kind=extracted.kind,
        )
        return list(state.records)
