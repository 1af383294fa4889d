"""Chunk record: the unit of the newline-delimited JSON extraction artifact.

Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``), which is the contract downstream search
and indexing consumers read.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ChunkSource(BaseModel):
    model_config = _WIRE_CONFIG

    source_uri: str
    file_name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    byte_hash_sha256: str | None = None


class ChunkProvenance(BaseModel):
    """Where the chunk came from: page bounds, headings, character offsets."""

    model_config = _WIRE_CONFIG

    page_start: int | None = None
    page_end: int | None = None
    section_path: list[str] = Field(default_factory=list)
    content_offset_start: int = Field(ge=0)
    content_offset_end: int = Field(ge=0)


class ChunkContent(BaseModel):
    model_config = _WIRE_CONFIG

    title: str
    chunk_text: str
    search_text: str
    language: str


class ChunkQuality(BaseModel):
    model_config = _WIRE_CONFIG

    confidence: float = Field(ge=0.0, le=1.0)
    warnings: list[str] = Field(default_factory=list)


class ChunkTimestamps(BaseModel):
    model_config = _WIRE_CONFIG

    extracted_at: datetime


class ChunkRecord(BaseModel):
    """One chunk of a document with its source, provenance and content."""

    model_config = _WIRE_CONFIG

    schema_version: str
    extraction_version: str
    document_id: str
    chunk_id: str
    source: ChunkSource
    provenance: ChunkProvenance
    content: ChunkContent
    quality: ChunkQuality
    timestamps: ChunkTimestamps

    @property
    def chunk_index(self) -> int:
        """Position encoded in ``chunk_id`` (``documentId:000042`` -> 42)."""
        return int(self.chunk_id.rsplit(":", 1)[1])

    def to_json_line(self) -> str:
        return self.model_dump_json(by_alias=True)
