"""Pydantic v2 domain models for the extraction and QA pipeline."""

from docqa.models.auth import AuthContext
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
    PromptConfig,
    SourceMeta,
)
from docqa.models.inventory import (
    BlobInventoryRecord,
    BlobStatus,
    ExtractionJob,
    ExtractionOutput,
    JobStatus,
    SourceFile,
)
from docqa.models.qa import (
    QAGenerationJob,
    QAGenerationResult,
    QAJobStatus,
    QAPair,
    QAStats,
    QAStatus,
)

__all__ = [
    "AuthContext",
    "BlobInventoryRecord",
    "BlobStatus",
    "ChunkContent",
    "ChunkProvenance",
    "ChunkQuality",
    "ChunkRecord",
    "ChunkSource",
    "ChunkTimestamps",
    "ExtractedContent",
    "ExtractedPage",
    "ExtractionJob",
    "ExtractionOutput",
    "FlatContent",
    "JobStatus",
    "PagedContent",
    "PromptConfig",
    "QAGenerationJob",
    "QAGenerationResult",
    "QAJobStatus",
    "QAPair",
    "QAStats",
    "QAStatus",
    "SourceFile",
    "SourceMeta",
]
