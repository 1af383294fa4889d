"""Pydantic request/response schemas for the docqa API.

Every body on the wire is camelCase.  Successful responses carry
``success: true`` next to their payload; failures are always
:class:`ErrorResponse` (``{success: false, error, status}``).

Views (``JobView``, ``BlobView`` ...) are built from the frozen domain
models with ``XView.model_validate(record.model_dump(mode="json"))``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docqa.config.constants import (
    DEFAULT_QUESTIONS_PER_CHUNK,
    MAX_QUESTIONS_PER_CHUNK,
    MIN_QUESTIONS_PER_CHUNK,
)
from docqa.models.chunk import ChunkRecord
from docqa.models.qa import QAStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(_CamelModel):
    success: bool = True


class ErrorResponse(BaseModel):
    """Standard error response body."""

    success: bool = False
    error: str
    status: int


# ---------------------------------------------------------------------------
# Views over domain records
# ---------------------------------------------------------------------------


class BlobView(_CamelModel):
    id: str
    tenant_id: str
    source_store: str
    source_key: str
    file_name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    content_hash: str | None = None
    status: str
    extraction_priority: int = 0
    discovered_at: datetime | None = None
    updated_at: datetime | None = None


class JobView(_CamelModel):
    id: str
    blob_id: str
    extraction_version: str
    model_version: str
    status: str
    error_message: str | None = None
    retry_count: int = 0
    processing_time_ms: int | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    chunk_count: int | None = None
    correlation_id: str | None = None
    lease_owner: str | None = None
    lease_expires_at: datetime | None = None
    queued_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class OutputView(_CamelModel):
    id: str
    job_id: str
    blob_id: str
    output_store: str
    output_key: str
    output_type: str
    chunk_count: int
    size_bytes: int
    content_hash: str
    schema_version: str
    created_at: datetime | None = None


class QAJobView(_CamelModel):
    id: str
    blob_id: str
    questions_per_chunk: int
    total_chunks: int
    processed_chunks: int
    total_qa_generated: int
    status: str
    error_message: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class QAPairView(_CamelModel):
    id: str
    job_id: str
    blob_id: str
    chunk_index: int
    chunk_text: str
    question: str
    answer: str
    status: str
    generated_by: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None


class QAStatsView(_CamelModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class RunExtractionRequest(_CamelModel):
    job_id: str | None = None
    process_next: bool = False


class RunExtractionResponse(SuccessResponse):
    message: str | None = None
    job_id: str | None = None
    blob_id: str | None = None
    status: str | None = None
    chunk_count: int | None = None
    output_key: str | None = None
    error: str | None = None


class EnqueueRequest(_CamelModel):
    blob_id: str | None = None
    process_all: bool = False


class EnqueueResponse(SuccessResponse):
    message: str
    correlation_id: str
    jobs_created: int
    job_ids: list[str]


class JobListResponse(SuccessResponse):
    jobs: list[JobView]
    total: int
    limit: int
    offset: int


class JobDetailResponse(SuccessResponse):
    job: JobView
    outputs: list[OutputView]


class JobStatsResponse(SuccessResponse):
    stats: dict[str, int]


class InventoryResponse(SuccessResponse):
    blobs: list[BlobView]
    total: int
    limit: int
    offset: int


class LineageResponse(SuccessResponse):
    blob: BlobView
    jobs: list[JobView]
    outputs: list[OutputView]


class ContentResponse(SuccessResponse):
    blob_id: str
    job_id: str
    output_key: str
    content_hash: str | None = None
    chunk_count: int
    full_text: str
    chunks: list[dict[str, Any]]

    @staticmethod
    def chunk_payload(records: list[ChunkRecord]) -> list[dict[str, Any]]:
        """Chunk records in their artifact (camelCase) shape."""
        return [r.model_dump(mode="json", by_alias=True) for r in records]


class ReapResponse(SuccessResponse):
    requeued: list[str]
    failed: list[str]


# ---------------------------------------------------------------------------
# QA
# ---------------------------------------------------------------------------


class GenerateQARequest(_CamelModel):
    blob_id: str | None = None
    file_id: str | None = None
    questions_per_chunk: int = Field(
        default=DEFAULT_QUESTIONS_PER_CHUNK,
        ge=MIN_QUESTIONS_PER_CHUNK,
        le=MAX_QUESTIONS_PER_CHUNK,
    )


class GenerateQAResponse(SuccessResponse):
    job_id: str
    total_chunks: int
    processed_chunks: int
    total_qa_generated: int
    error_message: str | None = None


class QAListResponse(SuccessResponse):
    blob_id: str
    job: QAJobView | None = None
    pairs: list[QAPairView]
    stats: QAStatsView


class UpdateQARequest(_CamelModel):
    status: QAStatus | None = None
    question: str | None = None
    answer: str | None = None


class UpdateQAResponse(SuccessResponse):
    qa_id: str
    updated: int
    pair: QAPairView


class BulkApproveRequest(_CamelModel):
    qa_ids: list[str] | None = None
    approve_all: bool = False
    blob_id: str | None = None
    file_id: str | None = None


class BulkApproveResponse(SuccessResponse):
    approved_count: int


class DeleteQAResponse(SuccessResponse):
    deleted: bool
    qa_id: str


class HealthResponse(SuccessResponse):
    status: str
    version: str
    providers: dict[str, bool]
