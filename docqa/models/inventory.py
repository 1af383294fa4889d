"""Inventory, extraction job and artifact records.

These mirror rows of the ``blob_inventory``, ``extraction_jobs``,
``extraction_outputs`` and ``source_files`` tables.  All models are
frozen; providers build new instances from rows instead of mutating.

Lifecycle of a source document::

    BlobStatus:  discovered -> queued -> extracted
                                    \\-> failed -> queued (re-enqueue)

    JobStatus:   queued -> running -> completed
                                  \\-> failed
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BlobStatus(str, Enum):  # noqa: UP042
    """Lifecycle state of a discovered source file."""

    DISCOVERED = "discovered"
    QUEUED = "queued"
    EXTRACTED = "extracted"
    FAILED = "failed"


class JobStatus(str, Enum):  # noqa: UP042
    """Lifecycle state of one extraction attempt."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BlobInventoryRecord(BaseModel):
    """One unique source file known to the pipeline."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    source_store: str
    source_key: str
    file_name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    content_hash: str | None = None
    status: BlobStatus = BlobStatus.DISCOVERED
    extraction_priority: int = 0
    discovered_at: datetime | None = None
    updated_at: datetime | None = None


class ExtractionJob(BaseModel):
    """One extraction attempt against a :class:`BlobInventoryRecord`."""

    model_config = ConfigDict(frozen=True)

    id: str
    blob_id: str
    extraction_version: str
    model_version: str
    status: JobStatus = JobStatus.QUEUED
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


class ExtractionOutput(BaseModel):
    """Immutable artifact written by a successful extraction job."""

    model_config = ConfigDict(frozen=True)

    id: str
    job_id: str
    blob_id: str
    output_store: str
    output_key: str
    output_type: str
    chunk_count: int
    size_bytes: int
    content_hash: str = Field(description="sha-256 hex digest of the serialized artifact")
    schema_version: str
    created_at: datetime | None = None


class SourceFile(BaseModel):
    """Upload-table row; ``file_id`` resolves to a blob through ``blob_key``."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    file_name: str
    blob_key: str
    mime_type: str | None = None
    size_bytes: int | None = None
    uploaded_by: str | None = None
    created_at: datetime | None = None
