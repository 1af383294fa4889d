"""Abstract base class for the extraction metadata store.

Covers the blob inventory, extraction jobs, extraction outputs and the
upload table used to resolve a ``file_id`` to its blob.  The store is the
single source of truth for job state; the only lock it takes is the atomic
claim in :meth:`IExtractionStore.claim_job`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from docqa.models.inventory import (
    BlobInventoryRecord,
    BlobStatus,
    ExtractionJob,
    ExtractionOutput,
    JobStatus,
    SourceFile,
)


class IExtractionStore(ABC):
    """Contract for inventory / job / artifact persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables and indices if they do not exist."""

    # -- Inventory ---------------------------------------------------------

    @abstractmethod
    async def add_blob(self, blob: BlobInventoryRecord) -> BlobInventoryRecord:
        """Insert a new inventory record."""

    @abstractmethod
    async def get_blob(self, blob_id: str) -> BlobInventoryRecord | None:
        """Return the inventory record, or ``None``."""

    @abstractmethod
    async def find_blob_by_key(self, source_key: str) -> BlobInventoryRecord | None:
        """Return the inventory record whose ``source_key`` matches."""

    @abstractmethod
    async def list_blobs(
        self,
        *,
        status: BlobStatus | None = None,
        tenant_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BlobInventoryRecord]:
        """List inventory records, newest discovery first."""

    @abstractmethod
    async def list_enqueueable_blobs(self, limit: int) -> list[BlobInventoryRecord]:
        """Return ``discovered`` blobs by priority (desc) then discovery time (asc)."""

    @abstractmethod
    async def set_blob_status(self, blob_id: str, status: BlobStatus) -> bool:
        """Set the inventory status; return ``True`` if a row changed."""

    # -- Jobs --------------------------------------------------------------

    @abstractmethod
    async def enqueue_job(
        self,
        blob_id: str,
        *,
        extraction_version: str,
        model_version: str,
        correlation_id: str | None = None,
    ) -> ExtractionJob | None:
        """Queue a job and move the blob to ``queued`` in one transaction.

        Returns ``None`` (and writes nothing) when the blob is not in an
        enqueueable state (``discovered`` or ``failed``).
        """

    @abstractmethod
    async def get_job(self, job_id: str) -> ExtractionJob | None:
        """Return one job, or ``None``."""

    @abstractmethod
    async def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        blob_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExtractionJob]:
        """List jobs, most recently queued first."""

    @abstractmethod
    async def job_stats(self) -> dict[str, int]:
        """Return job counts keyed by status plus ``total``."""

    @abstractmethod
    async def claim_job(
        self,
        *,
        job_id: str | None,
        owner: str,
        lease_seconds: int,
    ) -> ExtractionJob | None:
        """Atomically move one ``queued`` job to ``running``.

        With *job_id* only that job is eligible; otherwise the oldest queued
        job is taken.  Returns ``None`` when nothing was claimed (no queued
        job, or another worker won the race).
        """

    @abstractmethod
    async def renew_lease(self, job_id: str, owner: str, lease_seconds: int) -> bool:
        """Push the lease forward; ``False`` if *owner* no longer holds the job."""

    @abstractmethod
    async def complete_job(
        self,
        job_id: str,
        owner: str,
        *,
        processing_time_ms: int,
        chunk_count: int,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
    ) -> bool:
        """Mark a running job ``completed``; ``False`` if the lease was lost."""

    @abstractmethod
    async def fail_job(
        self,
        job_id: str,
        owner: str | None,
        error_message: str,
        *,
        processing_time_ms: int | None = None,
    ) -> bool:
        """Mark a running job ``failed`` with *error_message*."""

    @abstractmethod
    async def requeue_expired(self, now: datetime, max_attempts: int) -> dict[str, list[str]]:
        """Recover ``running`` jobs whose lease has expired.

        Returns ``{"requeued": [...job ids], "failed": [...job ids]}``.
        """

    # -- Outputs -----------------------------------------------------------

    @abstractmethod
    async def add_output(self, output: ExtractionOutput) -> ExtractionOutput:
        """Persist an artifact row."""

    @abstractmethod
    async def delete_output(self, output_id: str) -> bool:
        """Remove an artifact row; ``False`` if it did not exist."""

    @abstractmethod
    async def list_outputs(
        self,
        *,
        job_id: str | None = None,
        blob_id: str | None = None,
    ) -> list[ExtractionOutput]:
        """List artifact rows for a job or a blob, newest first."""

    @abstractmethod
    async def latest_output_for_blob(self, blob_id: str) -> ExtractionOutput | None:
        """Return the artifact of the most recently completed job for *blob_id*."""

    # -- Uploads -----------------------------------------------------------

    @abstractmethod
    async def add_source_file(self, source_file: SourceFile) -> SourceFile:
        """Insert an upload-table row."""

    @abstractmethod
    async def get_source_file(self, file_id: str) -> SourceFile | None:
        """Return an upload-table row, or ``None``."""

    # -- Lineage -----------------------------------------------------------

    @abstractmethod
    async def lineage(self, blob_id: str) -> dict[str, Any] | None:
        """Return ``{"blob", "jobs", "outputs"}`` for *blob_id*, or ``None``."""
