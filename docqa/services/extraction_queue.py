"""Enqueueing and inspection of extraction work.

Enqueueing moves inventory records ``discovered|failed -> queued`` and
creates one ``queued`` job per blob.  Every job created by one call
shares a ``correlation_id`` so a batch can be traced through the logs
and the jobs table.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from docqa.config.constants import DEFAULT_MODEL_VERSION, ENQUEUE_ALL_LIMIT, EXTRACTION_VERSION
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.models.auth import AuthContext
from docqa.models.inventory import (
    BlobInventoryRecord,
    BlobStatus,
    ExtractionJob,
    ExtractionOutput,
    JobStatus,
)
from docqa.services.blob_resolver import resolve_blob
from docqa.utils.errors import AuthorizationError, InvalidTransitionError, NotFoundError

logger = structlog.get_logger(logger_name=__name__)


class EnqueueResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    correlation_id: str
    jobs_created: int
    job_ids: list[str]


class ExtractionQueue:
    """Creates extraction jobs and answers questions about them."""

    def __init__(
        self,
        *,
        extraction_store: IExtractionStore,
        extraction_version: str = EXTRACTION_VERSION,
        model_version: str = DEFAULT_MODEL_VERSION,
    ) -> None:
        self._store = extraction_store
        self._extraction_version = extraction_version
        self._model_version = model_version

    # -- Enqueue -----------------------------------------------------------

    async def enqueue(self, blob_id: str, auth: AuthContext) -> EnqueueResult:
        """Queue one blob.  Only ``discovered`` and ``failed`` blobs qualify."""
        blob = await resolve_blob(self._store, auth, blob_id=blob_id)
        correlation_id = str(uuid.uuid4())
        job = await self._store.enqueue_job(
            blob.id,
            extraction_version=self._extraction_version,
            model_version=self._model_version,
            correlation_id=correlation_id,
        )
        if job is None:
            raise InvalidTransitionError(
                message=f"Blob is {blob.status.value}; only discovered or failed blobs can be queued"
            )
        return EnqueueResult(correlation_id=correlation_id, jobs_created=1, job_ids=[job.id])

    async def enqueue_pending(self, limit: int = ENQUEUE_ALL_LIMIT) -> EnqueueResult:
        """Queue up to *limit* discovered blobs, highest priority first."""
        correlation_id = str(uuid.uuid4())
        job_ids: list[str] = []
        for blob in await self._store.list_enqueueable_blobs(limit):
            job = await self._store.enqueue_job(
                blob.id,
                extraction_version=self._extraction_version,
                model_version=self._model_version,
                correlation_id=correlation_id,
            )
            # None: another caller queued this blob between the list and the update.
            if job is not None:
                job_ids.append(job.id)

        logger.info(
            "extraction_batch_enqueued",
            correlation_id=correlation_id,
            jobs_created=len(job_ids),
        )
        return EnqueueResult(
            correlation_id=correlation_id, jobs_created=len(job_ids), job_ids=job_ids
        )

    # -- Jobs --------------------------------------------------------------

    async def list_jobs(
        self,
        auth: AuthContext,
        *,
        status: JobStatus | None = None,
        blob_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExtractionJob]:
        if blob_id:
            await resolve_blob(self._store, auth, blob_id=blob_id)
        elif not auth.is_admin:
            raise AuthorizationError(message="Listing all jobs requires admin")
        return await self._store.list_jobs(
            status=status, blob_id=blob_id, limit=limit, offset=offset
        )

    async def get_job(
        self, job_id: str, auth: AuthContext
    ) -> tuple[ExtractionJob, list[ExtractionOutput]]:
        job = await self._store.get_job(job_id)
        if job is None:
            raise NotFoundError(message="Job not found")
        if not auth.is_admin:
            blob = await self._store.get_blob(job.blob_id)
            if blob is None or not auth.can_access(blob.tenant_id):
                raise AuthorizationError()
        return job, await self._store.list_outputs(job_id=job.id)

    async def job_stats(self) -> dict[str, int]:
        return await self._store.job_stats()

    # -- Inventory ---------------------------------------------------------

    async def list_inventory(
        self,
        auth: AuthContext,
        *,
        status: BlobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BlobInventoryRecord]:
        return await self._store.list_blobs(
            status=status,
            tenant_id=None if auth.is_admin else auth.tenant_id,
            limit=limit,
            offset=offset,
        )

    async def lineage(self, blob_id: str, auth: AuthContext) -> dict[str, Any]:
        await resolve_blob(self._store, auth, blob_id=blob_id)
        lineage = await self._store.lineage(blob_id)
        if lineage is None:
            raise NotFoundError(message="Blob not found in inventory")
        return lineage

    async def resolve_blob(
        self,
        auth: AuthContext,
        *,
        blob_id: str | None = None,
        file_id: str | None = None,
    ) -> BlobInventoryRecord:
        return await resolve_blob(self._store, auth, blob_id=blob_id, file_id=file_id)
