"""Extraction job runner: claim one queued job and carry it to a terminal state.

State machine per job::

    queued --claim--> running --+--> completed   (artifact written, blob extracted)
                                +--> failed      (error recorded, blob failed)

``run_one`` never raises.  Whatever happens after the claim ends in a
``completed`` or ``failed`` row and an :class:`ExtractionRunResult` for
the caller; an empty claim is a no-op result, not an error.

Claims are atomic (see ``SQLiteExtractionStore.claim_job``) and leased.
The lease is renewed right before the long model call; if the worker
dies, :class:`docqa.services.job_reaper.JobReaper` puts the job back in
the queue once the lease runs out.  A worker that finds its lease gone at
completion time discards its artifact and reports ``failed``; the job row
belongs to whoever claimed it next.
"""

from __future__ import annotations

import socket
import time
import uuid

import structlog
from pydantic import BaseModel, ConfigDict

from docqa.config.constants import EXTRACTION_FUNCTION, EXTRACTION_VERSION
from docqa.interfaces.blob_store import IBlobStore
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.interfaces.prompt_store import IPromptStore
from docqa.models.extraction import SourceMeta
from docqa.models.inventory import BlobStatus, ExtractionJob, JobStatus
from docqa.services.artifact_service import ArtifactService
from docqa.services.chunk_builder import ChunkRecordBuilder
from docqa.services.extraction_client import ExtractionClient
from docqa.utils.errors import DocQAError

logger = structlog.get_logger(logger_name=__name__)

BLOB_NOT_FOUND = "Blob not found in inventory"
FILE_NOT_FOUND = "File not found in blob store"
LEASE_LOST = "Lease lost before completion"


class ExtractionRunResult(BaseModel):
    """What ``run_one`` tells its caller."""

    model_config = ConfigDict(frozen=True)

    job_id: str | None = None
    blob_id: str | None = None
    status: JobStatus | None = None
    chunk_count: int | None = None
    output_key: str | None = None
    error: str | None = None

    @property
    def claimed(self) -> bool:
        return self.job_id is not None


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{uuid.uuid4().hex[:8]}"


class ExtractionJobRunner:
    """Runs queued extraction jobs one at a time."""

    def __init__(
        self,
        *,
        extraction_store: IExtractionStore,
        prompt_store: IPromptStore,
        blob_store: IBlobStore,
        extraction_client: ExtractionClient,
        chunk_builder: ChunkRecordBuilder,
        artifact_service: ArtifactService,
        lease_seconds: int = 900,
        worker_id: str | None = None,
        extraction_version: str = EXTRACTION_VERSION,
    ) -> None:
        self._extraction_store = extraction_store
        self._prompt_store = prompt_store
        self._blob_store = blob_store
        self._extraction_client = extraction_client
        self._chunk_builder = chunk_builder
        self._artifact_service = artifact_service
        self._lease_seconds = lease_seconds
        self._worker_id = worker_id or default_worker_id()
        self._extraction_version = extraction_version

    @property
    def worker_id(self) -> str:
        return self._worker_id

    async def run_one(self, job_id: str | None = None) -> ExtractionRunResult:
        """Claim *job_id* (or the oldest queued job) and run it to completion.

        Returns an unclaimed result when there is nothing to do.
        """
        try:
            job = await self._extraction_store.claim_job(
                job_id=job_id,
                owner=self._worker_id,
                lease_seconds=self._lease_seconds,
            )
        except Exception as exc:
            logger.error("extraction_claim_error", job_id=job_id, error=str(exc))
            return ExtractionRunResult(job_id=job_id, error=f"Could not claim job: {exc}")

        if job is None:
            return ExtractionRunResult()

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(job_id=job.id, blob_id=job.blob_id):
            try:
                return await self._process(job, started)
            except Exception as exc:
                message = (
                    exc.message if isinstance(exc, DocQAError) else str(exc) or type(exc).__name__
                )
                await self._fail(job, message, started, fail_blob=True)
                return ExtractionRunResult(
                    job_id=job.id,
                    blob_id=job.blob_id,
                    status=JobStatus.FAILED,
                    error=message,
                )

    async def _process(self, job: ExtractionJob, started: float) -> ExtractionRunResult:
        blob = await self._extraction_store.get_blob(job.blob_id)
        if blob is None:
            await self._fail(job, BLOB_NOT_FOUND, started, fail_blob=False)
            return ExtractionRunResult(
                job_id=job.id, blob_id=job.blob_id, status=JobStatus.FAILED, error=BLOB_NOT_FOUND
            )

        file_bytes = await self._blob_store.get(blob.source_store, blob.source_key)
        if file_bytes is None:
            await self._fail(job, FILE_NOT_FOUND, started, fail_blob=True)
            return ExtractionRunResult(
                job_id=job.id, blob_id=job.blob_id, status=JobStatus.FAILED, error=FILE_NOT_FOUND
            )

        prompt = await self._prompt_store.get_active_prompt(EXTRACTION_FUNCTION)

        await self._extraction_store.renew_lease(job.id, self._worker_id, self._lease_seconds)
        result = await self._extraction_client.extract(
            file_bytes, blob.file_name, blob.mime_type, prompt
        )

        records = self._chunk_builder.build(
            result.content,
            SourceMeta(
                document_id=blob.id,
                source_store=blob.source_store,
                source_key=blob.source_key,
                file_name=blob.file_name,
                mime_type=blob.mime_type,
                size_bytes=blob.size_bytes if blob.size_bytes is not None else len(file_bytes),
                content_hash=blob.content_hash,
            ),
            self._extraction_version,
        )

        output = await self._artifact_service.write(
            job_id=job.id, blob_id=blob.id, records=records
        )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        completed = await self._extraction_store.complete_job(
            job.id,
            self._worker_id,
            processing_time_ms=elapsed_ms,
            chunk_count=len(records),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        if not completed:
            # Lease was reaped while we worked; the newer attempt owns the job row.
            await self._artifact_service.discard(output)
            return ExtractionRunResult(
                job_id=job.id,
                blob_id=blob.id,
                status=JobStatus.FAILED,
                error=LEASE_LOST,
            )

        await self._extraction_store.set_blob_status(blob.id, BlobStatus.EXTRACTED)
        return ExtractionRunResult(
            job_id=job.id,
            blob_id=blob.id,
            status=JobStatus.COMPLETED,
            chunk_count=len(records),
            output_key=output.output_key,
        )

    async def _fail(
        self,
        job: ExtractionJob,
        message: str,
        started: float,
        *,
        fail_blob: bool,
    ) -> None:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        try:
            recorded = await self._extraction_store.fail_job(
                job.id, self._worker_id, message, processing_time_ms=elapsed_ms
            )
            if recorded and fail_blob:
                await self._extraction_store.set_blob_status(job.blob_id, BlobStatus.FAILED)
        except Exception as exc:
            # The lease reaper recovers the row if this write never lands.
            logger.error("extraction_failure_not_recorded", job_id=job.id, error=str(exc))


