"""FastAPI route definitions for the docqa API.

All endpoints live under ``/api/v1``.  Services are resolved from
``app.state`` through small ``_get_*`` helpers wrapped in ``Annotated``
dependency aliases, so tests can swap any of them on the app.

Extraction endpoints:
    POST /extraction/run                       run one queued job (admin)
    POST /extraction/jobs                      enqueue a blob or all pending (admin)
    GET  /extraction/jobs                      list jobs
    GET  /extraction/jobs/stats                job counts by status (admin)
    GET  /extraction/jobs/{job_id}             one job plus its outputs
    GET  /extraction/inventory                 list inventory records
    GET  /extraction/inventory/{blob_id}/lineage
    GET  /extraction/content                   latest artifact of a blob/file
    POST /extraction/reap                      requeue expired leases (admin)

QA endpoints:
    POST   /qa/generate
    GET    /qa
    PATCH  /qa/{qa_id}
    POST   /qa/bulk-approve
    DELETE /qa/{qa_id}
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from docqa import __version__
from docqa.api.auth import AdminDep, AuthDep
from docqa.api.schemas import (
    BlobView,
    BulkApproveRequest,
    BulkApproveResponse,
    ContentResponse,
    DeleteQAResponse,
    EnqueueRequest,
    EnqueueResponse,
    ErrorResponse,
    GenerateQARequest,
    GenerateQAResponse,
    HealthResponse,
    InventoryResponse,
    JobDetailResponse,
    JobListResponse,
    JobStatsResponse,
    JobView,
    LineageResponse,
    OutputView,
    QAJobView,
    QAListResponse,
    QAPairView,
    QAStatsView,
    ReapResponse,
    RunExtractionRequest,
    RunExtractionResponse,
    UpdateQARequest,
    UpdateQAResponse,
)
from docqa.models.inventory import BlobStatus, JobStatus
from docqa.models.qa import QAStatus
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.services.artifact_service import ArtifactService, build_content_view
from docqa.services.extraction_queue import ExtractionQueue
from docqa.services.extraction_runner import ExtractionJobRunner
from docqa.services.job_reaper import JobReaper
from docqa.services.qa_generator import QAGenerationRunner
from docqa.services.review_service import ReviewService
from docqa.utils.errors import InvalidRequestError

router = APIRouter(prefix="/api/v1")

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_queue(request: Request) -> ExtractionQueue:
    return request.app.state.extraction_queue


def _get_runner(request: Request) -> ExtractionJobRunner:
    return request.app.state.extraction_runner


def _get_reaper(request: Request) -> JobReaper:
    return request.app.state.job_reaper


def _get_artifacts(request: Request) -> ArtifactService:
    return request.app.state.artifact_service


def _get_qa_generator(request: Request) -> QAGenerationRunner:
    return request.app.state.qa_generator


def _get_review(request: Request) -> ReviewService:
    return request.app.state.review_service


def _get_llm_registry(request: Request) -> LLMProviderRegistry:
    return request.app.state.llm_registry


QueueDep = Annotated[ExtractionQueue, Depends(_get_queue)]
RunnerDep = Annotated[ExtractionJobRunner, Depends(_get_runner)]
ReaperDep = Annotated[JobReaper, Depends(_get_reaper)]
ArtifactsDep = Annotated[ArtifactService, Depends(_get_artifacts)]
QAGeneratorDep = Annotated[QAGenerationRunner, Depends(_get_qa_generator)]
ReviewDep = Annotated[ReviewService, Depends(_get_review)]
RegistryDep = Annotated[LLMProviderRegistry, Depends(_get_llm_registry)]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health(registry: RegistryDep) -> HealthResponse:
    return HealthResponse(status="healthy", version=__version__, providers=registry.available())


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


@router.post(
    "/extraction/run",
    response_model=RunExtractionResponse,
    responses=_ERRORS,
    summary="Run one queued extraction job",
)
async def run_extraction(
    body: RunExtractionRequest,
    _auth: AdminDep,
    runner: RunnerDep,
) -> RunExtractionResponse:
    """Run the named job, or the oldest queued one when ``processNext`` is set.

    The request blocks until the job reaches a terminal state.  A failed
    job is still a successful call; its ``status`` and ``error`` say why.
    """
    if not body.job_id and not body.process_next:
        raise InvalidRequestError(message="Either jobId or processNext is required")

    result = await runner.run_one(body.job_id)
    if not result.claimed:
        return RunExtractionResponse(message="No jobs to process")
    return RunExtractionResponse(
        job_id=result.job_id,
        blob_id=result.blob_id,
        status=result.status.value if result.status else None,
        chunk_count=result.chunk_count,
        output_key=result.output_key,
        error=result.error,
    )


@router.post(
    "/extraction/jobs",
    response_model=EnqueueResponse,
    responses={**_ERRORS, 409: {"model": ErrorResponse}},
    summary="Queue extraction for one blob or all discovered blobs",
)
async def enqueue_extraction(
    body: EnqueueRequest,
    auth: AdminDep,
    queue: QueueDep,
) -> EnqueueResponse:
    if body.blob_id:
        result = await queue.enqueue(body.blob_id, auth)
    elif body.process_all:
        result = await queue.enqueue_pending()
    else:
        raise InvalidRequestError(message="Either blobId or processAll is required")
    return EnqueueResponse(
        message=f"Created {result.jobs_created} extraction job(s)",
        correlation_id=result.correlation_id,
        jobs_created=result.jobs_created,
        job_ids=result.job_ids,
    )


@router.get(
    "/extraction/jobs",
    response_model=JobListResponse,
    responses=_ERRORS,
    summary="List extraction jobs",
)
async def list_jobs(
    auth: AuthDep,
    queue: QueueDep,
    status: JobStatus | None = None,
    blob_id: Annotated[str | None, Query(alias="blobId")] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> JobListResponse:
    jobs = await queue.list_jobs(auth, status=status, blob_id=blob_id, limit=limit, offset=offset)
    return JobListResponse(
        jobs=[JobView.model_validate(j.model_dump(mode="json")) for j in jobs],
        total=len(jobs),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/extraction/jobs/stats",
    response_model=JobStatsResponse,
    responses=_ERRORS,
    summary="Extraction job counts by status across all tenants",
)
async def job_stats(_auth: AdminDep, queue: QueueDep) -> JobStatsResponse:
    return JobStatsResponse(stats=await queue.job_stats())


@router.get(
    "/extraction/jobs/{job_id}",
    response_model=JobDetailResponse,
    responses=_ERRORS,
    summary="One extraction job with its outputs",
)
async def get_job(job_id: str, auth: AuthDep, queue: QueueDep) -> JobDetailResponse:
    job, outputs = await queue.get_job(job_id, auth)
    return JobDetailResponse(
        job=JobView.model_validate(job.model_dump(mode="json")),
        outputs=[OutputView.model_validate(o.model_dump(mode="json")) for o in outputs],
    )


@router.get(
    "/extraction/inventory",
    response_model=InventoryResponse,
    responses=_ERRORS,
    summary="List inventory records visible to the caller",
)
async def list_inventory(
    auth: AuthDep,
    queue: QueueDep,
    status: BlobStatus | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> InventoryResponse:
    blobs = await queue.list_inventory(auth, status=status, limit=limit, offset=offset)
    return InventoryResponse(
        blobs=[BlobView.model_validate(b.model_dump(mode="json")) for b in blobs],
        total=len(blobs),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/extraction/inventory/{blob_id}/lineage",
    response_model=LineageResponse,
    responses=_ERRORS,
    summary="Blob with every job and artifact produced for it",
)
async def blob_lineage(blob_id: str, auth: AuthDep, queue: QueueDep) -> LineageResponse:
    lineage = await queue.lineage(blob_id, auth)
    return LineageResponse(
        blob=BlobView.model_validate(lineage["blob"].model_dump(mode="json")),
        jobs=[JobView.model_validate(j.model_dump(mode="json")) for j in lineage["jobs"]],
        outputs=[
            OutputView.model_validate(o.model_dump(mode="json")) for o in lineage["outputs"]
        ],
    )


@router.get(
    "/extraction/content",
    response_model=ContentResponse,
    responses=_ERRORS,
    summary="Latest extracted chunks of a blob or uploaded file",
)
async def extraction_content(
    auth: AuthDep,
    queue: QueueDep,
    artifacts: ArtifactsDep,
    blob_id: Annotated[str | None, Query(alias="blobId")] = None,
    file_id: Annotated[str | None, Query(alias="fileId")] = None,
) -> ContentResponse:
    blob = await queue.resolve_blob(auth, blob_id=blob_id, file_id=file_id)
    view = await build_content_view(artifacts, blob.id)
    return ContentResponse(
        blob_id=view.blob_id,
        job_id=view.job_id,
        output_key=view.output_key,
        content_hash=view.content_hash,
        chunk_count=view.chunk_count,
        full_text=view.full_text,
        chunks=ContentResponse.chunk_payload(view.chunks),
    )


@router.post(
    "/extraction/reap",
    response_model=ReapResponse,
    responses=_ERRORS,
    summary="Requeue or fail running jobs whose lease expired",
)
async def reap_jobs(_auth: AdminDep, reaper: ReaperDep) -> ReapResponse:
    result = await reaper.reap()
    return ReapResponse(requeued=result["requeued"], failed=result["failed"])


# ---------------------------------------------------------------------------
# QA generation and review
# ---------------------------------------------------------------------------


@router.post(
    "/qa/generate",
    response_model=GenerateQAResponse,
    responses=_ERRORS,
    summary="Generate QA pairs for every chunk of a blob",
)
async def generate_qa(
    body: GenerateQARequest,
    auth: AuthDep,
    generator: QAGeneratorDep,
) -> GenerateQAResponse:
    result = await generator.generate(
        auth,
        blob_id=body.blob_id,
        file_id=body.file_id,
        questions_per_chunk=body.questions_per_chunk,
    )
    return GenerateQAResponse(
        job_id=result.job_id,
        total_chunks=result.total_chunks,
        processed_chunks=result.processed_chunks,
        total_qa_generated=result.total_qa_generated,
        error_message=result.error_message,
    )


@router.get(
    "/qa",
    response_model=QAListResponse,
    responses=_ERRORS,
    summary="QA pairs, latest generation job and review counts for a blob",
)
async def list_qa(
    auth: AuthDep,
    review: ReviewDep,
    blob_id: Annotated[str | None, Query(alias="blobId")] = None,
    file_id: Annotated[str | None, Query(alias="fileId")] = None,
    status: QAStatus | None = None,
) -> QAListResponse:
    listing = await review.list_pairs(auth, blob_id=blob_id, file_id=file_id, status=status)
    return QAListResponse(
        blob_id=listing.blob_id,
        job=QAJobView.model_validate(listing.job.model_dump(mode="json")) if listing.job else None,
        pairs=[QAPairView.model_validate(p.model_dump(mode="json")) for p in listing.pairs],
        stats=QAStatsView.model_validate(listing.stats.model_dump(mode="json")),
    )


@router.patch(
    "/qa/{qa_id}",
    response_model=UpdateQAResponse,
    responses={**_ERRORS, 409: {"model": ErrorResponse}},
    summary="Approve, reject or edit one QA pair",
)
async def update_qa(
    qa_id: str,
    body: UpdateQARequest,
    auth: AuthDep,
    review: ReviewDep,
) -> UpdateQAResponse:
    """Edit text and/or review a pair.

    A status change only applies to ``pending`` pairs; ``updated`` is 0
    when the pair was already reviewed.
    """
    if body.status is None and body.question is None and body.answer is None:
        raise InvalidRequestError(message="Nothing to update")

    updated = 0
    pair = None
    if body.question is not None or body.answer is not None:
        pair = await review.update_text(qa_id, auth, question=body.question, answer=body.answer)
        updated = 1
    if body.status is not None:
        updated = await review.set_status(qa_id, body.status, auth)
    if pair is None or body.status is not None:
        pair = await review.get_pair(qa_id, auth)
    return UpdateQAResponse(
        qa_id=qa_id,
        updated=updated,
        pair=QAPairView.model_validate(pair.model_dump(mode="json")),
    )


@router.post(
    "/qa/bulk-approve",
    response_model=BulkApproveResponse,
    responses=_ERRORS,
    summary="Approve a list of pairs, or every pending pair of a blob",
)
async def bulk_approve(
    body: BulkApproveRequest,
    auth: AuthDep,
    review: ReviewDep,
) -> BulkApproveResponse:
    approved = await review.bulk_approve(
        auth,
        qa_ids=body.qa_ids,
        approve_all=body.approve_all,
        blob_id=body.blob_id,
        file_id=body.file_id,
    )
    return BulkApproveResponse(approved_count=approved)


@router.delete(
    "/qa/{qa_id}",
    response_model=DeleteQAResponse,
    responses=_ERRORS,
    summary="Delete one QA pair",
)
async def delete_qa(qa_id: str, auth: AuthDep, review: ReviewDep) -> DeleteQAResponse:
    deleted = await review.delete(qa_id, auth)
    return DeleteQAResponse(deleted=deleted, qa_id=qa_id)
