"""QA generation runner.

Turns the newest extraction artifact of a blob into ``pending`` QA pairs,
one model call per chunk, strictly in artifact order.  A chunk whose
call or parse fails is recorded on the job as ``Chunk N: <message>``
(only the latest such error is kept) and the loop moves on; pairs
already written for other chunks stay.  Failed chunks still count
towards ``processed_chunks``.  Once the job row exists, it always ends
``completed``; a store failure mid-loop is recorded as the job error.
"""

from __future__ import annotations

import re
import uuid

import structlog

from docqa.config.constants import (
    DEFAULT_QUESTIONS_PER_CHUNK,
    MAX_QUESTIONS_PER_CHUNK,
    MIN_QUESTIONS_PER_CHUNK,
    QA_FUNCTION,
)
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.prompt_store import IPromptStore
from docqa.interfaces.qa_store import IQAStore
from docqa.models.auth import AuthContext
from docqa.models.chunk import ChunkRecord
from docqa.models.extraction import PromptConfig
from docqa.models.qa import QAGenerationJob, QAGenerationResult, QAPair
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.services.artifact_service import ArtifactService
from docqa.services.blob_resolver import resolve_blob
from docqa.utils.errors import DocQAError, InvalidRequestError, NotFoundError, QAGenerationError
from docqa.utils.json_parsing import expect_array, parse_model_json

logger = structlog.get_logger(logger_name=__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render_template(template: str, values: dict[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names are left as-is."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def build_qa_prompt(template: str, chunk: ChunkRecord, questions_per_chunk: int) -> str:
    return render_template(
        template,
        {
            "questionsPerChunk": str(questions_per_chunk),
            "documentTitle": chunk.content.title or "Unknown",
            "sectionPath": " > ".join(chunk.provenance.section_path) or "N/A",
            "chunkText": chunk.content.chunk_text,
        },
    )


def _error_message(exc: Exception) -> str:
    return exc.message if isinstance(exc, DocQAError) else str(exc) or type(exc).__name__


def parse_qa_pairs(text: str) -> list[tuple[str, str]]:
    """Pull ``(question, answer)`` tuples out of a model response.

    Entries missing either field, or holding a blank one, are dropped.
    Raises :class:`QAGenerationError` if no JSON array can be found.
    """
    items = expect_array(parse_model_json(text))
    if items is None:
        raise QAGenerationError(message="Model response did not contain a JSON array")
    pairs: list[tuple[str, str]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        question = item.get("question")
        answer = item.get("answer")
        if isinstance(question, str) and isinstance(answer, str) and question.strip() and answer.strip():
            pairs.append((question, answer))
    return pairs


class QAGenerationRunner:
    """Generates QA pairs for every chunk of a blob's latest artifact."""

    def __init__(
        self,
        *,
        extraction_store: IExtractionStore,
        qa_store: IQAStore,
        prompt_store: IPromptStore,
        artifact_service: ArtifactService,
        llm_registry: LLMProviderRegistry,
    ) -> None:
        self._extraction_store = extraction_store
        self._qa_store = qa_store
        self._prompt_store = prompt_store
        self._artifact_service = artifact_service
        self._llm_registry = llm_registry

    async def generate(
        self,
        auth: AuthContext,
        *,
        blob_id: str | None = None,
        file_id: str | None = None,
        questions_per_chunk: int = DEFAULT_QUESTIONS_PER_CHUNK,
    ) -> QAGenerationResult:
        if not MIN_QUESTIONS_PER_CHUNK <= questions_per_chunk <= MAX_QUESTIONS_PER_CHUNK:
            raise InvalidRequestError(
                message=(
                    f"questionsPerChunk must be between {MIN_QUESTIONS_PER_CHUNK} "
                    f"and {MAX_QUESTIONS_PER_CHUNK}"
                )
            )

        blob = await resolve_blob(self._extraction_store, auth, blob_id=blob_id, file_id=file_id)
        _, chunks = await self._artifact_service.latest_for_blob(blob.id)
        if not chunks:
            raise NotFoundError(message="No chunks found in extraction output")

        prompt = await self._prompt_store.get_active_prompt(QA_FUNCTION)
        provider = self._llm_registry.get(prompt.model_provider)

        job = await self._qa_store.create_job(
            QAGenerationJob(
                id=str(uuid.uuid4()),
                blob_id=blob.id,
                tenant_id=blob.tenant_id,
                questions_per_chunk=questions_per_chunk,
                total_chunks=len(chunks),
                created_by=auth.user_id,
            )
        )
        logger.info(
            "qa_generation_started",
            qa_job_id=job.id,
            blob_id=blob.id,
            total_chunks=len(chunks),
            questions_per_chunk=questions_per_chunk,
            model=prompt.model_name,
        )

        processed = 0
        generated = 0
        last_error: str | None = None
        try:
            for position, chunk in enumerate(chunks):
                chunk_number = position + 1
                chunk_error: str | None = None
                try:
                    generated += await self._generate_for_chunk(
                        job, chunk, chunk_number, prompt, provider, questions_per_chunk
                    )
                except Exception as exc:
                    message = _error_message(exc)
                    chunk_error = f"Chunk {chunk_number}: {message}"
                    last_error = chunk_error
                    logger.warning(
                        "qa_chunk_failed", qa_job_id=job.id, chunk=chunk_number, error=message
                    )
                processed += 1
                await self._qa_store.update_progress(
                    job.id,
                    processed_chunks=processed,
                    total_qa_generated=generated,
                    error_message=chunk_error,
                )
        except Exception as exc:
            last_error = _error_message(exc)
            logger.error("qa_generation_aborted", qa_job_id=job.id, error=last_error)
        finally:
            await self._finish_job(job.id, processed, generated, last_error)

        logger.info(
            "qa_generation_completed",
            qa_job_id=job.id,
            blob_id=blob.id,
            processed_chunks=processed,
            total_qa_generated=generated,
        )
        return QAGenerationResult(
            job_id=job.id,
            total_chunks=len(chunks),
            processed_chunks=processed,
            total_qa_generated=generated,
            error_message=last_error,
        )

    async def _finish_job(
        self, job_id: str, processed: int, generated: int, error: str | None
    ) -> None:
        try:
            await self._qa_store.complete_job(
                job_id,
                processed_chunks=processed,
                total_qa_generated=generated,
                error_message=error,
            )
        except Exception as exc:
            logger.error("qa_completion_not_recorded", qa_job_id=job_id, error=str(exc))

    async def _generate_for_chunk(
        self,
        job: QAGenerationJob,
        chunk: ChunkRecord,
        chunk_number: int,
        prompt: PromptConfig,
        provider: ILLMProvider,
        questions_per_chunk: int,
    ) -> int:
        completion = await provider.complete(
            prompt.system_prompt,
            build_qa_prompt(prompt.user_prompt_template, chunk, questions_per_chunk),
            model=prompt.model_name,
            temperature=prompt.temperature,
            max_tokens=prompt.max_tokens,
            json_response=True,
        )
        pairs = [
            QAPair(
                id=str(uuid.uuid4()),
                job_id=job.id,
                blob_id=job.blob_id,
                tenant_id=job.tenant_id,
                chunk_index=chunk_number,
                chunk_text=chunk.content.chunk_text,
                question=question,
                answer=answer,
                generated_by=completion.model or prompt.model_name,
            )
            for question, answer in parse_qa_pairs(completion.text)
        ]
        if not pairs:
            return 0
        return await self._qa_store.add_pairs(pairs)
