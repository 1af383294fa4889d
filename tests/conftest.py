"""Shared pytest fixtures for the docqa test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.interfaces.llm_provider import ILLMProvider, LLMCompletion
from docqa.models.auth import AuthContext
from docqa.models.extraction import ExtractedPage, PagedContent, SourceMeta
from docqa.models.inventory import BlobInventoryRecord, BlobStatus
from docqa.providers.blob.memory_blob_store import InMemoryBlobStore
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.providers.store.sqlite_extraction_store import SQLiteExtractionStore
from docqa.providers.store.sqlite_prompt_store import SQLitePromptStore
from docqa.providers.store.sqlite_qa_store import SQLiteQAStore
from docqa.services.artifact_service import ArtifactService
from docqa.services.chunk_builder import ChunkRecordBuilder
from docqa.services.extraction_client import ExtractionClient
from docqa.services.extraction_runner import ExtractionJobRunner
from docqa.services.qa_generator import QAGenerationRunner
from docqa.services.registration import register_document
from docqa.services.review_service import ReviewService

SOURCE_STORE = "user-files"
OUTPUT_STORE = "extracted-chunks"


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant_auth() -> AuthContext:
    return AuthContext(user_id="user-a", tenant_id="tenant-a")


@pytest.fixture
def other_tenant_auth() -> AuthContext:
    return AuthContext(user_id="user-b", tenant_id="tenant-b")


@pytest.fixture
def admin_auth() -> AuthContext:
    return AuthContext(user_id="admin", tenant_id="tenant-admin", is_admin=True)


# ---------------------------------------------------------------------------
# Stores (temporary SQLite file per test)
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "docqa.db"


@pytest.fixture
async def extraction_store(db_path: Path) -> SQLiteExtractionStore:
    store = SQLiteExtractionStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
async def qa_store(db_path: Path) -> SQLiteQAStore:
    store = SQLiteQAStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
async def prompt_store(db_path: Path) -> SQLitePromptStore:
    store = SQLitePromptStore(db_path)
    await store.initialize()
    await store.seed_defaults()
    return store


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def register_blob(extraction_store: SQLiteExtractionStore, blob_store: InMemoryBlobStore):
    """Factory: upload bytes and create a ``discovered`` inventory record."""

    async def _register(
        *,
        tenant_id: str = "tenant-a",
        file_name: str = "report.txt",
        data: bytes = b"Quarterly report body text.",
        mime_type: str | None = "text/plain",
        priority: int = 0,
    ) -> BlobInventoryRecord:
        _, blob = await register_document(
            blob_store=blob_store,
            extraction_store=extraction_store,
            source_store=SOURCE_STORE,
            tenant_id=tenant_id,
            file_name=file_name,
            data=data,
            mime_type=mime_type,
            uploaded_by="tester",
            priority=priority,
        )
        return blob

    return _register


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


def _completion(text: str, model: str = "gemini-test", **usage: Any) -> LLMCompletion:
    return LLMCompletion(
        text=text,
        model=model,
        input_tokens=usage.get("input_tokens"),
        output_tokens=usage.get("output_tokens"),
    )


@pytest.fixture
def mock_llm() -> MagicMock:
    """An ILLMProvider registered as ``gemini`` whose ``complete`` is an AsyncMock."""
    provider = MagicMock(spec=ILLMProvider)
    provider.get_provider_name.return_value = "gemini"
    provider.is_available.return_value = True
    provider.complete = AsyncMock(return_value=_completion("{}"))
    return provider


@pytest.fixture
def llm_registry(mock_llm: MagicMock) -> LLMProviderRegistry:
    return LLMProviderRegistry([mock_llm])


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def artifact_service(blob_store, extraction_store) -> ArtifactService:
    return ArtifactService(
        blob_store=blob_store,
        extraction_store=extraction_store,
        output_store=OUTPUT_STORE,
    )


@pytest.fixture
def extraction_runner(
    extraction_store, prompt_store, blob_store, llm_registry, artifact_service
) -> ExtractionJobRunner:
    return ExtractionJobRunner(
        extraction_store=extraction_store,
        prompt_store=prompt_store,
        blob_store=blob_store,
        extraction_client=ExtractionClient(llm_registry=llm_registry),
        chunk_builder=ChunkRecordBuilder(),
        artifact_service=artifact_service,
        lease_seconds=60,
        worker_id="test-worker",
    )


@pytest.fixture
def qa_generator(
    extraction_store, qa_store, prompt_store, artifact_service, llm_registry
) -> QAGenerationRunner:
    return QAGenerationRunner(
        extraction_store=extraction_store,
        qa_store=qa_store,
        prompt_store=prompt_store,
        artifact_service=artifact_service,
        llm_registry=llm_registry,
    )


@pytest.fixture
def review_service(extraction_store, qa_store) -> ReviewService:
    return ReviewService(extraction_store=extraction_store, qa_store=qa_store)


@pytest.fixture
def extracted_blob(extraction_store, artifact_service, register_blob):
    """Factory: a blob with a completed job and one chunk per given page text."""

    async def _extracted(
        page_texts: list[str],
        *,
        tenant_id: str = "tenant-a",
    ) -> BlobInventoryRecord:
        blob = await register_blob(tenant_id=tenant_id)
        job = await extraction_store.enqueue_job(
            blob.id, extraction_version="test", model_version="gemini-test"
        )
        await extraction_store.claim_job(job_id=job.id, owner="fixture", lease_seconds=60)
        records = ChunkRecordBuilder().build(
            PagedContent(
                title="Quarterly Report",
                pages=[
                    ExtractedPage(page_number=n, text=text, headings=["Summary"])
                    for n, text in enumerate(page_texts, start=1)
                ],
            ),
            SourceMeta(
                document_id=blob.id,
                source_store=blob.source_store,
                source_key=blob.source_key,
                file_name=blob.file_name,
                mime_type=blob.mime_type,
                size_bytes=blob.size_bytes,
                content_hash=blob.content_hash,
            ),
            "test",
        )
        await artifact_service.write(job_id=job.id, blob_id=blob.id, records=records)
        await extraction_store.complete_job(
            job.id, "fixture", processing_time_ms=1, chunk_count=len(records)
        )
        await extraction_store.set_blob_status(blob.id, BlobStatus.EXTRACTED)
        return blob

    return _extracted
