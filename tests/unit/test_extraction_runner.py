"""Unit tests for ExtractionJobRunner against real SQLite stores and a mocked LLM."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from docqa.interfaces.llm_provider import LLMCompletion
from docqa.models.inventory import BlobStatus, JobStatus
from docqa.services.artifact_service import parse_artifact
from docqa.services.extraction_runner import BLOB_NOT_FOUND, FILE_NOT_FOUND, LEASE_LOST
from docqa.utils.errors import LLMError

SOURCE_STORE = "user-files"
OUTPUT_STORE = "extracted-chunks"


def _pages_reply(*texts: str) -> LLMCompletion:
    pages = [{"pageNumber": n, "text": t} for n, t in enumerate(texts, start=1)]
    return LLMCompletion(
        text=json.dumps({"title": "Report", "pages": pages}),
        model="gemini-test",
        input_tokens=100,
        output_tokens=20,
    )


async def _queue(extraction_store, blob):
    job = await extraction_store.enqueue_job(
        blob.id, extraction_version="test", model_version="gemini-test"
    )
    assert job is not None
    return job


class TestRunOne:
    @pytest.mark.asyncio
    async def test_success_writes_artifact_and_completes(
        self, extraction_runner, extraction_store, blob_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob()
        job = await _queue(extraction_store, blob)
        mock_llm.complete.return_value = _pages_reply("First page text.", "Second page text.")

        result = await extraction_runner.run_one()

        assert result.claimed
        assert result.job_id == job.id
        assert result.status == JobStatus.COMPLETED
        assert result.chunk_count == 2
        assert result.error is None

        stored_job = await extraction_store.get_job(job.id)
        assert stored_job.status == JobStatus.COMPLETED
        assert stored_job.chunk_count == 2
        assert stored_job.input_tokens == 100
        assert (await extraction_store.get_blob(blob.id)).status == BlobStatus.EXTRACTED

        keys = blob_store.keys(OUTPUT_STORE)
        assert keys == [result.output_key]
        assert result.output_key.startswith(f"{blob.id}/")
        records = parse_artifact(await blob_store.get(OUTPUT_STORE, result.output_key))
        assert [r.chunk_id for r in records] == [f"{blob.id}:000000", f"{blob.id}:000001"]
        assert records[1].provenance.page_start == 2

    @pytest.mark.asyncio
    async def test_sends_source_bytes_to_the_model(
        self, extraction_runner, extraction_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob(data=b"raw source bytes")
        await _queue(extraction_store, blob)
        mock_llm.complete.return_value = _pages_reply("x")

        await extraction_runner.run_one()

        attachment = mock_llm.complete.await_args.kwargs["attachment"]
        assert attachment.data == b"raw source bytes"
        assert attachment.mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_nothing_queued(self, extraction_runner) -> None:
        result = await extraction_runner.run_one()
        assert not result.claimed
        assert result.status is None

    @pytest.mark.asyncio
    async def test_missing_source_bytes_fail_job_and_blob(
        self, extraction_runner, extraction_store, blob_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob()
        job = await _queue(extraction_store, blob)
        await blob_store.delete(SOURCE_STORE, blob.source_key)

        result = await extraction_runner.run_one(job.id)

        assert result.status == JobStatus.FAILED
        assert result.error == FILE_NOT_FOUND
        stored = await extraction_store.get_job(job.id)
        assert stored.status == JobStatus.FAILED
        assert stored.error_message == FILE_NOT_FOUND
        assert (await extraction_store.get_blob(blob.id)).status == BlobStatus.FAILED
        mock_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_inventory_record_fails_only_the_job(
        self, extraction_runner, extraction_store, register_blob, monkeypatch
    ) -> None:
        blob = await register_blob()
        job = await _queue(extraction_store, blob)
        monkeypatch.setattr(extraction_store, "get_blob", AsyncMock(return_value=None))

        result = await extraction_runner.run_one(job.id)

        assert result.status == JobStatus.FAILED
        assert result.error == BLOB_NOT_FOUND
        assert (await extraction_store.get_job(job.id)).status == JobStatus.FAILED
        monkeypatch.undo()
        assert (await extraction_store.get_blob(blob.id)).status == BlobStatus.QUEUED

    @pytest.mark.asyncio
    async def test_model_error_fails_job_and_blob(
        self, extraction_runner, extraction_store, blob_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob()
        job = await _queue(extraction_store, blob)
        mock_llm.complete.side_effect = LLMError(
            message="Gemini API error: 503 - unavailable", provider_name="gemini"
        )

        result = await extraction_runner.run_one()

        assert result.status == JobStatus.FAILED
        assert result.error == "Gemini API error: 503 - unavailable"
        assert (await extraction_store.get_job(job.id)).error_message == result.error
        assert (await extraction_store.get_blob(blob.id)).status == BlobStatus.FAILED
        assert blob_store.keys(OUTPUT_STORE) == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_recorded(
        self, extraction_runner, extraction_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob()
        await _queue(extraction_store, blob)
        mock_llm.complete.side_effect = RuntimeError()

        result = await extraction_runner.run_one()

        assert result.status == JobStatus.FAILED
        assert result.error == "RuntimeError"

    @pytest.mark.asyncio
    async def test_failed_blob_can_be_retried(
        self, extraction_runner, extraction_store, register_blob, mock_llm
    ) -> None:
        blob = await register_blob()
        await _queue(extraction_store, blob)
        mock_llm.complete.side_effect = LLMError(message="boom")
        await extraction_runner.run_one()

        mock_llm.complete.side_effect = None
        mock_llm.complete.return_value = _pages_reply("recovered")
        await _queue(extraction_store, blob)
        result = await extraction_runner.run_one()

        assert result.status == JobStatus.COMPLETED
        assert len(await extraction_store.list_jobs(blob_id=blob.id)) == 2

    @pytest.mark.asyncio
    async def test_lost_lease_discards_artifact_and_reports_failure(
        self, extraction_runner, extraction_store, blob_store, register_blob, mock_llm, monkeypatch
    ) -> None:
        blob = await register_blob()
        await _queue(extraction_store, blob)
        mock_llm.complete.return_value = _pages_reply("x")
        monkeypatch.setattr(extraction_store, "complete_job", AsyncMock(return_value=False))

        result = await extraction_runner.run_one()

        assert result.status == JobStatus.FAILED
        assert result.error == LEASE_LOST
        assert result.output_key is None
        assert await extraction_store.list_outputs(blob_id=blob.id) == []
        assert blob_store.keys(OUTPUT_STORE) == []
        assert (await extraction_store.get_blob(blob.id)).status == BlobStatus.QUEUED

    @pytest.mark.asyncio
    async def test_claim_error_is_reported(
        self, extraction_runner, extraction_store, monkeypatch
    ) -> None:
        monkeypatch.setattr(
            extraction_store, "claim_job", AsyncMock(side_effect=RuntimeError("database is locked"))
        )

        result = await extraction_runner.run_one("job-1")

        assert result.job_id == "job-1"
        assert result.status is None
        assert result.error == "Could not claim job: database is locked"
