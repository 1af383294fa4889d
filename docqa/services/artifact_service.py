"""Writes and reads extraction artifacts (newline-delimited chunk records).

An artifact is the full chunk set of one successful extraction job,
serialized one :class:`ChunkRecord` JSON object per line (joined with
``\\n``, no trailing newline) and stored under a fresh key
``{blob_id}/{uuid}.jsonl``.  Keys are never reused, so artifacts are
immutable; the sha-256 of the serialized bytes is recorded alongside.
"""

from __future__ import annotations

import hashlib
import json
import uuid

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from docqa.config.constants import (
    ARTIFACT_CONTENT_TYPE,
    OUTPUT_TYPE_CHUNK_JSONL,
    SCHEMA_VERSION,
)
from docqa.interfaces.blob_store import IBlobStore
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.models.chunk import ChunkRecord
from docqa.models.inventory import ExtractionOutput
from docqa.utils.errors import NotFoundError, StorageError

logger = structlog.get_logger(logger_name=__name__)


def serialize_chunks(records: list[ChunkRecord]) -> bytes:
    return "\n".join(r.to_json_line() for r in records).encode("utf-8")


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def parse_artifact(data: bytes) -> list[ChunkRecord]:
    """Parse artifact bytes back into chunk records, skipping blank lines."""
    records: list[ChunkRecord] = []
    for line_number, line in enumerate(data.decode("utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(ChunkRecord.model_validate(json.loads(line)))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(
                message=f"Corrupt chunk record on artifact line {line_number}: {exc}",
            ) from exc
    return records


class ArtifactService:
    """Persists chunk artifacts to the blob store and their rows to the metadata store."""

    def __init__(
        self,
        *,
        blob_store: IBlobStore,
        extraction_store: IExtractionStore,
        output_store: str,
    ) -> None:
        self._blob_store = blob_store
        self._extraction_store = extraction_store
        self._output_store = output_store

    async def write(self, *, job_id: str, blob_id: str, records: list[ChunkRecord]) -> ExtractionOutput:
        """Serialize *records*, store them under a new key and record the output row."""
        data = serialize_chunks(records)
        output_key = f"{blob_id}/{uuid.uuid4()}.jsonl"
        await self._blob_store.put(
            self._output_store, output_key, data, content_type=ARTIFACT_CONTENT_TYPE
        )
        output = await self._extraction_store.add_output(
            ExtractionOutput(
                id=str(uuid.uuid4()),
                job_id=job_id,
                blob_id=blob_id,
                output_store=self._output_store,
                output_key=output_key,
                output_type=OUTPUT_TYPE_CHUNK_JSONL,
                chunk_count=len(records),
                size_bytes=len(data),
                content_hash=content_hash(data),
                schema_version=SCHEMA_VERSION,
            )
        )
        logger.info(
            "artifact_written",
            job_id=job_id,
            blob_id=blob_id,
            output_key=output_key,
            chunks=len(records),
            size_bytes=len(data),
            content_hash=output.content_hash,
        )
        return output

    async def discard(self, output: ExtractionOutput) -> None:
        """Drop an artifact whose job was taken over by another worker."""
        await self._extraction_store.delete_output(output.id)
        await self._blob_store.delete(output.output_store, output.output_key)
        logger.warning(
            "artifact_discarded",
            job_id=output.job_id,
            blob_id=output.blob_id,
            output_key=output.output_key,
        )

    async def read(self, output: ExtractionOutput) -> list[ChunkRecord]:
        """Fetch and parse one artifact.

        Raises :class:`NotFoundError` if the bytes are gone from the blob store.
        """
        data = await self._blob_store.get(output.output_store, output.output_key)
        if data is None:
            raise NotFoundError(message="Extraction content not found")
        return parse_artifact(data)

    async def latest_for_blob(self, blob_id: str) -> tuple[ExtractionOutput, list[ChunkRecord]]:
        """Return the newest completed artifact of *blob_id* and its records."""
        output = await self._extraction_store.latest_output_for_blob(blob_id)
        if output is None:
            raise NotFoundError(message="No extraction output found for this blob")
        return output, await self.read(output)


class ExtractionContentView(BaseModel):
    """The latest artifact of a blob, rendered for display."""

    model_config = ConfigDict(frozen=True)

    blob_id: str
    job_id: str
    output_key: str
    content_hash: str | None = None
    chunk_count: int
    full_text: str
    chunks: list[ChunkRecord]


async def build_content_view(
    artifacts: ArtifactService, blob_id: str
) -> ExtractionContentView:
    """Load the newest artifact for *blob_id*; chunk texts are joined by blank lines."""
    output, records = await artifacts.latest_for_blob(blob_id)
    if not records:
        raise NotFoundError(message="No chunks found in extraction output")
    return ExtractionContentView(
        blob_id=blob_id,
        job_id=output.job_id,
        output_key=output.output_key,
        content_hash=output.content_hash,
        chunk_count=len(records),
        full_text="\n\n".join(r.content.chunk_text for r in records),
        chunks=records,
    )
