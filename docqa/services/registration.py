"""Register a document: store its bytes and create the inventory rows."""

from __future__ import annotations

import hashlib
import mimetypes
import uuid

import structlog

from docqa.interfaces.blob_store import IBlobStore
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.models.inventory import BlobInventoryRecord, BlobStatus, SourceFile

logger = structlog.get_logger(logger_name=__name__)


async def register_document(
    *,
    blob_store: IBlobStore,
    extraction_store: IExtractionStore,
    source_store: str,
    tenant_id: str,
    file_name: str,
    data: bytes,
    mime_type: str | None = None,
    uploaded_by: str | None = None,
    priority: int = 0,
) -> tuple[SourceFile, BlobInventoryRecord]:
    """Upload *data* under ``{tenant}/{uuid}/{file_name}`` and record it as ``discovered``."""
    mime_type = mime_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    source_key = f"{tenant_id}/{uuid.uuid4()}/{file_name}"
    await blob_store.put(source_store, source_key, data, content_type=mime_type)

    source_file = await extraction_store.add_source_file(
        SourceFile(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            file_name=file_name,
            blob_key=source_key,
            mime_type=mime_type,
            size_bytes=len(data),
            uploaded_by=uploaded_by,
        )
    )
    blob = await extraction_store.add_blob(
        BlobInventoryRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            source_store=source_store,
            source_key=source_key,
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=len(data),
            content_hash=hashlib.sha256(data).hexdigest(),
            status=BlobStatus.DISCOVERED,
            extraction_priority=priority,
        )
    )
    logger.info(
        "document_registered",
        blob_id=blob.id,
        file_id=source_file.id,
        file_name=file_name,
        size_bytes=len(data),
    )
    return source_file, blob
