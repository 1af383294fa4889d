"""Resolve a caller-supplied ``blobId`` or ``fileId`` to an inventory record."""

from __future__ import annotations

from docqa.interfaces.extraction_store import IExtractionStore
from docqa.models.auth import AuthContext
from docqa.models.inventory import BlobInventoryRecord
from docqa.utils.errors import AuthorizationError, InvalidRequestError, NotFoundError


async def resolve_blob(
    store: IExtractionStore,
    auth: AuthContext,
    *,
    blob_id: str | None = None,
    file_id: str | None = None,
) -> BlobInventoryRecord:
    """Look up the blob and check that *auth* may touch it.

    A ``file_id`` names an upload row; its ``blob_key`` is the inventory
    ``source_key``.  The tenant check happens before anything else about
    the blob is returned to the caller.
    """
    if blob_id:
        blob = await store.get_blob(blob_id)
        if blob is None:
            raise NotFoundError(message="Blob not found in inventory")
    elif file_id:
        source_file = await store.get_source_file(file_id)
        if source_file is None:
            raise NotFoundError(message="File not found")
        if not auth.can_access(source_file.tenant_id):
            raise AuthorizationError()
        blob = await store.find_blob_by_key(source_file.blob_key)
        if blob is None:
            raise NotFoundError(message="Blob not found in inventory")
    else:
        raise InvalidRequestError(message="blobId or fileId is required")

    if not auth.can_access(blob.tenant_id):
        raise AuthorizationError()
    return blob
