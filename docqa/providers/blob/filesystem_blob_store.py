"""Local-disk blob store.

Lays blobs out as ``<root>/<store>/<key>``.  Keys may contain ``/`` to form
sub-directories (``{blob_id}/{uuid}.jsonl``) but must stay inside their
store.  Writes go to a temp file first and are moved into place with
``os.replace`` so a reader never sees a half-written artifact.

Disk I/O runs in worker threads via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path, PurePosixPath

import structlog

from docqa.interfaces.blob_store import IBlobStore
from docqa.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class FilesystemBlobStore(IBlobStore):
    """Blob store backed by a directory tree."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    # -- Sync helpers (executed via asyncio.to_thread) ---------------------

    def _path_for(self, store: str, key: str) -> Path:
        for part in (store, key):
            pure = PurePosixPath(part)
            if not part or pure.is_absolute() or ".." in pure.parts or "\\" in part:
                raise StorageError(
                    message=f"Invalid blob path: {store}/{key}",
                    provider_name=self.get_provider_name(),
                )
        return self._root / store / Path(*PurePosixPath(key).parts)

    @staticmethod
    def _read_sync(path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _write_sync(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _delete_sync(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    # -- IBlobStore implementation ------------------------------------------

    async def get(self, store: str, key: str) -> bytes | None:
        path = self._path_for(store, key)
        try:
            return await asyncio.to_thread(self._read_sync, path)
        except OSError as exc:
            raise StorageError(
                message=f"Failed to read {store}/{key}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def put(
        self,
        store: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        path = self._path_for(store, key)
        try:
            await asyncio.to_thread(self._write_sync, path, data)
        except OSError as exc:
            raise StorageError(
                message=f"Failed to write {store}/{key}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("blob_written", store=store, key=key, size_bytes=len(data))

    async def exists(self, store: str, key: str) -> bool:
        path = self._path_for(store, key)
        return await asyncio.to_thread(path.is_file)

    async def delete(self, store: str, key: str) -> bool:
        path = self._path_for(store, key)
        return await asyncio.to_thread(self._delete_sync, path)

    def get_provider_name(self) -> str:
        return "filesystem-blob"
