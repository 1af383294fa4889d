"""In-memory blob store for tests and throwaway CLI runs.

Keys are stored as given without path checks; nothing survives the
process.
"""

from __future__ import annotations

from docqa.interfaces.blob_store import IBlobStore


class InMemoryBlobStore(IBlobStore):
    """Dict-backed blob store."""

    def __init__(self) -> None:
        self._blobs: dict[tuple[str, str], bytes] = {}
        self._content_types: dict[tuple[str, str], str | None] = {}

    async def get(self, store: str, key: str) -> bytes | None:
        return self._blobs.get((store, key))

    async def put(
        self,
        store: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        self._blobs[(store, key)] = bytes(data)
        self._content_types[(store, key)] = content_type

    async def exists(self, store: str, key: str) -> bool:
        return (store, key) in self._blobs

    async def delete(self, store: str, key: str) -> bool:
        self._content_types.pop((store, key), None)
        return self._blobs.pop((store, key), None) is not None

    def keys(self, store: str) -> list[str]:
        """Return every key held in *store* (test helper)."""
        return sorted(k for s, k in self._blobs if s == store)

    def get_provider_name(self) -> str:
        return "memory-blob"
