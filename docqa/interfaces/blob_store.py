"""Abstract base class for the blob (object) store.

Blobs are opaque byte payloads addressed by ``(store, key)``.  Source files
live in one store, extraction artifacts in another; artifacts are written
once under a fresh key and never overwritten.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IBlobStore(ABC):
    """Contract for key -> bytes storage."""

    @abstractmethod
    async def get(self, store: str, key: str) -> bytes | None:
        """Return the bytes stored at *key*, or ``None`` if absent."""

    @abstractmethod
    async def put(
        self,
        store: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        """Store *data* under *key*, replacing nothing else."""

    @abstractmethod
    async def exists(self, store: str, key: str) -> bool:
        """Return ``True`` if *key* is present."""

    @abstractmethod
    async def delete(self, store: str, key: str) -> bool:
        """Remove *key*; return ``True`` if something was deleted."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in error messages."""
