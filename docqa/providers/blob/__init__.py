"""Blob store adapters."""

from docqa.providers.blob.filesystem_blob_store import FilesystemBlobStore
from docqa.providers.blob.memory_blob_store import InMemoryBlobStore

__all__ = ["FilesystemBlobStore", "InMemoryBlobStore"]
