"""SQLite (aiosqlite) implementations of the relational store interfaces."""

from docqa.providers.store.sqlite_extraction_store import SQLiteExtractionStore
from docqa.providers.store.sqlite_prompt_store import SQLitePromptStore
from docqa.providers.store.sqlite_qa_store import SQLiteQAStore

__all__ = ["SQLiteExtractionStore", "SQLitePromptStore", "SQLiteQAStore"]
