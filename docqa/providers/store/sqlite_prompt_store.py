"""SQLite-backed prompt configuration store.

One row per pipeline function (``function_name`` is unique).  Rows are
edited by operators; the pipeline only ever reads the active one.
:meth:`SQLitePromptStore.seed_defaults` installs the built-in extraction
and QA prompts without touching rows an operator already customised.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from docqa.config.constants import EXTRACTION_FUNCTION, QA_FUNCTION
from docqa.interfaces.prompt_store import IPromptStore
from docqa.models.extraction import PromptConfig
from docqa.utils.clock import now_iso
from docqa.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docqa.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS prompts (
    function_name        TEXT PRIMARY KEY,
    display_name         TEXT NOT NULL DEFAULT '',
    description          TEXT NOT NULL DEFAULT '',
    model_provider       TEXT NOT NULL,
    model_name           TEXT NOT NULL,
    system_prompt        TEXT,
    user_prompt_template TEXT NOT NULL,
    temperature          REAL NOT NULL DEFAULT 0.7,
    max_tokens           INTEGER NOT NULL DEFAULT 4096,
    is_active            INTEGER NOT NULL DEFAULT 1,
    version              INTEGER NOT NULL DEFAULT 1,
    updated_at           TEXT NOT NULL
);
"""

_UPSERT_SQL = """\
INSERT INTO prompts (function_name, display_name, description, model_provider, model_name,
                     system_prompt, user_prompt_template, temperature, max_tokens, is_active,
                     version, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(function_name)
DO UPDATE SET display_name         = excluded.display_name,
              description          = excluded.description,
              model_provider       = excluded.model_provider,
              model_name           = excluded.model_name,
              system_prompt        = excluded.system_prompt,
              user_prompt_template = excluded.user_prompt_template,
              temperature          = excluded.temperature,
              max_tokens           = excluded.max_tokens,
              is_active            = excluded.is_active,
              version              = prompts.version + 1,
              updated_at           = excluded.updated_at;
"""

_EXTRACTION_TEMPLATE = """\
Extract the text content from this document. Return a JSON object with:
- title: the document title if identifiable
- language: the primary language code (e.g., "en", "es", "fr")
- pages: an array of page objects, each with:
  - pageNumber: the page number (1-indexed)
  - text: the extracted text for that page
  - headings: any section headings found on that page

If the document doesn't have clear pages (like a text file), return a single page with pageNumber 1.

Return ONLY valid JSON, no markdown formatting or explanation."""

_QA_SYSTEM_PROMPT = (
    "You are an expert at creating high-quality question-answer pairs from document "
    "content. Generate questions that a user might naturally ask when searching for "
    "information contained in the provided text. Answers should be accurate, concise, "
    "and directly supported by the source text."
)

_QA_TEMPLATE = """\
Generate exactly {{questionsPerChunk}} question-answer pairs from the following document chunk.

Document Title: {{documentTitle}}
Section: {{sectionPath}}

Chunk Content:
{{chunkText}}

Return your response as a JSON array with this exact format:
[
  {"question": "...", "answer": "..."},
  {"question": "...", "answer": "..."}
]

Requirements:
- Questions should be natural and varied (who, what, when, where, why, how)
- Answers must be factually grounded in the chunk content
- Avoid yes/no questions
- Each Q&A pair should be self-contained and useful for retrieval"""

DEFAULT_PROMPTS: tuple[PromptConfig, ...] = (
    PromptConfig(
        function_name=EXTRACTION_FUNCTION,
        display_name="Document Extraction",
        description="Extracts structured text content from uploaded documents for RAG preprocessing",
        model_provider="google",
        model_name="gemini-2.5-pro-preview-05-06",
        user_prompt_template=_EXTRACTION_TEMPLATE,
        temperature=0.1,
        max_tokens=65536,
    ),
    PromptConfig(
        function_name=QA_FUNCTION,
        display_name="Chunk Q&A Generator",
        description="Generates question-answer pairs from document chunks for RAG truth sets",
        model_provider="google",
        model_name="gemini-2.0-flash",
        system_prompt=_QA_SYSTEM_PROMPT,
        user_prompt_template=_QA_TEMPLATE,
        temperature=0.7,
        max_tokens=2000,
    ),
)


class SQLitePromptStore(IPromptStore):
    """SQLite persistence for per-function prompt configuration."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        logger.info("prompt_db_initialized", path=str(self._db_path))

    async def get_active_prompt(self, function_name: str) -> PromptConfig:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM prompts WHERE function_name = ? AND is_active = 1",
                (function_name,),
            )
            row = await cursor.fetchone()
        if row is None:
            raise ConfigurationError(
                message=f"No active prompt found for function: {function_name}"
            )
        data = dict(row)
        data.pop("updated_at", None)
        data["is_active"] = bool(data["is_active"])
        return PromptConfig(**data)

    async def upsert_prompt(self, prompt: PromptConfig) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_SQL,
                (
                    prompt.function_name,
                    prompt.display_name,
                    prompt.description,
                    prompt.model_provider,
                    prompt.model_name,
                    prompt.system_prompt,
                    prompt.user_prompt_template,
                    prompt.temperature,
                    prompt.max_tokens,
                    int(prompt.is_active),
                    prompt.version,
                    now_iso(),
                ),
            )
            await db.commit()
        logger.info("prompt_upserted", function_name=prompt.function_name)

    async def seed_defaults(self) -> int:
        added = 0
        async with aiosqlite.connect(str(self._db_path)) as db:
            for prompt in DEFAULT_PROMPTS:
                cursor = await db.execute(
                    "INSERT OR IGNORE INTO prompts (function_name, display_name, description, "
                    "model_provider, model_name, system_prompt, user_prompt_template, "
                    "temperature, max_tokens, is_active, version, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, 1, ?)",
                    (
                        prompt.function_name,
                        prompt.display_name,
                        prompt.description,
                        prompt.model_provider,
                        prompt.model_name,
                        prompt.system_prompt,
                        prompt.user_prompt_template,
                        prompt.temperature,
                        prompt.max_tokens,
                        now_iso(),
                    ),
                )
                added += cursor.rowcount
            await db.commit()
        logger.info("prompts_seeded", added=added)
        return added
