"""SQLite-backed QA truth-set store.

Holds ``qa_generation_jobs`` (one per generation request, updated after
every chunk so pollers see live progress) and ``chunk_qa_pairs`` (one per
generated question).  Review updates are conditional on
``status = 'pending'``: the returned rowcount is the number of pairs that
actually changed, which makes repeated approvals report zero.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from docqa.interfaces.qa_store import IQAStore
from docqa.models.qa import QAGenerationJob, QAPair, QAStats, QAStatus
from docqa.utils.clock import iso, now_iso

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docqa.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS qa_generation_jobs (
    id                  TEXT PRIMARY KEY,
    blob_id             TEXT NOT NULL,
    tenant_id           TEXT NOT NULL,
    questions_per_chunk INTEGER NOT NULL DEFAULT 3,
    total_chunks        INTEGER NOT NULL DEFAULT 0,
    processed_chunks    INTEGER NOT NULL DEFAULT 0,
    total_qa_generated  INTEGER NOT NULL DEFAULT 0,
    status              TEXT NOT NULL DEFAULT 'processing',
    error_message       TEXT,
    created_by          TEXT,
    created_at          TEXT NOT NULL,
    started_at          TEXT,
    completed_at        TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunk_qa_pairs (
    id           TEXT PRIMARY KEY,
    job_id       TEXT NOT NULL REFERENCES qa_generation_jobs(id) ON DELETE CASCADE,
    blob_id      TEXT NOT NULL,
    tenant_id    TEXT NOT NULL,
    chunk_index  INTEGER NOT NULL,
    chunk_text   TEXT NOT NULL,
    question     TEXT NOT NULL,
    answer       TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending',
    generated_by TEXT,
    created_at   TEXT NOT NULL,
    reviewed_at  TEXT,
    reviewed_by  TEXT
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_qa_jobs_blob ON qa_generation_jobs(blob_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_qa_pairs_blob ON chunk_qa_pairs(blob_id);",
    "CREATE INDEX IF NOT EXISTS idx_qa_pairs_job ON chunk_qa_pairs(job_id);",
    "CREATE INDEX IF NOT EXISTS idx_qa_pairs_status ON chunk_qa_pairs(status);",
]


class SQLiteQAStore(IQAStore):
    """SQLite persistence for QA generation jobs and QA pairs."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("qa_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def create_job(self, job: QAGenerationJob) -> QAGenerationJob:
        now = now_iso()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO qa_generation_jobs "
                "(id, blob_id, tenant_id, questions_per_chunk, total_chunks, processed_chunks, "
                "total_qa_generated, status, created_by, created_at, started_at) "
                "VALUES (?, ?, ?, ?, ?, 0, 0, ?, ?, ?, ?)",
                (
                    job.id,
                    job.blob_id,
                    job.tenant_id,
                    job.questions_per_chunk,
                    job.total_chunks,
                    job.status.value,
                    job.created_by,
                    now,
                    now,
                ),
            )
            await db.commit()
        logger.info(
            "qa_job_created",
            job_id=job.id,
            blob_id=job.blob_id,
            total_chunks=job.total_chunks,
        )
        return job.model_copy(update={"created_at": now, "started_at": now})

    async def update_progress(
        self,
        job_id: str,
        *,
        processed_chunks: int,
        total_qa_generated: int,
        error_message: str | None = None,
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE qa_generation_jobs SET processed_chunks = ?, total_qa_generated = ?, "
                "error_message = COALESCE(?, error_message) WHERE id = ?",
                (processed_chunks, total_qa_generated, error_message, job_id),
            )
            await db.commit()

    async def complete_job(
        self,
        job_id: str,
        *,
        processed_chunks: int,
        total_qa_generated: int,
        error_message: str | None = None,
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE qa_generation_jobs SET status = 'completed', processed_chunks = ?, "
                "total_qa_generated = ?, completed_at = ?, "
                "error_message = COALESCE(?, error_message) WHERE id = ?",
                (processed_chunks, total_qa_generated, now_iso(), error_message, job_id),
            )
            await db.commit()
        logger.info(
            "qa_job_completed",
            job_id=job_id,
            processed_chunks=processed_chunks,
            total_qa_generated=total_qa_generated,
        )

    async def get_job(self, job_id: str) -> QAGenerationJob | None:
        row = await self._fetch_one("SELECT * FROM qa_generation_jobs WHERE id = ?", (job_id,))
        return QAGenerationJob(**row) if row else None

    async def latest_job_for_blob(self, blob_id: str) -> QAGenerationJob | None:
        row = await self._fetch_one(
            "SELECT * FROM qa_generation_jobs WHERE blob_id = ? "
            "ORDER BY created_at DESC, rowid DESC LIMIT 1",
            (blob_id,),
        )
        return QAGenerationJob(**row) if row else None

    # ------------------------------------------------------------------
    # Pairs
    # ------------------------------------------------------------------

    async def add_pairs(self, pairs: list[QAPair]) -> int:
        if not pairs:
            return 0
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(
                "INSERT INTO chunk_qa_pairs "
                "(id, job_id, blob_id, tenant_id, chunk_index, chunk_text, question, answer, "
                "status, generated_by, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        p.id,
                        p.job_id,
                        p.blob_id,
                        p.tenant_id,
                        p.chunk_index,
                        p.chunk_text,
                        p.question,
                        p.answer,
                        p.status.value,
                        p.generated_by,
                        iso(p.created_at) if p.created_at else now_iso(),
                    )
                    for p in pairs
                ],
            )
            await db.commit()
        return len(pairs)

    async def get_pair(self, qa_id: str) -> QAPair | None:
        row = await self._fetch_one("SELECT * FROM chunk_qa_pairs WHERE id = ?", (qa_id,))
        return QAPair(**row) if row else None

    async def list_pairs(
        self,
        blob_id: str,
        *,
        status: QAStatus | None = None,
        job_id: str | None = None,
    ) -> list[QAPair]:
        sql = "SELECT * FROM chunk_qa_pairs WHERE blob_id = ?"
        params: list[Any] = [blob_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        if job_id is not None:
            sql += " AND job_id = ?"
            params.append(job_id)
        rows = await self._fetch_all(
            f"{sql} ORDER BY chunk_index ASC, created_at ASC, rowid ASC", tuple(params)
        )
        return [QAPair(**r) for r in rows]

    async def pair_stats(self, blob_id: str) -> QAStats:
        rows = await self._fetch_all(
            "SELECT status, COUNT(*) AS n FROM chunk_qa_pairs WHERE blob_id = ? GROUP BY status",
            (blob_id,),
        )
        counts = {row["status"]: row["n"] for row in rows}
        return QAStats(
            total=sum(counts.values()),
            pending=counts.get(QAStatus.PENDING.value, 0),
            approved=counts.get(QAStatus.APPROVED.value, 0),
            rejected=counts.get(QAStatus.REJECTED.value, 0),
        )

    async def transition_pair(self, qa_id: str, status: QAStatus, reviewer: str | None) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE chunk_qa_pairs SET status = ?, reviewed_at = ?, reviewed_by = ? "
                "WHERE id = ? AND status = 'pending'",
                (status.value, now_iso(), reviewer, qa_id),
            )
            await db.commit()
            return cursor.rowcount

    async def update_pair_text(
        self,
        qa_id: str,
        *,
        question: str | None = None,
        answer: str | None = None,
    ) -> int:
        if question is None and answer is None:
            return 0
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE chunk_qa_pairs SET question = COALESCE(?, question), "
                "answer = COALESCE(?, answer) WHERE id = ?",
                (question, answer, qa_id),
            )
            await db.commit()
            return cursor.rowcount

    async def approve_pending_for_blob(self, blob_id: str, reviewer: str | None) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE chunk_qa_pairs SET status = 'approved', reviewed_at = ?, reviewed_by = ? "
                "WHERE blob_id = ? AND status = 'pending'",
                (now_iso(), reviewer, blob_id),
            )
            await db.commit()
            count = cursor.rowcount
        logger.info("qa_pairs_bulk_approved", blob_id=blob_id, count=count)
        return count

    async def delete_pair(self, qa_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM chunk_qa_pairs WHERE id = ?", (qa_id,))
            await db.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
        return dict(row) if row else None

    async def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [dict(r) for r in rows]
