"""SQLite-backed extraction metadata store.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
#   - aiosqlite for async I/O, one short-lived connection per call
#   - WAL mode so status polls can read while a runner writes
#   - parameterized queries throughout
#   - idempotent initialize() with CREATE TABLE IF NOT EXISTS
#
# Job claiming is a single UPDATE ... RETURNING over a sub-select of the
# oldest queued job.  SQLite serializes writers, so two workers racing on
# the same row cannot both see status='queued': the loser's UPDATE matches
# zero rows and it gets None back.
#
# Every claimed job carries a lease (lease_owner, lease_expires_at).  Final
# writes are conditional on the caller still owning the lease, so a worker
# whose job was reaped and re-claimed elsewhere cannot clobber the new run.
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from docqa.interfaces.extraction_store import IExtractionStore
from docqa.models.inventory import (
    BlobInventoryRecord,
    BlobStatus,
    ExtractionJob,
    ExtractionOutput,
    JobStatus,
    SourceFile,
)
from docqa.utils.clock import iso, iso_after, now_iso

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docqa.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS blob_inventory (
    id                  TEXT PRIMARY KEY,
    tenant_id           TEXT NOT NULL,
    source_store        TEXT NOT NULL,
    source_key          TEXT NOT NULL UNIQUE,
    file_name           TEXT NOT NULL,
    mime_type           TEXT,
    size_bytes          INTEGER,
    content_hash        TEXT,
    status              TEXT NOT NULL DEFAULT 'discovered',
    extraction_priority INTEGER NOT NULL DEFAULT 0,
    discovered_at       TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS extraction_jobs (
    id                  TEXT PRIMARY KEY,
    blob_id             TEXT NOT NULL REFERENCES blob_inventory(id),
    extraction_version  TEXT NOT NULL,
    model_version       TEXT NOT NULL,
    status              TEXT NOT NULL DEFAULT 'queued',
    error_message       TEXT,
    retry_count         INTEGER NOT NULL DEFAULT 0,
    processing_time_ms  INTEGER,
    input_tokens        INTEGER,
    output_tokens       INTEGER,
    chunk_count         INTEGER,
    correlation_id      TEXT,
    lease_owner         TEXT,
    lease_expires_at    TEXT,
    queued_at           TEXT NOT NULL,
    started_at          TEXT,
    completed_at        TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS extraction_outputs (
    id              TEXT PRIMARY KEY,
    job_id          TEXT NOT NULL REFERENCES extraction_jobs(id),
    blob_id         TEXT NOT NULL REFERENCES blob_inventory(id),
    output_store    TEXT NOT NULL,
    output_key      TEXT NOT NULL UNIQUE,
    output_type     TEXT NOT NULL,
    chunk_count     INTEGER NOT NULL,
    size_bytes      INTEGER NOT NULL,
    content_hash    TEXT NOT NULL,
    schema_version  TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS source_files (
    id          TEXT PRIMARY KEY,
    tenant_id   TEXT NOT NULL,
    file_name   TEXT NOT NULL,
    blob_key    TEXT NOT NULL,
    mime_type   TEXT,
    size_bytes  INTEGER,
    uploaded_by TEXT,
    created_at  TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_blob_status ON blob_inventory(status);",
    "CREATE INDEX IF NOT EXISTS idx_blob_tenant ON blob_inventory(tenant_id);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_status_queued ON extraction_jobs(status, queued_at);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_blob ON extraction_jobs(blob_id);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_lease ON extraction_jobs(status, lease_expires_at);",
    "CREATE INDEX IF NOT EXISTS idx_outputs_blob ON extraction_outputs(blob_id);",
    "CREATE INDEX IF NOT EXISTS idx_outputs_job ON extraction_outputs(job_id);",
    "CREATE INDEX IF NOT EXISTS idx_files_blob_key ON source_files(blob_key);",
]

_CLAIM_SQL = """\
UPDATE extraction_jobs
SET status = 'running', started_at = ?, lease_owner = ?, lease_expires_at = ?
WHERE id = (
    SELECT q.id FROM extraction_jobs AS q
    WHERE q.status = 'queued'
      AND (? IS NULL OR q.id = ?)
      AND NOT EXISTS (
          SELECT 1 FROM extraction_jobs AS r
          WHERE r.blob_id = q.blob_id AND r.status = 'running'
      )
    ORDER BY q.queued_at ASC, q.rowid ASC
    LIMIT 1
)
AND status = 'queued'
RETURNING *;
"""

_LATEST_OUTPUT_SQL = """\
SELECT o.* FROM extraction_outputs AS o
JOIN extraction_jobs AS j ON j.id = o.job_id
WHERE o.blob_id = ? AND j.status = 'completed'
ORDER BY j.completed_at DESC, o.created_at DESC
LIMIT 1;
"""

_ENQUEUEABLE = (BlobStatus.DISCOVERED.value, BlobStatus.FAILED.value)


class SQLiteExtractionStore(IExtractionStore):
    """SQLite persistence for inventory, extraction jobs and artifacts."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices (idempotent)."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("extraction_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    async def add_blob(self, blob: BlobInventoryRecord) -> BlobInventoryRecord:
        now = now_iso()
        discovered_at = iso(blob.discovered_at) if blob.discovered_at else now
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO blob_inventory "
                "(id, tenant_id, source_store, source_key, file_name, mime_type, size_bytes, "
                "content_hash, status, extraction_priority, discovered_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    blob.id,
                    blob.tenant_id,
                    blob.source_store,
                    blob.source_key,
                    blob.file_name,
                    blob.mime_type,
                    blob.size_bytes,
                    blob.content_hash,
                    blob.status.value,
                    blob.extraction_priority,
                    discovered_at,
                    now,
                ),
            )
            await db.commit()
        logger.info("blob_registered", blob_id=blob.id, source_key=blob.source_key)
        return blob.model_copy(update={"discovered_at": discovered_at, "updated_at": now})

    async def get_blob(self, blob_id: str) -> BlobInventoryRecord | None:
        row = await self._fetch_one("SELECT * FROM blob_inventory WHERE id = ?", (blob_id,))
        return BlobInventoryRecord(**row) if row else None

    async def find_blob_by_key(self, source_key: str) -> BlobInventoryRecord | None:
        row = await self._fetch_one(
            "SELECT * FROM blob_inventory WHERE source_key = ?", (source_key,)
        )
        return BlobInventoryRecord(**row) if row else None

    async def list_blobs(
        self,
        *,
        status: BlobStatus | None = None,
        tenant_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BlobInventoryRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if tenant_id is not None:
            clauses.append("tenant_id = ?")
            params.append(tenant_id)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = await self._fetch_all(
            f"SELECT * FROM blob_inventory {where}"
            "ORDER BY discovered_at DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return [BlobInventoryRecord(**r) for r in rows]

    async def list_enqueueable_blobs(self, limit: int) -> list[BlobInventoryRecord]:
        rows = await self._fetch_all(
            "SELECT * FROM blob_inventory WHERE status = ? "
            "ORDER BY extraction_priority DESC, discovered_at ASC LIMIT ?",
            (BlobStatus.DISCOVERED.value, limit),
        )
        return [BlobInventoryRecord(**r) for r in rows]

    async def set_blob_status(self, blob_id: str, status: BlobStatus) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE blob_inventory SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, now_iso(), blob_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("blob_status_changed", blob_id=blob_id, status=status.value)
        return updated

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def enqueue_job(
        self,
        blob_id: str,
        *,
        extraction_version: str,
        model_version: str,
        correlation_id: str | None = None,
    ) -> ExtractionJob | None:
        job_id = str(uuid.uuid4())
        now = now_iso()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE blob_inventory SET status = ?, updated_at = ? "
                "WHERE id = ? AND status IN (?, ?)",
                (BlobStatus.QUEUED.value, now, blob_id, *_ENQUEUEABLE),
            )
            if cursor.rowcount == 0:
                await db.rollback()
                return None
            await db.execute(
                "INSERT INTO extraction_jobs "
                "(id, blob_id, extraction_version, model_version, status, correlation_id, queued_at) "
                "VALUES (?, ?, ?, ?, 'queued', ?, ?)",
                (job_id, blob_id, extraction_version, model_version, correlation_id, now),
            )
            await db.commit()

        logger.info(
            "extraction_job_queued",
            job_id=job_id,
            blob_id=blob_id,
            correlation_id=correlation_id,
        )
        return ExtractionJob(
            id=job_id,
            blob_id=blob_id,
            extraction_version=extraction_version,
            model_version=model_version,
            correlation_id=correlation_id,
            queued_at=now,
        )

    async def get_job(self, job_id: str) -> ExtractionJob | None:
        row = await self._fetch_one("SELECT * FROM extraction_jobs WHERE id = ?", (job_id,))
        return ExtractionJob(**row) if row else None

    async def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        blob_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExtractionJob]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if blob_id is not None:
            clauses.append("blob_id = ?")
            params.append(blob_id)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = await self._fetch_all(
            f"SELECT * FROM extraction_jobs {where}"
            "ORDER BY queued_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return [ExtractionJob(**r) for r in rows]

    async def job_stats(self) -> dict[str, int]:
        rows = await self._fetch_all(
            "SELECT status, COUNT(*) AS n FROM extraction_jobs GROUP BY status", ()
        )
        stats = {s.value: 0 for s in JobStatus}
        for row in rows:
            stats[row["status"]] = row["n"]
        stats["total"] = sum(stats.values())
        return stats

    async def claim_job(
        self,
        *,
        job_id: str | None,
        owner: str,
        lease_seconds: int,
    ) -> ExtractionJob | None:
        now = now_iso()
        lease_expires_at = iso_after(lease_seconds)
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                _CLAIM_SQL,
                (now, owner, lease_expires_at, job_id, job_id),
            )
            rows = await cursor.fetchall()
            claimed = dict(rows[0]) if rows else None
            await db.commit()

        if claimed is None:
            logger.info("extraction_job_claim_empty", requested_job_id=job_id, owner=owner)
            return None
        logger.info(
            "extraction_job_claimed",
            job_id=claimed["id"],
            blob_id=claimed["blob_id"],
            owner=owner,
            lease_expires_at=lease_expires_at,
        )
        return ExtractionJob(**claimed)

    async def renew_lease(self, job_id: str, owner: str, lease_seconds: int) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE extraction_jobs SET lease_expires_at = ? "
                "WHERE id = ? AND status = 'running' AND lease_owner = ?",
                (iso_after(lease_seconds), job_id, owner),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def complete_job(
        self,
        job_id: str,
        owner: str,
        *,
        processing_time_ms: int,
        chunk_count: int,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
    ) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE extraction_jobs SET status = 'completed', completed_at = ?, "
                "processing_time_ms = ?, chunk_count = ?, input_tokens = ?, output_tokens = ?, "
                "lease_expires_at = NULL "
                "WHERE id = ? AND status = 'running' AND lease_owner = ?",
                (
                    now_iso(),
                    processing_time_ms,
                    chunk_count,
                    input_tokens,
                    output_tokens,
                    job_id,
                    owner,
                ),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info(
                "extraction_job_completed",
                job_id=job_id,
                chunk_count=chunk_count,
                processing_time_ms=processing_time_ms,
            )
        else:
            logger.warning("extraction_job_lease_lost", job_id=job_id, owner=owner)
        return updated

    async def fail_job(
        self,
        job_id: str,
        owner: str | None,
        error_message: str,
        *,
        processing_time_ms: int | None = None,
    ) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE extraction_jobs SET status = 'failed', error_message = ?, "
                "completed_at = ?, processing_time_ms = ?, lease_expires_at = NULL "
                "WHERE id = ? AND status = 'running' AND (? IS NULL OR lease_owner = ?)",
                (error_message, now_iso(), processing_time_ms, job_id, owner, owner),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.error("extraction_job_failed", job_id=job_id, error=error_message)
        return updated

    async def requeue_expired(self, now: datetime, max_attempts: int) -> dict[str, list[str]]:
        now_str = iso(now)
        result: dict[str, list[str]] = {"requeued": [], "failed": []}
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, blob_id, retry_count FROM extraction_jobs "
                "WHERE status = 'running' AND lease_expires_at IS NOT NULL "
                "AND lease_expires_at < ?",
                (now_str,),
            )
            stale = await cursor.fetchall()

            for row in stale:
                attempts = row["retry_count"] + 1
                if attempts >= max_attempts:
                    cursor = await db.execute(
                        "UPDATE extraction_jobs SET status = 'failed', error_message = ?, "
                        "completed_at = ?, lease_expires_at = NULL "
                        "WHERE id = ? AND status = 'running' AND lease_expires_at < ?",
                        (
                            f"Lease expired after {attempts} attempts",
                            now_str,
                            row["id"],
                            now_str,
                        ),
                    )
                    if cursor.rowcount:
                        await db.execute(
                            "UPDATE blob_inventory SET status = ?, updated_at = ? WHERE id = ?",
                            (BlobStatus.FAILED.value, now_str, row["blob_id"]),
                        )
                        result["failed"].append(row["id"])
                else:
                    cursor = await db.execute(
                        "UPDATE extraction_jobs SET status = 'queued', retry_count = ?, "
                        "started_at = NULL, lease_owner = NULL, lease_expires_at = NULL "
                        "WHERE id = ? AND status = 'running' AND lease_expires_at < ?",
                        (attempts, row["id"], now_str),
                    )
                    if cursor.rowcount:
                        result["requeued"].append(row["id"])
            await db.commit()

        if result["requeued"] or result["failed"]:
            logger.warning(
                "extraction_jobs_reaped",
                requeued=result["requeued"],
                failed=result["failed"],
            )
        return result

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    async def add_output(self, output: ExtractionOutput) -> ExtractionOutput:
        created_at = iso(output.created_at) if output.created_at else now_iso()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO extraction_outputs "
                "(id, job_id, blob_id, output_store, output_key, output_type, chunk_count, "
                "size_bytes, content_hash, schema_version, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    output.id,
                    output.job_id,
                    output.blob_id,
                    output.output_store,
                    output.output_key,
                    output.output_type,
                    output.chunk_count,
                    output.size_bytes,
                    output.content_hash,
                    output.schema_version,
                    created_at,
                ),
            )
            await db.commit()
        return output.model_copy(update={"created_at": created_at})

    async def delete_output(self, output_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM extraction_outputs WHERE id = ?", (output_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def list_outputs(
        self,
        *,
        job_id: str | None = None,
        blob_id: str | None = None,
    ) -> list[ExtractionOutput]:
        if job_id is None and blob_id is None:
            raise ValueError("list_outputs requires job_id or blob_id")
        if job_id is not None:
            sql, params = "SELECT * FROM extraction_outputs WHERE job_id = ?", (job_id,)
        else:
            sql, params = "SELECT * FROM extraction_outputs WHERE blob_id = ?", (blob_id,)
        rows = await self._fetch_all(f"{sql} ORDER BY created_at DESC", params)
        return [ExtractionOutput(**r) for r in rows]

    async def latest_output_for_blob(self, blob_id: str) -> ExtractionOutput | None:
        row = await self._fetch_one(_LATEST_OUTPUT_SQL, (blob_id,))
        return ExtractionOutput(**row) if row else None

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def add_source_file(self, source_file: SourceFile) -> SourceFile:
        created_at = iso(source_file.created_at) if source_file.created_at else now_iso()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO source_files "
                "(id, tenant_id, file_name, blob_key, mime_type, size_bytes, uploaded_by, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    source_file.id,
                    source_file.tenant_id,
                    source_file.file_name,
                    source_file.blob_key,
                    source_file.mime_type,
                    source_file.size_bytes,
                    source_file.uploaded_by,
                    created_at,
                ),
            )
            await db.commit()
        return source_file.model_copy(update={"created_at": created_at})

    async def get_source_file(self, file_id: str) -> SourceFile | None:
        row = await self._fetch_one("SELECT * FROM source_files WHERE id = ?", (file_id,))
        return SourceFile(**row) if row else None

    # ------------------------------------------------------------------
    # Lineage
    # ------------------------------------------------------------------

    async def lineage(self, blob_id: str) -> dict[str, Any] | None:
        blob = await self.get_blob(blob_id)
        if blob is None:
            return None
        jobs = await self.list_jobs(blob_id=blob_id, limit=1000)
        outputs = await self.list_outputs(blob_id=blob_id)
        return {"blob": blob, "jobs": jobs, "outputs": outputs}

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
