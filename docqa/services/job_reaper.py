"""Recovers extraction jobs whose worker died mid-run.

A ``running`` job whose lease has expired goes back to ``queued`` with
``retry_count + 1``.  Once that would reach ``max_attempts`` the job is
failed instead ("Lease expired after N attempts") together with its
inventory record.
"""

from __future__ import annotations

import asyncio

import structlog

from docqa.interfaces.extraction_store import IExtractionStore
from docqa.utils.clock import utc_now

logger = structlog.get_logger(logger_name=__name__)


class JobReaper:
    def __init__(
        self,
        *,
        extraction_store: IExtractionStore,
        max_attempts: int = 3,
        interval_seconds: float = 60.0,
    ) -> None:
        self._store = extraction_store
        self._max_attempts = max_attempts
        self._interval_seconds = interval_seconds

    async def reap(self) -> dict[str, list[str]]:
        """Run one pass; returns the requeued and failed job ids."""
        return await self._store.requeue_expired(utc_now(), self._max_attempts)

    async def run_forever(self) -> None:
        """Reap every ``interval_seconds`` until cancelled."""
        logger.info(
            "job_reaper_started",
            interval_seconds=self._interval_seconds,
            max_attempts=self._max_attempts,
        )
        while True:
            try:
                await self.reap()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("job_reaper_pass_failed", error=str(exc))
            await asyncio.sleep(self._interval_seconds)
