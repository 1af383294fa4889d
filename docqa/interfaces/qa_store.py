"""Abstract base class for QA generation job and QA pair persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.qa import QAGenerationJob, QAPair, QAStats, QAStatus


class IQAStore(ABC):
    """Contract for the QA truth-set tables.

    Review transitions are conditional updates: a pair only moves out of
    ``pending`` and never back, so repeating an approval changes nothing.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables and indices if they do not exist."""

    # -- Jobs --------------------------------------------------------------

    @abstractmethod
    async def create_job(self, job: QAGenerationJob) -> QAGenerationJob:
        """Insert a job row in ``processing`` state."""

    @abstractmethod
    async def update_progress(
        self,
        job_id: str,
        *,
        processed_chunks: int,
        total_qa_generated: int,
        error_message: str | None = None,
    ) -> None:
        """Persist live counters; *error_message* overwrites the previous one when given."""

    @abstractmethod
    async def complete_job(
        self,
        job_id: str,
        *,
        processed_chunks: int,
        total_qa_generated: int,
        error_message: str | None = None,
    ) -> None:
        """Mark the job ``completed`` with final counters and an optional last error."""

    @abstractmethod
    async def get_job(self, job_id: str) -> QAGenerationJob | None:
        """Return one job, or ``None``."""

    @abstractmethod
    async def latest_job_for_blob(self, blob_id: str) -> QAGenerationJob | None:
        """Return the most recently created job for *blob_id*."""

    # -- Pairs -------------------------------------------------------------

    @abstractmethod
    async def add_pairs(self, pairs: list[QAPair]) -> int:
        """Insert pairs in one transaction; return how many were written."""

    @abstractmethod
    async def get_pair(self, qa_id: str) -> QAPair | None:
        """Return one pair, or ``None``."""

    @abstractmethod
    async def list_pairs(
        self,
        blob_id: str,
        *,
        status: QAStatus | None = None,
        job_id: str | None = None,
    ) -> list[QAPair]:
        """List pairs for a blob ordered by chunk index then creation time."""

    @abstractmethod
    async def pair_stats(self, blob_id: str) -> QAStats:
        """Return pair counts by status for *blob_id*."""

    @abstractmethod
    async def transition_pair(self, qa_id: str, status: QAStatus, reviewer: str | None) -> int:
        """Move a ``pending`` pair to *status*; return the number of rows changed."""

    @abstractmethod
    async def update_pair_text(
        self,
        qa_id: str,
        *,
        question: str | None = None,
        answer: str | None = None,
    ) -> int:
        """Edit question and/or answer text; return rows changed."""

    @abstractmethod
    async def approve_pending_for_blob(self, blob_id: str, reviewer: str | None) -> int:
        """Approve every ``pending`` pair of *blob_id*; return rows changed."""

    @abstractmethod
    async def delete_pair(self, qa_id: str) -> bool:
        """Remove one pair; ``True`` if it existed."""
