"""QA generation jobs, QA pairs and review statistics."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class QAJobStatus(str, Enum):  # noqa: UP042
    PROCESSING = "processing"
    COMPLETED = "completed"


class QAStatus(str, Enum):  # noqa: UP042
    """Review state of a generated pair.  Only ``pending`` may change."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class QAGenerationJob(BaseModel):
    """Progress record for one QA generation request against a blob."""

    model_config = ConfigDict(frozen=True)

    id: str
    blob_id: str
    tenant_id: str
    questions_per_chunk: int = Field(ge=1, le=10)
    total_chunks: int = 0
    processed_chunks: int = 0
    total_qa_generated: int = 0
    status: QAJobStatus = QAJobStatus.PROCESSING
    error_message: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class QAPair(BaseModel):
    """One generated question/answer awaiting (or past) human review."""

    model_config = ConfigDict(frozen=True)

    id: str
    job_id: str
    blob_id: str
    tenant_id: str
    chunk_index: int
    chunk_text: str
    question: str
    answer: str
    status: QAStatus = QAStatus.PENDING
    generated_by: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None


class QAStats(BaseModel):
    """Pair counts by review status for one blob."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class QAGenerationResult(BaseModel):
    """Summary returned once a generation run finishes."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    total_chunks: int
    processed_chunks: int
    total_qa_generated: int
    error_message: str | None = None
