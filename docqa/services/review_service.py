"""Human review of generated QA pairs.

Only ``pending`` pairs change status; approving or rejecting anything
else is a no-op that reports zero rows changed.  Every operation checks
that the caller's tenant owns the pair (admins may touch any tenant).
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict

from docqa.interfaces.extraction_store import IExtractionStore
from docqa.interfaces.qa_store import IQAStore
from docqa.models.auth import AuthContext
from docqa.models.qa import QAGenerationJob, QAPair, QAStats, QAStatus
from docqa.services.blob_resolver import resolve_blob
from docqa.utils.errors import AuthorizationError, InvalidRequestError, NotFoundError

logger = structlog.get_logger(logger_name=__name__)


class QAListing(BaseModel):
    """Pairs of one blob with the latest generation job and review counts."""

    model_config = ConfigDict(frozen=True)

    blob_id: str
    job: QAGenerationJob | None = None
    pairs: list[QAPair]
    stats: QAStats


class ReviewService:
    def __init__(self, *, extraction_store: IExtractionStore, qa_store: IQAStore) -> None:
        self._extraction_store = extraction_store
        self._qa_store = qa_store

    async def list_pairs(
        self,
        auth: AuthContext,
        *,
        blob_id: str | None = None,
        file_id: str | None = None,
        status: QAStatus | None = None,
    ) -> QAListing:
        blob = await resolve_blob(self._extraction_store, auth, blob_id=blob_id, file_id=file_id)
        return QAListing(
            blob_id=blob.id,
            job=await self._qa_store.latest_job_for_blob(blob.id),
            pairs=await self._qa_store.list_pairs(blob.id, status=status),
            stats=await self._qa_store.pair_stats(blob.id),
        )

    async def get_pair(self, qa_id: str, auth: AuthContext) -> QAPair:
        return await self._owned_pair(qa_id, auth)

    async def approve(self, qa_id: str, auth: AuthContext) -> int:
        return await self._transition(qa_id, QAStatus.APPROVED, auth)

    async def reject(self, qa_id: str, auth: AuthContext) -> int:
        return await self._transition(qa_id, QAStatus.REJECTED, auth)

    async def set_status(self, qa_id: str, status: QAStatus, auth: AuthContext) -> int:
        if status == QAStatus.PENDING:
            raise InvalidRequestError(message="Status must be approved or rejected")
        return await self._transition(qa_id, status, auth)

    async def update_text(
        self,
        qa_id: str,
        auth: AuthContext,
        *,
        question: str | None = None,
        answer: str | None = None,
    ) -> QAPair:
        """Edit the question and/or answer; review fields are left alone."""
        if question is not None and not question.strip():
            raise InvalidRequestError(message="question must not be empty")
        if answer is not None and not answer.strip():
            raise InvalidRequestError(message="answer must not be empty")
        await self._owned_pair(qa_id, auth)
        await self._qa_store.update_pair_text(qa_id, question=question, answer=answer)
        updated = await self._qa_store.get_pair(qa_id)
        if updated is None:
            raise NotFoundError(message="QA pair not found")
        return updated

    async def bulk_approve(
        self,
        auth: AuthContext,
        *,
        qa_ids: list[str] | None = None,
        approve_all: bool = False,
        blob_id: str | None = None,
        file_id: str | None = None,
    ) -> int:
        """Approve listed pairs, or every pending pair of one blob.

        In list mode, ids that do not exist or belong to another tenant are
        skipped.  Returns the number of pairs actually moved to ``approved``.
        """
        if approve_all:
            blob = await resolve_blob(
                self._extraction_store, auth, blob_id=blob_id, file_id=file_id
            )
            return await self._qa_store.approve_pending_for_blob(blob.id, auth.user_id)

        if not qa_ids:
            raise InvalidRequestError(message="qaIds or approveAll with blobId/fileId is required")

        approved = 0
        for qa_id in qa_ids:
            pair = await self._qa_store.get_pair(qa_id)
            if pair is None or not auth.can_access(pair.tenant_id):
                continue
            approved += await self._qa_store.transition_pair(
                qa_id, QAStatus.APPROVED, auth.user_id
            )
        logger.info("qa_pairs_approved", requested=len(qa_ids), approved=approved)
        return approved

    async def delete(self, qa_id: str, auth: AuthContext) -> bool:
        await self._owned_pair(qa_id, auth)
        deleted = await self._qa_store.delete_pair(qa_id)
        if deleted:
            logger.info("qa_pair_deleted", qa_id=qa_id, user_id=auth.user_id)
        return deleted

    async def _transition(self, qa_id: str, status: QAStatus, auth: AuthContext) -> int:
        await self._owned_pair(qa_id, auth)
        return await self._qa_store.transition_pair(qa_id, status, auth.user_id)

    async def _owned_pair(self, qa_id: str, auth: AuthContext) -> QAPair:
        pair = await self._qa_store.get_pair(qa_id)
        if pair is None:
            raise NotFoundError(message="QA pair not found")
        if not auth.can_access(pair.tenant_id):
            raise AuthorizationError()
        return pair
