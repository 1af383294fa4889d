"""Unit tests for domain models and the error hierarchy."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from docqa.models.auth import AuthContext
from docqa.models.extraction import ExtractedContent, FlatContent, PagedContent, SourceMeta
from docqa.models.inventory import BlobInventoryRecord, BlobStatus
from docqa.models.qa import QAGenerationJob
from docqa.utils.errors import (
    AuthenticationError,
    AuthorizationError,
    DocQAError,
    DocumentConversionError,
    ExtractionError,
    InvalidRequestError,
    InvalidTransitionError,
    LLMError,
    NotFoundError,
    StorageError,
)


# ======================================================================
# Errors
# ======================================================================


class TestErrors:
    def test_str_prefixes_provider(self) -> None:
        assert str(LLMError(message="No content", provider_name="gemini")) == "[gemini] No content"
        assert str(NotFoundError(message="Job not found")) == "Job not found"

    def test_defaults(self) -> None:
        assert AuthorizationError().message == "Forbidden"
        assert AuthenticationError().message == "Authentication required"
        assert DocQAError().provider_name is None

    @pytest.mark.parametrize(
        ("error_cls", "status"),
        [
            (InvalidRequestError, 400),
            (AuthenticationError, 401),
            (AuthorizationError, 403),
            (NotFoundError, 404),
            (InvalidTransitionError, 409),
            (DocumentConversionError, 422),
            (LLMError, 502),
            (StorageError, 500),
        ],
    )
    def test_status_codes(self, error_cls: type[DocQAError], status: int) -> None:
        assert error_cls.status_code == status

    def test_conversion_error_is_an_extraction_error(self) -> None:
        assert issubclass(DocumentConversionError, ExtractionError)


# ======================================================================
# AuthContext
# ======================================================================


class TestAuthContext:
    def test_same_tenant(self) -> None:
        auth = AuthContext(user_id="u", tenant_id="t1")
        assert auth.can_access("t1")
        assert not auth.can_access("t2")
        assert not auth.can_access(None)

    def test_admin_crosses_tenants(self) -> None:
        auth = AuthContext(user_id="u", tenant_id="t1", is_admin=True)
        assert auth.can_access("t2")

    def test_frozen(self) -> None:
        auth = AuthContext(user_id="u", tenant_id="t1")
        with pytest.raises(ValidationError):
            auth.is_admin = True


# ======================================================================
# Extraction / inventory / QA models
# ======================================================================


class TestExtractedContent:
    def test_discriminated_by_kind(self) -> None:
        adapter = TypeAdapter(ExtractedContent)
        paged = adapter.validate_python(
            {"kind": "pages", "pages": [{"page_number": 1, "text": "x"}]}
        )
        flat = adapter.validate_python({"kind": "full_text", "full_text": "x"})
        assert isinstance(paged, PagedContent)
        assert isinstance(flat, FlatContent)

    def test_paged_content_needs_a_page(self) -> None:
        with pytest.raises(ValidationError):
            PagedContent(pages=[])

    def test_source_uri(self) -> None:
        meta = SourceMeta(
            document_id="d", source_store="user-files", source_key="t/1/a.pdf", file_name="a.pdf"
        )
        assert meta.source_uri == "blob://user-files/t/1/a.pdf"


class TestInventoryModels:
    def test_blob_defaults(self) -> None:
        blob = BlobInventoryRecord(
            id="b", tenant_id="t", source_store="s", source_key="k", file_name="f"
        )
        assert blob.status == BlobStatus.DISCOVERED
        assert blob.extraction_priority == 0

    def test_status_is_a_string_enum(self) -> None:
        assert BlobStatus("failed") is BlobStatus.FAILED
        assert BlobStatus.QUEUED == "queued"


class TestQAModels:
    @pytest.mark.parametrize("questions", [0, 11])
    def test_questions_per_chunk_bounds(self, questions: int) -> None:
        with pytest.raises(ValidationError):
            QAGenerationJob(id="j", blob_id="b", tenant_id="t", questions_per_chunk=questions)
