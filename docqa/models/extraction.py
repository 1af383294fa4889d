"""Extracted-content variants, prompt configuration and source metadata.

:data:`ExtractedContent` is a discriminated union.  The chunk record
builder matches on the concrete type, so adding a third shape forces every
consumer to handle it instead of silently reading ``None`` fields.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from docqa.config.constants import DEFAULT_LANGUAGE


class ExtractedPage(BaseModel):
    """Text of one page as returned by the extraction model."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    text: str
    headings: list[str] = Field(default_factory=list)


class PagedContent(BaseModel):
    """Page-oriented extraction result."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pages"] = "pages"
    title: str | None = None
    language: str = DEFAULT_LANGUAGE
    pages: list[ExtractedPage] = Field(min_length=1)
    warnings: list[str] = Field(default_factory=list)


class FlatContent(BaseModel):
    """Unstructured extraction result: one block of text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["full_text"] = "full_text"
    title: str | None = None
    language: str = DEFAULT_LANGUAGE
    full_text: str
    warnings: list[str] = Field(default_factory=list)


ExtractedContent = Annotated[PagedContent | FlatContent, Field(discriminator="kind")]


class PromptConfig(BaseModel):
    """Active prompt row for one pipeline function (``extraction``, ``generate_chunk_qa``)."""

    model_config = ConfigDict(frozen=True)

    function_name: str
    display_name: str = ""
    description: str = ""
    model_provider: str = "google"
    model_name: str
    system_prompt: str | None = None
    user_prompt_template: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, gt=0)
    is_active: bool = True
    version: int = 1


class SourceMeta(BaseModel):
    """What the chunk record builder needs to know about the source blob."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    source_store: str
    source_key: str
    file_name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    content_hash: str | None = None

    @property
    def source_uri(self) -> str:
        return f"blob://{self.source_store}/{self.source_key}"
