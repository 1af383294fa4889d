"""docqa FastAPI application: wiring, lifespan and app factory.

``build_components`` constructs every store, provider and service from a
:class:`Settings` instance and returns them as a flat dict.  The API
lifespan puts that dict on ``app.state`` (where the route dependency
helpers find it); the CLI uses the same function for one-shot commands.

Run locally with::

    python -m docqa.main
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from docqa import __version__
from docqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_exception_handlers,
)
from docqa.api.routes import router as api_router
from docqa.config.loader import settings_from_config
from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.providers.blob.filesystem_blob_store import FilesystemBlobStore
from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.gemini_provider import GeminiLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.llm.registry import LLMProviderRegistry
from docqa.providers.store.sqlite_extraction_store import SQLiteExtractionStore
from docqa.providers.store.sqlite_prompt_store import SQLitePromptStore
from docqa.providers.store.sqlite_qa_store import SQLiteQAStore
from docqa.services.artifact_service import ArtifactService
from docqa.services.chunk_builder import ChunkRecordBuilder
from docqa.services.chunker import TextChunker
from docqa.services.document_converter import DocumentConverter
from docqa.services.extraction_client import ExtractionClient
from docqa.services.extraction_queue import ExtractionQueue
from docqa.services.extraction_runner import ExtractionJobRunner
from docqa.services.job_reaper import JobReaper
from docqa.services.qa_generator import QAGenerationRunner
from docqa.services.review_service import ReviewService
from docqa.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = settings_from_config()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def _build_llm_providers(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> list[ILLMProvider]:
    """Gemini is always registered so a missing key surfaces as a configuration error."""
    providers: list[ILLMProvider] = [GeminiLLMProvider(app_settings, http_client=http_client)]
    if app_settings.anthropic_api_key:
        providers.append(AnthropicLLMProvider(app_settings))
    if app_settings.openai_api_key:
        providers.append(OpenAILLMProvider(app_settings))
    return providers


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components to be stored on ``app.state``.
    Stores still need ``initialize()``; see :func:`initialize_stores`.
    """
    http_client = httpx.AsyncClient(timeout=app_settings.llm_timeout_seconds)

    extraction_store = SQLiteExtractionStore(app_settings.database_path)
    prompt_store = SQLitePromptStore(app_settings.database_path)
    qa_store = SQLiteQAStore(app_settings.database_path)
    blob_store = FilesystemBlobStore(app_settings.blob_root)

    llm_registry = LLMProviderRegistry(_build_llm_providers(app_settings, http_client))

    artifact_service = ArtifactService(
        blob_store=blob_store,
        extraction_store=extraction_store,
        output_store=app_settings.output_store_name,
    )
    chunk_builder = ChunkRecordBuilder(
        TextChunker(
            window_size=app_settings.chunk_window_size,
            overlap=app_settings.chunk_overlap,
        )
    )
    extraction_runner = ExtractionJobRunner(
        extraction_store=extraction_store,
        prompt_store=prompt_store,
        blob_store=blob_store,
        extraction_client=ExtractionClient(
            llm_registry=llm_registry, converter=DocumentConverter()
        ),
        chunk_builder=chunk_builder,
        artifact_service=artifact_service,
        lease_seconds=app_settings.extraction_lease_seconds,
        worker_id=app_settings.worker_id or None,
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "extraction_store": extraction_store,
        "prompt_store": prompt_store,
        "qa_store": qa_store,
        "blob_store": blob_store,
        "llm_registry": llm_registry,
        "artifact_service": artifact_service,
        "extraction_runner": extraction_runner,
        "extraction_queue": ExtractionQueue(extraction_store=extraction_store),
        "job_reaper": JobReaper(
            extraction_store=extraction_store,
            max_attempts=app_settings.max_extraction_attempts,
            interval_seconds=app_settings.reaper_interval_seconds,
        ),
        "qa_generator": QAGenerationRunner(
            extraction_store=extraction_store,
            qa_store=qa_store,
            prompt_store=prompt_store,
            artifact_service=artifact_service,
            llm_registry=llm_registry,
        ),
        "review_service": ReviewService(extraction_store=extraction_store, qa_store=qa_store),
    }


async def initialize_stores(components: dict[str, Any]) -> int:
    """Create tables and seed default prompts; returns the number of prompts seeded."""
    await components["extraction_store"].initialize()
    await components["qa_store"].initialize()
    prompt_store = components["prompt_store"]
    await prompt_store.initialize()
    return await prompt_store.seed_defaults()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise stores and start the lease reaper; clean up on shutdown."""
    components = getattr(application.state, "components", None)
    if components is None:
        components = build_components(application.state.settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    seeded = await initialize_stores(components)
    reaper_task = asyncio.create_task(components["job_reaper"].run_forever())

    _logger.info(
        "app_startup",
        version=__version__,
        environment=application.state.settings.app_env,
        llm_providers=components["llm_registry"].names(),
        prompts_seeded=seeded,
    )

    yield

    reaper_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await reaper_task

    http_client: httpx.AsyncClient | None = components.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    *components* replaces :func:`build_components` (tests pass fakes here).
    """
    app_settings = app_settings or settings
    application = FastAPI(
        title="docqa API",
        version=__version__,
        description=(
            "Extract uploaded documents into chunked JSONL artifacts with an LLM, "
            "generate question/answer pairs per chunk, and review them."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    if components is not None:
        application.state.components = {"settings": app_settings, **components}

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.cors_origins)
    register_exception_handlers(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "docqa.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
