"""Application settings loaded from environment variables via pydantic-settings.

Values are read (highest priority first) from environment variables, then
the project-root ``.env`` file, then the defaults below.  Field names map
to upper-cased env vars automatically (``gemini_api_key`` ->
``GEMINI_API_KEY``); the Gemini base URL keeps the historical
``GOOGLE_GEMINI_BASE_URL`` name via an explicit alias.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docqa application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # === LLM Providers ===
    # Empty string = "not configured"; the provider registry skips it.
    gemini_api_key: str = ""
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        validation_alias=AliasChoices("GOOGLE_GEMINI_BASE_URL", "GEMINI_BASE_URL"),
    )
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""
    llm_timeout_seconds: float = 120.0

    # === Storage ===
    database_path: str = "data/docqa.db"
    blob_root: str = "data/blobs"
    source_store_name: str = "user-files"
    output_store_name: str = "extracted-chunks"

    # === Chunking ===
    chunk_window_size: int = 1000
    chunk_overlap: int = 100

    # === Extraction job leases ===
    extraction_lease_seconds: int = 900
    reaper_interval_seconds: int = 60
    max_extraction_attempts: int = 3
    worker_id: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    def get_available_llm_providers(self) -> list[str]:
        """Return the provider names that have credentials configured."""
        providers: list[str] = []
        if self.gemini_api_key:
            providers.append("google")
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
