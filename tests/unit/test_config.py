"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from docqa.config.loader import load_config, settings_from_config
from docqa.config.settings import Settings


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "app:\n"
        "  name: docqa\n"
        "chunking:\n"
        "  window_size: 500\n"
        "  overlap: 50\n"
        "jobs:\n"
        "  lease_seconds: 120\n"
        "  max_attempts: 5\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep a developer's .env and exported keys out of these tests.
    monkeypatch.chdir(tmp_path)
    for name in (
        "GEMINI_API_KEY",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "CHUNK_WINDOW_SIZE",
        "EXTRACTION_LEASE_SECONDS",
        "APP_ENV",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.chunk_window_size == 1000
        assert s.chunk_overlap == 100
        assert s.extraction_lease_seconds == 900
        assert s.get_available_llm_providers() == []

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        monkeypatch.setenv("OPENAI_API_KEY", "o-key")
        monkeypatch.setenv("GOOGLE_GEMINI_BASE_URL", "https://proxy.test")

        s = Settings()

        assert s.gemini_base_url == "https://proxy.test"
        assert s.get_available_llm_providers() == ["google", "openai"]


class TestSettingsFromConfig:
    def test_yaml_supplies_defaults(self, config_file: Path) -> None:
        s = settings_from_config(str(config_file))
        assert s.chunk_window_size == 500
        assert s.chunk_overlap == 50
        assert s.extraction_lease_seconds == 120
        assert s.max_extraction_attempts == 5
        assert s.reaper_interval_seconds == 60

    def test_environment_wins_over_yaml(
        self, config_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHUNK_WINDOW_SIZE", "2000")
        monkeypatch.setenv("EXTRACTION_LEASE_SECONDS", "30")

        s = settings_from_config(str(config_file))

        assert s.chunk_window_size == 2000
        assert s.extraction_lease_seconds == 30
        assert s.chunk_overlap == 50

    def test_missing_file_uses_settings_defaults(self, tmp_path: Path) -> None:
        s = settings_from_config(str(tmp_path / "absent.yaml"))
        assert s.chunk_window_size == 1000


class TestLoadConfig:
    def test_env_values_merge_over_yaml(self, config_file: Path) -> None:
        config = load_config(
            str(config_file),
            settings=Settings(app_port=9000, database_path="/tmp/x.db", anthropic_api_key="k"),
        )

        assert config["app"]["name"] == "docqa"
        assert config["app"]["port"] == 9000
        assert config["chunking"]["window_size"] == 500
        assert config["storage"]["database_path"] == "/tmp/x.db"
        assert config["llm"]["available_providers"] == ["anthropic"]
