"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

    1. config/config.yaml  -- static defaults checked into the repo
    2. .env file           -- local developer overrides
    3. environment vars    -- deploy-time values

``load_config`` reads the YAML first, then deep-merges the env-derived
:class:`Settings` values on top.  :func:`settings_from_config` goes the
other way and builds a ``Settings`` whose unset fields fall back to YAML.
"""

from pathlib import Path
from typing import Any

import yaml

from docqa.config.settings import Settings

_JOB_FIELDS = {
    "lease_seconds": "extraction_lease_seconds",
    "reaper_interval_seconds": "reaper_interval_seconds",
    "max_attempts": "max_extraction_attempts",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    yaml_config = _read_yaml(path)

    s = settings or Settings()
    env_overrides = {
        "app": {
            "host": s.app_host,
            "port": s.app_port,
            "env": s.app_env,
        },
        "llm": {
            "gemini_base_url": s.gemini_base_url,
            "available_providers": s.get_available_llm_providers(),
            "timeout_seconds": s.llm_timeout_seconds,
        },
        "storage": {
            "database_path": s.database_path,
            "blob_root": s.blob_root,
            "source_store": s.source_store_name,
            "output_store": s.output_store_name,
        },
        "logging": {
            "level": s.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def settings_from_config(path: str = "config/config.yaml") -> Settings:
    """Build Settings with YAML ``chunking`` / ``jobs`` sections as defaults.

    Environment variables still win: YAML values are only applied to fields
    the environment left unset.
    """
    yaml_config = _read_yaml(path)
    defaults: dict[str, Any] = {}
    chunking = yaml_config.get("chunking", {})
    if "window_size" in chunking:
        defaults["chunk_window_size"] = chunking["window_size"]
    if "overlap" in chunking:
        defaults["chunk_overlap"] = chunking["overlap"]
    jobs = yaml_config.get("jobs", {})
    for yaml_key, field in _JOB_FIELDS.items():
        if yaml_key in jobs:
            defaults[field] = jobs[yaml_key]

    env_settings = Settings()
    explicit = env_settings.model_fields_set
    merged = {k: v for k, v in defaults.items() if k not in explicit}
    return env_settings.model_copy(update=merged)


def _read_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
