"""HTTP API for triggering extraction, QA generation and review."""
