"""docqa: document extraction, chunking and QA truth-set generation."""

__version__ = "0.1.0"
