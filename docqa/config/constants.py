"""Versioning and format constants baked into every extraction artifact.

Bump ``EXTRACTION_VERSION`` whenever the extraction prompt, chunking
parameters or record layout change in a way downstream consumers should
be able to detect.  ``SCHEMA_VERSION`` tracks the chunk record shape.
"""

SCHEMA_VERSION = "1.0"
EXTRACTION_VERSION = "2026-01-10"
DEFAULT_MODEL_VERSION = "gemini-2.5-pro-preview"

DEFAULT_LANGUAGE = "en"
# Fixed score: no per-chunk quality model exists yet.
DEFAULT_CONFIDENCE = 0.9

OUTPUT_TYPE_CHUNK_JSONL = "chunk_jsonl"
ARTIFACT_CONTENT_TYPE = "application/x-ndjson"

# Prompt table function names.
EXTRACTION_FUNCTION = "extraction"
QA_FUNCTION = "generate_chunk_qa"

MIN_QUESTIONS_PER_CHUNK = 1
MAX_QUESTIONS_PER_CHUNK = 10
DEFAULT_QUESTIONS_PER_CHUNK = 3

ENQUEUE_ALL_LIMIT = 100
