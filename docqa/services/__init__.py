"""Pipeline services: chunking, extraction, artifact handling, QA generation, review."""
