"""Command-line tools for operating the docqa pipeline.

- ``python -m docqa.cli init-db`` creates tables and seeds prompts.
- ``python -m docqa.cli register FILE`` uploads a local document.
- ``python -m docqa.cli enqueue`` / ``run-extraction`` / ``generate-qa``
  drive the pipeline from a shell.
- ``python -m docqa.cli reap`` / ``stats`` inspect and repair the queue.
"""
