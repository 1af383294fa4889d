"""Operator CLI for the docqa pipeline.

Usage::

    python -m docqa.cli init-db
    python -m docqa.cli register ./report.pdf --tenant-id acme
    python -m docqa.cli enqueue --all
    python -m docqa.cli run-extraction            # oldest queued job
    python -m docqa.cli run-extraction --job-id JOB
    python -m docqa.cli generate-qa --blob-id BLOB -n 5
    python -m docqa.cli reap
    python -m docqa.cli stats

Commands run with an admin identity for the given ``--tenant-id``.
Exit status is 0 on success and 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from docqa.config.constants import DEFAULT_QUESTIONS_PER_CHUNK, ENQUEUE_ALL_LIMIT
from docqa.models.auth import AuthContext
from docqa.utils.errors import DocQAError

_CLI_USER = "cli"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docqa",
        description="Document extraction and QA generation pipeline.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML config file (default: %(default)s)"
    )
    parser.add_argument(
        "--tenant-id", default="default", help="Tenant to act as (default: %(default)s)"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init-db", help="Create tables and seed default prompts")

    register = sub.add_parser("register", help="Upload a local file as a discovered document")
    register.add_argument("path", type=Path)
    register.add_argument("--mime-type", default=None)
    register.add_argument("--priority", type=int, default=0)

    enqueue = sub.add_parser("enqueue", help="Queue extraction jobs")
    target = enqueue.add_mutually_exclusive_group(required=True)
    target.add_argument("--blob-id")
    target.add_argument("--all", action="store_true", help="Queue every discovered blob")
    enqueue.add_argument("--limit", type=int, default=ENQUEUE_ALL_LIMIT)

    run = sub.add_parser("run-extraction", help="Run one queued extraction job")
    run.add_argument("--job-id", default=None, help="Specific job (default: oldest queued)")

    qa = sub.add_parser("generate-qa", help="Generate QA pairs for an extracted blob")
    qa.add_argument("--blob-id", required=True)
    qa.add_argument(
        "-n", "--questions-per-chunk", type=int, default=DEFAULT_QUESTIONS_PER_CHUNK
    )

    sub.add_parser("reap", help="Requeue or fail jobs whose lease expired")
    sub.add_parser("stats", help="Print job counts by status")
    return parser


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def _run(args: argparse.Namespace) -> int:
    # Deferred: importing docqa.main loads every provider SDK.
    from docqa.config.loader import settings_from_config
    from docqa.main import build_components, initialize_stores
    from docqa.services.registration import register_document

    app_settings = settings_from_config(args.config)
    components = build_components(app_settings)
    auth = AuthContext(user_id=_CLI_USER, tenant_id=args.tenant_id, is_admin=True)

    try:
        seeded = await initialize_stores(components)

        if args.command == "init-db":
            print(f"Database ready at {app_settings.database_path} ({seeded} prompt(s) seeded)")

        elif args.command == "register":
            data = args.path.read_bytes()
            source_file, blob = await register_document(
                blob_store=components["blob_store"],
                extraction_store=components["extraction_store"],
                source_store=app_settings.source_store_name,
                tenant_id=args.tenant_id,
                file_name=args.path.name,
                data=data,
                mime_type=args.mime_type,
                uploaded_by=_CLI_USER,
                priority=args.priority,
            )
            _print_json({"blobId": blob.id, "fileId": source_file.id, "sourceKey": blob.source_key})

        elif args.command == "enqueue":
            queue = components["extraction_queue"]
            if args.all:
                result = await queue.enqueue_pending(limit=args.limit)
            else:
                result = await queue.enqueue(args.blob_id, auth)
            _print_json(result.model_dump(mode="json"))

        elif args.command == "run-extraction":
            result = await components["extraction_runner"].run_one(args.job_id)
            if not result.claimed:
                print("No jobs to process")
                return 0
            _print_json(result.model_dump(mode="json"))
            return 0 if result.error is None else 1

        elif args.command == "generate-qa":
            result = await components["qa_generator"].generate(
                auth,
                blob_id=args.blob_id,
                questions_per_chunk=args.questions_per_chunk,
            )
            _print_json(result.model_dump(mode="json"))

        elif args.command == "reap":
            _print_json(await components["job_reaper"].reap())

        elif args.command == "stats":
            _print_json(await components["extraction_queue"].job_stats())

    except (DocQAError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["http_client"].aclose()
    return 0


def main() -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
