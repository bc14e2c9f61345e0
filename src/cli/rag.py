# =============================================================================
# src/cli/rag.py -- Document Ingestion & Retrieval CLI
# =============================================================================
#
# Operator CLI for the studyRAG pipeline. Every command builds the same
# component graph as the application (src.main.build_components), so the
# CLI talks to the same SQLite registry, vector index and OpenAI models.
#
# Supported subcommands:
#
#   register -- Register an uploaded document (id, storage key, file kind)
#   ingest   -- Run one or more registered documents through the pipeline
#   retry    -- Re-run a COMPLETED or FAILED document
#   status   -- Show a document's processing status
#   chunks   -- List the indexed chunks of a document
#   search   -- Similarity search within one document
#   ask      -- Ask a question, optionally grounded in a document
#   stats    -- Show vector index statistics
#
# Usage examples:
#   python -m src.cli register --id lecture-01 --key lecture-01.pdf --kind pdf
#   python -m src.cli ingest lecture-01
#   python -m src.cli search lecture-01 "What is gradient descent?" --top-k 3
#   python -m src.cli ask "Summarise the lecture" --document lecture-01
# =============================================================================

"""Command-line interface for document ingestion and retrieval.

Usage::

    python -m src.cli register --id lecture-01 --key lecture-01.pdf --kind pdf
    python -m src.cli ingest lecture-01
    python -m src.cli status lecture-01
    python -m src.cli ask "What is entropy?" --document lecture-01
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from src.config.loader import load_settings
from src.config.settings import Settings
from src.models.conversation import ConversationTurn
from src.models.processing import (
    DocumentRecord,
    IngestionResult,
    IngestionStage,
    ProcessingState,
)
from src.utils.errors import StudyRAGError
from src.utils.logging import configure_logging

_PREVIEW_CHARS = 120


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


def _print_progress(
    document_id: str,
    stage: IngestionStage,
    state: ProcessingState,
    progress: float,
    message: str,
) -> None:
    print(f"  [{document_id}] {stage.value:<8} {progress:5.1f}%  {message}")


def _print_result(result: IngestionResult) -> None:
    print(f"Document {result.document_id}: {result.state.value}")
    print(f"  Chunks total:     {result.total_chunks}")
    print(f"  Chunks indexed:   {result.processed_chunks}")
    print(f"  Chunks failed:    {result.failed_chunks}")
    print(f"  Total tokens:     {result.total_tokens}")
    print(f"  Time:             {result.ingestion_time:.2f}s")
    if result.error_message:
        print(f"  Error:            {result.error_message}")
    for warning in result.warnings:
        print(f"  Warning:          {warning}")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_register(args: argparse.Namespace, components: dict[str, Any]) -> int:
    record = DocumentRecord(
        document_id=args.id,
        storage_key=args.key,
        file_kind=args.kind,
        title=args.title or "",
        tenant_id=args.tenant or "",
    )
    status = await components["orchestrator"].register(record)
    print(f"Registered {record.document_id} ({record.file_kind}): {status.state.value}")
    return 0


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Ingest every listed document; exit 1 if any of them did not complete."""
    if args.progress:
        tracker = components["progress_tracker"]
        for document_id in args.document_ids:
            tracker.register_listener(document_id, _print_progress)

    outcomes = await components["orchestrator"].ingest_many(args.document_ids)
    exit_code = 0
    for document_id, outcome in zip(args.document_ids, outcomes):
        if isinstance(outcome, BaseException):
            print(f"Document {document_id}: {outcome}", file=sys.stderr)
            exit_code = 1
            continue
        _print_result(outcome)
        if outcome.error_message:
            exit_code = 1
    return exit_code


async def _handle_retry(args: argparse.Namespace, components: dict[str, Any]) -> int:
    result = await components["orchestrator"].retry(args.document_id)
    _print_result(result)
    return 1 if result.error_message else 0


async def _handle_status(args: argparse.Namespace, components: dict[str, Any]) -> int:
    status = await components["orchestrator"].get_status(args.document_id)
    print(f"Document {status.document_id}: {status.state.value}")
    print(f"  Chunks total:     {status.total_chunks}")
    print(f"  Chunks indexed:   {status.processed_chunks}")
    print(f"  Chunks failed:    {status.failed_chunks}")
    print(f"  Updated:          {status.updated_at.isoformat()}")
    if status.error_message:
        print(f"  Error:            {status.error_message}")
    return 0


async def _handle_chunks(args: argparse.Namespace, components: dict[str, Any]) -> int:
    chunks = await components["orchestrator"].get_chunks(args.document_id, limit=args.limit)
    if not chunks:
        print(f"No indexed chunks for {args.document_id}.")
        return 0
    for chunk in chunks:
        print(
            f"[{chunk.chunk_index:>4}] {chunk.chunk_type.value:<13} "
            f"{chunk.token_count:>5} tok  {_preview(chunk.content)}"
        )
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    results = await components["retrieval"].assemble(
        args.document_id, args.query, top_k=args.top_k
    )
    if not results:
        print("No results.")
        return 0
    for position, result in enumerate(results, start=1):
        print(f"{position}. score={result.similarity_score:.4f}  chunk={result.chunk_id}")
        print(f"   {_preview(result.content)}")
    return 0


async def _handle_ask(args: argparse.Namespace, components: dict[str, Any]) -> int:
    answer = await components["chat_service"].respond(
        args.question,
        prior_turns=[ConversationTurn(role="user", content=turn) for turn in args.history],
        document_id=args.document,
        top_k=args.top_k,
    )
    print(answer.content)
    if args.document:
        label = "grounded" if answer.grounded else "not grounded"
        print(f"\n({label}, {len(answer.sources)} source chunks)")
    return 0


async def _handle_stats(args: argparse.Namespace, components: dict[str, Any]) -> int:
    stats = await components["vector_store"].get_stats()
    print("Vector Index Statistics")
    print("=" * 40)
    print(f"  Provider:         {stats.provider}")
    print(f"  Total vectors:    {stats.total_vectors}")
    print(f"  Dimension:        {stats.dimension if stats.dimension is not None else '-'}")
    if args.document:
        count = await components["vector_store"].count(args.document)
        print(f"  Vectors for {args.document}: {count}")
    return 0


_HANDLERS = {
    "register": _handle_register,
    "ingest": _handle_ingest,
    "retry": _handle_retry,
    "status": _handle_status,
    "chunks": _handle_chunks,
    "search": _handle_search,
    "ask": _handle_ask,
    "stats": _handle_stats,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the studyRAG CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Ingest course documents and query them.",
    )
    parser.add_argument("--config", default="config/config.yaml", help="YAML config path")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- register --
    register_parser = subparsers.add_parser("register", help="Register an uploaded document")
    register_parser.add_argument("--id", required=True, help="Document id")
    register_parser.add_argument("--key", required=True, help="Object-store key or URL")
    register_parser.add_argument("--kind", required=True, help="File kind (pdf, docx, pptx, ...)")
    register_parser.add_argument("--title", default="", help="Display title")
    register_parser.add_argument("--tenant", default="", help="Tenant id")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest registered documents")
    ingest_parser.add_argument("document_ids", nargs="+", help="Document ids")
    ingest_parser.add_argument(
        "--progress", action="store_true", help="Print stage updates while ingesting"
    )

    # -- retry --
    retry_parser = subparsers.add_parser("retry", help="Re-run a finished document")
    retry_parser.add_argument("document_id", help="Document id")

    # -- status --
    status_parser = subparsers.add_parser("status", help="Show processing status")
    status_parser.add_argument("document_id", help="Document id")

    # -- chunks --
    chunks_parser = subparsers.add_parser("chunks", help="List indexed chunks")
    chunks_parser.add_argument("document_id", help="Document id")
    chunks_parser.add_argument("--limit", type=int, default=100, help="Maximum rows (default: 100)")

    # -- search --
    search_parser = subparsers.add_parser("search", help="Search one document")
    search_parser.add_argument("document_id", help="Document id")
    search_parser.add_argument("query", help="Query text")
    search_parser.add_argument("--top-k", dest="top_k", type=int, default=None, help="Results")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Ask a question")
    ask_parser.add_argument("question", help="Question text")
    ask_parser.add_argument("--document", default=None, help="Attached document id")
    ask_parser.add_argument("--top-k", dest="top_k", type=int, default=None, help="Chunks retrieved")
    ask_parser.add_argument(
        "--history",
        action="append",
        default=[],
        help="Earlier user message (repeatable, oldest first)",
    )

    # -- stats --
    stats_parser = subparsers.add_parser("stats", help="Show vector index statistics")
    stats_parser.add_argument("--document", default=None, help="Also count one document")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    # Deferred so that --help does not import chromadb / openai.
    from src.main import build_components, shutdown, startup

    components = build_components(app_settings)
    await startup(components)
    try:
        return await _HANDLERS[args.command](args, components)
    except StudyRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await shutdown(components)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, configure logging, dispatch."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        app_settings = load_settings(args.config)
    except StudyRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(
        log_level=args.log_level or app_settings.log_level, app_env=app_settings.app_env
    )

    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
