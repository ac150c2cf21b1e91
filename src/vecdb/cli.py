"""CLI entry point for VecDB."""

import argparse
import json
import logging
import sys
import threading
from pathlib import Path

from vecdb.config import Settings
from vecdb.errors import VectorDBError
from vecdb.models import ImportOptions, ImportProgress, SearchOptions
from vecdb.vector_store import VectorStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def build_vector_store(settings: Settings) -> VectorStore:
    """Compose a vector store with the default embedder and processors."""
    return VectorStore(settings)


def build_rag(vector_store: VectorStore, provider: str, model: str | None = None):
    from vecdb.generators import create_generator, provider_config
    from vecdb.rag import RagOrchestrator

    settings = vector_store.settings
    generator = create_generator(
        provider_config(provider, settings, model), timeout=settings.generator_timeout
    )
    return RagOrchestrator(vector_store, generator)


def _print_progress(progress: ImportProgress) -> None:
    if progress.current_file is None:
        return
    marker = "!" if progress.error else " "
    logger.info(
        f"{marker} [{progress.files_processed}/{progress.total_files}] {progress.current_file}"
    )


def import_command(store: VectorStore, args: argparse.Namespace) -> int:
    options = ImportOptions(
        chunk_size=args.chunk_size,
        overlap_size=args.overlap,
        skip_duplicates=not args.no_skip_duplicates,
        force_update=args.force,
        is_directory=args.dir,
    )
    cancel = threading.Event()
    try:
        stats = store.import_files(args.paths, options, on_progress=_print_progress, cancel_event=cancel)
    except KeyboardInterrupt:
        cancel.set()
        raise

    logger.info("")
    logger.info(f"Imported {stats.files_processed} files, {stats.vector_count} vectors")
    for error in stats.errors:
        hint = " (retryable)" if error.retryable else ""
        logger.error(f"  {error.file}: {error.error}{hint}")
    return 0 if stats.success else 1


def search_command(store: VectorStore, args: argparse.Namespace) -> int:
    options = SearchOptions(limit=args.limit, min_score=args.min_score, file_types=args.type)
    results = store.search(args.query, options)

    if not results:
        print(f"No results found for: {args.query}")
        return 0

    for i, r in enumerate(results, 1):
        text = r.content[:200].replace("\n", " ")
        if len(r.content) > 200:
            text += "..."
        print(f"{i}. [{r.score:.3f}] {r.source}")
        print(f"   {text}")
        print("")
    return 0


def ask_command(store: VectorStore, args: argparse.Namespace) -> int:
    rag = build_rag(store, args.provider, args.model)
    answer = rag.ask(args.question, max_results=args.limit)

    if not answer.success:
        logger.error(answer.error)
        return 1

    print(answer.response)
    print("")
    print("Sources:")
    for s in answer.sources:
        print(f"  [{s.score:.3f}] {s.source}")
    return 0


def stats_command(store: VectorStore, args: argparse.Namespace) -> int:
    snapshot = store.get_statistics()

    if args.json:
        print(json.dumps(snapshot.to_dict(), indent=2))
        return 0

    db = snapshot.database_stats
    print(f"Data directory: {store.settings.data_dir}")
    print("")
    print("Corpus:")
    print(f"  Documents: {db.total_documents}")
    print(f"  Vectors: {db.total_vectors}")
    print(f"  Tokens: {db.total_tokens}")
    print(f"  Content size: {db.total_content_size / 1024:.1f} KB")
    print(f"  Last import: {db.last_import_at or 'never'}")
    if snapshot.recent_operations:
        print("")
        print("Recent imports:")
        for op in snapshot.recent_operations:
            print(
                f"  {op.started_at}  {op.status:<9} {op.files_processed} ok, "
                f"{op.files_failed} failed, {op.total_processing_time:.1f}s"
            )
    return 0


def clear_command(store: VectorStore, args: argparse.Namespace) -> int:
    if not args.yes:
        reply = input(f"Delete every document in {store.settings.data_dir}? [y/N] ")
        if reply.strip().lower() not in ("y", "yes"):
            logger.info("Aborted")
            return 1
    store.clear_database()
    return 0


def repair_command(store: VectorStore, args: argparse.Namespace) -> int:
    report = store.repair()
    if report.consistent:
        logger.info("Nothing to repair")
    return 0


def settings_command(store: VectorStore, args: argparse.Namespace) -> int:
    store.initialize()
    current = store.statistics.get_import_settings()
    changed = False
    if args.chunk_size is not None:
        current.chunk_size = args.chunk_size
        changed = True
    if args.overlap is not None:
        current.overlap_size = args.overlap
        changed = True
    if args.batch_size is not None:
        current.batch_size = args.batch_size
        changed = True

    if changed:
        # Validate through the same path imports use
        ImportOptions().resolve(current)
        store.store.save_import_settings(current)
        store.statistics.notify()

    print(f"chunk_size: {current.chunk_size}")
    print(f"overlap_size: {current.overlap_size}")
    print(f"batch_size: {current.batch_size}")
    print(f"file_types: {', '.join(current.file_types)}")
    return 0


def serve_command(store: VectorStore, args: argparse.Namespace) -> int:
    # Import here to avoid loading MCP unless needed
    from typing import Literal, cast

    from vecdb.server import create_mcp_server

    rag = build_rag(store, args.provider, args.model) if args.provider else None
    logger.info(f"Serving {store.settings.data_dir} via {args.transport}")
    mcp = create_mcp_server(store, rag)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], args.transport))
    return 0


COMMANDS = {
    "import": import_command,
    "search": search_command,
    "ask": ask_command,
    "stats": stats_command,
    "clear": clear_command,
    "repair": repair_command,
    "settings": settings_command,
    "serve": serve_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vecdb",
        description="VecDB - local semantic search and RAG over your documents",
    )
    parser.add_argument("--data-dir", type=Path, help="Data directory (default: $VECDB_DATA_DIR or ~/.vecdb)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # import command
    import_parser = subparsers.add_parser("import", help="Import files into the store")
    import_parser.add_argument("paths", nargs="+", help="Files (or directories with --dir)")
    import_parser.add_argument("--dir", action="store_true", help="Walk the given directories")
    import_parser.add_argument("--chunk-size", type=int, help="Characters per chunk")
    import_parser.add_argument("--overlap", type=int, help="Characters shared by adjacent chunks")
    import_parser.add_argument("--force", action="store_true", help="Re-embed chunks already stored")
    import_parser.add_argument(
        "--no-skip-duplicates", action="store_true", help="Update duplicate chunks instead of skipping them"
    )

    # search command
    search_parser = subparsers.add_parser("search", help="Semantic search")
    search_parser.add_argument("query", help="Natural language query")
    search_parser.add_argument("--limit", type=int, default=10, help="Maximum results (default: 10)")
    search_parser.add_argument("--min-score", type=float, default=0.4, help="Minimum similarity (default: 0.4)")
    search_parser.add_argument("--type", action="append", help="Only this file type (repeatable)")

    # ask command
    ask_parser = subparsers.add_parser("ask", help="Answer a question from the documents")
    ask_parser.add_argument("question", help="Question to answer")
    ask_parser.add_argument("--provider", choices=["ollama", "anthropic"], default="ollama")
    ask_parser.add_argument("--model", help="Model name (default from settings)")
    ask_parser.add_argument("--limit", type=int, default=5, help="Passages used as context (default: 5)")

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show corpus statistics")
    stats_parser.add_argument("--json", action="store_true", help="Print the full snapshot as JSON")

    # clear command
    clear_parser = subparsers.add_parser("clear", help="Delete every document")
    clear_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("repair", help="Re-sync the index with the metadata store")

    # settings command
    settings_parser = subparsers.add_parser("settings", help="Show or change import defaults")
    settings_parser.add_argument("--chunk-size", type=int)
    settings_parser.add_argument("--overlap", type=int)
    settings_parser.add_argument("--batch-size", type=int)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.add_argument("--provider", choices=["ollama", "anthropic"], help="Enable the ask tool")
    serve_parser.add_argument("--model", help="Model name (default from settings)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_env(args.data_dir)
        store = build_vector_store(settings)
        try:
            code = COMMANDS[args.command](store, args)
        finally:
            store.close()
    except VectorDBError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
