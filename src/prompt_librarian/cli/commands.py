"""
CLI commands - entry points for the librarian services.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment and build services
3. Run one service call
4. Print results (text, or JSON with --json)
5. Return exit code

INTERVIEW TALKING POINT:
------------------------
"CLI commands are thin wrappers around the services. They handle argument
parsing and output formatting, but delegate the actual work to search,
suggestions and the embedding client. This keeps the CLI simple and the
business logic testable."
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Awaitable, Callable

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from prompt_librarian.app import Librarian, build_librarian
from prompt_librarian.config import get_config
from prompt_librarian.errors import LibrarianError
from prompt_librarian.observability import init_phoenix, shutdown_phoenix
from prompt_librarian.retrieval.document import DOCUMENT_STATUSES
from prompt_librarian.schemas.librarian import SearchFilters

Command = Callable[[Librarian, argparse.Namespace], Awaitable[Any]]


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _print_json(payload: Any) -> None:
    if isinstance(payload, BaseModel):
        print(payload.model_dump_json(indent=2))
    else:
        print(json.dumps(payload, indent=2, default=str))


# ---------------------------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------------------------


async def run_search(librarian: Librarian, args: argparse.Namespace) -> None:
    filters = SearchFilters(
        status=args.status or None,
        tags=args.tag or None,
        threshold=args.threshold,
        limit=args.limit,
    )
    response = await librarian.search.semantic_search(args.query, args.owner, filters)

    if args.json:
        _print_json(response)
        return

    print(f"{response.count} results for {response.query!r} ({response.duration_ms:.0f}ms)")
    for result in response.results:
        print(f"  [{result.similarity:.2f}] {result.title} ({result.status}) {result.document_id}")


async def run_similar(librarian: Librarian, args: argparse.Namespace) -> None:
    results = await librarian.search.find_similar_prompts(
        args.doc_id, args.owner, limit=args.limit, threshold=args.threshold
    )

    if args.json:
        _print_json([r.model_dump(mode="json") for r in results])
        return

    if not results:
        print(f"No prompts similar to {args.doc_id}")
    for result in results:
        print(f"  [{result.similarity:.2f}] {result.title} {result.document_id}")


async def run_suggest(librarian: Librarian, args: argparse.Namespace) -> None:
    kwargs: dict[str, Any] = {"doc_id": args.doc, "limit": args.limit}
    if args.type:
        kwargs["include_types"] = tuple(args.type)
    response = await librarian.suggestions.generate_suggestions(args.owner, **kwargs)

    if args.json:
        _print_json(response)
        return

    for suggestion in response.suggestions:
        print(
            f"  {suggestion.type:<17} {suggestion.title} - {suggestion.description} "
            f"[{suggestion.action_label}: {suggestion.target_id}]"
        )


async def run_embed_all(librarian: Librarian, args: argparse.Namespace) -> int:
    result = await librarian.embeddings.embed_all_prompts(args.owner, batch_size=args.batch_size)

    if args.json:
        _print_json(
            {
                "processed": result.processed,
                "tokens": result.tokens,
                "cost": result.cost,
                "errors": [{"id": e.id, "error": e.error} for e in result.errors],
                "duration_ms": result.duration_ms,
            },
        )
    else:
        print(f"Embedded {result.processed} prompts: {result.tokens} tokens, ${result.cost:.4f}")
        for failure in result.errors:
            print(f"  FAILED {failure.id}: {failure.error}")

    return 1 if result.errors else 0


async def run_history(librarian: Librarian, args: argparse.Namespace) -> None:
    entries = await librarian.search.get_recent_searches(args.owner, limit=args.limit)

    if args.json:
        _print_json([e.to_dict() for e in entries])
        return

    for entry in entries:
        print(f"  {entry.created_at:%Y-%m-%d %H:%M}  {entry.query_text!r} ({entry.result_count} results)")


async def run_analytics(librarian: Librarian, args: argparse.Namespace) -> None:
    analytics = await librarian.search.get_search_analytics(args.owner)

    if args.json:
        _print_json(analytics)
        return

    print(f"Total searches: {analytics.total_searches}")
    print(f"Avg results per search: {analytics.avg_results_per_search:.1f}")
    for item in analytics.most_common_queries:
        print(f"  {item.count:>4}  {item.query}")


async def run_init_db(librarian: Librarian, args: argparse.Namespace) -> None:
    await librarian.create_schema()
    print("Schema ready")


COMMANDS: dict[str, Command] = {
    "init-db": run_init_db,
    "search": run_search,
    "similar": run_similar,
    "suggest": run_suggest,
    "embed-all": run_embed_all,
    "history": run_history,
    "analytics": run_analytics,
}


# ---------------------------------------------------------------------------
# PARSER
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="librarian",
        description="Semantic search and suggestions over saved prompts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  librarian search "budget planning" --owner u1 --threshold 0.8
  librarian similar p-123 --owner u1
  librarian suggest --owner u1 --type recent_work
  librarian --mock embed-all --owner u1
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--mock", action="store_true", help="Use offline mock embeddings")

    sub = parser.add_subparsers(dest="command", required=True)

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument("--json", action="store_true", help="JSON output")

    sub.add_parser("init-db", help="Create tables and indexes")

    search = sub.add_parser("search", parents=[output], help="Semantic search over prompts")
    search.add_argument("query")
    search.add_argument("--owner", required=True)
    search.add_argument("--status", action="append", choices=DOCUMENT_STATUSES)
    search.add_argument("--tag", action="append")
    search.add_argument("--threshold", type=float)
    search.add_argument("--limit", type=int)

    similar = sub.add_parser("similar", parents=[output], help="Prompts similar to an existing prompt")
    similar.add_argument("doc_id")
    similar.add_argument("--owner", required=True)
    similar.add_argument("--limit", type=int, default=5)
    similar.add_argument("--threshold", type=float, default=0.75)

    suggest = sub.add_parser("suggest", parents=[output], help="Proactive suggestions")
    suggest.add_argument("--owner", required=True)
    suggest.add_argument("--doc")
    suggest.add_argument("--limit", type=int, default=8)
    suggest.add_argument(
        "--type",
        action="append",
        choices=["similar_document", "recent_work", "related_seed"],
    )

    embed_all = sub.add_parser("embed-all", parents=[output], help="Embed every prompt without an embedding")
    embed_all.add_argument("--owner", required=True)
    embed_all.add_argument("--batch-size", type=int, default=10)

    history = sub.add_parser("history", parents=[output], help="Recent searches")
    history.add_argument("--owner", required=True)
    history.add_argument("--limit", type=int, default=10)

    analytics = sub.add_parser("analytics", parents=[output], help="Search analytics")
    analytics.add_argument("--owner", required=True)

    return parser


async def _run(args: argparse.Namespace) -> int:
    config = get_config()
    if args.mock:
        config = replace(config, use_mock_embeddings=True)

    librarian = await build_librarian(config)
    try:
        code = await COMMANDS[args.command](librarian, args)
    finally:
        await librarian.close()
    return code or 0


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        librarian init-db                    # Create tables
        librarian search QUERY --owner O     # Semantic search
        librarian similar DOC_ID --owner O   # More like this
        librarian suggest --owner O          # Suggestion feed
        librarian embed-all --owner O        # Backfill embeddings
        librarian history --owner O          # Recent searches
        librarian analytics --owner O        # Search analytics
    """
    _load_env()

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_phoenix()
    try:
        return asyncio.run(_run(args))
    except (LibrarianError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_phoenix()


if __name__ == "__main__":
    sys.exit(main())
