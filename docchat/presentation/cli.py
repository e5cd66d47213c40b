import argparse
import asyncio
import json
import logging
import sys

import httpx

from docchat.config.settings import settings
from docchat.container import configure_container, container
from docchat.core.errors import DocChatError, IndexingInProgressError
from docchat.core.protocols.embedder import EmbedderProtocol
from docchat.core.protocols.kv_store import KeyValueStoreProtocol
from docchat.core.services.chat_service import ChatService
from docchat.core.services.index_registry import IndexRegistry
from docchat.core.services.ingest_service import IngestService
from docchat.core.services.search_service import AUTO_STRATEGY, SearchService, unique_sources

logger = logging.getLogger(__name__)

STRATEGY_CHOICES = [AUTO_STRATEGY, "hybrid", "semantic", "keyword"]


def check_chroma() -> bool:
    """Chroma heartbeat.

    Returns:
        True if the vector store answered.
    """
    url = f"http://{settings.chroma_host}:{settings.chroma_port}/api/v2/heartbeat"
    try:
        resp = httpx.get(url, timeout=5)
    except httpx.HTTPError as e:
        logger.error(f"Chroma not reachable at {url}: {e}")
        return False
    if resp.status_code != 200:
        logger.error(f"Chroma heartbeat returned {resp.status_code}")
        return False
    return True


def warmup_embedder() -> None:
    """Load the embedding model before the first encode."""
    container.resolve(EmbedderProtocol).warmup()


def cmd_ingest(args: argparse.Namespace) -> int:
    """Ingest command - rebuild and publish the index."""
    warmup_embedder()
    ingest_service = container.resolve(IngestService)
    result = ingest_service.run()

    if result.skipped:
        raise IndexingInProgressError("Another re-index holds the lease, try again later")

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


def cmd_search(args: argparse.Namespace) -> int:
    """Search command - print ranked passages without calling the LLM."""
    warmup_embedder()
    search_service = container.resolve(SearchService)
    outcome = search_service.search(args.query, args.strategy)

    print(
        f"intent={outcome.query.intent.value} strategy={outcome.strategy.value} "
        f"rerank={outcome.rerank_status.value} confidence={outcome.confidence.value} "
        f"({outcome.gate_source.value}={outcome.gate_score:.2f})"
    )
    if outcome.degraded:
        print("degraded: " + ", ".join(outcome.notes or ["reduced retrieval mode"]))
    for i, passage in enumerate(outcome.passages, 1):
        print(f"{i}. [{passage.score:.3f}] {passage.title} - {passage.url}")
    if outcome.is_empty:
        print("No results.")
    return 0


async def _ask(question: str, strategy: str) -> None:
    chat_service = container.resolve(ChatService)
    outcome = None
    async for token, first in chat_service.process_message(question, strategy):
        if first is not None:
            outcome = first
        print(token, end="", flush=True)
    print()

    if outcome is not None and outcome.passages:
        print("\nSources:")
        for url in unique_sources(outcome.passages):
            print(f"- {url}")
    await chat_service.drain_logs()


def cmd_ask(args: argparse.Namespace) -> int:
    """Ask command - retrieve and stream an answer."""
    warmup_embedder()
    asyncio.run(_ask(args.question, args.strategy))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Status command - index pointer, last run and backend health."""
    registry = container.resolve(IndexRegistry)
    redis_ok, redis_message = container.resolve(KeyValueStoreProtocol).ping()
    chroma_ok = check_chroma()

    status = {
        "redis": redis_message,
        "chroma": "ok" if chroma_ok else "unreachable",
    }
    if redis_ok:
        last = registry.last_status()
        status.update(
            {
                "snapshot": registry.current_snapshot(),
                "isIndexing": registry.is_indexing(),
                "lastResult": last.to_dict() if last else None,
            }
        )
    print(json.dumps(status, indent=2))
    return 0 if redis_ok and chroma_ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docchat", description="Documentation question answering")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ingest", help="rebuild the search index").set_defaults(func=cmd_ingest)

    search = sub.add_parser("search", help="show ranked passages for a query")
    search.add_argument("query")
    search.add_argument("--strategy", choices=STRATEGY_CHOICES, default=AUTO_STRATEGY)
    search.set_defaults(func=cmd_search)

    ask = sub.add_parser("ask", help="answer a question from the docs")
    ask.add_argument("question")
    ask.add_argument("--strategy", choices=STRATEGY_CHOICES, default=AUTO_STRATEGY)
    ask.set_defaults(func=cmd_ask)

    sub.add_parser("status", help="show index and backend status").set_defaults(func=cmd_status)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    configure_container(settings)
    try:
        return args.func(args)
    except IndexingInProgressError as e:
        logger.warning(str(e))
        return 2
    except DocChatError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
