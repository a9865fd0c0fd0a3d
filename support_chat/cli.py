"""Command line entry point: run the server and manage the SQLite store."""

import argparse
import asyncio
from typing import Optional, Sequence

from support_chat.core.config import settings
from support_chat.core.logging import get_logger, setup_logging
from support_chat.core.prompts import DEFAULT_STORE_FAQS
from support_chat.services.conversation_store import ConversationStore

logger = get_logger(__name__)


async def init_db(db_path: str) -> int:
    store = ConversationStore(db_path)
    await store.initialize()
    print(f"Database ready at {db_path}")
    return 0


async def seed_faqs(db_path: str) -> int:
    """Upsert the default store FAQs. Safe to run repeatedly."""
    store = ConversationStore(db_path)
    await store.initialize()
    for category, question, answer in DEFAULT_STORE_FAQS:
        await store.upsert_faq(category, question, answer)
    faqs = await store.list_faqs()
    print(f"Seeded {len(DEFAULT_STORE_FAQS)} FAQs ({len(faqs)} total in {db_path})")
    return 0


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "support_chat.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        log_level=args.log_level.lower(),
    )
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser("support-chat", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    p.add_argument("--log-level", default=settings.log_level, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--db", default=settings.database_path, help="Path of the SQLite database")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("serve", help="Run the HTTP server", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    s.add_argument("--host", default=settings.host, help="Bind address")
    s.add_argument("--port", type=int, default=settings.port, help="Bind port")
    s.add_argument("--workers", type=int, default=settings.workers, help="Worker processes")
    s.add_argument("--reload", action="store_true", default=settings.debug, help="Reload on code changes")

    sub.add_parser("init-db", help="Create the database tables")
    sub.add_parser("seed-faqs", help="Insert or update the default store FAQs")

    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, "text")

    try:
        if args.command == "serve":
            return serve(args)
        if args.command == "init-db":
            return asyncio.run(init_db(args.db))
        if args.command == "seed-faqs":
            return asyncio.run(seed_faqs(args.db))
    except KeyboardInterrupt:
        return 130
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
