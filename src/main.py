# src/main.py — v2
"""CLI entry point — fingerprint, invalidate, flush commands.

Usage:
    querycache fingerprint '<json query>'
    querycache invalidate <collection>
    querycache flush

Backend selection comes from .env / environment (CACHE_BACKEND, CACHE_REDIS_URL).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from pydantic import ValidationError

from querycache.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="querycache",
        description=f"querycache v{__version__} - read-through query cache tools",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- fingerprint ---
    p_fp = subparsers.add_parser(
        "fingerprint", help="Print the cache key a query maps to",
    )
    p_fp.add_argument(
        "query",
        help='Query as JSON, e.g. \'{"collection": "users", "filter": {"_id": "u1"}}\'',
    )
    p_fp.add_argument(
        "--no-options", action="store_true",
        help="Exclude projection/sort/skip/limit from the key",
    )
    p_fp.add_argument(
        "--hash", action="store_true", dest="hash_keys",
        help="Hash the key body",
    )
    p_fp.set_defaults(func=_cmd_fingerprint)

    # --- invalidate ---
    p_inv = subparsers.add_parser(
        "invalidate", help="Purge cached entries for a collection",
    )
    p_inv.add_argument("collection", help="Collection identifier")
    p_inv.set_defaults(func=_cmd_invalidate)

    # --- flush ---
    p_flush = subparsers.add_parser(
        "flush", help="Remove every cached entry",
    )
    p_flush.add_argument(
        "--yes", action="store_true",
        help="Do not ask for confirmation",
    )
    p_flush.set_defaults(func=_cmd_flush)

    return parser


async def _cmd_fingerprint(args: argparse.Namespace) -> int:
    """Print the fingerprint for a JSON query."""
    from querycache.cache.errors import UnserializableQuery
    from querycache.cache.fingerprint import compute_fingerprint
    from querycache.cache.models import QueryDescriptor

    try:
        query = QueryDescriptor.model_validate(json.loads(args.query))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Invalid query: %s", e)
        return 1

    try:
        key = compute_fingerprint(
            query, include_options=not args.no_options, hash_keys=args.hash_keys,
        )
    except UnserializableQuery as e:
        logger.error("%s", e)
        return 1

    print(key)
    return 0


async def _cmd_invalidate(args: argparse.Namespace) -> int:
    """Purge one collection's entries from the configured store."""
    from querycache.api.facade import QueryCache
    from querycache.cache.errors import InvalidationError

    async with QueryCache.from_settings() as cache:
        try:
            removed = await cache.invalidate(args.collection)
        except InvalidationError as e:
            logger.error("%s", e)
            return 2
    print(f"Invalidated {removed} entries for {args.collection!r}")
    return 0


async def _cmd_flush(args: argparse.Namespace) -> int:
    """Clear the configured store."""
    from querycache.api.facade import QueryCache
    from querycache.cache.errors import InvalidationError

    if not args.yes:
        answer = input("Flush every cached entry? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 1

    async with QueryCache.from_settings() as cache:
        try:
            await cache.flush()
        except InvalidationError as e:
            logger.error("%s", e)
            return 2
    print("Cache flushed")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from querycache.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")
