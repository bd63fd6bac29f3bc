"""Command line entry point: ``escrow-indexer {indexer,api,reset-db}``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .config import IndexerConfig
from .exceptions import ConfigError
from .observability import configure_logging
from .persistence import (
    SQLAlchemyCursorStore,
    SQLAlchemyProjectionStore,
    create_engine,
    create_schema,
    create_session_factory,
    drop_schema,
)
from .registry import build_trackers
from .source import SuiEventSource
from .worker import IndexerRunner

logger = logging.getLogger(__name__)


async def run_indexer(config: IndexerConfig) -> None:
    """Run every tracker until SIGINT/SIGTERM."""
    engine = create_engine(config.database_url)
    await create_schema(engine)
    session_factory = create_session_factory(engine)
    registry = build_trackers(config, SQLAlchemyProjectionStore(session_factory))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    async with SuiEventSource(
        config.rpc_url, timeout=config.rpc_timeout_seconds
    ) as source:
        runner = IndexerRunner(
            registry,
            source,
            SQLAlchemyCursorStore(session_factory),
            polling_interval_seconds=config.polling_interval_seconds,
            page_size=config.page_size,
        )
        try:
            await runner.run_until_stopped(stop_event)
        finally:
            await engine.dispose()


async def reset_database(config: IndexerConfig) -> None:
    """Drop and recreate all tables; the next indexer run replays history."""
    engine = create_engine(config.database_url)
    try:
        await drop_schema(engine)
        await create_schema(engine)
    finally:
        await engine.dispose()


async def reset_streams(config: IndexerConfig, stream_ids: list[str]) -> None:
    """Forget the cursors of ``stream_ids``; projections are kept.

    Upserts are idempotent, so the replay converges to the same records.
    """
    engine = create_engine(config.database_url)
    try:
        await create_schema(engine)
        cursor_store = SQLAlchemyCursorStore(create_session_factory(engine))
        for stream_id in stream_ids:
            await cursor_store.reset(stream_id)
            logger.warning("Reset cursor of %s", stream_id)
    finally:
        await engine.dispose()


def run_api(config: IndexerConfig) -> None:
    import uvicorn

    from .api import create_app

    uvicorn.run(
        create_app(config=config),
        host=config.api_host,
        port=config.api_port,
        log_config=None,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="escrow-indexer",
        description="Index Sui escrow package events and serve them over HTTP.",
    )
    parser.add_argument("--database-url", help="SQLAlchemy async database URL")
    parser.add_argument("--log-level", help="Root log level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    indexer = sub.add_parser("indexer", help="Run the event indexer")
    indexer.add_argument("--package-id", help="Escrow Move package address")
    indexer.add_argument("--rpc-url", help="Sui fullnode JSON-RPC URL")
    indexer.add_argument(
        "--polling-interval", type=float, help="Seconds between polls once caught up"
    )

    api = sub.add_parser("api", help="Serve the query API")
    api.add_argument("--host")
    api.add_argument("--port", type=int)

    reset = sub.add_parser(
        "reset-db", help="Drop and recreate all tables, or reset stream cursors"
    )
    reset.add_argument(
        "--stream",
        action="append",
        dest="streams",
        metavar="STREAM_ID",
        help="Only reset the cursor of this stream (repeatable)",
    )
    reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser


def config_from_args(args: argparse.Namespace) -> IndexerConfig:
    """Environment config with command line flags taking precedence."""
    overrides = {
        "database_url": args.database_url,
        "log_level": args.log_level,
        "package_id": getattr(args, "package_id", None),
        "rpc_url": getattr(args, "rpc_url", None),
        "polling_interval_seconds": getattr(args, "polling_interval", None),
        "api_host": getattr(args, "host", None),
        "api_port": getattr(args, "port", None),
    }
    return IndexerConfig.from_env(
        **{k: v for k, v in overrides.items() if v is not None}
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level, json_output=config.log_json)

    try:
        if args.command == "indexer":
            asyncio.run(run_indexer(config))
        elif args.command == "api":
            run_api(config)
        elif args.command == "reset-db":
            target = (
                f"cursors of {', '.join(args.streams)}"
                if args.streams
                else "all tables"
            )
            if not args.yes:
                answer = input(f"Reset {target} in {config.database_url}? [y/N] ")
                if answer.strip().lower() != "y":
                    return 1
            if args.streams:
                asyncio.run(reset_streams(config, args.streams))
            else:
                asyncio.run(reset_database(config))
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
