"""
albumshelf - Entry Point

Run with: python -m albumshelf [serve|query] ...
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from albumshelf import __version__
from albumshelf.config import AppConfig, get_config, reload_config
from albumshelf.core.collection import MusicCollection
from albumshelf.core.record_store import RecordStore
from albumshelf.web.server import WebServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="albumshelf",
        description="albumshelf - A personal album collection manager",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file (default: packaged albumshelf.toml)",
    )

    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help="Collection JSON file (overrides [store] data_file)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the web API (default)")
    serve.add_argument("--host", type=str, default=None, help="Host address to bind to")
    serve.add_argument("--port", type=int, default=None, help="Port to listen on")

    query = subparsers.add_parser("query", help="Run one query and print the result as JSON")
    query.add_argument("text", help='Query text, e.g. "SELECT * FROM music_collection"')
    query.add_argument(
        "-p",
        "--param",
        dest="params",
        action="append",
        default=[],
        help="Positional parameter for a ? placeholder (repeatable)",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "serve"
        args.host = None
        args.port = None
    return args


def parse_param(raw: str) -> object:
    """Interpret a CLI parameter as JSON when possible (numbers, null, true), else text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_store(config: AppConfig, data_file: Path | None = None) -> RecordStore:
    store_config = config.store
    if data_file is not None:
        store_config = replace(
            store_config, data_file=data_file, lock_file=data_file.with_suffix(".lock")
        )
    return RecordStore.from_config(store_config)


def run_query(store: RecordStore, text: str, params: list[object]) -> int:
    result = store.query(text, params)
    json.dump(result, sys.stdout, indent=4, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0 if result is not False else 1


async def run_server(
    store: RecordStore, config: AppConfig, host: str | None, port: int | None
) -> None:
    """Start and run the web API until interrupted."""
    server = WebServer(MusicCollection(store=store), config.web)
    await server.serve(host=host, port=port)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = reload_config(args.config) if args.config is not None else get_config()
        store = build_store(config, args.data_file)

        if args.command == "query":
            return run_query(store, args.text, [parse_param(p) for p in args.params])

        logger.info("Starting albumshelf (data file: %s)", store.data_path)
        asyncio.run(run_server(store, config, args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
