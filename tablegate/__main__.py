from __future__ import annotations

import argparse
from dataclasses import replace

import uvicorn

from .api import create_app
from .config import ServiceConfig
from .logging_setup import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tablegate",
        description="Serve generic list/get/add/update/delete endpoints for every table in a SQLite store.",
    )
    parser.add_argument("--host", help="Bind address (TABLEGATE_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (TABLEGATE_PORT)")
    parser.add_argument("--db-url", help="SQLAlchemy store URL (TABLEGATE_DB_URL)")
    parser.add_argument("--stats-path", help="Usage counter JSON file (TABLEGATE_STATS_PATH)")
    parser.add_argument("--base-path", help="Route prefix (TABLEGATE_BASE_PATH)")
    parser.add_argument("--log-level", help="Logging level (TABLEGATE_LOG_LEVEL)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServiceConfig:
    config = ServiceConfig.from_env()
    if args.db_url:
        config = replace(config, store=replace(config.store, url=args.db_url))
    if args.stats_path:
        config = replace(config, counter=replace(config.counter, path=args.stats_path))
    overrides = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("base_path", args.base_path),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    return replace(config, **overrides)


def main(argv: list[str] | None = None) -> None:
    config = build_config(parse_args(argv))
    configure_logging(config.log_level)
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
