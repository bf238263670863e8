"""CLI utility to run a PyWorkQueue worker against redis or SQL storage."""

from __future__ import annotations

import argparse
import importlib
import logging
import os

import pyworkqueue
from pyworkqueue.execution.factory import ImportFactory
from pyworkqueue.server.worker import Worker
from pyworkqueue.storage.base import JobStorage
from pyworkqueue.storage.redis_storage import RedisStorage


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a PyWorkQueue worker")
    parser.add_argument(
        "--redis-url",
        default=os.environ.get("PYWORKQUEUE_REDIS_URL", "redis://localhost:6379/0"),
        help="Redis URL (default: $PYWORKQUEUE_REDIS_URL or redis://localhost:6379/0)",
    )
    parser.add_argument(
        "--connection-url",
        help="SQLAlchemy connection URL; uses SQL storage instead of redis.",
    )
    parser.add_argument(
        "--queues",
        default="default",
        help="Comma-separated queue names, checked in order.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds to wait for work before polling again.",
    )
    parser.add_argument(
        "--blocking",
        action="store_true",
        help="Wait on all queues at once instead of polling them.",
    )
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Exit once the queues are empty.",
    )
    parser.add_argument(
        "--import",
        dest="imports",
        action="append",
        default=[],
        help="Module that registers job handlers; may be repeated.",
    )
    parser.add_argument(
        "--resolve-by-import",
        action="store_true",
        help="Resolve handler identifiers as dotted import paths.",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def build_storage(args: argparse.Namespace) -> JobStorage:
    if args.connection_url:
        from pyworkqueue.storage.sql_storage import SqlStorage

        return SqlStorage(connection_url=args.connection_url)
    return RedisStorage(url=args.redis_url)


def main() -> None:
    args = build_arg_parser().parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    storage = build_storage(args)
    factory = ImportFactory() if args.resolve_by_import else None
    pyworkqueue.configure(storage, factory=factory)
    for module_name in args.imports:
        importlib.import_module(module_name)

    worker = Worker(
        storage,
        queues=[queue.strip() for queue in args.queues.split(",") if queue.strip()],
        blocking=args.blocking,
        interval=args.interval,
    )
    worker.run(burst=args.burst)


if __name__ == "__main__":
    main()
