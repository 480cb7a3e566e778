"""Command-line entrypoint.

    python -m queueworker emails --registry myapp.queues:registry
    WORKER_MAX_RUNS=500 python -m queueworker emails --registry myapp.queues:registry

The worker will:
1. Load settings (honours .env file) and configure logging
2. Import the queue registry named by --registry / WORKER_REGISTRY
3. Install SIGINT/SIGTERM handlers unless --no-signals is given
4. Process the queue until a limit is hit, a signal arrives, or the queue is empty

Exit codes: 0 done, 1 a job failed, 2 queue or registry not found.
"""

from __future__ import annotations

import argparse
import importlib
import logging
from typing import Any

from pydantic import ValidationError

from queueworker.config import Settings, WorkerOptions, settings as default_settings
from queueworker.errors import JobExecutionFailure, QueueNotFound
from queueworker.queue import QueueRegistry
from queueworker.signals import SignalBridge
from queueworker.utils.logger import setup_logger
from queueworker.worker import Worker

logger = logging.getLogger("queueworker.cli")

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_NOT_FOUND = 2


def load_object(path: str) -> Any:
    """Import ``"package.module:attribute"`` and return the attribute."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:attribute', got {path!r}")
    obj = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def load_registry(path: str) -> QueueRegistry:
    obj = load_object(path)
    if not isinstance(obj, QueueRegistry) and callable(obj):
        obj = obj()
    if not isinstance(obj, QueueRegistry):
        raise TypeError(f"{path} is not a QueueRegistry (got {type(obj).__name__})")
    return obj


def _parse_option(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {raw!r}")
    return key, value


def build_parser(s: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="queueworker", description="Process jobs from a queue.")
    parser.add_argument("queue", nargs="?", default=s.WORKER_QUEUE, help="queue name")
    parser.add_argument("--registry", default=s.WORKER_REGISTRY, help="module:attribute of the QueueRegistry")
    parser.add_argument(
        "--max-runs", type=int, default=s.WORKER_MAX_RUNS,
        help="stop after this many jobs (0 = no limit)",
    )
    parser.add_argument("--max-memory", type=int, default=s.WORKER_MAX_MEMORY, help="memory ceiling in bytes")
    parser.add_argument(
        "--option", dest="options", action="append", type=_parse_option, default=[],
        metavar="KEY=VALUE", help="option passed to the queue's pop()",
    )
    parser.add_argument("--no-signals", dest="handle_signals", action="store_false", default=s.WORKER_HANDLE_SIGNALS)
    parser.add_argument("--log-format", default=s.LOG_FORMAT, choices=("text", "json"))
    parser.add_argument("--log-level", default=s.LOG_LEVEL)
    return parser


def main(argv: list[str] | None = None, s: Settings | None = None) -> int:
    s = s or default_settings
    parser = build_parser(s)
    args = parser.parse_args(argv)
    setup_logger(log_format=args.log_format, log_level=args.log_level)

    if not args.registry:
        logger.error("No queue registry configured (use --registry or WORKER_REGISTRY)")
        return EXIT_NOT_FOUND
    try:
        registry = load_registry(args.registry)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        logger.error("Cannot load queue registry %s: %s", args.registry, exc)
        return EXIT_NOT_FOUND

    try:
        options = WorkerOptions(max_runs=args.max_runs or None, max_memory=args.max_memory)
    except ValidationError as exc:
        parser.error(str(exc))
    bridge = SignalBridge() if args.handle_signals else None
    worker = Worker(registry, options, signal_bridge=bridge)
    try:
        count = worker.process_queue(args.queue, dict(args.options))
    except QueueNotFound as exc:
        logger.error("%s (known queues: %s)", exc, ", ".join(registry.names()) or "none")
        return EXIT_NOT_FOUND
    except JobExecutionFailure:
        logger.exception("Worker aborted on queue %s", args.queue)
        return EXIT_JOB_FAILED
    finally:
        worker.close()

    logger.info("Worker processed %d job(s) from %s", count, args.queue)
    return EXIT_OK
