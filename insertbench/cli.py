"""Run a timed insert stress test against a PostgreSQL-wire store."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from insertbench.config import settings
from insertbench.connectors import ConnectionFactory
from insertbench.core.diagnostics import fetch_failed_statements
from insertbench.core.errors import InsertBenchError
from insertbench.core.log_context import configure_logging
from insertbench.core.orchestrator import RunOrchestrator
from insertbench.core.workloads import WORKLOADS, create_workload
from insertbench.models import RunConfig, WorkerFailurePolicy

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive sustained concurrent INSERT load and report inserts/second."
    )
    parser.add_argument(
        "--endpoints",
        help="Comma-separated host:port list (default: STORE_ENDPOINTS).",
    )
    parser.add_argument("--user", help="Store user (default: STORE_USER).")
    parser.add_argument("--password", help="Store password (default: STORE_PASSWORD).")
    parser.add_argument("--database", help="Store database (default: STORE_DATABASE).")
    parser.add_argument(
        "--workload",
        choices=sorted(WORKLOADS),
        default=None,
        help="Workload to insert (default: DEFAULT_WORKLOAD).",
    )
    parser.add_argument("--workers", type=int, help="Concurrent insert workers.")
    parser.add_argument("--batch-size", type=int, help="Rows per INSERT statement.")
    parser.add_argument("--duration-ms", type=int, help="Run time budget in milliseconds.")
    parser.add_argument("--shards", type=int, help="Shard count for a recreated table.")
    parser.add_argument(
        "--clean-table",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Drop and recreate the target table before the run.",
    )
    parser.add_argument(
        "--round-robin",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Rotate the starting endpoint across connection acquisitions.",
    )
    parser.add_argument(
        "--tolerate-worker-failures",
        action="store_true",
        help="Keep running with the surviving workers instead of failing the run.",
    )
    parser.add_argument(
        "--show-failed-statements",
        type=int,
        nargs="?",
        const=20,
        default=None,
        metavar="N",
        help="After the run (or on its own with --no-run), print the last N failed "
        "statements from sys.jobs_log.",
    )
    parser.add_argument(
        "--no-run",
        action="store_true",
        help="Skip the stress run (useful with --show-failed-statements).",
    )
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL).")
    return parser


def _build_run_config(args: argparse.Namespace) -> RunConfig:
    credentials = None
    if args.user is not None or args.password is not None or args.database is not None:
        credentials = {
            "user": args.user if args.user is not None else settings.STORE_USER,
            "password": args.password if args.password is not None else settings.STORE_PASSWORD,
            "database": (args.database if args.database is not None else settings.STORE_DATABASE)
            or None,
        }
    return RunConfig.from_settings(
        settings,
        endpoints=args.endpoints,
        credentials=credentials,
        worker_count=args.workers,
        batch_size=args.batch_size,
        run_duration_millis=args.duration_ms,
        clean_table_before_run=args.clean_table,
        round_robin=args.round_robin,
        failure_policy=WorkerFailurePolicy.TOLERATE if args.tolerate_worker_failures else None,
    )


async def _show_failed_statements(factory: ConnectionFactory, limit: int) -> None:
    statements = await fetch_failed_statements(factory, limit=limit)
    if not statements:
        print("No failed statements in sys.jobs_log")
        return
    for statement in statements:
        print(statement.render())


async def _run(args: argparse.Namespace) -> int:
    config = _build_run_config(args)
    workload = create_workload(
        args.workload or settings.DEFAULT_WORKLOAD,
        config.batch_size,
        shards=args.shards,
    )
    factory = ConnectionFactory.from_config(
        config, attempt_history=settings.CONNECTION_ATTEMPT_HISTORY
    )

    exit_code = 0
    if not args.no_run:
        try:
            async with RunOrchestrator(config, workload, factory=factory) as orchestrator:
                await orchestrator.run()
        except InsertBenchError as e:
            logger.error("Insert run failed: %s", e)
            exit_code = 1

    if args.show_failed_statements is not None:
        try:
            await _show_failed_statements(factory, args.show_failed_statements)
        except InsertBenchError as e:
            logger.error("Could not read sys.jobs_log: %s", e)
            exit_code = exit_code or 1
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(settings, level=args.log_level)
    try:
        return asyncio.run(_run(args))
    except ValidationError as e:
        logger.error("Invalid run configuration: %s", e)
        return 2
    except InsertBenchError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        print("[insertbench] interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
