#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from graphwright.app import build_runtime, read_sources
from graphwright.config import configure_logging
from graphwright.domain.errors import PipelineError
from graphwright.domain.model import ConsentStatus, LicenseType, RunOptions
from graphwright.domain.model.rights import RightsTerms
from graphwright.domain.pipeline import detailed_status

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from graphwright.app import Runtime

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build knowledge graphs from source material")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Create a pipeline run from files or directories")
    run.add_argument("paths", nargs="+", type=Path, help="Files or directories to ingest")
    run.add_argument("--knowledge-base", default="default", help="Target graph namespace")
    run.add_argument(
        "--no-auto-advance",
        action="store_true",
        help="Pause after every completed stage",
    )
    run.add_argument(
        "--skip-failed-items",
        action="store_true",
        help="Mark unusable items as failed instead of failing the stage",
    )
    run.add_argument(
        "--license",
        choices=[member.value for member in LicenseType],
        help="Declare rights for every item instead of inferring them",
    )
    run.add_argument(
        "--consent",
        choices=[member.value for member in ConsentStatus],
        default=ConsentStatus.UNKNOWN.value,
        help="Consent status for declared rights (default: %(default)s)",
    )
    run.add_argument("--started-by", help="Operator name recorded on the run")
    run.add_argument(
        "--work",
        action="store_true",
        help="Drain the job queue in this process after creating the run",
    )

    work = subparsers.add_parser("work", help="Execute queued stage jobs")
    work.add_argument("--max-jobs", type=int, help="Stop after this many jobs")
    work.add_argument(
        "--forever",
        action="store_true",
        help="Keep polling for jobs instead of exiting when the queue is idle",
    )
    work.add_argument(
        "--poll-seconds",
        type=float,
        default=1.0,
        help="Idle poll interval with --forever (default: %(default)s)",
    )

    watchdog = subparsers.add_parser("watchdog", help="Supervise unfinished runs")
    watchdog.add_argument("--once", action="store_true", help="Run a single poll and exit")
    watchdog.add_argument("--max-polls", type=int, help="Stop after this many polls")

    for name, help_text in (
        ("resume", "Resume a paused or failed run"),
        ("pause", "Pause a run after its current stage"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("run_id", help="Pipeline run id")

    abort = subparsers.add_parser("abort", help="Abort a run")
    abort.add_argument("run_id", help="Pipeline run id")
    abort.add_argument("--reason", default="aborted by operator", help="Reason to record")

    status = subparsers.add_parser("status", help="Show run status")
    status.add_argument("run_id", nargs="?", help="Pipeline run id (default: all active runs)")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid run id: {value}") from exc


def _run_options(args: argparse.Namespace) -> RunOptions:
    declared = None
    if args.license is not None:
        declared = RightsTerms(
            license=LicenseType(args.license),
            consent=ConsentStatus(args.consent),
        )
    return RunOptions(
        knowledge_base=args.knowledge_base,
        auto_advance=not args.no_auto_advance,
        skip_failed_items=args.skip_failed_items,
        declared_rights=declared,
        started_by=args.started_by,
    )


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _create_run(runtime: Runtime, args: argparse.Namespace) -> None:
    missing = [str(path) for path in args.paths if not path.exists()]
    if missing:
        raise ValueError(f"No such file or directory: {', '.join(missing)}")
    run = runtime.orchestrator.create_run(read_sources(args.paths), _run_options(args))
    print(run.id)
    if args.work:
        outcomes = runtime.worker().drain()
        log.info("Executed %s job(s)", len(outcomes))
        _print_json(detailed_status(runtime.orchestrator.get(run.id)))


def _work(runtime: Runtime, args: argparse.Namespace) -> None:
    worker = runtime.worker()
    if args.forever:
        worker.run_forever(poll_seconds=args.poll_seconds)
        return
    outcomes = worker.drain(max_jobs=args.max_jobs)
    log.info("Executed %s job(s): %s", len(outcomes), ", ".join(map(str, outcomes)) or "-")


def _watchdog(runtime: Runtime, args: argparse.Namespace) -> None:
    watchdog = runtime.watchdog()
    if args.once:
        for decision in watchdog.poll_once():
            print(f"{decision.run_id} {decision.status} {decision.action} {decision.detail}")
        return
    watchdog.run_forever(max_polls=args.max_polls)


def _status(runtime: Runtime, args: argparse.Namespace) -> None:
    if args.run_id is not None:
        _print_json(detailed_status(runtime.orchestrator.get(_parse_uuid(args.run_id))))
        return
    runs = runtime.orchestrator.active_runs()
    _print_json([detailed_status(run) for run in runs])


def _dispatch(runtime: Runtime, args: argparse.Namespace) -> None:
    match args.command:
        case "run":
            _create_run(runtime, args)
        case "work":
            _work(runtime, args)
        case "watchdog":
            _watchdog(runtime, args)
        case "resume":
            run = runtime.orchestrator.resume(_parse_uuid(args.run_id))
            print(f"{run.id} {run.status} at {run.stage}")
        case "pause":
            run = runtime.orchestrator.pause(_parse_uuid(args.run_id))
            print(f"{run.id} pause requested at {run.stage}")
        case "abort":
            run = runtime.orchestrator.abort(_parse_uuid(args.run_id), args.reason)
            print(f"{run.id} {run.status} ({run.last_error})")
        case "status":
            _status(runtime, args)
        case _:
            raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        runtime = build_runtime()
        _dispatch(runtime, parsed_args)
    except (ValueError, PipelineError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()
