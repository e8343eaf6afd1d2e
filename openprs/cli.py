"""Command line entrypoint: CSV analysis, board sync, scheduler and API server."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

from openprs.core.config import settings
from openprs.core.exceptions import OpenPRsError
from openprs.core.repos import SPEC_REPOS
from openprs.services.export import CsvRow
from openprs.telemetry import configure_logging, configure_metrics, shutdown_metrics

_logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openprs",
        description="Decide which specification pull requests need editor attention.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: OPENPRS_LOG_LEVEL or INFO)")
    subcommands = parser.add_subparsers(dest="command", required=True)

    analyze = subcommands.add_parser("analyze", help="Analyse open pull requests and write CSV reports")
    analyze.add_argument(
        "--repo",
        action="append",
        default=[],
        metavar="OWNER/NAME",
        help="Repository to analyse; repeatable (default: " + ", ".join(r.full_name for r in SPEC_REPOS) + ")",
    )
    analyze.add_argument("--csv", default=settings.csv_output_path, help="Merged CSV output path")
    analyze.add_argument("--quiet", action="store_true", help="Do not print one JSON line per pull request")

    sync = subcommands.add_parser("sync", help="Import pull requests into Redis and rebuild boards and charts")
    sync.add_argument("--once", action="store_true", help="Run a single sync instead of the scheduler loop")
    sync.add_argument(
        "--interval-hours",
        type=float,
        default=settings.sync_interval_hours,
        help="Scheduler interval in hours (minimum 0.25)",
    )

    serve = subcommands.add_parser("serve", help="Run the board API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _print_row(repo: str, row: CsvRow) -> None:
    print(json.dumps({"repo": repo, **asdict(row)}, default=str))


def _run_analyze(args: argparse.Namespace) -> None:
    from openprs.dependencies import get_collector, get_decision_service
    from openprs.services.sync import CsvReportJob

    job = CsvReportJob(
        get_collector(),
        get_decision_service(),
        editor_config_repo=settings.editor_config_repo,
        editor_config_path=settings.editor_config_path,
        on_result=None if args.quiet else _print_row,
    )
    output = job.run(args.repo or settings.target_repos, args.csv)
    print(f"Merged report written to {output}")


def _run_sync(args: argparse.Namespace) -> None:
    from openprs.core.config import MIN_SYNC_INTERVAL_HOURS
    from openprs.dependencies import get_sync_service
    from openprs.services.sync import run_forever

    service = get_sync_service()
    if args.once:
        service.run()
        return
    run_forever(service.run, max(args.interval_hours, MIN_SYNC_INTERVAL_HOURS))


def _run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("openprs.main:app", host=args.host, port=args.port)


_COMMANDS = {
    "analyze": _run_analyze,
    "sync": _run_sync,
    "serve": _run_serve,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    configure_metrics()
    try:
        _COMMANDS[args.command](args)
    except OpenPRsError as exc:
        _logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        _logger.info("Interrupted")
        return 130
    finally:
        shutdown_metrics()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
