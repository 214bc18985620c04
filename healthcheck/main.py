"""Entry point for the healthcheck service."""

from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel

from healthcheck.config import settings
from healthcheck.health.registry import build_aggregator

console = Console()


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting healthcheck API server", style="bold green"))
    uvicorn.run(
        "healthcheck.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def run_check(concurrent: bool, timeout: float | None) -> int:
    """Gather one report, print it as JSON and return the process exit code."""
    aggregator = build_aggregator(settings)
    try:
        if concurrent:
            report = aggregator.gather_concurrent(timeout=timeout)
        else:
            report = aggregator.gather()
    finally:
        aggregator.close()

    console.print_json(json.dumps(report.to_dict()))
    return 0 if report.status_code == 200 else 1


def main(argv: list[str] | None = None) -> None:
    _configure_logging()

    parser = argparse.ArgumentParser(description="Health status aggregator")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    check_parser = sub.add_parser("check", help="Run all checks once and print the report")
    check_parser.add_argument("--concurrent", action="store_true", help="Run checks in parallel")
    check_parser.add_argument(
        "--timeout", type=float, default=settings.probe_timeout,
        help="Per-check wait in seconds when running concurrently",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        run_server()
    elif args.command == "check":
        sys.exit(run_check(args.concurrent or settings.concurrent, args.timeout))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
