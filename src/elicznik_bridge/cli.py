#!/usr/bin/env python3
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from elicznik_bridge.clients.tauron.constants import ALLOWED_DIRECTIONS, ALLOWED_PERIODS
from elicznik_bridge.clients.tauron.models import InvalidInputError
from elicznik_bridge.config import get_settings
from elicznik_bridge.core.assembler import ResponseAssembler
from elicznik_bridge.core.models import BridgeFailure, request_from_validated
from elicznik_bridge.core.pipeline import EnergyBridge
from elicznik_bridge.utils.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for the bridge CLI."""
    parser = argparse.ArgumentParser(
        prog="elicznik-bridge",
        description="Fetch hourly energy series from Tauron e-licznik.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Fetch one series and print it")
    fetch.add_argument("--user", help="Portal login (default: TAURON_USERNAME)")
    fetch.add_argument("--password", help="Portal password (default: TAURON_PASSWORD)")
    fetch.add_argument("--meter", help="Metering point id (default: TAURON_METER)")
    fetch.add_argument(
        "--type",
        dest="direction",
        choices=ALLOWED_DIRECTIONS,
        default="consumption",
        help="Series direction (default: consumption)",
    )
    fetch.add_argument(
        "--balanced",
        action="store_true",
        help="Net the opposite direction out hour by hour",
    )
    fetch.add_argument(
        "--period",
        choices=ALLOWED_PERIODS,
        default="range",
        help="Period kind (default: range)",
    )
    fetch.add_argument("--month", help="YYYY-MM for --period monthly (default: current)")
    fetch.add_argument("--year", help="YYYY for --period yearly (default: current)")
    fetch.add_argument("--from", dest="date_from", help="Range start YYYY-MM-DD or DD.MM.YYYY")
    fetch.add_argument("--to", dest="date_to", help="Range end YYYY-MM-DD or DD.MM.YYYY")
    fetch.add_argument(
        "--total-only",
        action="store_true",
        help="Print only the total of the series",
    )
    fetch.add_argument(
        "--save",
        action="store_true",
        help="Also write the response to the output directory",
    )
    fetch.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for saved results (default: BRIDGE_OUTPUT_DIR)",
    )
    fetch.add_argument(
        "--format",
        dest="output_format",
        choices=["json", "csv"],
        default="json",
        help="Output format (default: json)",
    )

    serve = subparsers.add_parser("serve", help="Run the HTTP endpoint")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    return parser


def _run_fetch(args: argparse.Namespace, out: TextIO) -> int:
    settings = get_settings()
    credentials = settings.credentials
    assembler = ResponseAssembler(args.output_dir or settings.storage.bridge_output_dir)

    try:
        request = request_from_validated(
            user=args.user or credentials.tauron_username,
            password=args.password or credentials.tauron_password,
            meter=args.meter or credentials.tauron_meter,
            direction=args.direction,
            balanced=args.balanced,
            period=args.period,
            month=args.month,
            year=args.year,
            date_from=args.date_from,
            date_to=args.date_to,
            total_only=args.total_only,
            save=args.save,
        )
    except InvalidInputError as exc:
        LOGGER.error("Invalid arguments: %s", exc.message)
        _, body = assembler.render(BridgeFailure.from_error(exc))
        out.write(body + "\n")
        return 1

    outcome = EnergyBridge(settings).execute(request)

    if args.output_format == "csv" and outcome.ok:
        # Still runs saving so --save behaves the same in both formats
        assembler.payload_for(outcome, request)
        if request.total_only:
            out.write(f"{outcome.value}\n")
        else:
            out.write(outcome.series.to_dataframe().to_csv(index=False))
        return 0

    _, body = assembler.render(outcome, request)
    out.write(body + "\n")
    return 0 if outcome.ok else 1


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    LOGGER.info("Serving on http://%s:%d", args.host, args.port)
    uvicorn.run("elicznik_bridge.api:app", host=args.host, port=args.port, log_config=None)
    return 0


def run_cli(argv: Optional[list] = None, out: Optional[TextIO] = None) -> int:
    """Execute CLI with given arguments.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
        out: Stream results are printed to (stdout if None).

    Returns:
        Process exit code: 0 on success, 1 on any bridge failure.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging first
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        return _run_serve(args)
    return _run_fetch(args, out or sys.stdout)


def main() -> None:  # pragma: no cover - CLI entrypoint
    """CLI entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":  # pragma: no cover - CLI execution path
    main()
