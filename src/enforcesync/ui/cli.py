"""Command-line entry point for enforcement record ingestion."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from enforcesync.app import ingest_records
from enforcesync.config import NAMED_POLICIES, configure_logging
from enforcesync.domain.model import Agency, RecordKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import FrameType

    from enforcesync.domain.pipeline import RawRecord

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile regulatory enforcement records")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest raw agency records (JSON lines)")
    ingest.add_argument(
        "--agency",
        type=Agency,
        choices=list(Agency),
        required=True,
        help="Agency that published the records",
    )
    ingest.add_argument(
        "--kind",
        type=RecordKind,
        choices=list(RecordKind),
        default=RecordKind.CASE,
        help="Record kind (default: %(default)s)",
    )
    ingest.add_argument(
        "--file",
        type=Path,
        required=True,
        help="Path to a JSON-lines file with one raw record per line",
    )
    ingest.add_argument(
        "--no-company-register",
        action="store_true",
        help="Skip Companies House lookups even when an API key is configured",
    )

    subparsers.add_parser("policies", help="Print the named retry policies")

    return parser.parse_args(list(argv))


def _read_records(path: Path) -> Iterator[RawRecord]:
    with path.open(encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{number}: invalid JSON ({exc.msg})") from exc
            if not isinstance(payload, dict):
                raise ValueError(f"{path}:{number}: expected a JSON object")
            yield payload


def _print_policies() -> None:
    for name, policy in NAMED_POLICIES.items():
        print(  # noqa: T201
            f"{name}: attempts={policy.max_attempts}, base={policy.base_delay_ms}ms, "
            f"max={policy.max_delay_ms}ms, backoff={policy.backoff}, jitter={policy.jitter}, "
            f"circuit_breaker={policy.circuit_breaker}"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "ingest" and not parsed_args.file.is_file():
            raise ValueError(f"No such file: {parsed_args.file}")  # noqa: TRY301
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "policies":
            _print_policies()
        elif parsed_args.command == "ingest":
            summary = ingest_records(
                parsed_args.agency,
                parsed_args.kind,
                _read_records(parsed_args.file),
                use_company_register=not parsed_args.no_company_register,
            )
            log.info(
                "Ingestion finished: created=%s, updated=%s, existing=%s, errors=%s, "
                "recovered=%s, aborted=%s",
                summary.created,
                summary.updated,
                summary.existing,
                summary.errors,
                summary.recovered,
                summary.aborted,
            )
            if summary.aborted:
                sys.exit(1)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ValueError:
        log.exception("Invalid input")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during ingestion")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
