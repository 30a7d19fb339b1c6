from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any, cast

from dotenv import load_dotenv

from typedupe.adapters.catalog import load_stream_schemas, select_streams
from typedupe.app import ingest_records, prepare_raw_table, prepare_stream, type_and_dedupe
from typedupe.config import (
    ConfigurationError,
    configure_logging,
    get_cast_policy,
    get_catalog_path,
    get_run_config,
    get_table_naming,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from typedupe.domain.model import StreamSchema

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Type and deduplicate raw stream records")
    parser.add_argument(
        "--catalog",
        type=str,
        help="Path to the configured catalog (defaults to TYPEDUPE_CATALOG)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log stage details",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    prepare = subparsers.add_parser("prepare", help="Create raw and typed tables")
    prepare.add_argument(
        "--stream",
        action="append",
        default=[],
        help="Stream to prepare (repeatable, defaults to every catalog stream)",
    )
    prepare.add_argument(
        "--raw-only",
        action="store_true",
        help="Only create the raw tables",
    )

    ingest = subparsers.add_parser("ingest", help="Append JSON lines to a stream's raw log")
    ingest.add_argument("--stream", type=str, required=True, help="Target stream")
    ingest.add_argument(
        "--file",
        type=str,
        required=True,
        help="JSON-lines file with one payload object per line",
    )

    type_dedupe = subparsers.add_parser(
        "type-dedupe",
        help="Fold pending raw records into the typed tables",
    )
    type_dedupe.add_argument(
        "--stream",
        action="append",
        default=[],
        help="Stream to process (repeatable, defaults to every catalog stream)",
    )

    return parser.parse_args(list(argv))


def _read_payloads(path: Path) -> list[dict[str, Any]]:
    payloads: list[dict[str, Any]] = []
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                document = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{line_number}: invalid JSON ({exc.msg})") from exc
            if not isinstance(document, dict):
                raise ValueError(f"{path}:{line_number}: expected a JSON object")
            payloads.append(cast("dict[str, Any]", document))
    return payloads


def _selected_streams(args: argparse.Namespace) -> list[StreamSchema]:
    schemas = load_stream_schemas(get_catalog_path(args.catalog))
    names: list[str] = [args.stream] if isinstance(args.stream, str) else args.stream
    return select_streams(schemas, names)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        streams = _selected_streams(parsed_args)
        naming = get_table_naming()
        policy = get_cast_policy()
        run_config = get_run_config()
        payloads = (
            _read_payloads(Path(parsed_args.file)) if parsed_args.command == "ingest" else []
        )
    except (ConfigurationError, OSError, ValueError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "prepare":
            for schema in streams:
                if parsed_args.raw_only:
                    prepare_raw_table(schema, naming=naming)
                else:
                    prepare_stream(schema, naming=naming)
        elif parsed_args.command == "ingest":
            (schema,) = streams
            prepare_raw_table(schema, naming=naming)
            ingest_records(schema, payloads, naming=naming)
        elif parsed_args.command == "type-dedupe":
            for schema in streams:
                prepare_stream(schema, naming=naming)
                type_and_dedupe(schema, naming=naming, policy=policy, run_config=run_config)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConfigurationError:
        log.exception("Configuration error during %s", parsed_args.command)
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
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
