from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from testharness.config import HarnessSettings, load_harness_settings
from testharness.core.models import HarnessReport
from testharness.logging.log_formatter import export_result_lines
from testharness.logging.logger import configure_logging, get_logger
from testharness.runner import run_document
from testharness.utils.json_io import save_json

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testharness",
        description="Run test documents and report one result per test.",
    )
    parser.add_argument("documents", nargs="+", type=Path, help="test document(s) to run")
    parser.add_argument("--settings", type=Path, default=None, help="harness settings JSON file")
    parser.add_argument("--timeout-ms", type=float, default=None, help="harness-wide timeout")
    parser.add_argument("--test-timeout-ms", type=float, default=None, help="default per-test timeout")
    parser.add_argument(
        "--explicit-done",
        action="store_true",
        default=None,
        help="require documents to call done() before completing",
    )
    parser.add_argument("--json", type=Path, default=None, dest="json_out", help="write reports as JSON")
    parser.add_argument("--log-level", default="WARNING", help="logging level (default: WARNING)")
    return parser


def _load_settings(args: argparse.Namespace) -> HarnessSettings:
    return load_harness_settings(
        args.settings,
        overrides={
            "timeout_ms": args.timeout_ms,
            "test_timeout_ms": args.test_timeout_ms,
            "explicit_done": args.explicit_done,
        },
    )


async def _run_all(documents: List[Path], settings: HarnessSettings) -> List[HarnessReport]:
    reports = []
    for document in documents:
        reports.append(await run_document(document, settings))
    return reports


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.WARNING))

    missing = [str(path) for path in args.documents if not path.is_file()]
    if missing:
        print(f"Test document(s) not found: {', '.join(missing)}", file=sys.stderr)
        return EXIT_USAGE
    try:
        settings = _load_settings(args)
    except (ValidationError, ValueError) as exc:
        print(f"Invalid harness settings: {exc}", file=sys.stderr)
        return EXIT_USAGE

    reports = asyncio.run(_run_all(args.documents, settings))

    for document, report in zip(args.documents, reports):
        print(f"== {document}")
        for line in export_result_lines(report):
            print(line)
        print()

    if args.json_out is not None:
        save_json(
            args.json_out,
            [
                {"document": str(document), "report": report}
                for document, report in zip(args.documents, reports)
            ],
        )

    return EXIT_OK if all(report.passed for report in reports) else EXIT_FAILED
