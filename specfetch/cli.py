"""
Command line interface.

    specfetch fetch [NAMES...]   download documents (all by default)
    specfetch list               show the manifest
    specfetch status             show what is on disk
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.controller import DocumentFetcher, RunConfig
from .core.logger import get_logger, initialize_logging
from .core.pdf_concat import PAGE_ORDERS
from .errors import ManifestError, SetupError
from .manifest import DEFAULT_MANIFEST
from .utils.paths import DEFAULT_OUTPUT_DIR


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="specfetch",
                                     description="Download ABI and ELF specification documents.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output on the console")
    parser.add_argument("--log-dir", type=Path, default=None,
                        help="also write rotating log files into this directory")
    sub = parser.add_subparsers(dest="command", required=True)

    p_fetch = sub.add_parser("fetch", help="download documents")
    p_fetch.add_argument("names", nargs="*", help="manifest entries to fetch (default: all)")
    p_fetch.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    p_fetch.add_argument("--work-dir", type=Path, default=None,
                         help="persistent scratch directory (reuses git checkouts between runs)")
    p_fetch.add_argument("--jobs", type=int, default=1, help="entries fetched in parallel (max 4)")
    p_fetch.add_argument("--fail-fast", action="store_true", help="skip remaining entries after a failure")
    p_fetch.add_argument("--delay", type=float, default=0.5, help="seconds between requests to one host")
    p_fetch.add_argument("--timeout", type=float, default=60.0, help="HTTP timeout in seconds")
    p_fetch.add_argument("--page-order", choices=PAGE_ORDERS, default="sequence",
                         help="page order when concatenating HTML documents")
    p_fetch.add_argument("--record", type=Path, default=None, help="append per-entry results to this JSONL file")
    p_fetch.add_argument("--error-report", type=Path, default=None, help="write an error report here on failure")

    sub.add_parser("list", help="show the manifest")

    p_status = sub.add_parser("status", help="show which documents exist on disk")
    p_status.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    return parser


def cmd_fetch(args: argparse.Namespace) -> int:
    logger = get_logger("cli")
    config = RunConfig(output_dir=args.output_dir, work_dir=args.work_dir, jobs=max(args.jobs, 1),
                       fail_fast=args.fail_fast, request_delay=args.delay, timeout=args.timeout,
                       page_order=args.page_order, record_path=args.record)
    fetcher = DocumentFetcher(config)
    try:
        report = fetcher.run(args.names)
    except ManifestError as e:
        logger.error(str(e))
        return EXIT_USAGE
    except SetupError as e:
        logger.error(f"Setup failed: {e}")
        return EXIT_FAILED
    finally:
        fetcher.close()

    for line in report.summary_lines():
        print(line)
    if report.failed and args.error_report:
        fetcher.errors.save_error_report(args.error_report)
    return report.exit_code


def cmd_list(args: argparse.Namespace) -> int:
    for entry in DEFAULT_MANIFEST:
        print(f"{entry.name:10} {entry.kind.value:15} {entry.target:20} {entry.source}")
    return EXIT_OK


def cmd_status(args: argparse.Namespace) -> int:
    fetcher = DocumentFetcher(RunConfig(output_dir=args.output_dir))
    missing = 0
    try:
        for entry in DEFAULT_MANIFEST:
            for info in fetcher.entry_status(entry):
                if info['exists']:
                    print(f"{entry.name:10} {Path(info['path']).name:32} {info['size']:>10}  {info['modified']}")
                else:
                    missing += 1
                    print(f"{entry.name:10} {Path(info['path']).name:32} {'missing':>10}")
        stats = fetcher.files.get_output_stats()
        line = f"{stats['files']} files, {stats['total_size']} bytes in {stats['output_dir']}"
        if stats['partial_files']:
            line += f" ({stats['partial_files']} interrupted .part files)"
        print(line)
    finally:
        fetcher.close()
    return EXIT_FAILED if missing else EXIT_OK


COMMANDS = {
    "fetch": cmd_fetch,
    "list": cmd_list,
    "status": cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    initialize_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
