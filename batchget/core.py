"""
Batch download orchestration and the command-line entry point.

A run goes through three phases inside one working directory:

    allocate  -> one empty temp-file slot per URL occurrence
    dispatch  -> at most N concurrent fetches, each into its own slot
    publish   -> rename finished slots onto their destination names

Publishing and working-directory removal always run, including when the
dispatch phase is interrupted.

Usage:
    batchget example.com/a.txt https://example.org/     # one at a time
    batchget -p 4 -q url1 url2 url3 url4                # 4 in parallel, quiet
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from pathlib import Path
from typing import Sequence

import requests

from batchget.dispatcher import dispatch
from batchget.naming import URLRegistry, allocate_all
from batchget.publisher import WorkDirError, work_directory
from batchget.report import RunReport
from batchget.transfer import fetch
from utils.config import DownloadConfig
from utils.http import SessionManager

logger = logging.getLogger(__name__)


def run_batch(
    raw_urls: Sequence[str],
    *,
    concurrency: int = 1,
    quiet: bool = False,
    session: requests.Session | None = None,
    config: DownloadConfig | None = None,
    dest_dir: Path = Path("."),
) -> RunReport:
    """Download *raw_urls* into *dest_dir* and return the run report.

    This is the programmatic interface, decoupled from argparse/sys.argv.

    Args:
        raw_urls: URLs as given by the user, scheme optional, duplicates allowed.
        concurrency: Maximum number of simultaneous downloads (>= 1).
        quiet: Suppress the per-URL ``GET`` progress line.
        session: HTTP session to use; a pooled one is created if omitted.
        config: Download settings; read from the environment if omitted.
        dest_dir: Directory receiving the published files and the
            temporary working directory.

    Raises:
        ValueError: If *concurrency* is less than 1.  Nothing is written.
        WorkDirError: If the working directory cannot be created or removed.
    """
    if concurrency < 1:
        raise ValueError("can't do less than 1 parallel downloads")
    if config is None:
        config = DownloadConfig.from_env()

    registry = URLRegistry()
    report = RunReport()

    with SessionManager(pool_maxsize=max(concurrency, 10),
                        user_agent=config.user_agent) as manager:
        fetch_fn = functools.partial(
            fetch,
            session=session if session is not None else manager.session,
            chunk_size=config.chunk_size,
            timeout=config.timeout_seconds,
            quiet=quiet,
        )
        try:
            with work_directory(registry, dest_dir, config.workdir_prefix, report) as work_dir:
                urls = allocate_all(raw_urls, work_dir, registry, report)
                dispatch(urls, registry, concurrency, fetch_fn, report)
        finally:
            report.finish()

    return report


# ── Main ──────────────────────────────────────────────────────────────────────


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="batchget",
        description=(
            "Download URLs concurrently. Each file appears under its final "
            "name only once its download has completed."
        ),
    )
    parser.add_argument(
        "-q", action="store_true", dest="quiet",
        help="be quiet: do not print a GET line per URL",
    )
    parser.add_argument(
        "-p", type=int, default=None, dest="parallel", metavar="N",
        help="number of parallel downloads (default: 1, or $BATCHGET_PARALLEL)",
    )
    parser.add_argument(
        "urls", nargs="*", metavar="url",
        help="URL to download; http:// is assumed when no scheme is given",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments, run the batch, and return the exit status."""
    args = _parse_args(argv)

    try:
        config = DownloadConfig.from_env()
    except ValueError as exc:
        print(f"batchget: {exc}", file=sys.stderr)
        return 1

    level = logging.WARNING if args.quiet else logging.getLevelName(config.log_level)
    logging.basicConfig(
        level=min(level, logging.ERROR),
        format="%(message)s",
        force=True,
    )
    logger.debug("config: %s", config.to_dict())

    parallel = args.parallel if args.parallel is not None else config.parallel
    if parallel < 1:
        logger.error("can't do less than 1 parallel downloads")
        return 1

    try:
        report = run_batch(args.urls, concurrency=parallel, quiet=args.quiet,
                           config=config)
    except WorkDirError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.error("interrupted")
        return 130

    logger.info("%s", report.console_summary())
    return 0
