"""
Streaming one URL into one pre-allocated temp-file slot.

A fetch never touches the destination filename.  On any failure the slot is
removed so the publisher has nothing to rename; on success the slot holds
exactly the bytes the server sent (status codes are not inspected).
"""

from __future__ import annotations

import logging
from pathlib import Path

import requests

from batchget.report import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


def discard_slot(path: Path) -> None:
    """Remove a failed slot; a missing file is fine."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("cannot remove %s: %s", path, exc)


def _transfer(url: str, dest_path: Path, session: requests.Session,
              chunk_size: int, timeout: float | None, result: FetchResult) -> None:
    # The slot must already exist; "r+b" refuses to recreate a removed one.
    with open(dest_path, "r+b") as fp:
        print(f"created {dest_path}", flush=True)
        resp = session.get(url, stream=True, timeout=timeout)
        with resp:
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if not chunk:
                    continue
                fp.write(chunk)
                result.bytes_written += len(chunk)


def fetch(url: str, dest_path: Path, session: requests.Session, *,
          chunk_size: int = DEFAULT_CHUNK_SIZE, timeout: float | None = None,
          quiet: bool = False) -> FetchResult:
    """Download *url* into the existing temp file *dest_path*.

    Runs on a worker thread.  Transfer failures are logged and reported in
    the returned :class:`FetchResult`, never raised, so every fetch signals
    completion exactly once.

    Args:
        url: Normalized URL to GET.
        dest_path: Temp-file slot created by the allocator.
        session: Shared HTTP session.
        chunk_size: Bytes requested from the response stream per read.
        timeout: Per-request timeout in seconds, or None to wait forever.
        quiet: Suppress the ``GET <url>`` progress line.

    Returns:
        FetchResult with ``ok`` set on success.
    """
    result = FetchResult(url=url, temp_path=dest_path)
    if not quiet:
        print(f"GET {url}", flush=True)

    try:
        _transfer(url, dest_path, session, chunk_size, timeout, result)
    except (requests.RequestException, OSError) as exc:
        logger.error("%s: %s", url, exc)
        result.error = str(exc) or exc.__class__.__name__
        discard_slot(dest_path)
        return result

    result.ok = True
    return result
