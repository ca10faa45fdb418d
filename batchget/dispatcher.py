"""
Bounded-concurrency dispatch of fetches, one per URL occurrence.

The calling thread is the only one that touches the registry: it hands the
next slot of each URL to a worker, blocks while ``concurrency`` fetches are
in flight, and drains every outstanding fetch before returning.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Iterable

from batchget.naming import URLRegistry
from batchget.report import FetchResult, RunReport

logger = logging.getLogger(__name__)

FetchFn = Callable[[str, Path], FetchResult]


def _reap(in_flight: dict[Future, tuple[str, Path]], registry: URLRegistry,
          report: RunReport | None) -> None:
    """Block until at least one fetch completes and account for every finished one."""
    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
    for future in done:
        url, path = in_flight.pop(future)
        try:
            result = future.result()
        except Exception as exc:
            logger.error("%s: fetch aborted: %s", url, exc)
            result = FetchResult(url=url, temp_path=path, error=str(exc))

        if not result.ok:
            entry = registry.get(url)
            if entry is not None:
                entry.mark_failed(path)
        if report is not None:
            report.record_fetch(result)


def dispatch(urls: Iterable[str], registry: URLRegistry, concurrency: int,
             fetch_fn: FetchFn, report: RunReport | None = None) -> None:
    """Run *fetch_fn* once per URL occurrence with at most *concurrency* in flight.

    Args:
        urls: Normalized URLs in input order, one item per occurrence.
        registry: Registry holding each URL's allocated slots.
        concurrency: Maximum number of simultaneous fetches (>= 1).
        fetch_fn: Called as ``fetch_fn(url, slot_path)`` on a worker thread.
        report: Optional run report to update.

    Raises:
        ValueError: If *concurrency* is less than 1.
    """
    if concurrency < 1:
        raise ValueError("can't do less than 1 parallel downloads")

    in_flight: dict[Future, tuple[str, Path]] = {}
    with ThreadPoolExecutor(max_workers=concurrency,
                            thread_name_prefix="batchget") as pool:
        try:
            for url in urls:
                if len(in_flight) >= concurrency:
                    _reap(in_flight, registry, report)

                entry = registry.get(url)
                if entry is None:
                    continue

                path = entry.next_slot()
                in_flight[pool.submit(fetch_fn, url, path)] = (url, path)
                if report is not None:
                    report.dispatched += 1
        finally:
            # Drain on normal exhaustion and on interruption alike.
            while in_flight:
                _reap(in_flight, registry, report)
