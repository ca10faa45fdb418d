"""
Publishing finished downloads and tearing down the working directory.

Publishing is the second phase of the two-phase commit: each completed
slot is atomically renamed onto its URL's destination name.  Slots of a
URL are published in allocation order, so when a URL was requested more
than once the last successful occurrence ends up at the destination.
Slots that failed or were never dispatched are removed, which leaves the
working directory empty for its own removal.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from batchget.naming import URLRegistry
from batchget.report import RunReport
from batchget.transfer import discard_slot

logger = logging.getLogger(__name__)

DEFAULT_WORKDIR_PREFIX = ".batchget"


class WorkDirError(OSError):
    """The per-run working directory could not be created or removed."""


def create_work_dir(parent: Path = Path("."),
                    prefix: str = DEFAULT_WORKDIR_PREFIX) -> Path:
    """Create the dot-prefixed working directory for one run inside *parent*."""
    try:
        return Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    except OSError as exc:
        raise WorkDirError(f"cannot create working directory in {parent}: {exc}") from exc


def remove_work_dir(work_dir: Path) -> None:
    """Remove the (now empty) working directory.

    Raises:
        WorkDirError: If the directory cannot be removed, e.g. because
            files were leaked into it.
    """
    try:
        work_dir.rmdir()
    except OSError as exc:
        raise WorkDirError(f"cannot remove working directory {work_dir}: {exc}") from exc


def publish(registry: URLRegistry, work_dir: Path, dest_dir: Path = Path("."),
            report: RunReport | None = None) -> None:
    """Rename every completed slot onto its destination, then remove *work_dir*.

    A slot that no longer exists was removed by its failed fetch and is
    silently skipped.  Any other rename error is logged and does not stop
    the remaining URLs.

    Raises:
        WorkDirError: If the working directory cannot be removed.
    """
    for url, entry in registry.items():
        target = dest_dir / entry.destination_name
        dispatched = entry.occurrence_count
        index = 0
        while entry.temp_paths:
            path = entry.temp_paths.popleft()
            index += 1
            if index > dispatched or path in entry.failed:
                discard_slot(path)
                continue

            try:
                os.replace(path, target)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error("%s: cannot publish %s: %s", url, target, exc)
                if report is not None:
                    report.record_publish_error(f"{url}: {exc}")
                discard_slot(path)
                continue

            logger.debug("published %s -> %s", path.name, target)
            if report is not None:
                report.published += 1

    remove_work_dir(work_dir)


@contextmanager
def work_directory(registry: URLRegistry, dest_dir: Path = Path("."),
                   prefix: str = DEFAULT_WORKDIR_PREFIX,
                   report: RunReport | None = None) -> Iterator[Path]:
    """Create a working directory and always publish out of it on exit.

    Publishing runs exactly once, whether the body finishes normally or
    raises.
    """
    work_dir = create_work_dir(dest_dir, prefix)
    try:
        yield work_dir
    finally:
        publish(registry, work_dir, dest_dir=dest_dir, report=report)
