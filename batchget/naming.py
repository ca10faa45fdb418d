"""
URL normalization, destination naming, and temp-file slot allocation.

Every occurrence of a URL on the command line gets its own empty temp file
("slot") inside the run's working directory.  Slots are recorded on the
URL's registry entry in input order; the dispatcher hands them out in the
same order and the publisher renames them onto the destination name.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "index.html"
_SCHEMES = ("http://", "https://")


# ── Registry ──────────────────────────────────────────────────────────────────


@dataclass
class URLRegistryEntry:
    """Naming state for one distinct normalized URL."""

    destination_name: str
    occurrence_count: int = 0      # slots handed to fetchers so far
    temp_paths: deque[Path] = field(default_factory=deque)
    failed: set[Path] = field(default_factory=set)

    def next_slot(self) -> Path:
        """Return the slot for the next occurrence and advance the counter."""
        path = self.temp_paths[self.occurrence_count]
        self.occurrence_count += 1
        return path

    def mark_failed(self, path: Path) -> None:
        """Record that the fetch into *path* failed; it must never be published."""
        self.failed.add(path)


class URLRegistry:
    """Per-run mapping of normalized URL to its :class:`URLRegistryEntry`.

    Iteration follows first-allocation order.  Only the coordinating thread
    may mutate the registry; fetch workers never see it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, URLRegistryEntry] = {}

    def get(self, url: str) -> URLRegistryEntry | None:
        return self._entries.get(url)

    def add_slot(self, url: str, destination_name: str, path: Path) -> URLRegistryEntry:
        """Append *path* to the entry for *url*, creating the entry if needed."""
        entry = self._entries.get(url)
        if entry is None:
            entry = URLRegistryEntry(destination_name=destination_name)
            self._entries[url] = entry
        entry.temp_paths.append(path)
        return entry

    def items(self) -> Iterator[tuple[str, URLRegistryEntry]]:
        return iter(list(self._entries.items()))

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ── Naming ────────────────────────────────────────────────────────────────────


def normalize_url(raw_url: str) -> str:
    """Prefix *raw_url* with ``http://`` unless it already has an HTTP scheme."""
    if raw_url.startswith(_SCHEMES):
        return raw_url
    return "http://" + raw_url


def derive_filename(url: str) -> str:
    """Derive the destination filename for a normalized URL.

    The scheme and host are dropped and the last ``/``-delimited component
    of the remaining path is used, falling back to ``index.html`` when that
    component is empty.

    Examples:
        http://example.com/a/b.txt -> b.txt
        http://example.com/       -> index.html
        http://example.com        -> index.html
    """
    _, _, rest = url.partition("://")
    _, _, path = rest.partition("/")
    name = path.split("/")[-1]
    return name or DEFAULT_FILENAME


# ── Allocation ────────────────────────────────────────────────────────────────


def allocate(raw_url: str, work_dir: Path, registry: URLRegistry) -> str:
    """Allocate a fresh temp-file slot for one occurrence of *raw_url*.

    Args:
        raw_url: URL as given on the command line (scheme optional).
        work_dir: The run's working directory.
        registry: Registry receiving the new slot.

    Returns:
        The normalized URL, to be queued for dispatch.

    Raises:
        OSError: If the temp file cannot be created.  The registry is left
            unchanged and the caller must not queue the URL.
    """
    url = normalize_url(raw_url)
    name = derive_filename(url)

    fd, tmp_name = tempfile.mkstemp(prefix=name, dir=work_dir)
    os.close(fd)

    registry.add_slot(url, name, Path(tmp_name))
    return url


def allocate_all(raw_urls: Iterable[str], work_dir: Path, registry: URLRegistry,
                 report=None) -> list[str]:
    """Allocate a slot per argument and return the dispatch list.

    URLs whose slot cannot be created are logged and dropped.
    """
    urls: list[str] = []
    for raw_url in raw_urls:
        try:
            url = allocate(raw_url, work_dir, registry)
        except OSError as exc:
            logger.error("%s: %s", raw_url, exc)
            if report is not None:
                report.add_skip(raw_url, str(exc))
            continue
        urls.append(url)
        if report is not None:
            report.allocated += 1
    return urls
