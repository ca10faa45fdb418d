"""
Run accounting: what a batch run allocated, fetched, published, and skipped.

``RunReport`` is filled in by the allocator, dispatcher, and publisher and
summarised once at the end of a run.  It is only ever mutated from the
coordinating thread.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from utils.common import format_bytes


@dataclass
class FetchResult:
    """Outcome of one fetch into one temp-file slot."""

    url: str
    temp_path: Path
    ok: bool = False
    bytes_written: int = 0
    error: str | None = None


@dataclass
class SkipRecord:
    """An argument that never reached dispatch."""

    item: str
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"item": self.item, "detail": self.detail}


@dataclass
class RunReport:
    """Structured summary of one batch run."""

    allocated: int = 0
    dispatched: int = 0
    fetched: int = 0
    failed: int = 0
    published: int = 0
    publish_errors: int = 0
    total_bytes: int = 0
    skips: list[SkipRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    elapsed_seconds: float = 0.0

    # ── helpers ───────────────────────────────────────────────────────────

    @property
    def skipped(self) -> int:
        return len(self.skips)

    def add_skip(self, item: str, detail: str) -> None:
        self.skips.append(SkipRecord(item=item, detail=detail))

    def record_fetch(self, result: FetchResult) -> None:
        if result.ok:
            self.fetched += 1
            self.total_bytes += result.bytes_written
        else:
            self.failed += 1
            if result.error:
                self.errors.append(f"{result.url}: {result.error}")

    def record_publish_error(self, message: str) -> None:
        self.publish_errors += 1
        self.errors.append(message)

    def finish(self) -> None:
        self.elapsed_seconds = time.monotonic() - self.start_time

    def console_summary(self) -> str:
        """One-line summary suitable for the terminal."""
        parts = [f"{self.fetched} fetched"]
        if self.failed:
            parts.append(f"{self.failed} failed")
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        parts.append(f"{self.published} published")
        if self.publish_errors:
            parts.append(f"{self.publish_errors} publish errors")
        parts.append(format_bytes(self.total_bytes))
        parts.append(f"{self.elapsed_seconds:.1f}s")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "allocated": self.allocated,
            "dispatched": self.dispatched,
            "fetched": self.fetched,
            "failed": self.failed,
            "skipped": self.skipped,
            "published": self.published,
            "publish_errors": self.publish_errors,
            "total_bytes": self.total_bytes,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }
        if self.skips:
            d["skips"] = [s.to_dict() for s in self.skips]
        if self.errors:
            d["errors"] = self.errors
        return d
