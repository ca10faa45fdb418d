"""
batchget: concurrent batch downloader with atomic publishing.

Each URL occurrence is downloaded into its own temp file inside a per-run
working directory and renamed onto its final name only after the whole
batch has drained, so a destination file is never left half-written.
"""

__version__ = "0.1.0"

from batchget.naming import (
    DEFAULT_FILENAME,
    URLRegistry,
    URLRegistryEntry,
    allocate,
    allocate_all,
    derive_filename,
    normalize_url,
)
from batchget.report import FetchResult, RunReport
from batchget.transfer import fetch
from batchget.dispatcher import dispatch
from batchget.publisher import (
    WorkDirError,
    create_work_dir,
    publish,
    remove_work_dir,
    work_directory,
)
from batchget.core import main, run_batch

__all__ = [
    "__version__",
    # Naming / allocation
    "DEFAULT_FILENAME",
    "URLRegistry",
    "URLRegistryEntry",
    "allocate",
    "allocate_all",
    "derive_filename",
    "normalize_url",
    # Fetch / dispatch / publish
    "FetchResult",
    "RunReport",
    "fetch",
    "dispatch",
    "WorkDirError",
    "create_work_dir",
    "publish",
    "remove_work_dir",
    "work_directory",
    # Orchestration / CLI
    "main",
    "run_batch",
]
