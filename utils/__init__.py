"""Shared utilities for batchget: formatting, configuration, HTTP sessions."""

from utils.common import format_bytes
from utils.config import Config, DownloadConfig
from utils.http import SessionManager

__all__ = [
    "format_bytes",
    "Config",
    "DownloadConfig",
    "SessionManager",
]
