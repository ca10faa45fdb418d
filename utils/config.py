"""Configuration management utilities for batchget.

Provides:
- A small ``Config`` base class that exposes its settings as a dict
- ``DownloadConfig``: download settings loaded from environment variables

Every setting has a default so the tool works without any configuration.
"""

import logging
import os as _os
from typing import Any, Dict, Optional

DEFAULT_USER_AGENT = "batchget/0.1"


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}


def _env_int(name: str, default: int) -> int:
    raw = _os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_timeout(name: str) -> Optional[float]:
    raw = _os.getenv(name)
    if raw is None or not raw.strip() or raw.strip().lower() == "none":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


class DownloadConfig(Config):
    """Configuration for download operations.

    Environment variables:
        BATCHGET_PARALLEL: Default number of parallel downloads (default: 1)
        BATCHGET_CHUNK_SIZE: Bytes read from the response per chunk (default: 4096)
        BATCHGET_TIMEOUT: Per-request timeout in seconds (default: none)
        BATCHGET_USER_AGENT: User-Agent header sent with every request
        BATCHGET_WORKDIR_PREFIX: Prefix of the per-run working directory
            (default: .batchget)
        BATCHGET_LOG_LEVEL: Logging level name (default: INFO)
    """

    def __init__(self) -> None:
        super().__init__()
        self.parallel = 1
        self.chunk_size = 4096
        self.timeout_seconds: Optional[float] = None
        self.user_agent = DEFAULT_USER_AGENT
        self.workdir_prefix = ".batchget"
        self.log_level = "INFO"

    @classmethod
    def from_env(cls) -> "DownloadConfig":
        """Create a DownloadConfig populated from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        config = cls()
        config.parallel = _env_int("BATCHGET_PARALLEL", config.parallel)
        config.chunk_size = _env_int("BATCHGET_CHUNK_SIZE", config.chunk_size)
        if config.chunk_size < 1:
            raise ValueError(
                f"BATCHGET_CHUNK_SIZE must be at least 1, got {config.chunk_size}"
            )
        config.timeout_seconds = _env_timeout("BATCHGET_TIMEOUT")
        config.user_agent = _os.getenv("BATCHGET_USER_AGENT", config.user_agent)
        config.workdir_prefix = _os.getenv(
            "BATCHGET_WORKDIR_PREFIX", config.workdir_prefix
        )
        config.log_level = _os.getenv("BATCHGET_LOG_LEVEL", config.log_level).upper()
        if not isinstance(logging.getLevelName(config.log_level), int):
            raise ValueError(f"BATCHGET_LOG_LEVEL is not a logging level: {config.log_level!r}")
        return config
