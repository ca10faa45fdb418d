"""HTTP session utilities for batchget.

Provides a ``SessionManager`` that lazily builds a pooled
``requests.Session`` shared by every download worker.  Failed transfers are
never retried, so the adapter is mounted with retries disabled.
"""

from typing import Optional

import requests
from requests.adapters import HTTPAdapter


class SessionManager:
    """Manages an HTTP session with connection pooling."""

    def __init__(self, pool_connections: int = 10, pool_maxsize: int = 10,
                 user_agent: Optional[str] = None):
        """Initialize session manager.

        Args:
            pool_connections: Number of connection pools to cache
            pool_maxsize: Maximum number of connections per pool; should be
                at least the number of parallel downloads
            user_agent: Value for the User-Agent header, if any
        """
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self.user_agent = user_agent
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create the HTTP session.

        Returns:
            requests.Session object
        """
        if self._session is None:
            self._session = requests.Session()
            if self.user_agent:
                self._session.headers["User-Agent"] = self.user_agent

            adapter = HTTPAdapter(
                max_retries=0,
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize,
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
