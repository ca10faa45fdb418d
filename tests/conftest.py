"""
Pytest fixtures for batchget tests.

Provides a fake HTTP layer so no test touches the network: ``FakeResponse``
streams a fixed body (optionally failing part-way) and ``make_session``
builds a session mock that serves bodies or raises per URL.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(self, body: bytes = b"", fail_after: int | None = None):
        self.body = body
        self.fail_after = fail_after
        self.closed = False
        self.chunk_sizes: list[int] = []

    def iter_content(self, chunk_size=1):
        self.chunk_sizes.append(chunk_size)
        for start in range(0, len(self.body), chunk_size):
            if self.fail_after is not None and start >= self.fail_after:
                raise requests.exceptions.ChunkedEncodingError("connection reset mid-body")
            yield self.body[start:start + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture()
def make_session():
    """Build a session mock from ``{url: bytes | FakeResponse | Exception}``."""

    def _make(routes: dict) -> MagicMock:
        session = MagicMock(spec=requests.Session)

        def _get(url, **kwargs):
            target = routes[url]
            if isinstance(target, BaseException):
                raise target
            if isinstance(target, FakeResponse):
                return target
            return FakeResponse(target)

        session.get.side_effect = _get
        return session

    return _make


@pytest.fixture()
def work_dir(tmp_path):
    """An empty working directory standing in for a run's temp dir."""
    d = tmp_path / ".batchget-test"
    d.mkdir()
    return d


@pytest.fixture()
def fake_response():
    """The ``FakeResponse`` class, for tests that build responses directly."""
    return FakeResponse
