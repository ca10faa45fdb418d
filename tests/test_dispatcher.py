"""
Tests for batchget/dispatcher.py — bounded-concurrency dispatch and drain.

The concurrency bound is checked by instrumenting the fetch function with a
running counter and recording its high-water mark.
"""
import sys
import threading
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from batchget.dispatcher import dispatch
from batchget.naming import URLRegistry, allocate_all
from batchget.report import FetchResult, RunReport


class _Instrumented:
    """Fetch stand-in that tracks how many calls run at once."""

    def __init__(self, delay: float = 0.02, fail_urls=()):
        self.delay = delay
        self.fail_urls = set(fail_urls)
        self.lock = threading.Lock()
        self.running = 0
        self.peak = 0
        self.calls: list[tuple[str, Path]] = []

    def __call__(self, url, path):
        with self.lock:
            self.running += 1
            self.peak = max(self.peak, self.running)
            self.calls.append((url, path))
        try:
            time.sleep(self.delay)
            ok = url not in self.fail_urls
            return FetchResult(url=url, temp_path=path, ok=ok,
                               bytes_written=10 if ok else 0,
                               error=None if ok else "boom")
        finally:
            with self.lock:
                self.running -= 1


def _setup(work_dir, raw_urls):
    reg = URLRegistry()
    urls = allocate_all(raw_urls, work_dir, reg)
    return reg, urls


class TestConcurrencyBound:
    @pytest.mark.parametrize("limit", [1, 2, 5])
    def test_never_exceeds_limit(self, work_dir, limit):
        reg, urls = _setup(work_dir, [f"h/f{i}" for i in range(12)])
        fn = _Instrumented()

        dispatch(urls, reg, limit, fn)

        assert fn.peak <= limit
        assert len(fn.calls) == 12

    def test_limit_reached_when_work_allows(self, work_dir):
        reg, urls = _setup(work_dir, [f"h/f{i}" for i in range(6)])
        fn = _Instrumented(delay=0.1)
        dispatch(urls, reg, 3, fn)
        assert fn.peak == 3

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit_rejected(self, work_dir, limit):
        reg, urls = _setup(work_dir, ["h/a"])
        fn = _Instrumented()
        with pytest.raises(ValueError):
            dispatch(urls, reg, limit, fn)
        assert fn.calls == []


class TestDispatchOrder:
    def test_each_occurrence_gets_its_own_slot_in_order(self, work_dir):
        reg, urls = _setup(work_dir, ["h/a", "h/b", "h/a", "h/a"])
        fn = _Instrumented(delay=0)

        dispatch(urls, reg, 1, fn)

        entry_a = reg.get("http://h/a")
        assert entry_a.occurrence_count == 3
        assert reg.get("http://h/b").occurrence_count == 1
        a_slots = [path for url, path in fn.calls if url == "http://h/a"]
        assert a_slots == list(entry_a.temp_paths)

    def test_dispatch_follows_input_order(self, work_dir):
        raw = ["h/3", "h/1", "h/2"]
        reg, urls = _setup(work_dir, raw)
        fn = _Instrumented(delay=0)
        dispatch(urls, reg, 1, fn)
        assert [url for url, _ in fn.calls] == urls

    def test_unknown_url_skipped_silently(self, work_dir):
        reg, urls = _setup(work_dir, ["h/a"])
        fn = _Instrumented(delay=0)
        dispatch(["http://not/registered"] + urls, reg, 2, fn)
        assert [url for url, _ in fn.calls] == ["http://h/a"]


class TestDrainAndAccounting:
    def test_all_fetches_finished_on_return(self, work_dir):
        reg, urls = _setup(work_dir, [f"h/f{i}" for i in range(5)])
        fn = _Instrumented(delay=0.05)
        dispatch(urls, reg, 2, fn)
        assert fn.running == 0
        assert len(fn.calls) == 5

    def test_report_counts(self, work_dir):
        reg, urls = _setup(work_dir, ["h/ok1", "h/bad", "h/ok2"])
        report = RunReport()
        dispatch(urls, reg, 2, _Instrumented(delay=0, fail_urls={"http://h/bad"}), report)
        assert report.dispatched == 3
        assert report.fetched == 2
        assert report.failed == 1
        assert report.total_bytes == 20
        assert report.errors == ["http://h/bad: boom"]

    def test_failed_slot_marked(self, work_dir):
        reg, urls = _setup(work_dir, ["h/ok", "h/bad"])
        dispatch(urls, reg, 1, _Instrumented(delay=0, fail_urls={"http://h/bad"}))
        bad = reg.get("http://h/bad")
        assert bad.failed == {bad.temp_paths[0]}
        assert reg.get("http://h/ok").failed == set()

    def test_crashing_fetch_does_not_abort_siblings(self, work_dir):
        reg, urls = _setup(work_dir, ["h/a", "h/b", "h/c"])
        seen = []

        def fn(url, path):
            seen.append(url)
            if url == "http://h/b":
                raise RuntimeError("unexpected")
            return FetchResult(url=url, temp_path=path, ok=True)

        report = RunReport()
        dispatch(urls, reg, 1, fn, report)

        assert seen == urls
        assert report.fetched == 2
        assert report.failed == 1
        b = reg.get("http://h/b")
        assert b.temp_paths[0] in b.failed

    def test_interrupt_still_drains_in_flight(self, work_dir):
        reg, urls = _setup(work_dir, [f"h/f{i}" for i in range(4)])
        fn = _Instrumented(delay=0.05)

        def urls_then_interrupt():
            yield urls[0]
            yield urls[1]
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            dispatch(urls_then_interrupt(), reg, 2, fn)

        assert fn.running == 0
        assert len(fn.calls) == 2
