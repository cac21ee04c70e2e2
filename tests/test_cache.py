"""Tests for ResultCache."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor

import pytest

from picture_pipeline.cache import ResultCache


def _resolved(value):
    future = Future()
    future.set_result(value)
    return future


class TestResultCache:
    """Tests for ResultCache."""

    def test_first_call_runs_factory(self):
        cache = ResultCache()

        future = cache.get_or_submit("a", lambda: _resolved(1))

        assert future.result() == 1
        assert "a" in cache
        assert len(cache) == 1

    def test_second_call_reuses_future(self):
        cache = ResultCache()
        calls = []

        def factory():
            calls.append(1)
            return _resolved(len(calls))

        first = cache.get_or_submit("a", factory)
        second = cache.get_or_submit("a", factory)

        assert first is second
        assert len(calls) == 1

    def test_distinct_keys(self):
        cache = ResultCache()

        cache.get_or_submit("a", lambda: _resolved(1))
        cache.get_or_submit("b", lambda: _resolved(2))

        assert cache.get("b").result() == 2
        assert cache.get("missing") is None

    def test_concurrent_callers_share_one_computation(self):
        cache = ResultCache()
        calls = []
        barrier = threading.Barrier(8)

        def factory():
            calls.append(1)
            return _resolved("done")

        def request():
            barrier.wait()
            return cache.get_or_submit("same", factory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(request) for _ in range(8)]
            results = [f.result() for f in futures]

        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_failures_stay_cached(self):
        cache = ResultCache()
        failed = Future()
        failed.set_exception(RuntimeError("boom"))

        cache.get_or_submit("a", lambda: failed)
        again = cache.get_or_submit("a", lambda: _resolved("retry"))

        with pytest.raises(RuntimeError):
            again.result()

    def test_clear(self):
        cache = ResultCache()
        cache.get_or_submit("a", lambda: _resolved(1))

        cache.clear()

        assert len(cache) == 0
