"""Bounded execution window for CPU-heavy encode tasks."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)

MIN_WORKERS = 2
MAX_WORKERS = 6


def default_concurrency() -> int:
    """Available CPUs clamped to [MIN_WORKERS, MAX_WORKERS]."""
    cpus = os.cpu_count() or MIN_WORKERS
    return max(MIN_WORKERS, min(MAX_WORKERS, cpus))


class ConcurrencyLimiter:
    """
    Runs at most max_workers tasks at once. Extra tasks wait in FIFO order
    and start as slots free up.
    """

    def __init__(self, max_workers: int | None = None):
        if max_workers is None:
            max_workers = default_concurrency()
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="picture-encode",
        )
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak

    def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(self._run, fn, *args, **kwargs)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)

    def __enter__(self) -> ConcurrencyLimiter:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown()
