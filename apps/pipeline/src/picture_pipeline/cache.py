"""Single-flight result cache shared by every page of one build."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Maps an identity key to the one Future computing its result.

    Entries are written once and never replaced, so concurrent callers for
    the same key all wait on the same computation. Failed futures stay in
    the cache for the rest of the build.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._futures: dict[str, Future] = {}

    def get_or_submit(self, key: str, factory: Callable[[], Future]) -> Future:
        """Return the future for key, starting it with factory() if absent."""
        with self._lock:
            future = self._futures.get(key)
            if future is not None:
                logger.debug("Cache hit: %s", key)
                return future
            future = factory()
            self._futures[key] = future
            return future

    def get(self, key: str) -> Future | None:
        with self._lock:
            return self._futures.get(key)

    def clear(self) -> None:
        with self._lock:
            self._futures.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._futures

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)
