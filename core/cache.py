"""Content-addressed lookup cache for expensive analysis results.

`LookupCache` memoizes structured results (plain dicts) under a digest of the
normalized request. Concurrent callers asking for the same key while a
computation is running share that single in-flight computation instead of
starting their own. Entries are optionally bounded (LRU) and optionally
expire after a TTL.
"""

import copy
import hashlib
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from core.logger import get_logger

logger = get_logger("core.cache")


def make_key(*fields: Any) -> str:
    """Return a deterministic SHA-256 digest for the given request fields.

    Fields are stringified, stripped and joined with ':' so that
    `make_key("Pad Thai", "/img/pad-thai.jpg")` is stable across processes.
    """
    normalized = ":".join("" if f is None else str(f).strip() for f in fields)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class LookupCache:
    """Thread-safe memoization of structured results keyed by content digest.

    Args:
        max_entries: LRU bound on stored entries; 0 or less means unbounded.
        ttl_seconds: Entry lifetime in seconds; 0 or less disables expiry.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, max_entries: int = 512, ttl_seconds: float = 0.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()
        self._inflight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return self._lookup(key) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_compute(self, key: str, compute_fn: Callable[[], Mapping[str, Any]]) -> Dict[str, Any]:
        """Return the cached result for `key`, computing it at most once.

        On a hit the stored result is returned as a deep copy annotated with
        ``cached: True``. On a miss `compute_fn` runs, its result is stored
        and returned as-is. Callers arriving while the computation for the
        same key is in flight wait for it and receive the annotated copy.
        A failing `compute_fn` stores nothing and its exception propagates
        to the caller and to every waiter.
        """
        with self._lock:
            stored = self._lookup(key)
            if stored is not None:
                self.hits += 1
                return self._annotate(stored)
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future
                self.misses += 1

        if not owner:
            logger.debug("Waiting for in-flight computation: %s", key[:12])
            return self._annotate(future.result())

        try:
            result = compute_fn()
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._store(key, copy.deepcopy(dict(result)))
            self._inflight.pop(key, None)
        future.set_result(copy.deepcopy(dict(result)))
        logger.debug("Cached result for key %s", key[:12])
        return result

    # helpers below assume self._lock is held

    def _lookup(self, key: str) -> Optional[Dict[str, Any]]:
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if self.ttl_seconds > 0 and self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def _store(self, key: str, value: Dict[str, Any]) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        if self.max_entries > 0:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted[:12])

    @staticmethod
    def _annotate(value: Mapping[str, Any]) -> Dict[str, Any]:
        out = copy.deepcopy(dict(value))
        out["cached"] = True
        return out
