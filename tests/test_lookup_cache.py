"""Tests for the content-addressed lookup cache."""

import threading
import time

import pytest

from core.cache import LookupCache, make_key


def test_second_call_is_cache_hit():
    cache = LookupCache()
    calls = []

    def compute():
        calls.append(1)
        return {"ingredients": ["egg"]}

    first = cache.get_or_compute("k", compute)
    second = cache.get_or_compute("k", compute)
    assert len(calls) == 1
    assert "cached" not in first
    assert second == {"ingredients": ["egg"], "cached": True}
    assert cache.hits == 1 and cache.misses == 1


def test_cached_value_is_not_shared_with_callers():
    cache = LookupCache()
    first = cache.get_or_compute("k", lambda: {"total": 1})
    first["total"] = 99
    assert cache.get_or_compute("k", lambda: {"total": 2})["total"] == 1


def test_nested_values_are_not_shared_with_callers():
    cache = LookupCache()
    first = cache.get_or_compute("k", lambda: {"ingredients": ["egg"], "matched": [{"id": 1}]})
    first["ingredients"].append("bacon")
    first["matched"][0]["id"] = 99

    second = cache.get_or_compute("k", lambda: {})
    assert second == {"ingredients": ["egg"], "matched": [{"id": 1}], "cached": True}
    second["ingredients"].clear()
    assert cache.get_or_compute("k", lambda: {})["ingredients"] == ["egg"]


def test_failed_computation_is_not_cached():
    cache = LookupCache()

    def boom():
        raise RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        cache.get_or_compute("k", boom)
    assert "k" not in cache
    assert cache.get_or_compute("k", lambda: {"ok": True}) == {"ok": True}


def test_concurrent_requests_share_one_computation():
    cache = LookupCache()
    release = threading.Event()
    calls = []
    results = []

    def compute():
        calls.append(1)
        release.wait(timeout=5)
        return {"value": 42}

    def worker():
        results.append(cache.get_or_compute("same", compute))

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    time.sleep(0.1)
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert len(calls) == 1
    assert len(results) == 6
    assert all(r["value"] == 42 for r in results)
    assert sum(1 for r in results if r.get("cached")) == 5


def test_lru_bound_evicts_oldest():
    cache = LookupCache(max_entries=2)
    cache.get_or_compute("a", lambda: {"v": "a"})
    cache.get_or_compute("b", lambda: {"v": "b"})
    cache.get_or_compute("a", lambda: {"v": "a"})
    cache.get_or_compute("c", lambda: {"v": "c"})
    assert len(cache) == 2
    assert "a" in cache and "c" in cache
    assert "b" not in cache


def test_ttl_expiry_recomputes():
    now = [100.0]
    cache = LookupCache(ttl_seconds=10, clock=lambda: now[0])
    cache.get_or_compute("k", lambda: {"v": 1})
    now[0] += 5
    assert cache.get_or_compute("k", lambda: {"v": 2})["v"] == 1
    now[0] += 20
    assert cache.get_or_compute("k", lambda: {"v": 3}) == {"v": 3}


def test_make_key_is_deterministic():
    assert make_key("Pad Thai", "/img/pad.jpg") == make_key(" Pad Thai ", "/img/pad.jpg")
    assert make_key("Pad Thai", "/img/pad.jpg") != make_key("Pad Thai", "/img/other.jpg")
    assert len(make_key("x")) == 64
