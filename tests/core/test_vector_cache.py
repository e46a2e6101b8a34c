"""Tests for the embedding vector cache."""

from __future__ import annotations

import threading

import pytest

from tailr_agent.core.cache import DEFAULT_TTL_SECONDS, VectorCache, normalize_key


def test_normalize_key_collapses_whitespace_and_keeps_case():
    assert normalize_key("  Senior   Python\n\tEngineer ") == "Senior Python Engineer"
    assert normalize_key("Python") != normalize_key("python")


def test_default_ttl_is_one_day():
    assert DEFAULT_TTL_SECONDS == 86400
    assert VectorCache().ttl_seconds == 86400


def test_set_then_get_returns_vector(fake_clock):
    cache = VectorCache(clock=fake_clock)
    cache.set("hello world", [0.1, 0.2])

    assert cache.get("hello   world") == [0.1, 0.2]
    assert len(cache) == 1


def test_missing_key_returns_none():
    assert VectorCache().get("nothing here") is None


def test_expired_entry_is_absent_and_purged_on_lookup(fake_clock):
    cache = VectorCache(ttl_seconds=60, clock=fake_clock)
    cache.set("text", [1.0])

    fake_clock.advance(59)
    assert cache.get("text") == [1.0]

    fake_clock.advance(2)
    assert cache.get("text") is None
    assert len(cache) == 0


def test_set_refreshes_timestamp(fake_clock):
    cache = VectorCache(ttl_seconds=60, clock=fake_clock)
    cache.set("text", [1.0])
    fake_clock.advance(50)
    cache.set("text", [2.0])
    fake_clock.advance(50)

    assert cache.get("text") == [2.0]


def test_sweep_removes_only_expired_entries(fake_clock):
    cache = VectorCache(ttl_seconds=10, clock=fake_clock)
    cache.set("old-1", [1.0])
    cache.set("old-2", [1.0])
    fake_clock.advance(8)
    cache.set("fresh", [1.0])
    fake_clock.advance(5)

    assert cache.sweep() == 2
    assert len(cache) == 1
    assert cache.get("fresh") == [1.0]


def test_stats_track_hits_and_misses():
    cache = VectorCache()
    cache.set("a", [1.0])
    cache.get("a")
    cache.get("a")
    cache.get("b")

    stats = cache.get_stats()
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["cache_size"] == 1
    assert stats["hit_rate"] == pytest.approx(2 / 3)


def test_clear_drops_entries_and_stats():
    cache = VectorCache()
    cache.set("a", [1.0])
    cache.get("a")
    cache.clear()

    assert len(cache) == 0
    assert cache.get_stats()["hits"] == 0


def test_stored_vector_is_copied():
    cache = VectorCache()
    vector = [1.0, 2.0]
    cache.set("a", vector)
    vector.append(3.0)

    assert cache.get("a") == [1.0, 2.0]


def test_returned_vector_is_a_copy():
    cache = VectorCache()
    cache.set("python", [1.0, 2.0])

    vector = cache.get("python")
    vector[0] = 99.0

    assert cache.get("python") == [1.0, 2.0]


def test_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        VectorCache(ttl_seconds=0)


def test_concurrent_writers_and_readers_leave_one_entry_per_key():
    cache = VectorCache(stripes=4)
    errors = []

    def worker(n: int):
        try:
            for i in range(200):
                key = f"key-{i % 10}"
                cache.set(key, [float(n)])
                value = cache.get(key)
                assert value is not None and len(value) == 1
        except AssertionError as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(cache) == 10
