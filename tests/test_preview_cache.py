"""Tests for the preview LRU cache."""

import threading

import pytest

from s3tree.core.preview_cache import PreviewCache


class TestBasics:
    def test_miss_returns_none(self):
        assert PreviewCache().get("nope.png") is None

    def test_put_get(self):
        cache = PreviewCache()
        cache.put("a.png", b"pixels")
        assert cache.contains("a.png")
        assert cache.get("a.png") == b"pixels"

    def test_put_replaces(self):
        cache = PreviewCache()
        cache.put("a.png", b"old")
        cache.put("a.png", b"new")
        assert cache.get("a.png") == b"new"
        assert len(cache) == 1

    def test_invalidate(self):
        cache = PreviewCache()
        cache.put("a.png", b"x")
        assert cache.invalidate("a.png") is True
        assert cache.invalidate("a.png") is False
        assert not cache.contains("a.png")

    def test_clear(self):
        cache = PreviewCache()
        cache.put("a", 1)
        cache.put("b", 2)
        cache.clear()
        assert len(cache) == 0

    def test_default_capacity(self):
        assert PreviewCache().max_entries == 200

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            PreviewCache(max_entries=0)


class TestEviction:
    def test_evicts_least_recently_used(self):
        cache = PreviewCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        assert not cache.contains("a")
        assert cache.contains("b")
        assert cache.contains("c")

    def test_get_promotes(self):
        cache = PreviewCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)
        assert cache.contains("a")
        assert not cache.contains("b")

    def test_never_exceeds_capacity(self):
        cache = PreviewCache(max_entries=5)
        for i in range(50):
            cache.put(f"k{i}", i)
            assert len(cache) <= 5


class TestThreadSafety:
    def test_concurrent_access(self):
        cache = PreviewCache(max_entries=10)
        errors: list[Exception] = []

        def hammer(offset):
            try:
                for i in range(500):
                    cache.put(f"k{(i + offset) % 30}", i)
                    cache.get(f"k{i % 30}")
                    cache.invalidate(f"k{(i * 7) % 30}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=hammer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert len(cache) <= 10
