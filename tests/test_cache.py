"""Cache backends and the session dedup cache lifecycle."""

from __future__ import annotations

import json

import pytest

from event_sync.cache import create_cache
from event_sync.cache.file import JsonFileCache
from event_sync.cache.memory import MemoryCache
from event_sync.config import CacheConfig
from event_sync.core.session_cache import SessionDedupCache


class Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_memory_cache_expires_entries():
    clock = Clock()
    cache = MemoryCache(clock=clock)
    cache.put("Expo", "true", ttl_seconds=60)

    assert cache.get("Expo") == "true"
    clock.now += 61
    assert cache.get("Expo") is None


def test_memory_cache_remove_all_ignores_missing_keys():
    cache = MemoryCache()
    cache.put("a", "true", 60)
    cache.put("b", "true", 60)

    cache.remove_all(["a", "missing"])

    assert cache.get("a") is None
    assert cache.get("b") == "true"


def test_file_cache_survives_new_instance(tmp_path):
    path = tmp_path / "cache.json"
    JsonFileCache(path).put("Expo", "true", ttl_seconds=60)

    assert JsonFileCache(path).get("Expo") == "true"
    assert "Expo" in json.loads(path.read_text(encoding="utf-8"))


def test_file_cache_expiry_and_removal(tmp_path):
    clock = Clock()
    cache = JsonFileCache(tmp_path / "cache.json", clock=clock)
    cache.put("old", "true", ttl_seconds=10)
    cache.put("new", "true", ttl_seconds=100)

    clock.now += 20
    assert cache.get("old") is None
    cache.remove_all(["new"])

    assert cache.get("new") is None
    assert json.loads((tmp_path / "cache.json").read_text(encoding="utf-8")) == {}


def test_file_cache_ignores_corrupt_file(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFileCache(path).get("anything") is None


def test_create_cache_selects_backend(tmp_path):
    assert isinstance(create_cache(CacheConfig(backend="memory")), MemoryCache)
    file_cache = create_cache(CacheConfig(backend="file", path=str(tmp_path / "c.json")))
    assert isinstance(file_cache, JsonFileCache)
    with pytest.raises(ValueError):
        create_cache(CacheConfig(backend="redis"))


def test_session_cache_purges_every_touched_key():
    backend = MemoryCache()
    backend.put("stale", "true", 3600)
    session = SessionDedupCache(backend, ttl_seconds=3600)

    assert session.contains("stale") is True
    assert session.contains("absent") is False
    session.add("Expo")
    session.purge()

    assert len(backend) == 0
    assert session.touched == frozenset()


def test_session_cache_purge_failure_is_swallowed():
    class BrokenBackend(MemoryCache):
        def remove_all(self, keys):
            raise OSError("disk full")

    session = SessionDedupCache(BrokenBackend(), ttl_seconds=60)
    session.add("Expo")

    session.purge()

    assert session.touched == frozenset({"Expo"})
