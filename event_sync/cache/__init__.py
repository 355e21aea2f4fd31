"""Cache service backends used by the session dedup cache."""

from __future__ import annotations

from pathlib import Path

from ..config import CacheConfig
from .base import CacheBackend
from .file import JsonFileCache
from .memory import MemoryCache


def create_cache(cfg: CacheConfig) -> CacheBackend:
    """Build the configured cache backend."""
    backend = cfg.backend.lower().strip()
    if backend == "memory":
        return MemoryCache()
    if backend == "file":
        return JsonFileCache(Path(cfg.path))
    raise ValueError(f"Unsupported cache backend: {cfg.backend}. Use 'memory' or 'file'.")


__all__ = ["CacheBackend", "JsonFileCache", "MemoryCache", "create_cache"]
