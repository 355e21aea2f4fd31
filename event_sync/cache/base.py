"""
Abstract interface for the key-value cache service.

The session dedup cache only needs presence checks, inserts with a TTL
and a bulk removal. TTLs are advisory: the engine's end-of-run purge is
what actually empties the cache between runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable


class CacheBackend(ABC):
    """Minimal cache service contract."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires after ttl_seconds."""
        raise NotImplementedError

    @abstractmethod
    def remove_all(self, keys: Iterable[str]) -> None:
        """Remove every given key. Missing keys are ignored."""
        raise NotImplementedError
