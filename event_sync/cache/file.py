"""
JSON file cache backend.

Entries live in a single JSON document mapping key to
``{"value": ..., "expires_at": <epoch seconds>}``. The file is rewritten
atomically on every mutation, which is fine for the handful of keys a run
touches.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, Iterable

from .base import CacheBackend

logger = logging.getLogger("event_sync.cache")


class JsonFileCache(CacheBackend):
    """Cache persisted to a JSON file so it outlives the process.

    Attributes:
        path: Location of the cache document
    """

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        self.path = path
        self._clock = clock

    def get(self, key: str) -> str | None:
        entries = self._load()
        entry = entries.get(key)
        if not isinstance(entry, dict):
            return None
        if float(entry.get("expires_at", 0)) <= self._clock():
            return None
        value = entry.get("value")
        return None if value is None else str(value)

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        entries = self._load()
        entries[key] = {"value": value, "expires_at": self._clock() + ttl_seconds}
        self._save(self._drop_expired(entries))

    def remove_all(self, keys: Iterable[str]) -> None:
        entries = self._load()
        changed = False
        for key in keys:
            if entries.pop(key, None) is not None:
                changed = True
        if changed:
            self._save(self._drop_expired(entries))

    def _drop_expired(self, entries: dict[str, Any]) -> dict[str, Any]:
        now = self._clock()
        return {
            k: v
            for k, v in entries.items()
            if isinstance(v, dict) and float(v.get("expires_at", 0)) > now
        }

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, entries: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entries, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
