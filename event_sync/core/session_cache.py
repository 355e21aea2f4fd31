"""Same-run duplicate guard keyed by logical group key."""

from __future__ import annotations

import logging

from ..cache.base import CacheBackend
from ..logging_utils import log_event

_PRESENT = "true"


class SessionDedupCache:
    """Tracks which group keys were seen during the current run.

    Every key looked up or inserted is remembered, and purge() removes all
    of them in one bulk call. Because the engine purges at the end of each
    run, the cache is logically empty at the start of the next run no
    matter how long the backend's TTL is.
    """

    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int,
        logger: logging.Logger | None = None,
    ):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.logger = logger
        self._touched: set[str] = set()

    @property
    def touched(self) -> frozenset[str]:
        return frozenset(self._touched)

    def contains(self, key: str) -> bool:
        self._touched.add(key)
        return self.backend.get(key) is not None

    def add(self, key: str) -> None:
        self._touched.add(key)
        self.backend.put(key, _PRESENT, self.ttl_seconds)

    def purge(self) -> None:
        """Remove every key touched during this run.

        Failures are logged and swallowed: a stale key can at worst cause
        one skipped duplicate before its TTL runs out.
        """
        keys = sorted(self._touched)
        if not keys:
            log_event(self.logger, "No cache keys to purge", event="cache_purge", count=0)
            return
        try:
            self.backend.remove_all(keys)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Cache purge failed",
                level=logging.ERROR,
                event="cache_purge_failed",
                keys=keys,
                error=str(exc),
            )
            return
        self._touched.clear()
        log_event(self.logger, "Cache purged", event="cache_purge", count=len(keys), keys=keys)
