"""
Idempotent batch reconciliation.

The engine walks a stage's work items strictly in discovery order and,
for each one, combines two pieces of state to decide what to do:

1. the durable "processed" marker on the file, which survives runs, and
2. the session dedup cache, which only lives for the current run and
   stops two not-yet-marked items sharing a group key from both
   publishing.

The decision itself is the pure transition table in ``policy.classify``.
At the end of every run, including runs aborted by an exception, all
cache keys touched during the run are purged, so each run starts from an
empty cache and re-arms it from already processed items as it goes.

Precondition: at most one run per stage at a time. There is no lock
across processes; overlapping runs may publish the same item twice.
"""

from __future__ import annotations

import logging

from ..errors import EventSyncError, PersistenceError
from ..logging_utils import log_event
from ..tracing import set_span_output, start_span
from .markers import DurableMarkerStore
from .policy import Action, DedupPolicy, classify
from .session_cache import SessionDedupCache
from .stage import PreparedItem, Stage
from .types import RunStats, WorkItem


class ReconciliationEngine:
    """Drives one stage run: classify each item, publish, mark, purge.

    Attributes:
        markers: Durable marker store with the stage's visibility
        cache: Session dedup cache shared by all items of the run
        logger: Structured event logger
    """

    def __init__(
        self,
        markers: DurableMarkerStore,
        cache: SessionDedupCache,
        logger: logging.Logger | None = None,
    ):
        self.markers = markers
        self.cache = cache
        self.logger = logger

    def run(self, stage: Stage) -> RunStats:
        """Process every discovered item of the stage and purge the cache."""
        stats = RunStats(stage=stage.name)
        log_event(self.logger, "Stage start", event="stage_start", stage=stage.name)

        with start_span("event_sync.stage", kind="chain", input_value={"stage": stage.name}) as span:
            try:
                for item in stage.discover():
                    stats.discovered += 1
                    self.process_item(stage, item, stats)
            finally:
                self.cache.purge()
            set_span_output(span, stats.as_dict())

        log_event(self.logger, "Stage complete", event="stage_complete", **stats.as_dict())
        return stats

    def process_item(self, stage: Stage, item: WorkItem, stats: RunStats) -> Action | None:
        """Classify and apply one item. Errors never escape this method.

        Returns the action taken, or None when the item failed.
        """
        try:
            processed = self.markers.is_processed(item)
            prepared = stage.prepare(item)
            action = self._classify(item, prepared, processed)
            self._apply(stage, item, prepared, action, stats)
            return action
        except PersistenceError as exc:
            stats.failed_marker += 1
            self._log_item(item, "Marker write failed", logging.ERROR, "marker_failed", error=str(exc))
        except EventSyncError as exc:
            if exc.terminal:
                self._mark_terminal(item, exc, stats)
            else:
                stats.abandoned += 1
                self._log_item(
                    item,
                    "Item left for next run",
                    logging.WARNING,
                    "item_abandoned",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        except Exception as exc:  # noqa: BLE001
            stats.abandoned += 1
            if self.logger is not None:
                self.logger.error(
                    "Unexpected error processing item",
                    exc_info=exc,
                    extra={
                        "event": "item_error",
                        "file_id": item.id,
                        "file_name": item.name,
                        "error": str(exc),
                    },
                )
        return None

    def _classify(self, item: WorkItem, prepared: PreparedItem, processed: bool) -> Action:
        key = prepared.group_key
        cached = False
        if key is not None and prepared.policy is DedupPolicy.STANDARD:
            cached = self.cache.contains(key)
        action = classify(prepared.policy, processed, key is not None, cached)

        if processed and key is None and prepared.policy is DedupPolicy.STANDARD:
            self._log_item(
                item, "Processed item has no group key", logging.DEBUG, "processed_without_key"
            )
        self._log_item(
            item,
            "Item classified",
            logging.INFO,
            "item_classified",
            action=action.value,
            policy=prepared.policy.value,
            processed=processed,
            group_key=key,
            cached=cached,
        )
        return action

    def _apply(
        self,
        stage: Stage,
        item: WorkItem,
        prepared: PreparedItem,
        action: Action,
        stats: RunStats,
    ) -> None:
        key = prepared.group_key
        if action is Action.PUBLISH:
            stage.perform(item, prepared)
            stats.published += 1
            if key is not None:
                self.cache.add(key)
            self.markers.mark_processed(item)
        elif action is Action.SKIP_DUPLICATE:
            self.markers.mark_processed(item)
            stats.skipped_duplicate += 1
        elif action is Action.REBUILD_CACHE:
            self.cache.add(key)
            stats.rebuilt += 1
        else:
            stats.unchanged += 1

    def _mark_terminal(self, item: WorkItem, exc: EventSyncError, stats: RunStats) -> None:
        self._log_item(
            item,
            "Unrecoverable item error, marking as processed",
            logging.ERROR,
            "item_terminal",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        try:
            self.markers.mark_processed(item)
        except PersistenceError as marker_exc:
            stats.failed_marker += 1
            self._log_item(
                item, "Marker write failed", logging.ERROR, "marker_failed", error=str(marker_exc)
            )
            return
        stats.terminal += 1

    def _log_item(self, item: WorkItem, message: str, level: int, event: str, **fields) -> None:
        log_event(
            self.logger,
            message,
            level=level,
            event=event,
            file_id=item.id,
            file_name=item.name,
            **fields,
        )
