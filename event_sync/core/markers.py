"""Durable per-item "processed" marker backed by file custom properties."""

from __future__ import annotations

from ..drive.base import FileStore, Property
from ..errors import PersistenceError
from .types import WorkItem

MARKER_VALUE = "true"


class DurableMarkerStore:
    """Reads and sets the processed flag for work items.

    The visibility must be the same one the walker filters on, otherwise
    a written marker stays invisible to the next run's listing and the
    item is processed again.

    Attributes:
        store: File store holding the custom properties
        key: Property key (e.g. "processed")
        visibility: Property visibility ("PRIVATE" or "PUBLIC")
    """

    def __init__(self, store: FileStore, key: str, visibility: str):
        self.store = store
        self.key = key
        self.visibility = visibility

    @property
    def marker(self) -> Property:
        return Property(self.key, MARKER_VALUE, self.visibility)

    def is_processed(self, item: WorkItem) -> bool:
        if item.processed is not None:
            return item.processed
        processed = self.store.has_property(item.id, self.key, MARKER_VALUE, self.visibility)
        item.processed = processed
        return processed

    def mark_processed(self, item: WorkItem) -> None:
        try:
            self.store.set_property(item.id, self.key, MARKER_VALUE, self.visibility)
        except Exception as exc:  # noqa: BLE001
            raise PersistenceError(f"Failed to mark {item.id} as processed: {exc}") from exc
        item.processed = True

    def clear(self, item: WorkItem) -> None:
        """Remove the marker. Only used by the reset-markers maintenance command."""
        try:
            self.store.remove_property(item.id, self.key, self.visibility)
        except Exception as exc:  # noqa: BLE001
            raise PersistenceError(f"Failed to clear marker on {item.id}: {exc}") from exc
        item.processed = False
