"""Calendar stage: JSON artifacts -> Google Calendar events."""

from __future__ import annotations

import json
import logging
from typing import Iterator

from ..config import AppConfig, STAGE_CALENDAR
from ..core.markers import DurableMarkerStore
from ..core.policy import DedupPolicy
from ..core.stage import PreparedItem, Stage
from ..core.types import WorkItem
from ..drive.base import JSON_MIME_TYPE, FileFilter, FileStore
from ..drive.walker import HierarchyWalker
from ..errors import ItemReadError
from ..publish.calendar import CalendarPublisher


class CalendarSyncStage(Stage):
    """Publish every JSON artifact as one calendar event.

    All JSON files are listed together with their properties: already
    processed artifacts still reach the engine so their sub-category can
    re-arm the session dedup cache. The group key is the payload's
    subCategory, and artifacts of a bypass category (meeting minutes by
    default) are published without same-run dedup.
    """

    name = STAGE_CALENDAR

    def __init__(
        self,
        cfg: AppConfig,
        store: FileStore,
        markers: DurableMarkerStore,
        publisher: CalendarPublisher,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.store = store
        self.markers = markers
        self.publisher = publisher
        self.logger = logger
        self.walker = HierarchyWalker(store, logger)

    @property
    def file_filter(self) -> FileFilter:
        return FileFilter(mime_type=JSON_MIME_TYPE, include_properties=True)

    def discover(self) -> Iterator[WorkItem]:
        return self.walker.discover(
            self.cfg.drive.json_folder_id or "",
            self.file_filter,
            marker=self.markers.marker,
        )

    def prepare(self, item: WorkItem) -> PreparedItem:
        payload = item.payload if item.payload is not None else self._read_payload(item)
        item.payload = payload

        policy = DedupPolicy.STANDARD
        if payload.get("category") in self.cfg.calendar.bypass_categories:
            policy = DedupPolicy.BYPASS_DEDUP

        sub_category = payload.get("subCategory")
        key = str(sub_category) if sub_category else None

        # Already processed artifacts are never published again, so a broken
        # payload only matters while the marker is unset.
        event = None
        if not item.processed:
            event = self.publisher.build(payload)
        return PreparedItem(group_key=key, policy=policy, context=event)

    def perform(self, item: WorkItem, prepared: PreparedItem) -> None:
        event = prepared.context
        if event is None:
            event = self.publisher.build(item.payload or {})
        self.publisher.insert(event)

    def _read_payload(self, item: WorkItem) -> dict:
        try:
            raw = self.store.read(item.id)
        except Exception as exc:  # noqa: BLE001
            raise ItemReadError(f"Failed to download {item.name}: {exc}") from exc
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ItemReadError(f"{item.name} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ItemReadError(f"{item.name} does not contain a JSON object")
        return payload
