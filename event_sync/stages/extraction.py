"""PDF extraction stage: Drive PDFs -> Gemini -> JSON artifacts."""

from __future__ import annotations

import logging
from typing import Callable, Iterator
import time

from ..config import AppConfig, STAGE_EXTRACT
from ..core.markers import DurableMarkerStore
from ..core.policy import DedupPolicy
from ..core.stage import PreparedItem, Stage
from ..core.types import WorkItem
from ..drive.base import PDF_MIME_TYPE, FileFilter, FileStore
from ..drive.walker import HierarchyWalker
from ..errors import ItemReadError
from ..llm.providers.base import ExtractionProvider
from ..llm.retry import extract_with_retry
from ..publish.json_store import JsonArtifactPublisher


class PdfExtractionStage(Stage):
    """Extract one event per unprocessed PDF and write it as a JSON artifact.

    Processed PDFs are excluded by the listing query itself, so the engine
    only sees items whose marker is unset.
    """

    name = STAGE_EXTRACT

    def __init__(
        self,
        cfg: AppConfig,
        store: FileStore,
        markers: DurableMarkerStore,
        extractor: ExtractionProvider,
        publisher: JsonArtifactPublisher,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.store = store
        self.markers = markers
        self.extractor = extractor
        self.publisher = publisher
        self.logger = logger
        self._sleep = sleep
        self.walker = HierarchyWalker(store, logger)

    @property
    def file_filter(self) -> FileFilter:
        return FileFilter(mime_type=PDF_MIME_TYPE, exclude_property=self.markers.marker)

    def discover(self) -> Iterator[WorkItem]:
        return self.walker.discover(self.cfg.drive.pdf_folder_id or "", self.file_filter)

    def prepare(self, item: WorkItem) -> PreparedItem:
        key = None
        if self.cfg.extraction.dedup_by_sub_category:
            key = item.path.sub_category
        return PreparedItem(group_key=key, policy=DedupPolicy.STANDARD)

    def perform(self, item: WorkItem, prepared: PreparedItem) -> None:
        if item.content is None:
            try:
                item.content = self.store.read(item.id)
            except Exception as exc:  # noqa: BLE001
                raise ItemReadError(f"Failed to download {item.name}: {exc}") from exc
        record = extract_with_retry(
            self.extractor, item, item.content, sleep=self._sleep, logger=self.logger
        )
        self.publisher.publish(record, item)
