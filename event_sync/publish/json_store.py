"""Writes extracted records as JSON artifacts into the output folder."""

from __future__ import annotations

import json
import logging
import time
from typing import Callable

from ..core.types import ExtractedRecord, SourceRef, WorkItem
from ..drive.base import JSON_MIME_TYPE, FileRef, FileStore
from ..errors import PublishTransient
from ..logging_utils import log_event


def artifact_name(source_name: str) -> str:
    """'Event Notice.pdf' -> 'Event Notice.json' (suffix match is case-insensitive)."""
    return f"{_stem(source_name)}.json"


class JsonArtifactPublisher:
    """Publishes one record per source document as a pretty-printed JSON file.

    The record is bound to its source before writing: the document's
    HierarchyPath becomes category/subCategory and a sourcePdf reference
    points back to the original file. An existing file with the same name
    is never overwritten; the new artifact gets a millisecond timestamp
    suffix instead.
    """

    def __init__(
        self,
        store: FileStore,
        folder_id: str,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.folder_id = folder_id
        self.logger = logger
        self._clock = clock

    def publish(self, record: ExtractedRecord, item: WorkItem) -> FileRef:
        record.source = SourceRef(id=item.id, title=item.name, link=item.link)
        artifact = record.to_artifact(item.path)
        data = json.dumps(artifact, ensure_ascii=False, indent=2).encode("utf-8")

        try:
            name = artifact_name(item.name)
            if self.store.exists(self.folder_id, name):
                renamed = f"{_stem(item.name)}_{int(self._clock() * 1000)}.json"
                log_event(
                    self.logger,
                    "Artifact name taken, renaming",
                    event="artifact_renamed",
                    original=name,
                    renamed=renamed,
                )
                name = renamed
            ref = self.store.write(self.folder_id, name, data, JSON_MIME_TYPE)
        except Exception as exc:  # noqa: BLE001
            raise PublishTransient(f"Failed to write JSON artifact for {item.name}: {exc}") from exc

        log_event(
            self.logger,
            "JSON artifact written",
            event="artifact_written",
            file_id=item.id,
            artifact_id=ref.id,
            artifact_name=name,
        )
        return ref


def _stem(name: str) -> str:
    if name.lower().endswith(".pdf"):
        return name[:-4]
    return name
