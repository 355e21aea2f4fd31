"""
Folder tree discovery.

HierarchyWalker enumerates every matching file at or below a root folder
using an explicit stack, so deep trees never grow the call stack and a
failing folder listing only empties that folder's branch. Each file is
tagged with the names of its ancestor folders below the root, from which
its HierarchyPath (category, sub-category) is derived.
"""

from __future__ import annotations

import logging
from typing import Iterator

from ..core.types import HierarchyPath, WorkItem
from ..errors import DiscoveryError
from ..logging_utils import log_event
from .base import FOLDER_MIME_TYPE, FileFilter, FileRef, FileStore, Property

DEFAULT_MAX_HIERARCHY_DEPTH = 5

_FOLDER_FILTER = FileFilter(mime_type=FOLDER_MIME_TYPE)


class HierarchyWalker:
    def __init__(self, store: FileStore, logger: logging.Logger | None = None):
        self.store = store
        self.logger = logger

    def discover(
        self,
        root_id: str,
        file_filter: FileFilter,
        marker: Property | None = None,
    ) -> Iterator[WorkItem]:
        """Yield work items for every file matching file_filter below root_id.

        Files of a folder are yielded before its sub-folders are visited,
        and sub-folders are visited in listing order. A folder reachable
        through several parents is visited once.

        Args:
            root_id: Folder to start from
            file_filter: Listing filter applied to files in every folder
            marker: Durable marker used to read each item's processed state
                from listed properties (requires include_properties)
        """
        stack: list[tuple[str, list[str]]] = [(root_id, [])]
        visited: set[str] = set()

        while stack:
            folder_id, names = stack.pop()
            if folder_id in visited:
                log_event(
                    self.logger,
                    "Folder already visited",
                    level=logging.DEBUG,
                    event="discovery_cycle",
                    folder_id=folder_id,
                )
                continue
            visited.add(folder_id)

            path = HierarchyPath.from_names(names)
            for ref in self._list_folder(folder_id, file_filter, "files"):
                if ref.is_folder:
                    continue
                yield WorkItem(
                    id=ref.id,
                    name=ref.name,
                    mime_type=ref.mime_type,
                    processed=_processed_state(ref, file_filter, marker),
                    link=ref.link,
                    path=path,
                )

            subfolders = self._list_folder(folder_id, _FOLDER_FILTER, "folders")
            for folder in reversed(subfolders):
                stack.append((folder.id, names + [folder.name]))

    def _list_folder(self, folder_id: str, file_filter: FileFilter, listing: str) -> list[FileRef]:
        refs: list[FileRef] = []
        page_token: str | None = None
        try:
            while True:
                page = self.store.list_page(folder_id, file_filter, page_token)
                refs.extend(page.items)
                page_token = page.next_page_token
                if not page_token:
                    break
        except Exception as exc:  # noqa: BLE001
            error = DiscoveryError(folder_id, exc)
            log_event(
                self.logger,
                "Folder listing failed",
                level=logging.ERROR,
                event="discovery_error",
                folder_id=folder_id,
                listing=listing,
                error=str(error),
            )
        return refs


def resolve_hierarchy(
    store: FileStore,
    file_id: str,
    root_id: str,
    max_depth: int = DEFAULT_MAX_HIERARCHY_DEPTH,
    logger: logging.Logger | None = None,
) -> HierarchyPath:
    """Derive a single file's HierarchyPath by walking its parents upwards.

    At most max_depth ancestors are collected. If the root is not reached
    within that many levels, the collected names are used as they are.
    """
    names: list[str] = []
    try:
        current = store.get_parent(file_id)
        for _ in range(max_depth):
            if current is None or current.id == root_id:
                break
            names.append(current.name)
            current = store.get_parent(current.id)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            "Hierarchy lookup failed",
            level=logging.ERROR,
            event="hierarchy_error",
            file_id=file_id,
            error=str(exc),
        )
        return HierarchyPath()

    names.reverse()
    return HierarchyPath.from_names(names)


def _processed_state(
    ref: FileRef,
    file_filter: FileFilter,
    marker: Property | None,
) -> bool | None:
    if file_filter.exclude_property is not None:
        return False
    if marker is None:
        return None
    return ref.has_property(marker.key, marker.value, marker.visibility)
