"""Shared fixtures: an in-memory Drive tree and a quiet config."""

from __future__ import annotations

import logging

import pytest

from event_sync.config import AppConfig, apply_overrides
from event_sync.drive.base import (
    FOLDER_MIME_TYPE,
    FileFilter,
    FilePage,
    FileRef,
    FileStore,
    Property,
)
from event_sync.errors import DriveError


class FakeFileStore(FileStore):
    """Drive stand-in that keeps files, contents and properties in dicts."""

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.files: dict[str, FileRef] = {}
        self.contents: dict[str, bytes] = {}
        self.props: dict[str, set[Property]] = {}
        self.failing_folders: set[str] = set()
        self.failing_property_writes: set[str] = set()
        self.list_calls: list[tuple[str, FileFilter, str | None]] = []
        self._next_id = 0

    def add_folder(self, file_id: str, name: str, parent: str | None = None) -> FileRef:
        return self._add(file_id, name, FOLDER_MIME_TYPE, parent)

    def add_file(
        self,
        file_id: str,
        name: str,
        parent: str,
        mime_type: str,
        content: bytes = b"",
        properties: tuple[Property, ...] = (),
    ) -> FileRef:
        ref = self._add(file_id, name, mime_type, parent)
        self.contents[file_id] = content
        self.props[file_id] = set(properties)
        return ref

    def list_page(self, folder_id, file_filter, page_token=None):
        self.list_calls.append((folder_id, file_filter, page_token))
        if folder_id in self.failing_folders:
            raise DriveError(f"listing {folder_id} failed", status_code=500)
        children = [
            ref
            for ref in self.files.values()
            if folder_id in ref.parents and self._matches(ref, file_filter)
        ]
        start = int(page_token or 0)
        chunk = children[start : start + self.page_size]
        next_token = str(start + self.page_size) if start + self.page_size < len(children) else None
        items = [self._listed(ref, file_filter.include_properties) for ref in chunk]
        return FilePage(items=items, next_page_token=next_token)

    def read(self, file_id):
        if file_id not in self.contents:
            raise DriveError(f"{file_id} not found", status_code=404)
        return self.contents[file_id]

    def write(self, folder_id, name, data, mime_type):
        self._next_id += 1
        file_id = f"gen-{self._next_id}"
        ref = self.add_file(file_id, name, folder_id, mime_type, content=data)
        return ref

    def exists(self, folder_id, name):
        return any(folder_id in ref.parents and ref.name == name for ref in self.files.values())

    def get_file(self, file_id):
        if file_id not in self.files:
            raise DriveError(f"{file_id} not found", status_code=404)
        return self.files[file_id]

    def set_property(self, file_id, key, value, visibility):
        if file_id in self.failing_property_writes:
            raise DriveError("property write failed", status_code=500)
        self.props.setdefault(file_id, set()).add(Property(key, value, visibility))

    def has_property(self, file_id, key, value, visibility):
        return Property(key, value, visibility) in self.props.get(file_id, set())

    def remove_property(self, file_id, key, visibility):
        if file_id in self.failing_property_writes:
            raise DriveError("property delete failed", status_code=500)
        self.props[file_id] = {
            p for p in self.props.get(file_id, set()) if not (p.key == key and p.visibility == visibility)
        }

    def _add(self, file_id, name, mime_type, parent):
        ref = FileRef(
            id=file_id,
            name=name,
            mime_type=mime_type,
            link=f"https://drive.example.com/{file_id}",
            parents=[parent] if parent else [],
        )
        self.files[file_id] = ref
        return ref

    def _matches(self, ref: FileRef, file_filter: FileFilter) -> bool:
        if file_filter.mime_type and ref.mime_type != file_filter.mime_type:
            return False
        prop = file_filter.exclude_property
        if prop is not None and prop in self.props.get(ref.id, set()):
            return False
        return True

    def _listed(self, ref: FileRef, include_properties: bool) -> FileRef:
        return FileRef(
            id=ref.id,
            name=ref.name,
            mime_type=ref.mime_type,
            link=ref.link,
            parents=list(ref.parents),
            properties=sorted(self.props.get(ref.id, set()), key=repr) if include_properties else None,
        )


@pytest.fixture
def store() -> FakeFileStore:
    return FakeFileStore()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("event_sync.tests")


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return apply_overrides(
        AppConfig(),
        {
            "drive": {
                "pdf_folder_id": "pdf-root",
                "json_folder_id": "json-root",
                "access_token": "token",
            },
            "provider": {"api_key": "gemini-key"},
            "calendar": {"calendar_id": "team@example.com", "timezone": "Asia/Tokyo"},
            "logging": {"console": False, "directory": str(tmp_path / "logs")},
        },
    )
