"""
Abstract file store interface.

The walker, marker store and JSON publisher talk to Drive only through
FileStore, so tests can substitute an in-memory tree.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PDF_MIME_TYPE = "application/pdf"
JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class Property:
    """A custom file property (key, value, visibility)."""

    key: str
    value: str
    visibility: str


@dataclass
class FileRef:
    """File or folder metadata as returned by a listing.

    Attributes:
        id: File identifier
        name: File title
        mime_type: MIME type
        link: Browser link (Drive "alternateLink")
        parents: Parent folder ids
        properties: Custom properties, None when the listing did not request them
    """

    id: str
    name: str
    mime_type: str | None = None
    link: str | None = None
    parents: list[str] = field(default_factory=list)
    properties: list[Property] | None = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    def has_property(self, key: str, value: str, visibility: str) -> bool | None:
        """Check a property from listing data; None when properties were not listed."""
        if self.properties is None:
            return None
        return Property(key, value, visibility) in self.properties


@dataclass(frozen=True)
class FileFilter:
    """Listing filter for one folder.

    Attributes:
        mime_type: Only return files of this MIME type
        exclude_property: Skip files carrying this property
        include_properties: Ask the store to return each file's properties
    """

    mime_type: str | None = None
    exclude_property: Property | None = None
    include_properties: bool = False


@dataclass
class FilePage:
    items: list[FileRef]
    next_page_token: str | None = None


class FileStore(ABC):
    """Hierarchical file store with custom per-file properties."""

    @abstractmethod
    def list_page(
        self,
        folder_id: str,
        file_filter: FileFilter,
        page_token: str | None = None,
    ) -> FilePage:
        """Return one page of direct, non-trashed children of folder_id."""
        raise NotImplementedError

    @abstractmethod
    def read(self, file_id: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def write(self, folder_id: str, name: str, data: bytes, mime_type: str) -> FileRef:
        raise NotImplementedError

    @abstractmethod
    def exists(self, folder_id: str, name: str) -> bool:
        """Whether folder_id directly contains a non-trashed file called name."""
        raise NotImplementedError

    @abstractmethod
    def get_file(self, file_id: str) -> FileRef:
        raise NotImplementedError

    def get_parent(self, file_id: str) -> FileRef | None:
        """Return the first parent folder, or None for a top-level file."""
        ref = self.get_file(file_id)
        if not ref.parents:
            return None
        return self.get_file(ref.parents[0])

    @abstractmethod
    def set_property(self, file_id: str, key: str, value: str, visibility: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def has_property(self, file_id: str, key: str, value: str, visibility: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_property(self, file_id: str, key: str, visibility: str) -> None:
        """Remove a property. Removing an absent property is not an error."""
        raise NotImplementedError
