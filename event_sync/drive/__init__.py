"""Google Drive access: file store interface, REST client and tree walker."""

from .base import (
    FOLDER_MIME_TYPE,
    JSON_MIME_TYPE,
    PDF_MIME_TYPE,
    FileFilter,
    FilePage,
    FileRef,
    FileStore,
    Property,
)
from .client import DriveClient
from .walker import HierarchyWalker, resolve_hierarchy

__all__ = [
    "FOLDER_MIME_TYPE",
    "JSON_MIME_TYPE",
    "PDF_MIME_TYPE",
    "DriveClient",
    "FileFilter",
    "FilePage",
    "FileRef",
    "FileStore",
    "HierarchyWalker",
    "Property",
    "resolve_hierarchy",
]
