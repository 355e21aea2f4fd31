"""
Core data types for the sync pipeline.

This module defines the data structures shared by every stage:
- HierarchyPath: Category/sub-category derived from folder ancestry
- WorkItem: A discovered source file and its durable marker state
- SourceRef: Provenance of an extracted record
- ExtractedRecord: Structured event data returned by the extraction provider
- RateLimited: Extraction result asking the caller to back off
- RunStats: Counters collected during one engine run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HierarchyPath:
    """First two folder levels below the configured root.

    Attributes:
        category: Name of the ancestor folder nearest the root
        sub_category: Name of the next ancestor folder
    """

    category: str | None = None
    sub_category: str | None = None

    @classmethod
    def from_names(cls, names: list[str]) -> HierarchyPath:
        """Build a path from ancestor names ordered root-first."""
        category = names[0] if len(names) > 0 else None
        sub_category = names[1] if len(names) > 1 else None
        return cls(category=category, sub_category=sub_category)

    def to_dict(self) -> dict[str, str | None]:
        return {"category": self.category, "subCategory": self.sub_category}


@dataclass
class WorkItem:
    """A source file eligible for processing.

    Attributes:
        id: Opaque file identifier in the file store
        name: Display name (file title)
        mime_type: MIME type reported by the file store
        processed: Durable marker state, None when the listing did not report it
        link: Browser link to the file
        path: HierarchyPath relative to the stage's root folder
        payload: Parsed JSON content (calendar stage)
        content: Raw file bytes (extraction stage)
    """

    id: str
    name: str
    mime_type: str | None = None
    processed: bool | None = None
    link: str | None = None
    path: HierarchyPath = field(default_factory=HierarchyPath)
    payload: dict[str, Any] | None = None
    content: bytes | None = None


@dataclass(frozen=True)
class SourceRef:
    """Reference back to the document a record was extracted from."""

    id: str
    title: str
    link: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"id": self.id, "title": self.title, "link": self.link}


@dataclass
class ExtractedRecord:
    """Structured event data extracted from one document.

    A record without a title is a valid response from the provider, but it
    is never published: is_valid is False and callers treat it exactly like
    a failed extraction.

    Attributes:
        title: Formal event title, required for publishing
        description: Summary or purpose of the event
        start_time: ISO 8601 start of the event itself (not preparation days)
        end_time: ISO 8601 end of the event
        location: Venue or meeting link
        source: Provenance, set once the record is bound to its work item
        extra: Any additional keys the provider returned
    """

    title: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    source: SourceRef | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return bool(self.title and str(self.title).strip())

    @classmethod
    def from_payload(cls, obj: dict[str, Any]) -> ExtractedRecord:
        known = {"title", "description", "startTime", "endTime", "location"}
        return cls(
            title=_optional_str(obj.get("title")),
            description=_optional_str(obj.get("description")),
            start_time=_optional_str(obj.get("startTime")),
            end_time=_optional_str(obj.get("endTime")),
            location=_optional_str(obj.get("location")),
            extra={k: v for k, v in obj.items() if k not in known},
        )

    def to_artifact(self, path: HierarchyPath) -> dict[str, Any]:
        """Serialize into the JSON artifact read by the calendar stage."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "title": self.title,
                "description": self.description,
                "startTime": self.start_time,
                "endTime": self.end_time,
                "location": self.location,
            }
        )
        data.update(path.to_dict())
        if self.source is not None:
            data["sourcePdf"] = self.source.to_dict()
        return data


@dataclass(frozen=True)
class RateLimited:
    """The provider answered 429; retry after the given number of seconds."""

    retry_after: int


@dataclass
class RunStats:
    """Counters collected during one engine run.

    Attributes:
        stage: Stage name the run belongs to
        discovered: Work items handed to the engine
        published: Side effects performed
        skipped_duplicate: Items marked without publishing (same key seen this run)
        rebuilt: Cache entries re-armed for already processed items
        unchanged: Items that needed nothing
        abandoned: Items left unmarked for the next run
        terminal: Items marked despite a failure that retrying cannot fix
        failed_marker: Items whose marker write failed
    """

    stage: str = ""
    discovered: int = 0
    published: int = 0
    skipped_duplicate: int = 0
    rebuilt: int = 0
    unchanged: int = 0
    abandoned: int = 0
    terminal: int = 0
    failed_marker: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "discovered": self.discovered,
            "published": self.published,
            "skipped_duplicate": self.skipped_duplicate,
            "rebuilt": self.rebuilt,
            "unchanged": self.unchanged,
            "abandoned": self.abandoned,
            "terminal": self.terminal,
            "failed_marker": self.failed_marker,
        }


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
