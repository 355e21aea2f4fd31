"""
Exception hierarchy for the sync pipeline.

Every error carries a ``terminal`` flag. The reconciliation engine sets the
durable "processed" marker for items that fail with a terminal error, since
retrying them on the next run would only reproduce the same failure. All
other per-item errors leave the marker untouched so the item is picked up
again by the next scheduled run.
"""

from __future__ import annotations


class EventSyncError(Exception):
    """Base class for all pipeline errors."""

    terminal = False


class ConfigurationError(EventSyncError):
    """A required setting is missing or invalid. Aborts the run."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class DriveError(EventSyncError):
    """A Drive API request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DiscoveryError(EventSyncError):
    """Listing one folder failed. The walker treats that branch as empty."""

    def __init__(self, folder_id: str, cause: Exception):
        super().__init__(f"Failed to list folder {folder_id}: {cause}")
        self.folder_id = folder_id
        self.cause = cause


class ExtractionError(EventSyncError):
    """The extraction service did not produce a usable record."""


class UnsupportedContentError(ExtractionError):
    """The item's MIME type cannot be sent to the extraction service."""


class MalformedResponseError(ExtractionError):
    """HTTP 200, but the response envelope or inner JSON is unusable."""


class ExtractionFailedError(ExtractionError):
    """Any non-200, non-429 response or a transport failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionAbandoned(ExtractionError):
    """Extraction gave up on the item for this run."""


class PublishError(EventSyncError):
    """The side effect (JSON write or calendar insert) failed."""


class PublishTransient(PublishError):
    """Publish failed for a reason that may go away on the next run."""


class PublishNonRetryable(PublishError):
    """The publish target itself is invalid; retrying cannot succeed."""

    terminal = True


class InvalidCalendarError(PublishNonRetryable):
    """The configured calendar id does not resolve to a calendar."""


class ItemReadError(EventSyncError):
    """A work item's content could not be read or parsed."""


class InvalidWorkItem(EventSyncError):
    """A work item's payload lacks required fields."""

    terminal = True


class PersistenceError(EventSyncError):
    """Writing the durable marker failed."""
