"""Abstract interface for structured-extraction providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...core.types import ExtractedRecord, RateLimited, WorkItem


class ExtractionProvider(ABC):
    """Provider interface for turning one document into an ExtractedRecord."""

    @abstractmethod
    def extract(self, item: WorkItem, content: bytes) -> ExtractedRecord | RateLimited:
        """Extract event data from a document.

        Args:
            item: The work item the content belongs to (MIME type, name)
            content: Raw document bytes

        Returns:
            ExtractedRecord (possibly without a title), or RateLimited when
            the service asks the caller to back off

        Raises:
            ExtractionError: for unsupported content, malformed responses
                and any other failed call
        """
        raise NotImplementedError
