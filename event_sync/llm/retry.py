"""
One-shot, server-directed retry around an extraction provider.

A 429 suspends the current item for the delay the service asked for and
then calls the provider exactly once more. Anything short of a valid
record after that abandons the item for this run; since no marker is
written, the next scheduled run tries it again. Other errors are never
retried within the run.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from ..core.types import ExtractedRecord, RateLimited, WorkItem
from ..errors import ExtractionAbandoned, ExtractionError
from ..logging_utils import log_event
from .providers.base import ExtractionProvider


def extract_with_retry(
    provider: ExtractionProvider,
    item: WorkItem,
    content: bytes,
    sleep: Callable[[float], None] = time.sleep,
    logger: logging.Logger | None = None,
) -> ExtractedRecord:
    """Return a valid record or raise.

    Raises:
        ExtractionAbandoned: rate-limited, then any failure on the retry;
            or no title in the record
        ExtractionError: a first-call provider failure, unchanged
    """
    result = provider.extract(item, content)

    if isinstance(result, RateLimited):
        log_event(
            logger,
            "Extraction rate limited, backing off",
            level=logging.WARNING,
            event="extract_rate_limited",
            file_id=item.id,
            file_name=item.name,
            retry_after=result.retry_after,
        )
        sleep(result.retry_after)
        log_event(logger, "Retrying extraction", event="extract_retry", file_id=item.id)
        try:
            result = provider.extract(item, content)
        except ExtractionError as exc:
            raise ExtractionAbandoned(f"Retry failed: {exc}") from exc
        if isinstance(result, RateLimited):
            raise ExtractionAbandoned(
                f"Still rate limited after one retry (retry_after={result.retry_after}s)"
            )

    if not result.is_valid:
        raise ExtractionAbandoned("Extraction returned no title")
    return result
