"""
Core domain models and reconciliation logic.

This package contains the data types, the transition table and the
session dedup cache that are independent of any specific stage.
"""

from .policy import Action, DedupPolicy, classify
from .session_cache import SessionDedupCache
from .types import ExtractedRecord, HierarchyPath, RateLimited, RunStats, SourceRef, WorkItem

__all__ = [
    "Action",
    "DedupPolicy",
    "ExtractedRecord",
    "HierarchyPath",
    "RateLimited",
    "RunStats",
    "SessionDedupCache",
    "SourceRef",
    "WorkItem",
    "classify",
]
