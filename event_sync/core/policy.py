"""Transition table deciding what the engine does with one work item."""

from __future__ import annotations

from enum import Enum


class DedupPolicy(str, Enum):
    """How an item interacts with the session dedup cache.

    STANDARD consults the cache; BYPASS_DEDUP is driven by the durable
    marker alone (always publish when unprocessed, never act otherwise).
    """

    STANDARD = "standard"
    BYPASS_DEDUP = "bypass_dedup"


class Action(str, Enum):
    PUBLISH = "publish"
    SKIP_DUPLICATE = "skip_duplicate"
    REBUILD_CACHE = "rebuild_cache"
    NONE = "none"


def classify(policy: DedupPolicy, processed: bool, has_key: bool, cached: bool) -> Action:
    """Map (policy, processed, key present, key cached) to an action.

    PUBLISH means: perform the side effect, insert the key when present,
    then set the marker. SKIP_DUPLICATE sets the marker only.
    REBUILD_CACHE inserts the key only. ``cached`` is ignored when there
    is no key or the policy bypasses dedup.
    """
    if policy is DedupPolicy.BYPASS_DEDUP:
        return Action.NONE if processed else Action.PUBLISH

    if not processed:
        if has_key and cached:
            return Action.SKIP_DUPLICATE
        return Action.PUBLISH

    if has_key and not cached:
        return Action.REBUILD_CACHE
    return Action.NONE
